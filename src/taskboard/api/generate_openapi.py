"""
Write the API's OpenAPI schema to disk.

Client generators and documentation tools can consume the file without a
running server.

Usage:
    python -m taskboard.api.generate_openapi [OUTPUT_PATH]

The default output path is ./interfaces/openapi.json.
"""
from __future__ import annotations

import json
import os
import sys
from typing import Any, Dict, List, Optional

from .main import create_app, openapi_tags

DEFAULT_OUTPUT = os.path.join("interfaces", "openapi.json")


def _ensure_tags(schema: Dict[str, Any]) -> None:
    """
    Make sure every tag in ``openapi_tags`` is described in the schema, without
    overriding tag definitions that are already present.
    """
    by_name: Dict[str, Dict[str, Any]] = {t["name"]: t for t in schema.get("tags") or [] if "name" in t}
    for tag in openapi_tags:
        by_name.setdefault(tag["name"], tag)
    schema["tags"] = list(by_name.values())


# PUBLIC_INTERFACE
def generate_openapi(out_path: Optional[str] = None) -> str:
    """Generate the OpenAPI schema file and return the written file path."""
    out_path = out_path or DEFAULT_OUTPUT
    schema = create_app().openapi()
    _ensure_tags(schema)

    os.makedirs(os.path.dirname(out_path) or ".", exist_ok=True)
    with open(out_path, "w", encoding="utf-8") as f:
        json.dump(schema, f, indent=2, ensure_ascii=False)
    return out_path


def main(argv: Optional[List[str]] = None) -> None:
    args = sys.argv[1:] if argv is None else argv
    path = generate_openapi(args[0] if args else None)
    print(f"Wrote OpenAPI schema to: {path}")


if __name__ == "__main__":
    main()
