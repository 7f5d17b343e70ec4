"""Logging and tracing setup built on the standard library and Pydantic Logfire.

Modules log through ``logging.getLogger(__name__)``; Logfire ships records and
spans only when a write token is configured.

    with span("task_service.create_task"):
        ...
"""

from __future__ import annotations

import logging

import logfire
from fastapi import FastAPI

from .settings import Settings

_configured = False


# PUBLIC_INTERFACE
def configure_logging(settings: Settings) -> None:
    """Set the root log level and configure Logfire once per process."""
    global _configured
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if _configured:
        return
    logfire.configure(
        token=settings.logfire_token,
        service_name="taskboard",
        service_version="0.1.0",
        send_to_logfire="if-token-present",
        console=False,
    )
    _configured = True
    logging.getLogger(__name__).info("Logging configured (level=%s)", settings.log_level)


# PUBLIC_INTERFACE
def instrument_fastapi(app: FastAPI, settings: Settings) -> None:
    """Trace FastAPI requests through Logfire when spans are being exported."""
    if not settings.logfire_token:
        return
    logfire.instrument_fastapi(app)
    logging.getLogger(__name__).info("FastAPI instrumentation configured")


def span(name: str, **attributes: object) -> logfire.LogfireSpan:
    """Open a Logfire span for a service-layer operation."""
    return logfire.span(name, **attributes)
