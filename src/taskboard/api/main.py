from __future__ import annotations

import os
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from .errors import register_exception_handlers
from .logging import configure_logging, instrument_fastapi
from .repositories import Repositories, get_repositories
from .routers import auth as auth_router
from .routers import tasks as tasks_router
from .schemas import utcnow
from .settings import Settings, get_settings

openapi_tags = [
    {"name": "health", "description": "Service health and status endpoints."},
    {"name": "auth", "description": "Registration, login and the current user."},
    {
        "name": "tasks",
        "description": "CRUD, filtering, sorting and drag-and-drop reordering of the caller's tasks.",
    },
]


# PUBLIC_INTERFACE
def create_app(settings: Optional[Settings] = None, repositories: Optional[Repositories] = None) -> FastAPI:
    """
    Build the API application.

    Args:
        settings: Configuration; read from the environment when omitted.
        repositories: Storage backends; built from ``settings`` when omitted.
    """
    settings = settings or get_settings()
    configure_logging(settings)

    app = FastAPI(
        title="Taskboard",
        description="Multi-user task board API: status columns, priorities and drag-and-drop ordering.",
        version="0.1.0",
        openapi_tags=openapi_tags,
    )
    app.state.settings = settings
    app.state.repositories = repositories or get_repositories(settings)

    # Configure CORS based on settings (.env -> CORS_ALLOW_ORIGINS), with '*' fallback
    allow_all = (settings.cors_allow_origins == ["*"]) or (len(settings.cors_allow_origins) == 0)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if allow_all else settings.cors_allow_origins,
        allow_credentials=not allow_all,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    @app.get("/api/health", summary="Health Check", tags=["health"])
    def health_check(request: Request):
        """
        Health check endpoint.

        Returns:
            A JSON object indicating service health and the storage backend in use.
        """
        return {
            "success": True,
            "message": "Server is running",
            "timestamp": utcnow().isoformat(),
            "backend": request.app.state.repositories.backend,
        }

    app.include_router(auth_router.router)
    app.include_router(tasks_router.router)
    instrument_fastapi(app, settings)
    return app


app = create_app()


# PUBLIC_INTERFACE
def run() -> None:
    """Serve the application with uvicorn (HOST / PORT env vars)."""
    import uvicorn

    uvicorn.run(
        "taskboard.api.main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
    )


if __name__ == "__main__":
    run()
