"""FastAPI application bootstrap."""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .dependencies import get_task_store
from .routes import (
    register_admin_routes,
    register_task_routes,
    register_user_routes,
)
from .schemas import HealthResponse


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(title="Task Manager API", version="1.0.0")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/api/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        """Liveness check."""
        return HealthResponse(status="ok")

    register_user_routes(app)
    register_task_routes(app)
    register_admin_routes(app)

    return app


app = create_app()

__all__ = ["app", "create_app", "get_task_store"]
