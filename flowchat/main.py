"""Main entry point for the chat orchestrator server."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import httpx
import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .core.config import settings
from .core.logging_config import setup_logging
from .db import init_db
from .engine.node_registry import register_all_nodes
from .routes import chat_widget_router
from .schemas.common import HealthResponse
from .services.hook_runner import drain_background_tasks

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    setup_logging()

    # Initialize database tables
    await init_db()
    logger.info("Database initialized")

    register_all_nodes()
    app.state.http_client = httpx.AsyncClient(timeout=settings.proxy_timeout)
    logger.info("%s v%s started on http://%s:%s", settings.app_name, settings.app_version, settings.host, settings.port)

    yield

    # Let detached post-response hooks finish before the client goes away
    await drain_background_tasks()
    await app.state.http_client.aclose()
    logger.info("%s stopped", settings.app_name)


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title=settings.app_name,
        description="Chat widget endpoint with tool-calling AI agents",
        version=settings.app_version,
        lifespan=lifespan,
        debug=settings.debug,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
    )

    app.include_router(chat_widget_router, tags=["Chat Widget"])

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        """Health check endpoint."""
        return HealthResponse(
            status="healthy",
            version=settings.app_version,
        )

    return app


# Create app instance
app = create_app()


def main() -> None:
    """Run the server."""
    uvicorn.run(
        "flowchat.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.reload,
    )


if __name__ == "__main__":
    main()
