"""FastAPI application factory and lifespan management.

This module contains the create_app() factory function that creates and configures
the FastAPI application instance, including lifespan management for startup/shutdown
and router registration.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from toolchat_server.config import ToolchatSettings
from toolchat_server.ollama import OllamaClient
from toolchat_server.routers import chat, health, models, sessions, tools
from toolchat_server.sessions import SessionManager
from toolchat_server.tools import ToolRegistry

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Lifespan context manager for FastAPI application.

    The Ollama client, the tool registry and the session manager are created
    once at startup and stored in app.state for reuse across all requests.

    Args:
        app: The FastAPI application instance.

    Yields:
        None: Control is yielded while the app is running.
    """
    settings: ToolchatSettings = app.state.settings
    app.state.ollama_client = OllamaClient(host=settings.ollama_host)
    logger.info(f"Initialized Ollama client with host: {settings.ollama_host}")

    connected = await app.state.ollama_client.check_connection()
    if connected:
        logger.info("Successfully connected to Ollama")
    else:
        logger.warning("Could not connect to Ollama - check if server is running")

    app.state.tool_registry = ToolRegistry()
    app.state.tool_registry.discover(settings.resolved_tools_dir)

    app.state.session_manager = SessionManager(
        app.state.ollama_client,
        app.state.tool_registry,
        max_tool_iterations=settings.max_tool_iterations,
        stream_buffer_size=settings.stream_buffer_size,
    )

    yield

    await app.state.session_manager.close()
    await app.state.ollama_client.close()
    logger.info("Shutdown complete")


def create_app(settings: ToolchatSettings | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Optional ToolchatSettings instance. If not provided,
                  settings will be loaded from environment variables.

    Returns:
        FastAPI: Configured FastAPI application instance.
    """
    if settings is None:
        from toolchat_server.dependencies import get_settings

        settings = get_settings()

    app = FastAPI(
        title="toolchat-server",
        description="Headless FastAPI server for tool-calling LLM conversations via Ollama",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.state.settings = settings

    # Note: FastAPI's type hints for add_middleware are overly strict
    app.add_middleware(
        CORSMiddleware,  # type: ignore[arg-type]
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health.router)
    app.include_router(models.router)
    app.include_router(tools.router)
    app.include_router(sessions.router)
    app.include_router(chat.router)

    return app
