"""Dependency injection providers for FastAPI endpoints.

This module provides FastAPI dependency functions that are used across
multiple routers to inject common dependencies like settings and services.
"""

from functools import lru_cache

from fastapi import HTTPException, Request

from toolchat_server.config import ToolchatSettings
from toolchat_server.ollama import OllamaClient
from toolchat_server.sessions import SessionManager
from toolchat_server.tools import ToolRegistry


@lru_cache
def get_settings() -> ToolchatSettings:
    """Get the application settings instance.

    This function is cached so that the same settings instance is reused
    across all requests. Settings are loaded from environment variables
    with the TOOLCHAT_ prefix.

    Returns:
        ToolchatSettings: The application configuration settings.
    """
    return ToolchatSettings()


def _app_state(request: Request, name: str, label: str):
    if not hasattr(request.app.state, name):
        raise HTTPException(status_code=503, detail=f"{label} not initialized")
    return getattr(request.app.state, name)


def get_ollama_client(request: Request) -> OllamaClient:
    """Get the Ollama client from app state.

    Raises:
        HTTPException: If the Ollama client is not initialized (503 Service Unavailable).
    """
    return _app_state(request, "ollama_client", "Ollama client")


def get_tool_registry(request: Request) -> ToolRegistry:
    """Get the tool registry populated at startup.

    Raises:
        HTTPException: If the registry is not initialized (503 Service Unavailable).
    """
    return _app_state(request, "tool_registry", "Tool registry")


def get_session_manager(request: Request) -> SessionManager:
    """Get the SessionManager shared by all requests.

    Sessions live in memory, so unlike settings-derived services the
    manager is created once in the lifespan and never per request.

    Raises:
        HTTPException: If the manager is not initialized (503 Service Unavailable).
    """
    return _app_state(request, "session_manager", "Session manager")
