"""Health check endpoint router."""

import logging

from fastapi import APIRouter, Request

from toolchat_server.models.health import HealthResponse
from toolchat_server.ollama import OllamaClient

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request) -> HealthResponse:
    """Health check endpoint.

    Returns the service status and version, the Ollama connectivity when a
    client is initialized, and the number of registered tools and live
    sessions.
    """
    state = request.app.state
    ollama_connected = None
    ollama_host = None

    if hasattr(state, "ollama_client"):
        ollama_client: OllamaClient = state.ollama_client
        ollama_host = ollama_client.host
        try:
            ollama_connected = await ollama_client.check_connection()
            logger.debug(f"Ollama connectivity check: {ollama_connected}")
        except Exception as e:
            logger.warning(f"Ollama connectivity check failed: {e}")
            ollama_connected = False

    return HealthResponse(
        status="ok",
        version="0.1.0",
        ollama_connected=ollama_connected,
        ollama_host=ollama_host,
        tool_count=len(state.tool_registry) if hasattr(state, "tool_registry") else 0,
        session_count=(
            len(state.session_manager) if hasattr(state, "session_manager") else 0
        ),
    )
