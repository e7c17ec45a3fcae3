"""Translation of domain errors into API error payloads.

Every error response body has the shape
``{"error": {"code": ..., "message": ..., "details": {...}}}``.
"""

import logging
from typing import Any

from fastapi import HTTPException, status

from toolchat_server.agent import (
    AggregatedFunctionCallError,
    AlreadyRespondingError,
    InvalidSystemContentError,
    InvalidUserContentError,
    MissingFunctionError,
    SessionCancelledError,
    ToolIterationLimitError,
)

logger = logging.getLogger(__name__)


def api_error(
    status_code: int, code: str, message: str, details: dict[str, Any] | None = None
) -> HTTPException:
    return HTTPException(
        status_code=status_code,
        detail={"error": {"code": code, "message": message, "details": details or {}}},
    )


def session_not_found(session_id: str) -> HTTPException:
    return api_error(
        status.HTTP_404_NOT_FOUND,
        "session_not_found",
        f"Session {session_id} not found",
        {"session_id": session_id},
    )


def classify_agent_error(exc: BaseException) -> tuple[int, str, dict[str, Any]]:
    """Map an error raised by a chat turn to (status, code, details)."""
    if isinstance(exc, AlreadyRespondingError):
        return status.HTTP_409_CONFLICT, "already_responding", {}
    if isinstance(exc, SessionCancelledError):
        return status.HTTP_409_CONFLICT, "cancelled", {}
    if isinstance(exc, InvalidUserContentError):
        return 422, "invalid_user_content", {"cause": str(exc.cause)}
    if isinstance(exc, InvalidSystemContentError):
        return 422, "invalid_system_content", {"cause": str(exc.cause)}
    if isinstance(exc, AggregatedFunctionCallError):
        return (
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "function_call_error",
            {
                "failures": [
                    {"name": throw.function_call.name, "error": str(throw.error)}
                    for throw in exc.errors
                ]
            },
        )
    if isinstance(exc, MissingFunctionError):
        return (
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "function_call_error",
            {"missing_function": exc.name},
        )
    if isinstance(exc, ToolIterationLimitError):
        return (
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "function_call_error",
            {"max_iterations": exc.max_iterations},
        )
    return status.HTTP_502_BAD_GATEWAY, "ollama_error", {}


def agent_error_to_http(exc: BaseException, session_id: str) -> HTTPException:
    status_code, code, details = classify_agent_error(exc)
    if status_code >= 500:
        logger.error(f"Chat turn failed for session {session_id}: {exc}")
    else:
        logger.info(f"Chat turn rejected for session {session_id}: {exc}")
    return api_error(status_code, code, str(exc), {"session_id": session_id, **details})
