"""Sessions router for chat session CRUD operations.

This module provides REST API endpoints for:
- Creating new sessions
- Listing all sessions
- Retrieving session details
- Deleting sessions
- Getting session messages
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, status

from toolchat_server.dependencies import get_session_manager
from toolchat_server.models.sessions import (
    CreateSessionRequest,
    MessageResponse,
    MessagesResponse,
    SessionDetailResponse,
    SessionListResponse,
    SessionResponse,
)
from toolchat_server.routers.errors import api_error, session_not_found
from toolchat_server.sessions import (
    ChatSession,
    ModelNotFoundError,
    SessionCreationOptions,
    SessionManager,
    SessionNotFoundError,
)
from toolchat_server.tools import UnknownToolError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/sessions", tags=["sessions"])


def session_to_response(session: ChatSession) -> SessionResponse:
    return SessionResponse(
        session_id=session.session_id,
        model=session.model,
        created_at=session.created_at,
        updated_at=session.updated_at,
        message_count=session.message_count,
        state=session.agent.state.value,
        system_prompt=session.system_prompt,
        tools=session.tools,
        parallel_tool_calls=session.parallel_tool_calls,
    )


def _load(session_manager: SessionManager, session_id: str) -> ChatSession:
    try:
        return session_manager.get_session(session_id)
    except SessionNotFoundError:
        raise session_not_found(session_id)


@router.post(
    "",
    response_model=SessionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a new session",
)
async def create_session(
    request: CreateSessionRequest,
    session_manager: Annotated[SessionManager, Depends(get_session_manager)],
) -> SessionResponse:
    """Create a new chat session.

    The model is validated against the installed Ollama models and every
    requested tool must be registered.

    Raises:
        HTTPException: 400 if the model or a tool doesn't exist
        HTTPException: 502 if Ollama communication fails
    """
    options = SessionCreationOptions(
        model=request.model,
        system_prompt=request.system_prompt,
        tools=request.tools,
        parallel_tool_calls=request.parallel_tool_calls,
    )
    try:
        session = await session_manager.create_session(options)
    except ModelNotFoundError as e:
        logger.warning(f"Session creation failed: {e}")
        raise api_error(
            status.HTTP_400_BAD_REQUEST, "model_not_found", str(e), {"model": e.model}
        )
    except UnknownToolError as e:
        logger.warning(f"Session creation failed: {e}")
        raise api_error(
            status.HTTP_400_BAD_REQUEST,
            "tool_not_found",
            f"Unknown tool(s): {', '.join(e.names)}",
            {"tools": e.names},
        )
    except Exception as e:
        logger.error(f"Failed to create session: {e}", exc_info=True)
        raise api_error(
            status.HTTP_502_BAD_GATEWAY,
            "ollama_error",
            f"Failed to create session: {e}",
        )

    return session_to_response(session)


@router.get("", response_model=SessionListResponse, summary="List all sessions")
async def list_sessions(
    session_manager: Annotated[SessionManager, Depends(get_session_manager)],
) -> SessionListResponse:
    """List all live sessions, most recently updated first."""
    return SessionListResponse(
        sessions=[session_to_response(s) for s in session_manager.list_sessions()]
    )


@router.get(
    "/{session_id}",
    response_model=SessionDetailResponse,
    summary="Get session details",
)
async def get_session(
    session_id: str,
    session_manager: Annotated[SessionManager, Depends(get_session_manager)],
) -> SessionDetailResponse:
    """Get a session with its full transcript.

    Raises:
        HTTPException: 404 if the session doesn't exist
    """
    session = _load(session_manager, session_id)
    return SessionDetailResponse(
        **session_to_response(session).model_dump(),
        messages=[MessageResponse.from_entry(e) for e in session.agent.transcript],
    )


@router.delete(
    "/{session_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a session",
)
async def delete_session(
    session_id: str,
    session_manager: Annotated[SessionManager, Depends(get_session_manager)],
) -> None:
    """Delete a session. A turn in progress is stopped first.

    Raises:
        HTTPException: 404 if the session doesn't exist
    """
    try:
        await session_manager.delete_session(session_id)
    except SessionNotFoundError:
        raise session_not_found(session_id)


@router.get(
    "/{session_id}/messages",
    response_model=MessagesResponse,
    summary="Get session messages",
)
async def get_messages(
    session_id: str,
    session_manager: Annotated[SessionManager, Depends(get_session_manager)],
) -> MessagesResponse:
    """Get the transcript of a session.

    Raises:
        HTTPException: 404 if the session doesn't exist
    """
    session = _load(session_manager, session_id)
    return MessagesResponse(
        messages=[MessageResponse.from_entry(e) for e in session.agent.transcript]
    )
