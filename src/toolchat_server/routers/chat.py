"""Chat API endpoints.

This module provides endpoints for chat interactions with sessions:
non-streaming and streaming (SSE) responses, and stop/reset controls.
Each request runs one agent turn; tool calls requested by the model are
executed server-side before the final answer is returned.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sse_starlette.sse import EventSourceResponse

from toolchat_server.agent import (
    ImagePart,
    ResolvedCompletion,
    StreamHandle,
    TextPart,
    UserMessage,
)
from toolchat_server.dependencies import get_session_manager
from toolchat_server.models.chat import (
    ChatRequest,
    ChatResponse,
    ContentDeltaEvent,
    ControlResponse,
    DoneEvent,
    ErrorEvent,
    MessageCompleteEvent,
)
from toolchat_server.models.sessions import MessageResponse
from toolchat_server.routers.errors import (
    agent_error_to_http,
    classify_agent_error,
    session_not_found,
)
from toolchat_server.sessions import ChatSession, SessionManager, SessionNotFoundError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/chat", tags=["chat"])


def to_user_message(request_body: ChatRequest) -> UserMessage:
    """Build the agent payload for a chat request."""
    content: str | list[TextPart | ImagePart] = request_body.message
    if request_body.images:
        content = [TextPart(request_body.message)]
        content.extend(ImagePart(data=image) for image in request_body.images)
    return UserMessage(
        content=content,
        max_tokens=request_body.max_tokens,
        temperature=request_body.temperature,
        top_p=request_body.top_p,
        top_k=request_body.top_k,
        stop_sequences=request_body.stop,
        force_functions=request_body.force_functions,
    )


def completion_to_response(
    session_id: str, completion: ResolvedCompletion
) -> ChatResponse:
    return ChatResponse(
        session_id=session_id,
        output=completion.output,
        entries=[
            MessageResponse.from_entry(entry.transcript_entry)
            for entry in completion.entries
        ],
    )


def _load(session_manager: SessionManager, session_id: str) -> ChatSession:
    try:
        return session_manager.get_session(session_id)
    except SessionNotFoundError:
        raise session_not_found(session_id)


def _control_response(session: ChatSession) -> ControlResponse:
    return ControlResponse(
        session_id=session.session_id,
        state=session.agent.state.value,
        message_count=session.message_count,
    )


@router.post("/{session_id}", response_model=ChatResponse)
async def chat_non_streaming(
    session_id: str,
    request_body: ChatRequest,
    session_manager: Annotated[SessionManager, Depends(get_session_manager)],
) -> ChatResponse:
    """Send a message to a session and receive the final response.

    Returns:
        ChatResponse with the final assistant text and every assistant and
        tool entry appended during the turn

    Raises:
        HTTPException: 404 if session not found, 409 if the session is busy
            or the turn was cancelled, 422 for invalid content, 500 if tool
            calls failed, 502 if Ollama fails
    """
    session = _load(session_manager, session_id)

    logger.info(f"Chat turn for session {session_id} with model {session.model}")
    try:
        completion = await session.agent.respond(to_user_message(request_body))
    except Exception as e:
        raise agent_error_to_http(e, session_id)

    session.touch()
    logger.info(
        f"Completed turn for session {session_id}: {len(completion.output)} characters"
    )
    return completion_to_response(session_id, completion)


@router.post("/{session_id}/stream")
async def chat_streaming(
    session_id: str,
    request_body: ChatRequest,
    request: Request,
    session_manager: Annotated[SessionManager, Depends(get_session_manager)],
) -> EventSourceResponse:
    """Stream a chat turn via Server-Sent Events (SSE).

    SSE Events:
        - content_delta: Each generated token, tagged with its generation
        - message_complete: Final text and the entries appended this turn
        - error: The turn failed or was cancelled
        - done: Stream is complete

    Raises:
        HTTPException: 404 if session not found, 409 if the session is busy,
            422 for invalid content
    """
    session = _load(session_manager, session_id)

    try:
        handle = session.agent.stream(to_user_message(request_body))
    except Exception as e:
        raise agent_error_to_http(e, session_id)

    logger.info(f"Starting streaming chat for session {session_id}")
    return EventSourceResponse(_event_generator(session, handle, request))


async def _event_generator(
    session: ChatSession,
    handle: StreamHandle[ResolvedCompletion],
    request: Request,
):
    """Generate SSE events from a stream handle."""
    session_id = session.session_id
    try:
        async for token in handle.tokens():
            if await request.is_disconnected():
                logger.warning(
                    f"Client disconnected during streaming for session {session_id}"
                )
                return
            yield {
                "event": "content_delta",
                "data": ContentDeltaEvent(
                    content=token.text,
                    generation_id=token.generation_id,
                    index=token.index,
                ).model_dump_json(),
            }
        completion = await handle.collect_response()
    except Exception as e:
        _, code, details = classify_agent_error(e)
        logger.error(f"Error during streaming for session {session_id}: {e}")
        yield {
            "event": "error",
            "data": ErrorEvent(
                code=code,
                message=str(e),
                details={"session_id": session_id, **details},
            ).model_dump_json(),
        }
        return
    finally:
        # Closing the stream early ends the turn.
        if handle.is_streaming:
            handle.stop()

    session.touch()
    response = completion_to_response(session_id, completion)
    yield {
        "event": "message_complete",
        "data": MessageCompleteEvent(**response.model_dump()).model_dump_json(),
    }
    yield {
        "event": "done",
        "data": DoneEvent(session_id=session_id).model_dump_json(),
    }


@router.post("/{session_id}/stop", response_model=ControlResponse)
async def stop_generation(
    session_id: str,
    session_manager: Annotated[SessionManager, Depends(get_session_manager)],
) -> ControlResponse:
    """Stop the turn in progress, if any.

    The stopped turn is rolled back; its caller receives a ``cancelled``
    error.
    """
    session = _load(session_manager, session_id)
    await session.agent.stop()
    logger.info(f"Stopped generation for session {session_id}")
    return _control_response(session)


@router.post("/{session_id}/reset", response_model=ControlResponse)
async def reset_session(
    session_id: str,
    session_manager: Annotated[SessionManager, Depends(get_session_manager)],
) -> ControlResponse:
    """Stop any turn in progress and clear the session transcript."""
    session = _load(session_manager, session_id)
    await session.agent.reset()
    session.touch()
    logger.info(f"Reset session {session_id}")
    return _control_response(session)
