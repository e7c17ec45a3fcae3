"""Pydantic models for chat API requests, responses and SSE events.

These schemas are shared by the non-streaming, streaming, stop and reset
endpoints under /api/v1/chat.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from toolchat_server.models.sessions import MessageResponse


class ChatRequest(BaseModel):
    """Request body for chat endpoints.

    Used by both POST /api/v1/chat/{session_id} (non-streaming)
    and POST /api/v1/chat/{session_id}/stream (streaming).
    """

    message: str = Field(..., description="The user message to send")
    images: list[str] = Field(
        default_factory=list, description="Base64-encoded images attached to the message"
    )
    max_tokens: int = Field(512, ge=1, description="Maximum tokens per completion")
    temperature: float = Field(0.6, ge=0.0, description="Sampling temperature")
    top_p: float = Field(0.95, gt=0.0, le=1.0, description="Nucleus sampling threshold")
    top_k: int = Field(20, ge=0, description="Top-k sampling cutoff")
    stop: list[str] = Field(default_factory=list, description="Stop sequences")
    force_functions: bool = Field(
        False, description="Require the model to call a tool when tools are enabled"
    )

    model_config = ConfigDict(
        json_schema_extra={
            "examples": [
                {"message": "What is the weather in Paris?"},
                {"message": "Describe this picture", "images": ["iVBORw0KGgo..."]},
            ]
        }
    )


class ChatResponse(BaseModel):
    """Response body for the non-streaming chat endpoint.

    ``entries`` holds only the assistant and tool entries appended during
    this turn, in append order.
    """

    session_id: str = Field(description="Session identifier")
    output: str = Field(description="Final assistant text")
    entries: list[MessageResponse] = Field(default_factory=list)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "session_id": "a1b2c3d4e5",
                "output": "It is 21 degrees and sunny in Paris.",
                "entries": [
                    {
                        "id": 1,
                        "role": "assistant",
                        "content": "",
                        "tool_calls": [
                            {"name": "get_weather", "arguments": {"city": "Paris"}}
                        ],
                    },
                    {
                        "id": 2,
                        "role": "tool",
                        "content": "21C, sunny",
                        "tool_name": "get_weather",
                    },
                    {
                        "id": 3,
                        "role": "assistant",
                        "content": "It is 21 degrees and sunny in Paris.",
                    },
                ],
            }
        }
    )


class ControlResponse(BaseModel):
    """Response body for the stop and reset endpoints."""

    session_id: str
    state: str
    message_count: int


# --- SSE event payloads ---


class ContentDeltaEvent(BaseModel):
    """A generated token."""

    content: str
    generation_id: str
    index: int


class MessageCompleteEvent(ChatResponse):
    """The turn finished; carries the same payload as ChatResponse."""


class ErrorEvent(BaseModel):
    """The turn failed or was cancelled."""

    code: str
    message: str
    details: dict[str, Any] = Field(default_factory=dict)


class DoneEvent(BaseModel):
    """The stream is over."""

    session_id: str
