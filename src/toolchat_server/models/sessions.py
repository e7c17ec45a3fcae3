"""Pydantic models for session API requests and responses."""

from dataclasses import asdict
from typing import Any

from pydantic import BaseModel, Field

from toolchat_server.agent import TranscriptEntry


class CreateSessionRequest(BaseModel):
    """Request body for creating a new session."""

    model: str = Field(..., description="The LLM model to use for this session")
    system_prompt: str | None = Field(
        None, description="Optional system prompt, inserted before the first message"
    )
    tools: list[str] = Field(
        default_factory=list, description="Names of registered tools to enable"
    )
    parallel_tool_calls: bool = Field(
        True,
        description="Run the tool calls of one model reply concurrently (true) or one at a time",
    )


class SessionResponse(BaseModel):
    """Response model for a single session (metadata only)."""

    session_id: str
    model: str
    created_at: str
    updated_at: str
    message_count: int
    state: str = Field(description="idle or responding")
    system_prompt: str | None = None
    tools: list[str]
    parallel_tool_calls: bool


class SessionListResponse(BaseModel):
    """Response model for listing sessions."""

    sessions: list[SessionResponse]


class MetricsResponse(BaseModel):
    """Token and latency metrics of one model completion."""

    prompt_tokens: int
    completion_tokens: int
    total_tokens: int
    confidence: float | None = None
    time_to_first_token: float
    total_duration: float


class ToolCallResponse(BaseModel):
    """A function call requested by the assistant."""

    name: str
    arguments: dict[str, Any] = Field(default_factory=dict)


class MessageResponse(BaseModel):
    """Response model for a single transcript entry."""

    id: int = Field(description="Transcript entry ID, unique within the session")
    role: str
    content: str
    images: int = Field(0, description="Number of attached images")
    tool_name: str | None = None
    tool_calls: list[ToolCallResponse] | None = None
    metrics: MetricsResponse | None = None

    @classmethod
    def from_entry(cls, entry: TranscriptEntry) -> "MessageResponse":
        message = entry.message
        tool_calls = None
        if message.function_calls:
            tool_calls = [
                ToolCallResponse(name=call.name, arguments=dict(call.arguments))
                for call in message.function_calls
            ]
        metrics = None
        if entry.metrics is not None:
            metrics = MetricsResponse.model_validate(asdict(entry.metrics))
        return cls(
            id=entry.id,
            role=message.role.value,
            content=message.text,
            images=len(message.images),
            tool_name=message.tool_name,
            tool_calls=tool_calls,
            metrics=metrics,
        )


class MessagesResponse(BaseModel):
    """Response model for getting session messages."""

    messages: list[MessageResponse]


class SessionDetailResponse(SessionResponse):
    """Response model for a session with full message history."""

    messages: list[MessageResponse]
