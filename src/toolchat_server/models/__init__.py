"""Pydantic models for API request and response schemas.

This package contains all Pydantic models used for validating and
serializing API requests and responses across all endpoints.
"""

from toolchat_server.models.chat import (
    ChatRequest,
    ChatResponse,
    ContentDeltaEvent,
    ControlResponse,
    DoneEvent,
    ErrorEvent,
    MessageCompleteEvent,
)
from toolchat_server.models.health import HealthResponse
from toolchat_server.models.models import ModelDetail, ModelListResponse
from toolchat_server.models.sessions import (
    CreateSessionRequest,
    MessageResponse,
    MessagesResponse,
    MetricsResponse,
    SessionDetailResponse,
    SessionListResponse,
    SessionResponse,
    ToolCallResponse,
)
from toolchat_server.models.tools import ToolListResponse, ToolResponse

__all__ = [
    "ChatRequest",
    "ChatResponse",
    "ContentDeltaEvent",
    "ControlResponse",
    "CreateSessionRequest",
    "DoneEvent",
    "ErrorEvent",
    "HealthResponse",
    "MessageCompleteEvent",
    "MessageResponse",
    "MessagesResponse",
    "MetricsResponse",
    "ModelDetail",
    "ModelListResponse",
    "SessionDetailResponse",
    "SessionListResponse",
    "SessionResponse",
    "ToolCallResponse",
    "ToolListResponse",
    "ToolResponse",
]
