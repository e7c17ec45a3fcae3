"""Data types for session management."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone

from toolchat_server.agent import AgentSession


def utc_timestamp() -> str:
    """Current time as an ISO 8601 string with a ``Z`` suffix."""
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def generate_session_id() -> str:
    """Generate a short unique session identifier."""
    return uuid.uuid4().hex[:10]


@dataclass
class SessionCreationOptions:
    """Options for creating a new session."""

    model: str
    system_prompt: str | None = None
    tools: list[str] = field(default_factory=list)
    parallel_tool_calls: bool = True


@dataclass
class ChatSession:
    """A live chat session: metadata plus the AgentSession that owns the transcript."""

    session_id: str
    model: str
    agent: AgentSession
    system_prompt: str | None = None
    tools: list[str] = field(default_factory=list)
    parallel_tool_calls: bool = True
    created_at: str = field(default_factory=utc_timestamp)
    updated_at: str = field(default_factory=utc_timestamp)

    @property
    def message_count(self) -> int:
        return len(self.agent.transcript)

    def touch(self) -> None:
        """Mark the session as updated now."""
        self.updated_at = utc_timestamp()
