"""Session management for toolchat-server.

This package keeps the live chat sessions of the server process in memory.
"""

from toolchat_server.sessions.manager import (
    ModelNotFoundError,
    SessionManager,
    SessionNotFoundError,
)
from toolchat_server.sessions.types import ChatSession, SessionCreationOptions

__all__ = [
    "ChatSession",
    "ModelNotFoundError",
    "SessionCreationOptions",
    "SessionManager",
    "SessionNotFoundError",
]
