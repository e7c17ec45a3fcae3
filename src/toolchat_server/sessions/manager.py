"""SessionManager for in-memory chat sessions.

This module provides the SessionManager class which handles:
- Creating new sessions with model and tool validation
- Listing sessions, newest activity first
- Retrieving sessions by ID
- Deleting sessions (stopping any running turn first)

Sessions live only as long as the server process.
"""

import logging
import threading
from typing import Callable

from toolchat_server.agent import (
    AgentSession,
    LanguageModel,
    ParallelFunctionCallDelegate,
    SequentialFunctionCallDelegate,
)
from toolchat_server.ollama import OllamaChatModel, OllamaClient
from toolchat_server.sessions.types import (
    ChatSession,
    SessionCreationOptions,
    generate_session_id,
)
from toolchat_server.tools import ToolRegistry

logger = logging.getLogger(__name__)

ModelFactory = Callable[[str], LanguageModel]


class SessionNotFoundError(LookupError):
    """No session exists with the given ID."""

    def __init__(self, session_id: str) -> None:
        super().__init__(f"Session {session_id} not found")
        self.session_id = session_id


class ModelNotFoundError(ValueError):
    """The requested model is not installed on the Ollama server."""

    def __init__(self, model: str) -> None:
        super().__init__(f"Model '{model}' not found")
        self.model = model


class SessionManager:
    """Creates and tracks chat sessions.

    One manager is created at startup and shared by all requests.
    """

    def __init__(
        self,
        ollama_client: OllamaClient,
        tool_registry: ToolRegistry,
        *,
        max_tool_iterations: int = 10,
        stream_buffer_size: int = 64,
        model_factory: ModelFactory | None = None,
    ) -> None:
        """Initialize the SessionManager.

        Args:
            ollama_client: Client used for model validation and completions
            tool_registry: Registry the session tools are selected from
            max_tool_iterations: Iteration cap passed to every AgentSession
            stream_buffer_size: Token buffer size passed to every AgentSession
            model_factory: Builds the LanguageModel for a model name
                (default: OllamaChatModel over ``ollama_client``)
        """
        self.ollama_client = ollama_client
        self.tool_registry = tool_registry
        self.max_tool_iterations = max_tool_iterations
        self.stream_buffer_size = stream_buffer_size
        self._model_factory = model_factory or (
            lambda name: OllamaChatModel(ollama_client, name)
        )
        self._sessions: dict[str, ChatSession] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    async def create_session(self, options: SessionCreationOptions) -> ChatSession:
        """Create a new chat session.

        Raises:
            ModelNotFoundError: If the model is not installed
            UnknownToolError: If a requested tool is not registered
        """
        model_info = await self.ollama_client.get_model_info(options.model)
        if model_info is None:
            raise ModelNotFoundError(options.model)

        functions = self.tool_registry.select(options.tools)
        if functions and not model_info.supports_tools:
            logger.warning(
                f"Model {options.model} does not report tool support, "
                f"tools may be ignored"
            )

        delegate = (
            ParallelFunctionCallDelegate()
            if options.parallel_tool_calls
            else SequentialFunctionCallDelegate()
        )
        agent = AgentSession(
            self._model_factory(options.model),
            functions,
            system_prompt=options.system_prompt,
            delegate=delegate,
            max_iterations=self.max_tool_iterations,
            stream_buffer_size=self.stream_buffer_size,
        )
        session = ChatSession(
            session_id=generate_session_id(),
            model=options.model,
            agent=agent,
            system_prompt=options.system_prompt,
            tools=list(options.tools),
            parallel_tool_calls=options.parallel_tool_calls,
        )
        with self._lock:
            self._sessions[session.session_id] = session

        logger.info(
            f"Created new session {session.session_id} with model {options.model}"
        )
        return session

    def list_sessions(self) -> list[ChatSession]:
        """List all sessions, sorted by updated_at descending."""
        with self._lock:
            sessions = list(self._sessions.values())
        sessions.sort(key=lambda s: s.updated_at, reverse=True)
        logger.debug(f"Listed {len(sessions)} sessions")
        return sessions

    def get_session(self, session_id: str) -> ChatSession:
        """Get a specific session by ID.

        Raises:
            SessionNotFoundError: If the session doesn't exist
        """
        with self._lock:
            session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    async def delete_session(self, session_id: str) -> None:
        """Delete a session, stopping its active turn if there is one.

        Raises:
            SessionNotFoundError: If the session doesn't exist
        """
        with self._lock:
            session = self._sessions.pop(session_id, None)
        if session is None:
            raise SessionNotFoundError(session_id)
        if session.agent.is_responding:
            await session.agent.stop()
        logger.info(f"Deleted session {session_id}")

    async def close(self) -> None:
        """Stop every session. Called on shutdown."""
        with self._lock:
            sessions = list(self._sessions.values())
            self._sessions.clear()
        for session in sessions:
            if session.agent.is_responding:
                await session.agent.stop()
        logger.debug(f"Closed {len(sessions)} session(s)")
