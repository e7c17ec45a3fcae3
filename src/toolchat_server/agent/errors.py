"""Exceptions raised by agent sessions."""

from typing import Sequence

from toolchat_server.agent.types import FunctionThrow


class AgentSessionError(Exception):
    """Base class for all agent session errors."""


class AlreadyRespondingError(AgentSessionError):
    """A respond/stream was attempted while another one is in flight."""

    def __init__(self) -> None:
        super().__init__("The agent is already responding to another request.")


class InvalidContentError(AgentSessionError):
    """Message content could not be resolved.

    Attributes:
        cause: The underlying error raised while resolving the content
    """

    def __init__(self, message: str, cause: BaseException) -> None:
        super().__init__(f"{message}: {cause}")
        self.cause = cause


class InvalidUserContentError(InvalidContentError):
    """The user message content could not be resolved."""

    def __init__(self, cause: BaseException) -> None:
        super().__init__("Invalid user message content", cause)


class InvalidSystemContentError(InvalidContentError):
    """The system prompt content could not be resolved."""

    def __init__(self, cause: BaseException) -> None:
        super().__init__("Invalid system prompt content", cause)


class AggregatedFunctionCallError(AgentSessionError):
    """One or more function calls failed.

    Attributes:
        errors: One FunctionThrow per failed call, in original call order
    """

    def __init__(self, errors: Sequence[FunctionThrow]) -> None:
        self.errors = list(errors)
        names = ", ".join(error.function_call.name for error in self.errors)
        super().__init__(f"{len(self.errors)} function call(s) failed: {names}")


class SessionCancelledError(AgentSessionError):
    """The active generation was stopped or the session was reset."""

    def __init__(self, message: str = "The response was cancelled.") -> None:
        super().__init__(message)


class MissingFunctionError(AgentSessionError):
    """The model requested a function that is not registered on the session."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Model requested unknown function '{name}'")
        self.name = name


class ToolIterationLimitError(AgentSessionError):
    """The model kept requesting function calls past the iteration cap."""

    def __init__(self, max_iterations: int) -> None:
        super().__init__(
            f"Model still requested function calls after {max_iterations} iterations"
        )
        self.max_iterations = max_iterations
