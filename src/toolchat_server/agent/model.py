"""The language model contract consumed by agent sessions."""

from dataclasses import dataclass
from typing import Awaitable, Callable, Protocol, Sequence, runtime_checkable

from toolchat_server.agent.functions import FunctionDefinition
from toolchat_server.agent.types import (
    CompletionMetrics,
    InferenceOptions,
    Message,
    RawFunctionCall,
)


@dataclass(frozen=True)
class StreamedToken:
    """A single generated token.

    Attributes:
        generation_id: Identifies the model completion the token belongs to
        text: The token text
        index: Position of the token within its completion
    """

    generation_id: str
    text: str
    index: int


TokenCallback = Callable[[StreamedToken], Awaitable[None]]


@dataclass(frozen=True)
class ModelCompletion:
    """The result of a single model completion."""

    text: str
    function_calls: tuple[RawFunctionCall, ...] = ()
    metrics: CompletionMetrics = CompletionMetrics()


@runtime_checkable
class LanguageModel(Protocol):
    """A chat-completion backend.

    ``complete`` performs one request/response. When ``on_token`` is given it
    is awaited once per generated token, in generation order. ``stop`` must be
    safe to call while a completion is in flight.
    """

    async def complete(
        self,
        messages: Sequence[Message],
        *,
        options: InferenceOptions,
        functions: Sequence[FunctionDefinition],
        on_token: TokenCallback | None = None,
    ) -> ModelCompletion: ...

    async def stop(self) -> None: ...

    async def reset(self) -> None: ...
