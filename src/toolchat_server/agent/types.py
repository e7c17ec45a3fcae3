"""Data types for agent sessions.

This module defines the core data structures used by the agent loop:
messages and their content parts, transcript entries, completion metrics,
function call records, and the per-turn completion result.
"""

import base64
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any, Mapping, Sequence

if TYPE_CHECKING:
    from toolchat_server.agent.functions import AgentFunction


class MessageRole(str, Enum):
    """Role of a message in the conversation."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


class SessionState(str, Enum):
    """Lifecycle state of an agent session."""

    IDLE = "idle"
    RESPONDING = "responding"


@dataclass(frozen=True)
class TextPart:
    """A plain text content part."""

    text: str


@dataclass(frozen=True)
class ImagePart:
    """An image content part.

    Either ``path`` or ``data`` must be set. An unresolved part only carries a
    path; resolving it loads the file and stores its base64 encoding in
    ``data``.
    """

    path: Path | None = None
    data: str | None = None

    def resolve(self) -> "ImagePart":
        """Load the image from disk if needed.

        Returns:
            An ImagePart with ``data`` populated

        Raises:
            ValueError: If the part has neither a path nor data
            OSError: If the image file cannot be read
        """
        if self.data is not None:
            return self
        if self.path is None:
            raise ValueError("Image part has neither a path nor data")
        raw = Path(self.path).read_bytes()
        return ImagePart(path=self.path, data=base64.b64encode(raw).decode("ascii"))


ContentPart = TextPart | ImagePart


@dataclass(frozen=True)
class RawFunctionCall:
    """A function call as emitted by the language model, before resolution."""

    name: str
    arguments: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Message:
    """A single chat message. Immutable once constructed."""

    role: MessageRole
    content: str | tuple[ContentPart, ...] = ""
    tool_name: str | None = None
    function_calls: tuple[RawFunctionCall, ...] = ()

    @property
    def text(self) -> str:
        """Concatenated text of all text parts."""
        if isinstance(self.content, str):
            return self.content
        return "".join(part.text for part in self.content if isinstance(part, TextPart))

    @property
    def images(self) -> list[str]:
        """Base64 payloads of all resolved image parts."""
        if isinstance(self.content, str):
            return []
        return [
            part.data
            for part in self.content
            if isinstance(part, ImagePart) and part.data is not None
        ]

    @classmethod
    def system(cls, text: str) -> "Message":
        return cls(role=MessageRole.SYSTEM, content=text)

    @classmethod
    def user(cls, content: str | Sequence[ContentPart]) -> "Message":
        if not isinstance(content, str):
            content = tuple(content)
        return cls(role=MessageRole.USER, content=content)

    @classmethod
    def assistant(
        cls, text: str, function_calls: Sequence[RawFunctionCall] = ()
    ) -> "Message":
        return cls(
            role=MessageRole.ASSISTANT,
            content=text,
            function_calls=tuple(function_calls),
        )

    @classmethod
    def tool(cls, name: str, content: str) -> "Message":
        return cls(role=MessageRole.TOOL, content=content, tool_name=name)


@dataclass(frozen=True)
class CompletionMetrics:
    """Token and latency metrics for one model completion.

    Attributes:
        prompt_tokens: Number of tokens in the prompt (prefill)
        completion_tokens: Number of generated tokens (decode)
        total_tokens: Sum of prompt and completion tokens
        confidence: Backend-reported confidence, if any
        time_to_first_token: Seconds until the first token arrived
        total_duration: Seconds for the whole completion
    """

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0
    confidence: float | None = None
    time_to_first_token: float = 0.0
    total_duration: float = 0.0


@dataclass(frozen=True)
class TranscriptEntry:
    """A message recorded in a transcript.

    ``metrics`` is only ever set for assistant entries.
    """

    id: int
    message: Message
    metrics: CompletionMetrics | None = None


@dataclass(frozen=True)
class CompletionEntry:
    """A transcript entry appended during a turn, with its metrics."""

    transcript_entry: TranscriptEntry
    metrics: CompletionMetrics | None = None


@dataclass(frozen=True)
class ResolvedCompletion:
    """Result of one respond/stream turn.

    Only contains the assistant and tool entries appended during the turn,
    not the whole transcript.
    """

    output: str
    entries: tuple[CompletionEntry, ...] = ()


@dataclass(frozen=True)
class FunctionCall:
    """A model-requested call resolved against a registered function."""

    function: "AgentFunction"
    arguments: Mapping[str, Any] = field(default_factory=dict)

    @property
    def name(self) -> str:
        return self.function.name

    async def invoke(self) -> "FunctionReturn":
        """Invoke the function and wrap its serialized output."""
        content = await self.function.invoke(self.arguments)
        return FunctionReturn(name=self.function.name, content=content)


@dataclass(frozen=True)
class FunctionReturn:
    """Serialized output of a successful function call."""

    name: str
    content: str


@dataclass(frozen=True)
class FunctionThrow:
    """A failed function call together with its original call."""

    function_call: FunctionCall
    error: BaseException


@dataclass(frozen=True)
class InferenceOptions:
    """Sampling options passed to the language model."""

    max_tokens: int = 512
    temperature: float = 0.6
    top_p: float = 0.95
    top_k: int = 20
    stop_sequences: tuple[str, ...] = ()
    force_functions: bool = False


@dataclass
class UserMessage:
    """A user turn payload: content plus the inference options for the turn."""

    content: str | Sequence[ContentPart]
    max_tokens: int = 512
    temperature: float = 0.6
    top_p: float = 0.95
    top_k: int = 20
    stop_sequences: Sequence[str] = ()
    force_functions: bool = False

    @property
    def options(self) -> InferenceOptions:
        return InferenceOptions(
            max_tokens=self.max_tokens,
            temperature=self.temperature,
            top_p=self.top_p,
            top_k=self.top_k,
            stop_sequences=tuple(self.stop_sequences),
            force_functions=self.force_functions,
        )
