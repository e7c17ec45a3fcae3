"""AgentSession: the conversation state machine and tool-call loop.

The session is the single owner of a transcript and of the idle/responding
flag. It drives the loop: complete, execute requested function calls, append
their outputs, complete again, until the model answers without calls.

A turn is atomic: if it fails or is cancelled, every entry it appended is
removed again, leaving the transcript exactly as it was before the turn.
"""

import asyncio
import logging
import threading
import uuid
from dataclasses import dataclass, field, replace
from typing import Sequence

from toolchat_server.agent.errors import (
    AlreadyRespondingError,
    InvalidSystemContentError,
    InvalidUserContentError,
    MissingFunctionError,
    SessionCancelledError,
    ToolIterationLimitError,
)
from toolchat_server.agent.executor import (
    FunctionCallDelegate,
    ParallelFunctionCallDelegate,
)
from toolchat_server.agent.functions import AgentFunction
from toolchat_server.agent.model import (
    LanguageModel,
    ModelCompletion,
    StreamedToken,
)
from toolchat_server.agent.stream import DEFAULT_BUFFER_SIZE, StreamHandle, TokenSink
from toolchat_server.agent.transcript import Transcript
from toolchat_server.agent.types import (
    CompletionEntry,
    ContentPart,
    FunctionCall,
    ImagePart,
    InferenceOptions,
    Message,
    MessageRole,
    RawFunctionCall,
    ResolvedCompletion,
    SessionState,
    TextPart,
    UserMessage,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_ITERATIONS = 10


@dataclass
class _Turn:
    """Bookkeeping for the turn currently in flight."""

    id: str
    baseline: int
    options: InferenceOptions
    user_message: Message
    system_message: Message | None
    handle: StreamHandle[ResolvedCompletion] | None = None
    entries: list[CompletionEntry] = field(default_factory=list)


class AgentSession:
    """A multi-turn conversation with a tool-augmented language model.

    Only one respond/stream may run at a time. ``stop()`` and ``reset()`` may
    be called at any point; pending callers then receive
    SessionCancelledError.

    Example:
        >>> session = AgentSession(model, functions=[get_fact])
        >>> completion = await session.respond(UserMessage("Tell me a fact"))
        >>> print(completion.output)
    """

    def __init__(
        self,
        model: LanguageModel,
        functions: Sequence[AgentFunction] = (),
        *,
        system_prompt: str | Sequence[ContentPart] | None = None,
        transcript: Transcript | None = None,
        delegate: FunctionCallDelegate | None = None,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
        stream_buffer_size: int = DEFAULT_BUFFER_SIZE,
    ) -> None:
        """Initialize an AgentSession.

        Args:
            model: The language model backend
            functions: Functions the model may call
            system_prompt: Inserted as the first message when the transcript is empty
            transcript: Initial transcript (default: empty)
            delegate: Function call execution policy (default: parallel)
            max_iterations: Maximum model completions per turn
            stream_buffer_size: Maximum number of buffered tokens per stream
        """
        if max_iterations < 1:
            raise ValueError("max_iterations must be at least 1")
        self.model = model
        self.max_iterations = max_iterations
        self.stream_buffer_size = stream_buffer_size
        self._lock = threading.Lock()
        self._transcript = transcript.copy() if transcript is not None else Transcript()
        self._functions = list(functions)
        self._delegate: FunctionCallDelegate = delegate or ParallelFunctionCallDelegate()
        self._system_prompt = system_prompt
        self._state = SessionState.IDLE
        self._turn: _Turn | None = None

    # --- Read-only state ---

    @property
    def transcript(self) -> Transcript:
        """A copy of the conversation history."""
        with self._lock:
            return self._transcript.copy()

    @property
    def state(self) -> SessionState:
        with self._lock:
            return self._state

    @property
    def is_responding(self) -> bool:
        return self.state == SessionState.RESPONDING

    @property
    def functions(self) -> list[AgentFunction]:
        with self._lock:
            return list(self._functions)

    @functions.setter
    def functions(self, functions: Sequence[AgentFunction]) -> None:
        with self._lock:
            self._functions = list(functions)

    @property
    def delegate(self) -> FunctionCallDelegate:
        return self._delegate

    @delegate.setter
    def delegate(self, delegate: FunctionCallDelegate | None) -> None:
        self._delegate = delegate or ParallelFunctionCallDelegate()

    # --- Public API ---

    async def respond(self, user_message: UserMessage | str) -> ResolvedCompletion:
        """Run one turn and wait for the final assistant response.

        Raises:
            AlreadyRespondingError: If another turn is in flight
            InvalidUserContentError: If the user content cannot be resolved
            InvalidSystemContentError: If the system prompt cannot be resolved
            AggregatedFunctionCallError: If function calls failed
            SessionCancelledError: If the turn was stopped or reset
        """
        if isinstance(user_message, str):
            user_message = UserMessage(content=user_message)
        if self.is_responding:
            raise AlreadyRespondingError()
        user_message = await _load_attachments(user_message)

        handle = self.stream(user_message)
        try:
            return await handle.collect_response()
        except asyncio.CancelledError:
            handle.stop()
            raise

    def stream(self, user_message: UserMessage | str) -> StreamHandle[ResolvedCompletion]:
        """Start one turn and return immediately with a stream handle.

        Must be called from within a running event loop. Image parts given
        by path are read here, on the event loop; ``respond()`` reads them in
        a worker thread instead.

        Raises:
            AlreadyRespondingError: If another turn is in flight
            InvalidUserContentError: If the user content cannot be resolved
            InvalidSystemContentError: If the system prompt cannot be resolved
        """
        if isinstance(user_message, str):
            user_message = UserMessage(content=user_message)

        asyncio.get_running_loop()
        if self.is_responding:
            raise AlreadyRespondingError()

        # Content is resolved before the state transition so a failure here
        # never touches the transcript.
        resolved_user = self._resolve_user_message(user_message)
        system_message = self._resolve_system_message()

        turn = self._begin_turn(user_message.options, resolved_user, system_message)
        logger.info(f"Starting turn {turn.id}")

        async def run(emit: TokenSink) -> ResolvedCompletion:
            return await self._run_turn(turn, emit)

        turn.handle = StreamHandle(
            run,
            buffer_size=self.stream_buffer_size,
            on_stop=lambda: self._cancel_turn(turn),
        )
        return turn.handle

    async def stop(self) -> None:
        """Stop the active generation, if any, and the model backend."""
        with self._lock:
            turn = self._turn
        if turn is not None and turn.handle is not None:
            turn.handle.stop()
        await self.model.stop()

    async def reset(self) -> None:
        """Stop any active generation and clear the transcript."""
        await self.stop()
        with self._lock:
            # A turn may have started while the model was stopping.
            turn = self._turn
            self._transcript._clear()
            self._turn = None
            self._state = SessionState.IDLE
        if turn is not None and turn.handle is not None:
            turn.handle.stop()
        await self.model.reset()
        logger.info("Session reset")

    # --- Turn lifecycle ---

    def _begin_turn(
        self,
        options: InferenceOptions,
        user_message: Message,
        system_message: Message | None,
    ) -> _Turn:
        with self._lock:
            if self._state == SessionState.RESPONDING:
                raise AlreadyRespondingError()
            turn = _Turn(
                id=uuid.uuid4().hex[:10],
                baseline=len(self._transcript),
                options=options,
                user_message=user_message,
                system_message=system_message if not self._transcript else None,
            )
            self._turn = turn
            self._state = SessionState.RESPONDING
            return turn

    def _end_turn(self, turn: _Turn, *, rollback: bool) -> None:
        with self._lock:
            if self._turn is not turn:
                return
            if rollback:
                removed = len(self._transcript) - turn.baseline
                self._transcript._truncate(turn.baseline)
                logger.info(f"Rolled back turn {turn.id} ({removed} entries)")
            self._turn = None
            self._state = SessionState.IDLE

    def _cancel_turn(self, turn: _Turn) -> None:
        logger.info(f"Cancelling turn {turn.id}")
        self._end_turn(turn, rollback=True)

    def _append(self, turn: _Turn, message: Message, completion: ModelCompletion | None = None) -> None:
        metrics = completion.metrics if completion is not None else None
        with self._lock:
            if self._turn is not turn:
                raise SessionCancelledError()
            entry = self._transcript.append(message, metrics=metrics)
        if message.role in (MessageRole.ASSISTANT, MessageRole.TOOL):
            turn.entries.append(CompletionEntry(transcript_entry=entry, metrics=metrics))

    def _messages(self, turn: _Turn) -> list[Message]:
        with self._lock:
            if self._turn is not turn:
                raise SessionCancelledError()
            return self._transcript.messages

    async def _run_turn(self, turn: _Turn, emit: TokenSink) -> ResolvedCompletion:
        try:
            completion = await self._loop(turn, emit)
        except BaseException:
            self._end_turn(turn, rollback=True)
            raise
        self._end_turn(turn, rollback=False)
        logger.info(f"Finished turn {turn.id} with {len(completion.entries)} entries")
        return completion

    async def _loop(self, turn: _Turn, emit: TokenSink) -> ResolvedCompletion:
        pending = [turn.user_message]
        if turn.system_message is not None:
            pending.insert(0, turn.system_message)
        messages = self._messages(turn) + pending

        for iteration in range(self.max_iterations):
            generation_id = uuid.uuid4().hex
            position = 0

            async def on_token(token: StreamedToken) -> None:
                nonlocal position
                await emit(
                    StreamedToken(
                        generation_id=generation_id, text=token.text, index=position
                    )
                )
                position += 1

            logger.debug(
                f"Turn {turn.id} iteration {iteration}: sending {len(messages)} messages"
            )
            completion = await self.model.complete(
                messages,
                options=turn.options,
                functions=[function.definition for function in self.functions],
                on_token=on_token,
            )

            # The user message and the first assistant reply land together.
            for message in pending:
                self._append(turn, message)
            pending = []
            self._append(
                turn,
                Message.assistant(completion.text, completion.function_calls),
                completion,
            )

            if not completion.function_calls:
                return ResolvedCompletion(
                    output=completion.text, entries=tuple(turn.entries)
                )
            if iteration == self.max_iterations - 1:
                break

            function_calls = self._resolve_function_calls(completion.function_calls)
            logger.info(
                f"Turn {turn.id} executing {len(function_calls)} function call(s)"
            )
            returns = await self.delegate.execute_function_calls(self, function_calls)
            for function_return in returns:
                self._append(
                    turn, Message.tool(function_return.name, function_return.content)
                )

            messages = self._messages(turn)

        raise ToolIterationLimitError(self.max_iterations)

    # --- Resolution helpers ---

    def _resolve_function_calls(
        self, raw_calls: Sequence[RawFunctionCall]
    ) -> list[FunctionCall]:
        available = {function.name: function for function in self.functions}
        resolved = []
        for raw_call in raw_calls:
            function = available.get(raw_call.name)
            if function is None:
                raise MissingFunctionError(raw_call.name)
            resolved.append(FunctionCall(function=function, arguments=raw_call.arguments))
        return resolved

    @staticmethod
    def _resolve_user_message(user_message: UserMessage) -> Message:
        try:
            return Message.user(_resolve_content(user_message.content))
        except Exception as e:
            raise InvalidUserContentError(e) from e

    def _resolve_system_message(self) -> Message | None:
        if self._system_prompt is None:
            return None
        try:
            content = _resolve_content(self._system_prompt)
            if not isinstance(content, str):
                if any(isinstance(part, ImagePart) for part in content):
                    raise ValueError("System prompts may only contain text")
                content = "".join(part.text for part in content)
        except Exception as e:
            raise InvalidSystemContentError(e) from e
        return Message.system(content)


def _resolve_content(
    content: str | Sequence[ContentPart],
) -> str | tuple[ContentPart, ...]:
    """Resolve content into parts, loading image attachments."""
    if isinstance(content, str):
        return content
    resolved: list[ContentPart] = []
    for part in content:
        if isinstance(part, TextPart):
            resolved.append(part)
        elif isinstance(part, ImagePart):
            resolved.append(part.resolve())
        else:
            raise TypeError(f"Unsupported content part: {type(part).__name__}")
    return tuple(resolved)


async def _load_attachments(user_message: UserMessage) -> UserMessage:
    """Read path-backed image parts in a worker thread."""
    content = user_message.content
    if isinstance(content, str) or not any(
        isinstance(part, ImagePart) and part.data is None for part in content
    ):
        return user_message
    try:
        resolved = await asyncio.to_thread(_resolve_content, content)
    except Exception as e:
        raise InvalidUserContentError(e) from e
    return replace(user_message, content=resolved)
