"""Token streaming with cooperative cancellation.

A StreamHandle runs a producer coroutine on a background task. The producer
emits tokens into a bounded queue and eventually returns a final value. The
consumer reads tokens in FIFO order and/or awaits the final value.
"""

import asyncio
import logging
import threading
from enum import Enum
from typing import AsyncIterator, Awaitable, Callable, Generic, TypeVar

from toolchat_server.agent.errors import SessionCancelledError
from toolchat_server.agent.model import StreamedToken

logger = logging.getLogger(__name__)

OutputT = TypeVar("OutputT")

TokenSink = Callable[[StreamedToken], Awaitable[None]]

DEFAULT_BUFFER_SIZE = 64


class _ConsumerState(str, Enum):
    UNCLAIMED = "unclaimed"
    ATTACHED = "attached"
    DETACHED = "detached"


class StreamHandle(Generic[OutputT]):
    """Handle to an in-flight generation.

    The token iterator and ``collect_response()`` both end with
    SessionCancelledError when ``stop()`` is called. If nobody iterates the
    tokens, ``collect_response()`` drains them so the producer never blocks
    on a full queue.

    Must be created from within a running event loop.
    """

    def __init__(
        self,
        run: Callable[[TokenSink], Awaitable[OutputT]],
        *,
        buffer_size: int = DEFAULT_BUFFER_SIZE,
        on_stop: Callable[[], None] | None = None,
    ) -> None:
        """Start the producer.

        Args:
            run: Producer coroutine function; receives the token sink
            buffer_size: Maximum number of tokens buffered for the consumer
            on_stop: Called once, on the event loop, when ``stop()`` takes effect
        """
        self._loop = asyncio.get_running_loop()
        self._queue: asyncio.Queue[StreamedToken] = asyncio.Queue(maxsize=buffer_size)
        self._response: asyncio.Future[OutputT] = self._loop.create_future()
        self._consumer = _ConsumerState.UNCLAIMED
        self._on_stop = on_stop
        self._lock = threading.Lock()
        self._task = self._loop.create_task(self._produce(run))

    @property
    def is_streaming(self) -> bool:
        """Whether generation is still in flight."""
        return not self._response.done()

    async def _produce(self, run: Callable[[TokenSink], Awaitable[OutputT]]) -> None:
        try:
            output = await run(self._emit)
        except asyncio.CancelledError:
            self._finish_cancelled()
            raise
        except Exception as e:
            logger.debug(f"Stream producer failed: {e}")
            if not self._response.done():
                self._response.set_exception(e)
        else:
            if not self._response.done():
                self._response.set_result(output)

    async def _emit(self, token: StreamedToken) -> None:
        if self._response.done():
            raise asyncio.CancelledError()
        if self._consumer == _ConsumerState.DETACHED:
            return
        await self._queue.put(token)

    async def tokens(self) -> AsyncIterator[StreamedToken]:
        """Iterate tokens in generation order.

        The sequence is finite and can only be iterated once. Leaving the
        loop early detaches the consumer once the iterator is closed: later
        tokens are dropped and generation runs to completion.

        Raises:
            RuntimeError: If the tokens have already been claimed
            SessionCancelledError: If the stream was stopped
            Exception: The producer's error, after the buffered tokens
        """
        self._claim()
        try:
            while True:
                if self._queue.empty() and self._response.done():
                    break
                getter = asyncio.ensure_future(self._queue.get())
                try:
                    await asyncio.wait(
                        {getter, self._response},
                        return_when=asyncio.FIRST_COMPLETED,
                    )
                except asyncio.CancelledError:
                    getter.cancel()
                    raise
                if getter.done():
                    yield getter.result()
                else:
                    getter.cancel()
            # Surfaces the terminal error, if any.
            self._response.result()
        finally:
            self._detach()

    async def collect_response(self) -> OutputT:
        """Wait for the final value of the stream.

        Raises:
            SessionCancelledError: If the stream was stopped
            Exception: The producer's error
        """
        if self._try_claim():
            try:
                while not self._response.done():
                    getter = asyncio.ensure_future(self._queue.get())
                    try:
                        await asyncio.wait(
                            {getter, self._response},
                            return_when=asyncio.FIRST_COMPLETED,
                        )
                    finally:
                        getter.cancel()
            finally:
                self._detach()
        return await asyncio.shield(self._response)

    def stop(self) -> None:
        """Stop generation. Safe to call from any thread, any number of times."""
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is self._loop:
            self._stop()
        else:
            self._loop.call_soon_threadsafe(self._stop)

    def _stop(self) -> None:
        if self._response.done():
            return
        logger.debug("Stopping stream")
        self._finish_cancelled()
        self._task.cancel()
        if self._on_stop is not None:
            self._on_stop()

    def _finish_cancelled(self) -> None:
        if self._response.done():
            return
        self._response.set_exception(SessionCancelledError())
        # Mark retrieved so an unobserved cancellation is not logged by asyncio.
        self._response.exception()
        while not self._queue.empty():
            self._queue.get_nowait()

    def _claim(self) -> None:
        if not self._try_claim():
            raise RuntimeError("Stream tokens can only be iterated once")

    def _try_claim(self) -> bool:
        with self._lock:
            if self._consumer != _ConsumerState.UNCLAIMED:
                return False
            self._consumer = _ConsumerState.ATTACHED
            return True

    def _detach(self) -> None:
        # Later tokens are dropped; emptying the queue releases a producer
        # blocked on a full buffer.
        self._consumer = _ConsumerState.DETACHED
        while not self._queue.empty():
            self._queue.get_nowait()
