"""Function call execution for agent sessions.

This module provides the parallel executor used by default, a sequential
alternative, and the delegate protocol that lets callers choose how function
calls are executed for a session.
"""

import asyncio
import logging
from typing import TYPE_CHECKING, Protocol, Sequence

from toolchat_server.agent.errors import AggregatedFunctionCallError
from toolchat_server.agent.types import FunctionCall, FunctionReturn, FunctionThrow

if TYPE_CHECKING:
    from toolchat_server.agent.session import AgentSession

logger = logging.getLogger(__name__)


async def execute_parallel_function_calls(
    function_calls: Sequence[FunctionCall],
) -> list[FunctionReturn]:
    """Execute function calls concurrently.

    Every call runs as a child task of one task group. A failing call does not
    cancel its siblings; once all calls have finished, failures are raised
    together as an AggregatedFunctionCallError. Cancelling the caller cancels
    every child and propagates the cancellation without partial results.

    Args:
        function_calls: The resolved calls for one model turn

    Returns:
        One FunctionReturn per call, in the order of ``function_calls``

    Raises:
        AggregatedFunctionCallError: If one or more calls failed
        asyncio.CancelledError: If the executor was cancelled
    """
    if not function_calls:
        return []

    returns: list[FunctionReturn | None] = [None] * len(function_calls)
    failures: list[FunctionThrow | None] = [None] * len(function_calls)

    async def run(index: int, function_call: FunctionCall) -> None:
        try:
            returns[index] = await function_call.invoke()
            logger.debug(f"Function call {index} ({function_call.name}) succeeded")
        except Exception as e:
            logger.warning(f"Function call {index} ({function_call.name}) failed: {e}")
            failures[index] = FunctionThrow(function_call=function_call, error=e)

    logger.info(f"Executing {len(function_calls)} function call(s) in parallel")
    async with asyncio.TaskGroup() as group:
        for index, function_call in enumerate(function_calls):
            group.create_task(run(index, function_call))

    _raise_for_failures(failures)
    return [result for result in returns if result is not None]


async def execute_sequential_function_calls(
    function_calls: Sequence[FunctionCall],
) -> list[FunctionReturn]:
    """Execute function calls one at a time, in order.

    Has the same failure contract as execute_parallel_function_calls: every
    call is attempted and failures are raised together at the end.
    """
    returns: list[FunctionReturn] = []
    failures: list[FunctionThrow | None] = []

    for function_call in function_calls:
        try:
            returns.append(await function_call.invoke())
            failures.append(None)
        except Exception as e:
            logger.warning(f"Function call {function_call.name} failed: {e}")
            failures.append(FunctionThrow(function_call=function_call, error=e))

    _raise_for_failures(failures)
    return returns


def _raise_for_failures(failures: Sequence[FunctionThrow | None]) -> None:
    errors = [failure for failure in failures if failure is not None]
    if errors:
        raise AggregatedFunctionCallError(errors)


class FunctionCallDelegate(Protocol):
    """Decides how a session executes the function calls of a model turn.

    Implementations must return outputs in the same order as
    ``function_calls``. Raising any exception rolls back the turn.
    """

    async def execute_function_calls(
        self,
        session: "AgentSession",
        function_calls: Sequence[FunctionCall],
    ) -> list[FunctionReturn]: ...


class ParallelFunctionCallDelegate:
    """Default delegate: runs all calls of a turn concurrently."""

    async def execute_function_calls(
        self,
        session: "AgentSession",
        function_calls: Sequence[FunctionCall],
    ) -> list[FunctionReturn]:
        return await execute_parallel_function_calls(function_calls)


class SequentialFunctionCallDelegate:
    """Runs the calls of a turn one after another."""

    async def execute_function_calls(
        self,
        session: "AgentSession",
        function_calls: Sequence[FunctionCall],
    ) -> list[FunctionReturn]:
        return await execute_sequential_function_calls(function_calls)
