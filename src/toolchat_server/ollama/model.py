"""LanguageModel implementation backed by an Ollama server."""

import asyncio
import json
import logging
import time
from typing import Any, Sequence

from toolchat_server.agent.functions import FunctionDefinition
from toolchat_server.agent.model import ModelCompletion, StreamedToken, TokenCallback
from toolchat_server.agent.types import (
    CompletionMetrics,
    InferenceOptions,
    Message,
    RawFunctionCall,
)
from toolchat_server.ollama.client import OllamaClient

logger = logging.getLogger(__name__)

FORCE_FUNCTIONS_INSTRUCTION = (
    "You must answer by calling one of the available tools. "
    "Do not reply with plain text."
)


class IncompleteResponseError(RuntimeError):
    """The Ollama stream ended without a final ``done`` chunk."""


def to_ollama_messages(messages: Sequence[Message]) -> list[dict[str, Any]]:
    """Convert agent messages to the Ollama chat format."""
    ollama_messages = []
    for message in messages:
        entry: dict[str, Any] = {"role": message.role.value, "content": message.text}
        images = message.images
        if images:
            entry["images"] = images
        if message.function_calls:
            entry["tool_calls"] = [
                {"function": {"name": call.name, "arguments": dict(call.arguments)}}
                for call in message.function_calls
            ]
        if message.tool_name:
            entry["tool_name"] = message.tool_name
        ollama_messages.append(entry)
    return ollama_messages


def to_ollama_options(options: InferenceOptions) -> dict[str, Any]:
    ollama_options: dict[str, Any] = {
        "num_predict": options.max_tokens,
        "temperature": options.temperature,
        "top_p": options.top_p,
        "top_k": options.top_k,
    }
    if options.stop_sequences:
        ollama_options["stop"] = list(options.stop_sequences)
    return ollama_options


def parse_tool_call(tool_call: Any) -> RawFunctionCall:
    """Parse one ``tool_calls`` item from an Ollama chunk.

    Arguments may arrive as a mapping or as a JSON-encoded string.
    """
    function = tool_call.get("function", {}) if isinstance(tool_call, dict) else {}
    name = function.get("name", "")
    arguments = function.get("arguments") or {}
    if isinstance(arguments, str):
        arguments = json.loads(arguments) if arguments.strip() else {}
    return RawFunctionCall(name=name, arguments=dict(arguments))


class OllamaChatModel:
    """Chat completions against one Ollama model.

    Each ``complete`` call runs in its own task so that ``stop()`` can cancel
    whatever is in flight. Ollama keeps no conversation state between
    requests, so ``reset()`` has nothing to clear.
    """

    def __init__(self, client: OllamaClient, model_name: str) -> None:
        self.client = client
        self.model_name = model_name
        self._tasks: set[asyncio.Task] = set()

    async def complete(
        self,
        messages: Sequence[Message],
        *,
        options: InferenceOptions,
        functions: Sequence[FunctionDefinition],
        on_token: TokenCallback | None = None,
    ) -> ModelCompletion:
        task = asyncio.ensure_future(
            self._complete(messages, options, functions, on_token)
        )
        self._tasks.add(task)
        try:
            return await task
        finally:
            self._tasks.discard(task)

    async def _complete(
        self,
        messages: Sequence[Message],
        options: InferenceOptions,
        functions: Sequence[FunctionDefinition],
        on_token: TokenCallback | None,
    ) -> ModelCompletion:
        ollama_messages = to_ollama_messages(messages)
        tools = [definition.to_ollama_tool() for definition in functions]
        if options.force_functions and tools:
            ollama_messages.append(
                {"role": "system", "content": FORCE_FUNCTIONS_INSTRUCTION}
            )

        content_parts: list[str] = []
        function_calls: list[RawFunctionCall] = []
        final_chunk: dict[str, Any] | None = None
        token_index = 0
        started = time.perf_counter()
        first_token_at: float | None = None

        async for chunk in self.client.chat_stream(
            model=self.model_name,
            messages=ollama_messages,
            tools=tools or None,
            options=to_ollama_options(options),
        ):
            message = chunk.get("message") or {}
            content = message.get("content") or ""
            if content:
                if first_token_at is None:
                    first_token_at = time.perf_counter()
                content_parts.append(content)
                if on_token is not None:
                    await on_token(
                        StreamedToken(generation_id="", text=content, index=token_index)
                    )
                token_index += 1

            for tool_call in message.get("tool_calls") or []:
                function_calls.append(parse_tool_call(tool_call))

            if chunk.get("done"):
                final_chunk = chunk
                break

        if final_chunk is None:
            raise IncompleteResponseError(
                f"Stream from model {self.model_name} ended without completion"
            )

        finished = time.perf_counter()
        prompt_tokens = final_chunk.get("prompt_eval_count") or 0
        completion_tokens = final_chunk.get("eval_count") or 0
        metrics = CompletionMetrics(
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            total_tokens=prompt_tokens + completion_tokens,
            time_to_first_token=(first_token_at or finished) - started,
            total_duration=finished - started,
        )
        logger.debug(
            f"Completion from {self.model_name}: {completion_tokens} tokens, "
            f"{len(function_calls)} tool call(s)"
        )
        return ModelCompletion(
            text="".join(content_parts),
            function_calls=tuple(function_calls),
            metrics=metrics,
        )

    async def stop(self) -> None:
        for task in list(self._tasks):
            task.cancel()
        if self._tasks:
            logger.info(f"Cancelled {len(self._tasks)} in-flight completion(s)")

    async def reset(self) -> None:
        logger.debug(f"Reset requested for model {self.model_name}")
