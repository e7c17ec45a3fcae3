"""Async Ollama client wrapper.

This module wraps ollama.AsyncClient with the host-level operations the
server needs: connectivity checks, model discovery, and streaming chat
requests. The client is created once at startup and shared by all sessions.
"""

import logging
from typing import Any, AsyncIterator

import ollama

from toolchat_server.ollama.types import ModelInfo

logger = logging.getLogger(__name__)


def _get(obj: Any, key: str, default: Any = None) -> Any:
    """Read a field from an ollama response object or a plain dict."""
    if isinstance(obj, dict):
        return obj.get(key, default)
    return getattr(obj, key, default)


def _model_name(list_entry: Any) -> str | None:
    return _get(list_entry, "model") or _get(list_entry, "name")


def _to_dict(chunk: Any) -> dict[str, Any]:
    if hasattr(chunk, "model_dump"):
        return chunk.model_dump()
    if isinstance(chunk, dict):
        return chunk
    return vars(chunk)


class OllamaClient:
    """Async client for the Ollama API.

    Attributes:
        host: The Ollama server URL (e.g., "http://localhost:11434")
        _client: The underlying ollama.AsyncClient instance
    """

    def __init__(self, host: str) -> None:
        """Initialize the Ollama client.

        Args:
            host: The Ollama server URL
        """
        self.host = host
        self._client = ollama.AsyncClient(host=host)
        logger.info(f"OllamaClient initialized with host: {host}")

    async def check_connection(self) -> bool:
        """Check if the Ollama server is reachable.

        Returns:
            bool: True if connection is successful, False otherwise
        """
        try:
            await self._client.list()
            logger.debug("Ollama connection check: successful")
            return True
        except Exception as e:
            logger.warning(f"Ollama connection check failed: {e}")
            return False

    async def _list_entries(self) -> list[Any]:
        response = await self._client.list()
        return list(_get(response, "models", []) or [])

    async def list_models(self) -> list[ModelInfo]:
        """List all models that support completion.

        Embedding-only models are filtered out. A model whose details cannot
        be fetched is skipped with a warning.

        Raises:
            Exception: If the Ollama list request fails
        """
        try:
            entries = await self._list_entries()
        except Exception as e:
            logger.error(f"Failed to list models: {e}")
            raise

        logger.debug(f"Retrieved {len(entries)} models from Ollama")

        model_infos: list[ModelInfo] = []
        for entry in entries:
            name = _model_name(entry)
            if not name:
                continue
            try:
                show_response = await self._client.show(name)
            except Exception as e:
                logger.warning(f"Failed to get details for model {name}: {e}")
                continue

            model_info = ModelInfo.from_ollama_model(show_response, list_model=entry)
            if model_info.supports_completion:
                model_infos.append(model_info)
            else:
                logger.debug(f"Skipped non-completion model: {name}")

        logger.info(f"Listed {len(model_infos)} completion-capable models")
        return model_infos

    async def get_model_info(self, model_name: str) -> ModelInfo | None:
        """Get detailed information about a specific model.

        Returns:
            ModelInfo | None: Model information, or None if the model is not installed

        Raises:
            Exception: If the Ollama API request fails (except for 404)
        """
        try:
            entry = next(
                (e for e in await self._list_entries() if _model_name(e) == model_name),
                None,
            )
            if entry is None:
                logger.debug(f"Model not found in list: {model_name}")
                return None

            show_response = await self._client.show(model_name)
            return ModelInfo.from_ollama_model(show_response, list_model=entry)

        except ollama.ResponseError as e:
            if e.status_code == 404:
                logger.debug(f"Model not found: {model_name}")
                return None
            logger.error(f"Ollama API error for model {model_name}: {e}")
            raise
        except Exception as e:
            logger.error(f"Failed to get model info for {model_name}: {e}")
            raise

    async def chat_stream(
        self,
        model: str,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None = None,
        options: dict[str, Any] | None = None,
    ) -> AsyncIterator[dict[str, Any]]:
        """Stream chat response chunks from Ollama.

        Args:
            model: The model name to use for the chat
            messages: Messages in Ollama format
            tools: Tool definitions in Ollama format, if any
            options: Optional model parameters (temperature, num_predict, ...)

        Yields:
            dict: Response chunks. Each has a ``message`` with ``content`` and,
                  when the model calls tools, ``tool_calls``. The final chunk
                  has ``done=True`` plus ``eval_count``/``prompt_eval_count``.

        Raises:
            Exception: If the Ollama API request fails
        """
        try:
            logger.debug(
                f"Starting chat stream with model {model}: "
                f"{len(messages)} messages, {len(tools or [])} tools"
            )
            async for chunk in await self._client.chat(
                model=model,
                messages=messages,
                tools=tools,
                stream=True,
                options=options,
            ):
                chunk_dict = _to_dict(chunk)
                logger.debug(f"Received chunk: done={chunk_dict.get('done')}")
                yield chunk_dict

            logger.debug("Chat stream completed")

        except Exception as e:
            logger.error(f"Chat stream failed: {e}")
            raise

    async def close(self) -> None:
        """Release client resources.

        ollama.AsyncClient manages its httpx client internally, so there is
        nothing to close explicitly.
        """
        logger.debug("OllamaClient closed")
