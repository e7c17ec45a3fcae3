"""Ollama integration: host client and chat model backend."""

from toolchat_server.ollama.client import OllamaClient
from toolchat_server.ollama.model import IncompleteResponseError, OllamaChatModel
from toolchat_server.ollama.types import ModelInfo

__all__ = ["IncompleteResponseError", "ModelInfo", "OllamaChatModel", "OllamaClient"]
