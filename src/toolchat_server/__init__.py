"""toolchat-server: Headless FastAPI server for tool-calling LLM conversations.

This package provides agent sessions that drive a tool-augmented language
model (parallel function calls, token streaming, cancellation) and serves
them over a REST and SSE interface backed by Ollama.
"""

from toolchat_server.app import create_app

__version__ = "0.1.0"

__all__ = ["create_app", "__version__"]
