"""Pytest configuration for integration tests.

This module provides integration-test-specific fixtures that ensure
proper test isolation and mocking for API endpoint tests.
"""

import textwrap
from unittest.mock import AsyncMock, patch

import pytest

from toolchat_server.ollama import ModelInfo

TOOLS_MODULE = textwrap.dedent(
    '''
    from pydantic import BaseModel

    from toolchat_server.agent import agent_function


    class CityArgs(BaseModel):
        city: str


    @agent_function()
    def get_weather(args: CityArgs) -> str:
        """Get the current weather for a city."""
        return f"Sunny and 21 degrees in {args.city}"


    @agent_function()
    def explode(args: CityArgs) -> str:
        """A tool that always fails."""
        raise RuntimeError(f"cannot reach {args.city}")
    '''
)


@pytest.fixture
def model_info():
    return ModelInfo(
        name="llama3.2:latest",
        size_mb=4445.3,
        format="gguf",
        family="llama",
        parameter_size="3.2B",
        quantization_level="Q4_0",
        capabilities=["completion", "tools"],
        context_length=8192,
    )


@pytest.fixture(autouse=True)
def mock_ollama_client(model_info):
    """Mock OllamaClient for all integration tests.

    This fixture patches the OllamaClient class before the app is created,
    ensuring the lifespan uses our mock instead of creating a real client.
    """
    with patch("toolchat_server.app.OllamaClient") as mock_client_class:
        mock_instance = AsyncMock()
        mock_instance.host = "http://localhost:11434"
        mock_instance.check_connection.return_value = True
        mock_instance.list_models.return_value = [model_info]
        mock_instance.get_model_info.return_value = model_info

        mock_client_class.return_value = mock_instance

        yield mock_instance


@pytest.fixture
def script_chat(mock_ollama_client):
    """Script the chunks returned by successive ``chat_stream`` calls.

    Returns a function taking one chunk list per expected completion. The
    keyword arguments of every call are recorded in ``calls``.
    """
    calls: list[dict] = []

    def install(*streams: list[dict]) -> list[dict]:
        remaining = list(streams)

        async def chat_stream(**kwargs):
            calls.append(kwargs)
            for chunk in remaining.pop(0):
                yield chunk

        mock_ollama_client.chat_stream = chat_stream
        return calls

    return install


@pytest.fixture(autouse=True)
def tools_dir(test_settings):
    """Write a tools module into the data directory before the app starts."""
    path = test_settings.resolved_tools_dir
    path.mkdir(parents=True, exist_ok=True)
    (path / "weather.py").write_text(TOOLS_MODULE)
    return path


@pytest.fixture
def create_session(async_client):
    """Create a session through the API and return its id."""

    async def create(**body) -> str:
        body.setdefault("model", "llama3.2:latest")
        response = await async_client.post("/api/v1/sessions", json=body)
        assert response.status_code == 201, response.text
        return response.json()["session_id"]

    return create
