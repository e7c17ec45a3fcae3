"""Unit tests for the FastAPI app factory, configuration and CLI."""

from fastapi import FastAPI

from toolchat_server import __version__, create_app
from toolchat_server.__main__ import build_parser, settings_from_args
from toolchat_server.config import ToolchatSettings


def test_create_app_with_settings(test_settings):
    """Test that create_app accepts custom settings."""
    app = create_app(settings=test_settings)

    assert isinstance(app, FastAPI)
    assert app.state.settings is test_settings


def test_create_app_metadata(test_settings):
    """Test that app has correct metadata."""
    app = create_app(settings=test_settings)

    assert app.title == "toolchat-server"
    assert app.version == __version__ == "0.1.0"
    assert "Headless FastAPI server" in app.description


def test_create_app_registers_routes(test_settings):
    """Test that every router is registered."""
    app = create_app(settings=test_settings)

    routes = {route.path for route in app.routes}  # type: ignore[attr-defined]
    assert {
        "/api/v1/health",
        "/api/v1/models",
        "/api/v1/tools",
        "/api/v1/sessions",
        "/api/v1/sessions/{session_id}",
        "/api/v1/sessions/{session_id}/messages",
        "/api/v1/chat/{session_id}",
        "/api/v1/chat/{session_id}/stream",
        "/api/v1/chat/{session_id}/stop",
        "/api/v1/chat/{session_id}/reset",
    } <= routes


def test_create_app_has_cors_middleware(test_settings):
    """Test that CORS middleware is configured."""
    app = create_app(settings=test_settings)

    middleware_classes = [m.cls.__name__ for m in app.user_middleware]  # type: ignore[attr-defined]
    assert "CORSMiddleware" in middleware_classes


def test_settings_default_values(monkeypatch):
    """Test that settings have correct default values."""
    for name in ("TOOLCHAT_PORT", "TOOLCHAT_HOST", "TOOLCHAT_DATA_DIR"):
        monkeypatch.delenv(name, raising=False)

    settings = ToolchatSettings()

    assert settings.host == "127.0.0.1"
    assert settings.port == 8000
    assert settings.ollama_host == "http://localhost:11434"
    assert settings.data_dir == "."
    assert settings.log_level == "INFO"
    assert settings.max_tool_iterations == 10
    assert settings.stream_buffer_size == 64


def test_settings_env_prefix(monkeypatch):
    """Test that settings respect the TOOLCHAT_ environment variable prefix."""
    monkeypatch.setenv("TOOLCHAT_PORT", "9000")
    monkeypatch.setenv("TOOLCHAT_OLLAMA_HOST", "http://custom:11434")
    monkeypatch.setenv("TOOLCHAT_MAX_TOOL_ITERATIONS", "3")

    settings = ToolchatSettings()

    assert settings.port == 9000
    assert settings.ollama_host == "http://custom:11434"
    assert settings.max_tool_iterations == 3


def test_settings_resolved_tools_dir(tmp_path):
    """Test the tools directory resolves relative to the data directory."""
    settings = ToolchatSettings(data_dir=str(tmp_path), tools_dir="my_tools")

    assert settings.resolved_tools_dir == tmp_path / "my_tools"


def test_cli_args_override_settings(monkeypatch):
    """Test CLI flags take precedence over environment variables."""
    monkeypatch.setenv("TOOLCHAT_PORT", "9000")
    args = build_parser().parse_args(
        ["--port", "9100", "--tools-dir", "plugins", "--log-level", "DEBUG"]
    )

    settings = settings_from_args(args)

    assert settings.port == 9100
    assert settings.tools_dir == "plugins"
    assert settings.log_level == "DEBUG"
