"""Configuration module for toolchat-server using pydantic-settings."""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ToolchatSettings(BaseSettings):
    """Main configuration settings for toolchat-server.

    All settings can be overridden via environment variables with the TOOLCHAT_
    prefix. For example, TOOLCHAT_OLLAMA_HOST will override the ollama_host setting.
    """

    # Server
    host: str = "127.0.0.1"
    port: int = 8000

    # Ollama
    ollama_host: str = "http://localhost:11434"

    # Data directories (relative to data_dir)
    data_dir: str = "."
    tools_dir: str = "tools"

    # CORS
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])

    # Logging
    log_level: str = "INFO"

    # Agent sessions
    max_tool_iterations: int = Field(default=10, ge=1)
    stream_buffer_size: int = Field(default=64, ge=1)

    model_config = SettingsConfigDict(env_prefix="TOOLCHAT_")

    @property
    def resolved_tools_dir(self) -> Path:
        """Get the full path to the tools directory."""
        return Path(self.data_dir) / self.tools_dir
