"""CLI entry point for toolchat-server.

This module provides the command-line interface for starting the server.
It can be invoked as `toolchat-server` (via the script entry point) or
`python -m toolchat_server`.
"""

import argparse
import logging
import sys

import uvicorn

from toolchat_server import __version__, create_app
from toolchat_server.config import ToolchatSettings


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="toolchat-server",
        description="Headless FastAPI server for tool-calling LLM conversations via Ollama",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"toolchat-server {__version__}",
    )
    parser.add_argument(
        "--host",
        type=str,
        default=None,
        help="Host to bind the server to (default: 127.0.0.1, can be set via TOOLCHAT_HOST)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Port to bind the server to (default: 8000, can be set via TOOLCHAT_PORT)",
    )
    parser.add_argument(
        "--ollama-host",
        type=str,
        default=None,
        help="Ollama server URL (default: http://localhost:11434, can be set via TOOLCHAT_OLLAMA_HOST)",
    )
    parser.add_argument(
        "--data-dir",
        type=str,
        default=None,
        help="Base directory for all data (default: ., can be set via TOOLCHAT_DATA_DIR)",
    )
    parser.add_argument(
        "--tools-dir",
        type=str,
        default=None,
        help="Tool modules directory, relative to the data dir (default: tools, can be set via TOOLCHAT_TOOLS_DIR)",
    )
    parser.add_argument(
        "--max-tool-iterations",
        type=int,
        default=None,
        help="Maximum model completions per chat turn (default: 10, can be set via TOOLCHAT_MAX_TOOL_ITERATIONS)",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level (default: INFO, can be set via TOOLCHAT_LOG_LEVEL)",
    )
    return parser


def settings_from_args(args: argparse.Namespace) -> ToolchatSettings:
    """Build settings; CLI args override environment variables."""
    settings_kwargs = {
        name: value
        for name, value in (
            ("host", args.host),
            ("port", args.port),
            ("ollama_host", args.ollama_host),
            ("data_dir", args.data_dir),
            ("tools_dir", args.tools_dir),
            ("max_tool_iterations", args.max_tool_iterations),
            ("log_level", args.log_level),
        )
        if value is not None
    }
    return ToolchatSettings(**settings_kwargs)


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the toolchat-server CLI.

    Parses command-line arguments and starts the uvicorn server with the
    FastAPI application.
    """
    args = build_parser().parse_args(argv)
    settings = settings_from_args(args)

    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = create_app(settings=settings)

    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    sys.exit(main())
