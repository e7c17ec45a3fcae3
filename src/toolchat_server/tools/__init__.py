"""Tool discovery and registration.

This package discovers Python modules in the tools directory and exposes the
AgentFunctions they define to chat sessions.
"""

from toolchat_server.tools.registry import ToolRegistry, UnknownToolError

__all__ = ["ToolRegistry", "UnknownToolError"]
