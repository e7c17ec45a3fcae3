"""Tool registry: discovery and lookup of agent functions.

Tools are plain Python modules placed in the tools directory. Every
module-level AgentFunction (usually created with ``@agent_function``) is
registered under its name. Modules whose name starts with an underscore are
skipped.
"""

import importlib.util
import logging
import sys
from pathlib import Path
from types import ModuleType
from typing import Iterable

from toolchat_server.agent.functions import AgentFunction, FunctionDefinition

logger = logging.getLogger(__name__)


class UnknownToolError(KeyError):
    """A requested tool name is not registered."""

    def __init__(self, names: Iterable[str]) -> None:
        self.names = sorted(names)
        super().__init__(f"Unknown tool(s): {', '.join(self.names)}")


class ToolRegistry:
    """Holds the AgentFunctions available to sessions.

    Usage:
        registry = ToolRegistry()
        registry.discover(Path("tools"))
        functions = registry.select(["get_weather", "add"])
    """

    def __init__(self, functions: Iterable[AgentFunction] = ()) -> None:
        self._functions: dict[str, AgentFunction] = {}
        for function in functions:
            self.register(function)

    def __len__(self) -> int:
        return len(self._functions)

    def __contains__(self, name: object) -> bool:
        return name in self._functions

    def register(self, function: AgentFunction) -> None:
        """Register a function, replacing any earlier one with the same name."""
        if function.name in self._functions:
            logger.warning(f"Tool '{function.name}' registered twice, replacing")
        self._functions[function.name] = function
        logger.debug(f"Registered tool '{function.name}'")

    def get(self, name: str) -> AgentFunction | None:
        return self._functions.get(name)

    def names(self) -> list[str]:
        return sorted(self._functions)

    def definitions(self) -> list[FunctionDefinition]:
        return [self._functions[name].definition for name in self.names()]

    def select(self, names: Iterable[str]) -> list[AgentFunction]:
        """Look up several tools at once, preserving the requested order.

        Raises:
            UnknownToolError: If any name is not registered
        """
        names = list(names)
        missing = {name for name in names if name not in self._functions}
        if missing:
            raise UnknownToolError(missing)
        return [self._functions[name] for name in names]

    def discover(self, tools_dir: Path) -> list[str]:
        """Load every tool module in ``tools_dir``.

        A module that fails to import is logged and skipped.

        Args:
            tools_dir: Directory to scan for ``*.py`` files

        Returns:
            Names of the tools registered by this call
        """
        if not tools_dir.is_dir():
            logger.info(f"Tools directory {tools_dir} does not exist, no tools loaded")
            return []

        discovered: list[str] = []
        for path in sorted(tools_dir.glob("*.py")):
            if path.stem.startswith("_"):
                continue
            try:
                module = _load_module(path)
            except Exception as e:
                logger.error(f"Error loading tool module '{path.name}': {e}")
                continue

            for value in vars(module).values():
                if isinstance(value, AgentFunction):
                    self.register(value)
                    discovered.append(value.name)

        logger.info(f"Discovered {len(discovered)} tool(s) in {tools_dir}")
        return discovered


def _load_module(path: Path) -> ModuleType:
    spec = importlib.util.spec_from_file_location(f"toolchat_tools.{path.stem}", path)
    if spec is None or spec.loader is None:
        raise ImportError(f"Cannot load module from {path}")
    module = importlib.util.module_from_spec(spec)
    sys.modules[spec.name] = module
    try:
        spec.loader.exec_module(module)
    except BaseException:
        sys.modules.pop(spec.name, None)
        raise
    return module
