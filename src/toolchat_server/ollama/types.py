"""Type definitions for Ollama integration."""

from dataclasses import dataclass
from typing import Any

DEFAULT_CONTEXT_LENGTH = 2048


def _get(obj: Any, key: str, default: Any = None) -> Any:
    if isinstance(obj, dict):
        return obj.get(key, default)
    return getattr(obj, key, default)


@dataclass
class ModelInfo:
    """Information about an installed Ollama model.

    Attributes:
        name: Full model name (e.g., "qwen3:14b")
        size_mb: Model size in megabytes
        format: Model format (e.g., "gguf")
        family: Model family (e.g., "qwen3")
        parameter_size: Human-readable parameter count (e.g., "14.8B")
        quantization_level: Quantization level (e.g., "Q4_K_M")
        capabilities: Model capabilities (e.g., ["completion", "tools"])
        context_length: Maximum context window size in tokens
    """

    name: str
    size_mb: float
    format: str
    family: str
    parameter_size: str
    quantization_level: str
    capabilities: list[str]
    context_length: int

    @property
    def supports_completion(self) -> bool:
        return "completion" in self.capabilities

    @property
    def supports_tools(self) -> bool:
        return "tools" in self.capabilities

    @staticmethod
    def from_ollama_model(model_data: Any, list_model: Any = None) -> "ModelInfo":
        """Build a ModelInfo from Ollama API responses.

        Args:
            model_data: The ``show`` response for the model
            list_model: The model's entry from the ``list`` response, which
                carries the name and size
        """
        source = list_model if list_model is not None else model_data
        name = _get(source, "model") or _get(source, "name") or "unknown"

        size = _get(source, "size", 0) or 0
        size_bytes = int(size) if hasattr(size, "__int__") else 0
        size_mb = round(size_bytes / (1024 * 1024), 1) if size_bytes > 0 else 0.0

        details = _get(model_data, "details", {}) or {}
        family = _get(details, "family", "unknown")

        # Capabilities default to completion for older Ollama versions.
        capabilities = list(_get(model_data, "capabilities", None) or ["completion"])

        return ModelInfo(
            name=name,
            size_mb=size_mb,
            format=_get(details, "format", "unknown"),
            family=family,
            parameter_size=_get(details, "parameter_size", "unknown"),
            quantization_level=_get(details, "quantization_level", "unknown"),
            capabilities=capabilities,
            context_length=_context_length(_get(model_data, "modelinfo", {}), family),
        )


def _context_length(modelinfo: Any, family: str) -> int:
    """Find the context length, preferring the family-specific key."""
    if not isinstance(modelinfo, dict):
        return DEFAULT_CONTEXT_LENGTH
    for key in (f"{family}.context_length", "context_length"):
        if key in modelinfo:
            return int(modelinfo[key])
    return DEFAULT_CONTEXT_LENGTH
