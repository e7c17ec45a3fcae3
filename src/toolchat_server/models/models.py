"""Pydantic models for the /api/v1/models endpoints."""

from pydantic import BaseModel, ConfigDict, Field


class ModelDetail(BaseModel):
    """Detailed information about a single model."""

    name: str = Field(..., description="Full model name")
    size_mb: float = Field(..., description="Model size in megabytes")
    format: str = Field(..., description="Model format (e.g., 'gguf')")
    family: str = Field(..., description="Model family name")
    parameter_size: str = Field(..., description="Human-readable parameter count")
    quantization_level: str = Field(..., description="Quantization level")
    capabilities: list[str] = Field(
        ..., description="List of model capabilities (e.g., ['completion', 'tools'])"
    )
    context_length: int = Field(
        ..., description="Maximum context window size in tokens"
    )

    model_config = ConfigDict(from_attributes=True)


class ModelListResponse(BaseModel):
    """Response model for listing all available models."""

    models: list[ModelDetail] = Field(..., description="List of available models")
