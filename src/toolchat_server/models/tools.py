"""Pydantic models for the /api/v1/tools endpoint."""

from typing import Any

from pydantic import BaseModel, Field


class ToolResponse(BaseModel):
    """A registered tool and its argument schema."""

    name: str = Field(..., description="Tool name the model calls it by")
    description: str = Field("", description="What the tool does")
    parameters: dict[str, Any] = Field(
        default_factory=dict, description="JSON schema of the tool arguments"
    )


class ToolListResponse(BaseModel):
    """Response model for listing registered tools."""

    tools: list[ToolResponse]
