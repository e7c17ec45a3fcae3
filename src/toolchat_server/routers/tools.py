"""Tools router listing the registered agent functions."""

from typing import Annotated

from fastapi import APIRouter, Depends

from toolchat_server.dependencies import get_tool_registry
from toolchat_server.models.tools import ToolListResponse, ToolResponse
from toolchat_server.tools import ToolRegistry

router = APIRouter(prefix="/api/v1", tags=["tools"])


@router.get("/tools", response_model=ToolListResponse)
async def list_tools(
    registry: Annotated[ToolRegistry, Depends(get_tool_registry)],
) -> ToolListResponse:
    """List every registered tool with its argument schema, sorted by name."""
    return ToolListResponse(
        tools=[
            ToolResponse(
                name=definition.name,
                description=definition.description,
                parameters=definition.parameters,
            )
            for definition in registry.definitions()
        ]
    )
