"""Models router for listing and retrieving Ollama model information."""

import logging
from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException, status

from toolchat_server.dependencies import get_ollama_client
from toolchat_server.models.models import ModelDetail, ModelListResponse
from toolchat_server.ollama import OllamaClient
from toolchat_server.routers.errors import api_error

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["models"])


def _ollama_unavailable(e: Exception) -> HTTPException:
    return api_error(
        status.HTTP_502_BAD_GATEWAY,
        "ollama_error",
        f"Failed to communicate with Ollama: {e}",
    )


@router.get("/models", response_model=ModelListResponse)
async def list_models(
    ollama_client: OllamaClient = Depends(get_ollama_client),
) -> ModelListResponse:
    """List all completion-capable Ollama models.

    Raises:
        HTTPException: 502 if the Ollama API request fails.
    """
    try:
        model_infos = await ollama_client.list_models()
    except Exception as e:
        logger.error(f"Failed to list models: {e}")
        raise _ollama_unavailable(e)

    logger.info(f"Listed {len(model_infos)} models")
    return ModelListResponse(
        models=[ModelDetail.model_validate(asdict(info)) for info in model_infos]
    )


@router.get("/models/{model_name:path}", response_model=ModelDetail)
async def get_model_detail(
    model_name: str,
    ollama_client: OllamaClient = Depends(get_ollama_client),
) -> ModelDetail:
    """Get detailed information about a specific model.

    Args:
        model_name: The name of the model to query (e.g., "qwen3:14b").

    Raises:
        HTTPException: 404 if model not found, 502 if Ollama API fails.
    """
    try:
        model_info = await ollama_client.get_model_info(model_name)
    except Exception as e:
        logger.error(f"Failed to get model details for {model_name}: {e}")
        raise _ollama_unavailable(e)

    if model_info is None:
        logger.info(f"Model not found: {model_name}")
        raise api_error(
            status.HTTP_404_NOT_FOUND,
            "model_not_found",
            f"Model '{model_name}' not found",
            {"model": model_name},
        )

    return ModelDetail.model_validate(asdict(model_info))
