from fastapi import APIRouter, Depends

from backend.models.schemas import ModelListResponse
from backend.services.model_registry import ModelRegistry
from backend.dependencies import get_model_registry

router = APIRouter(prefix="/models", tags=["models"])


@router.get("", response_model=ModelListResponse)
async def list_models(registry: ModelRegistry = Depends(get_model_registry)):
    """Public view of the registry; endpoints and API keys stay server-side."""
    return ModelListResponse(
        models=registry.public_models(),
        default_model_id=registry.default_model_id(),
    )
