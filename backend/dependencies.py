import logging
from functools import lru_cache

from fastapi import HTTPException, Request

from backend.config import get_settings
from backend.services.chat_logger import ChatLogger
from backend.services.identity import AuthError, ClientPrincipal, require_role
from backend.services.model_registry import ModelConfigError, ModelRegistry

logger = logging.getLogger(__name__)


@lru_cache
def load_model_registry() -> ModelRegistry:
    return ModelRegistry.from_settings(get_settings())


def get_model_registry() -> ModelRegistry:
    try:
        return load_model_registry()
    except ModelConfigError as exc:
        logger.error("Model registry unavailable: %s", exc)
        raise HTTPException(status_code=500, detail="Internal Server Error")


def get_chat_logger() -> ChatLogger:
    return ChatLogger()


def get_cost_calculator():
    from backend.services.cost_calculator import CostCalculator
    settings = get_settings()
    try:
        registry = load_model_registry()
    except ModelConfigError as exc:
        # Pricing still works from the id and alias alone.
        logger.warning("Pricing without model registry: %s", exc)
        registry = None
    return CostCalculator.from_settings(settings, registry)


def get_usage_aggregator():
    from backend.services.usage_aggregator import UsageAggregator
    return UsageAggregator()


def require_admin(request: Request) -> ClientPrincipal:
    try:
        return require_role(request.headers, "admin")
    except AuthError as exc:
        raise HTTPException(status_code=exc.status_code, detail=str(exc))
