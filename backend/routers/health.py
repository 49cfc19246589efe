import logging

from fastapi import APIRouter, Depends
from backend.models.schemas import HealthResponse
from backend.services.chat_logger import ChatLogger
from backend.dependencies import get_chat_logger

logger = logging.getLogger(__name__)
router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health_check(chat_logger: ChatLogger = Depends(get_chat_logger)):
    """Return service health.  If the store isn't ready yet (e.g. during
    container startup before lifespan runs), return a 200 with
    status="starting" so container healthchecks don't fail."""
    try:
        event_count = await chat_logger.count("usage_event")
        chat_count = await chat_logger.count("chat")
        return HealthResponse(
            status="healthy",
            usage_event_count=event_count,
            chat_count=chat_count,
        )
    except Exception as exc:
        logger.warning("Health check: store not ready yet (%s)", exc)
        return HealthResponse(status="starting")
