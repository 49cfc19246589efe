import asyncio
import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Query
from typing import Optional

from backend.config import Settings, get_settings
from backend.dependencies import get_chat_logger, get_usage_aggregator, require_admin
from backend.models.database_models import ChatDocument
from backend.services.chat_logger import ChatLogger
from backend.services.dashboard_range import parse_dashboard_range
from backend.services.topic_extractor import compute_topics, to_iso
from backend.services.usage_aggregator import UsageAggregator

logger = logging.getLogger(__name__)
router = APIRouter(
    prefix="/dashboard",
    tags=["dashboard"],
    dependencies=[Depends(require_admin)],
)

ANSWER_SNIPPET_CHARS = 500


def _internal_error(endpoint: str, exc: Exception) -> HTTPException:
    logger.warning("[dashboard/%s] Failed: %s", endpoint, exc, exc_info=True)
    return HTTPException(status_code=500, detail="Internal Server Error")


@router.get("/usage")
async def get_usage(
    range: Optional[str] = Query(default=None),
    chat_logger: ChatLogger = Depends(get_chat_logger),
    aggregator: UsageAggregator = Depends(get_usage_aggregator),
    settings: Settings = Depends(get_settings),
):
    """Usage roll-ups over the most recent events in the selected range.

    Totals, days, models and users are all computed from the same bounded
    slice of events; per-user all-time numbers come from the summaries.
    """
    range_info = parse_dashboard_range(range)
    try:
        summaries, events = await asyncio.gather(
            chat_logger.fetch_recent(
                "usage_summary", limit=settings.dashboard_summaries_limit
            ),
            chat_logger.fetch_recent(
                "usage_event", since=range_info.start, limit=settings.dashboard_events_limit
            ),
        )
        result = aggregator.aggregate(events, summaries)
    except Exception as exc:
        raise _internal_error("usage", exc)

    data = result.to_dict()
    return {
        "range": range_info.range,
        "summaries": data["summaries"],
        "events": [e.to_dict() for e in events],
        "totals": data["totals"],
        "by_day": data["by_day"],
        "by_model": data["by_model"],
        "top_users": data["by_user"],
    }


@router.get("/topics")
async def get_topics(
    range: Optional[str] = Query(default=None),
    chat_logger: ChatLogger = Depends(get_chat_logger),
    settings: Settings = Depends(get_settings),
):
    range_info = parse_dashboard_range(range)
    try:
        docs = await chat_logger.fetch_recent(
            "chat", since=range_info.start, limit=settings.dashboard_topics_limit
        )
        topics = compute_topics(docs)
    except Exception as exc:
        raise _internal_error("topics", exc)

    return {
        "range": range_info.range,
        "topics": [t.to_dict() for t in topics],
    }


def to_dashboard_item(doc: ChatDocument) -> dict | None:
    if not doc.id:
        return None

    user = doc.first_turn("user")
    llm = doc.first_turn("llm")
    user_info = user.info if user else {}
    llm_info = llm.info if llm else {}

    def _str(info: dict, key: str):
        value = info.get(key)
        return value if isinstance(value, str) else None

    created_at = (
        to_iso(doc.ts) if doc.ts else to_iso(datetime.now(timezone.utc).timestamp())
    )
    return {
        "id": doc.id,
        "created_at": created_at,
        "user_name": _str(user_info, "userName"),
        "user_id": _str(user_info, "userId"),
        "identity_provider": _str(user_info, "identityProvider"),
        "model_id": _str(llm_info, "id"),
        "model_name": _str(llm_info, "name"),
        "question": user.message if user else "",
        "answer_snippet": (llm.message if llm else "")[:ANSWER_SNIPPET_CHARS],
    }


@router.get("/chats")
async def get_chats(
    range: Optional[str] = Query(default=None),
    chat_logger: ChatLogger = Depends(get_chat_logger),
    settings: Settings = Depends(get_settings),
):
    range_info = parse_dashboard_range(range)
    try:
        docs = await chat_logger.fetch_recent(
            "chat", since=range_info.start, limit=settings.dashboard_chats_limit
        )
    except Exception as exc:
        raise _internal_error("chats", exc)

    items = (to_dashboard_item(doc) for doc in docs)
    return {"chats": [item for item in items if item]}
