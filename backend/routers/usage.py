import logging

from fastapi import APIRouter, Depends, Request

from backend.models.database_models import ChatDocument, ChatTurn, UsageEvent
from backend.models.schemas import ChatLogCreate, UsageEventCreate
from backend.services.chat_logger import ChatLogger
from backend.services.identity import parse_identity_info
from backend.dependencies import get_chat_logger

logger = logging.getLogger(__name__)
router = APIRouter(tags=["usage"])


@router.post("/usage/events")
async def record_usage_event(
    body: UsageEventCreate,
    request: Request,
    chat_logger: ChatLogger = Depends(get_chat_logger),
):
    """Store one assistant reply's usage and update the sender's summary."""
    identity = parse_identity_info(request.headers)
    user_id = (identity.user_id if identity else "") or body.user_id or "anonymous"

    event = await chat_logger.record_usage(
        UsageEvent(
            user_id=user_id,
            conversation_id=body.conversation_id,
            assistant_message_index=body.assistant_message_index,
            model_id=body.model_id,
            pricing_model_id=body.pricing_model_id,
            priced=body.priced,
            input_tokens=body.input_tokens,
            output_tokens=body.output_tokens,
            total_cost_usd=body.total_cost_usd,
        )
    )
    return event.to_dict()


@router.post("/chats")
async def log_chat(
    body: ChatLogCreate,
    chat_logger: ChatLogger = Depends(get_chat_logger),
):
    doc = await chat_logger.log_chat(
        ChatDocument(
            id=body.id,
            ts=body.ts,
            question_answer=[
                ChatTurn(kind=t.who.kind, message=t.message, info=t.who.info)
                for t in body.question_answer
            ],
        )
    )
    return {"status": "ok", "id": doc.id, "ts": doc.ts}
