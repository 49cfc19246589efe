import logging
from datetime import datetime, timezone

from backend.database import get_db
from backend.models.database_models import ChatDocument, UsageEvent, UsageSummary

logger = logging.getLogger(__name__)

_TABLES = {
    "usage_event": "usage_events",
    "usage_summary": "usage_summaries",
    "chat": "chat_logs",
}


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _since_iso(since: datetime) -> str:
    return since.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class ChatLogger:
    """Document store for usage events, per-user summaries and raw chat logs."""

    async def record_usage(self, event: UsageEvent) -> UsageEvent:
        """Append a usage event and fold it into the user's running summary."""
        if not event.created_at:
            event.created_at = utc_now_iso()

        async with get_db() as db:
            await db.execute(
                """INSERT INTO usage_events
                   (user_id, conversation_id, assistant_message_index, model_id,
                    pricing_model_id, priced, input_tokens, output_tokens,
                    total_cost_usd, created_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (event.user_id, event.conversation_id, event.assistant_message_index,
                 event.model_id, event.pricing_model_id, 1 if event.priced else 0,
                 event.input_tokens, event.output_tokens, event.total_cost_usd,
                 event.created_at),
            )
            await db.execute(
                """INSERT INTO usage_summaries
                   (user_id, total_cost_usd, total_input_tokens, total_output_tokens,
                    total_assistant_messages, created_at, updated_at)
                   VALUES (?, ?, ?, ?, 1, ?, ?)
                   ON CONFLICT(user_id) DO UPDATE SET
                   total_cost_usd = total_cost_usd + excluded.total_cost_usd,
                   total_input_tokens = total_input_tokens + excluded.total_input_tokens,
                   total_output_tokens = total_output_tokens + excluded.total_output_tokens,
                   total_assistant_messages = total_assistant_messages + 1,
                   updated_at = excluded.updated_at""",
                (event.user_id, event.total_cost_usd, event.input_tokens,
                 event.output_tokens, event.created_at, event.created_at),
            )
            await db.commit()

        logger.debug(
            "Recorded usage for %s: %s tokens in, %s out, $%.6f",
            event.user_id, event.input_tokens, event.output_tokens, event.total_cost_usd,
        )
        return event

    async def log_chat(self, doc: ChatDocument) -> ChatDocument:
        if doc.ts is None:
            doc.ts = int(datetime.now(timezone.utc).timestamp())
        async with get_db() as db:
            await db.execute(
                """INSERT INTO chat_logs (id, ts, question_answer) VALUES (?, ?, ?)
                   ON CONFLICT(id) DO UPDATE SET
                   ts = excluded.ts, question_answer = excluded.question_answer""",
                (doc.id, doc.ts, doc.turns_json()),
            )
            await db.commit()
        return doc

    async def fetch_recent(
        self, kind: str, since: datetime | None = None, limit: int = 200
    ) -> list:
        """Return the newest ``limit`` records of ``kind``, optionally bounded by ``since``."""
        if kind == "usage_event":
            sql = "SELECT * FROM usage_events"
            params: tuple = ()
            if since is not None:
                sql += " WHERE created_at >= ?"
                params = (_since_iso(since),)
            sql += " ORDER BY created_at DESC, id DESC LIMIT ?"
            factory = UsageEvent.from_record
        elif kind == "usage_summary":
            # Summaries are all-time totals, so the range does not apply.
            sql = "SELECT * FROM usage_summaries ORDER BY total_cost_usd DESC LIMIT ?"
            params = ()
            factory = UsageSummary.from_record
        elif kind == "chat":
            sql = "SELECT * FROM chat_logs"
            params = ()
            if since is not None:
                sql += " WHERE ts >= ?"
                params = (int(since.timestamp()),)
            sql += " ORDER BY ts DESC LIMIT ?"
            factory = ChatDocument.from_record
        else:
            raise ValueError(f"Unknown record kind: {kind}")

        async with get_db() as db:
            cursor = await db.execute(sql, params + (limit,))
            rows = await cursor.fetchall()
        return [factory(dict(row)) for row in rows]

    async def count(self, kind: str) -> int:
        if kind not in _TABLES:
            raise ValueError(f"Unknown record kind: {kind}")
        async with get_db() as db:
            cursor = await db.execute(f"SELECT COUNT(*) FROM {_TABLES[kind]}")
            row = await cursor.fetchone()
            return row[0] if row else 0
