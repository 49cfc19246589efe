"""Keyword topics from the first user question of recent chats."""

import re
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from typing import Iterable, Optional

from backend.models.database_models import ChatDocument

MAX_TOPICS = 50
MAX_SAMPLES_PER_KEYWORD = 5
MIN_KEYWORD_LENGTH = 3

_SPLIT_RE = re.compile(r"[^a-z0-9]+")

STOPWORDS = frozenset({
    "a", "an", "and", "are", "as", "at", "be", "but", "by", "can", "could",
    "did", "do", "does", "for", "from", "have", "has", "had", "how", "i",
    "if", "in", "into", "is", "it", "its", "just", "me", "my", "of", "on",
    "or", "our", "please", "show", "so", "that", "the", "their", "then",
    "there", "these", "this", "to", "up", "us", "was", "we", "what", "when",
    "where", "which", "why", "will", "with", "you", "your",
})


@dataclass
class TopicRow:
    keyword: str
    count: int
    last_seen_at: str
    sample_question: Optional[str] = None
    sample_chat_id: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class _Sample:
    chat_id: str
    ts: int
    question: str


@dataclass
class _KeywordStats:
    count: int = 0
    last_ts: int = 0
    samples: list[_Sample] = field(default_factory=list)


def extract_user_question(doc: ChatDocument) -> str:
    turn = doc.first_turn("user")
    return turn.message.strip() if turn else ""


def extract_keywords(text: str) -> list[str]:
    """Lowercased content words of ``text``, each listed once, in order of first use."""
    keywords = []
    for part in _SPLIT_RE.split(text.lower()):
        if len(part) < MIN_KEYWORD_LENGTH:
            continue
        if part in STOPWORDS or part.isdigit():
            continue
        keywords.append(part)
    return list(dict.fromkeys(keywords))


def to_iso(ts_seconds: float) -> str:
    dt = datetime.fromtimestamp(ts_seconds, tz=timezone.utc)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def compute_topics(
    docs: Iterable[ChatDocument], now: Optional[datetime] = None
) -> list[TopicRow]:
    stats: dict[str, _KeywordStats] = {}

    for doc in docs:
        question = extract_user_question(doc)
        if not question:
            continue
        ts = doc.ts or 0

        for keyword in extract_keywords(question):
            entry = stats.setdefault(keyword, _KeywordStats())
            entry.count += 1
            if ts > entry.last_ts:
                entry.last_ts = ts

            if any(s.chat_id == doc.id for s in entry.samples):
                continue
            entry.samples.append(_Sample(chat_id=doc.id, ts=ts, question=question))
            entry.samples.sort(key=lambda s: s.ts, reverse=True)
            del entry.samples[MAX_SAMPLES_PER_KEYWORD:]

    # TODO: undated keywords report "now" as last_seen_at; return None instead
    # once the dashboard can render a missing timestamp.
    fallback = to_iso((now or datetime.now(timezone.utc)).timestamp())

    ranked = sorted(stats.items(), key=lambda item: item[1].count, reverse=True)
    used_chat_ids: set[str] = set()
    rows = []
    for keyword, entry in ranked[:MAX_TOPICS]:
        sample = next(
            (s for s in entry.samples if s.chat_id not in used_chat_ids),
            entry.samples[0] if entry.samples else None,
        )
        if sample and sample.chat_id:
            used_chat_ids.add(sample.chat_id)

        rows.append(
            TopicRow(
                keyword=keyword,
                count=entry.count,
                last_seen_at=to_iso(entry.last_ts) if entry.last_ts else fallback,
                sample_question=sample.question if sample else None,
                sample_chat_id=sample.chat_id if sample else None,
            )
        )
    return rows
