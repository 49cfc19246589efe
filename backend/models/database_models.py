import json
from dataclasses import dataclass, field, asdict
from typing import Optional


@dataclass
class UsageEvent:
    """One priced (or unpriced) assistant reply. Never mutated after insert."""
    user_id: str
    conversation_id: str
    assistant_message_index: int
    model_id: Optional[str] = None
    pricing_model_id: Optional[str] = None
    priced: bool = False
    input_tokens: int = 0
    output_tokens: int = 0
    total_cost_usd: float = 0.0
    created_at: Optional[str] = None

    @classmethod
    def from_record(cls, record: dict) -> "UsageEvent":
        return cls(
            user_id=record.get("user_id"),
            conversation_id=record.get("conversation_id"),
            assistant_message_index=record.get("assistant_message_index") or 0,
            model_id=record.get("model_id"),
            pricing_model_id=record.get("pricing_model_id"),
            priced=bool(record.get("priced")),
            input_tokens=record.get("input_tokens") or 0,
            output_tokens=record.get("output_tokens") or 0,
            total_cost_usd=record.get("total_cost_usd") or 0.0,
            created_at=record.get("created_at"),
        )

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class UsageSummary:
    user_id: str
    total_cost_usd: float = 0.0
    total_input_tokens: int = 0
    total_output_tokens: int = 0
    total_assistant_messages: int = 0
    created_at: str = ""
    updated_at: str = ""

    @classmethod
    def from_record(cls, record: dict) -> "UsageSummary":
        return cls(**{k: record[k] for k in cls.__dataclass_fields__ if k in record})

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class ChatTurn:
    kind: str  # "user" or "llm"
    message: str = ""
    info: dict = field(default_factory=dict)


@dataclass
class ChatDocument:
    id: str
    ts: Optional[int] = None  # epoch seconds
    question_answer: list[ChatTurn] = field(default_factory=list)

    @classmethod
    def from_record(cls, record: dict) -> "ChatDocument":
        raw_turns = record.get("question_answer") or []
        if isinstance(raw_turns, str):
            raw_turns = json.loads(raw_turns)
        turns = []
        for raw in raw_turns:
            if not isinstance(raw, dict):
                continue
            who = raw.get("who") or {}
            message = raw.get("message")
            turns.append(
                ChatTurn(
                    kind=who.get("kind", ""),
                    message=message if isinstance(message, str) else "",
                    info=who.get("info") or {},
                )
            )
        ts = record.get("ts")
        return cls(
            id=record.get("id"),
            ts=ts if isinstance(ts, int) and not isinstance(ts, bool) else None,
            question_answer=turns,
        )

    def first_turn(self, kind: str) -> Optional[ChatTurn]:
        return next((t for t in self.question_answer if t.kind == kind), None)

    def turns_json(self) -> str:
        return json.dumps(
            [{"who": {"kind": t.kind, "info": t.info}, "message": t.message}
             for t in self.question_answer]
        )
