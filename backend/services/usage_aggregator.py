"""Roll-ups of usage events for the admin dashboard.

Everything here works on the bounded window of events that the caller
already fetched from the store, so totals describe that window and not
all-time history. All-time per-user numbers live in the usage summaries.
"""

import logging
from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import Iterable, Optional

from backend.models.database_models import UsageEvent, UsageSummary

logger = logging.getLogger(__name__)

MAX_DAYS = 60
MAX_MODELS = 50
MAX_USERS = 50


@dataclass
class UsageTotals:
    total_cost_usd: float = 0.0
    input_tokens: int = 0
    output_tokens: int = 0
    assistant_messages: int = 0
    priced_assistant_messages: int = 0


@dataclass
class DayBucket:
    day: str  # YYYY-MM-DD
    total_cost_usd: float = 0.0
    input_tokens: int = 0
    output_tokens: int = 0
    assistant_messages: int = 0


@dataclass
class ModelBucket:
    model: str
    total_cost_usd: float = 0.0
    input_tokens: int = 0
    output_tokens: int = 0
    assistant_messages: int = 0
    priced_assistant_messages: int = 0


@dataclass
class UserBucket:
    user_id: str
    total_cost_usd: float = 0.0
    input_tokens: int = 0
    output_tokens: int = 0
    assistant_messages: int = 0


@dataclass
class UsageAggregate:
    totals: UsageTotals
    by_day: list[DayBucket] = field(default_factory=list)
    by_model: list[ModelBucket] = field(default_factory=list)
    by_user: list[UserBucket] = field(default_factory=list)
    summaries: list[UsageSummary] = field(default_factory=list)

    def to_dict(self) -> dict:
        return asdict(self)


def day_key(created_at) -> Optional[str]:
    """Return the YYYY-MM-DD prefix of a timestamp, or None if it has none."""
    if isinstance(created_at, datetime):
        return created_at.date().isoformat()
    if not isinstance(created_at, str) or len(created_at) < 10:
        return None
    day = created_at[:10]
    try:
        datetime.strptime(day, "%Y-%m-%d")
    except ValueError:
        return None
    return day


def _add(bucket, event: UsageEvent):
    bucket.total_cost_usd += float(event.total_cost_usd or 0)
    bucket.input_tokens += int(event.input_tokens or 0)
    bucket.output_tokens += int(event.output_tokens or 0)
    bucket.assistant_messages += 1


class UsageAggregator:
    def __init__(
        self,
        max_days: int = MAX_DAYS,
        max_models: int = MAX_MODELS,
        max_users: int = MAX_USERS,
    ):
        self._max_days = max_days
        self._max_models = max_models
        self._max_users = max_users

    def aggregate(
        self,
        events: Iterable[UsageEvent],
        summaries: Iterable[UsageSummary] = (),
    ) -> UsageAggregate:
        totals = UsageTotals()
        by_day: dict[str, DayBucket] = {}
        by_model: dict[str, ModelBucket] = {}
        by_user: dict[str, UserBucket] = {}
        skipped_days = 0

        for event in events:
            _add(totals, event)
            if event.priced:
                totals.priced_assistant_messages += 1

            day = day_key(event.created_at)
            if day:
                _add(by_day.setdefault(day, DayBucket(day=day)), event)
            else:
                skipped_days += 1

            model = event.pricing_model_id
            if model is None:
                model = event.model_id if event.model_id is not None else "unknown"
            model = str(model)
            model_bucket = by_model.setdefault(model, ModelBucket(model=model))
            _add(model_bucket, event)
            if event.priced:
                model_bucket.priced_assistant_messages += 1

            user_id = str(event.user_id if event.user_id is not None else "anonymous")
            _add(by_user.setdefault(user_id, UserBucket(user_id=user_id)), event)

        if skipped_days:
            logger.debug("Left %d event(s) without a valid created_at out of by_day", skipped_days)

        return UsageAggregate(
            totals=totals,
            by_day=sorted(by_day.values(), key=lambda b: b.day, reverse=True)[: self._max_days],
            by_model=sorted(
                by_model.values(), key=lambda b: b.total_cost_usd, reverse=True
            )[: self._max_models],
            by_user=sorted(
                by_user.values(), key=lambda b: b.total_cost_usd, reverse=True
            )[: self._max_users],
            summaries=list(summaries),
        )
