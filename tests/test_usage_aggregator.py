from datetime import date, timedelta

import pytest

from backend.models.database_models import UsageEvent, UsageSummary
from backend.services.usage_aggregator import UsageAggregator, day_key


def _event(**overrides) -> UsageEvent:
    data = {
        "user_id": "u1",
        "conversation_id": "c1",
        "assistant_message_index": 1,
        "model_id": "gpt-4o",
        "priced": True,
        "input_tokens": 10,
        "output_tokens": 5,
        "total_cost_usd": 0.01,
        "created_at": "2024-01-01T00:00:00Z",
    }
    data.update(overrides)
    return UsageEvent(**data)


@pytest.fixture
def aggregator():
    return UsageAggregator()


class TestTotals:
    def test_two_event_scenario(self, aggregator):
        events = [
            _event(total_cost_usd=0.02, input_tokens=100, output_tokens=50, priced=True,
                   created_at="2024-01-01T00:00:00Z"),
            _event(total_cost_usd=0, input_tokens=80, output_tokens=0, priced=False,
                   created_at="2024-01-02T00:00:00Z"),
        ]
        result = aggregator.aggregate(events, [])

        assert result.totals.total_cost_usd == 0.02
        assert result.totals.input_tokens == 180
        assert result.totals.output_tokens == 50
        assert result.totals.assistant_messages == 2
        assert result.totals.priced_assistant_messages == 1
        assert [b.day for b in result.by_day] == ["2024-01-02", "2024-01-01"]

    def test_empty_input(self, aggregator):
        result = aggregator.aggregate([], [])
        assert result.totals.total_cost_usd == 0
        assert result.totals.input_tokens == 0
        assert result.totals.output_tokens == 0
        assert result.totals.assistant_messages == 0
        assert result.totals.priced_assistant_messages == 0
        assert result.by_day == []
        assert result.by_model == []
        assert result.by_user == []

    def test_totals_match_plain_sums(self, aggregator):
        costs = [0.1, 0.2, 0.3, 0.0000475, 1e-08, 12.5]
        events = [_event(total_cost_usd=c, input_tokens=i, output_tokens=2 * i)
                  for i, c in enumerate(costs)]
        result = aggregator.aggregate(events)
        assert result.totals.total_cost_usd == sum(e.total_cost_usd for e in events)
        assert result.totals.input_tokens == sum(e.input_tokens for e in events)
        assert result.totals.output_tokens == sum(e.output_tokens for e in events)
        assert result.totals.assistant_messages == len(events)

    def test_summaries_passed_through(self, aggregator):
        summaries = [UsageSummary(user_id="u1", total_cost_usd=3.0)]
        assert aggregator.aggregate([], summaries).summaries == summaries

    def test_no_state_between_calls(self, aggregator):
        events = [_event(), _event(user_id="u2")]
        assert aggregator.aggregate(events) == aggregator.aggregate(events)


class TestByDay:
    def test_bad_timestamps_only_skip_day_view(self, aggregator):
        events = [
            _event(created_at=None),
            _event(created_at="yesterday-ish"),
            _event(created_at="2024-13-45T00:00:00Z"),
            _event(created_at="2024-03-05T10:00:00Z"),
        ]
        result = aggregator.aggregate(events)
        assert result.totals.assistant_messages == 4
        assert [(b.day, b.assistant_messages) for b in result.by_day] == [("2024-03-05", 1)]
        assert sum(b.assistant_messages for b in result.by_user) == 4

    def test_keeps_sixty_most_recent_days(self, aggregator):
        start = date(2024, 1, 1)
        events = [_event(created_at=(start + timedelta(days=i)).isoformat() + "T12:00:00Z")
                  for i in range(75)]
        result = aggregator.aggregate(events)
        assert len(result.by_day) == 60
        assert result.by_day[0].day == (start + timedelta(days=74)).isoformat()
        assert result.by_day[-1].day == (start + timedelta(days=15)).isoformat()

    def test_groups_same_day(self, aggregator):
        events = [
            _event(created_at="2024-01-01T01:00:00Z", total_cost_usd=0.5),
            _event(created_at="2024-01-01T23:00:00Z", total_cost_usd=0.25),
        ]
        (bucket,) = aggregator.aggregate(events).by_day
        assert bucket.total_cost_usd == 0.75
        assert bucket.assistant_messages == 2

    def test_day_key(self):
        assert day_key("2024-02-29T00:00:00Z") == "2024-02-29"
        assert day_key("2023-02-29T00:00:00Z") is None
        assert day_key("") is None
        assert day_key(1704067200) is None


class TestByModel:
    def test_key_prefers_pricing_model_id(self, aggregator):
        events = [
            _event(model_id="claude-opus-4.5", pricing_model_id="claude-opus-4-5"),
            _event(model_id="gpt-4o", pricing_model_id=None),
            _event(model_id=None, pricing_model_id=None, priced=False, total_cost_usd=0),
        ]
        models = {b.model: b for b in aggregator.aggregate(events).by_model}
        assert set(models) == {"claude-opus-4-5", "gpt-4o", "unknown"}
        assert models["unknown"].priced_assistant_messages == 0
        assert models["gpt-4o"].priced_assistant_messages == 1

    def test_sorted_by_cost_and_limited(self, aggregator):
        events = [_event(model_id=f"m{i}", total_cost_usd=float(i)) for i in range(55)]
        by_model = aggregator.aggregate(events).by_model
        assert len(by_model) == 50
        assert by_model[0].model == "m54"
        assert by_model[-1].model == "m5"

    def test_rows_reconcile_with_totals(self, aggregator):
        events = [_event(model_id=m, total_cost_usd=c)
                  for m, c in [("a", 0.5), ("b", 0.25), ("a", 0.125)]]
        result = aggregator.aggregate(events)
        assert sum(b.total_cost_usd for b in result.by_model) == result.totals.total_cost_usd
        assert sum(b.total_cost_usd for b in result.by_day) == result.totals.total_cost_usd


class TestByUser:
    def test_missing_user_is_anonymous(self, aggregator):
        events = [_event(user_id=None), _event(user_id="u1")]
        users = [b.user_id for b in aggregator.aggregate(events).by_user]
        assert sorted(users) == ["anonymous", "u1"]

    def test_sorted_by_cost_desc(self, aggregator):
        events = [
            _event(user_id="cheap", total_cost_usd=0.01),
            _event(user_id="pricey", total_cost_usd=1.0),
            _event(user_id="cheap", total_cost_usd=0.01),
        ]
        by_user = aggregator.aggregate(events).by_user
        assert [b.user_id for b in by_user] == ["pricey", "cheap"]
        assert by_user[1].assistant_messages == 2

    def test_limit_is_configurable(self):
        events = [_event(user_id=f"u{i}", total_cost_usd=float(i)) for i in range(10)]
        result = UsageAggregator(max_users=3).aggregate(events)
        assert [b.user_id for b in result.by_user] == ["u9", "u8", "u7"]
