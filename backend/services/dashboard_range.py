from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

DEFAULT_RANGE = "7d"

RANGE_WINDOWS = {
    "24h": timedelta(hours=24),
    "7d": timedelta(days=7),
    "30d": timedelta(days=30),
    "all": None,
}


@dataclass
class DashboardRangeInfo:
    range: str
    start: Optional[datetime] = None

    @property
    def start_iso(self) -> Optional[str]:
        if self.start is None:
            return None
        return self.start.isoformat(timespec="milliseconds").replace("+00:00", "Z")

    @property
    def min_ts_seconds(self) -> Optional[int]:
        if self.start is None:
            return None
        return int(self.start.timestamp())


def normalize_range(value) -> str:
    if not isinstance(value, str):
        return DEFAULT_RANGE
    value = value.strip().lower()
    return value if value in RANGE_WINDOWS else DEFAULT_RANGE


def parse_dashboard_range(value, now: Optional[datetime] = None) -> DashboardRangeInfo:
    """Turn a ``?range=`` query value into the earliest timestamp to include."""
    range_name = normalize_range(value)
    window = RANGE_WINDOWS[range_name]
    if window is None:
        return DashboardRangeInfo(range=range_name)
    now = now or datetime.now(timezone.utc)
    return DashboardRangeInfo(range=range_name, start=now - window)
