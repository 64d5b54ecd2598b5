"""MERIDIAN — Data Freshness Buckets.

Turns the age of a data point into the short human string shown next to
each source.
"""

from datetime import datetime, timezone
from typing import Optional


def _age_hours(timestamp: datetime, now: Optional[datetime] = None) -> int:
    now = now or datetime.now(timezone.utc)
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    seconds = (now - timestamp).total_seconds()
    # Clock skew can put a snapshot slightly in the future
    return max(int(seconds // 3600), 0)


def describe_age(
    timestamp: datetime,
    recent_label: str = "Just synced",
    now: Optional[datetime] = None,
) -> str:
    """Connector buckets: <1h → recent_label, <24h → hours, else days."""
    hours = _age_hours(timestamp, now)
    if hours < 1:
        return recent_label
    if hours < 24:
        return f"{hours} hours ago"
    return f"{hours // 24} days ago"


def describe_age_compact(timestamp: datetime, now: Optional[datetime] = None) -> str:
    """Bridge buckets: Just now, {n}h ago, {n}d ago, {n}w ago."""
    hours = _age_hours(timestamp, now)
    days = hours // 24
    if hours < 1:
        return "Just now"
    if hours < 24:
        return f"{hours}h ago"
    if days < 7:
        return f"{days}d ago"
    return f"{days // 7}w ago"
