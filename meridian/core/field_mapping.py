"""MERIDIAN — Raw → Canonical Field Mapping.

Sources name the same metric differently ("spend", "cost", "amount_spent").
A field map lists, per canonical field, the raw keys to try in order; the
first present numeric value wins, else the field's default is used.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional, Sequence

FieldMap = Mapping[str, Sequence[str]]

TIMESTAMP_KEYS = ("timestamp", "synced_at", "date_stop")


def to_float(value: Any) -> Optional[float]:
    """Convert a value to float, None when it is missing or not numeric."""
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def coalesce(raw: Mapping[str, Any], aliases: Sequence[str]) -> Optional[float]:
    """Return the first present numeric value among alias keys."""
    for key in aliases:
        value = to_float(raw.get(key))
        if value is not None:
            return value
    return None


def apply_field_map(
    raw: Mapping[str, Any],
    field_map: FieldMap,
    defaults: Optional[Mapping[str, Optional[float]]] = None,
) -> Dict[str, Optional[float]]:
    """Map every field in field_map, falling back to defaults per field."""
    defaults = defaults or {}
    mapped: Dict[str, Optional[float]] = {}
    for field, aliases in field_map.items():
        value = coalesce(raw, aliases)
        mapped[field] = value if value is not None else defaults.get(field)
    return mapped


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO string, datetime or epoch seconds into an aware datetime."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        return datetime.fromtimestamp(value, tz=timezone.utc)
    else:
        try:
            parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        except ValueError:
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def extract_timestamp(raw: Mapping[str, Any]) -> datetime:
    """Timestamp carried by a raw payload, else now."""
    for key in TIMESTAMP_KEYS:
        parsed = parse_timestamp(raw.get(key))
        if parsed is not None:
            return parsed
    return datetime.now(timezone.utc)
