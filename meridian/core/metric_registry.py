"""MERIDIAN — Canonical Metric Registry.

Defines the canonical set of metrics every connector normalizes into,
and their classifications. The model validators and connector validation
read the bounds from here, so a new canonical field only needs an entry.
"""

from enum import Enum
from typing import Dict


class MetricType(str, Enum):
    """How a metric is categorised."""

    VOLUME = "volume"  # Raw counts: impressions, clicks, users
    COST = "cost"  # Monetary: spend, cost per click
    REVENUE = "revenue"  # Income: revenue
    RATE = "rate"  # Percentages bounded to [0, 100]
    RATIO = "ratio"  # Unbounded non-negative ratios: roas


class MetricDefinition:
    """Describes a single metric."""

    def __init__(
        self, name: str, metric_type: MetricType, unit: str = "", description: str = ""
    ):
        self.name = name
        self.metric_type = metric_type
        self.unit = unit
        self.description = description

    @property
    def is_rate(self) -> bool:
        return self.metric_type == MetricType.RATE

    def __repr__(self) -> str:
        return f"<Metric {self.name} ({self.metric_type.value})>"


# ─────────────────────────────────────────────
# CANONICAL METRICS: shared by every source
# ─────────────────────────────────────────────

CANONICAL_METRICS: Dict[str, MetricDefinition] = {
    # Volume
    "impressions": MetricDefinition(
        "impressions", MetricType.VOLUME, "count", "Number of times content was shown"
    ),
    "clicks": MetricDefinition("clicks", MetricType.VOLUME, "count", "Total clicks"),
    "conversions": MetricDefinition(
        "conversions", MetricType.VOLUME, "count", "Completed goal actions"
    ),
    "users": MetricDefinition("users", MetricType.VOLUME, "count", "Unique users"),
    "sessions": MetricDefinition(
        "sessions", MetricType.VOLUME, "count", "Visits / sessions"
    ),
    "page_views": MetricDefinition(
        "page_views", MetricType.VOLUME, "count", "Page or screen views"
    ),
    # Cost
    "spend": MetricDefinition("spend", MetricType.COST, "currency", "Total spend"),
    "cost_per_click": MetricDefinition(
        "cost_per_click", MetricType.COST, "currency", "Cost per click"
    ),
    "cost_per_conversion": MetricDefinition(
        "cost_per_conversion", MetricType.COST, "currency", "Cost per conversion"
    ),
    # Revenue
    "revenue": MetricDefinition(
        "revenue", MetricType.REVENUE, "currency", "Attributed revenue"
    ),
    # Rates
    "engagement_rate": MetricDefinition(
        "engagement_rate", MetricType.RATE, "%", "Engaged share of sessions/users"
    ),
    "conversion_rate": MetricDefinition(
        "conversion_rate", MetricType.RATE, "%", "Conversions / visits"
    ),
    "click_through_rate": MetricDefinition(
        "click_through_rate", MetricType.RATE, "%", "Clicks / impressions"
    ),
    # Ratios
    "return_on_ad_spend": MetricDefinition(
        "return_on_ad_spend", MetricType.RATIO, "ratio", "Revenue / spend"
    ),
}


# ─────────────────────────────────────────────
# HELPERS
# ─────────────────────────────────────────────


def get_metric(name: str) -> MetricDefinition | None:
    """Look up a metric by name."""
    return CANONICAL_METRICS.get(name)


def in_range(name: str, value: float) -> bool:
    """Rates lie in [0, 100]; every other metric, extended ones included, is >= 0."""
    metric = get_metric(name)
    if metric is not None and metric.is_rate:
        return 0 <= value <= 100
    return value >= 0
