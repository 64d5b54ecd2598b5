"""MERIDIAN — Mixpanel Connector.

Mixpanel exports event counts, not sessions; sessions are estimated as
total events over average events per user.
"""

from typing import Any, Dict, Mapping, Optional

from meridian.connectors.base import PlatformConnector, fmt_number
from meridian.core.field_mapping import coalesce
from meridian.models.canonical import (
    ChartConfig,
    ConnectorCapabilities,
    InsightType,
    PlatformType,
    QuickAction,
    StandardMetrics,
)

DEFAULT_EVENTS_PER_USER = 15.9


class MixpanelConnector(PlatformConnector):
    id = "mixpanel"
    name = "Mixpanel"
    type = PlatformType.ANALYTICS
    store_key = "mixpanel"
    data_type = "product_analytics"
    default_currency = None
    recent_label = "Live data"
    brand_color = "#7856FF"
    capabilities = ConnectorCapabilities(
        real_time_data=True,
        historical_data=True,
        predictive_analytics=True,
        cross_platform_correlation=True,
    )

    relevance_keywords = (
        "mixpanel",
        "events",
        "funnel",
        "retention",
        "engagement",
        "cohort",
    )

    field_map = {
        "users": ("totalUsers", "users"),
        "engagement_rate": ("engagementScore", "engagementRate"),
        "conversions": ("conversions",),
        "conversion_rate": ("conversionRate",),
    }
    extended_field_map = {
        "retention_rate": ("retentionRate",),
        "avg_events_per_user": ("avgEventsPerUser",),
        "churn_rate": ("churnRate",),
        "total_events": ("totalEvents",),
    }
    primary_metrics = {"users": "user"}
    supported_metrics = (
        "users",
        "engagementRate",
        "conversions",
        "conversionRate",
        "retentionRate",
        "avgEventsPerUser",
        "funnelDropoff",
    )
    default_chart_types = ("line", "bar", "area")

    def _derive(
        self, values: Dict[str, Optional[float]], raw: Mapping[str, Any]
    ) -> Dict[str, Optional[float]]:
        total_events = coalesce(raw, ("totalEvents",))
        per_user = coalesce(raw, ("avgEventsPerUser",)) or DEFAULT_EVENTS_PER_USER
        values["sessions"] = round(total_events / per_user) if total_events else 0

        if coalesce(raw, self.field_map["conversions"]) is None:
            users, rate = values.get("users") or 0, values.get("conversion_rate") or 0
            values["conversions"] = round(users * rate / 100)
        return values

    def generate_chart_config(self, metrics: StandardMetrics, query: str) -> ChartConfig:
        q = query.lower()
        if "retention" in q or "cohort" in q:
            return self._retention_chart(metrics)
        return self._funnel_chart(metrics)

    def summary_sentence(self, metrics: StandardMetrics) -> str:
        return (
            f"Mixpanel tracked {fmt_number(metrics.users)} users with an engagement "
            f"score of {fmt_number(metrics.engagement_rate, 1)} and "
            f"{fmt_number(metrics.conversions)} conversions."
        )

    def _funnel_chart(self, metrics: StandardMetrics) -> ChartConfig:
        insight = self._insight(
            InsightType.TREND,
            "Product Funnel",
            f"{fmt_number(metrics.conversion_rate, 1)}% of tracked users completed the "
            "conversion event.",
            0.85,
            value=metrics.conversions,
        )
        return self._chart(
            "bar",
            ["Users", "Sessions", "Conversions"],
            [metrics.users, metrics.sessions, metrics.conversions],
            insight,
            [QuickAction(label="Analyze Drop-off", action="analyze_dropoff", type="diagnostic")],
            dataset_label="Funnel",
            narration=self.generate_voice_narration(metrics, []),
        )

    def _retention_chart(self, metrics: StandardMetrics) -> ChartConfig:
        raw = metrics.platform_specific
        weeks = [
            raw.get("week1Retention"),
            raw.get("week2Retention"),
            raw.get("week4Retention"),
        ]
        insight = self._insight(
            InsightType.BENCHMARK,
            "User Retention",
            f"Retention is {fmt_number(metrics.value_of('retention_rate'), 1)}% "
            f"with churn at {fmt_number(metrics.value_of('churn_rate'), 1)}%.",
            0.8,
            value=metrics.value_of("retention_rate"),
        )
        return self._chart(
            "line",
            ["Week 1", "Week 2", "Week 4"],
            [w if isinstance(w, (int, float)) else None for w in weeks],
            insight,
            [QuickAction(label="Cohort Report", action="cohort_report", type="diagnostic")],
            dataset_label="Retention %",
        )
