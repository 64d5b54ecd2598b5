"""MERIDIAN — Google Analytics 4 Connector."""

from meridian.connectors.base import PlatformConnector, fmt_number
from meridian.models.canonical import (
    ChartConfig,
    ConnectorCapabilities,
    InsightType,
    PlatformType,
    QuickAction,
    StandardMetrics,
)


class GoogleAnalyticsConnector(PlatformConnector):
    id = "google-analytics"
    name = "Google Analytics 4"
    type = PlatformType.ANALYTICS
    store_key = "google_analytics"
    data_type = "analytics"
    recent_label = "Real-time data"
    brand_color = "#F9AB00"
    capabilities = ConnectorCapabilities(
        real_time_data=True,
        historical_data=True,
        predictive_analytics=True,
        cross_platform_correlation=True,
    )

    relevance_keywords = (
        "analytics",
        "ga4",
        "website",
        "traffic",
        "sessions",
        "pageviews",
        "bounce",
    )

    # GA4 Data API names (totalUsers, screenPageViews) come second
    field_map = {
        "users": ("users", "totalUsers"),
        "sessions": ("sessions",),
        "page_views": ("pageViews", "screenPageViews"),
        "engagement_rate": ("engagementRate",),
        "conversions": ("conversions",),
        "conversion_rate": ("conversionRate",),
        "revenue": ("revenue", "totalRevenue"),
    }
    extended_field_map = {
        "new_users": ("newUsers",),
        "bounce_rate": ("bounceRate",),
        "average_session_duration": ("averageSessionDuration",),
    }
    primary_metrics = {"users": "user", "sessions": "session"}
    supported_metrics = (
        "users",
        "sessions",
        "pageViews",
        "engagementRate",
        "conversions",
        "conversionRate",
        "revenue",
    )
    default_chart_types = ("line", "area", "bar")

    def generate_chart_config(self, metrics: StandardMetrics, query: str) -> ChartConfig:
        q = query.lower()
        if "engagement" in q or "behavior" in q:
            return self._engagement_chart(metrics)
        if "conversion" in q or "goal" in q:
            return self._conversion_chart(metrics)
        return self._traffic_chart(metrics)

    def summary_sentence(self, metrics: StandardMetrics) -> str:
        return (
            f"You had {fmt_number(metrics.users)} users generating "
            f"{fmt_number(metrics.sessions)} sessions this period. Your engagement "
            f"rate is {fmt_number(metrics.engagement_rate, 1)}% with "
            f"{fmt_number(metrics.conversions)} goal conversions."
        )

    def _traffic_chart(self, metrics: StandardMetrics) -> ChartConfig:
        insight = self._insight(
            InsightType.TREND,
            "Website Traffic",
            f"{fmt_number(metrics.users)} users viewed {fmt_number(metrics.page_views)} "
            f"pages across {fmt_number(metrics.sessions)} sessions.",
            0.9,
            value=metrics.sessions,
        )
        return self._chart(
            "area",
            ["Week 1", "Week 2", "Week 3", "Week 4"],
            self._weekly_series(metrics.sessions),
            insight,
            [
                QuickAction(label="View Top Pages", action="view_top_pages", type="diagnostic"),
                QuickAction(label="Audience Insights", action="audience_insights", type="diagnostic"),
            ],
            dataset_label="Sessions",
            narration=self.generate_voice_narration(metrics, []),
        )

    def _engagement_chart(self, metrics: StandardMetrics) -> ChartConfig:
        engaged = metrics.engagement_rate or 0
        insight = self._insight(
            InsightType.BENCHMARK,
            "Engagement Quality",
            f"{engaged:.1f}% of sessions were engaged sessions.",
            0.85,
            value=engaged,
        )
        return self._chart(
            "doughnut",
            ["Engaged", "Not Engaged"],
            [engaged, 100 - engaged],
            insight,
            [QuickAction(label="Content Report", action="content_report", type="diagnostic")],
            colors=[self.brand_color, "#E8EAED"],
        )

    def _conversion_chart(self, metrics: StandardMetrics) -> ChartConfig:
        insight = self._insight(
            InsightType.RECOMMENDATION,
            "Goal Conversions",
            f"{fmt_number(metrics.conversions)} conversions worth "
            f"${fmt_number(metrics.revenue, 2)} at a "
            f"{fmt_number(metrics.conversion_rate, 2)}% conversion rate.",
            0.8,
            value=metrics.conversions,
        )
        return self._chart(
            "bar",
            ["Users", "Sessions", "Conversions"],
            [metrics.users, metrics.sessions, metrics.conversions],
            insight,
            [QuickAction(label="Funnel Exploration", action="funnel_exploration", type="diagnostic")],
            dataset_label="Conversion Path",
        )
