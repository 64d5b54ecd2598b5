"""MERIDIAN — Google Ads Connector."""

from meridian.connectors.base import AdPlatformConnector, fmt_number
from meridian.models.canonical import (
    ChartConfig,
    InsightType,
    QuickAction,
    StandardMetrics,
)


class GoogleAdsConnector(AdPlatformConnector):
    id = "google-ads"
    name = "Google Ads"
    store_key = "google_ads"
    recent_label = "Just updated"
    brand_color = "#4285F4"

    relevance_keywords = (
        "google",
        "ads",
        "adwords",
        "campaign",
        "advertising",
        "ppc",
        "spend",
    )

    field_map = {
        "impressions": ("impressions",),
        "clicks": ("clicks",),
        "spend": ("spend", "cost"),
        "conversions": ("conversions",),
        "cost_per_click": ("avg_cpc", "costPerClick"),
        "cost_per_conversion": ("cost_per_conversion",),
        "click_through_rate": ("ctr", "clickThroughRate"),
        "conversion_rate": ("conversion_rate", "conversionRate"),
        "return_on_ad_spend": ("roas", "returnOnAdSpend"),
    }
    primary_metrics = {"impressions": "impression", "spend": "spend"}
    supported_metrics = (
        "impressions",
        "clicks",
        "spend",
        "conversions",
        "costPerClick",
        "clickThroughRate",
        "conversionRate",
        "returnOnAdSpend",
        "costPerConversion",
    )

    def generate_chart_config(self, metrics: StandardMetrics, query: str) -> ChartConfig:
        q = query.lower()
        if "spend" in q or "budget" in q or "cost" in q:
            return self._spend_chart(metrics)
        if "click" in q or "ctr" in q:
            return self._click_chart(metrics)
        return self._performance_chart(metrics)

    def summary_sentence(self, metrics: StandardMetrics) -> str:
        return (
            f"Your Google Ads campaigns spent ${fmt_number(metrics.spend)} and drove "
            f"{fmt_number(metrics.conversions)} conversions at "
            f"${fmt_number(metrics.cost_per_click, 2)} per click."
        )

    def _performance_chart(self, metrics: StandardMetrics) -> ChartConfig:
        insight = self._insight(
            InsightType.TREND,
            "Google Ads Performance",
            f"Your Google Ads campaigns generated {fmt_number(metrics.conversions)} "
            f"conversions at a {fmt_number(metrics.conversion_rate, 2)}% conversion rate.",
            0.85,
            value=metrics.conversions,
        )
        return self._chart(
            "line",
            ["Week 1", "Week 2", "Week 3", "Week 4"],
            self._weekly_series(metrics.conversions),
            insight,
            [
                QuickAction(label="Optimize Bids", action="optimize_bids", type="prescriptive"),
                QuickAction(label="Keyword Report", action="keyword_report", type="diagnostic"),
            ],
            dataset_label="Conversions",
            narration=self.generate_voice_narration(metrics, []),
        )

    def _spend_chart(self, metrics: StandardMetrics) -> ChartConfig:
        insight = self._insight(
            InsightType.RECOMMENDATION,
            "Cost Efficiency",
            f"Each conversion costs ${fmt_number(metrics.cost_per_conversion, 2)} "
            f"with a return on ad spend of {fmt_number(metrics.return_on_ad_spend, 1)}x.",
            0.8,
            value=metrics.cost_per_conversion,
        )
        return self._chart(
            "bar",
            ["Spend", "Cost per Click", "Cost per Conversion"],
            [metrics.spend, metrics.cost_per_click, metrics.cost_per_conversion],
            insight,
            [QuickAction(label="Reallocate Budget", action="reallocate_budget", type="prescriptive")],
            dataset_label="Cost",
        )

    def _click_chart(self, metrics: StandardMetrics) -> ChartConfig:
        insight = self._insight(
            InsightType.BENCHMARK,
            "Click-Through Rate",
            f"Your ads earn a {fmt_number(metrics.click_through_rate, 2)}% click-through "
            f"rate across {fmt_number(metrics.impressions)} impressions.",
            0.8,
            value=metrics.click_through_rate,
        )
        return self._chart(
            "bar",
            ["Impressions", "Clicks", "Conversions"],
            [metrics.impressions, metrics.clicks, metrics.conversions],
            insight,
            [QuickAction(label="Test Ad Copy", action="test_ad_copy", type="predictive")],
            dataset_label="Funnel",
        )
