"""MERIDIAN — TikTok Ads Connector."""

from meridian.connectors.base import AdPlatformConnector, fmt_number
from meridian.models.canonical import (
    ChartConfig,
    InsightType,
    QuickAction,
    StandardMetrics,
)


class TikTokAdsConnector(AdPlatformConnector):
    id = "tiktok-ads"
    name = "TikTok Ads"
    store_key = "tiktok_ads"
    recent_label = "Live data"
    brand_color = "#FE2C55"

    relevance_keywords = ("tiktok", "video", "viral", "social")

    # Reporting API names (show_cnt, click_cnt, ...) come second
    field_map = {
        "impressions": ("impressions", "show_cnt"),
        "clicks": ("clicks", "click_cnt"),
        "spend": ("spend", "cost"),
        "conversions": ("conversions", "convert_cnt"),
        "cost_per_click": ("cpc", "cost_per_click"),
        "cost_per_conversion": ("cost_per_conversion",),
        "click_through_rate": ("ctr", "click_rate"),
        "conversion_rate": ("conversion_rate", "convert_rate"),
        "return_on_ad_spend": ("roas", "return_on_ad_spend"),
    }
    extended_field_map = {
        "video_views": ("video_view_cnt", "videoViews"),
        "video_view_rate": ("video_view_rate",),
        "cost_per_video_view": ("cost_per_video_view",),
    }
    primary_metrics = {
        "impressions": "impression",
        "video_views": "video view",
        "spend": "spend",
    }
    supported_metrics = (
        "impressions",
        "clicks",
        "spend",
        "conversions",
        "videoViews",
        "costPerClick",
        "clickThroughRate",
        "conversionRate",
        "returnOnAdSpend",
        "costPerConversion",
        "videoViewRate",
        "costPerVideoView",
    )
    default_chart_types = ("line", "bar", "area")

    def generate_chart_config(self, metrics: StandardMetrics, query: str) -> ChartConfig:
        q = query.lower()
        if "video" in q or "view" in q:
            return self._video_chart(metrics)
        return self._performance_chart(metrics)

    def summary_sentence(self, metrics: StandardMetrics) -> str:
        return (
            f"Your TikTok ads earned {fmt_number(metrics.value_of('video_views'))} video "
            f"views and {fmt_number(metrics.conversions)} conversions from "
            f"${fmt_number(metrics.spend)} in spend."
        )

    def _performance_chart(self, metrics: StandardMetrics) -> ChartConfig:
        insight = self._insight(
            InsightType.TREND,
            "TikTok Ads Performance",
            f"TikTok delivered {fmt_number(metrics.conversions)} conversions at a "
            f"{fmt_number(metrics.return_on_ad_spend, 1)}x return on ad spend.",
            0.8,
            value=metrics.conversions,
        )
        return self._chart(
            "line",
            ["Week 1", "Week 2", "Week 3", "Week 4"],
            self._weekly_series(metrics.conversions),
            insight,
            [QuickAction(label="Scale Top Creatives", action="scale_creatives", type="prescriptive")],
            dataset_label="Conversions",
            narration=self.generate_voice_narration(metrics, []),
        )

    def _video_chart(self, metrics: StandardMetrics) -> ChartConfig:
        video_views = metrics.value_of("video_views")
        view_rate = metrics.value_of("video_view_rate")
        insight = self._insight(
            InsightType.BENCHMARK,
            "Video Engagement",
            f"{fmt_number(view_rate, 1)}% of impressions turned into video views at "
            f"${fmt_number(metrics.value_of('cost_per_video_view'), 3)} per view.",
            0.85,
            value=video_views,
        )
        return self._chart(
            "bar",
            ["Impressions", "Video Views", "Clicks"],
            [metrics.impressions, video_views, metrics.clicks],
            insight,
            [
                QuickAction(label="Refresh Hooks", action="refresh_hooks", type="prescriptive"),
                QuickAction(label="Creative Breakdown", action="creative_breakdown", type="diagnostic"),
            ],
            dataset_label="Video Funnel",
        )
