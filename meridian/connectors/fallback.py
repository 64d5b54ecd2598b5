"""MERIDIAN — Fallback Datasets.

Demo values substituted when a source has no stored snapshot or its fetch
fails. Connectors and the bridge take a FallbackDatasets instance so tests
can inject deterministic fixtures instead of these numbers.
"""

import copy
from typing import Any, Dict, Mapping, Optional

RawPayload = Dict[str, Any]


class FallbackDatasets:
    """Provider of per-source raw fallback payloads."""

    def __init__(
        self,
        datasets: Mapping[str, RawPayload],
        default: Optional[RawPayload] = None,
    ):
        self._datasets = dict(datasets)
        self._default = default

    def get(self, source_id: str) -> RawPayload:
        """Return a copy of the source's payload (or the default one)."""
        if source_id in self._datasets:
            return copy.deepcopy(self._datasets[source_id])
        if self._default is not None:
            return copy.deepcopy(self._default)
        raise KeyError(f"No fallback dataset for {source_id}")


# ─────────────────────────────────────────────
# CONNECTOR FALLBACK PAYLOADS: raw, per source id
# ─────────────────────────────────────────────

CONNECTOR_FALLBACK_DATA: Dict[str, RawPayload] = {
    "google-ads": {
        "impressions": 48200,
        "clicks": 1910,
        "spend": 4500,
        "conversions": 78,
        "avg_cpc": 2.35,
        "ctr": 3.96,
        "conversion_rate": 4.08,
        "cost_per_conversion": 57.69,
        "roas": 2.8,
        "currency": "USD",
        "campaign_count": 12,
        "active_campaigns": 8,
    },
    "facebook-ads": {
        "impressions": 52800,
        "clicks": 2340,
        "spend": 3200,
        "conversions": 89,
        "cpc": 1.37,
        "ctr": 4.43,
        "conversion_rate": 3.80,
        "cost_per_conversion": 35.96,
        "roas": 3.2,
        "reach": 35600,
        "frequency": 1.48,
        "cpm": 6.06,
        "currency": "USD",
        "campaign_count": 8,
        "active_campaigns": 6,
    },
    "tiktok-ads": {
        "impressions": 68500,
        "clicks": 2850,
        "spend": 2800,
        "conversions": 124,
        "cpc": 0.98,
        "ctr": 4.16,
        "conversion_rate": 4.35,
        "cost_per_conversion": 22.58,
        "roas": 3.5,
        "video_view_cnt": 45600,
        "video_view_rate": 66.6,
        "cost_per_video_view": 0.061,
        "currency": "USD",
        "campaign_count": 6,
        "active_campaigns": 4,
    },
    "google-analytics": {
        "users": 12350,
        "totalUsers": 12350,
        "sessions": 15420,
        "pageViews": 45680,
        "screenPageViews": 45680,
        "engagementRate": 67.8,
        "conversions": 156,
        "conversionRate": 1.01,
        "revenue": 12450.75,
        "totalRevenue": 12450.75,
        "averageSessionDuration": 185.4,
        "bounceRate": 42.3,
        "newUsers": 8920,
        "currency": "USD",
    },
    "mixpanel": {
        "totalUsers": 15420,
        "activeUsers": 10380,
        "newUsers": 4626,
        "returningUsers": 10794,
        "totalEvents": 245680,
        "avgEventsPerUser": 15.9,
        "engagementScore": 78.5,
        "retentionRate": 67.3,
        "week1Retention": 83.3,
        "week2Retention": 67.3,
        "week4Retention": 50.9,
        "conversionRate": 45.0,
        "topEvents": [
            {"name": "page_view", "count": 98500},
            {"name": "button_click", "count": 65400},
            {"name": "form_submit", "count": 28900},
            {"name": "purchase", "count": 15600},
            {"name": "signup", "count": 8900},
        ],
        "churnRate": 32.7,
        "userGrowthRate": 15.2,
    },
    "shopify": {
        "sessions": 8420,
        "users": 6890,
        "orders": 234,
        "revenue": 18650.50,
        "average_order_value": 79.70,
        "conversion_rate": 2.78,
        "cart_additions": 1245,
        "cart_abandonment_rate": 68.5,
        "returning_customers": 892,
        "new_customers": 1456,
        "currency": "USD",
        "total_products": 156,
        "active_products": 142,
    },
}

GENERIC_FALLBACK_DATA: RawPayload = {
    "users": 1000,
    "sessions": 1200,
    "conversions": 50,
    "conversion_rate": 4.2,
}


def default_connector_fallbacks() -> FallbackDatasets:
    return FallbackDatasets(CONNECTOR_FALLBACK_DATA, GENERIC_FALLBACK_DATA)


# ─────────────────────────────────────────────
# BRIDGE FALLBACK VALUES: canonical field names, per store name
# ─────────────────────────────────────────────

BRIDGE_FALLBACK_DATA: Dict[str, RawPayload] = {
    "google_ads": {
        "impressions": 48200,
        "clicks": 1910,
        "spend": 4500,
        "conversions": 78,
        "cost_per_click": 2.35,
        "click_through_rate": 3.96,
        "conversion_rate": 4.08,
    },
    "google_analytics": {
        "users": 12350,
        "sessions": 15420,
        "page_views": 45680,
        "engagement_rate": 67.8,
        "conversions": 156,
        "conversion_rate": 1.01,
    },
    "mixpanel": {
        "users": 15420,
        "engagement_rate": 78.5,
        "conversions": 245,
        "conversion_rate": 45.0,
    },
    "meta_ads": {
        "impressions": 35600,
        "clicks": 1240,
        "spend": 2800,
        "conversions": 42,
        "cost_per_click": 2.26,
        "click_through_rate": 3.48,
    },
}


def default_bridge_fallbacks() -> FallbackDatasets:
    return FallbackDatasets(BRIDGE_FALLBACK_DATA, GENERIC_FALLBACK_DATA)
