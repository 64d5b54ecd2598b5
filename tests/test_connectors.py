"""Unit tests for the platform connectors."""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest

from meridian.connectors.facebook_ads import FacebookAdsConnector
from meridian.connectors.fallback import FallbackDatasets, default_connector_fallbacks
from meridian.connectors.google_ads import GoogleAdsConnector
from meridian.connectors.google_analytics import GoogleAnalyticsConnector
from meridian.connectors.mixpanel import MixpanelConnector
from meridian.connectors.shopify import ShopifyConnector
from meridian.connectors.tiktok_ads import TikTokAdsConnector
from meridian.core.freshness import describe_age, describe_age_compact
from meridian.models.canonical import StandardMetrics
from meridian.registry.platform_registry import builtin_connectors

ALL_CONNECTORS = [
    GoogleAdsConnector,
    FacebookAdsConnector,
    TikTokAdsConnector,
    GoogleAnalyticsConnector,
    MixpanelConnector,
    ShopifyConnector,
]


@pytest.mark.parametrize("connector_cls", ALL_CONNECTORS, ids=lambda c: c.id)
def test_fallback_dataset_validates(connector_cls):
    """Every connector's own fallback data normalizes into valid metrics."""
    connector = connector_cls()

    metrics = connector.transform_to_standard_format(connector.get_fallback_data())
    result = connector.validate_data(metrics)

    assert result.is_valid, result.issues
    assert metrics.platform == connector.id


@pytest.mark.parametrize("connector_cls", ALL_CONNECTORS, ids=lambda c: c.id)
def test_fallback_metrics_are_marked(connector_cls):
    metrics = connector_cls().build_fallback_metrics()

    assert metrics.data_type == "fallback"
    assert metrics.platform_specific == {"is_fallback": True}


@pytest.mark.parametrize("connector_cls", ALL_CONNECTORS, ids=lambda c: c.id)
def test_chart_and_narration_for_fallback(connector_cls):
    connector = connector_cls()
    metrics = connector.build_fallback_metrics()

    chart = connector.generate_chart_config(metrics, "show me performance")

    assert chart.data.datasets
    assert chart.insights
    assert connector.generate_voice_narration(metrics, chart.insights)


def test_builtin_connector_ids_are_unique():
    ids = [c.id for c in builtin_connectors()]

    assert len(ids) == len(set(ids)) == 6


def test_google_ads_aliases_and_derived_cost_per_conversion():
    connector = GoogleAdsConnector()
    raw = {"impressions": 1000, "clicks": 50, "cost": 200, "conversions": 10, "ctr": 5}

    metrics = connector.transform_to_standard_format(raw)

    assert metrics.spend == 200
    assert metrics.click_through_rate == 5
    assert metrics.cost_per_conversion == 20.0


def test_facebook_conversions_from_purchase_actions():
    connector = FacebookAdsConnector()
    raw = {
        "impressions": 5000,
        "spend": 100,
        "reach": 4000,
        "actions": [
            {"action_type": "link_click", "value": "300"},
            {"action_type": "purchase", "value": "4"},
            {"action_type": "offsite_conversion.fb_pixel_purchase", "value": "1"},
        ],
    }

    metrics = connector.transform_to_standard_format(raw)

    assert metrics.conversions == 5
    assert metrics.cost_per_conversion == 20.0
    assert metrics.value_of("reach") == 4000


def test_missing_fields_default_to_own_fallback_values():
    fallbacks = FallbackDatasets({"google-ads": {"impressions": 7, "spend": 3}})
    connector = GoogleAdsConnector(fallback_datasets=fallbacks)

    metrics = connector.transform_to_standard_format({"clicks": 2})

    assert metrics.clicks == 2
    assert metrics.impressions == 7
    assert metrics.spend == 3


def test_mixpanel_sessions_estimated_from_events():
    connector = MixpanelConnector()

    metrics = connector.transform_to_standard_format(
        {"totalUsers": 100, "totalEvents": 1000, "avgEventsPerUser": 10, "conversionRate": 20}
    )

    assert metrics.sessions == 100
    assert metrics.conversions == 20
    assert metrics.currency is None


def test_shopify_conversion_rate_from_orders():
    connector = ShopifyConnector()

    metrics = connector.transform_to_standard_format(
        {"sessions": 1000, "orders": 25, "revenue": 2000}
    )

    assert metrics.conversion_rate == 2.5
    assert metrics.conversions == 25
    assert metrics.spend == 0


def test_out_of_range_rate_is_dropped_and_reported():
    connector = GoogleAdsConnector()

    metrics = connector.transform_to_standard_format(
        {"impressions": 1000, "spend": 50, "ctr": 150}
    )
    result = connector.validate_data(metrics)

    assert metrics.click_through_rate is None
    assert metrics.impressions == 1000
    assert metrics.spend == 50
    assert not result.is_valid
    assert result.issues == ["Invalid click through rate"]


def test_injected_fallback_dataset():
    fallbacks = FallbackDatasets(
        {"shopify": {"orders": 10, "revenue": 900, "sessions": 400}},
        default={"impressions": 5, "spend": 1},
    )

    metrics = ShopifyConnector(fallback_datasets=fallbacks).build_fallback_metrics()
    google = GoogleAdsConnector(fallback_datasets=fallbacks).build_fallback_metrics()

    assert metrics.revenue == 900
    assert metrics.sessions == 400
    assert metrics.conversion_rate == 2.5
    assert google.impressions == 5
    assert google.spend == 1


def test_descriptor_carries_presentation_metadata():
    descriptor = GoogleAdsConnector().descriptor

    assert descriptor.default_chart_types == ["line", "bar", "doughnut", "pie"]
    assert descriptor.optimal_date_ranges == ["7d", "30d", "90d"]
    assert "impressions" in descriptor.supported_metrics


def test_validation_reports_missing_primary_metrics():
    connector = FacebookAdsConnector()
    metrics = StandardMetrics(
        platform=connector.id,
        data_type="advertising",
        timestamp=datetime.now(timezone.utc),
        impressions=0,
        spend=10,
    )

    result = connector.validate_data(metrics)

    assert not result.is_valid
    assert "No impression data available" in result.issues
    assert "No reach data available" in result.issues


# ── Authentication ──


@pytest.mark.asyncio
async def test_authentication_requires_live_token(credentials, expired, now):
    connector = GoogleAdsConnector(credential_store=credentials)

    assert await connector.is_authenticated("u1") is False

    credentials.add("u1", "google_ads", expires_at=expired)
    assert await connector.is_authenticated("u1") is False

    credentials.add("u1", "google_ads", expires_at=now + timedelta(days=1))
    assert await connector.is_authenticated("u1") is True

    credentials.add("u1", "google_ads", token="")
    assert await connector.is_authenticated("u1") is False


@pytest.mark.asyncio
async def test_authentication_without_store_is_false():
    assert await ShopifyConnector().is_authenticated("u1") is False


@pytest.mark.asyncio
async def test_credential_store_error_means_not_authenticated():
    store = AsyncMock()
    store.get_credential.side_effect = RuntimeError("vault unreachable")
    connector = GoogleAdsConnector(credential_store=store)

    assert await connector.is_authenticated("u1") is False
    store.get_credential.assert_awaited_once_with("u1", "google_ads")


# ── Fetching ──


@pytest.mark.asyncio
async def test_fetch_prefers_stored_snapshot(snapshots):
    synced = datetime(2026, 3, 1, tzinfo=timezone.utc)
    snapshots.add("u1", "facebook_ads", {"impressions": 10, "spend": 5}, created_at=synced)
    connector = FacebookAdsConnector(snapshot_store=snapshots)

    raw = await connector.fetch_data("u1")
    metrics = connector.transform_to_standard_format(raw)

    assert raw["impressions"] == 10
    assert metrics.timestamp == synced


@pytest.mark.asyncio
async def test_fetch_without_snapshot_uses_fallback(snapshots):
    connector = TikTokAdsConnector(snapshot_store=snapshots)

    raw = await connector.fetch_data("u1")

    assert raw == default_connector_fallbacks().get("tiktok-ads")


@pytest.mark.asyncio
async def test_snapshot_store_error_uses_fallback():
    store = AsyncMock()
    store.latest_snapshot.side_effect = RuntimeError("db down")
    connector = MixpanelConnector(snapshot_store=store)

    raw = await connector.fetch_data("u1")

    assert raw == connector.get_fallback_data()


# ── Freshness ──


@pytest.mark.parametrize(
    "age, expected",
    [
        (timedelta(minutes=30), "Just updated"),
        (timedelta(hours=10), "10 hours ago"),
        (timedelta(days=3), "3 days ago"),
    ],
)
def test_connector_freshness_buckets(age, expected, now):
    connector = GoogleAdsConnector()
    metrics = StandardMetrics(platform=connector.id, data_type="advertising", timestamp=now - age)

    assert connector.get_data_freshness(metrics) == expected


@pytest.mark.parametrize(
    "age, expected",
    [
        (timedelta(minutes=5), "Just now"),
        (timedelta(hours=5), "5h ago"),
        (timedelta(days=2), "2d ago"),
        (timedelta(days=15), "2w ago"),
    ],
)
def test_compact_freshness_buckets(age, expected, now):
    assert describe_age_compact(now - age, now=now) == expected


def test_future_timestamp_counts_as_recent(now):
    assert describe_age(now + timedelta(hours=2), "Live", now=now) == "Live"
