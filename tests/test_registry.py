"""Unit tests for the platform registry."""

import asyncio
from datetime import timedelta
from unittest.mock import AsyncMock

import pytest

from meridian.connectors.facebook_ads import FacebookAdsConnector
from meridian.connectors.google_ads import GoogleAdsConnector
from meridian.connectors.google_analytics import GoogleAnalyticsConnector
from meridian.connectors.mixpanel import MixpanelConnector
from meridian.connectors.shopify import ShopifyConnector
from meridian.connectors.tiktok_ads import TikTokAdsConnector
from meridian.models.canonical import InsightType, PlatformType
from meridian.registry.platform_registry import (
    FALLBACK_FRESHNESS,
    PlatformRegistry,
    RegistryConfig,
    builtin_connectors,
)


@pytest.fixture
def config():
    return RegistryConfig(connector_timeout_seconds=1.0)


@pytest.fixture
def registry(config):
    return PlatformRegistry(builtin_connectors(), config)


def _failing(connector, message="upstream exploded"):
    connector.fetch_data = AsyncMock(side_effect=RuntimeError(message))
    return connector


# ── Registration ──


def test_register_replaces_existing_id(config):
    first, second = GoogleAdsConnector(), GoogleAdsConnector()
    registry = PlatformRegistry([first], config)

    registry.register(second)

    assert registry.get("google-ads") is second
    assert len(registry.get_all()) == 1


def test_unregister(registry):
    assert registry.unregister("shopify") is True
    assert registry.unregister("shopify") is False
    assert registry.get("shopify") is None


def test_get_by_type(registry):
    analytics = registry.get_by_type(PlatformType.ANALYTICS)

    assert {c.id for c in analytics} == {"google-analytics", "mixpanel"}


def test_stats(registry):
    stats = registry.get_stats()

    assert stats["total_platforms"] == 6
    assert stats["platforms_by_type"]["advertising"] == 3
    assert stats["config"]["connector_timeout_seconds"] == 1.0


# ── Discovery ──


@pytest.mark.asyncio
async def test_connected_platforms_follow_credentials(credentials, now, expired, config):
    credentials.add("u1", "google_ads", expires_at=now + timedelta(days=1))
    credentials.add("u1", "shopify")
    credentials.add("u1", "facebook_ads", expires_at=expired)
    registry = PlatformRegistry(builtin_connectors(credential_store=credentials), config)

    connected = await registry.get_connected_platforms("u1")

    assert [c.id for c in connected] == ["google-ads", "shopify"]


@pytest.mark.asyncio
async def test_raising_auth_check_excludes_only_that_source(config):
    good, bad = GoogleAdsConnector(), FacebookAdsConnector()
    good.is_authenticated = AsyncMock(return_value=True)
    bad.is_authenticated = AsyncMock(side_effect=RuntimeError("token store down"))
    registry = PlatformRegistry([good, bad], config)

    connected = await registry.get_connected_platforms("u1")

    assert connected == [good]


# ── Relevance selection ──


def test_select_matches_keywords_only(registry):
    meta = registry.get("facebook-ads")
    analytics = registry.get("google-analytics")

    selected = registry.select_relevant_platforms("facebook reach this month", [meta, analytics])

    assert selected == [meta]


def test_select_without_matches_returns_connected_unchanged(registry):
    connected = [registry.get("shopify"), registry.get("google-ads"), registry.get("mixpanel")]

    selected = registry.select_relevant_platforms("how are things going", connected)

    assert selected == connected


def test_select_orders_by_score_with_stable_ties(registry):
    google = registry.get("google-ads")
    tiktok = registry.get("tiktok-ads")
    meta = registry.get("facebook-ads")

    # tiktok: tiktok, video, social; meta: social; google: none
    selected = registry.select_relevant_platforms(
        "tiktok video vs social", [google, meta, tiktok]
    )

    assert selected == [tiktok, meta]


def test_select_on_empty_connected(registry):
    assert registry.select_relevant_platforms("facebook", []) == []


# ── Unified fetch ──


@pytest.mark.asyncio
async def test_unified_fetch_returns_entry_per_target_despite_failures(config):
    connectors = [
        GoogleAdsConnector(),
        _failing(FacebookAdsConnector()),
        TikTokAdsConnector(),
        _failing(GoogleAnalyticsConnector(), "quota exceeded"),
        MixpanelConnector(),
    ]
    registry = PlatformRegistry(connectors, config)

    unified = await registry.fetch_unified_data("u1", [c.id for c in connectors])

    assert len(unified.platforms) == 5
    failed = [p for p in unified.platforms if p.quality == 0.5]
    healthy = [p for p in unified.platforms if p.quality in (0.7, 1.0)]
    assert len(failed) == 2
    assert len(healthy) == 3
    assert all(p.error for p in failed)
    assert {p.platform for p in failed} == {"facebook-ads", "google-analytics"}
    assert all(p.freshness == FALLBACK_FRESHNESS for p in failed)
    assert all(p.metrics.data_type == "fallback" for p in failed)


@pytest.mark.asyncio
async def test_overall_quality_is_mean(config):
    registry = PlatformRegistry(
        [GoogleAdsConnector(), _failing(ShopifyConnector())], config
    )

    unified = await registry.fetch_unified_data("u1", ["google-ads", "shopify"])

    assert [p.quality for p in unified.platforms] == [1.0, 0.5]
    assert unified.overall_quality == pytest.approx(0.75)
    assert set(unified.data_freshness) == {"google-ads", "shopify"}


@pytest.mark.asyncio
async def test_invalid_data_scores_point_seven(snapshots, config):
    snapshots.add("u1", "facebook_ads", {"impressions": 0, "spend": 100, "reach": 0})
    registry = PlatformRegistry(
        [FacebookAdsConnector(snapshot_store=snapshots)], config
    )

    unified = await registry.fetch_unified_data("u1", ["facebook-ads"])

    entry = unified.platforms[0]
    assert entry.quality == 0.7
    assert entry.error is None
    assert "No impression data available" in entry.validation_issues


@pytest.mark.asyncio
async def test_out_of_range_snapshot_keeps_real_data(snapshots, config):
    snapshots.add("u1", "google_ads", {"impressions": 1000, "spend": 50, "ctr": 150})
    registry = PlatformRegistry([GoogleAdsConnector(snapshot_store=snapshots)], config)

    unified = await registry.fetch_unified_data("u1", ["google-ads"])

    entry = unified.platforms[0]
    assert entry.quality == 0.7
    assert entry.error is None
    assert "Invalid click through rate" in entry.validation_issues
    assert entry.metrics.impressions == 1000
    assert entry.metrics.click_through_rate is None


@pytest.mark.asyncio
async def test_slow_connector_times_out_into_fallback():
    async def hang(user_id):
        await asyncio.sleep(5)

    slow = GoogleAdsConnector()
    slow.fetch_data = hang
    registry = PlatformRegistry(
        [slow, ShopifyConnector()], RegistryConfig(connector_timeout_seconds=0.05)
    )

    unified = await registry.fetch_unified_data("u1", ["google-ads", "shopify"])

    assert unified.platforms[0].quality == 0.5
    assert "Timed out" in unified.platforms[0].error
    assert unified.platforms[1].quality == 1.0


@pytest.mark.asyncio
async def test_unknown_ids_are_dropped(registry):
    unified = await registry.fetch_unified_data("u1", ["nope", "mixpanel"])

    assert [p.platform for p in unified.platforms] == ["mixpanel"]


@pytest.mark.asyncio
async def test_empty_target_set(registry):
    unified = await registry.fetch_unified_data("nobody")

    assert unified.platforms == []
    assert unified.overall_quality == 0.0
    assert unified.cross_platform_insights == []


@pytest.mark.asyncio
async def test_discovery_disabled_targets_every_connector():
    registry = PlatformRegistry(
        builtin_connectors(), RegistryConfig(enable_auto_discovery=False)
    )

    unified = await registry.fetch_unified_data("u1")

    assert len(unified.platforms) == 6


@pytest.mark.asyncio
async def test_cross_platform_insights_toggle(config):
    ids = ["google-ads", "facebook-ads"]
    enabled = PlatformRegistry(builtin_connectors(), config)
    disabled = PlatformRegistry(
        builtin_connectors(),
        config.model_copy(update={"enable_cross_platform_analysis": False}),
    )

    with_insights = await enabled.fetch_unified_data("u1", ids)
    without = await disabled.fetch_unified_data("u1", ids)

    assert [i.type for i in with_insights.cross_platform_insights] == [
        InsightType.CORRELATION,
        InsightType.BENCHMARK,
    ]
    assert without.cross_platform_insights == []


@pytest.mark.asyncio
async def test_broken_fallback_still_yields_entry(config):
    def broken():
        raise KeyError("gone")

    connector = _failing(GoogleAdsConnector())
    connector.build_fallback_metrics = broken
    registry = PlatformRegistry([connector], config)

    unified = await registry.fetch_unified_data("u1", ["google-ads"])

    entry = unified.platforms[0]
    assert entry.quality == 0.5
    assert entry.metrics.data_type == "fallback"
    assert entry.metrics.impressions is None


# ── Charts ──


@pytest.mark.asyncio
async def test_unified_chart_uses_relevant_sources(credentials, config):
    for platform in ("google_ads", "facebook_ads", "shopify"):
        credentials.add("u1", platform)
    registry = PlatformRegistry(builtin_connectors(credential_store=credentials), config)

    result = await registry.generate_unified_chart("u1", "facebook audience reach")

    assert result.platforms_used == ["facebook-ads"]
    assert list(result.charts) == ["facebook-ads"]
    assert result.charts["facebook-ads"].data.datasets
    assert result.voice_narration


@pytest.mark.asyncio
async def test_unified_chart_without_narration(config):
    registry = PlatformRegistry(
        builtin_connectors(),
        config.model_copy(update={"voice_narration_enabled": False}),
    )

    result = await registry.generate_unified_chart("u1", "sales", ["shopify", "google-ads"])

    assert result.platforms_used == ["shopify"]
    assert result.voice_narration == ""
    assert all(chart.voice_narration == "" for chart in result.charts.values())
