"""Unit tests for cross-platform insight synthesis."""

from datetime import datetime, timezone

import pytest

from meridian.core.insights import (
    mean_quality,
    summarize_cross_platform_metrics,
    synthesize_cross_platform_insights,
)
from meridian.models.canonical import (
    InsightType,
    PlatformBreakdown,
    PlatformMetrics,
    PlatformType,
    StandardMetrics,
)


def _entry(platform, quality=1.0, spend=None, conversions=None, **metrics):
    return PlatformMetrics(
        platform=platform,
        platform_name=platform.title(),
        platform_type=PlatformType.ADVERTISING,
        metrics=StandardMetrics(
            platform=platform,
            data_type="advertising",
            timestamp=datetime.now(timezone.utc),
            spend=spend,
            conversions=conversions,
            **metrics,
        ),
        quality=quality,
        freshness="Just now",
    )


def test_mean_quality():
    assert mean_quality([]) == 0.0
    assert mean_quality([_entry("a", 1.0), _entry("b", 0.5)]) == pytest.approx(0.75)


def test_single_source_has_no_insights():
    assert synthesize_cross_platform_insights([_entry("a", spend=10, conversions=2)]) == []


def test_multi_platform_totals_and_top_performer():
    platforms = [
        _entry("alpha", 1.0, spend=1000, conversions=40),
        _entry("beta", 0.5, spend=500, conversions=60),
        _entry("gamma", 0.7, conversions=None),
    ]

    correlation, benchmark = synthesize_cross_platform_insights(platforms)

    assert correlation.type == InsightType.CORRELATION
    assert correlation.value == 100
    assert correlation.metadata["total_spend"] == 1500
    assert correlation.confidence == pytest.approx(2.2 / 3)
    assert correlation.platforms == ["alpha", "beta", "gamma"]

    assert benchmark.type == InsightType.BENCHMARK
    assert benchmark.platforms == ["beta"]
    assert benchmark.confidence == 0.5
    assert "Beta" in benchmark.description


def test_top_performer_tie_keeps_first():
    platforms = [_entry("first", conversions=10), _entry("second", conversions=10)]

    benchmark = synthesize_cross_platform_insights(platforms)[1]

    assert benchmark.platforms == ["first"]


def test_summary_of_nothing_is_zero():
    summary = summarize_cross_platform_metrics([])

    assert summary.total_spend == 0
    assert summary.average_conversion_rate == 0
    assert summary.average_cost_per_click == 0
    assert summary.platform_breakdown == {}


def test_summary_totals_and_unweighted_averages():
    platforms = [
        _entry("alpha", 1.0, spend=1000, conversions=40, clicks=800, conversion_rate=5,
               cost_per_click=1.25, sessions=2000),
        _entry("beta", 0.5, spend=500, conversions=60, impressions=9000, users=300),
        _entry("gamma", 0.7, conversion_rate=4, cost_per_click=0.5),
    ]

    summary = summarize_cross_platform_metrics(platforms)

    assert summary.total_spend == 1500
    assert summary.total_conversions == 100
    assert summary.total_impressions == 9000
    assert summary.total_clicks == 800
    assert summary.total_users == 300
    assert summary.total_sessions == 2000
    assert summary.average_conversion_rate == pytest.approx(3.0)
    assert summary.average_cost_per_click == pytest.approx(0.5833, abs=1e-4)
    assert list(summary.platform_breakdown) == ["Alpha", "Beta", "Gamma"]
    assert summary.platform_breakdown["Beta"].conversions == 60
    assert summary.platform_breakdown["Beta"].conversion_rate == 0
    assert summary.platform_breakdown["Gamma"].quality == 0.7


def test_summary_breakdown_repeated_name_keeps_last():
    first = _entry("ads", spend=10)
    second = _entry("ads", spend=30)

    summary = summarize_cross_platform_metrics([first, second])

    assert summary.total_spend == 40
    assert summary.platform_breakdown == {
        "Ads": PlatformBreakdown(spend=30, conversions=0, conversion_rate=0, quality=1.0)
    }
