"""MERIDIAN — Cross-Platform Insight Synthesizer.

Derives a small set of observations from an aggregated result (totals
across sources and the best performer by conversions) and the numeric
cross-platform summary. Statistical correlation between sources is not
computed here.
"""

from typing import Dict, List, Sequence

from meridian.models.canonical import (
    CrossPlatformSummary,
    Insight,
    InsightType,
    PlatformBreakdown,
    PlatformMetrics,
)


def mean_quality(platforms: Sequence[PlatformMetrics]) -> float:
    """Arithmetic mean of per-source quality, 0.0 for no sources."""
    if not platforms:
        return 0.0
    return sum(p.quality for p in platforms) / len(platforms)


def synthesize_cross_platform_insights(
    platforms: Sequence[PlatformMetrics],
) -> List[Insight]:
    insights: List[Insight] = []

    if len(platforms) > 1:
        total_spend = sum(p.metrics.spend or 0 for p in platforms)
        total_conversions = sum(p.metrics.conversions or 0 for p in platforms)
        avg_quality = mean_quality(platforms)
        insights.append(
            Insight(
                type=InsightType.CORRELATION,
                title="Multi-Platform Performance",
                description=(
                    f"Your {len(platforms)} connected platforms generated "
                    f"{total_conversions:,.0f} conversions from "
                    f"${total_spend:,.0f} total spend."
                ),
                value=total_conversions,
                confidence=avg_quality,
                platforms=[p.platform for p in platforms],
                metadata={
                    "total_spend": total_spend,
                    "total_conversions": total_conversions,
                    "platform_count": len(platforms),
                    "average_quality": avg_quality,
                },
            )
        )

    if len(platforms) >= 2:
        # Strict comparison keeps the first source on ties
        best = platforms[0]
        for current in platforms[1:]:
            if (current.metrics.conversions or 0) > (best.metrics.conversions or 0):
                best = current
        conversions = best.metrics.conversions or 0
        insights.append(
            Insight(
                type=InsightType.BENCHMARK,
                title="Top Performing Platform",
                description=(
                    f"{best.platform_name} is your best performing platform with "
                    f"{conversions:,.0f} conversions."
                ),
                value=conversions,
                confidence=best.quality,
                platforms=[best.platform],
                metadata={"platform_name": best.platform_name, "quality": best.quality},
            )
        )

    return insights


def summarize_cross_platform_metrics(
    platforms: Sequence[PlatformMetrics],
) -> CrossPlatformSummary:
    """Totals over every source plus unweighted per-source averages.

    Missing values count as 0, including in the averages. The breakdown is
    keyed by display name; a repeated name keeps the last source.
    """
    if not platforms:
        return CrossPlatformSummary()

    breakdown: Dict[str, PlatformBreakdown] = {}
    for p in platforms:
        breakdown[p.platform_name] = PlatformBreakdown(
            spend=p.metrics.spend or 0,
            conversions=p.metrics.conversions or 0,
            conversion_rate=p.metrics.conversion_rate or 0,
            quality=p.quality,
        )

    def total(field: str) -> float:
        return sum(getattr(p.metrics, field) or 0 for p in platforms)

    count = len(platforms)
    return CrossPlatformSummary(
        total_spend=total("spend"),
        total_conversions=total("conversions"),
        total_impressions=total("impressions"),
        total_clicks=total("clicks"),
        total_users=total("users"),
        total_sessions=total("sessions"),
        average_conversion_rate=total("conversion_rate") / count,
        average_cost_per_click=total("cost_per_click") / count,
        platform_breakdown=breakdown,
    )
