"""MERIDIAN — Platform Integration Bridge.

Builds a UnifiedMetrics result straight from persisted snapshots for the
advertising sources listed by the connection-status service, without going
through the connector registry.
"""

import asyncio
from datetime import datetime, timezone
from typing import Dict, List, Mapping, Optional

from meridian.config import settings
from meridian.connectors.fallback import FallbackDatasets, default_bridge_fallbacks
from meridian.core.field_mapping import FieldMap, apply_field_map
from meridian.core.freshness import describe_age_compact
from meridian.core.insights import (
    mean_quality,
    summarize_cross_platform_metrics,
    synthesize_cross_platform_insights,
)
from meridian.core.logging import get_logger
from meridian.models.canonical import (
    CrossPlatformSummary,
    PlatformMetrics,
    PlatformType,
    StandardMetrics,
    UnifiedMetrics,
)
from meridian.stores.connections import ConnectedPlatform, ConnectionStatusService
from meridian.stores.snapshots import SnapshotStore

logger = get_logger("bridge")

FALLBACK_FRESHNESS = "Using demo data"
FALLBACK_ERROR = "No recent data available"
DEGRADED_QUALITY = 0.5

# Connection-service id → snapshot store name
STORE_NAMES: Dict[str, str] = {
    "google_ads": "google_ads",
    "meta_ads": "facebook_ads",
    "google_analytics": "google_analytics",
    "mixpanel": "mixpanel",
    "tiktok_ads": "tiktok_ads",
    "linkedin_ads": "linkedin_ads",
    "twitter_ads": "twitter_ads",
    "snapchat_ads": "snapchat_ads",
    "pinterest_ads": "pinterest_ads",
}

PLATFORM_TYPES: Dict[str, PlatformType] = {
    "google_ads": PlatformType.ADVERTISING,
    "meta_ads": PlatformType.ADVERTISING,
    "google_analytics": PlatformType.ANALYTICS,
    "mixpanel": PlatformType.ANALYTICS,
    "tiktok_ads": PlatformType.SOCIAL,
    "linkedin_ads": PlatformType.ADVERTISING,
    "twitter_ads": PlatformType.SOCIAL,
    "snapchat_ads": PlatformType.SOCIAL,
    "pinterest_ads": PlatformType.SOCIAL,
    "shopify": PlatformType.ECOMMERCE,
    "salesforce": PlatformType.CRM,
}

BRIDGE_FIELD_MAPS: Dict[str, FieldMap] = {
    "google_ads": {
        "impressions": ("impressions",),
        "clicks": ("clicks",),
        "spend": ("spend", "cost"),
        "conversions": ("conversions",),
        "cost_per_click": ("avg_cpc", "costPerClick"),
        "click_through_rate": ("ctr", "clickThroughRate"),
        "conversion_rate": ("conversion_rate", "conversionRate"),
    },
    "google_analytics": {
        "users": ("users", "totalUsers"),
        "sessions": ("sessions",),
        "page_views": ("pageViews", "screenPageViews"),
        "engagement_rate": ("engagementRate",),
        "conversion_rate": ("conversionRate",),
        "conversions": ("conversions",),
    },
    "mixpanel": {
        "users": ("totalUsers", "users"),
        "engagement_rate": ("engagementScore", "engagementRate"),
        "conversions": ("conversions",),
        "conversion_rate": ("conversionRate",),
    },
}

GENERIC_FIELD_MAP: FieldMap = {
    "impressions": ("impressions", "reach"),
    "clicks": ("clicks", "link_clicks"),
    "users": ("users", "unique_users"),
    "spend": ("spend", "amount_spent"),
    "conversions": ("conversions", "actions"),
}

DATA_TYPES = {
    "google_ads": "advertising",
    "google_analytics": "analytics",
    "mixpanel": "analytics",
}


def store_name(platform_id: str) -> str:
    return STORE_NAMES.get(platform_id, platform_id)


def platform_type(platform_id: str) -> PlatformType:
    return PLATFORM_TYPES.get(platform_id, PlatformType.ADVERTISING)


def transform_snapshot(
    payload: Mapping[str, object],
    platform_id: str,
    timestamp: Optional[datetime] = None,
) -> StandardMetrics:
    """Map a stored payload through the bridge table for its source.

    Missing fields become 0.
    """
    field_map = BRIDGE_FIELD_MAPS.get(platform_id, GENERIC_FIELD_MAP)
    values = apply_field_map(payload, field_map, {f: 0.0 for f in field_map})
    currency = None
    if platform_id == "google_ads":
        currency = payload.get("currency") or settings.default_currency
    return StandardMetrics(
        **values,
        platform=platform_id,
        data_type=DATA_TYPES.get(platform_id, "mixed"),
        timestamp=timestamp or datetime.now(timezone.utc),
        currency=currency,
        platform_specific=dict(payload),
    )


class PlatformIntegrationBridge:
    """Aggregates stored advertising snapshots for a user."""

    def __init__(
        self,
        snapshot_store: SnapshotStore,
        connection_service: ConnectionStatusService,
        fallback_datasets: Optional[FallbackDatasets] = None,
        timeout_seconds: Optional[float] = None,
    ):
        self.snapshot_store = snapshot_store
        self.connection_service = connection_service
        self.fallback_datasets = fallback_datasets or default_bridge_fallbacks()
        self.timeout_seconds = (
            settings.registry_connector_timeout_seconds
            if timeout_seconds is None
            else timeout_seconds
        )
        logger.info("🌉 Platform Integration Bridge initialized")

    def _fallback_entry(
        self, platform: ConnectedPlatform, error: str = FALLBACK_ERROR
    ) -> PlatformMetrics:
        try:
            values = self.fallback_datasets.get(platform.platform)
        except KeyError:
            values = {}
        metrics = StandardMetrics(
            **values,
            platform=platform.platform,
            data_type="fallback",
            timestamp=datetime.now(timezone.utc),
            platform_specific={"is_fallback": True},
        )
        return PlatformMetrics(
            platform=platform.platform,
            platform_name=platform.name,
            platform_type=platform_type(platform.platform),
            metrics=metrics,
            quality=DEGRADED_QUALITY,
            freshness=FALLBACK_FRESHNESS,
            error=error,
        )

    async def _load(self, user_id: str, platform: ConnectedPlatform) -> PlatformMetrics:
        snapshot = await self.snapshot_store.latest_snapshot(
            user_id, store_name(platform.platform)
        )
        if snapshot is None:
            logger.info(
                f"🌉 No data found for {platform.platform}, using fallback",
                extra={"platform": platform.platform, "user_id": user_id},
            )
            return self._fallback_entry(platform)

        created_at = snapshot.created_at or datetime.now(timezone.utc)
        metrics = transform_snapshot(snapshot.payload, platform.platform, created_at)
        quality = snapshot.data_quality_score or 1.0
        return PlatformMetrics(
            platform=platform.platform,
            platform_name=platform.name,
            platform_type=platform_type(platform.platform),
            metrics=metrics,
            quality=min(max(quality, 0.0), 1.0),
            freshness=describe_age_compact(created_at),
            last_sync=created_at,
        )

    async def _load_or_fallback(
        self, user_id: str, platform: ConnectedPlatform
    ) -> PlatformMetrics:
        try:
            return await asyncio.wait_for(
                self._load(user_id, platform), timeout=self.timeout_seconds
            )
        except asyncio.TimeoutError:
            logger.error(
                f"🌉 Timed out loading {platform.platform}",
                extra={"platform": platform.platform, "user_id": user_id},
            )
            return self._fallback_entry(
                platform, f"Timed out after {self.timeout_seconds}s"
            )
        except Exception as e:
            logger.error(
                f"🌉 Error fetching data for {platform.platform}: {e}",
                extra={"platform": platform.platform, "user_id": user_id},
            )
            return self._fallback_entry(platform, str(e) or type(e).__name__)

    async def get_unified_platform_data(self, user_id: str) -> UnifiedMetrics:
        """Unified metrics for the user's connected advertising sources."""
        logger.info(f"🌉 Fetching unified data for user {user_id}", extra={"user_id": user_id})
        try:
            connected = await self.connection_service.get_connected_platforms(user_id)
        except Exception as e:
            logger.error(
                f"🌉 Connection lookup failed: {e}", extra={"user_id": user_id}
            )
            return UnifiedMetrics(overall_quality=DEGRADED_QUALITY)

        ad_platforms = [p for p in connected if p.type == "advertising"]
        logger.info(
            f"🌉 Advertising platforms: {[p.name for p in ad_platforms]}",
            extra={"user_id": user_id},
        )

        results: List[PlatformMetrics] = list(
            await asyncio.gather(
                *(self._load_or_fallback(user_id, p) for p in ad_platforms)
            )
        )
        return UnifiedMetrics(
            platforms=results,
            cross_platform_insights=synthesize_cross_platform_insights(results),
            overall_quality=mean_quality(results),
            last_updated=datetime.now(timezone.utc),
            data_freshness={r.platform: r.freshness for r in results},
        )

    async def get_cross_platform_metrics(self, user_id: str) -> CrossPlatformSummary:
        unified = await self.get_unified_platform_data(user_id)
        return summarize_cross_platform_metrics(unified.platforms)

    async def is_platform_connected(self, user_id: str, platform_id: str) -> bool:
        return await self.connection_service.is_platform_connected(user_id, platform_id)

    async def get_connection_counts(self, user_id: str) -> Dict[str, int]:
        return await self.connection_service.get_connection_counts(user_id)

    def clear_cache(self, user_id: str) -> None:
        """Call after a source is connected or disconnected."""
        self.connection_service.clear_user_cache(user_id)


_bridge: Optional[PlatformIntegrationBridge] = None


def get_integration_bridge() -> PlatformIntegrationBridge:
    """Process-wide bridge on the app database."""
    global _bridge
    if _bridge is None:
        from meridian.database import engine
        from meridian.stores.connections import SqlConnectionStatusService
        from meridian.stores.snapshots import SqlSnapshotStore

        _bridge = PlatformIntegrationBridge(
            SqlSnapshotStore(engine), SqlConnectionStatusService(engine)
        )
    return _bridge
