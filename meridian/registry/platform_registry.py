"""MERIDIAN — Platform Registry.

Holds the registered connectors, discovers which ones a user has
authenticated, ranks them against a free-text query, and fans out one task
per connector to build a UnifiedMetrics result.

Flow per connector: fetch → transform → validate. Any exception or timeout
inside a task is replaced by that connector's fallback entry, so a broken
source only degrades its own row and the aggregate call always returns.

Registration is a startup-time operation; it must not run concurrently
with an in-flight aggregation.
"""

import asyncio
import time
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Sequence

from pydantic import BaseModel

from meridian.config import Settings, settings
from meridian.connectors.base import PlatformConnector
from meridian.connectors.facebook_ads import FacebookAdsConnector
from meridian.connectors.fallback import FallbackDatasets
from meridian.connectors.google_ads import GoogleAdsConnector
from meridian.connectors.google_analytics import GoogleAnalyticsConnector
from meridian.connectors.mixpanel import MixpanelConnector
from meridian.connectors.shopify import ShopifyConnector
from meridian.connectors.tiktok_ads import TikTokAdsConnector
from meridian.core.insights import mean_quality, synthesize_cross_platform_insights
from meridian.core.logging import get_logger
from meridian.models.canonical import (
    ChartConfig,
    PlatformMetrics,
    PlatformType,
    StandardMetrics,
    UnifiedChartResult,
    UnifiedMetrics,
)
from meridian.stores.credentials import CredentialStore
from meridian.stores.snapshots import SnapshotStore

logger = get_logger("registry")

FALLBACK_FRESHNESS = "Error - using fallback data"
QUALITY_VALID = 1.0
QUALITY_INVALID = 0.7
QUALITY_FALLBACK = 0.5


class RegistryConfig(BaseModel):
    """Toggles consulted by the registry.

    cache_timeout_seconds, max_retries and fallback_to_mock_data are
    carried for callers; the registry itself keeps no cache and performs a
    single fallback substitution instead of retrying.
    """

    enable_auto_discovery: bool = True
    fallback_to_mock_data: bool = True
    cache_timeout_seconds: int = 300
    max_retries: int = 3
    enable_cross_platform_analysis: bool = True
    voice_narration_enabled: bool = True
    connector_timeout_seconds: Optional[float] = 10.0

    @classmethod
    def from_settings(cls, source: Settings = settings) -> "RegistryConfig":
        return cls(
            enable_auto_discovery=source.registry_enable_auto_discovery,
            fallback_to_mock_data=source.registry_fallback_to_mock_data,
            cache_timeout_seconds=source.registry_cache_timeout_seconds,
            max_retries=source.registry_max_retries,
            enable_cross_platform_analysis=source.registry_enable_cross_platform_analysis,
            voice_narration_enabled=source.registry_voice_narration_enabled,
            connector_timeout_seconds=source.registry_connector_timeout_seconds,
        )


class PlatformRegistry:
    """Registry and orchestrator for platform connectors."""

    def __init__(
        self,
        connectors: Optional[Iterable[PlatformConnector]] = None,
        config: Optional[RegistryConfig] = None,
    ):
        self.config = config or RegistryConfig.from_settings()
        self._connectors: Dict[str, PlatformConnector] = {}
        for connector in connectors or []:
            self.register(connector)
        logger.info(f"🔌 Platform Registry initialized with {len(self._connectors)} connectors")

    # ── Registration ──

    def register(self, connector: PlatformConnector) -> None:
        """Register a connector. An existing id is replaced."""
        if connector.id in self._connectors:
            logger.warning(
                f"🔌 Replacing registered platform {connector.id}",
                extra={"platform": connector.id},
            )
        self._connectors[connector.id] = connector
        logger.info(
            f"🔌 Registered platform: {connector.name} ({connector.id}), "
            f"type={connector.type.value}",
            extra={"platform": connector.id},
        )

    def unregister(self, platform_id: str) -> bool:
        removed = self._connectors.pop(platform_id, None) is not None
        if removed:
            logger.info(f"🔌 Unregistered platform: {platform_id}")
        return removed

    def get(self, platform_id: str) -> Optional[PlatformConnector]:
        return self._connectors.get(platform_id)

    def get_all(self) -> List[PlatformConnector]:
        return list(self._connectors.values())

    def get_by_type(self, platform_type: PlatformType) -> List[PlatformConnector]:
        return [c for c in self._connectors.values() if c.type == platform_type]

    # ── Discovery & selection ──

    async def get_connected_platforms(self, user_id: str) -> List[PlatformConnector]:
        """Connectors whose credential check passes, in registration order."""
        connectors = self.get_all()
        results = await asyncio.gather(
            *(c.is_authenticated(user_id) for c in connectors),
            return_exceptions=True,
        )

        connected: List[PlatformConnector] = []
        for connector, result in zip(connectors, results):
            if isinstance(result, BaseException):
                logger.warning(
                    f"🔌 Error checking authentication for {connector.id}: {result}",
                    extra={"platform": connector.id, "user_id": user_id},
                )
                continue
            if result:
                connected.append(connector)

        logger.info(
            f"🔌 Found {len(connected)} connected platforms for user {user_id}",
            extra={"user_id": user_id},
        )
        return connected

    def select_relevant_platforms(
        self, query: str, connected: Sequence[PlatformConnector]
    ) -> List[PlatformConnector]:
        """Rank connected sources by keyword hits in the query.

        No hits at all means the query is broad: every connected source
        is returned unchanged.
        """
        connected = list(connected)
        if not connected:
            return []

        query_lower = query.lower()
        scored = [
            (c, sum(1 for kw in c.relevance_keywords if kw in query_lower))
            for c in connected
        ]
        # sorted() is stable, so equal scores keep the connected order
        scored = sorted(scored, key=lambda item: item[1], reverse=True)

        if scored[0][1] == 0:
            return connected

        relevant = [c for c, score in scored if score > 0]
        return relevant or [scored[0][0]]

    # ── Aggregation ──

    async def _collect(self, connector: PlatformConnector, user_id: str) -> PlatformMetrics:
        raw = await connector.fetch_data(user_id)
        metrics = connector.transform_to_standard_format(raw)
        validation = connector.validate_data(metrics)

        if not validation.is_valid:
            logger.warning(
                f"🔌 Data validation failed for {connector.name}: {validation.issues}",
                extra={"platform": connector.id, "user_id": user_id},
            )

        return PlatformMetrics(
            platform=connector.id,
            platform_name=connector.name,
            platform_type=connector.type,
            metrics=metrics,
            quality=QUALITY_VALID if validation.is_valid else QUALITY_INVALID,
            freshness=connector.get_data_freshness(metrics),
            last_sync=metrics.timestamp,
            validation_issues=validation.issues,
        )

    def _fallback_entry(self, connector: PlatformConnector, error: str) -> PlatformMetrics:
        try:
            metrics = connector.build_fallback_metrics()
        except Exception as e:
            logger.error(
                f"🔌 Fallback dataset unusable for {connector.id}: {e}",
                extra={"platform": connector.id},
            )
            metrics = StandardMetrics(
                platform=connector.id,
                data_type="fallback",
                timestamp=datetime.now(timezone.utc),
                platform_specific={"is_fallback": True},
            )
        return PlatformMetrics(
            platform=connector.id,
            platform_name=connector.name,
            platform_type=connector.type,
            metrics=metrics,
            quality=QUALITY_FALLBACK,
            freshness=FALLBACK_FRESHNESS,
            error=error,
        )

    async def _fetch_platform(
        self, connector: PlatformConnector, user_id: str
    ) -> PlatformMetrics:
        started = time.perf_counter()
        timeout = self.config.connector_timeout_seconds
        try:
            result = await asyncio.wait_for(
                self._collect(connector, user_id), timeout=timeout
            )
        except asyncio.TimeoutError:
            error = f"Timed out after {timeout}s"
        except Exception as e:
            error = str(e) or e.__class__.__name__
        else:
            logger.info(
                f"🔌 Fetched {connector.name}",
                extra={
                    "platform": connector.id,
                    "user_id": user_id,
                    "quality": result.quality,
                    "duration_ms": round((time.perf_counter() - started) * 1000, 1),
                },
            )
            return result

        logger.error(
            f"🔌 Error fetching data from {connector.name}: {error}",
            extra={"platform": connector.id, "user_id": user_id},
        )
        return self._fallback_entry(connector, error)

    async def _aggregate(
        self, user_id: str, targets: Sequence[PlatformConnector]
    ) -> UnifiedMetrics:
        logger.info(
            f"🔌 Target platforms: {[c.name for c in targets]}",
            extra={"user_id": user_id},
        )
        results = list(
            await asyncio.gather(*(self._fetch_platform(c, user_id) for c in targets))
        )

        overall_quality = mean_quality(results)
        insights = (
            synthesize_cross_platform_insights(results)
            if self.config.enable_cross_platform_analysis
            else []
        )

        logger.info(
            f"🔌 Unified data fetch complete. Quality: {overall_quality * 100:.1f}%",
            extra={"user_id": user_id, "quality": overall_quality},
        )
        return UnifiedMetrics(
            platforms=results,
            cross_platform_insights=insights,
            overall_quality=overall_quality,
            last_updated=datetime.now(timezone.utc),
            data_freshness={r.platform: r.freshness for r in results},
        )

    async def _resolve_targets(
        self, user_id: str, platform_ids: Optional[Sequence[str]]
    ) -> List[PlatformConnector]:
        if platform_ids:
            found = [self.get(pid) for pid in platform_ids]
            return [c for c in found if c is not None]
        if self.config.enable_auto_discovery:
            return await self.get_connected_platforms(user_id)
        return self.get_all()

    async def fetch_unified_data(
        self, user_id: str, platform_ids: Optional[Sequence[str]] = None
    ) -> UnifiedMetrics:
        """Fetch, normalize and aggregate metrics for the target connectors.

        Explicit ids are looked up (unknown ids dropped); otherwise the
        user's connected sources are used.
        """
        targets = await self._resolve_targets(user_id, platform_ids)
        return await self._aggregate(user_id, targets)

    async def generate_unified_chart(
        self,
        user_id: str,
        query: str,
        platform_ids: Optional[Sequence[str]] = None,
    ) -> UnifiedChartResult:
        """Select sources for the query, aggregate, and chart each one."""
        candidates = await self._resolve_targets(user_id, platform_ids)
        relevant = self.select_relevant_platforms(query, candidates)
        unified = await self._aggregate(user_id, relevant)

        charts: Dict[str, ChartConfig] = {}
        for entry in unified.platforms:
            connector = self.get(entry.platform)
            if connector is None:
                continue
            try:
                chart = connector.generate_chart_config(entry.metrics, query)
            except Exception as e:
                logger.error(
                    f"🔌 Chart generation failed for {connector.id}: {e}",
                    extra={"platform": connector.id, "user_id": user_id},
                )
                continue
            if not self.config.voice_narration_enabled:
                chart = chart.model_copy(update={"voice_narration": ""})
            charts[entry.platform] = chart

        narration = ""
        if self.config.voice_narration_enabled:
            parts = [c.voice_narration for c in charts.values() if c.voice_narration]
            if unified.cross_platform_insights:
                parts.append(unified.cross_platform_insights[0].description)
            narration = " ".join(parts)

        return UnifiedChartResult(
            query=query,
            platforms_used=[c.id for c in relevant],
            charts=charts,
            unified=unified,
            voice_narration=narration,
        )

    # ── Introspection ──

    def get_stats(self) -> dict:
        by_type: Dict[str, int] = {}
        for connector in self._connectors.values():
            by_type[connector.type.value] = by_type.get(connector.type.value, 0) + 1
        return {
            "total_platforms": len(self._connectors),
            "platforms_by_type": by_type,
            "config": self.config.model_dump(),
            "registered_platforms": [
                c.descriptor.model_dump(mode="json") for c in self._connectors.values()
            ],
        }


# ─────────────────────────────────────────────
# PROCESS-WIDE REGISTRY
# ─────────────────────────────────────────────


def builtin_connectors(
    credential_store: Optional[CredentialStore] = None,
    snapshot_store: Optional[SnapshotStore] = None,
    fallback_datasets: Optional[FallbackDatasets] = None,
) -> List[PlatformConnector]:
    """One instance of every built-in connector, sharing the given stores."""
    classes = (
        GoogleAdsConnector,
        FacebookAdsConnector,
        TikTokAdsConnector,
        GoogleAnalyticsConnector,
        MixpanelConnector,
        ShopifyConnector,
    )
    return [
        cls(
            credential_store=credential_store,
            snapshot_store=snapshot_store,
            fallback_datasets=fallback_datasets,
        )
        for cls in classes
    ]


_registry: Optional[PlatformRegistry] = None


def init_platform_registry(
    connectors: Optional[Iterable[PlatformConnector]] = None,
    config: Optional[RegistryConfig] = None,
) -> PlatformRegistry:
    """Build the process-wide registry. Built-ins on the app database by default."""
    global _registry
    if connectors is None:
        from meridian.database import engine
        from meridian.stores.credentials import SqlCredentialStore
        from meridian.stores.snapshots import SqlSnapshotStore

        connectors = builtin_connectors(
            credential_store=SqlCredentialStore(engine),
            snapshot_store=SqlSnapshotStore(engine),
        )
    _registry = PlatformRegistry(connectors, config)
    return _registry


def get_platform_registry() -> PlatformRegistry:
    """Process-wide registry, initialized with the built-ins on first use."""
    if _registry is None:
        return init_platform_registry()
    return _registry
