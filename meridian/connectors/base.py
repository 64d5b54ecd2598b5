"""MERIDIAN — Platform Connector Contract.

Every data source implements the same capability set: authenticate, fetch
the latest raw snapshot, normalize it into StandardMetrics, validate it,
describe its freshness, and render chart/narration outputs. Concrete
connectors mostly declare tables (aliases, primary metrics, keywords); the
behavior lives here so the registry only ever depends on this class.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Mapping, Optional, Sequence

from meridian.connectors.fallback import (
    FallbackDatasets,
    RawPayload,
    default_connector_fallbacks,
)
from meridian.core.field_mapping import (
    FieldMap,
    apply_field_map,
    coalesce,
    extract_timestamp,
)
from meridian.core.freshness import describe_age
from meridian.core.logging import get_logger
from meridian.core.metric_registry import in_range
from meridian.models.canonical import (
    ChartConfig,
    ChartData,
    ChartDataset,
    ConnectorCapabilities,
    ConnectorDescriptor,
    Insight,
    InsightType,
    PlatformType,
    QuickAction,
    StandardMetrics,
    ValidationResult,
)
from meridian.stores.credentials import CredentialStore
from meridian.stores.snapshots import SnapshotStore

logger = get_logger("connectors")


def fmt_number(value: Optional[float], decimals: int = 0) -> str:
    """Thousands-separated number, 0 when missing."""
    return f"{(value or 0):,.{decimals}f}"


class PlatformConnector(ABC):
    """Abstract base for a single data source."""

    # ── Identity ──
    id: str = ""
    name: str = ""
    type: PlatformType = PlatformType.ADVERTISING
    version: str = "1.0.0"
    capabilities: ConnectorCapabilities = ConnectorCapabilities()

    # ── Store keys & normalization tables ──
    store_key: str = ""  # platform column in oauth_tokens / campaign_metrics
    data_type: str = "advertising"
    default_currency: Optional[str] = "USD"
    field_map: FieldMap = {}
    extended_field_map: FieldMap = {}
    primary_metrics: Mapping[str, str] = {}  # metric → label used in issues

    # ── Presentation metadata ──
    recent_label: str = "Just synced"
    brand_color: str = "#4F46E5"
    relevance_keywords: Sequence[str] = ()
    supported_metrics: Sequence[str] = ()
    default_chart_types: Sequence[str] = ("line", "bar")
    optimal_date_ranges: Sequence[str] = ("7d", "30d", "90d")

    def __init__(
        self,
        credential_store: Optional[CredentialStore] = None,
        snapshot_store: Optional[SnapshotStore] = None,
        fallback_datasets: Optional[FallbackDatasets] = None,
    ):
        self.credential_store = credential_store
        self.snapshot_store = snapshot_store
        self.fallback_datasets = fallback_datasets or default_connector_fallbacks()

    def __repr__(self) -> str:
        return f"<Connector {self.id} ({self.type.value})>"

    @property
    def descriptor(self) -> ConnectorDescriptor:
        return ConnectorDescriptor(
            id=self.id,
            name=self.name,
            type=self.type,
            version=self.version,
            capabilities=self.capabilities,
            supported_metrics=self.get_supported_metrics(),
            default_chart_types=self.get_default_chart_types(),
            optimal_date_ranges=self.get_optimal_date_ranges(),
        )

    # ── Authentication ──

    async def authenticate(self, user_id: str) -> bool:
        """True when a non-expired credential is stored for this user."""
        if self.credential_store is None:
            return False
        try:
            credential = await self.credential_store.get_credential(
                user_id, self.store_key
            )
        except Exception as e:
            logger.error(
                f"{self.name} auth check failed: {e}",
                extra={"platform": self.id, "user_id": user_id},
            )
            return False

        if credential is None or not credential.access_token:
            return False
        return not credential.is_expired()

    async def is_authenticated(self, user_id: str) -> bool:
        return await self.authenticate(user_id)

    # ── Data operations ──

    def get_fallback_data(self) -> RawPayload:
        return self.fallback_datasets.get(self.id)

    async def fetch_data(self, user_id: str) -> RawPayload:
        """Latest stored raw snapshot, or the fallback payload."""
        if self.snapshot_store is None:
            return self.get_fallback_data()
        try:
            snapshot = await self.snapshot_store.latest_snapshot(
                user_id, self.store_key
            )
        except Exception as e:
            logger.error(
                f"{self.name} data fetch failed: {e}",
                extra={"platform": self.id, "user_id": user_id},
            )
            return self.get_fallback_data()

        if snapshot is None or not snapshot.payload:
            return self.get_fallback_data()

        payload = dict(snapshot.payload)
        if snapshot.created_at is not None and "timestamp" not in payload:
            payload.setdefault("synced_at", snapshot.created_at.isoformat())
        return payload

    def _defaults(self, field_map: FieldMap) -> Dict[str, Optional[float]]:
        """Per-field defaults taken from this source's fallback payload."""
        return apply_field_map(self.get_fallback_data(), field_map)

    def _derive(
        self, values: Dict[str, Optional[float]], raw: Mapping[str, Any]
    ) -> Dict[str, Optional[float]]:
        """Hook for fields computed from other fields. Identity by default."""
        return values

    def _derive_extended(
        self, extended: Dict[str, Optional[float]], raw: Mapping[str, Any]
    ) -> Dict[str, Optional[float]]:
        return extended

    def transform_to_standard_format(self, raw: Mapping[str, Any]) -> StandardMetrics:
        values = apply_field_map(raw, self.field_map, self._defaults(self.field_map))
        values = self._derive(values, raw)

        extended = apply_field_map(
            raw, self.extended_field_map, self._defaults(self.extended_field_map)
        )
        extended = self._derive_extended(extended, raw)

        # Out-of-range values are left unset; validate_data reports them
        values = {k: v if v is None or in_range(k, v) else None for k, v in values.items()}
        extended = {k: v for k, v in extended.items() if v is not None and in_range(k, v)}

        return StandardMetrics(
            **values,
            platform=self.id,
            data_type=self.data_type,
            timestamp=extract_timestamp(raw),
            currency=raw.get("currency") or self.default_currency,
            extended=extended,
            platform_specific=dict(raw),
        )

    def build_fallback_metrics(self) -> StandardMetrics:
        """Canonical metrics synthesized from the fallback payload."""
        metrics = self.transform_to_standard_format(self.get_fallback_data())
        return metrics.model_copy(
            update={"data_type": "fallback", "platform_specific": {"is_fallback": True}}
        )

    # ── Health ──

    def validate_data(self, data: StandardMetrics) -> ValidationResult:
        """Presence of primary metrics and range of the reported values."""
        issues: List[str] = []
        try:
            for metric, label in self.primary_metrics.items():
                if not data.value_of(metric):
                    issues.append(f"No {label} data available")
            mapped = {**self.field_map, **self.extended_field_map}
            for field, aliases in mapped.items():
                value = coalesce(data.platform_specific, aliases)
                if value is not None and not in_range(field, value):
                    issues.append(f"Invalid {field.replace('_', ' ')}")
        except Exception as e:
            issues.append(f"Validation error: {e}")
        return ValidationResult(is_valid=not issues, issues=issues)

    def get_data_freshness(self, data: StandardMetrics) -> str:
        return describe_age(data.timestamp, self.recent_label)

    # ── Metadata ──

    def get_supported_metrics(self) -> List[str]:
        return list(self.supported_metrics)

    def get_default_chart_types(self) -> List[str]:
        return list(self.default_chart_types)

    def get_optimal_date_ranges(self) -> List[str]:
        return list(self.optimal_date_ranges)

    # ── Chart & narration outputs ──

    def _insight(
        self,
        insight_type: InsightType,
        title: str,
        description: str,
        confidence: float,
        value: Optional[float] = None,
    ) -> Insight:
        return Insight(
            type=insight_type,
            title=title,
            description=description,
            confidence=confidence,
            value=value,
            platforms=[self.id],
        )

    def _chart(
        self,
        chart_type: str,
        labels: List[str],
        values: List[Optional[float]],
        insight: Insight,
        quick_actions: List[QuickAction],
        dataset_label: str = "",
        colors: Optional[List[str]] = None,
        narration: Optional[str] = None,
    ) -> ChartConfig:
        dataset = ChartDataset(
            label=dataset_label,
            data=[round(v or 0, 2) for v in values],
            border_color=self.brand_color if chart_type in ("line", "area") else None,
            background_color=colors or self.brand_color,
        )
        if chart_type in ("pie", "doughnut"):
            options: Dict[str, Any] = {
                "responsive": True,
                "plugins": {"legend": {"position": "bottom"}},
            }
        else:
            options = {"responsive": True, "scales": {"y": {"beginAtZero": True}}}
        return ChartConfig(
            type=chart_type,
            data=ChartData(labels=labels, datasets=[dataset]),
            options=options,
            insights=[insight],
            voice_narration=narration or insight.description,
            quick_actions=quick_actions,
        )

    @staticmethod
    def _weekly_series(total: Optional[float]) -> List[float]:
        """Four-week ramp ending at the period total."""
        total = total or 0
        return [round(total * 0.8), round(total * 0.9), round(total * 1.1), total]

    @abstractmethod
    def generate_chart_config(self, metrics: StandardMetrics, query: str) -> ChartConfig:
        """Pick a chart variant for the query and fill it from metrics."""
        ...

    @abstractmethod
    def summary_sentence(self, metrics: StandardMetrics) -> str:
        """One or two sentences summarizing the period for narration."""
        ...

    def generate_voice_narration(
        self, metrics: StandardMetrics, insights: List[Insight]
    ) -> str:
        narration = self.summary_sentence(metrics)
        if insights:
            narration += f" {insights[0].description}"
        return narration


class AdPlatformConnector(PlatformConnector):
    """Shared normalization for paid-media sources."""

    type = PlatformType.ADVERTISING
    data_type = "advertising"
    capabilities = ConnectorCapabilities(
        real_time_data=True,
        historical_data=True,
        predictive_analytics=False,
        cross_platform_correlation=True,
    )
    default_chart_types = ("line", "bar", "doughnut", "pie")

    def _derive(
        self, values: Dict[str, Optional[float]], raw: Mapping[str, Any]
    ) -> Dict[str, Optional[float]]:
        aliases = self.field_map.get("cost_per_conversion", ())
        if coalesce(raw, aliases) is None:
            spend, conversions = values.get("spend"), values.get("conversions")
            values["cost_per_conversion"] = (
                round(spend / conversions, 2) if spend is not None and conversions else None
            )
        return values
