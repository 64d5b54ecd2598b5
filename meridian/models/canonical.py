"""MERIDIAN — Canonical Metric Models (Universal Schema).

Every connector normalizes into StandardMetrics; the registry and the
integration bridge wrap them in PlatformMetrics and aggregate into
UnifiedMetrics. Adding a new source requires zero schema changes.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from meridian.core.metric_registry import CANONICAL_METRICS, in_range


class PlatformType(str, Enum):
    """Semantic classification of a data source."""

    ADVERTISING = "advertising"
    ANALYTICS = "analytics"
    SOCIAL = "social"
    ECOMMERCE = "ecommerce"
    CRM = "crm"
    EMAIL = "email"
    SMS = "sms"


class InsightType(str, Enum):
    TREND = "trend"
    CORRELATION = "correlation"
    ANOMALY = "anomaly"
    RECOMMENDATION = "recommendation"
    BENCHMARK = "benchmark"


# ─────────────────────────────────────────────
# STANDARD METRICS: the canonical record
# ─────────────────────────────────────────────


class StandardMetrics(BaseModel):
    """Universal metric record for one source.

    Immutable once constructed. Rate fields lie in [0, 100]; every other
    numeric field is non-negative. Construction fails otherwise.
    """

    model_config = ConfigDict(frozen=True)

    impressions: Optional[float] = None
    clicks: Optional[float] = None
    conversions: Optional[float] = None
    spend: Optional[float] = None
    revenue: Optional[float] = None
    users: Optional[float] = None
    sessions: Optional[float] = None
    page_views: Optional[float] = None
    engagement_rate: Optional[float] = None
    conversion_rate: Optional[float] = None
    cost_per_click: Optional[float] = None
    cost_per_conversion: Optional[float] = None
    return_on_ad_spend: Optional[float] = None
    click_through_rate: Optional[float] = None

    platform: str = Field(min_length=1)
    data_type: str
    timestamp: datetime
    currency: Optional[str] = None

    extended: Dict[str, float] = Field(
        default_factory=dict,
        description="Source-specific canonical metrics: reach, orders, video_views",
    )
    platform_specific: Dict[str, Any] = Field(
        default_factory=dict, description="Untransformed source payload"
    )

    @field_validator("timestamp")
    @classmethod
    def _ensure_aware(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @model_validator(mode="after")
    def _check_ranges(self) -> "StandardMetrics":
        values = [(name, getattr(self, name)) for name in CANONICAL_METRICS]
        for name, value in [*values, *self.extended.items()]:
            if value is not None and not in_range(name, value):
                raise ValueError(f"{name} out of range, got {value}")
        return self

    def value_of(self, name: str) -> Optional[float]:
        """Return a canonical or extended metric by name."""
        if name in self.extended:
            return self.extended[name]
        return getattr(self, name, None)


class ValidationResult(BaseModel):
    """Outcome of a connector's data sanity check."""

    is_valid: bool
    issues: List[str] = []


# ─────────────────────────────────────────────
# INSIGHTS & CHARTS
# ─────────────────────────────────────────────


class Insight(BaseModel):
    """A structured observation derived from one or more sources."""

    type: InsightType
    title: str
    description: str
    value: Optional[float] = None
    confidence: float = Field(ge=0.0, le=1.0)
    platforms: List[str] = []
    metadata: Dict[str, Any] = {}


class QuickAction(BaseModel):
    """Follow-up action suggested alongside a chart."""

    label: str
    action: str
    type: str  # "diagnostic" | "prescriptive" | "predictive"


class ChartDataset(BaseModel):
    label: str = ""
    data: List[float] = []
    border_color: Optional[str] = None
    background_color: Optional[str | List[str]] = None


class ChartData(BaseModel):
    labels: List[str] = []
    datasets: List[ChartDataset] = []


class ChartConfig(BaseModel):
    """Rendering-oriented output a connector supplies for its metrics."""

    type: str  # "line" | "bar" | "pie" | "doughnut" | "scatter" | "area" | "gauge"
    data: ChartData
    options: Dict[str, Any] = {}
    insights: List[Insight] = []
    voice_narration: str = ""
    quick_actions: List[QuickAction] = []


# ─────────────────────────────────────────────
# CONNECTOR DESCRIPTOR
# ─────────────────────────────────────────────


class ConnectorCapabilities(BaseModel):
    real_time_data: bool = False
    historical_data: bool = False
    predictive_analytics: bool = False
    cross_platform_correlation: bool = False


class ConnectorDescriptor(BaseModel):
    """Static identity of a connector. Descriptive metadata only."""

    id: str
    name: str
    type: PlatformType
    version: str
    capabilities: ConnectorCapabilities
    supported_metrics: List[str] = []
    default_chart_types: List[str] = []
    optimal_date_ranges: List[str] = []


# ─────────────────────────────────────────────
# AGGREGATION OUTPUT
# ─────────────────────────────────────────────


class PlatformMetrics(BaseModel):
    """One source's metrics plus orchestration metadata."""

    platform: str
    platform_name: str
    platform_type: PlatformType
    metrics: StandardMetrics
    quality: float = Field(ge=0.0, le=1.0)
    freshness: str
    error: Optional[str] = None
    last_sync: Optional[datetime] = None
    validation_issues: List[str] = []


class UnifiedMetrics(BaseModel):
    """Aggregated result handed to the presentation layer."""

    platforms: List[PlatformMetrics] = []
    cross_platform_insights: List[Insight] = []
    overall_quality: float = 0.0
    last_updated: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    data_freshness: Dict[str, str] = {}


class UnifiedChartResult(BaseModel):
    """Charts for the sources relevant to a query, over one aggregation."""

    query: str
    platforms_used: List[str] = []
    charts: Dict[str, ChartConfig] = {}
    unified: UnifiedMetrics = Field(default_factory=UnifiedMetrics)
    voice_narration: str = ""


class PlatformBreakdown(BaseModel):
    spend: float = 0.0
    conversions: float = 0.0
    conversion_rate: float = 0.0
    quality: float = 0.0


class CrossPlatformSummary(BaseModel):
    """Totals and per-source averages over an aggregated result."""

    total_spend: float = 0.0
    total_conversions: float = 0.0
    total_impressions: float = 0.0
    total_clicks: float = 0.0
    total_users: float = 0.0
    total_sessions: float = 0.0
    average_conversion_rate: float = 0.0
    average_cost_per_click: float = 0.0
    platform_breakdown: Dict[str, PlatformBreakdown] = {}
