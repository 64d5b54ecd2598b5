"""MERIDIAN — Persisted Store Models.

Tables read by the connectors and the integration bridge. They are written
by the credential-acquisition flow and the sync jobs, both of which live
outside this service; MERIDIAN only ever reads them.
"""

from datetime import datetime, timezone
from typing import Optional
from sqlmodel import SQLModel, Field


class OAuthToken(SQLModel, table=True):
    """Stored credential for a (user, platform) pair."""

    __tablename__ = "oauth_tokens"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: str = Field(index=True)
    platform: str = Field(index=True, description="Store key, e.g. facebook_ads")
    access_token: str = Field(default="")
    expires_at: Optional[datetime] = Field(default=None)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class CampaignMetricsSnapshot(SQLModel, table=True):
    """Raw metrics snapshot for a (user, platform) at a point in time.

    Never modify this data; the latest row per (user, platform) is the
    source of truth for reads.
    """

    __tablename__ = "campaign_metrics"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: str = Field(index=True)
    platform: str = Field(index=True, description="Store key, e.g. google_ads")
    metrics_json: str = Field(default="{}", description="Full raw JSON payload")
    data_quality_score: Optional[float] = Field(default=None)
    freshness_hours: Optional[float] = Field(default=None)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc), index=True
    )


class PlatformConnection(SQLModel, table=True):
    """A source the user has connected, as recorded by the connection wizard."""

    __tablename__ = "platform_connections"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: str = Field(index=True)
    platform: str = Field(description="Connection key, e.g. meta_ads")
    name: str = Field(default="", description="Human-readable name")
    type: str = Field(default="advertising", description="messaging | advertising")
    connected: bool = Field(default=True)
    last_sync: Optional[datetime] = Field(default=None)
