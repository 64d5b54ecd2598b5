"""MERIDIAN — Metrics Snapshot Store.

Read-only access to the latest persisted raw metrics per (user, platform).
"""

import asyncio
import json
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import BaseModel
from sqlalchemy.engine import Engine
from sqlmodel import Session, select

from meridian.models.store_models import CampaignMetricsSnapshot


class MetricsSnapshot(BaseModel):
    """Latest raw payload for a source plus row metadata."""

    payload: Dict[str, Any] = {}
    created_at: Optional[datetime] = None
    data_quality_score: Optional[float] = None


class SnapshotStore(ABC):
    """Abstract snapshot lookup."""

    @abstractmethod
    async def latest_snapshot(
        self, user_id: str, platform: str
    ) -> Optional[MetricsSnapshot]:
        """Return the most recent snapshot, or None when none exists."""
        ...


class SqlSnapshotStore(SnapshotStore):
    """Snapshot lookup against the campaign_metrics table."""

    def __init__(self, engine: Engine):
        self.engine = engine

    def _lookup(self, user_id: str, platform: str) -> Optional[MetricsSnapshot]:
        with Session(self.engine) as session:
            row = session.exec(
                select(CampaignMetricsSnapshot)
                .where(
                    CampaignMetricsSnapshot.user_id == user_id,
                    CampaignMetricsSnapshot.platform == platform,
                )
                .order_by(CampaignMetricsSnapshot.created_at.desc())  # type: ignore
                .limit(1)
            ).first()
        if row is None:
            return None

        payload = json.loads(row.metrics_json or "{}")
        if not isinstance(payload, dict):
            raise ValueError(
                f"Snapshot {row.id} for {platform} is not a JSON object"
            )
        created_at = row.created_at
        if created_at is not None and created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=timezone.utc)
        return MetricsSnapshot(
            payload=payload,
            created_at=created_at,
            data_quality_score=row.data_quality_score,
        )

    async def latest_snapshot(
        self, user_id: str, platform: str
    ) -> Optional[MetricsSnapshot]:
        return await asyncio.to_thread(self._lookup, user_id, platform)
