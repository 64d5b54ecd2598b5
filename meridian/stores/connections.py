"""MERIDIAN — Connection Status Service.

Lists the sources a user has connected, classified as messaging or
advertising. Results are cached per user for a short window; callers
clear the cache after connecting or disconnecting a source.
"""

import asyncio
import time
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel
from sqlalchemy.engine import Engine
from sqlmodel import Session, select

from meridian.config import settings
from meridian.core.logging import get_logger
from meridian.models.store_models import PlatformConnection

logger = get_logger("stores.connections")


class ConnectedPlatform(BaseModel):
    id: str
    name: str
    platform: str
    type: str  # "messaging" | "advertising"
    connected: bool = True
    last_sync: Optional[datetime] = None


class ConnectionStatusService(ABC):
    """Abstract connection-status lookup with shared helpers."""

    @abstractmethod
    async def get_connected_platforms(self, user_id: str) -> List[ConnectedPlatform]:
        ...

    async def get_connected_platforms_by_type(
        self, user_id: str, platform_type: str
    ) -> List[ConnectedPlatform]:
        platforms = await self.get_connected_platforms(user_id)
        return [p for p in platforms if p.type == platform_type]

    async def is_platform_connected(self, user_id: str, platform: str) -> bool:
        platforms = await self.get_connected_platforms(user_id)
        return any(p.platform == platform and p.connected for p in platforms)

    async def get_connection_counts(self, user_id: str) -> Dict[str, int]:
        platforms = await self.get_connected_platforms(user_id)
        messaging = sum(1 for p in platforms if p.type == "messaging" and p.connected)
        advertising = sum(
            1 for p in platforms if p.type == "advertising" and p.connected
        )
        return {
            "messaging": messaging,
            "advertising": advertising,
            "total": messaging + advertising,
        }

    def clear_user_cache(self, user_id: str) -> None:
        """Drop any cached state for a user. No-op without a cache."""


class SqlConnectionStatusService(ConnectionStatusService):
    """Connection status from the platform_connections table."""

    def __init__(self, engine: Engine, cache_seconds: Optional[int] = None):
        self.engine = engine
        self.cache_seconds = (
            settings.connection_cache_seconds if cache_seconds is None else cache_seconds
        )
        self._cache: Dict[str, Tuple[float, List[ConnectedPlatform]]] = {}

    def _query(self, user_id: str) -> List[ConnectedPlatform]:
        with Session(self.engine) as session:
            rows = session.exec(
                select(PlatformConnection).where(
                    PlatformConnection.user_id == user_id,
                    PlatformConnection.connected == True,  # noqa: E712
                )
            ).all()
        return [
            ConnectedPlatform(
                id=str(row.id),
                name=row.name or row.platform,
                platform=row.platform,
                type=row.type,
                connected=row.connected,
                last_sync=row.last_sync,
            )
            for row in rows
        ]

    async def get_connected_platforms(self, user_id: str) -> List[ConnectedPlatform]:
        now = time.monotonic()
        self._evict_expired(now)
        cached = self._cache.get(user_id)
        if cached:
            return list(cached[1])

        platforms = await asyncio.to_thread(self._query, user_id)
        self._cache[user_id] = (time.monotonic() + self.cache_seconds, platforms)
        logger.info(
            f"Loaded {len(platforms)} connections for user {user_id}",
            extra={"user_id": user_id},
        )
        return list(platforms)

    def _evict_expired(self, now: float) -> None:
        expired = [uid for uid, (expires, _) in self._cache.items() if expires <= now]
        for uid in expired:
            del self._cache[uid]

    def clear_user_cache(self, user_id: str) -> None:
        self._cache.pop(user_id, None)
