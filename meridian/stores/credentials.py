"""MERIDIAN — Credential Store.

Read-only lookup of the access token stored for a (user, platform) pair.
"""

import asyncio
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel
from sqlalchemy.engine import Engine
from sqlmodel import Session, select

from meridian.models.store_models import OAuthToken


class Credential(BaseModel):
    access_token: str
    expires_at: Optional[datetime] = None

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        if self.expires_at is None:
            return False
        now = now or datetime.now(timezone.utc)
        expires_at = self.expires_at
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        return expires_at < now


class CredentialStore(ABC):
    """Abstract credential lookup."""

    @abstractmethod
    async def get_credential(self, user_id: str, platform: str) -> Optional[Credential]:
        """Return the stored credential, or None when absent."""
        ...


class SqlCredentialStore(CredentialStore):
    """Credential lookup against the oauth_tokens table."""

    def __init__(self, engine: Engine):
        self.engine = engine

    def _lookup(self, user_id: str, platform: str) -> Optional[Credential]:
        with Session(self.engine) as session:
            token = session.exec(
                select(OAuthToken)
                .where(
                    OAuthToken.user_id == user_id,
                    OAuthToken.platform == platform,
                )
                .order_by(OAuthToken.created_at.desc())  # type: ignore
                .limit(1)
            ).first()
        if token is None:
            return None
        return Credential(access_token=token.access_token, expires_at=token.expires_at)

    async def get_credential(self, user_id: str, platform: str) -> Optional[Credential]:
        return await asyncio.to_thread(self._lookup, user_id, platform)
