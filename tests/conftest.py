"""Shared fixtures: in-memory stores and an isolated SQLite engine."""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, create_engine

import meridian.models.store_models  # noqa: F401
from meridian.stores.connections import ConnectedPlatform, ConnectionStatusService
from meridian.stores.credentials import Credential, CredentialStore
from meridian.stores.snapshots import MetricsSnapshot, SnapshotStore


class InMemoryCredentialStore(CredentialStore):
    def __init__(self):
        self.credentials = {}

    def add(self, user_id, platform, token="token", expires_at=None):
        self.credentials[(user_id, platform)] = Credential(
            access_token=token, expires_at=expires_at
        )

    async def get_credential(self, user_id, platform):
        return self.credentials.get((user_id, platform))


class InMemorySnapshotStore(SnapshotStore):
    def __init__(self):
        self.snapshots = {}

    def add(self, user_id, platform, payload, created_at=None, quality=None):
        self.snapshots[(user_id, platform)] = MetricsSnapshot(
            payload=payload,
            created_at=created_at or datetime.now(timezone.utc),
            data_quality_score=quality,
        )

    async def latest_snapshot(self, user_id, platform):
        return self.snapshots.get((user_id, platform))


class InMemoryConnectionService(ConnectionStatusService):
    def __init__(self, platforms=None):
        self.platforms = list(platforms or [])
        self.cleared = []

    async def get_connected_platforms(self, user_id):
        return list(self.platforms)

    def clear_user_cache(self, user_id):
        self.cleared.append(user_id)


@pytest.fixture
def credentials():
    return InMemoryCredentialStore()


@pytest.fixture
def snapshots():
    return InMemorySnapshotStore()


@pytest.fixture
def connection_service():
    return InMemoryConnectionService()


@pytest.fixture
def connected_platform():
    """Factory for ConnectedPlatform rows."""

    def make(platform, name=None, type="advertising"):
        return ConnectedPlatform(
            id=f"conn-{platform}", name=name or platform, platform=platform, type=type
        )

    return make


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def now():
    return datetime.now(timezone.utc)


@pytest.fixture
def expired(now):
    return now - timedelta(hours=1)
