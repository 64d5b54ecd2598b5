"""MERIDIAN — Database Engine.

One engine per process, shared by the SQL-backed stores. SQLite is used
when no DATABASE_URL is configured.
"""

from typing import Any, Dict

from sqlalchemy import text
from sqlalchemy.engine import make_url
from sqlmodel import SQLModel, create_engine

from meridian.config import settings
from meridian.core.logging import get_logger

logger = get_logger("database")


def engine_options(url: str) -> Dict[str, Any]:
    """create_engine kwargs for the URL's backend."""
    if make_url(url).get_backend_name() == "sqlite":
        # Stores hop to worker threads via asyncio.to_thread
        return {"echo": False, "connect_args": {"check_same_thread": False}}
    return {
        "echo": False,
        "pool_pre_ping": True,
        "pool_size": 5,
        "max_overflow": 10,
        "pool_recycle": 300,
    }


def build_engine(url: str):
    parsed = make_url(url)
    logger.info(
        f"📦 Database backend: {parsed.get_backend_name()} "
        f"({parsed.render_as_string(hide_password=True)})"
    )
    return create_engine(url, **engine_options(url))


engine = build_engine(settings.effective_database_url)


def test_connection() -> bool:
    """True when the database answers a trivial query."""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except Exception as e:
        logger.error(f"❌ Database unreachable: {e}")
        return False
    logger.info("✅ Database reachable")
    return True


def init_db() -> None:
    """Create the oauth_tokens, campaign_metrics and platform_connections tables."""
    import meridian.models.store_models  # noqa: F401

    SQLModel.metadata.create_all(engine)
    logger.info(f"✅ Tables ready: {', '.join(sorted(SQLModel.metadata.tables))}")
