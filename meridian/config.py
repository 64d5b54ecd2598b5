"""MERIDIAN — Central Configuration via Pydantic Settings."""

import os
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables / .env file."""

    # ── Database ──
    database_url: str = ""

    # ── App ──
    log_level: str = "INFO"

    # ── Registry ──
    registry_enable_auto_discovery: bool = True
    registry_fallback_to_mock_data: bool = True
    registry_cache_timeout_seconds: int = 300  # 5 minutes
    registry_max_retries: int = 3
    registry_enable_cross_platform_analysis: bool = True
    registry_voice_narration_enabled: bool = True
    registry_connector_timeout_seconds: float = 10.0

    # ── Connection status ──
    connection_cache_seconds: int = 300

    # ── Defaults ──
    default_currency: str = "USD"

    @property
    def effective_database_url(self) -> str:
        """Return PostgreSQL URL if set, otherwise fall back to SQLite."""
        if self.database_url:
            return self.database_url
        # Vercel has a read-only filesystem; use /tmp for SQLite
        if os.environ.get("VERCEL"):
            return "sqlite:////tmp/meridian.db"
        return "sqlite:///./meridian.db"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
