"""MERIDIAN — FastAPI Application Entry Point.

Multi-source marketing metrics aggregation.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from meridian.api.platform_routes import router as platform_router
from meridian.core.logging import get_logger
from meridian.database import init_db, test_connection
from meridian.registry.platform_registry import get_platform_registry

logger = get_logger("main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle."""
    logger.info("🚀 MERIDIAN starting up...")
    if test_connection():
        try:
            init_db()
        except Exception as e:
            logger.error(f"❌ Table creation failed: {e}")
    else:
        logger.error("❌ Database NOT connected, every source will use fallback data")

    registry = get_platform_registry()
    logger.info(f"🔌 {len(registry.get_all())} platform connectors ready")
    yield
    logger.info("MERIDIAN shut down")


app = FastAPI(
    title="MERIDIAN",
    description="Unified marketing metrics across advertising, analytics and commerce sources.",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(platform_router)


@app.get("/health", tags=["System"])
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "service": "meridian",
        "version": "1.0.0",
    }
