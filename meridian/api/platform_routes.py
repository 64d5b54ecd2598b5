"""MERIDIAN — Platform API Routes."""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from meridian.bridge.integration_bridge import (
    PlatformIntegrationBridge,
    get_integration_bridge,
)
from meridian.core.logging import get_logger
from meridian.models.canonical import (
    ConnectorDescriptor,
    CrossPlatformSummary,
    UnifiedChartResult,
    UnifiedMetrics,
)
from meridian.registry.platform_registry import PlatformRegistry, get_platform_registry

logger = get_logger("api.platforms")

router = APIRouter(prefix="/platforms", tags=["Platforms"])


# ── Request / Response Models ──


class SelectPlatformsRequest(BaseModel):
    """Request body for POST /platforms/select."""

    user_id: str
    query: str

    model_config = {
        "json_schema_extra": {
            "examples": [{"user_id": "user-123", "query": "facebook reach this month"}]
        }
    }


class UnifiedDataRequest(BaseModel):
    """Request body for POST /platforms/unified."""

    user_id: str
    platforms: Optional[List[str]] = None
    """Explicit connector ids. Omit to use the user's connected sources."""


class ChartRequest(BaseModel):
    """Request body for POST /platforms/chart."""

    user_id: str
    query: str
    platforms: Optional[List[str]] = None


class PlatformListResponse(BaseModel):
    count: int
    platforms: List[ConnectorDescriptor]


# ── Endpoints ──


@router.get("")
async def registry_stats(registry: PlatformRegistry = Depends(get_platform_registry)):
    """Registered connectors and active configuration."""
    return registry.get_stats()


@router.get("/connected", response_model=PlatformListResponse)
async def connected_platforms(
    user_id: str = Query(..., min_length=1),
    registry: PlatformRegistry = Depends(get_platform_registry),
):
    """Connectors the user has valid credentials for."""
    try:
        connected = await registry.get_connected_platforms(user_id)
    except Exception as e:
        logger.error(f"Connected lookup failed: {e}", extra={"user_id": user_id})
        raise HTTPException(status_code=500, detail=f"Connected lookup failed: {str(e)}")
    return PlatformListResponse(
        count=len(connected), platforms=[c.descriptor for c in connected]
    )


@router.post("/select", response_model=PlatformListResponse)
async def select_platforms(
    request: SelectPlatformsRequest,
    registry: PlatformRegistry = Depends(get_platform_registry),
):
    """Connected sources most relevant to a free-text query."""
    try:
        connected = await registry.get_connected_platforms(request.user_id)
        relevant = registry.select_relevant_platforms(request.query, connected)
    except Exception as e:
        logger.error(f"Platform selection failed: {e}", extra={"user_id": request.user_id})
        raise HTTPException(status_code=500, detail=f"Platform selection failed: {str(e)}")
    return PlatformListResponse(
        count=len(relevant), platforms=[c.descriptor for c in relevant]
    )


@router.post("/unified", response_model=UnifiedMetrics)
async def unified_data(
    request: UnifiedDataRequest,
    registry: PlatformRegistry = Depends(get_platform_registry),
):
    """Fetch, normalize and aggregate metrics across sources."""
    try:
        return await registry.fetch_unified_data(request.user_id, request.platforms)
    except Exception as e:
        logger.error(f"Unified fetch failed: {e}", extra={"user_id": request.user_id})
        raise HTTPException(status_code=500, detail=f"Unified fetch failed: {str(e)}")


@router.post("/chart", response_model=UnifiedChartResult)
async def unified_chart(
    request: ChartRequest,
    registry: PlatformRegistry = Depends(get_platform_registry),
):
    """Charts for the sources relevant to a query."""
    unknown = [pid for pid in request.platforms or [] if registry.get(pid) is None]
    if unknown:
        raise HTTPException(status_code=404, detail=f"Unknown platform: {unknown[0]}")

    try:
        return await registry.generate_unified_chart(
            request.user_id, request.query, request.platforms
        )
    except Exception as e:
        logger.error(f"Chart generation failed: {e}", extra={"user_id": request.user_id})
        raise HTTPException(status_code=500, detail=f"Chart generation failed: {str(e)}")


@router.get("/bridge/{user_id}", response_model=UnifiedMetrics)
async def bridge_data(
    user_id: str,
    bridge: PlatformIntegrationBridge = Depends(get_integration_bridge),
):
    """Unified metrics straight from stored advertising snapshots."""
    try:
        return await bridge.get_unified_platform_data(user_id)
    except Exception as e:
        logger.error(f"Bridge fetch failed: {e}", extra={"user_id": user_id})
        raise HTTPException(status_code=500, detail=f"Bridge fetch failed: {str(e)}")


@router.get("/bridge/{user_id}/summary", response_model=CrossPlatformSummary)
async def bridge_summary(
    user_id: str,
    bridge: PlatformIntegrationBridge = Depends(get_integration_bridge),
):
    """Totals, averages and per-source breakdown over the bridge data."""
    try:
        return await bridge.get_cross_platform_metrics(user_id)
    except Exception as e:
        logger.error(f"Bridge summary failed: {e}", extra={"user_id": user_id})
        raise HTTPException(status_code=500, detail=f"Bridge summary failed: {str(e)}")
