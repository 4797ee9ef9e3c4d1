"""Operational routes: health, manual sync, cache clearing."""

from fastapi import APIRouter, Depends, Request

from busops.core.cache import ResponseCache
from busops.core.config import Settings
from busops.core.health import get_health_status
from busops.core.logging import get_logger
from busops.routers.workspace import get_cache, get_sync_job
from busops.services.sync import SyncJob, SyncState

logger = get_logger(__name__)
router = APIRouter(prefix="/api", tags=["system"])


def get_settings(request: Request) -> Settings:
    return request.app.state.container.settings()


@router.get("/health")
@router.get("/test", include_in_schema=False)
async def health_check(
    settings: Settings = Depends(get_settings),
    cache: ResponseCache = Depends(get_cache)
):
    """Liveness plus configuration summary for the status card."""
    return get_health_status(settings, cache)


@router.post("/sync-now")
async def sync_now(
    sync_job: SyncJob = Depends(get_sync_job),
    cache: ResponseCache = Depends(get_cache)
):
    """Run the sync job now. Its failures are logged, not returned."""
    result = await sync_job.run()
    cache.invalidate()
    logger.info("Manual sync finished", result=result.to_dict())

    if result.state is SyncState.DISABLED:
        return {"success": True, "message": "Sync skipped: daily sync is disabled"}
    return {"success": True, "message": "Sync completed"}


@router.post("/cache/clear")
async def clear_cache(cache: ResponseCache = Depends(get_cache)):
    """Drop every cached upstream response."""
    removed = cache.invalidate()
    logger.info("Cache cleared", removed=removed)
    return {"success": True, "message": f"Cache cleared ({removed} entries)"}
