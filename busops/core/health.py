"""Health report for the /api/health endpoint.

Provides uptime tracking, process memory and the feature flags the
dashboard's system status card displays.
"""
import time
from datetime import datetime, timezone
from typing import Dict, Any, TYPE_CHECKING

import psutil

if TYPE_CHECKING:
    from busops.core.config import Settings
    from busops.core.cache import ResponseCache

_startup_time: float = 0.0


def set_startup_time() -> None:
    """Record the application startup time. Call once during lifespan startup."""
    global _startup_time
    _startup_time = time.time()


def get_uptime() -> float:
    """Get uptime in seconds since startup."""
    return time.time() - _startup_time if _startup_time else 0.0


def get_memory_usage() -> Dict[str, float]:
    """Resident memory of this process and total system memory, in MB."""
    try:
        used = psutil.Process().memory_info().rss / (1024 * 1024)
        total = psutil.virtual_memory().total / (1024 * 1024)
    except psutil.Error:
        return {"used": 0.0, "total": 0.0}
    return {"used": round(used, 1), "total": round(total, 1)}


def get_health_status(settings: "Settings", cache: "ResponseCache") -> Dict[str, Any]:
    """Get health status for /api/health.

    Returns:
        Dict containing status, upstream key presence, feature flags, uptime,
        cache size and counters, and memory usage.
    """
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "upstreamKeyPresent": bool(settings.notion_api_key),
        "features": settings.features,
        "accountStore": settings.account_store,
        "uptimeSeconds": round(get_uptime(), 1),
        "cacheSize": cache.size(),
        "cacheStats": cache.stats(),
        "memoryUsage": get_memory_usage(),
    }
