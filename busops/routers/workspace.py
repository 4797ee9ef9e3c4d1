"""Workspace proxy routes: cached database queries and page writes."""

import hashlib
import json
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Request
from fastapi.responses import JSONResponse

from busops.core.cache import ResponseCache
from busops.core.errors import UpstreamError
from busops.core.logging import get_logger
from busops.services.notion import NotionGateway
from busops.services.sync import SyncJob

logger = get_logger(__name__)
router = APIRouter(prefix="/api", tags=["workspace"])

DATABASE_KEY_PREFIX = "db_"


def database_cache_key(database_id: str, body: Optional[Dict[str, Any]] = None) -> str:
    """``db_<id>`` for a plain query, ``db_<id>_<digest>`` for a filtered one."""
    key = f"{DATABASE_KEY_PREFIX}{database_id}"
    if body:
        digest = hashlib.sha256(json.dumps(body, sort_keys=True).encode("utf-8")).hexdigest()[:16]
        key = f"{key}_{digest}"
    return key


def get_cache(request: Request) -> ResponseCache:
    return request.app.state.container.cache()


def get_gateway(request: Request) -> NotionGateway:
    return request.app.state.container.notion_gateway()


def get_sync_job(request: Request) -> SyncJob:
    return request.app.state.container.sync_job()


@router.post("/databases/{database_id}/query")
async def query_database(
    database_id: str,
    body: Optional[Dict[str, Any]] = Body(default=None),
    cache: ResponseCache = Depends(get_cache),
    gateway: NotionGateway = Depends(get_gateway)
):
    """Query a workspace database, served from cache while fresh."""
    cache_key = database_cache_key(database_id, body)

    cached = cache.get(cache_key)
    if cached is not None:
        logger.debug("Returning cached query", database_id=database_id)
        return cached

    result = await gateway.query_database(database_id, body)
    cache.put(cache_key, result.body)
    return result.body


@router.post("/pages")
async def create_page(
    payload: Dict[str, Any] = Body(...),
    cache: ResponseCache = Depends(get_cache),
    gateway: NotionGateway = Depends(get_gateway),
    sync_job: SyncJob = Depends(get_sync_job)
):
    """Create a page and drop cached queries of its parent database."""
    try:
        result = await gateway.create_page(payload)
    except UpstreamError as e:
        return JSONResponse(status_code=500, content={"error": e.message})

    parent_id = (payload.get("parent") or {}).get("database_id")
    cache.invalidate(f"{DATABASE_KEY_PREFIX}{parent_id}" if parent_id else DATABASE_KEY_PREFIX)

    await sync_job.publish_created_page(parent_id, result.body)
    return result.body


@router.patch("/pages/{page_id}")
async def update_page(
    page_id: str,
    payload: Dict[str, Any] = Body(...),
    cache: ResponseCache = Depends(get_cache),
    gateway: NotionGateway = Depends(get_gateway)
):
    """Update page properties and drop every cached database query."""
    try:
        result = await gateway.update_page(page_id, payload)
    except UpstreamError as e:
        return JSONResponse(status_code=500, content={"error": e.message})

    cache.invalidate(DATABASE_KEY_PREFIX)
    return result.body
