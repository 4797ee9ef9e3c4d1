"""Gateway to the Notion workspace API.

Translates the proxy's three operations (query a database, create a page,
patch a page) into Notion REST calls and turns every failure into an
``UpstreamError`` carrying the upstream status. No retries: a failed call
fails the request that made it.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from busops.core.config import Settings
from busops.core.errors import UpstreamError
from busops.core.logging import get_logger, log_upstream_call

logger = get_logger(__name__)


@dataclass
class UpstreamResponse:
    status: int
    body: Any


class NotionGateway:
    """Thin async client for the Notion API."""

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.settings = settings
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            headers = {
                "Notion-Version": self.settings.notion_version,
                "Content-Type": "application/json",
            }
            if self.settings.notion_api_key:
                headers["Authorization"] = f"Bearer {self.settings.notion_api_key}"
            self._client = httpx.AsyncClient(
                base_url=self.settings.notion_base_url.rstrip("/") + "/",
                headers=headers,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def query_database(self, database_id: str,
                             body: Optional[Dict[str, Any]] = None) -> UpstreamResponse:
        return await self._request("POST", f"databases/{database_id}/query", "query_database",
                                   database_id, json=body or {})

    async def create_page(self, payload: Dict[str, Any]) -> UpstreamResponse:
        parent = payload.get("parent") or {}
        return await self._request("POST", "pages", "create_page",
                                   parent.get("database_id"), json=payload)

    async def update_page(self, page_id: str, payload: Dict[str, Any]) -> UpstreamResponse:
        return await self._request("PATCH", f"pages/{page_id}", "update_page",
                                   page_id, json=payload)

    async def _request(self, method: str, path: str, operation: str,
                       resource_id: Optional[str], **kwargs) -> UpstreamResponse:
        try:
            response = await self._get_client().request(method, path, **kwargs)
        except httpx.HTTPError as e:
            log_upstream_call(logger, operation, resource_id, False, error=str(e))
            raise UpstreamError(500, str(e) or type(e).__name__) from e

        if response.is_success:
            body = response.json()
            log_upstream_call(logger, operation, resource_id, True,
                              status=response.status_code,
                              results=len(body.get("results", [])) if isinstance(body, dict) else None)
            return UpstreamResponse(status=response.status_code, body=body)

        message = self._error_message(response)
        log_upstream_call(logger, operation, resource_id, False,
                          status=response.status_code, error=message)
        raise UpstreamError(response.status_code, message)

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        """Notion errors are JSON objects with a ``message`` field."""
        try:
            data = response.json()
        except ValueError:
            return response.text or response.reason_phrase
        if isinstance(data, dict) and data.get("message"):
            return str(data["message"])
        return response.text or response.reason_phrase
