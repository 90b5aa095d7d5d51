"""HTTP adapter for the inspections REST backend."""

from __future__ import annotations

import logging
from typing import Any, Callable
from urllib.parse import quote

import httpx

from inspection_drafts.errors import RemoteAPIError

logger = logging.getLogger(__name__)

TokenProvider = Callable[[], str | None]


class InspectionAPI:
    """Bearer-authenticated JSON client for ``/inspections``.

    Every response uses the envelope ``{"success": bool, ...}``. Failures of
    any kind are raised as :class:`RemoteAPIError`; deciding what to do about
    them is the sync client's job.
    """

    def __init__(
        self,
        base_url: str,
        token_provider: TokenProvider,
        timeout_seconds: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._token_provider = token_provider
        self._timeout = timeout_seconds
        self._transport = transport

    @property
    def collection_url(self) -> str:
        return f"{self.base_url}/inspections"

    def _headers(self) -> dict[str, str]:
        token = self._token_provider()
        if not token:
            raise RemoteAPIError("No credential available", "unauthenticated")
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {token}",
        }

    async def _request(
        self,
        method: str,
        url: str,
        payload: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        headers = self._headers()
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                resp = await client.request(method, url, json=payload, headers=headers)
        except httpx.HTTPError as exc:
            raise RemoteAPIError(f"{method} {url} failed: {exc}", "network") from exc

        logger.debug("%s %s -> %s", method, url, resp.status_code)
        if resp.status_code == 404:
            raise RemoteAPIError(f"{method} {url} returned 404", "not_found", status=404)
        if resp.status_code in (401, 403):
            raise RemoteAPIError(
                f"{method} {url} rejected credential", "unauthorized", status=resp.status_code
            )
        if resp.status_code >= 400:
            raise RemoteAPIError(
                f"{method} {url} returned {resp.status_code}: {resp.text[:200]}",
                "http_error",
                status=resp.status_code,
            )

        try:
            data = resp.json()
        except ValueError as exc:
            raise RemoteAPIError(
                f"{method} {url} returned invalid JSON", "invalid_response", status=resp.status_code
            ) from exc
        if not isinstance(data, dict) or not data.get("success"):
            raise RemoteAPIError(
                f"{method} {url} reported failure", "unsuccessful", status=resp.status_code
            )
        return data

    def _item_url(self, draft_id: str) -> str:
        return f"{self.collection_url}/{quote(draft_id, safe='')}"

    async def list_inspections(self) -> list[dict[str, Any]]:
        data = await self._request("GET", self.collection_url)
        items = data.get("inspections") or []
        if not isinstance(items, list):
            raise RemoteAPIError("inspections is not a list", "invalid_response")
        return [item for item in items if isinstance(item, dict)]

    async def get_inspection(self, draft_id: str) -> dict[str, Any]:
        data = await self._request("GET", self._item_url(draft_id))
        return _require_inspection(data)

    async def create_inspection(self, payload: dict[str, Any]) -> dict[str, Any]:
        data = await self._request("POST", self.collection_url, payload)
        return _require_inspection(data)

    async def update_inspection(self, draft_id: str, payload: dict[str, Any]) -> dict[str, Any]:
        data = await self._request("PUT", self._item_url(draft_id), payload)
        return _require_inspection(data)

    async def delete_inspection(self, draft_id: str) -> bool:
        await self._request("DELETE", self._item_url(draft_id))
        return True

    async def migrate(self, inspections: dict[str, dict[str, Any]]) -> dict[str, Any]:
        """Bulk import local drafts keyed by ID."""
        return await self._request(
            "POST", f"{self.collection_url}/migrate", {"inspections": inspections}
        )


def _require_inspection(data: dict[str, Any]) -> dict[str, Any]:
    inspection = data.get("inspection")
    if not isinstance(inspection, dict):
        raise RemoteAPIError("Response has no inspection", "invalid_response")
    return inspection
