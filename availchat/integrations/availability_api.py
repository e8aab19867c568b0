"""HTTP client for the availability backend (persistence and query engine)."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from availchat.config import settings

logger = logging.getLogger(__name__)


class AvailabilityApiError(Exception):
    """The availability backend rejected a request or could not be reached."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class AvailabilityApi:
    """Thin async wrapper over the backend's ``/availability`` REST routes.

    Every method makes exactly one HTTP call and returns the decoded JSON
    body. Response shapes are backend-defined; callers pick what they need.
    """

    def __init__(
        self,
        base_url: str | None = None,
        *,
        token: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = (base_url or settings.availability_api_url).rstrip("/")
        self._token = settings.availability_api_token if token is None else token
        self._timeout = settings.http_timeout_seconds if timeout is None else timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        headers = {"Accept": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return httpx.AsyncClient(
            base_url=self._base_url,
            headers=headers,
            timeout=self._timeout,
            transport=self._transport,
        )

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> Any:
        if params:
            params = {k: v for k, v in params.items() if v is not None}
        try:
            async with self._client() as client:
                resp = await client.request(method, path, params=params, json=json)
        except httpx.HTTPError as exc:
            logger.error("Availability API %s %s failed: %s", method, path, exc)
            msg = f"Availability service unreachable: {exc}"
            raise AvailabilityApiError(msg) from exc

        if resp.status_code >= 400:
            logger.error(
                "Availability API %s %s returned %d: %s",
                method,
                path,
                resp.status_code,
                resp.text[:200],
            )
            msg = f"Availability service returned {resp.status_code}"
            raise AvailabilityApiError(msg, status_code=resp.status_code)

        if not resp.content:
            return {}
        return resp.json()

    # -- Queries ---------------------------------------------------------------

    async def list_slots(
        self,
        provider_id: str,
        *,
        start_date: str | None = None,
        end_date: str | None = None,
        **filters: Any,
    ) -> list[dict[str, Any]]:
        """Slots for a provider, optionally limited to a date range.

        Extra keyword filters are passed through as query parameters.
        """
        body = await self._request(
            "GET",
            f"/availability/{provider_id}",
            params={"startDate": start_date, "endDate": end_date, **filters},
        )
        if isinstance(body, dict):
            body = body.get("data") or body.get("slots") or []
        return list(body)

    async def get_slot(self, slot_id: str) -> dict[str, Any]:
        return await self._request("GET", f"/availability/slot/{slot_id}")

    # -- Mutations -------------------------------------------------------------

    async def create_slot(self, payload: dict[str, Any]) -> dict[str, Any]:
        return await self._request("POST", "/availability", json=payload)

    async def create_bulk(self, payload: dict[str, Any]) -> dict[str, Any]:
        return await self._request("POST", "/availability/bulk", json=payload)

    async def update_slot(self, slot_id: str, payload: dict[str, Any]) -> dict[str, Any]:
        return await self._request("PUT", f"/availability/{slot_id}", json=payload)

    async def delete_slot(self, slot_id: str) -> dict[str, Any]:
        return await self._request("DELETE", f"/availability/{slot_id}")
