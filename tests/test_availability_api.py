"""Tests for the availability backend HTTP client."""

import json

import httpx
import pytest

from availchat.integrations.availability_api import AvailabilityApi, AvailabilityApiError


def _api(handler) -> AvailabilityApi:
    return AvailabilityApi(
        "http://backend.test/api",
        token="secret",
        timeout=5,
        transport=httpx.MockTransport(handler),
    )


async def test_list_slots_sends_filters() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"data": [{"id": "a"}, {"id": "b"}]})

    slots = await _api(handler).list_slots("provider-1", start_date="2024-01-16", includeMetrics=True)

    assert slots == [{"id": "a"}, {"id": "b"}]
    request = seen[0]
    assert request.method == "GET"
    assert request.url.path == "/api/availability/provider-1"
    assert request.url.params["startDate"] == "2024-01-16"
    assert request.url.params["includeMetrics"] == "true"
    assert "endDate" not in request.url.params
    assert request.headers["Authorization"] == "Bearer secret"


async def test_list_slots_accepts_bare_list() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=[{"id": "a"}])

    assert await _api(handler).list_slots("provider-1") == [{"id": "a"}]


async def test_create_slot_posts_json() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(201, json={"id": "new"})

    payload = {"providerId": "provider-1", "date": "2024-01-16"}
    body = await _api(handler).create_slot(payload)

    assert body == {"id": "new"}
    assert seen[0].method == "POST"
    assert seen[0].url.path == "/api/availability"
    assert json.loads(seen[0].content) == payload


async def test_bulk_update_and_delete_routes() -> None:
    seen: list[tuple[str, str]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append((request.method, request.url.path))
        if request.method == "DELETE":
            return httpx.Response(204)
        return httpx.Response(200, json={})

    api = _api(handler)
    await api.create_bulk({"pattern": "weekly"})
    await api.update_slot("a", {"date": "2024-01-16"})
    await api.get_slot("a")
    assert await api.delete_slot("a") == {}

    assert seen == [
        ("POST", "/api/availability/bulk"),
        ("PUT", "/api/availability/a"),
        ("GET", "/api/availability/slot/a"),
        ("DELETE", "/api/availability/a"),
    ]


async def test_error_status_raises() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, json={"error": "not found"})

    with pytest.raises(AvailabilityApiError, match="returned 404") as exc_info:
        await _api(handler).get_slot("missing")
    assert exc_info.value.status_code == 404


async def test_unreachable_backend_raises() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(AvailabilityApiError, match="unreachable") as exc_info:
        await _api(handler).list_slots("provider-1")
    assert exc_info.value.status_code is None


async def test_no_auth_header_without_token() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=[])

    api = AvailabilityApi("http://backend.test/api", token="", transport=httpx.MockTransport(handler))
    await api.list_slots("provider-1")
    assert "Authorization" not in seen[0].headers
