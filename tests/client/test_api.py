# tests/client/test_api.py
"""Tests for the REST client wrapper."""

from __future__ import annotations

import json

import httpx
import pytest

from freelance_chat.client.api import MessagingApi
from freelance_chat.client.errors import ApiError

BASE_URL = "http://chat.test/api/v1"


def _api(handler) -> MessagingApi:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url=BASE_URL)
    return MessagingApi("tok", client=client)


@pytest.mark.asyncio
async def test_send_message_posts_camel_case_body() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(
            201,
            json={"success": True, "message": "Message sent successfully", "data": {"id": "m1", "content": "hi"}},
        )

    api = _api(handler)
    data = await api.send_message("e1", "hi", "job1")

    assert data == {"id": "m1", "content": "hi"}
    request = seen[0]
    assert request.method == "POST"
    assert request.url.path == "/api/v1/messages"
    assert request.headers["Authorization"] == "Bearer tok"
    assert json.loads(request.content) == {"receiverId": "e1", "content": "hi", "jobId": "job1"}


@pytest.mark.asyncio
async def test_send_system_message_flag() -> None:
    bodies: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        bodies.append(json.loads(request.content))
        return httpx.Response(201, json={"data": {"id": "s1"}})

    await _api(handler).send_message("e1", "Application status updated to: hired", is_system=True)

    assert bodies[0]["isSystem"] is True
    assert "jobId" not in bodies[0]


@pytest.mark.asyncio
async def test_list_endpoints_unwrap_envelopes() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path.endswith("/messages/job/job1"):
            return httpx.Response(200, json={"success": True, "count": 1, "messages": [{"id": "m1"}]})
        if path.endswith("/messages/conversations"):
            return httpx.Response(200, json={"conversations": [{"partner": {"id": "e1"}}]})
        if path.endswith("/messages/unread/count"):
            return httpx.Response(200, json={"unreadCount": 3})
        if path.endswith("/applications/my"):
            return httpx.Response(200, json=[{"_id": "app1"}])
        return httpx.Response(404, json={"message": "nope"})

    api = _api(handler)

    assert await api.get_job_messages("job1") == [{"id": "m1"}]
    assert await api.get_conversations() == [{"partner": {"id": "e1"}}]
    assert await api.get_unread_count() == 3
    assert await api.get_my_applications() == [{"_id": "app1"}]


@pytest.mark.asyncio
async def test_mark_all_read_returns_count() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.method == "PUT"
        assert request.url.path == "/api/v1/messages/read/user/e1"
        return httpx.Response(200, json={"success": True, "modifiedCount": 2})

    assert await _api(handler).mark_all_read("e1") == 2


@pytest.mark.asyncio
async def test_employer_applications_pass_filters() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"applications": []})

    await _api(handler).get_employer_applications(status="pending", job_id="job1")

    assert seen[0].url.params["status"] == "pending"
    assert seen[0].url.params["jobId"] == "job1"


@pytest.mark.asyncio
async def test_update_application_status_uses_patch() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"success": True})

    await _api(handler).update_application_status("app1", "shortlisted")

    assert seen[0].method == "PATCH"
    assert seen[0].url.path == "/api/v1/applications/app1/status"
    assert json.loads(seen[0].content) == {"status": "shortlisted"}


@pytest.mark.asyncio
async def test_error_message_comes_from_body() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(403, json={"message": "You can only delete messages you sent"})

    with pytest.raises(ApiError) as exc_info:
        await _api(handler).delete_message("m1")

    assert exc_info.value.status_code == 403
    assert exc_info.value.message == "You can only delete messages you sent"
    assert not exc_info.value.retryable


@pytest.mark.asyncio
async def test_validation_detail_is_used_when_no_message() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"detail": "Not authenticated"})

    with pytest.raises(ApiError, match="Not authenticated"):
        await _api(handler).get_unread_count()


@pytest.mark.asyncio
async def test_transport_failure_is_retryable() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(ApiError) as exc_info:
        await _api(handler).get_conversations()

    assert exc_info.value.status_code is None
    assert exc_info.value.retryable


@pytest.mark.asyncio
async def test_server_error_is_retryable() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, text="")

    with pytest.raises(ApiError) as exc_info:
        await _api(handler).mark_read("m1")

    assert exc_info.value.retryable
    assert exc_info.value.message == "HTTP 500"
