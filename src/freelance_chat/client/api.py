"""Async REST client for the messaging API and the application collaborator."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

import httpx

from freelance_chat.client.errors import ApiError
from freelance_chat.client.settings import ClientSettings

# Configure logger for this module
logger = logging.getLogger(__name__)


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(body, Mapping):
        for key in ("message", "detail"):
            value = body.get(key)
            if isinstance(value, str):
                return value
    return f"HTTP {response.status_code}"


def _unwrap_list(body: Any, key: str) -> list[dict[str, Any]]:
    # Collaborator endpoints answer with either a bare list or an envelope.
    if isinstance(body, list):
        return body
    if isinstance(body, Mapping):
        value = body.get(key)
        if isinstance(value, list):
            return value
    return []


class MessagingApi:
    """HTTP client wrapper for the messaging REST API.

    Every call carries the user's bearer token. Non-2xx responses and transport
    failures are raised as ``ApiError``.
    """

    def __init__(
        self,
        token: str,
        base_url: str | None = None,
        *,
        client: httpx.AsyncClient | None = None,
        settings: ClientSettings | None = None,
    ) -> None:
        self.settings = settings or ClientSettings()
        self.token = token
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=base_url or self.settings.api_url,
            timeout=httpx.Timeout(self.settings.http_timeout_seconds),
        )

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> MessagingApi:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json_data: Any | None = None,
        params: Mapping[str, Any] | None = None,
    ) -> Any:
        try:
            response = await self._client.request(
                method,
                path,
                json=json_data,
                params=params,
                headers={"Authorization": f"Bearer {self.token}"},
            )
        except httpx.HTTPError as exc:
            logger.warning("%s %s failed: %s", method, path, exc)
            raise ApiError(f"Request failed: {exc}") from exc

        if response.is_error:
            message = _error_message(response)
            logger.info("%s %s -> %d %s", method, path, response.status_code, message)
            raise ApiError(message, response.status_code)

        if not response.content:
            return None
        return response.json()

    # Messages ------------------------------------------------------------------

    async def send_message(
        self,
        receiver_id: str,
        content: str,
        job_id: str | None = None,
        *,
        is_system: bool = False,
    ) -> dict[str, Any]:
        """Persist a message; returns the stored message payload."""
        payload: dict[str, Any] = {"receiverId": receiver_id, "content": content}
        if job_id:
            payload["jobId"] = job_id
        if is_system:
            payload["isSystem"] = True
        body = await self._request("POST", "/messages", json_data=payload)
        if isinstance(body, Mapping) and isinstance(body.get("data"), Mapping):
            return dict(body["data"])
        return dict(body or {})

    async def get_conversation(self, user_id: str) -> list[dict[str, Any]]:
        body = await self._request("GET", f"/messages/conversation/{user_id}")
        return _unwrap_list(body, "messages")

    async def get_job_messages(self, job_id: str) -> list[dict[str, Any]]:
        body = await self._request("GET", f"/messages/job/{job_id}")
        return _unwrap_list(body, "messages")

    async def get_conversations(self) -> list[dict[str, Any]]:
        body = await self._request("GET", "/messages/conversations")
        return _unwrap_list(body, "conversations")

    async def get_unread_count(self) -> int:
        body = await self._request("GET", "/messages/unread/count")
        return int(body.get("unreadCount", 0)) if isinstance(body, Mapping) else 0

    async def mark_read(self, message_id: str) -> None:
        await self._request("PUT", f"/messages/read/{message_id}")

    async def mark_all_read(self, user_id: str) -> int:
        body = await self._request("PUT", f"/messages/read/user/{user_id}")
        return int(body.get("modifiedCount", 0)) if isinstance(body, Mapping) else 0

    async def delete_message(self, message_id: str) -> None:
        await self._request("DELETE", f"/messages/{message_id}")

    # Applications (owned by the applications service) ----------------------------

    async def get_my_applications(self, status: str | None = None) -> list[dict[str, Any]]:
        params = {"status": status} if status else None
        body = await self._request("GET", "/applications/my", params=params)
        return _unwrap_list(body, "applications")

    async def get_employer_applications(
        self,
        status: str | None = None,
        job_id: str | None = None,
    ) -> list[dict[str, Any]]:
        params = {key: value for key, value in (("status", status), ("jobId", job_id)) if value}
        body = await self._request("GET", "/applications/employer", params=params or None)
        return _unwrap_list(body, "applications")

    async def update_application_status(self, application_id: str, status: str) -> Any:
        return await self._request(
            "PATCH",
            f"/applications/{application_id}/status",
            json_data={"status": status},
        )
