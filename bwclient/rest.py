"""
REST transport — talks to a ``bw serve`` endpoint over httpx.

Session handling lives in the serving process, so login, logout and server
switching are unsupported here. Unlock, sync and status are real calls.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any

import httpx

from bwclient.client import TransportCapabilities
from bwclient.envelope import decode_ack, decode_list, decode_message, decode_object
from bwclient.errors import AttachmentNotFoundError, BackendFailure, TransportError, UnsupportedOperationError
from bwclient.filters import ListFilter, render_query
from bwclient.models import Object, ObjectType, Status, StatusTemplate
from bwclient.retry import RetryPolicy, run_with_retry

logger = logging.getLogger(__name__)


class LoggingTransport(httpx.AsyncBaseTransport):
    """Wraps another transport and logs every request/response at DEBUG."""

    def __init__(self, wrapped: httpx.AsyncBaseTransport) -> None:
        self._wrapped = wrapped

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        logger.debug("Request %s %s", request.method, request.url)
        response = await self._wrapped.handle_async_request(request)
        logger.debug("Response %s", response.status_code)
        return response

    async def aclose(self) -> None:
        await self._wrapped.aclose()


class RestClient:
    """Async client for the ``bw serve`` HTTP API."""

    capabilities = TransportCapabilities(
        delete_reports_not_found=False,
        detects_missing_attachment=True,
    )

    def __init__(
        self,
        endpoint: str = "http://127.0.0.1:8087",
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 30.0,
        retry_policy: RetryPolicy | None = None,
    ) -> None:
        self.endpoint = endpoint.rstrip("/")
        self.retry_policy = retry_policy or RetryPolicy()
        self._client = httpx.AsyncClient(base_url=self.endpoint, transport=transport, timeout=timeout)

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> RestClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    # ─── Objects ──────────────────────────────────────────────────────

    async def create_object(self, obj: Object) -> Object:
        """POST /object/{type} — returns the persisted object."""
        if obj.id:
            raise ValueError(f"Cannot create {obj.object} that already has id {obj.id}")
        logger.debug("Creating %s", obj.object)

        async def attempt() -> Object:
            resp = await self._request(
                "POST", f"/object/{obj.object}", json=obj.to_payload(), params=_org_params(obj)
            )
            return decode_object(resp.content, Object)

        return await run_with_retry(self.retry_policy, attempt)

    async def edit_object(self, obj: Object) -> Object:
        """PUT /object/{type}/{id} — full replace of the stored object."""
        obj.require_id()
        logger.debug("Editing %s %s", obj.object, obj.id)

        async def attempt() -> Object:
            resp = await self._request(
                "PUT",
                f"/object/{obj.object}/{obj.id}",
                json=obj.to_payload(),
                params=_org_params(obj),
            )
            return decode_object(resp.content, Object, not_found=True)

        return await run_with_retry(self.retry_policy, attempt)

    async def get_object(self, obj: Object) -> Object:
        """GET /object/{type}/{id} — NotFoundError when the backend says "Not found."."""
        obj.require_id()
        logger.debug("Getting %s %s", obj.object, obj.id)

        async def attempt() -> Object:
            resp = await self._request(
                "GET", f"/object/{obj.object}/{obj.id}", params=_org_params(obj)
            )
            return decode_object(resp.content, Object, not_found=True)

        return await run_with_retry(self.retry_policy, attempt)

    async def delete_object(self, obj: Object) -> None:
        """DELETE /object/{type}/{id} — any failure is a generic BackendFailure."""
        obj.require_id()
        logger.debug("Deleting %s %s", obj.object, obj.id)
        resp = await self._request(
            "DELETE", f"/object/{obj.object}/{obj.id}", params=_org_params(obj)
        )
        decode_ack(resp.content)

    async def list_objects(self, object_type: ObjectType, *filters: ListFilter) -> list[Object]:
        """GET /list/object/{plural} — filters become query parameters, last one wins per key."""
        object_type = ObjectType(object_type)
        params = render_query(filters)
        logger.debug("Listing %s with %s", object_type.plural, params)

        async def attempt() -> list[Object]:
            resp = await self._request("GET", f"/list/object/{object_type.plural}", params=params)
            return decode_list(resp.content, Object)

        return await run_with_retry(self.retry_policy, attempt)

    # ─── Attachments ──────────────────────────────────────────────────

    async def create_attachment(self, item_id: str, file_path: str) -> Object:
        """POST /attachment?itemid= (multipart, field "file") — returns the updated item."""
        path = Path(file_path)
        content = await asyncio.to_thread(path.read_bytes)
        logger.debug("Creating attachment %s on item %s", path.name, item_id)

        async def attempt() -> Object:
            resp = await self._request(
                "POST",
                "/attachment",
                params={"itemid": item_id},
                files={"file": (path.name, content)},
            )
            return decode_object(resp.content, Object)

        return await run_with_retry(self.retry_policy, attempt)

    async def get_attachment(self, item_id: str, attachment_id: str) -> bytes:
        """GET /object/attachment/{id}?itemid= — raw file content."""
        logger.debug("Getting attachment %s of item %s", attachment_id, item_id)

        async def attempt() -> bytes:
            resp = await self._request(
                "GET", f"/object/attachment/{attachment_id}", params={"itemid": item_id}
            )
            if resp.status_code == 404:
                raise AttachmentNotFoundError(f"Attachment {attachment_id} not found on item {item_id}")
            if resp.status_code >= 500:
                raise TransportError(f"HTTP {resp.status_code} fetching attachment {attachment_id}")
            if resp.status_code >= 400:
                raise BackendFailure(f"HTTP {resp.status_code}: {resp.text}")
            return resp.content

        return await run_with_retry(self.retry_policy, attempt)

    async def delete_attachment(self, item_id: str, attachment_id: str) -> None:
        """DELETE /object/attachment/{id}?itemid=."""
        logger.debug("Deleting attachment %s of item %s", attachment_id, item_id)
        resp = await self._request(
            "DELETE", f"/object/attachment/{attachment_id}", params={"itemid": item_id}
        )
        decode_ack(resp.content)

    # ─── Session ──────────────────────────────────────────────────────

    async def unlock(self, password: str) -> None:
        """POST /unlock."""
        logger.debug("Unlocking vault")
        resp = await self._request("POST", "/unlock", json={"password": password})
        decode_message(resp.content)

    async def login_with_password(self, username: str, password: str) -> None:
        raise UnsupportedOperationError("REST transport doesn't support login")

    async def login_with_api_key(self, password: str, client_id: str, client_secret: str) -> None:
        raise UnsupportedOperationError("REST transport doesn't support login")

    async def logout(self) -> None:
        raise UnsupportedOperationError("REST transport doesn't support logout")

    async def set_server(self, url: str) -> None:
        raise UnsupportedOperationError("REST transport doesn't support switching servers")

    async def sync(self) -> None:
        """POST /sync."""
        logger.debug("Syncing vault")
        resp = await self._request("POST", "/sync")
        decode_message(resp.content)

    async def status(self) -> Status:
        """GET /status."""

        async def attempt() -> Status:
            resp = await self._request("GET", "/status")
            return decode_object(resp.content, StatusTemplate).template

        return await run_with_retry(self.retry_policy, attempt)

    def get_session_key(self) -> str:
        return ""  # the serving process holds the session

    def set_session_key(self, key: str) -> None:
        pass

    # ─── Internal ─────────────────────────────────────────────────────

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            return await self._client.request(method, path, **kwargs)
        except httpx.TransportError as e:
            raise TransportError(f"{method} {path} failed: {e}") from e


def _org_params(obj: Object) -> dict[str, str]:
    """Collections are addressed within their organization."""
    if obj.object == ObjectType.ORG_COLLECTION and obj.organization_id:
        return {"organizationId": obj.organization_id}
    return {}
