"""In-memory stand-ins for the two bwclient transports.

FakeVault is an in-memory ``bw serve`` backend served through
httpx.MockTransport. FakeRunner stands in for the ``bw`` executable.
"""

from __future__ import annotations

import json
import re
import uuid
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

import httpx

from bwclient.cli import CommandResult
from bwclient.retry import RetryPolicy

# No real sleeping between attempts in tests.
FAST_RETRY = RetryPolicy(max_attempts=3, base_delay=0.0, max_delay=0.0)

_ATTACHMENT_PATH = re.compile(r"^/object/attachment/(?P<id>[^/]+)$")
_OBJECT_PATH = re.compile(r"^/object/(?P<type>[^/]+)(?:/(?P<id>[^/]+))?$")
_LIST_PATH = re.compile(r"^/list/object/(?P<plural>[^/]+)$")
_FILENAME = re.compile(rb'filename="(?P<name>[^"]+)"')


def envelope(data=None, *, success: bool = True, message: str | None = None) -> dict:
    body: dict = {"success": success}
    if message is not None:
        body["message"] = message
    if data is not None:
        body["data"] = data
    return body


NOT_FOUND = envelope(success=False, message="Not found.")


class FakeVault:
    """Minimal stateful stand-in for the ``bw serve`` REST API."""

    def __init__(self, password: str = "hunter2") -> None:
        self.password = password
        self.objects: dict[str, dict] = {}
        self.files: dict[str, bytes] = {}
        self.requests: list[httpx.Request] = []
        self.unlocked = False

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        method = request.method

        if path == "/status" and method == "GET":
            status = "unlocked" if self.unlocked else "locked"
            return _json(envelope({"object": "template", "template": {
                "serverUrl": "https://vault.example.com",
                "lastSync": "2024-01-01T00:00:00.000Z",
                "userEmail": "ops@example.com",
                "userId": "user-1",
                "status": status,
            }}))
        if path == "/sync" and method == "POST":
            return _json(envelope({"object": "message", "title": "Syncing complete."}))
        if path == "/unlock" and method == "POST":
            if json.loads(request.content)["password"] != self.password:
                return _json(envelope(success=False, message="Invalid master password."))
            self.unlocked = True
            return _json(envelope({"object": "message", "raw": "session-key"}))
        if path == "/attachment" and method == "POST":
            return self._create_attachment(request)

        if m := _ATTACHMENT_PATH.match(path):
            return self._attachment(request, m["id"])
        if m := _LIST_PATH.match(path):
            return self._list(request, m["plural"])
        if m := _OBJECT_PATH.match(path):
            return self._object(request, m["type"], m["id"])
        return httpx.Response(404, text="no route")

    def _object(self, request: httpx.Request, obj_type: str, obj_id: str | None) -> httpx.Response:
        if request.method == "POST" and obj_id is None:
            body = json.loads(request.content)
            body.update(id=str(uuid.uuid4()), object=obj_type, revisionDate="2024-01-01T00:00:00.000Z")
            body.setdefault("attachments", [])
            self.objects[body["id"]] = body
            return _json(envelope(body))

        stored = self.objects.get(obj_id or "")
        if stored is None:
            return _json(NOT_FOUND)

        if request.method == "GET":
            return _json(envelope(stored))
        if request.method == "PUT":
            body = json.loads(request.content)
            body.update(id=stored["id"], object=stored["object"], attachments=stored["attachments"])
            self.objects[stored["id"]] = body
            return _json(envelope(body))
        if request.method == "DELETE":
            del self.objects[stored["id"]]
            return _json(envelope())
        return httpx.Response(405)

    def _list(self, request: httpx.Request, plural: str) -> httpx.Response:
        obj_type = plural.removesuffix("s")
        folder_id = request.url.params.get("folderid")
        search = request.url.params.get("search")
        found = [
            o for o in self.objects.values()
            if o["object"] == obj_type
            and (folder_id is None or o.get("folderId") == folder_id)
            and (search is None or search in o.get("name", ""))
        ]
        return _json(envelope({"object": "list", "data": found}))

    def _create_attachment(self, request: httpx.Request) -> httpx.Response:
        item = self.objects.get(request.url.params.get("itemid", ""))
        if item is None:
            return _json(NOT_FOUND)
        match = _FILENAME.search(request.content)
        name = match["name"].decode() if match else "file"
        attachment_id = uuid.uuid4().hex[:10]
        self.files[attachment_id] = request.content
        item["attachments"].append({
            "id": attachment_id,
            "fileName": name,
            "size": str(len(request.content)),
            "sizeName": f"{len(request.content)} Bytes",
            "url": f"https://cdn.example.com/{attachment_id}",
        })
        return _json(envelope(item))

    def _attachment(self, request: httpx.Request, attachment_id: str) -> httpx.Response:
        item = self.objects.get(request.url.params.get("itemid", ""))
        ids = {a["id"] for a in item["attachments"]} if item else set()
        if attachment_id not in ids:
            if request.method == "DELETE":
                return _json(envelope(success=False, message="Attachment not found."))
            return httpx.Response(404, text="Not found.")
        if request.method == "DELETE":
            item["attachments"] = [a for a in item["attachments"] if a["id"] != attachment_id]
            return _json(envelope())
        return httpx.Response(200, content=b"attachment-bytes")


def _json(body: dict) -> httpx.Response:
    return httpx.Response(200, json=body)


@dataclass
class FakeRunner:
    """Replays queued CommandResults and records every invocation."""

    results: list[CommandResult] = field(default_factory=list)
    calls: list[tuple[list[str], dict[str, str], bytes | None]] = field(default_factory=list)

    def queue(self, body: dict | None = None, *, returncode: int = 0, stdout: bytes | None = None,
              stderr: bytes = b"") -> None:
        if stdout is None:
            stdout = json.dumps(body).encode() if body is not None else b""
        self.results.append(CommandResult(returncode=returncode, stdout=stdout, stderr=stderr))

    async def run(
        self, args: Sequence[str], env: Mapping[str, str], stdin: bytes | None = None
    ) -> CommandResult:
        self.calls.append((list(args), dict(env), stdin))
        if not self.results:
            raise AssertionError(f"unexpected bw call: {list(args)}")
        return self.results.pop(0)

