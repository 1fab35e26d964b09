"""
Local-process transport — drives the ``bw`` command-line program.

Every command runs with ``--nointeraction``; commands that answer with an
envelope also get ``--response`` so replies decode exactly like REST ones.
Object payloads go through stdin and credentials through the environment,
so neither ever appears in argv.
"""

from __future__ import annotations

import asyncio
import base64
import contextlib
import json
import logging
import os
import signal
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from bwclient.client import TransportCapabilities
from bwclient.envelope import decode_ack, decode_list, decode_message, decode_object
from bwclient.errors import BackendFailure, TransportError
from bwclient.filters import ListFilter, render_args
from bwclient.models import Object, ObjectType, Status, StatusTemplate
from bwclient.retry import RetryPolicy, run_with_retry

logger = logging.getLogger(__name__)

# Errors the bw program prints when it cannot reach its server.
CONNECTIVITY_MARKERS = (
    "ECONNREFUSED",
    "ECONNRESET",
    "ETIMEDOUT",
    "ENOTFOUND",
    "socket hang up",
    "fetch failed",
)

PASSWORD_ENV = "BW_PASSWORD"


@dataclass
class CommandResult:
    returncode: int
    stdout: bytes
    stderr: bytes


class CommandRunner(Protocol):
    async def run(
        self, args: Sequence[str], env: Mapping[str, str], stdin: bytes | None = None
    ) -> CommandResult: ...


class SubprocessRunner:
    """Run the ``bw`` executable as a child process."""

    def __init__(self, executable: str = "bw", app_data_dir: Path | None = None) -> None:
        self.executable = executable
        self.app_data_dir = app_data_dir

    async def run(
        self, args: Sequence[str], env: Mapping[str, str], stdin: bytes | None = None
    ) -> CommandResult:
        full_env = os.environ.copy()
        if self.app_data_dir is not None:
            full_env["BITWARDENCLI_APPDATA_DIR"] = str(self.app_data_dir)
        full_env.update(env)

        try:
            proc = await asyncio.create_subprocess_exec(
                self.executable,
                *args,
                stdin=asyncio.subprocess.PIPE if stdin is not None else asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=full_env,
                start_new_session=True,
            )
        except OSError as e:
            raise TransportError(f"Cannot run {self.executable}: {e}") from e

        try:
            stdout, stderr = await proc.communicate(stdin)
        except asyncio.CancelledError:
            # The whole group, so grandchildren holding the pipes die too.
            with contextlib.suppress(ProcessLookupError):
                os.killpg(proc.pid, signal.SIGKILL)
            await proc.wait()
            raise

        return CommandResult(returncode=proc.returncode or 0, stdout=stdout, stderr=stderr)


class LoggingRunner:
    """Wraps another runner and logs each command at DEBUG.

    Only environment variable names are logged, never their values.
    """

    def __init__(self, wrapped: CommandRunner) -> None:
        self._wrapped = wrapped

    async def run(
        self, args: Sequence[str], env: Mapping[str, str], stdin: bytes | None = None
    ) -> CommandResult:
        logger.debug("Running bw %s (env: %s)", " ".join(args), ", ".join(sorted(env)))
        result = await self._wrapped.run(args, env, stdin)
        logger.debug("bw exited with %d", result.returncode)
        return result


class CliClient:
    """Client backed by the local ``bw`` program."""

    capabilities = TransportCapabilities(
        delete_reports_not_found=True,
        detects_missing_attachment=False,
    )

    def __init__(
        self,
        runner: CommandRunner | None = None,
        *,
        session_key: str = "",
        retry_policy: RetryPolicy | None = None,
    ) -> None:
        self._runner = runner or SubprocessRunner()
        self._session_key = session_key
        self.retry_policy = retry_policy or RetryPolicy()

    async def close(self) -> None:
        pass

    async def __aenter__(self) -> CliClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    # ─── Objects ──────────────────────────────────────────────────────

    async def create_object(self, obj: Object) -> Object:
        if obj.id:
            raise ValueError(f"Cannot create {obj.object} that already has id {obj.id}")
        logger.debug("Creating %s", obj.object)

        async def attempt() -> Object:
            raw = await self._envelope(
                "create", obj.object, *_org_args(obj), stdin=_encode(obj)
            )
            return decode_object(raw, Object)

        return await run_with_retry(self.retry_policy, attempt)

    async def edit_object(self, obj: Object) -> Object:
        obj.require_id()
        logger.debug("Editing %s %s", obj.object, obj.id)

        async def attempt() -> Object:
            raw = await self._envelope(
                "edit", obj.object, obj.id, *_org_args(obj), stdin=_encode(obj)
            )
            return decode_object(raw, Object, not_found=True)

        return await run_with_retry(self.retry_policy, attempt)

    async def get_object(self, obj: Object) -> Object:
        obj.require_id()
        logger.debug("Getting %s %s", obj.object, obj.id)

        async def attempt() -> Object:
            raw = await self._envelope("get", obj.object, obj.id, *_org_args(obj))
            return decode_object(raw, Object, not_found=True)

        return await run_with_retry(self.retry_policy, attempt)

    async def delete_object(self, obj: Object) -> None:
        """Unlike REST, a missing object raises NotFoundError here."""
        obj.require_id()
        logger.debug("Deleting %s %s", obj.object, obj.id)
        raw = await self._envelope("delete", obj.object, obj.id, *_org_args(obj))
        decode_ack(raw, not_found=True)

    async def list_objects(self, object_type: ObjectType, *filters: ListFilter) -> list[Object]:
        """Filters become flag/value pairs, repeated flags kept in order."""
        object_type = ObjectType(object_type)
        args = render_args(filters)
        logger.debug("Listing %s with %s", object_type.plural, args)

        async def attempt() -> list[Object]:
            raw = await self._envelope("list", object_type.plural, *args)
            return decode_list(raw, Object)

        return await run_with_retry(self.retry_policy, attempt)

    # ─── Attachments ──────────────────────────────────────────────────

    async def create_attachment(self, item_id: str, file_path: str) -> Object:
        path = Path(file_path)
        if not path.is_file():
            raise FileNotFoundError(f"Attachment file not found: {path}")
        logger.debug("Creating attachment %s on item %s", path.name, item_id)

        async def attempt() -> Object:
            raw = await self._envelope(
                "create", "attachment", "--itemid", item_id, "--file", str(path)
            )
            return decode_object(raw, Object)

        return await run_with_retry(self.retry_policy, attempt)

    async def get_attachment(self, item_id: str, attachment_id: str) -> bytes:
        """Raw file content. A missing attachment is a generic BackendFailure."""
        logger.debug("Getting attachment %s of item %s", attachment_id, item_id)

        async def attempt() -> bytes:
            result = await self._run(
                "get", "attachment", attachment_id, "--itemid", item_id, "--raw", response=False
            )
            if result.returncode != 0:
                raise BackendFailure(_decode_text(result.stderr) or "failed to get attachment")
            return result.stdout

        return await run_with_retry(self.retry_policy, attempt)

    async def delete_attachment(self, item_id: str, attachment_id: str) -> None:
        logger.debug("Deleting attachment %s of item %s", attachment_id, item_id)
        raw = await self._envelope("delete", "attachment", attachment_id, "--itemid", item_id)
        decode_ack(raw)

    # ─── Session ──────────────────────────────────────────────────────

    async def unlock(self, password: str) -> None:
        """Unlock the vault and keep the returned session key."""
        logger.debug("Unlocking vault")
        raw = await self._envelope(
            "unlock", "--passwordenv", PASSWORD_ENV, env={PASSWORD_ENV: password}
        )
        result = decode_message(raw)
        if result.raw:
            self._session_key = result.raw

    async def login_with_password(self, username: str, password: str) -> None:
        logger.debug("Logging in as %s", username)
        raw = await self._envelope(
            "login", username, "--passwordenv", PASSWORD_ENV, env={PASSWORD_ENV: password}
        )
        result = decode_message(raw)
        if result.raw:
            self._session_key = result.raw

    async def login_with_api_key(self, password: str, client_id: str, client_secret: str) -> None:
        """API-key login leaves the vault locked, so unlock right after."""
        logger.debug("Logging in with API key %s", client_id)
        raw = await self._envelope(
            "login",
            "--apikey",
            env={"BW_CLIENTID": client_id, "BW_CLIENTSECRET": client_secret},
        )
        decode_message(raw)
        await self.unlock(password)

    async def logout(self) -> None:
        logger.debug("Logging out")
        raw = await self._envelope("logout")
        decode_message(raw)
        self._session_key = ""

    async def set_server(self, url: str) -> None:
        logger.debug("Switching server to %s", url)
        raw = await self._envelope("config", "server", url)
        decode_message(raw)

    async def sync(self) -> None:
        logger.debug("Syncing vault")
        raw = await self._envelope("sync")
        decode_message(raw)

    async def status(self) -> Status:
        async def attempt() -> Status:
            raw = await self._envelope("status")
            return decode_object(raw, StatusTemplate).template

        return await run_with_retry(self.retry_policy, attempt)

    def get_session_key(self) -> str:
        return self._session_key

    def set_session_key(self, key: str) -> None:
        self._session_key = key

    # ─── Internal ─────────────────────────────────────────────────────

    async def _run(
        self,
        *args: str,
        stdin: bytes | None = None,
        env: Mapping[str, str] | None = None,
        response: bool = True,
    ) -> CommandResult:
        argv = [*args, "--nointeraction"]
        if response:
            argv.append("--response")

        full_env: dict[str, str] = {}
        if self._session_key:
            full_env["BW_SESSION"] = self._session_key
        full_env.update(env or {})

        result = await self._runner.run(argv, full_env, stdin)
        if result.returncode != 0:
            output = _decode_text(result.stderr)
            # A well-formed envelope on stdout is a backend answer, whatever its text says.
            if not _is_envelope(result.stdout):
                output += _decode_text(result.stdout)
            for marker in CONNECTIVITY_MARKERS:
                if marker in output:
                    raise TransportError(f"bw {args[0]} could not reach the server: {output}")
        return result

    async def _envelope(
        self, *args: str, stdin: bytes | None = None, env: Mapping[str, str] | None = None
    ) -> bytes:
        """Run a ``--response`` command and return envelope bytes.

        A failed command that printed nothing on stdout is turned into a
        failed envelope carrying its stderr.
        """
        result = await self._run(*args, stdin=stdin, env=env)
        if result.stdout.strip():
            return result.stdout
        if result.returncode == 0:
            return b'{"success": true}'
        message = _decode_text(result.stderr) or f"bw exited with {result.returncode}"
        return json.dumps({"success": False, "message": message}).encode()


def _encode(obj: Object) -> bytes:
    """Same encoding as ``bw encode``: base64 of the JSON payload."""
    return base64.b64encode(json.dumps(obj.to_payload()).encode("utf-8"))


def _decode_text(data: bytes) -> str:
    return data.decode("utf-8", errors="replace").strip()


def _is_envelope(data: bytes) -> bool:
    try:
        body = json.loads(data)
    except (json.JSONDecodeError, UnicodeDecodeError):
        return False
    return isinstance(body, dict) and "success" in body


def _org_args(obj: Object) -> list[str]:
    if obj.object == ObjectType.ORG_COLLECTION and obj.organization_id:
        return ["--organizationid", obj.organization_id]
    return []
