"""
The vault object client contract.

Both transports implement ``Client``; consumers depend on this protocol only.
Use ``new_client()`` to build the one selected by configuration.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from bwclient.errors import NotFoundError
from bwclient.models import Object, ObjectType, Status

if TYPE_CHECKING:
    from bwclient.config import ClientConfig
    from bwclient.filters import ListFilter

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransportCapabilities:
    """Behaviours on which the two transports knowingly differ.

    delete_reports_not_found: deleting a missing object raises NotFoundError
        instead of a generic BackendFailure.
    detects_missing_attachment: fetching a missing attachment raises
        AttachmentNotFoundError instead of a generic failure.
    """

    delete_reports_not_found: bool
    detects_missing_attachment: bool


@runtime_checkable
class Client(Protocol):
    capabilities: TransportCapabilities

    async def create_object(self, obj: Object) -> Object: ...

    async def edit_object(self, obj: Object) -> Object: ...

    async def get_object(self, obj: Object) -> Object: ...

    async def delete_object(self, obj: Object) -> None: ...

    async def list_objects(self, object_type: ObjectType, *filters: ListFilter) -> list[Object]: ...

    async def create_attachment(self, item_id: str, file_path: str) -> Object: ...

    async def get_attachment(self, item_id: str, attachment_id: str) -> bytes: ...

    async def delete_attachment(self, item_id: str, attachment_id: str) -> None: ...

    async def unlock(self, password: str) -> None: ...

    async def login_with_password(self, username: str, password: str) -> None: ...

    async def login_with_api_key(self, password: str, client_id: str, client_secret: str) -> None: ...

    async def logout(self) -> None: ...

    async def set_server(self, url: str) -> None: ...

    async def sync(self) -> None: ...

    async def status(self) -> Status: ...

    def get_session_key(self) -> str: ...

    def set_session_key(self, key: str) -> None: ...

    async def close(self) -> None: ...


def new_client(config: ClientConfig | None = None) -> Client:
    """Build the client selected by ``config.transport`` (defaults from the environment)."""
    from bwclient.config import get_config

    cfg = config or get_config()
    policy = cfg.retry.policy

    if cfg.transport == "rest":
        import httpx

        from bwclient.rest import LoggingTransport, RestClient

        transport: httpx.AsyncBaseTransport = httpx.AsyncHTTPTransport()
        if cfg.debug:
            transport = LoggingTransport(transport)
        logger.debug("Using REST transport at %s", cfg.rest.endpoint)
        return RestClient(
            cfg.rest.endpoint,
            transport=transport,
            timeout=cfg.rest.timeout,
            retry_policy=policy,
        )

    from bwclient.cli import CliClient, CommandRunner, LoggingRunner, SubprocessRunner

    runner: CommandRunner = SubprocessRunner(cfg.cli.executable, app_data_dir=cfg.cli.app_data_dir)
    if cfg.debug:
        runner = LoggingRunner(runner)
    logger.debug("Using CLI transport via %s", cfg.cli.executable)
    return CliClient(runner, session_key=cfg.cli.session_key, retry_policy=policy)


async def get_object_or_none(client: Client, obj: Object) -> Object | None:
    """Fetch ``obj``, or None when the backend no longer has it."""
    try:
        return await client.get_object(obj)
    except NotFoundError:
        logger.info("%s %s not found, treating as deleted", obj.object, obj.id)
        return None
