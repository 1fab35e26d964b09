"""
Attachment reconciliation.

Creating an attachment returns the whole parent item, not the attachment.
The new attachment is found by diffing the item's attachment list before
and after the call. Anything other than exactly one addition and no removal
means someone else changed the item in between, and is reported as a
ConsistencyViolationError.
"""

from __future__ import annotations

import hashlib
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path

from bwclient.client import Client
from bwclient.errors import ConsistencyViolationError
from bwclient.models import Attachment, Object, ObjectType

logger = logging.getLogger(__name__)


@dataclass
class AttachmentDiff:
    added: list[Attachment] = field(default_factory=list)
    removed: list[Attachment] = field(default_factory=list)


def diff_attachments(before: Sequence[Attachment], after: Sequence[Attachment]) -> AttachmentDiff:
    """Compare two snapshots by attachment id, keeping order of appearance."""
    before_ids = {a.id for a in before}
    after_ids = {a.id for a in after}
    return AttachmentDiff(
        added=[a for a in after if a.id not in before_ids],
        removed=[a for a in before if a.id not in after_ids],
    )


def require_single_addition(diff: AttachmentDiff) -> Attachment:
    """Return the one added attachment, or raise ConsistencyViolationError."""
    if diff.removed:
        raise ConsistencyViolationError(
            f"{len(diff.removed)} attachment(s) removed while creating one: "
            + ", ".join(a.id for a in diff.removed)
        )
    if not diff.added:
        raise ConsistencyViolationError("No attachment found after creation")
    if len(diff.added) > 1:
        raise ConsistencyViolationError(
            f"{len(diff.added)} attachments appeared while creating one: "
            + ", ".join(a.id for a in diff.added)
        )
    return diff.added[0]


async def add_attachment(client: Client, item_id: str, file_path: str | Path) -> Attachment:
    """Upload ``file_path`` to the item and return the created attachment.

    The snapshot read and the upload are two separate calls, so a concurrent
    writer can slip in between; the diff check detects that, it cannot
    prevent it.
    """
    parent = await client.get_object(Object(object=ObjectType.ITEM, id=item_id))
    updated = await client.create_attachment(item_id, str(file_path))

    attachment = require_single_addition(diff_attachments(parent.attachments, updated.attachments))
    logger.info("Attached %s (%s) to item %s", attachment.file_name, attachment.id, item_id)
    return attachment


async def find_attachment(client: Client, item_id: str, attachment_id: str) -> Attachment | None:
    """Look up an attachment on its item. None when the item no longer has it.

    A missing item is not treated as a deleted attachment: NotFoundError
    propagates, since there is nothing left to attach to.
    """
    parent = await client.get_object(Object(object=ObjectType.ITEM, id=item_id))
    for attachment in parent.attachments:
        if attachment.id == attachment_id:
            return attachment
    return None


def file_sha1sum(path: str | Path) -> str:
    """Hex SHA-1 of a file's content, to detect changes to an uploaded file."""
    digest = hashlib.sha1()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(65536), b""):
            digest.update(chunk)
    return digest.hexdigest()
