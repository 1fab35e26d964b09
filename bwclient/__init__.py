"""
bwclient — typed, retrying client for Bitwarden vault objects.

Public API:
    new_client(config)        → Client over the configured transport (cli or rest)
    client.get_object(obj)    → current Object, NotFoundError when gone
    client.list_objects(...)  → list[Object], narrowed by ListFilters
    add_attachment(...)       → upload a file and return the new Attachment
"""

from __future__ import annotations

from bwclient.attachments import add_attachment, find_attachment
from bwclient.client import Client, TransportCapabilities, get_object_or_none, new_client
from bwclient.errors import (
    AttachmentNotFoundError,
    BackendFailure,
    BitwardenError,
    ConsistencyViolationError,
    EnvelopeDecodeError,
    NotFoundError,
    TransportError,
    UnsupportedOperationError,
)
from bwclient.filters import (
    ListFilter,
    with_collection_id,
    with_folder_id,
    with_organization_id,
    with_search,
    with_url,
)
from bwclient.models import Attachment, ItemType, Object, ObjectType, Status

__version__ = "0.1.0"

__all__ = [
    "Attachment",
    "AttachmentNotFoundError",
    "BackendFailure",
    "BitwardenError",
    "Client",
    "ConsistencyViolationError",
    "EnvelopeDecodeError",
    "ItemType",
    "ListFilter",
    "NotFoundError",
    "Object",
    "ObjectType",
    "Status",
    "TransportCapabilities",
    "TransportError",
    "UnsupportedOperationError",
    "add_attachment",
    "find_attachment",
    "get_object_or_none",
    "new_client",
    "with_collection_id",
    "with_folder_id",
    "with_organization_id",
    "with_search",
    "with_url",
]
