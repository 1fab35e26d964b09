"""Vault data models.

Field names are snake_case in Python and camelCase on the wire. Unknown
wire fields are ignored so newer backends do not break decoding.
"""

from __future__ import annotations

from enum import IntEnum, StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

# Maintained by the backend; never sent back on create/edit.
_SERVER_FIELDS = {"attachments", "revision_date", "creation_date", "deleted_date"}


class ObjectType(StrEnum):
    ITEM = "item"
    FOLDER = "folder"
    ORG_COLLECTION = "org-collection"
    COLLECTION = "collection"
    ORGANIZATION = "organization"

    @property
    def plural(self) -> str:
        """Name used by list endpoints (``items``, ``org-collections``...)."""
        return f"{self.value}s"


class ItemType(IntEnum):
    LOGIN = 1
    SECURE_NOTE = 2
    CARD = 3
    IDENTITY = 4


class VaultStatus(StrEnum):
    LOCKED = "locked"
    UNLOCKED = "unlocked"
    UNAUTHENTICATED = "unauthenticated"


class _WireModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class LoginURI(_WireModel):
    match: int | None = None
    uri: str = ""


class Login(_WireModel):
    username: str | None = None
    password: str | None = None
    totp: str | None = None
    uris: list[LoginURI] = Field(default_factory=list)
    password_revision_date: str | None = None

    @field_validator("uris", mode="before")
    @classmethod
    def null_uris_as_empty(cls, v: Any) -> Any:
        return v or []


class SecureNote(_WireModel):
    type: int = 0


class Card(_WireModel):
    cardholder_name: str | None = None
    brand: str | None = None
    number: str | None = None
    exp_month: str | None = None
    exp_year: str | None = None
    code: str | None = None


class Identity(_WireModel):
    title: str | None = None
    first_name: str | None = None
    middle_name: str | None = None
    last_name: str | None = None
    address1: str | None = None
    address2: str | None = None
    address3: str | None = None
    city: str | None = None
    state: str | None = None
    postal_code: str | None = None
    country: str | None = None
    company: str | None = None
    email: str | None = None
    phone: str | None = None
    ssn: str | None = None
    username: str | None = None
    passport_number: str | None = None
    license_number: str | None = None


class CustomField(_WireModel):
    name: str = ""
    value: str | None = None
    type: int = 0  # 0 text, 1 hidden, 2 boolean, 3 linked
    linked_id: int | None = None


class Attachment(_WireModel):
    """A file attached to an item. Owned by the item; no lifecycle of its own."""

    id: str
    file_name: str = ""
    size: str = "0"
    size_name: str = ""
    url: str = ""

    @property
    def size_bytes(self) -> int:
        try:
            return int(self.size)
        except ValueError:
            return 0


class Object(_WireModel):
    """A vault object: item, folder, collection, or organization.

    ``id`` is empty until the backend has persisted the object.
    """

    object: ObjectType = ObjectType.ITEM
    id: str = ""
    organization_id: str | None = None
    collection_ids: list[str] = Field(default_factory=list)
    folder_id: str | None = None
    external_id: str | None = None
    type: ItemType | None = None
    name: str = ""
    notes: str | None = None
    favorite: bool = False
    reprompt: int = 0
    fields: list[CustomField] = Field(default_factory=list)
    login: Login | None = None
    secure_note: SecureNote | None = None
    card: Card | None = None
    identity: Identity | None = None
    attachments: list[Attachment] = Field(default_factory=list)
    revision_date: str | None = None
    creation_date: str | None = None
    deleted_date: str | None = None

    @field_validator("collection_ids", "fields", "attachments", mode="before")
    @classmethod
    def null_lists_as_empty(cls, v: Any) -> Any:
        """The backend sends null for empty lists."""
        return v or []

    def require_id(self) -> str:
        if not self.id:
            raise ValueError(f"{self.object} has no id")
        return self.id

    def to_payload(self) -> dict[str, Any]:
        """Wire payload for create/edit.

        Items are sent whole, ``None`` included, so an edit clears every
        omitted field. Other object types only carry what is set.
        """
        exclude = set(_SERVER_FIELDS)
        if not self.id:
            exclude.add("id")
        return self.model_dump(
            mode="json",
            by_alias=True,
            exclude=exclude,
            exclude_none=self.object != ObjectType.ITEM,
        )


class Status(_WireModel):
    server_url: str | None = None
    last_sync: str | None = None
    user_email: str | None = None
    user_id: str | None = None
    status: VaultStatus = VaultStatus.UNAUTHENTICATED


class MessageResult(_WireModel):
    """Payload of unlock/login/sync replies. ``raw`` carries the session key."""

    object: str = "message"
    title: str | None = None
    message: str | None = None
    raw: str | None = None


class StatusTemplate(_WireModel):
    """``status`` replies wrap the Status in a template object."""

    object: str = "template"
    template: Status
