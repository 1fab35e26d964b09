"""
Response envelope decoding.

Every backend reply is ``{"success": bool, "message": str?, "data": T}``.
The REST endpoint always answers this way; the ``bw`` CLI does when run with
``--response``. Decoding is the same for both transports.

Malformed bodies raise EnvelopeDecodeError (retryable). Well-formed failures
raise BackendFailure, or NotFoundError where the caller asks for it.
"""

from __future__ import annotations

import json
import logging
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from bwclient.errors import NOT_FOUND_MESSAGE, BackendFailure, EnvelopeDecodeError, NotFoundError
from bwclient.models import MessageResult

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


class Envelope(BaseModel):
    success: bool
    message: str | None = None
    data: Any = None


def parse_envelope(raw: bytes) -> Envelope:
    """Parse raw bytes into an Envelope without looking at ``data``."""
    logger.debug("Response from backend: %s", raw.decode("utf-8", errors="replace"))
    try:
        body = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise EnvelopeDecodeError(f"Malformed response body: {e}") from e

    if not isinstance(body, dict) or "success" not in body:
        raise EnvelopeDecodeError("Response body is not an envelope")

    try:
        return Envelope.model_validate(body)
    except ValidationError as e:
        raise EnvelopeDecodeError(f"Invalid envelope: {e}") from e


def decode_object(raw: bytes, model: type[M], *, not_found: bool = False) -> M:
    """Decode a single-object reply.

    With ``not_found=True`` a failure whose message is exactly "Not found."
    raises NotFoundError instead of BackendFailure.
    """
    envelope = parse_envelope(raw)
    if not envelope.success:
        message = envelope.message or ""
        if not_found and message == NOT_FOUND_MESSAGE:
            raise NotFoundError(message)
        raise BackendFailure(message)
    return _validate(model, envelope.data)


def decode_list(raw: bytes, model: type[M]) -> list[M]:
    """Decode a list reply. Accepts a bare array or ``{"object": "list", "data": [...]}``."""
    envelope = parse_envelope(raw)
    if not envelope.success:
        raise BackendFailure(envelope.message or "")

    data = envelope.data
    if isinstance(data, dict) and data.get("object") == "list":
        data = data.get("data")
    if data is None:
        return []
    if not isinstance(data, list):
        raise EnvelopeDecodeError(f"Expected a list payload, got {type(data).__name__}")
    return [_validate(model, entry) for entry in data]


def decode_message(raw: bytes) -> MessageResult:
    """Decode a session command reply (unlock, login, sync...).

    A successful reply may carry no data at all, which yields an empty
    MessageResult.
    """
    envelope = parse_envelope(raw)
    if not envelope.success:
        raise BackendFailure(envelope.message or "")
    if envelope.data is None:
        return MessageResult()
    return _validate(MessageResult, envelope.data)


def decode_ack(raw: bytes, *, not_found: bool = False) -> None:
    """Decode a boolean acknowledgment.

    The failure message is only inspected with ``not_found=True``; otherwise
    every failure is the same generic BackendFailure.
    """
    envelope = parse_envelope(raw)
    if envelope.success:
        return
    if not_found and envelope.message == NOT_FOUND_MESSAGE:
        raise NotFoundError(envelope.message)
    raise BackendFailure("response was not successful")


def _validate(model: type[M], data: Any) -> M:
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise EnvelopeDecodeError(f"Invalid {model.__name__} payload: {e}") from e
