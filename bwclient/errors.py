"""Error taxonomy for vault client operations.

TransportError and its subclasses are the only retryable errors. Everything
else is semantic and surfaces on the first attempt.
"""

from __future__ import annotations

NOT_FOUND_MESSAGE = "Not found."


class BitwardenError(Exception):
    """Base class for every error raised by bwclient."""


class TransportError(BitwardenError):
    """The backend could not be reached, or the exchange broke mid-way."""


class EnvelopeDecodeError(TransportError):
    """The response body was not a well-formed envelope."""


class BackendFailure(BitwardenError):
    """The backend answered with success=false."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(BitwardenError):
    """The requested object does not exist (any more)."""

    def __init__(self, message: str = NOT_FOUND_MESSAGE) -> None:
        super().__init__(message)


class AttachmentNotFoundError(BitwardenError):
    """The requested attachment does not exist on its item."""


class UnsupportedOperationError(BitwardenError):
    """The transport does not implement this operation."""


class ConsistencyViolationError(BitwardenError):
    """Client and backend disagree about an item's attachments."""
