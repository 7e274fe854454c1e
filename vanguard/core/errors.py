"""Error taxonomy for listing loads and mutations."""

from __future__ import annotations

from typing import Any, Optional


class VanguardError(Exception):
    """Base class for errors raised by this package."""


class RemoteCallError(VanguardError):
    """An external API call failed with a non-2xx status or a transport error."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    @classmethod
    def from_response(cls, verb: str, status_code: int, body: Any = None) -> "RemoteCallError":
        """Build an error, preferring the body's ``message`` or ``error`` field."""
        message = None
        if isinstance(body, dict):
            message = body.get("message") or body.get("error")
        return cls(str(message) if message else f"{verb} failed ({status_code})", status_code)


class FetchFailure(RemoteCallError):
    """Listing or message load failed."""


class MutationFailure(RemoteCallError):
    """Update, delete, create or send failed."""


class RecordDecodeError(VanguardError):
    """A raw row is structurally impossible (no usable id)."""

    def __init__(self, kind: str, row: Any):
        super().__init__(f"Cannot decode {kind} record without an id: {row!r}")
        self.kind = kind
        self.row = row


class InvalidPageSizeError(VanguardError, ValueError):
    """per_page must be a positive integer."""

    def __init__(self, per_page: Any):
        super().__init__(f"per_page must be >= 1, got {per_page!r}")
        self.per_page = per_page


class ListingNotFoundError(VanguardError, KeyError):
    """No unified item with the given id in the current view."""

    def __init__(self, item_id: str):
        super().__init__(item_id)
        self.item_id = item_id

    def __str__(self) -> str:
        return f"Listing '{self.item_id}' not found"
