"""Typed failures for wallpaper sources.

Every provider-level exception is converted into a SourceError before it
crosses into the manager or the state bus. The kind decides the
user-facing message; kinds without a fixed message fall back to the raw
text of the failure.
"""

import logging
from enum import Enum
from typing import Any, Dict, Optional

import requests

logger = logging.getLogger(__name__)


class SourceErrorType(str, Enum):
    NETWORK = "network"
    AUTHENTICATION = "authentication"
    RATE_LIMIT = "rate-limit"
    CONFIGURATION = "configuration"
    PARAMETER = "parameter"
    UNKNOWN = "unknown"


USER_MESSAGES = {
    SourceErrorType.NETWORK: "Network error when connecting to the wallpaper source. Please check your internet connection.",
    SourceErrorType.AUTHENTICATION: "Authentication failed. Please check your API credentials.",
    SourceErrorType.RATE_LIMIT: "Rate limit exceeded. Please try again later.",
    SourceErrorType.CONFIGURATION: "Source configuration error. Please check your settings.",
}


class SourceError(Exception):
    """A failure raised by (or on behalf of) one wallpaper source."""

    def __init__(self, kind: SourceErrorType, message: str,
                 source_id: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.kind = SourceErrorType(kind)
        self.message = message
        self.source_id = source_id
        self.details = details or {}

    def __repr__(self):
        return f"SourceError({self.kind.value!r}, {self.message!r}, source_id={self.source_id!r})"

    def user_message(self) -> str:
        """Stable text suitable for showing to a person."""
        fixed = USER_MESSAGES.get(self.kind)
        if fixed is not None:
            return fixed
        return f"An unexpected error occurred: {self.message}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "message": self.message,
            "source_id": self.source_id,
            "details": dict(self.details),
        }

    @classmethod
    def from_status(cls, status: int, source_id: Optional[str] = None,
                    url: Optional[str] = None) -> "SourceError":
        """Map a non-2xx HTTP status onto the taxonomy."""
        details = {"status": status}
        if url:
            details["url"] = url
        if status in (401, 403):
            kind = SourceErrorType.AUTHENTICATION
        elif status == 429:
            kind = SourceErrorType.RATE_LIMIT
        else:
            kind = SourceErrorType.NETWORK
        return cls(kind, f"HTTP {status}", source_id, details)

    @classmethod
    def wrap(cls, exc: BaseException, source_id: Optional[str] = None) -> "SourceError":
        """Convert any exception into a SourceError (existing ones pass through)."""
        if isinstance(exc, SourceError):
            if exc.source_id is None:
                exc.source_id = source_id
            return exc
        if isinstance(exc, requests.RequestException):
            return cls(SourceErrorType.NETWORK, str(exc) or exc.__class__.__name__, source_id,
                       {"exception": exc.__class__.__name__})
        return cls(SourceErrorType.UNKNOWN, str(exc) or exc.__class__.__name__, source_id,
                   {"exception": exc.__class__.__name__})
