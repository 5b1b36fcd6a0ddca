"""
Exception types raised by the media cache and its adapters.
"""
from __future__ import annotations

from typing import Any, Optional


class MediaCacheError(Exception):
    """Base class for media cache failures."""


class MediaQueryError(MediaCacheError):
    """
    A provider query failed while the caller was waiting on it.

    Raised only from foreground loads so the caller can offer a retry;
    background continuations log and swallow the same failures.
    """

    def __init__(self, collection: str, message: str):
        self.collection = collection
        super().__init__(f"Failed to load {collection}: {message}")


class NativeMediaError(MediaCacheError):
    """
    Tagged failure from the native fast-path channel.

    code is machine readable (QUERY_ERROR, THUMBNAIL_ERROR, COUNT_ERROR,
    INVALID_ARGUMENT, NOT_IMPLEMENTED, TRANSPORT_ERROR).
    """

    QUERY_ERROR = "QUERY_ERROR"
    THUMBNAIL_ERROR = "THUMBNAIL_ERROR"
    COUNT_ERROR = "COUNT_ERROR"
    INVALID_ARGUMENT = "INVALID_ARGUMENT"
    NOT_IMPLEMENTED = "NOT_IMPLEMENTED"
    TRANSPORT_ERROR = "TRANSPORT_ERROR"

    def __init__(self, code: str, message: str, details: Optional[Any] = None):
        self.code = code
        self.message = message
        self.details = details
        super().__init__(f"{code}: {message}")

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message, "details": self.details}
