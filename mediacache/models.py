"""
Core data types shared by the providers, the native adapter and the cache.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, List, Optional, Union


AssetId = Union[str, int]


class AssetKind(str, Enum):
    IMAGE = "image"
    VIDEO = "video"


class RequestType(str, Enum):
    """Which kinds of asset an album listing should cover."""
    IMAGE = "image"
    VIDEO = "video"
    COMMON = "common"

    def matches(self, kind: AssetKind) -> bool:
        if self is RequestType.COMMON:
            return True
        return self.value == kind.value


class PermissionState(Enum):
    UNKNOWN = "unknown"
    GRANTED = "granted"
    DENIED = "denied"

    @classmethod
    def from_bool(cls, granted: bool) -> "PermissionState":
        return cls.GRANTED if granted else cls.DENIED

    def as_bool(self) -> Optional[bool]:
        if self is PermissionState.UNKNOWN:
            return None
        return self is PermissionState.GRANTED


@dataclass(frozen=True)
class MediaAsset:
    """
    A single photo or video as exposed by a media source.

    The thumbnail/file capabilities delegate to whichever source produced
    the asset (an AssetProvider or the native adapter), so callers never
    need to know where it came from.
    """
    id: AssetId
    kind: AssetKind
    name: str
    created_at: int = 0   # epoch seconds
    modified_at: int = 0  # epoch seconds
    size: int = 0
    width: int = 0
    height: int = 0
    mime_type: str = "application/octet-stream"
    path: Optional[str] = None
    source: Any = field(default=None, repr=False, compare=False)

    @property
    def cache_key(self) -> str:
        return str(self.id)

    @property
    def created(self) -> datetime:
        return datetime.fromtimestamp(self.created_at)

    @property
    def modified(self) -> datetime:
        return datetime.fromtimestamp(self.modified_at)

    async def thumbnail(self, width: int, height: int) -> Optional[bytes]:
        if self.source is None:
            return None
        return await self.source.thumbnail(self, width, height)

    async def file(self) -> Optional[str]:
        if self.source is None:
            return self.path
        return await self.source.file(self)


class AlbumHandle:
    """A named, ordered collection of assets living in a provider."""

    def __init__(
        self,
        id: str,
        name: str,
        provider: Any,
        kind: RequestType = RequestType.COMMON,
        is_all: bool = False,
    ):
        self.id = id
        self.name = name
        self.kind = kind
        self.is_all = is_all
        self._provider = provider

    async def count(self) -> int:
        """Current number of items; asks the provider every time."""
        return await self._provider.album_count(self)

    async def page(self, offset: int, size: int) -> List[MediaAsset]:
        return await self._provider.album_page(self, offset, size)

    def __repr__(self) -> str:
        return f"AlbumHandle(id={self.id!r}, name={self.name!r}, kind={self.kind.value})"


@dataclass
class CollectionSnapshot:
    """
    Cached view of one collection.

    items is replaced wholesale whenever a fuller result lands. token is
    bumped each time a fresh initial page is stored, so a continuation
    launched for an older page can tell that its result is no longer wanted.
    """
    items: List[Any] = field(default_factory=list)
    initial_loaded: bool = False
    fully_loaded: bool = False
    token: int = 0

    @property
    def state(self) -> str:
        if self.fully_loaded:
            return "fully_loaded"
        if self.initial_loaded:
            return "initial_loaded"
        return "empty"
