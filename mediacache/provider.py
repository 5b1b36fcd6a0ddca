"""
Asset provider adapters.

AssetProvider is the seam between the cache and whatever enumerates media on
the device. It does no caching of its own. LocalAssetProvider implements it
over a directory tree: one aggregate album holding everything, plus one
album per sub-directory.
"""
from __future__ import annotations

import asyncio
import os
from abc import ABC, abstractmethod
from typing import List, Optional

from mediacache.config import JPEG_QUALITY
from mediacache.extractor import MediaEntry, MediaIndex
from mediacache.gallery import render_thumbnail
from mediacache.models import AlbumHandle, AssetKind, MediaAsset, RequestType

ALL_ALBUM_ID = "isAll"
ALL_ALBUM_NAME = "Recent"


class AssetProvider(ABC):
    """Paginated media enumeration plus per-asset thumbnails."""

    @abstractmethod
    async def request_permission(self) -> bool:
        """Ask for media access; True when granted."""

    @abstractmethod
    async def list_albums(self, kind: RequestType, only_all: bool = False) -> List[AlbumHandle]:
        """
        Albums holding assets of the given kind. The aggregate album comes
        first; only_all returns just that one (or nothing when empty).
        """

    @abstractmethod
    async def album_count(self, album: AlbumHandle) -> int:
        """Number of assets in album."""

    @abstractmethod
    async def album_page(self, album: AlbumHandle, offset: int, size: int) -> List[MediaAsset]:
        """Up to size assets of album starting at offset."""

    @abstractmethod
    async def thumbnail(self, asset: MediaAsset, width: int, height: int) -> Optional[bytes]:
        """Encoded thumbnail for asset, None when one cannot be produced."""

    @abstractmethod
    async def file(self, asset: MediaAsset) -> Optional[str]:
        """Path of the full asset, None when it is gone."""


class LocalAssetProvider(AssetProvider):
    """
    AssetProvider over a local directory.

    Scanning and thumbnail rendering are blocking, so they run in the
    loop's default executor.
    """

    def __init__(self, root: str, index: Optional[MediaIndex] = None, quality: int = JPEG_QUALITY):
        self.index = index or MediaIndex(root)
        self.root = str(self.index.root)
        self.quality = quality

    async def _run(self, func, *args):
        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(None, func, *args)

    def _entries_for(self, album: AlbumHandle) -> List[MediaEntry]:
        if album.is_all:
            entries = self.index.entries
        else:
            entries = self.index.albums().get(album.id, [])
        return [e for e in entries if album.kind.matches(e.kind)]

    def _to_asset(self, entry: MediaEntry) -> MediaAsset:
        return MediaAsset(
            id=str(entry.id),
            kind=entry.kind,
            name=entry.name,
            created_at=entry.date_added,
            modified_at=entry.date_modified,
            size=entry.size,
            width=entry.width,
            height=entry.height,
            mime_type=entry.mime_type,
            path=entry.path,
            source=self,
        )

    async def request_permission(self) -> bool:
        return await self._run(os.access, self.root, os.R_OK | os.X_OK)

    async def list_albums(self, kind: RequestType, only_all: bool = False) -> List[AlbumHandle]:
        grouped = await self._run(self.index.albums)

        albums = []
        matching = [name for name, entries in grouped.items()
                    if any(kind.matches(e.kind) for e in entries)]
        if matching:
            albums.append(AlbumHandle(ALL_ALBUM_ID, ALL_ALBUM_NAME, self, kind=kind, is_all=True))
        if only_all:
            return albums

        for name in sorted(matching):
            display = os.path.basename(name) if name else os.path.basename(self.root.rstrip(os.sep))
            albums.append(AlbumHandle(name, display, self, kind=kind))
        return albums

    async def album_count(self, album: AlbumHandle) -> int:
        entries = await self._run(self._entries_for, album)
        return len(entries)

    async def album_page(self, album: AlbumHandle, offset: int, size: int) -> List[MediaAsset]:
        entries = await self._run(self._entries_for, album)
        return [self._to_asset(e) for e in entries[offset:offset + size]]

    async def thumbnail(self, asset: MediaAsset, width: int, height: int) -> Optional[bytes]:
        if asset.kind is not AssetKind.IMAGE or not asset.path:
            return None
        return await self._run(render_thumbnail, asset.path, width, height, self.quality)

    async def file(self, asset: MediaAsset) -> Optional[str]:
        if asset.path and await self._run(os.path.isfile, asset.path):
            return asset.path
        return None

    async def rescan(self):
        """Forget the directory listing so the next query walks the tree again."""
        self.index.refresh()
        await self._run(self.index.scan)
