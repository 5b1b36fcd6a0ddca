"""
MediaCache: the process-wide store of photos, videos, albums and thumbnails.

Every collection loads in two phases. A small first page is fetched and
returned straight away, then a background task fetches the complete
collection and swaps it in. Thumbnails for whatever was fetched are warmed
in the background as well.

All state lives on one asyncio loop and is only touched from it, so nothing
here takes a lock. Background tasks cannot be cancelled; instead each one
remembers the cache generation and snapshot token it started under and
drops its result if either has moved on.
"""
from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Set

from mediacache.cache import ThumbnailCache
from mediacache.config import CacheSettings
from mediacache.errors import MediaQueryError
from mediacache.models import (
    AlbumHandle,
    AssetId,
    CollectionSnapshot,
    MediaAsset,
    PermissionState,
    RequestType,
)
from mediacache.native import NativeMediaService
from mediacache.provider import AssetProvider
from mediacache.schemas import PhotoMetadata
from mediacache.warmer import ThumbnailWarmer

logger = logging.getLogger(__name__)

PHOTOS = "photos"
VIDEOS = "videos"
ALBUMS = "albums"


class MediaCache:
    """
    Construct one per process and hand it to whoever needs media.

    provider is required; native is optional and, when given, is checked once
    and used for photo listing and photo thumbnails while it answers.
    """

    def __init__(
        self,
        provider: AssetProvider,
        native: Optional[NativeMediaService] = None,
        settings: Optional[CacheSettings] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.provider = provider
        self.native = native
        self.settings = settings or CacheSettings()

        self._permission = PermissionState.UNKNOWN
        self._native_available: Optional[bool] = None
        self._generation = 0
        self._tasks: Set[asyncio.Future] = set()

        self._snapshots: Dict[str, CollectionSnapshot] = self._empty_snapshots()
        self._album_assets: Dict[str, CollectionSnapshot] = {}
        self._native_photos: Optional[List[PhotoMetadata]] = None

        s = self.settings
        self.thumbnails: ThumbnailCache[str] = ThumbnailCache(s.thumbnail_cache_max, s.thumbnail_ttl, clock)
        self.native_thumbnails: ThumbnailCache[int] = ThumbnailCache(
            s.native_thumbnail_cache_max, s.thumbnail_ttl, clock)
        self._warmer, self._native_warmer = self._make_warmers()

    def _make_warmers(self):
        s = self.settings
        warmer = ThumbnailWarmer(
            self.thumbnails, self._fetch_thumbnail,
            key=lambda asset: asset.cache_key,
            batch_size=s.warm_batch_size, delay=s.warm_batch_delay,
        )
        native_warmer = ThumbnailWarmer(
            self.native_thumbnails, self._fetch_native_thumbnail,
            key=lambda asset: int(asset.id),
            batch_size=s.warm_batch_size, delay=s.warm_batch_delay,
        )
        return warmer, native_warmer

    @staticmethod
    def _empty_snapshots() -> Dict[str, CollectionSnapshot]:
        return {PHOTOS: CollectionSnapshot(), VIDEOS: CollectionSnapshot(), ALBUMS: CollectionSnapshot()}

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------
    def _items_or_none(self, name: str) -> Optional[List[Any]]:
        snap = self._snapshots[name]
        return snap.items if snap.initial_loaded else None

    @property
    def photos(self) -> Optional[List[MediaAsset]]:
        return self._items_or_none(PHOTOS)

    @property
    def videos(self) -> Optional[List[MediaAsset]]:
        return self._items_or_none(VIDEOS)

    @property
    def albums(self) -> Optional[List[AlbumHandle]]:
        return self._items_or_none(ALBUMS)

    def get_album_assets(self, album_id: str) -> Optional[List[MediaAsset]]:
        snap = self._album_assets.get(album_id)
        return snap.items if snap is not None else None

    def snapshot(self, name: str) -> CollectionSnapshot:
        """Current snapshot for photos, videos or albums."""
        return self._snapshots[name]

    def album_snapshot(self, album_id: str) -> Optional[CollectionSnapshot]:
        return self._album_assets.get(album_id)

    @property
    def photos_loaded(self) -> bool:
        return self._snapshots[PHOTOS].fully_loaded

    @property
    def videos_loaded(self) -> bool:
        return self._snapshots[VIDEOS].fully_loaded

    @property
    def albums_loaded(self) -> bool:
        return self._snapshots[ALBUMS].fully_loaded

    @property
    def has_permission(self) -> Optional[bool]:
        return self._permission.as_bool()

    @property
    def native_available(self) -> bool:
        return bool(self._native_available)

    @property
    def generation(self) -> int:
        return self._generation

    # ------------------------------------------------------------------
    # Permission
    # ------------------------------------------------------------------
    async def check_permission(self) -> bool:
        """Ask the provider once; the answer, denial included, is kept until clear_cache()."""
        if self._permission is not PermissionState.UNKNOWN:
            return self._permission is PermissionState.GRANTED

        try:
            granted = bool(await self.provider.request_permission())
        except Exception as e:
            logger.warning("Permission request failed, treating as denied: %s", e)
            granted = False

        self._permission = PermissionState.from_bool(granted)
        return granted

    async def _use_native(self) -> bool:
        if self.native is None:
            return False
        if self._native_available is None:
            self._native_available = await self.native.is_available()
        return self._native_available

    # ------------------------------------------------------------------
    # Background task bookkeeping
    # ------------------------------------------------------------------
    def _spawn(self, coro: Awaitable) -> asyncio.Future:
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def wait_until_idle(self):
        """Wait for every background load and warm-up, including ones they start."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def _still_current(self, snap: CollectionSnapshot, generation: int, token: int) -> bool:
        return generation == self._generation and snap.token == token

    @staticmethod
    def _store_initial(snap: CollectionSnapshot, items: List[Any], complete: bool) -> int:
        snap.token += 1
        snap.items = items
        snap.initial_loaded = True
        snap.fully_loaded = complete
        return snap.token

    @staticmethod
    def _store_full(snap: CollectionSnapshot, items: List[Any]):
        snap.token += 1
        snap.items = items
        snap.initial_loaded = True
        snap.fully_loaded = True

    @staticmethod
    def _is_fresh(snap: Optional[CollectionSnapshot], force_reload: bool) -> bool:
        return snap is not None and snap.initial_loaded and not force_reload and bool(snap.items)

    # ------------------------------------------------------------------
    # Progressive loads
    # ------------------------------------------------------------------
    async def load_photos(self, force_reload: bool = False) -> List[MediaAsset]:
        """First page of photos now, the rest in the background."""
        if self._is_fresh(self._snapshots[PHOTOS], force_reload):
            return self._snapshots[PHOTOS].items

        if await self._use_native():
            try:
                return await self._load_photos_native()
            except Exception as e:
                logger.warning("Native photo loading failed, falling back to provider: %s", e)

        return await self._load_aggregate(PHOTOS, RequestType.IMAGE, self.settings.photo_page_size)

    async def load_videos(self, force_reload: bool = False) -> List[MediaAsset]:
        """First page of videos now, the rest in the background."""
        if self._is_fresh(self._snapshots[VIDEOS], force_reload):
            return self._snapshots[VIDEOS].items
        return await self._load_aggregate(VIDEOS, RequestType.VIDEO, self.settings.video_page_size)

    async def load_albums(self, force_reload: bool = False) -> List[AlbumHandle]:
        """First albums now, the full album list in the background."""
        snap = self._snapshots[ALBUMS]
        if self._is_fresh(snap, force_reload):
            return snap.items

        generation = self._generation
        page_size = self.settings.album_page_size
        try:
            albums = await self.provider.list_albums(RequestType.COMMON, only_all=False)
        except Exception as e:
            raise MediaQueryError(ALBUMS, str(e)) from e

        initial = albums[:page_size]
        if generation != self._generation:
            return initial

        snap = self._snapshots[ALBUMS]
        complete = len(albums) <= page_size
        token = self._store_initial(snap, initial, complete)
        if not complete:
            self._spawn(self._complete_albums(snap, generation, token))
        return initial

    async def load_album_assets(self, album: AlbumHandle, force_reload: bool = False) -> List[MediaAsset]:
        """First page of one album's assets, keyed by album id."""
        snap = self._album_assets.get(album.id)
        if self._is_fresh(snap, force_reload):
            return snap.items

        generation = self._generation
        page_size = self.settings.album_asset_page_size
        name = f"album {album.name}"
        try:
            items = await album.page(0, page_size)
        except Exception as e:
            raise MediaQueryError(name, str(e)) from e

        if generation != self._generation:
            return items

        snap = self._album_assets.setdefault(album.id, CollectionSnapshot())
        complete = len(items) < page_size
        token = self._store_initial(snap, items, complete)
        self._warm(items)
        if not complete:
            self._spawn(self._complete_from_album(name, snap, album, generation, token, len(items)))
        return items

    async def _load_aggregate(self, name: str, kind: RequestType, page_size: int) -> List[MediaAsset]:
        generation = self._generation
        album = None
        try:
            albums = await self.provider.list_albums(kind, only_all=True)
            if albums:
                album = albums[0]
                items = await album.page(0, page_size)
            else:
                items = []
        except Exception as e:
            raise MediaQueryError(name, str(e)) from e

        if generation != self._generation:
            return items

        snap = self._snapshots[name]
        complete = len(items) < page_size
        token = self._store_initial(snap, items, complete)
        self._warm(items)
        if not complete:
            self._spawn(self._complete_from_album(name, snap, album, generation, token, len(items)))
        return items

    async def _load_photos_native(self) -> List[MediaAsset]:
        generation = self._generation
        page_size = self.settings.photo_page_size

        photos, has_more = await self.native.list_metadata(page_size, 0)
        items = [self.native.to_asset(p) for p in photos]
        if generation != self._generation:
            return items

        snap = self._snapshots[PHOTOS]
        token = self._store_initial(snap, items, complete=not has_more)
        self._native_photos = list(photos)
        self._warm(items)
        if has_more:
            self._spawn(self._complete_native(snap, generation, token, photos, items))
        return items

    # ------------------------------------------------------------------
    # Background continuations
    # ------------------------------------------------------------------
    async def _complete_from_album(self, name: str, snap: CollectionSnapshot, album: AlbumHandle,
                                   generation: int, token: int, initial_count: int):
        try:
            total = await album.count()
            items = await album.page(0, total)
        except Exception as e:
            logger.warning("Background %s load failed: %s", name, e)
            if self._still_current(snap, generation, token):
                snap.fully_loaded = True
            return

        if not self._still_current(snap, generation, token):
            logger.debug("Dropping stale background %s load", name)
            return

        snap.items = items
        snap.fully_loaded = True
        self._warm(items[initial_count:])

    async def _complete_albums(self, snap: CollectionSnapshot, generation: int, token: int):
        try:
            albums = await self.provider.list_albums(RequestType.COMMON, only_all=False)
        except Exception as e:
            logger.warning("Background %s load failed: %s", ALBUMS, e)
            if self._still_current(snap, generation, token):
                snap.fully_loaded = True
            return

        if not self._still_current(snap, generation, token):
            logger.debug("Dropping stale background %s load", ALBUMS)
            return

        snap.items = albums
        snap.fully_loaded = True

    async def _complete_native(self, snap: CollectionSnapshot, generation: int, token: int,
                               initial: List[PhotoMetadata], initial_items: List[MediaAsset]):
        collected = list(initial)
        page_size = self.settings.native_page_size
        offset = len(initial)
        try:
            has_more = True
            while has_more:
                photos, has_more = await self.native.list_metadata(page_size, offset)
                collected.extend(photos)
                offset += page_size
                await asyncio.sleep(self.settings.native_page_delay)
        except Exception as e:
            logger.warning("Background native %s load failed: %s", PHOTOS, e)
            if self._still_current(snap, generation, token):
                snap.fully_loaded = True
            return

        if not self._still_current(snap, generation, token):
            logger.debug("Dropping stale background native %s load", PHOTOS)
            return

        new_items = [self.native.to_asset(p) for p in collected[len(initial):]]
        self._native_photos = collected
        snap.items = initial_items + new_items
        snap.fully_loaded = True
        self._warm(new_items)

    # ------------------------------------------------------------------
    # One-pass loads
    # ------------------------------------------------------------------
    async def _fetch_all(self, album: AlbumHandle) -> List[MediaAsset]:
        total = await album.count()
        return await album.page(0, total)

    async def _fetch_aggregate(self, kind: RequestType) -> List[MediaAsset]:
        albums = await self.provider.list_albums(kind, only_all=True)
        if not albums:
            return []
        return await self._fetch_all(albums[0])

    async def _load_all(self, name: str, snap: CollectionSnapshot,
                        fetch: Callable[[], Awaitable[List[Any]]], warm: bool = True) -> List[Any]:
        generation = self._generation
        try:
            items = await fetch()
        except Exception as e:
            if generation == self._generation:
                snap.initial_loaded = True
                snap.fully_loaded = True
            raise MediaQueryError(name, str(e)) from e

        if generation == self._generation:
            self._store_full(snap, items)
        if warm:
            self._warm(items)
        return items

    async def load_all_photos(self) -> List[MediaAsset]:
        """Every photo in one pass, for an explicit refresh."""
        return await self._load_all(PHOTOS, self._snapshots[PHOTOS],
                                    lambda: self._fetch_aggregate(RequestType.IMAGE))

    async def load_all_videos(self) -> List[MediaAsset]:
        """Every video in one pass, for an explicit refresh."""
        return await self._load_all(VIDEOS, self._snapshots[VIDEOS],
                                    lambda: self._fetch_aggregate(RequestType.VIDEO))

    async def load_all_albums(self) -> List[AlbumHandle]:
        return await self._load_all(ALBUMS, self._snapshots[ALBUMS],
                                    lambda: self.provider.list_albums(RequestType.COMMON, only_all=False),
                                    warm=False)

    async def load_all_album_assets(self, album: AlbumHandle) -> List[MediaAsset]:
        snap = self._album_assets.setdefault(album.id, CollectionSnapshot())
        return await self._load_all(f"album {album.name}", snap, lambda: self._fetch_all(album))

    async def load_all_album_assets_in_background(self):
        """Fill every album's asset list; per-album failures are ignored."""
        try:
            albums = await self.load_albums()
        except MediaQueryError as e:
            logger.warning("Could not list albums for background load: %s", e)
            return

        async def load_one(album: AlbumHandle):
            try:
                await self.load_all_album_assets(album)
            except MediaQueryError as e:
                logger.debug("Skipping %s: %s", album.name, e)

        await asyncio.gather(*(load_one(a) for a in albums))

    # ------------------------------------------------------------------
    # Thumbnails
    # ------------------------------------------------------------------
    def _is_native_asset(self, asset: MediaAsset) -> bool:
        return self.native is not None and asset.source is self.native

    def _warm(self, assets: Sequence[MediaAsset]):
        if not assets:
            return
        native_assets = [a for a in assets if self._is_native_asset(a)]
        generic_assets = [a for a in assets if not self._is_native_asset(a)]
        if native_assets:
            self._spawn(self._native_warmer.warm(native_assets))
        if generic_assets:
            self._spawn(self._warmer.warm(generic_assets))

    async def _fetch_thumbnail(self, asset: MediaAsset) -> Optional[bytes]:
        size = self.settings.thumbnail_size
        return await asset.thumbnail(size, size)

    async def _fetch_native_thumbnail(self, asset: MediaAsset, size: Optional[int] = None) -> Optional[bytes]:
        size = size or self.settings.thumbnail_size
        data = await self.native.get_photo_thumbnail(int(asset.id), size=size)
        if data is None:
            # Native channel failed for this photo, let the provider render it
            data = await self.provider.thumbnail(asset, size, size)
        return data

    def get_cached_thumbnail(self, asset_id: AssetId) -> Optional[bytes]:
        """Cached thumbnail for an asset id, native cache first for integer ids."""
        if isinstance(asset_id, int):
            data = self.native_thumbnails.get(asset_id)
            if data is not None:
                return data
        return self.thumbnails.get(str(asset_id))

    def get_cached_native_thumbnail(self, photo_id: int) -> Optional[bytes]:
        return self.native_thumbnails.get(photo_id)

    async def get_thumbnail(self, asset: MediaAsset, size: Optional[int] = None) -> Optional[bytes]:
        """Cached thumbnail, fetching and caching it on a miss."""
        size = size or self.settings.thumbnail_size

        if self._is_native_asset(asset):
            photo_id = int(asset.id)
            data = self.native_thumbnails.get(photo_id)
            if data is None:
                try:
                    data = await self._fetch_native_thumbnail(asset, size)
                except Exception as e:
                    logger.debug("Thumbnail failed for %s: %s", asset.id, e)
                    return None
                if data is not None:
                    self.native_thumbnails.put(photo_id, data)
            return data

        data = self.thumbnails.get(asset.cache_key)
        if data is not None:
            return data
        try:
            data = await asset.thumbnail(size, size)
        except Exception as e:
            logger.debug("Thumbnail failed for %s: %s", asset.id, e)
            return None
        if data is not None:
            self.thumbnails.put(asset.cache_key, data)
        return data

    # ------------------------------------------------------------------
    # Whole-cache operations
    # ------------------------------------------------------------------
    async def preload_all_data(self):
        """Kick off photos, videos and albums together; failures are only logged."""
        if not await self.check_permission():
            return

        results = await asyncio.gather(
            self.load_photos(),
            self.load_videos(),
            self.load_albums(),
            return_exceptions=True,
        )
        for name, result in zip((PHOTOS, VIDEOS, ALBUMS), results):
            if isinstance(result, Exception):
                logger.warning("Preloading %s failed: %s", name, result)

    def clear_cache(self):
        """Forget everything, permission included. Running background loads are orphaned."""
        self._generation += 1
        self._snapshots = self._empty_snapshots()
        self._album_assets = {}
        self._native_photos = None
        self._permission = PermissionState.UNKNOWN
        self.thumbnails.clear()
        self.native_thumbnails.clear()
        self._warmer.stop()
        self._native_warmer.stop()
        self._warmer, self._native_warmer = self._make_warmers()

    async def refresh_all_data(self):
        self.clear_cache()
        await self.preload_all_data()

    def get_cache_stats(self) -> Dict[str, Any]:
        return {
            "photos": len(self._snapshots[PHOTOS].items),
            "videos": len(self._snapshots[VIDEOS].items),
            "albums": len(self._snapshots[ALBUMS].items),
            "album_assets": len(self._album_assets),
            "thumbnails": len(self.thumbnails),
            "native_thumbnails": len(self.native_thumbnails),
            "native_photos": len(self._native_photos or []),
            "thumbnail_cache_size": self.thumbnails.max_size,
            "native_thumbnail_cache_size": self.native_thumbnails.max_size,
            "photos_loaded": self.photos_loaded,
            "videos_loaded": self.videos_loaded,
            "albums_loaded": self.albums_loaded,
            "native_available": self.native_available,
            "permission": self._permission.value,
            "generation": self._generation,
            "pending_tasks": len(self._tasks),
        }

    def get_loading_info(self) -> str:
        stats = self.get_cache_stats()
        return (
            f"Photos: {stats['photos']}, Videos: {stats['videos']}, Albums: {stats['albums']}, "
            f"Thumbnails: {stats['thumbnails']}, Native Thumbnails: {stats['native_thumbnails']}, "
            f"Native Photos: {stats['native_photos']}, Native Available: {stats['native_available']}"
        )
