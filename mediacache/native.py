"""
Native fast-path adapter.

Lists photo metadata and fetches thumbnails over a NativeTransport, which is
cheaper than going through the generic provider. Availability is checked once
per instance; thumbnail failures return None so callers can fall back.
"""
from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterator, Dict, Iterable, List, Optional, Tuple

from mediacache.config import NATIVE_MAX_CONCURRENT
from mediacache.errors import NativeMediaError
from mediacache.models import AssetKind, MediaAsset
from mediacache.schemas import PhotoMetadata, PhotosResponse
from mediacache.transport import NativeTransport

logger = logging.getLogger(__name__)


class NativeMediaService:

    def __init__(self, transport: NativeTransport, page_delay: float = 0.01):
        self.transport = transport
        self.page_delay = page_delay
        self._available: Optional[bool] = None

    async def is_available(self) -> bool:
        """Probe the channel with a count query; the answer is kept for good."""
        if self._available is None:
            try:
                await self.transport.invoke("getPhotosCount")
                self._available = True
            except Exception as e:
                logger.info("Native media service unavailable: %s", e)
                self._available = False
        return self._available

    async def get_photos_metadata(self, limit: int = 100, offset: int = 0) -> PhotosResponse:
        """One page of photo metadata, newest first."""
        try:
            result = await self.transport.invoke("getPhotosMetadata", {"limit": limit, "offset": offset})
            return PhotosResponse.model_validate(result)
        except NativeMediaError:
            raise
        except Exception as e:
            raise NativeMediaError(NativeMediaError.QUERY_ERROR,
                                   f"Unexpected error getting photos metadata: {e}") from e

    async def list_metadata(self, limit: int, offset: int) -> Tuple[List[PhotoMetadata], bool]:
        """
        (items, has_more). has_more is len(items) == limit, so a final page
        that is exactly full costs one extra, empty request.
        """
        response = await self.get_photos_metadata(limit=limit, offset=offset)
        return response.photos, len(response.photos) == limit

    async def get_photo_thumbnail(self, photo_id: int, size: int = 150) -> Optional[bytes]:
        """Square JPEG thumbnail, or None on any failure."""
        try:
            result = await self.transport.invoke("getPhotoThumbnail", {"photoId": photo_id, "size": size})
            if result is None:
                return None
            return bytes(result)
        except Exception as e:
            logger.debug("Native thumbnail failed for photo %s: %s", photo_id, e)
            return None

    async def get_photos_count(self) -> int:
        try:
            return int(await self.transport.invoke("getPhotosCount"))
        except NativeMediaError:
            raise
        except Exception as e:
            raise NativeMediaError(NativeMediaError.COUNT_ERROR,
                                   f"Unexpected error getting photos count: {e}") from e

    async def iter_photos_metadata(self, page_size: int = 50) -> AsyncIterator[PhotosResponse]:
        """Page through all metadata; stops quietly on the first error."""
        offset = 0
        has_more = True

        while has_more:
            try:
                response = await self.get_photos_metadata(limit=page_size, offset=offset)
            except NativeMediaError as e:
                logger.warning("Error in photos metadata stream: %s", e)
                break

            yield response

            has_more = len(response.photos) == page_size
            offset += page_size

            # Small delay so paging does not hog the channel
            await asyncio.sleep(self.page_delay)

    async def preload_thumbnails(
        self,
        photo_ids: Iterable[int],
        size: int = 150,
        max_concurrent: int = NATIVE_MAX_CONCURRENT,
    ) -> Dict[int, bytes]:
        """Fetch many thumbnails with at most max_concurrent in flight."""
        thumbnails: Dict[int, bytes] = {}
        semaphore = asyncio.Semaphore(max_concurrent)

        async def fetch(photo_id: int):
            async with semaphore:
                data = await self.get_photo_thumbnail(photo_id, size=size)
                if data is not None:
                    thumbnails[photo_id] = data

        await asyncio.gather(*(fetch(pid) for pid in photo_ids))
        return thumbnails

    # ------------------------------------------------------------------
    # MediaAsset source capability
    # ------------------------------------------------------------------
    def to_asset(self, photo: PhotoMetadata) -> MediaAsset:
        return MediaAsset(
            id=photo.id,
            kind=AssetKind.IMAGE,
            name=photo.name,
            created_at=photo.date_added,
            modified_at=photo.date_modified,
            size=photo.size,
            width=photo.width,
            height=photo.height,
            mime_type=photo.mime_type,
            path=photo.path,
            source=self,
        )

    async def thumbnail(self, asset: MediaAsset, width: int, height: int) -> Optional[bytes]:
        return await self.get_photo_thumbnail(int(asset.id), size=max(width, height))

    async def file(self, asset: MediaAsset) -> Optional[str]:
        return asset.path
