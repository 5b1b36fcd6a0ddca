"""
Native side of the fast-path channel.

Answers getPhotosMetadata / getPhotoThumbnail / getPhotosCount over a
MediaIndex, the way the platform media store answers them on a phone.
Every failure is reported as a NativeMediaError with a tagged code.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from mediacache.config import JPEG_QUALITY
from mediacache.errors import NativeMediaError
from mediacache.extractor import MediaIndex
from mediacache.gallery import render_square_thumbnail
from mediacache.models import AssetKind

logger = logging.getLogger(__name__)


class MediaStore:
    """Blocking request handler; callers run it off the event loop."""

    def __init__(self, root: str, index: Optional[MediaIndex] = None, quality: int = JPEG_QUALITY):
        self.index = index or MediaIndex(root)
        self.quality = quality

    def _photos(self):
        return [e for e in self.index.entries if e.kind is AssetKind.IMAGE]

    def get_photos_metadata(self, limit: int = 100, offset: int = 0) -> Dict[str, Any]:
        if limit < 1 or offset < 0:
            raise NativeMediaError(NativeMediaError.INVALID_ARGUMENT,
                                   "limit must be positive and offset non-negative")
        try:
            page = self._photos()[offset:offset + limit]
        except Exception as e:
            logger.error("Error getting photos metadata: %s", e)
            raise NativeMediaError(NativeMediaError.QUERY_ERROR,
                                   "Failed to get photos metadata", str(e)) from e

        photos = [
            {
                "id": e.id,
                "name": e.name,
                "path": e.path,
                "dateAdded": e.date_added,
                "dateModified": e.date_modified,
                "size": e.size,
                "width": e.width,
                "height": e.height,
                "mimeType": e.mime_type,
            }
            for e in page
        ]
        return {"photos": photos, "count": len(photos), "hasMore": len(photos) == limit}

    def get_photo_thumbnail(self, photo_id: Optional[int], size: int = 150) -> bytes:
        if photo_id is None:
            raise NativeMediaError(NativeMediaError.INVALID_ARGUMENT, "Photo ID is required")
        try:
            entry = self.index.get(int(photo_id))
        except Exception as e:
            logger.error("Error getting photo thumbnail: %s", e)
            raise NativeMediaError(NativeMediaError.THUMBNAIL_ERROR,
                                   "Failed to get photo thumbnail", str(e)) from e
        if entry is None or entry.kind is not AssetKind.IMAGE:
            raise NativeMediaError(NativeMediaError.THUMBNAIL_ERROR,
                                   f"No photo with id {photo_id}")
        try:
            return render_square_thumbnail(entry.path, size, self.quality)
        except Exception as e:
            logger.error("Error creating thumbnail: %s", e)
            raise NativeMediaError(NativeMediaError.THUMBNAIL_ERROR,
                                   "Failed to create thumbnail", str(e)) from e

    def get_photos_count(self) -> int:
        try:
            return len(self._photos())
        except Exception as e:
            logger.error("Error getting photos count: %s", e)
            raise NativeMediaError(NativeMediaError.COUNT_ERROR,
                                   "Failed to get photos count", str(e)) from e

    def invoke(self, method: str, arguments: Optional[Dict[str, Any]] = None):
        """Dispatch one channel call by method name."""
        args = arguments or {}
        if method == "getPhotosMetadata":
            return self.get_photos_metadata(int(args.get("limit", 100)), int(args.get("offset", 0)))
        if method == "getPhotoThumbnail":
            return self.get_photo_thumbnail(args.get("photoId"), int(args.get("size", 150)))
        if method == "getPhotosCount":
            return self.get_photos_count()
        raise NativeMediaError(NativeMediaError.NOT_IMPLEMENTED, f"Unknown method: {method}")
