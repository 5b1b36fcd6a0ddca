"""
Runtime configuration.

Values come from environment variables with sensible defaults. MediaCache
takes a CacheSettings instance so tests can override any of them.
"""
from __future__ import annotations

import os
from dataclasses import dataclass


MEDIA_ROOT = os.environ.get("MEDIACACHE_ROOT", os.path.expanduser("~/Pictures"))
NATIVE_URL = os.environ.get("MEDIACACHE_NATIVE_URL", "")
LOG_LEVEL = os.environ.get("LOG_LEVEL", "info")

# First page sizes: videos are fewer but heavier
PHOTO_PAGE_SIZE = int(os.environ.get("MEDIACACHE_PHOTO_PAGE", "200"))
VIDEO_PAGE_SIZE = int(os.environ.get("MEDIACACHE_VIDEO_PAGE", "100"))
ALBUM_PAGE_SIZE = int(os.environ.get("MEDIACACHE_ALBUM_PAGE", "200"))
ALBUM_ASSET_PAGE_SIZE = int(os.environ.get("MEDIACACHE_ALBUM_ASSET_PAGE", "200"))
NATIVE_PAGE_SIZE = int(os.environ.get("MEDIACACHE_NATIVE_PAGE", "100"))
NATIVE_PAGE_DELAY = float(os.environ.get("MEDIACACHE_NATIVE_PAGE_DELAY", "0.01"))

THUMBNAIL_SIZE = int(os.environ.get("MEDIACACHE_THUMB_SIZE", "150"))
THUMBNAIL_CACHE_MAX = int(os.environ.get("MEDIACACHE_THUMB_CACHE_MAX", "1000"))
NATIVE_THUMBNAIL_CACHE_MAX = int(os.environ.get("MEDIACACHE_NATIVE_THUMB_CACHE_MAX", "2000"))
THUMBNAIL_TTL = float(os.environ.get("MEDIACACHE_THUMB_TTL", str(24 * 3600)))  # 24 hours
JPEG_QUALITY = int(os.environ.get("MEDIACACHE_JPEG_QUALITY", "85"))

WARM_BATCH_SIZE = int(os.environ.get("MEDIACACHE_WARM_BATCH", "10"))
WARM_BATCH_DELAY = float(os.environ.get("MEDIACACHE_WARM_DELAY", "0.01"))
NATIVE_MAX_CONCURRENT = int(os.environ.get("MEDIACACHE_NATIVE_CONCURRENCY", "5"))


@dataclass(frozen=True)
class CacheSettings:
    """Tunables for a MediaCache instance."""
    photo_page_size: int = PHOTO_PAGE_SIZE
    video_page_size: int = VIDEO_PAGE_SIZE
    album_page_size: int = ALBUM_PAGE_SIZE
    album_asset_page_size: int = ALBUM_ASSET_PAGE_SIZE
    native_page_size: int = NATIVE_PAGE_SIZE
    native_page_delay: float = NATIVE_PAGE_DELAY
    thumbnail_size: int = THUMBNAIL_SIZE
    thumbnail_cache_max: int = THUMBNAIL_CACHE_MAX
    native_thumbnail_cache_max: int = NATIVE_THUMBNAIL_CACHE_MAX
    thumbnail_ttl: float = THUMBNAIL_TTL
    warm_batch_size: int = WARM_BATCH_SIZE
    warm_batch_delay: float = WARM_BATCH_DELAY
