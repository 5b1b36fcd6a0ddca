"""
FastAPI service exposing the native media channel over HTTP.
Serves getPhotosMetadata / getPhotoThumbnail / getPhotosCount for one media
root so a MediaCache elsewhere can use it through HttpTransport.
"""
from __future__ import annotations

import asyncio
import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse, Response

from mediacache import config
from mediacache.errors import NativeMediaError
from mediacache.mediastore import MediaStore
from mediacache.schemas import (
    CountResponse,
    HealthResponse,
    NativeErrorResponse,
    PhotosMetadataRequest,
    PhotosResponse,
    PhotoThumbnailRequest,
    RootResponse,
)

logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"

# Global instance
_STORE: Optional[MediaStore] = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup/shutdown."""
    # Startup
    global _STORE
    root = os.environ.get("MEDIACACHE_ROOT", config.MEDIA_ROOT)
    _STORE = MediaStore(root)
    try:
        loop = asyncio.get_event_loop()
        entries = await loop.run_in_executor(None, _STORE.index.scan)
        logger.info("Indexed %d media files under %s", len(entries), root)
    except Exception as e:
        # Keep serving; every call will report the failure with a tagged code
        logger.warning("Initial scan of %s failed: %s", root, e)

    yield

    # Shutdown
    _STORE = None


# Create FastAPI app
app = FastAPI(
    title="Native Media Service",
    description="Photo metadata and thumbnails for the media cache fast path",
    version=API_VERSION,
    lifespan=lifespan,
)


_STATUS_BY_CODE = {
    NativeMediaError.INVALID_ARGUMENT: 400,
    NativeMediaError.NOT_IMPLEMENTED: 404,
}

_ERROR_RESPONSES = {status: {"model": NativeErrorResponse} for status in (400, 404, 500)}


@app.exception_handler(NativeMediaError)
async def native_error_handler(request: Request, exc: NativeMediaError):
    return JSONResponse(exc.to_dict(), status_code=_STATUS_BY_CODE.get(exc.code, 500))


# -----------------------------------------------------------------------------
# DEPENDENCY INJECTION
# -----------------------------------------------------------------------------

def get_store() -> MediaStore:
    """Dependency: Get the media store for the configured root."""
    global _STORE
    if _STORE is None:
        _STORE = MediaStore(os.environ.get("MEDIACACHE_ROOT", config.MEDIA_ROOT))
    return _STORE


async def _call(store: MediaStore, method: str, arguments: dict):
    loop = asyncio.get_event_loop()
    return await loop.run_in_executor(None, store.invoke, method, arguments)


# -----------------------------------------------------------------------------
# NATIVE CHANNEL
# -----------------------------------------------------------------------------

@app.post("/native/getPhotosMetadata", response_model=PhotosResponse, responses=_ERROR_RESPONSES)
async def get_photos_metadata(
    body: PhotosMetadataRequest,
    store: MediaStore = Depends(get_store),
):
    """One page of photo metadata, newest first."""
    result = await _call(store, "getPhotosMetadata", {"limit": body.limit, "offset": body.offset})
    return JSONResponse(result)


@app.post("/native/getPhotoThumbnail", responses=_ERROR_RESPONSES)
async def get_photo_thumbnail(
    body: PhotoThumbnailRequest,
    store: MediaStore = Depends(get_store),
):
    """Square JPEG thumbnail; 204 when the store produced nothing."""
    data = await _call(store, "getPhotoThumbnail", {"photoId": body.photo_id, "size": body.size})
    if not data:
        return Response(status_code=204)
    return Response(content=data, media_type="image/jpeg")


@app.post("/native/getPhotosCount", response_model=CountResponse, responses=_ERROR_RESPONSES)
async def get_photos_count(store: MediaStore = Depends(get_store)):
    """Total number of photos."""
    count = await _call(store, "getPhotosCount", {})
    return CountResponse(count=count)


@app.post("/native/{method}", responses=_ERROR_RESPONSES)
async def unknown_method(method: str):
    raise NativeMediaError(NativeMediaError.NOT_IMPLEMENTED, f"Unknown method: {method}")


# -----------------------------------------------------------------------------
# HEALTH CHECK
# -----------------------------------------------------------------------------

@app.get("/api/health")
async def health_check(store: MediaStore = Depends(get_store)) -> HealthResponse:
    """
    Health check endpoint.
    Reports degraded (still 200) when the media root cannot be read.
    """
    try:
        count = await _call(store, "getPhotosCount", {})
        return HealthResponse(status="ok", version=API_VERSION, media_root=str(store.index.root), photos=count)
    except NativeMediaError as e:
        logger.warning("Health check scan failed: %s", e)
        return HealthResponse(status="degraded", version=API_VERSION, media_root=str(store.index.root))


@app.get("/")
async def root() -> RootResponse:
    """Root endpoint."""
    return RootResponse(message="Native Media Service", version=API_VERSION)
