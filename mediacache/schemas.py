"""
Pydantic models for the native fast-path wire format.
Shared by the native adapter, the MediaStore handler and the HTTP service.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, List, Optional
from pydantic import BaseModel, ConfigDict, Field


# -----------------------------------------------------------------------------
# NATIVE METADATA
# -----------------------------------------------------------------------------

class PhotoMetadata(BaseModel):
    """One photo as listed by the native channel."""
    id: int = Field(..., description="Native photo ID")
    name: str = Field(..., description="Display name")
    path: str = Field(..., description="Absolute file path")
    date_added: int = Field(..., alias="dateAdded", description="Epoch seconds when the photo was added")
    date_modified: int = Field(..., alias="dateModified", description="Epoch seconds of last modification")
    size: int = Field(..., ge=0, description="File size in bytes")
    width: int = Field(default=0, ge=0, description="Pixel width")
    height: int = Field(default=0, ge=0, description="Pixel height")
    mime_type: str = Field(..., alias="mimeType", description="MIME type")

    model_config = ConfigDict(populate_by_name=True)

    @property
    def created(self) -> datetime:
        return datetime.fromtimestamp(self.date_added)

    @property
    def modified(self) -> datetime:
        return datetime.fromtimestamp(self.date_modified)


class PhotosResponse(BaseModel):
    """One page of native photo metadata."""
    photos: List[PhotoMetadata] = Field(default_factory=list, description="Photos in this page")
    count: int = Field(..., ge=0, description="Number of photos in this page")
    has_more: bool = Field(..., alias="hasMore", description="True when the page was full")

    model_config = ConfigDict(populate_by_name=True)


# -----------------------------------------------------------------------------
# REQUEST MODELS
# -----------------------------------------------------------------------------

class PhotosMetadataRequest(BaseModel):
    """Arguments for getPhotosMetadata."""
    limit: int = Field(default=100, ge=1, description="Page size")
    offset: int = Field(default=0, ge=0, description="Number of photos to skip")


class PhotoThumbnailRequest(BaseModel):
    """Arguments for getPhotoThumbnail."""
    photo_id: Optional[int] = Field(None, alias="photoId", description="Native photo ID")
    size: int = Field(default=150, ge=1, le=2048, description="Edge length of the square thumbnail")

    model_config = ConfigDict(populate_by_name=True)


# -----------------------------------------------------------------------------
# RESPONSE MODELS
# -----------------------------------------------------------------------------

class NativeErrorResponse(BaseModel):
    """Tagged failure returned by the native service."""
    code: str = Field(..., description="Machine readable error kind")
    message: str = Field(..., description="Human readable message")
    details: Optional[Any] = Field(None, description="Underlying error, if any")


class CountResponse(BaseModel):
    """Response for getPhotosCount."""
    count: int = Field(..., ge=0, description="Total number of photos")


class HealthResponse(BaseModel):
    """Health check response."""
    status: str = Field(..., description="Service status")
    version: str = Field(..., description="API version")
    media_root: str = Field(..., description="Directory served by the native service")
    photos: Optional[int] = Field(None, description="Photo count, when the scan succeeded")


class RootResponse(BaseModel):
    """Root endpoint response."""
    message: str = Field(..., description="Service name")
    version: str = Field(..., description="API version")
    docs: str = Field(default="/docs", description="Interactive docs")
    health: str = Field(default="/api/health", description="Health endpoint")
