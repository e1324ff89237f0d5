"""Schemas for media uploads."""
from __future__ import annotations

from pydantic import BaseModel, Field

from ..models import MediaType


class UploadResponse(BaseModel):
    """Response returned after storing a file in object storage."""

    url: str = Field(..., description="Public URL of the uploaded object")
    key: str = Field(..., description="Object key inside the bucket")
    content_type: str = Field(..., description="MIME type recorded with the object")
    media_type: MediaType = Field(..., description="Item media type inferred from the content type")


__all__ = ["UploadResponse"]
