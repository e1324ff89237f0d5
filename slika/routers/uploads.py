"""Standalone upload endpoint backed by object storage."""
from __future__ import annotations

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status

from ..models import User
from ..schemas import UploadResponse
from ..services import StorageConfigurationError, StorageUploadError, get_acting_user, upload_file

router = APIRouter(tags=["uploads"])


@router.post("/uploads", response_model=UploadResponse, status_code=status.HTTP_201_CREATED)
async def upload_endpoint(
    file: UploadFile = File(...),
    current_user: User = Depends(get_acting_user),
) -> UploadResponse:
    """Store a file publicly and return its URL for a later ``POST /items``."""

    filename = (file.filename or "").strip()
    if not filename:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Uploaded file must include a filename.")

    try:
        result = await upload_file(file)
    except StorageConfigurationError as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)) from exc
    except StorageUploadError as exc:  # pragma: no cover - network bound
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc

    return UploadResponse(
        url=result.url,
        key=result.key,
        content_type=result.content_type,
        media_type=result.media_type,
    )


__all__ = ["router"]
