"""Editor media uploads."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status

from .. import media, models, schemas
from ..auth import get_current_member
from ..settings import MAX_UPLOAD_BYTES

router = APIRouter(prefix="/api/uploads", tags=["Uploads"])
logger = logging.getLogger(__name__)


@router.post("", response_model=schemas.UploadResponse, status_code=status.HTTP_201_CREATED)
async def upload_file(
    file: UploadFile = File(...),
    current_member: models.Member = Depends(get_current_member),
) -> schemas.UploadResponse:
    """
    Store a file for use in a publication.

    Saved as ``{name}-{timestamp}{ext}`` and served under ``/uploads``.
    """
    content = await file.read(MAX_UPLOAD_BYTES + 1)
    if len(content) > MAX_UPLOAD_BYTES:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail={"error": "FILE_TOO_LARGE", "message": f"File exceeds {MAX_UPLOAD_BYTES} bytes"},
        )

    name, url = media.save_upload(file.filename or "file", content)
    logger.info(f"Member {current_member.id} uploaded {name}")
    return schemas.UploadResponse(url=url, name=name)
