"""Self-service profile for the logged in member."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
from sqlalchemy.orm import Session

from .. import models, schemas
from ..auth import get_current_member
from ..deps import get_db
from ..services.members import ProfileService
from ..settings import MAX_AVATAR_BYTES

router = APIRouter(prefix="/api/profile", tags=["Profile"])
logger = logging.getLogger(__name__)


@router.get("", response_model=schemas.Member)
def get_profile(current_member: models.Member = Depends(get_current_member)) -> models.Member:
    return current_member


@router.put("", response_model=schemas.Member)
def update_profile(
    payload: schemas.ProfileUpdate,
    db: Session = Depends(get_db),
    current_member: models.Member = Depends(get_current_member),
) -> models.Member:
    """
    Update name, contact details, socials and avatar.

    ``avatar_data_url`` takes a base64 ``data:image/...`` URL; ``avatar_url``
    points at an already uploaded image.
    """
    return ProfileService.update(db, current_member, payload)


@router.post("/avatar", response_model=schemas.Member)
async def upload_avatar(
    image: UploadFile = File(...),
    db: Session = Depends(get_db),
    current_member: models.Member = Depends(get_current_member),
) -> models.Member:
    """Upload an avatar image (png, jpeg, webp, gif or svg)."""
    content = await image.read(MAX_AVATAR_BYTES + 1)
    if len(content) > MAX_AVATAR_BYTES:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail={"error": "FILE_TOO_LARGE", "message": "Avatar is too large"},
        )
    ProfileService.set_avatar(db, current_member, content, image.content_type or "")
    return current_member


@router.post("/password", status_code=status.HTTP_204_NO_CONTENT)
def change_password(
    payload: schemas.PasswordChange,
    db: Session = Depends(get_db),
    current_member: models.Member = Depends(get_current_member),
) -> None:
    ProfileService.change_password(db, current_member, payload)
