"""Newsroom member administration (admin only)."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from .. import models, schemas
from ..auth import require_admin
from ..deps import get_db
from ..services.errors import InvalidDataError
from ..services.members import MemberService

router = APIRouter(prefix="/api/members", tags=["Members"])
logger = logging.getLogger(__name__)


@router.get("", response_model=list[schemas.Member])
def list_members(
    db: Session = Depends(get_db),
    _admin: models.Member = Depends(require_admin),
) -> list[models.Member]:
    """Active members ordered by name."""
    return MemberService.list_active(db)


@router.get("/team", response_model=list[schemas.Member])
def list_team(
    db: Session = Depends(get_db),
    _admin: models.Member = Depends(require_admin),
) -> list[models.Member]:
    return MemberService.list_team(db)


@router.get("/{member_id}/details", response_model=schemas.MemberDetails)
def get_member_details(
    member_id: int,
    db: Session = Depends(get_db),
    _admin: models.Member = Depends(require_admin),
) -> schemas.MemberDetails:
    member = MemberService.get(db, member_id, active_only=False)
    return MemberService.details(db, member)


@router.post("", response_model=schemas.Member, status_code=status.HTTP_201_CREATED)
def create_member(
    payload: schemas.MemberCreate,
    db: Session = Depends(get_db),
    admin: models.Member = Depends(require_admin),
) -> models.Member:
    """
    Register a member.

    The initial password is the birth date as DDMMYYYY. A CPF that belongs to
    a deleted member yields 409 with ``deleted``, ``member_id`` and ``name`` so
    the client can offer a restore instead.
    """
    member = MemberService.create(db, payload)
    logger.info(f"Admin {admin.id} created member {member.id}")
    return member


@router.put("/{member_id}", response_model=schemas.Member)
def update_member(
    member_id: int,
    payload: schemas.MemberUpdate,
    db: Session = Depends(get_db),
    _admin: models.Member = Depends(require_admin),
) -> models.Member:
    member = MemberService.get(db, member_id, active_only=False)
    return MemberService.update(db, member, payload)


@router.patch("/{member_id}/about", response_model=schemas.Member)
def update_member_about(
    member_id: int,
    payload: schemas.MemberTextUpdate,
    db: Session = Depends(get_db),
    _admin: models.Member = Depends(require_admin),
) -> models.Member:
    member = MemberService.get(db, member_id, active_only=False)
    return MemberService.set_text(db, member, "about", payload.value)


@router.patch("/{member_id}/what-they-do", response_model=schemas.Member)
def update_member_what_they_do(
    member_id: int,
    payload: schemas.MemberTextUpdate,
    db: Session = Depends(get_db),
    _admin: models.Member = Depends(require_admin),
) -> models.Member:
    member = MemberService.get(db, member_id, active_only=False)
    return MemberService.set_text(db, member, "what_they_do", payload.value)


@router.post("/{member_id}/team", response_model=schemas.Member)
def add_to_team(
    member_id: int,
    db: Session = Depends(get_db),
    _admin: models.Member = Depends(require_admin),
) -> models.Member:
    member = MemberService.get(db, member_id)
    return MemberService.set_team(db, member, True)


@router.delete("/{member_id}/team", response_model=schemas.Member)
def remove_from_team(
    member_id: int,
    db: Session = Depends(get_db),
    _admin: models.Member = Depends(require_admin),
) -> models.Member:
    member = MemberService.get(db, member_id, active_only=False)
    return MemberService.set_team(db, member, False)


@router.delete("/{member_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_member(
    member_id: int,
    db: Session = Depends(get_db),
    admin: models.Member = Depends(require_admin),
) -> Response:
    """Soft delete: the account is deactivated, its history is kept."""
    if member_id == admin.id:
        raise InvalidDataError("You cannot delete your own account")
    member = MemberService.get(db, member_id)
    MemberService.soft_delete(db, member)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{member_id}/restore", response_model=schemas.Member)
def restore_member(
    member_id: int,
    db: Session = Depends(get_db),
    _admin: models.Member = Depends(require_admin),
) -> models.Member:
    return MemberService.restore(db, member_id)
