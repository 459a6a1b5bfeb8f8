"""In-app notifications API endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from .. import models, schemas
from ..auth import get_current_member
from ..deps import get_db
from ..services.notifications import DEFAULT_LIMIT, NotificationService

router = APIRouter(prefix="/api/notifications", tags=["Notifications"])
logger = logging.getLogger(__name__)


@router.get("", response_model=list[schemas.Notification])
def list_notifications(
    unread: bool = False,
    limit: int = Query(DEFAULT_LIMIT, ge=1, le=200),
    db: Session = Depends(get_db),
    current_member: models.Member = Depends(get_current_member),
) -> list[models.Notification]:
    """Notifications addressed to the member or their role, newest first."""
    return NotificationService.list_for(db, current_member, unread_only=unread, limit=limit)


@router.get("/unread-count", response_model=schemas.UnreadCount)
def get_unread_count(
    db: Session = Depends(get_db),
    current_member: models.Member = Depends(get_current_member),
) -> schemas.UnreadCount:
    return schemas.UnreadCount(unread_count=NotificationService.unread_count(db, current_member))


@router.post("", response_model=schemas.Notification, status_code=status.HTTP_201_CREATED)
def create_notification(
    payload: schemas.NotificationCreate,
    db: Session = Depends(get_db),
    current_member: models.Member = Depends(get_current_member),
) -> models.Notification:
    """
    Send a notification to a member (``to_user_id``) or a role (``to_role``).

    Only admins may target other members or roles, except that anyone may
    notify the ``admin`` role.
    """
    return NotificationService.create_from_request(db, current_member, payload)


@router.put("/read-all", status_code=status.HTTP_204_NO_CONTENT)
def mark_all_read(
    db: Session = Depends(get_db),
    current_member: models.Member = Depends(get_current_member),
) -> Response:
    NotificationService.mark_all_read(db, current_member)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put("/{notification_id}/read", status_code=status.HTTP_204_NO_CONTENT)
def mark_read(
    notification_id: int,
    db: Session = Depends(get_db),
    current_member: models.Member = Depends(get_current_member),
) -> Response:
    NotificationService.mark_read(db, current_member, notification_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
