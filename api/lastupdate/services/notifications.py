"""
Notification Service.

In-app notifications addressed either to one member (``to_user_id``) or to
every member holding a role (``to_role``). Role notifications share a single
``read_at``: the first admin to read one marks it read for all admins.
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from .. import models, schemas
from .errors import ForbiddenError, InvalidDataError, NotFoundError

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 50
MAX_LIMIT = 200


def _visible_to(member: models.Member):
    return or_(
        models.Notification.to_user_id == member.id,
        models.Notification.to_role == member.role,
    )


class NotificationService:
    """Service for in-app notifications."""

    @staticmethod
    def create(
        db: Session,
        title: str,
        message: str,
        *,
        to_user_id: int | None = None,
        to_role: str | None = None,
        url: str | None = None,
        meta: dict[str, Any] | None = None,
        commit: bool = True,
    ) -> models.Notification:
        """
        Store a notification.

        Args:
            db: Database session
            title: Short headline
            message: Body text
            to_user_id: Recipient member id
            to_role: Recipient role when addressing a whole role
            url: Dashboard link opened when the notification is clicked
            meta: Free-form JSON context
            commit: Commit immediately; pass False to join the caller's transaction
        """
        if not to_user_id and not to_role:
            raise InvalidDataError("Notification needs a recipient")

        notification = models.Notification(
            to_user_id=to_user_id,
            to_role=to_role,
            title=title,
            message=message,
            url=url,
            meta=meta,
        )
        db.add(notification)
        if commit:
            db.commit()
            db.refresh(notification)
        else:
            db.flush()

        logger.info(f"Created notification {notification.id} for user={to_user_id} role={to_role}")
        return notification

    @staticmethod
    def create_from_request(db: Session, sender: models.Member, payload: schemas.NotificationCreate) -> models.Notification:
        """Validate a client supplied notification against the sender's role."""
        title = (payload.title or "").strip()
        message = (payload.message or "").strip()
        if not title or not message:
            raise InvalidDataError("Title and message are required", code="MISSING_FIELDS")

        to_role = None
        if payload.to_role:
            to_role = payload.to_role.strip().lower()
            if to_role not in models.ROLES:
                raise InvalidDataError(f"Unknown role: {payload.to_role}")
        to_user_id = payload.to_user_id
        if not to_user_id and not to_role:
            raise InvalidDataError("Notification needs a recipient")

        if not sender.is_admin:
            if to_user_id and to_user_id != sender.id:
                raise ForbiddenError("Only admins can notify other members")
            if to_role and to_role != models.ROLE_ADMIN:
                raise ForbiddenError("Only admins can notify this role")

        if to_user_id and not db.query(models.Member.id).filter(models.Member.id == to_user_id).first():
            raise NotFoundError("Recipient not found")

        return NotificationService.create(
            db,
            title,
            message,
            to_user_id=to_user_id,
            to_role=to_role,
            url=payload.url,
            meta=payload.meta,
        )

    @staticmethod
    def list_for(db: Session, member: models.Member, unread_only: bool = False, limit: int = DEFAULT_LIMIT) -> list[models.Notification]:
        query = db.query(models.Notification).filter(_visible_to(member))
        if unread_only:
            query = query.filter(models.Notification.read_at.is_(None))
        limit = max(1, min(limit, MAX_LIMIT))
        return (
            query.order_by(models.Notification.created_at.desc(), models.Notification.id.desc())
            .limit(limit)
            .all()
        )

    @staticmethod
    def unread_count(db: Session, member: models.Member) -> int:
        return (
            db.query(func.count(models.Notification.id))
            .filter(_visible_to(member), models.Notification.read_at.is_(None))
            .scalar()
            or 0
        )

    @staticmethod
    def mark_read(db: Session, member: models.Member, notification_id: int) -> None:
        notification = (
            db.query(models.Notification)
            .filter(models.Notification.id == notification_id, _visible_to(member))
            .first()
        )
        if not notification:
            raise NotFoundError("Notification not found")
        if notification.read_at is None:
            notification.read_at = models.utcnow()
            db.commit()

    @staticmethod
    def mark_all_read(db: Session, member: models.Member) -> int:
        updated = (
            db.query(models.Notification)
            .filter(_visible_to(member), models.Notification.read_at.is_(None))
            .update({models.Notification.read_at: models.utcnow()}, synchronize_session=False)
        )
        db.commit()
        return updated

    @staticmethod
    def notify_review_submitted(db: Session, publication: models.Publication, author: models.Member) -> models.Notification:
        """Tell the admins a story is waiting for review."""
        return NotificationService.create(
            db,
            "Publicação aguardando revisão",
            f'{author.name} enviou "{publication.title}" para revisão.',
            to_role=models.ROLE_ADMIN,
            url=f"/dashboard?publication={publication.id}",
            meta={"type": "review_submitted", "publication_id": publication.id, "author_id": author.id},
            commit=False,
        )
