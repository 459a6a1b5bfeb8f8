"""Browser push subscription bookkeeping."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from .. import models, schemas

logger = logging.getLogger(__name__)

MAX_ERROR_LENGTH = 500


def _expiration(value: float | None) -> datetime | None:
    """``PushSubscription.expirationTime`` is epoch milliseconds."""
    if not value:
        return None
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc).replace(tzinfo=None)


class PushSubscriptionService:
    """Stores browser endpoints and their delivery state."""

    @staticmethod
    def get_by_endpoint(db: Session, endpoint: str) -> models.PushSubscription | None:
        return db.query(models.PushSubscription).filter(models.PushSubscription.endpoint == endpoint).first()

    @staticmethod
    def upsert(
        db: Session,
        info: schemas.PushSubscriptionInfo,
        preference: str,
        user_agent: str | None = None,
    ) -> models.PushSubscription:
        """
        Create or refresh a subscription keyed by endpoint.

        Only an ``accepted`` preference leaves the endpoint active.
        """
        subscription = PushSubscriptionService.get_by_endpoint(db, info.endpoint)
        if subscription is None:
            subscription = models.PushSubscription(endpoint=info.endpoint)
            db.add(subscription)

        subscription.auth_key = info.keys.auth
        subscription.p256dh_key = info.keys.p256dh
        subscription.expiration_time = _expiration(info.expiration_time)
        subscription.user_agent = (user_agent or "")[:500] or None
        subscription.preference = preference
        subscription.is_active = preference == "accepted"
        subscription.last_error = None

        db.commit()
        db.refresh(subscription)
        logger.info(f"Stored push subscription {subscription.id} (preference={preference})")
        return subscription

    @staticmethod
    def deactivate_endpoint(db: Session, endpoint: str, preference: str | None = None) -> bool:
        subscription = PushSubscriptionService.get_by_endpoint(db, endpoint)
        if subscription is None:
            return False
        subscription.is_active = False
        if preference:
            subscription.preference = preference
        db.commit()
        return True

    @staticmethod
    def list_active(db: Session) -> list[models.PushSubscription]:
        return (
            db.query(models.PushSubscription)
            .filter(models.PushSubscription.is_active.is_(True))
            .order_by(models.PushSubscription.id)
            .all()
        )

    @staticmethod
    def mark_delivered(subscription: models.PushSubscription) -> None:
        subscription.last_notified_at = models.utcnow()
        subscription.last_error = None

    @staticmethod
    def mark_failure(subscription: models.PushSubscription, message: str) -> None:
        subscription.last_error = (message or "unknown error")[:MAX_ERROR_LENGTH]

    @staticmethod
    def mark_gone(subscription: models.PushSubscription) -> None:
        subscription.is_active = False
        subscription.last_error = "endpoint expired"
