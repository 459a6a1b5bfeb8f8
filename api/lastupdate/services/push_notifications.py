"""
Web Push delivery for newly published stories.

Publishing a story queues ``send_publication_push``; the task builds one
payload and tries every active subscription independently. Endpoints the push
service reports as gone (400/404/410) are deactivated so browsers re-subscribe.
"""

from __future__ import annotations

import json
import logging
from typing import Any
from urllib.parse import quote

from pywebpush import WebPushException, webpush
from sqlalchemy.orm import Session

from .. import models, settings
from .push_subscriptions import PushSubscriptionService

logger = logging.getLogger(__name__)

GONE_STATUSES = (400, 404, 410)
MAX_BODY_LENGTH = 160
MAX_ICON_LENGTH = 512
PUSH_TTL_SECONDS = 24 * 3600


def is_safe_icon(value: str | None) -> bool:
    if not value or not value.strip():
        return False
    value = value.strip()
    return not value.startswith("data:") and len(value) <= MAX_ICON_LENGTH


def publication_url(publication: models.Publication) -> str:
    if publication.slug:
        return f"/noticia/{quote(publication.slug)}"
    return f"/noticia?id={publication.id}"


def build_publication_payload(publication: models.Publication) -> dict[str, Any]:
    """Notification payload consumed by the site's service worker."""
    url = publication_url(publication)
    category = publication.category or ""
    teaser = (publication.description or "").strip()
    body = teaser[:MAX_BODY_LENGTH] if teaser else f"Confira a nova matéria de {category or 'The Last Update'}."
    icon = publication.image.strip() if is_safe_icon(publication.image) else settings.DEFAULT_PUSH_ICON

    return {
        "title": publication.title or "Nova publicação disponível!",
        "body": body,
        "url": url,
        "tag": f"tlu-publication-{publication.slug or publication.id}",
        "icon": icon,
        "data": {
            "url": url,
            "post_id": publication.id,
            "slug": publication.slug,
            "category": category,
        },
    }


class PushNotificationService:
    """Fan-out of Web Push messages."""

    @staticmethod
    def is_enabled() -> bool:
        return bool(settings.VAPID_PUBLIC_KEY and settings.VAPID_PRIVATE_KEY)

    @staticmethod
    def client_config() -> dict[str, Any]:
        enabled = PushNotificationService.is_enabled()
        return {"enabled": enabled, "public_key": settings.VAPID_PUBLIC_KEY if enabled else None}

    @staticmethod
    def dispatch_publication(publication_id: int) -> None:
        """Queue the fan-out task; never raises."""
        if not PushNotificationService.is_enabled():
            logger.debug("Push disabled, not queueing publication %s", publication_id)
            return
        try:
            from ..tasks import send_publication_push

            send_publication_push.delay(publication_id)
        except Exception:
            logger.warning("Failed to queue push for publication %s", publication_id, exc_info=True)

    @staticmethod
    def send(subscription: models.PushSubscription, payload: dict[str, Any]) -> None:
        webpush(
            subscription_info={
                "endpoint": subscription.endpoint,
                "keys": {"auth": subscription.auth_key, "p256dh": subscription.p256dh_key},
            },
            data=json.dumps(payload),
            vapid_private_key=settings.VAPID_PRIVATE_KEY,
            vapid_claims={"sub": settings.VAPID_CONTACT},
            ttl=PUSH_TTL_SECONDS,
        )

    @staticmethod
    def fanout(db: Session, payload: dict[str, Any]) -> dict[str, int]:
        """
        Send ``payload`` to every active subscription.

        Returns:
            Counts of ``delivered``, ``deactivated``, ``failed`` and ``total``
        """
        summary = {"delivered": 0, "deactivated": 0, "failed": 0, "total": 0}
        if not PushNotificationService.is_enabled():
            logger.warning("Push fan-out skipped: VAPID keys are not configured")
            return summary

        subscriptions = PushSubscriptionService.list_active(db)
        summary["total"] = len(subscriptions)
        if not subscriptions:
            logger.info("No active push subscriptions")
            return summary

        for subscription in subscriptions:
            if not (subscription.auth_key and subscription.p256dh_key):
                PushSubscriptionService.mark_failure(subscription, "Subscription has no encryption keys")
                summary["failed"] += 1
                db.commit()
                continue
            try:
                PushNotificationService.send(subscription, payload)
            except WebPushException as e:
                status_code = e.response.status_code if e.response is not None else 0
                logger.warning(f"Push to subscription {subscription.id} failed with status {status_code}: {e}")
                if status_code in GONE_STATUSES:
                    PushSubscriptionService.mark_gone(subscription)
                    summary["deactivated"] += 1
                else:
                    PushSubscriptionService.mark_failure(subscription, str(e))
                    summary["failed"] += 1
            except Exception as e:
                logger.warning(f"Push to subscription {subscription.id} failed: {e!r}")
                PushSubscriptionService.mark_failure(subscription, str(e) or type(e).__name__)
                summary["failed"] += 1
            else:
                PushSubscriptionService.mark_delivered(subscription)
                summary["delivered"] += 1
            db.commit()

        logger.info(
            f"Push fan-out '{payload.get('title')}': {summary['delivered']}/{summary['total']} delivered"
        )
        return summary

    @staticmethod
    def notify_publication(db: Session, publication: models.Publication) -> dict[str, int]:
        return PushNotificationService.fanout(db, build_publication_payload(publication))
