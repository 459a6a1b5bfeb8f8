from __future__ import annotations

import logging
import os
from typing import Any

from celery import Celery

from .settings import ENABLE_AUTO_BACKUP, SQLITE_BACKUP_INTERVAL_MINUTES

logger = logging.getLogger(__name__)

DEFAULT_REDIS = "redis://localhost:6379/0"

celery_app = Celery(
    "lastupdate",
    broker=os.getenv("CELERY_BROKER_URL", DEFAULT_REDIS),
    backend=os.getenv("CELERY_RESULT_BACKEND", DEFAULT_REDIS),
)

beat_schedule: dict[str, dict[str, Any]] = {}
if ENABLE_AUTO_BACKUP:
    beat_schedule["backup-database"] = {
        "task": "lastupdate.tasks.backup_database",
        "schedule": SQLITE_BACKUP_INTERVAL_MINUTES * 60.0,
    }

celery_app.conf.update(
    task_default_queue="default",
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    result_expires=3600,
    worker_max_tasks_per_child=100,
    task_always_eager=os.getenv("CELERY_TASK_ALWAYS_EAGER", "").lower() in ("1", "true", "yes"),
    beat_schedule=beat_schedule,
    timezone="UTC",
)


@celery_app.task(name="lastupdate.tasks.send_publication_push", bind=True)
def send_publication_push(self, publication_id: int) -> dict[str, Any]:
    """
    Fan a "new story" Web Push message out to every active subscription.

    Each endpoint is tried independently; dead endpoints are deactivated.
    """
    from . import models
    from .db import SessionLocal
    from .services.push_notifications import PushNotificationService

    db = SessionLocal()
    try:
        publication = db.query(models.Publication).filter(models.Publication.id == publication_id).first()
        if not publication or publication.status != models.STATUS_PUBLISHED:
            logger.info("Publication %s is not published, skipping push", publication_id)
            return {"status": "skipped", "publication_id": publication_id}

        summary = PushNotificationService.notify_publication(db, publication)
        return {"status": "success", "publication_id": publication_id, **summary}
    finally:
        db.close()


@celery_app.task(name="lastupdate.tasks.regenerate_sitemap", bind=True)
def regenerate_sitemap(self, reason: str = "manual") -> dict[str, Any]:
    """Rebuild sitemap.xml from the static pages and published publications."""
    from .db import SessionLocal
    from .services.sitemap import write_sitemap

    db = SessionLocal()
    try:
        path, url_count = write_sitemap(db)
        logger.info("Sitemap regenerated (%s): %s urls -> %s", reason, url_count, path)
        return {"status": "success", "reason": reason, "urls": url_count, "path": str(path)}
    finally:
        db.close()


@celery_app.task(name="lastupdate.tasks.backup_database", bind=True)
def backup_database(self) -> dict[str, Any]:
    """
    Periodic SQLite backup with retention cleanup.
    Runs every SQLITE_BACKUP_INTERVAL_MINUTES (configurable via beat_schedule).
    """
    from .services.backup import run_backup

    result = run_backup()
    if result is None:
        return {"status": "skipped", "message": "Backup already running"}
    return {"status": "success", "path": str(result.path), "removed": result.removed}
