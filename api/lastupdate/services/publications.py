"""
Publication Service.

Owns the publication lifecycle::

    (new) -> draft | review | published
    draft, review -> draft | review | published
    published -> excluded
    excluded -> published

Only admins move a story into ``published``. Every status change keeps the
author's ``publication_count`` and the highlight flags in step, and queues the
sitemap refresh / push fan-out jobs that depend on the published set.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from sqlalchemy.orm import Session, joinedload

from .. import media, models, schemas
from ..utils.slugs import ensure_unique_slug, slugify
from .errors import ForbiddenError, InvalidDataError, NotFoundError, TransitionError
from .highlights import HighlightService
from .members import MemberService
from .notifications import NotificationService

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: dict[str | None, frozenset[str]] = {
    None: frozenset({models.STATUS_DRAFT, models.STATUS_REVIEW, models.STATUS_PUBLISHED}),
    models.STATUS_DRAFT: frozenset({models.STATUS_DRAFT, models.STATUS_REVIEW, models.STATUS_PUBLISHED}),
    models.STATUS_REVIEW: frozenset({models.STATUS_DRAFT, models.STATUS_REVIEW, models.STATUS_PUBLISHED}),
    models.STATUS_PUBLISHED: frozenset({models.STATUS_PUBLISHED, models.STATUS_EXCLUDED}),
    models.STATUS_EXCLUDED: frozenset({models.STATUS_EXCLUDED, models.STATUS_PUBLISHED}),
}

SLUGGED_STATUSES = (models.STATUS_REVIEW, models.STATUS_PUBLISHED)

EDITABLE_FIELDS = ("title", "date", "category", "description", "image", "image_credit", "content")


@dataclass
class StatusChange:
    """What a status change requires once the transaction has committed."""

    publication_id: int
    previous: str | None
    current: str
    author_ids: set[int] = field(default_factory=set)

    @property
    def entered_published(self) -> bool:
        return self.current == models.STATUS_PUBLISHED and self.previous != models.STATUS_PUBLISHED

    @property
    def left_published(self) -> bool:
        return self.previous == models.STATUS_PUBLISHED and self.current != models.STATUS_PUBLISHED


def normalize_status(raw: str | None) -> str:
    status = (raw or "").strip().lower()
    if status not in models.PUBLICATION_STATUSES:
        raise InvalidDataError(f"Unknown status: {raw}")
    return status


def check_transition(actor: models.Member, current: str | None, target: str) -> None:
    """
    Validate a status change for ``actor``.

    Raises:
        TransitionError: ``target`` is not reachable from ``current``
        ForbiddenError: a non-admin tries to publish or restore
    """
    if target not in ALLOWED_TRANSITIONS.get(current, frozenset()):
        raise TransitionError(f"Cannot move a publication from {current or 'new'} to {target}")
    if target == models.STATUS_PUBLISHED and current != models.STATUS_PUBLISHED and not actor.is_admin:
        raise ForbiddenError("Only admins can publish")


class PublicationService:
    """Service for publication CRUD and lifecycle."""

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @staticmethod
    def get(db: Session, publication_id: int) -> models.Publication:
        publication = (
            db.query(models.Publication)
            .options(joinedload(models.Publication.author))
            .filter(models.Publication.id == publication_id)
            .first()
        )
        if not publication:
            raise NotFoundError("Publication not found")
        return publication

    @staticmethod
    def get_for(db: Session, actor: models.Member, publication_id: int) -> models.Publication:
        publication = PublicationService.get(db, publication_id)
        PublicationService.ensure_can_edit(actor, publication)
        return publication

    @staticmethod
    def ensure_can_edit(actor: models.Member, publication: models.Publication) -> None:
        if not actor.is_admin and publication.author_id != actor.id:
            raise ForbiddenError("Only the author or an admin can access this publication")

    @staticmethod
    def list_for(
        db: Session,
        actor: models.Member,
        mine: bool = False,
        status: str | None = None,
    ) -> list[models.Publication]:
        """Dashboard listing: admins see everything unless ``mine`` is set."""
        query = db.query(models.Publication).options(joinedload(models.Publication.author))
        if mine or not actor.is_admin:
            query = query.filter(models.Publication.author_id == actor.id)
        if status:
            query = query.filter(models.Publication.status == normalize_status(status))
        return query.order_by(models.Publication.date.desc(), models.Publication.id.desc()).all()

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    @staticmethod
    def create(db: Session, actor: models.Member, payload: schemas.PublicationCreate) -> models.Publication:
        missing = [name for name in ("title", "date", "category") if not getattr(payload, name)]
        if isinstance(payload.title, str) and not payload.title.strip():
            missing.append("title")
        if missing:
            raise InvalidDataError(
                f"Missing required fields: {', '.join(sorted(set(missing)))}",
                code="MISSING_FIELDS",
                fields=sorted(set(missing)),
            )

        author = PublicationService._resolve_author(db, actor, payload.author_id)
        target = normalize_status(payload.status) if payload.status else models.STATUS_DRAFT
        check_transition(actor, None, target)

        publication = models.Publication(author_id=author.id, status=target, views=0, unique_views=0)
        for name in EDITABLE_FIELDS:
            setattr(publication, name, PublicationService._clean(name, getattr(payload, name)))
        db.add(publication)
        db.flush()

        change = StatusChange(publication.id, None, target, {author.id})
        PublicationService._apply_status_effects(db, actor, publication, change)
        db.commit()
        db.refresh(publication)

        logger.info(f"Created publication {publication.id} as {target} by member {actor.id}")
        PublicationService._dispatch_jobs(change)
        return publication

    @staticmethod
    def update(
        db: Session,
        actor: models.Member,
        publication: models.Publication,
        payload: schemas.PublicationUpdate,
    ) -> models.Publication:
        PublicationService.ensure_can_edit(actor, publication)
        data = payload.model_dump(exclude_unset=True)

        for name in EDITABLE_FIELDS:
            if name in data:
                value = PublicationService._clean(name, data[name])
                if name in ("title", "date", "category") and not value:
                    raise InvalidDataError(f"{name} cannot be empty", code="MISSING_FIELDS", fields=[name])
                setattr(publication, name, value)

        affected_authors = {publication.author_id}
        if data.get("author_id") is not None and data["author_id"] != publication.author_id:
            new_author = PublicationService._resolve_author(db, actor, data["author_id"])
            publication.author_id = new_author.id
            affected_authors.add(new_author.id)

        change = None
        if data.get("status") is not None:
            target = normalize_status(data["status"])
            if target != publication.status:
                check_transition(actor, publication.status, target)
                change = StatusChange(publication.id, publication.status, target, affected_authors)
                publication.status = target
                if target == models.STATUS_EXCLUDED:
                    publication.deletion_reason = (data.get("deletion_reason") or "").strip() or None
                PublicationService._apply_status_effects(db, actor, publication, change)

        if change is None and len(affected_authors) > 1:
            for author_id in affected_authors:
                MemberService.recompute_publication_count(db, author_id)

        db.commit()
        db.refresh(publication)
        logger.info(f"Updated publication {publication.id} by member {actor.id}")
        if change:
            PublicationService._dispatch_jobs(change)
        return publication

    @staticmethod
    def exclude(db: Session, actor: models.Member, publication: models.Publication, reason: str | None) -> models.Publication:
        """Soft delete: keep the row, hide it from the public site."""
        PublicationService.ensure_can_edit(actor, publication)
        if publication.status == models.STATUS_EXCLUDED:
            return publication

        change = StatusChange(publication.id, publication.status, models.STATUS_EXCLUDED, {publication.author_id})
        publication.status = models.STATUS_EXCLUDED
        publication.deletion_reason = (reason or "").strip() or None
        PublicationService._apply_status_effects(db, actor, publication, change)
        db.commit()
        db.refresh(publication)

        logger.info(f"Excluded publication {publication.id} by member {actor.id}")
        PublicationService._dispatch_jobs(change)
        return publication

    @staticmethod
    def delete_permanently(db: Session, actor: models.Member, publication: models.Publication) -> None:
        """Remove the row and the media files it references (admin only)."""
        if not actor.is_admin:
            raise ForbiddenError("Only admins can delete publications permanently")

        media_urls = []
        if publication.image:
            media_urls.append(publication.image)
        media_urls.extend(u for u in media.media_urls_in_html(publication.content) if u not in media_urls)

        author_id = publication.author_id
        was_published = publication.status == models.STATUS_PUBLISHED
        publication_id = publication.id

        db.delete(publication)
        db.flush()
        MemberService.recompute_publication_count(db, author_id)
        HighlightService.sync(db)
        db.commit()

        removed = sum(1 for url in media_urls if media.try_delete_media(url))
        logger.info(f"Deleted publication {publication_id} permanently ({removed} media files removed)")
        if was_published:
            PublicationService._dispatch_jobs(
                StatusChange(publication_id, models.STATUS_PUBLISHED, models.STATUS_EXCLUDED, {author_id})
            )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @staticmethod
    def _clean(name: str, value):
        if isinstance(value, str):
            value = value.strip() if name != "content" else value
            return value or None
        return value

    @staticmethod
    def _resolve_author(db: Session, actor: models.Member, author_id: int | None) -> models.Member:
        if author_id is None or author_id == actor.id:
            return actor
        if not actor.is_admin:
            raise ForbiddenError("Only admins can assign another author")
        try:
            return MemberService.get(db, author_id)
        except NotFoundError:
            raise InvalidDataError("Author not found or inactive")

    @staticmethod
    def assign_slug(db: Session, publication: models.Publication) -> str:
        """Give the publication a unique slug derived from its title, keeping an existing one."""
        if publication.slug:
            return publication.slug
        base = slugify(publication.title) or f"noticia-{publication.id}"
        taken = [
            slug
            for (slug,) in db.query(models.Publication.slug)
            .filter(models.Publication.slug.like(f"{base}%"), models.Publication.id != publication.id)
            .all()
            if slug
        ]
        publication.slug = ensure_unique_slug(base, taken)
        return publication.slug

    @staticmethod
    def _apply_status_effects(
        db: Session,
        actor: models.Member,
        publication: models.Publication,
        change: StatusChange,
    ) -> None:
        """In-transaction side effects of a status change."""
        if change.current in SLUGGED_STATUSES:
            PublicationService.assign_slug(db, publication)

        if change.current == models.STATUS_PUBLISHED:
            publication.deletion_reason = None

        if change.current == models.STATUS_REVIEW and not actor.is_admin:
            author = db.get(models.Member, publication.author_id) or actor
            NotificationService.notify_review_submitted(db, publication, author)

        db.flush()
        for author_id in change.author_ids:
            MemberService.recompute_publication_count(db, author_id)
        if change.left_published:
            HighlightService.sync(db)

    @staticmethod
    def _dispatch_jobs(change: StatusChange) -> None:
        """Post-commit jobs: sitemap refresh and push fan-out."""
        from .push_notifications import PushNotificationService
        from .sitemap import schedule_sitemap_refresh

        if change.entered_published or change.left_published:
            schedule_sitemap_refresh(reason=f"publication {change.publication_id} {change.current}")
        if change.entered_published and change.previous != models.STATUS_EXCLUDED:
            PushNotificationService.dispatch_publication(change.publication_id)
