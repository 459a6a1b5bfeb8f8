"""Read side of the public site: news listings, story pages and journalist pages."""

from __future__ import annotations

import logging
from urllib.parse import urlencode

from sqlalchemy import or_
from sqlalchemy.orm import Session, joinedload

from .. import models, schemas
from .errors import NotFoundError
from .members import MemberService

logger = logging.getLogger(__name__)

DEFAULT_NEWS_LIMIT = 24
MAX_NEWS_LIMIT = 100


def _published():
    return models.Publication.status == models.STATUS_PUBLISHED


def profile_url(member: models.Member) -> str:
    return f"/jornalista?{urlencode({'name': (member.name or '').strip(), 'id': member.id})}"


class PublicSiteService:
    @staticmethod
    def list_news(db: Session, limit: int | None = None, category: str | None = None) -> list[models.Publication]:
        """
        Latest published stories.

        ``category`` matches the category itself and its sub-categories
        (``esportes`` also matches ``esportes/futebol``).
        """
        limit = DEFAULT_NEWS_LIMIT if limit is None else max(1, min(limit, MAX_NEWS_LIMIT))
        query = (
            db.query(models.Publication)
            .options(joinedload(models.Publication.author))
            .filter(_published())
        )
        category = (category or "").strip()
        if category:
            query = query.filter(
                or_(
                    models.Publication.category == category,
                    models.Publication.category.startswith(f"{category}/", autoescape=True),
                )
            )
        return query.order_by(models.Publication.date.desc(), models.Publication.id.desc()).limit(limit).all()

    @staticmethod
    def get_published(db: Session, publication_id: int | None = None, slug: str | None = None) -> models.Publication:
        query = db.query(models.Publication).options(joinedload(models.Publication.author)).filter(_published())
        if slug is not None:
            query = query.filter(models.Publication.slug == slug.strip().lower())
        else:
            query = query.filter(models.Publication.id == publication_id)
        publication = query.first()
        if not publication:
            raise NotFoundError("Publication not found")
        return publication

    @staticmethod
    def record_view(db: Session, publication: models.Publication, viewed_ids: set[int]) -> set[int]:
        """
        Count a page view; the first view from a browser also counts as unique.

        Args:
            viewed_ids: Publication ids already counted for this browser

        Returns:
            The updated set of viewed ids, to be written back to the cookie
        """
        counters = {models.Publication.views: models.Publication.views + 1}
        first_visit = publication.id not in viewed_ids
        if first_visit:
            counters[models.Publication.unique_views] = models.Publication.unique_views + 1

        # Leave updated_at alone; a view is not an edit.
        counters[models.Publication.updated_at] = models.Publication.updated_at
        db.query(models.Publication).filter(models.Publication.id == publication.id).update(
            counters, synchronize_session=False
        )
        db.commit()
        db.refresh(publication)
        return viewed_ids | {publication.id}

    @staticmethod
    def latest_publication(db: Session) -> models.Publication | None:
        return (
            db.query(models.Publication)
            .filter(_published())
            .order_by(models.Publication.date.desc(), models.Publication.id.desc())
            .first()
        )

    @staticmethod
    def journalist_profile(db: Session, member_id: int, requested_name: str | None = None) -> schemas.JournalistProfile:
        """
        Public profile of a member, including inactive ones, with their published stories.

        When ``requested_name`` is given, ``name_matches_request`` tells the page
        whether the link still carries the member's current name.
        """
        member = MemberService.get(db, member_id, active_only=False)
        publications = (
            db.query(models.Publication)
            .options(joinedload(models.Publication.author))
            .filter(_published(), models.Publication.author_id == member.id)
            .order_by(models.Publication.date.desc(), models.Publication.id.desc())
            .all()
        )

        requested = (requested_name or "").strip() or None
        matches = None
        if requested:
            matches = (member.name or "").strip().lower() == requested.lower()

        return schemas.JournalistProfile(
            member=schemas.MemberPublic.model_validate(member),
            profile_url=profile_url(member),
            stats=schemas.MemberStats(
                publications=member.publication_count,
                exclusions=MemberService.exclusion_count(db, member.id),
            ),
            publications=[schemas.PublicationSummary.model_validate(p) for p in publications],
            requested_name=requested,
            name_matches_request=matches,
        )
