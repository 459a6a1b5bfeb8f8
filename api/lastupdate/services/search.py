"""Title/category search over published stories."""

from __future__ import annotations

import logging
import math
import re

from sqlalchemy import or_
from sqlalchemy.orm import Session, joinedload

from .. import models, schemas

logger = logging.getLogger(__name__)

MIN_QUERY_LENGTH = 2
WORDS_PER_MINUTE = 200

_TAG_RE = re.compile(r"<[^>]*>")


def reading_minutes(content: str | None) -> int:
    """Estimated reading time in whole minutes, never less than one."""
    if not content:
        return 1
    words = _TAG_RE.sub(" ", content).split()
    return max(1, math.ceil(len(words) / WORDS_PER_MINUTE))


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class SearchService:
    @staticmethod
    def search(db: Session, query: str | None, limit: int | None = None) -> list[schemas.SearchResult]:
        """
        Case-insensitive substring match on title or category.

        Queries shorter than two characters return nothing. A missing or
        non-positive ``limit`` returns every match, newest first.
        """
        term = (query or "").strip()
        if len(term) < MIN_QUERY_LENGTH:
            return []

        pattern = f"%{_escape_like(term)}%"
        q = (
            db.query(models.Publication)
            .options(joinedload(models.Publication.author))
            .filter(
                models.Publication.status == models.STATUS_PUBLISHED,
                or_(
                    models.Publication.title.ilike(pattern, escape="\\"),
                    models.Publication.category.ilike(pattern, escape="\\"),
                ),
            )
            .order_by(models.Publication.date.desc(), models.Publication.id.desc())
        )
        if limit and limit > 0:
            q = q.limit(limit)

        results = []
        for publication in q.all():
            summary = schemas.PublicationSummary.model_validate(publication)
            results.append(
                schemas.SearchResult(
                    **summary.model_dump(),
                    content=publication.content,
                    reading_minutes=reading_minutes(publication.content),
                )
            )
        logger.debug(f"Search '{term}' returned {len(results)} results")
        return results
