"""Home page highlight cards."""

from __future__ import annotations

import logging

from sqlalchemy.orm import Session, joinedload

from .. import models
from .errors import ConflictError, InvalidDataError, NotFoundError

logger = logging.getLogger(__name__)


def validate_card(card_number: int) -> int:
    if card_number not in models.HIGHLIGHT_CARDS:
        raise InvalidDataError(f"Card number must be one of {list(models.HIGHLIGHT_CARDS)}")
    return card_number


class HighlightService:
    """Pins published stories to the three home page cards."""

    @staticmethod
    def cards(db: Session) -> dict[int, models.Publication]:
        """Pinned publication per card number (missing cards are absent)."""
        rows = (
            db.query(models.Highlight)
            .options(joinedload(models.Highlight.publication).joinedload(models.Publication.author))
            .order_by(models.Highlight.card_number)
            .all()
        )
        return {row.card_number: row.publication for row in rows if row.publication is not None}

    @staticmethod
    def pin(db: Session, card_number: int, publication_id: int) -> models.Highlight:
        """
        Pin a publication to a card.

        The card's previous occupant is replaced, and a publication already
        pinned elsewhere moves to this card.
        """
        validate_card(card_number)
        publication = db.get(models.Publication, publication_id)
        if not publication:
            raise NotFoundError("Publication not found")
        if publication.status != models.STATUS_PUBLISHED:
            raise ConflictError("Only published publications can be highlighted")

        db.query(models.Highlight).filter(
            (models.Highlight.card_number == card_number)
            | (models.Highlight.publication_id == publication_id)
        ).delete(synchronize_session=False)
        db.flush()

        highlight = models.Highlight(card_number=card_number, publication_id=publication_id)
        db.add(highlight)
        db.flush()
        HighlightService.sync(db)
        db.commit()
        db.refresh(highlight)

        logger.info(f"Pinned publication {publication_id} to highlight card {card_number}")
        return highlight

    @staticmethod
    def unpin(db: Session, card_number: int) -> bool:
        validate_card(card_number)
        removed = (
            db.query(models.Highlight)
            .filter(models.Highlight.card_number == card_number)
            .delete(synchronize_session=False)
        )
        db.flush()
        HighlightService.sync(db)
        db.commit()
        if removed:
            logger.info(f"Cleared highlight card {card_number}")
        return bool(removed)

    @staticmethod
    def sync(db: Session) -> None:
        """
        Make ``publications.is_highlighted`` mirror the highlights table.

        Pins pointing at publications that are no longer published are dropped
        first. Does not commit.
        """
        stale_ids = [
            highlight_id
            for (highlight_id,) in db.query(models.Highlight.id)
            .join(models.Publication, models.Publication.id == models.Highlight.publication_id)
            .filter(models.Publication.status != models.STATUS_PUBLISHED)
            .all()
        ]
        if stale_ids:
            db.query(models.Highlight).filter(models.Highlight.id.in_(stale_ids)).delete(
                synchronize_session=False
            )

        pinned_ids = {pid for (pid,) in db.query(models.Highlight.publication_id).all()}
        db.query(models.Publication).filter(
            models.Publication.is_highlighted.is_(True),
            models.Publication.id.notin_(pinned_ids),
        ).update({models.Publication.is_highlighted: False}, synchronize_session="fetch")
        if pinned_ids:
            db.query(models.Publication).filter(
                models.Publication.id.in_(pinned_ids),
                models.Publication.is_highlighted.is_(False),
            ).update({models.Publication.is_highlighted: True}, synchronize_session="fetch")

    @staticmethod
    def public_cards(db: Session, limit: int = 3) -> list[tuple[int, models.Publication | None]]:
        """
        Cards for the public home page.

        Explicit pins win, in card order, with None for empty slots. With no pins
        at all the latest published stories fill the cards.
        """
        limit = max(1, min(limit, len(models.HIGHLIGHT_CARDS)))
        pinned = HighlightService.cards(db)
        if pinned:
            return [(card, pinned.get(card)) for card in range(1, limit + 1)]

        latest = (
            db.query(models.Publication)
            .options(joinedload(models.Publication.author))
            .filter(models.Publication.status == models.STATUS_PUBLISHED)
            .order_by(models.Publication.date.desc(), models.Publication.id.desc())
            .limit(limit)
            .all()
        )
        return [(index + 1, publication) for index, publication in enumerate(latest)]
