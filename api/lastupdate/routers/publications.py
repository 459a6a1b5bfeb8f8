"""Publication management for logged in members, plus highlight cards."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Body, Depends, Query, Response, status
from sqlalchemy.orm import Session

from .. import models, schemas
from ..auth import get_current_member, require_admin
from ..deps import get_db
from ..services.highlights import HighlightService
from ..services.publications import PublicationService

router = APIRouter(prefix="/api/publications", tags=["Publications"])
logger = logging.getLogger(__name__)


def _summary(publication: models.Publication | None) -> schemas.PublicationSummary | None:
    return schemas.PublicationSummary.model_validate(publication) if publication is not None else None


# ============================================================================
# HIGHLIGHTS
# ============================================================================
# Declared before /{publication_id} so "highlights" is not parsed as an id.


@router.get("/highlights/all", response_model=list[schemas.HighlightCard])
def list_highlight_cards(
    db: Session = Depends(get_db),
    _member: models.Member = Depends(get_current_member),
) -> list[schemas.HighlightCard]:
    """The three home page cards, with ``publication`` null when empty."""
    pinned = HighlightService.cards(db)
    return [
        schemas.HighlightCard(card_number=card, publication=_summary(pinned.get(card)))
        for card in models.HIGHLIGHT_CARDS
    ]


@router.put("/highlights/{card_number}", response_model=schemas.HighlightCard)
def pin_highlight(
    card_number: int,
    payload: schemas.HighlightPin,
    db: Session = Depends(get_db),
    _admin: models.Member = Depends(require_admin),
) -> schemas.HighlightCard:
    highlight = HighlightService.pin(db, card_number, payload.publication_id)
    return schemas.HighlightCard(card_number=highlight.card_number, publication=_summary(highlight.publication))


@router.delete("/highlights/{card_number}", status_code=status.HTTP_204_NO_CONTENT)
def clear_highlight(
    card_number: int,
    db: Session = Depends(get_db),
    _admin: models.Member = Depends(require_admin),
) -> Response:
    HighlightService.unpin(db, card_number)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ============================================================================
# PUBLICATIONS
# ============================================================================


@router.get("", response_model=list[schemas.PublicationSummary])
def list_publications(
    mine: bool = False,
    status_filter: str | None = Query(None, alias="status"),
    db: Session = Depends(get_db),
    current_member: models.Member = Depends(get_current_member),
) -> list[models.Publication]:
    """Admins see every publication unless ``mine`` is set; others see their own."""
    return PublicationService.list_for(db, current_member, mine=mine, status=status_filter)


@router.get("/{publication_id}", response_model=schemas.Publication)
def get_publication(
    publication_id: int,
    db: Session = Depends(get_db),
    current_member: models.Member = Depends(get_current_member),
) -> models.Publication:
    return PublicationService.get_for(db, current_member, publication_id)


@router.post("", response_model=schemas.Publication, status_code=status.HTTP_201_CREATED)
def create_publication(
    payload: schemas.PublicationCreate,
    db: Session = Depends(get_db),
    current_member: models.Member = Depends(get_current_member),
) -> models.Publication:
    """
    Create a publication.

    ``title``, ``date`` and ``category`` are required. The initial status is
    ``draft`` unless ``review`` or (admins only) ``published`` is requested.
    """
    return PublicationService.create(db, current_member, payload)


@router.put("/{publication_id}", response_model=schemas.Publication)
def update_publication(
    publication_id: int,
    payload: schemas.PublicationUpdate,
    db: Session = Depends(get_db),
    current_member: models.Member = Depends(get_current_member),
) -> models.Publication:
    publication = PublicationService.get(db, publication_id)
    return PublicationService.update(db, current_member, publication, payload)


@router.delete("/{publication_id}", response_model=None)
def delete_publication(
    publication_id: int,
    permanent: bool = False,
    payload: schemas.PublicationDelete | None = Body(None),
    db: Session = Depends(get_db),
    current_member: models.Member = Depends(get_current_member),
) -> Response | schemas.Publication:
    """
    Move a publication to ``excluded`` with an optional reason.

    With ``permanent=true`` (admins only) the row and its media files are
    removed instead and 204 is returned.
    """
    publication = PublicationService.get(db, publication_id)
    if permanent:
        PublicationService.delete_permanently(db, current_member, publication)
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    reason = payload.reason if payload else None
    publication = PublicationService.exclude(db, current_member, publication, reason)
    return schemas.Publication.model_validate(publication)
