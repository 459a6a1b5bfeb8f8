"""Search endpoint for the public site."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from .. import schemas
from ..deps import get_db
from ..services.search import SearchService

router = APIRouter(prefix="/api", tags=["Search"])
logger = logging.getLogger(__name__)


@router.get("/search", response_model=list[schemas.SearchResult])
@router.get("/busca", response_model=list[schemas.SearchResult], include_in_schema=False)
def search_publications(
    q: str = "",
    limit: int | None = Query(None, ge=1),
    db: Session = Depends(get_db),
) -> list[schemas.SearchResult]:
    """
    Published stories whose title or category contains ``q``.

    Queries shorter than two characters return an empty list.
    """
    return SearchService.search(db, q, limit)
