"""Dashboard overview for logged in members."""

from __future__ import annotations

import logging
from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from .. import models, schemas
from ..auth import get_current_member
from ..deps import get_db
from ..services.dashboard import DashboardService

router = APIRouter(prefix="/api/dashboard", tags=["Dashboard"])
logger = logging.getLogger(__name__)


@router.get("/overview", response_model=schemas.DashboardOverview)
def get_overview(
    range_key: str = Query("30d", alias="range"),
    week_start: date | None = None,
    top_sort: str = Query("publications", pattern="^(publications|views)$"),
    top_limit: int = Query(5, ge=1, le=50),
    top_offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    current_member: models.Member = Depends(get_current_member),
) -> schemas.DashboardOverview:
    """
    Metrics, weekly chart and rankings.

    Admins get newsroom-wide figures and the member ranking; journalists get
    figures for their own stories only. Unknown ranges fall back to ``30d``.
    """
    return DashboardService.overview(
        db,
        current_member,
        range_key=range_key,
        selected_week=week_start,
        members_sort=top_sort,
        members_limit=top_limit,
        members_offset=top_offset,
    )
