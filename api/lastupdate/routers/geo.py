"""Geographic reference data."""

from __future__ import annotations

import logging

from fastapi import APIRouter

from ..services.geo import list_cities

router = APIRouter(prefix="/api/geo", tags=["Geo"])
logger = logging.getLogger(__name__)


@router.get("/br/cities", response_model=list[str])
def get_brazilian_cities() -> list[str]:
    """Every Brazilian municipality as ``"Nome - UF"``, sorted."""
    return list_cities()
