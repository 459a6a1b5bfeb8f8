"""HTML pages of the site and the generated sitemap."""

from __future__ import annotations

import logging
from pathlib import Path

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import FileResponse, RedirectResponse

from .. import models
from ..auth import get_current_member_optional
from ..settings import FRONTEND_DIR, SITEMAP_PATH

router = APIRouter(prefix="", tags=["Pages"], include_in_schema=False)
logger = logging.getLogger(__name__)

PAGES_DIR = FRONTEND_DIR / "pages"

STATIC_PAGES = {
    "/": "index.html",
    "/login": "login.html",
    "/quemsomos": "quemsomos.html",
    "/politica-de-privacidade": "politica-de-privacidade.html",
    "/politicas": "politica-de-privacidade.html",
    "/condicoes-de-uso": "condicoes-de-uso.html",
    "/condicoes": "condicoes-de-uso.html",
    "/busca": "busca.html",
    "/jornalista": "jornalista.html",
    "/noticia": "noticia.html",
}


def _page(name: str) -> FileResponse:
    path: Path = PAGES_DIR / name
    if not path.is_file():
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Page not found")
    return FileResponse(path, media_type="text/html")


def _register_static_page(route: str, filename: str) -> None:
    def serve_page() -> FileResponse:
        return _page(filename)

    router.add_api_route(route, serve_page, methods=["GET"], name=f"page:{route}")


for _route, _filename in STATIC_PAGES.items():
    _register_static_page(_route, _filename)


@router.get("/noticia/{slug}")
def article_page(slug: str) -> FileResponse:
    """The article page loads its story client side from the slug in the URL."""
    return _page("noticia.html")


@router.get("/dashboard")
def dashboard_page(member: models.Member | None = Depends(get_current_member_optional)):
    """Dashboard shell; visitors without a valid session go to the login page."""
    if member is None:
        return RedirectResponse("/login", status_code=status.HTTP_302_FOUND)
    return _page("dashboard.html")


@router.get("/sitemap.xml")
def sitemap() -> FileResponse:
    if not SITEMAP_PATH.is_file():
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Sitemap not generated yet")
    return FileResponse(SITEMAP_PATH, media_type="application/xml")
