"""
sitemap.xml generation.

The sitemap lists the static pages of the public site plus every published
story. Status changes call ``schedule_sitemap_refresh``, which coalesces
bursts of changes into a single delayed ``regenerate_sitemap`` task.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from datetime import date, datetime
from pathlib import Path
from urllib.parse import quote
from xml.sax.saxutils import escape

from sqlalchemy.orm import Session

from .. import models
from ..cache import acquire_window
from ..settings import ENABLE_AUTO_SITEMAP, SITE_BASE_URL, SITEMAP_DEBOUNCE_MS, SITEMAP_PATH

logger = logging.getLogger(__name__)

SITEMAP_DEBOUNCE_KEY = "sitemap:refresh-window"


@dataclass(frozen=True)
class SitemapEntry:
    loc: str
    changefreq: str | None = None
    priority: str | None = None
    lastmod: str | None = None


STATIC_PAGES = (
    SitemapEntry("/", "hourly", "1.0"),
    SitemapEntry("/busca", "daily", "0.7"),
    SitemapEntry("/quemsomos", "monthly", "0.6"),
    SitemapEntry("/politica-de-privacidade", "monthly", "0.5"),
    SitemapEntry("/condicoes-de-uso", "monthly", "0.5"),
    SitemapEntry("/jornalista", "daily", "0.6"),
    SitemapEntry("/login", "monthly", "0.4"),
)


def _iso(value: datetime | date | None) -> str | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.replace(microsecond=0).isoformat() + ("Z" if value.tzinfo is None else "")
    return value.isoformat()


def published_entries(db: Session) -> list[SitemapEntry]:
    rows = (
        db.query(models.Publication.id, models.Publication.slug, models.Publication.updated_at, models.Publication.date)
        .filter(models.Publication.status == models.STATUS_PUBLISHED)
        .order_by(models.Publication.date.desc(), models.Publication.id.desc())
        .all()
    )
    entries = []
    for publication_id, slug, updated_at, published_on in rows:
        slug = (slug or "").strip()
        loc = f"/noticia/{quote(slug)}" if slug else f"/noticia?id={publication_id}"
        entries.append(SitemapEntry(loc, "hourly", "0.9", _iso(updated_at or published_on)))
    return entries


def render_sitemap(entries: list[SitemapEntry], base_url: str = SITE_BASE_URL) -> str:
    base_url = base_url.rstrip("/")
    parts = [
        '<?xml version="1.0" encoding="UTF-8"?>',
        '<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">',
    ]
    for entry in entries:
        parts.append("  <url>")
        parts.append(f"    <loc>{escape(base_url + entry.loc)}</loc>")
        if entry.lastmod:
            parts.append(f"    <lastmod>{entry.lastmod}</lastmod>")
        if entry.changefreq:
            parts.append(f"    <changefreq>{entry.changefreq}</changefreq>")
        if entry.priority:
            parts.append(f"    <priority>{entry.priority}</priority>")
        parts.append("  </url>")
    parts.append("</urlset>")
    return "\n".join(parts) + "\n"


def write_sitemap(db: Session, path: Path = SITEMAP_PATH, base_url: str = SITE_BASE_URL) -> tuple[Path, int]:
    """
    Render and atomically replace the sitemap file.

    Returns:
        (path written, number of URLs)
    """
    entries = [*STATIC_PAGES, *published_entries(db)]
    xml = render_sitemap(entries, base_url)

    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    tmp_path.write_text(xml, encoding="utf-8")
    os.replace(tmp_path, path)
    return path, len(entries)


def schedule_sitemap_refresh(reason: str = "change") -> bool:
    """
    Queue a debounced sitemap regeneration.

    The first call opens a SITEMAP_DEBOUNCE_MS window and queues the task to run
    when it closes; calls inside the window are absorbed by that task. Without
    Redis the task is queued immediately. Returns True when a task was queued.
    """
    if not ENABLE_AUTO_SITEMAP:
        return False

    window = acquire_window(SITEMAP_DEBOUNCE_KEY, SITEMAP_DEBOUNCE_MS)
    if window is False:
        logger.debug("Sitemap refresh already pending, absorbing '%s'", reason)
        return False

    countdown = SITEMAP_DEBOUNCE_MS / 1000 if window else 0
    try:
        from ..tasks import regenerate_sitemap

        regenerate_sitemap.apply_async(kwargs={"reason": reason}, countdown=countdown)
        return True
    except Exception:
        logger.warning("Failed to queue sitemap refresh (%s)", reason, exc_info=True)
        return False
