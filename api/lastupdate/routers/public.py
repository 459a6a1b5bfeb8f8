"""Public read API used by the news site (no authentication)."""

from __future__ import annotations

import logging

import httpx
from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.orm import Session

from .. import models, schemas
from ..deps import get_db, get_viewed_ids
from ..services import youtube
from ..services.errors import InvalidDataError
from ..services.highlights import HighlightService
from ..services.members import MemberService
from ..services.public import PublicSiteService
from ..settings import VIEWED_COOKIE_MAX_AGE, VIEWED_COOKIE_NAME

router = APIRouter(prefix="/api/public", tags=["Public"])
logger = logging.getLogger(__name__)


def _set_viewed_cookie(response: Response, viewed_ids: set[int]) -> None:
    response.set_cookie(
        VIEWED_COOKIE_NAME,
        ",".join(str(pid) for pid in sorted(viewed_ids)),
        max_age=VIEWED_COOKIE_MAX_AGE,
        httponly=False,
        samesite="lax",
        path="/",
    )


def _view(db: Session, publication: models.Publication, viewed_ids: set[int], response: Response) -> schemas.Publication:
    viewed_ids = PublicSiteService.record_view(db, publication, viewed_ids)
    _set_viewed_cookie(response, viewed_ids)
    return schemas.Publication.model_validate(publication)


# ============================================================================
# NEWS
# ============================================================================


@router.get("/highlights", response_model=list[schemas.PublicationSummary | None])
def list_highlights(
    limit: int = Query(3, ge=1, le=3),
    db: Session = Depends(get_db),
) -> list[schemas.PublicationSummary | None]:
    """Home page cards in order; empty pinned cards are null."""
    return [
        schemas.PublicationSummary.model_validate(publication) if publication else None
        for _card, publication in HighlightService.public_cards(db, limit)
    ]


@router.get("/news", response_model=list[schemas.PublicationSummary] | schemas.Publication)
def list_news(
    response: Response,
    limit: int | None = Query(None, ge=1),
    cat: str | None = None,
    slug: str | None = None,
    db: Session = Depends(get_db),
    viewed_ids: set[int] = Depends(get_viewed_ids),
):
    """
    Latest published stories, optionally filtered by category.

    With ``slug`` the matching story is returned instead and counted as a view.
    """
    if slug and slug.strip():
        publication = PublicSiteService.get_published(db, slug=slug)
        return _view(db, publication, viewed_ids, response)
    return [
        schemas.PublicationSummary.model_validate(p)
        for p in PublicSiteService.list_news(db, limit=limit, category=cat)
    ]


@router.get("/news/by-slug/{slug}", response_model=schemas.Publication)
def get_news_by_slug(
    slug: str,
    response: Response,
    db: Session = Depends(get_db),
    viewed_ids: set[int] = Depends(get_viewed_ids),
) -> schemas.Publication:
    publication = PublicSiteService.get_published(db, slug=slug)
    return _view(db, publication, viewed_ids, response)


@router.get("/news/{publication_id}", response_model=schemas.Publication)
def get_news(
    publication_id: int,
    response: Response,
    db: Session = Depends(get_db),
    viewed_ids: set[int] = Depends(get_viewed_ids),
) -> schemas.Publication:
    publication = PublicSiteService.get_published(db, publication_id=publication_id)
    return _view(db, publication, viewed_ids, response)


@router.get("/latest-publication", response_model=schemas.LatestPublication | None)
def get_latest_publication(db: Session = Depends(get_db)) -> models.Publication | None:
    """Newest published story, polled by the site to offer push notifications."""
    return PublicSiteService.latest_publication(db)


# ============================================================================
# JOURNALISTS
# ============================================================================


@router.get("/team", response_model=list[schemas.MemberPublic])
def list_team(db: Session = Depends(get_db)) -> list[models.Member]:
    return MemberService.list_team(db)


@router.get("/journalists", response_model=list[schemas.MemberPublic])
def list_journalists(
    include_inactive: bool = True,
    db: Session = Depends(get_db),
) -> list[models.Member]:
    return MemberService.list_journalists(db, include_inactive=include_inactive)


@router.get("/journalists/{member_id}", response_model=schemas.JournalistProfile)
def get_journalist(member_id: int, db: Session = Depends(get_db)) -> schemas.JournalistProfile:
    return PublicSiteService.journalist_profile(db, member_id)


@router.get("/journalist", response_model=schemas.JournalistProfile)
def get_journalist_by_query(
    member_id: int | None = Query(None, alias="id"),
    name: str | None = None,
    db: Session = Depends(get_db),
) -> schemas.JournalistProfile:
    """Profile lookup used by ``/jornalista?name=...&id=...`` links."""
    if not member_id or member_id <= 0:
        raise InvalidDataError("Invalid journalist id")
    return PublicSiteService.journalist_profile(db, member_id, requested_name=name)


# ============================================================================
# YOUTUBE
# ============================================================================


def _channel_or_400(channel_id: str | None) -> str:
    channel = youtube.resolve_channel(channel_id)
    if not channel:
        raise InvalidDataError("YouTube channel not configured")
    return channel


@router.get("/youtube/latest", response_model=schemas.YouTubeLatest)
def get_youtube_latest(
    channel_id: str | None = Query(None, alias="channelId"),
    limit: int = 1,
) -> schemas.YouTubeLatest:
    return youtube.latest_videos(_channel_or_400(channel_id), limit)


@router.get("/youtube/videos", response_model=schemas.YouTubeVideoPage)
def get_youtube_videos(
    channel_id: str | None = Query(None, alias="channelId"),
    page: int = 1,
    limit: int = youtube.DEFAULT_LIST_LIMIT,
    sort: str = "recent",
    video_type: str | None = Query(None, alias="type"),
) -> schemas.YouTubeVideoPage:
    """Paginated channel videos; ``sort`` is recent, oldest or views and ``type`` video, short or all."""
    return youtube.list_videos(_channel_or_400(channel_id), page, limit, sort, video_type)


@router.get("/youtube/thumbnail/{video_id}")
def get_youtube_thumbnail(video_id: str) -> Response:
    """Proxy a video thumbnail so the site does not load images from YouTube directly."""
    if not youtube.is_valid_video_id(video_id):
        raise InvalidDataError("Invalid video id")
    try:
        thumbnail = youtube.fetch_thumbnail(video_id)
    except httpx.HTTPError:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Failed to fetch thumbnail")
    if thumbnail is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Thumbnail not found")

    content, content_type = thumbnail
    return Response(
        content=content,
        media_type=content_type,
        headers={"Cache-Control": "public, max-age=3600"},
    )
