"""
YouTube channel listings for the home page and the videos page.

The Data API (search + videos) is used when YOUTUBE_API_KEY is set; otherwise,
or when it fails, the public RSS feed of the channel is read instead. The feed
carries no duration or view counts. Results are cached in Redis when available.
"""

from __future__ import annotations

import html
import logging
import re
import xml.etree.ElementTree as ET
from typing import Any

import httpx

from .. import schemas
from ..cache import cache_get, cache_set
from ..settings import YOUTUBE_API_KEY, YOUTUBE_CACHE_TTL, YOUTUBE_CHANNEL_ID

logger = logging.getLogger(__name__)

API_BASE = "https://www.googleapis.com/youtube/v3"
FEED_URL = "https://www.youtube.com/feeds/videos.xml"
THUMBNAIL_URL = "https://img.youtube.com/vi/{video_id}/hqdefault.jpg"
MAX_LATEST_LIMIT = 5
MAX_LIST_LIMIT = 50
DEFAULT_LIST_LIMIT = 9
SHORT_MAX_SECONDS = 60
REQUEST_TIMEOUT = 10

FEED_NS = {
    "atom": "http://www.w3.org/2005/Atom",
    "yt": "http://www.youtube.com/xml/schemas/2015",
    "media": "http://search.yahoo.com/mrss/",
}

_DURATION_RE = re.compile(r"PT(?:(\d+)H)?(?:(\d+)M)?(?:(\d+)S)?")
_VIDEO_ID_RE = re.compile(r"^[A-Za-z0-9_-]{6,20}$")


def parse_iso_duration(value: str | None) -> tuple[int, str]:
    """
    Parse an ISO-8601 video duration such as ``PT1H2M3S``.

    Returns:
        (total seconds, display string like ``1:02:03`` or ``4:05``)
    """
    match = _DURATION_RE.match(value or "")
    if not match:
        return 0, "0:00"
    hours, minutes, seconds = (int(part or 0) for part in match.groups())
    total = hours * 3600 + minutes * 60 + seconds
    if hours:
        return total, f"{hours}:{minutes:02d}:{seconds:02d}"
    return total, f"{minutes}:{seconds:02d}"


def is_valid_video_id(video_id: str) -> bool:
    return bool(_VIDEO_ID_RE.match(video_id or ""))


def thumbnail_proxy_url(video_id: str) -> str:
    return f"/api/public/youtube/thumbnail/{video_id}"


def watch_url(video_id: str) -> str:
    return f"https://www.youtube.com/watch?v={video_id}"


def _best_thumbnail(thumbnails: dict[str, Any], video_id: str) -> str:
    for size in ("high", "medium", "default"):
        url = (thumbnails.get(size) or {}).get("url")
        if url:
            return url
    return THUMBNAIL_URL.format(video_id=video_id)


# ============================================================================
# FETCHERS
# ============================================================================


def fetch_from_api(channel_id: str, limit: int, with_details: bool = False) -> list[schemas.YouTubeVideo]:
    """Latest uploads through the Data API. Returns [] on any failure."""
    if not YOUTUBE_API_KEY or not channel_id:
        return []

    try:
        with httpx.Client(timeout=REQUEST_TIMEOUT) as client:
            response = client.get(
                f"{API_BASE}/search",
                params={
                    "part": "snippet",
                    "channelId": channel_id,
                    "maxResults": str(min(max(limit, 1), MAX_LIST_LIMIT)),
                    "order": "date",
                    "type": "video",
                    "key": YOUTUBE_API_KEY,
                },
            )
            response.raise_for_status()

            videos: dict[str, schemas.YouTubeVideo] = {}
            for item in response.json().get("items") or []:
                video_id = (item.get("id") or {}).get("videoId")
                if not video_id:
                    continue
                snippet = item.get("snippet") or {}
                videos[video_id] = schemas.YouTubeVideo(
                    video_id=video_id,
                    title=html.unescape(snippet.get("title") or ""),
                    url=watch_url(video_id),
                    published_at=snippet.get("publishedAt"),
                    thumbnail=thumbnail_proxy_url(video_id),
                    thumbnail_source=_best_thumbnail(snippet.get("thumbnails") or {}, video_id),
                )
            if not videos or not with_details:
                return list(videos.values())

            details = client.get(
                f"{API_BASE}/videos",
                params={
                    "part": "contentDetails,statistics",
                    "id": ",".join(videos),
                    "key": YOUTUBE_API_KEY,
                },
            )
            details.raise_for_status()
    except (httpx.HTTPError, ValueError) as e:
        logger.warning(f"YouTube API request failed for channel {channel_id}: {e}")
        return []

    results = []
    for item in details.json().get("items") or []:
        video = videos.get(item.get("id"))
        if video is None:
            continue
        seconds, display = parse_iso_duration((item.get("contentDetails") or {}).get("duration"))
        stats = item.get("statistics") or {}
        try:
            view_count = int(stats.get("viewCount") or 0)
        except ValueError:
            view_count = 0
        results.append(
            video.model_copy(
                update={
                    "duration_seconds": seconds,
                    "duration_display": display,
                    "view_count": view_count,
                    "type": "short" if seconds <= SHORT_MAX_SECONDS else "video",
                }
            )
        )
    return results


def parse_feed(xml_text: str, limit: int) -> list[schemas.YouTubeVideo]:
    """Parse the channel Atom feed into videos (no duration or views)."""
    try:
        root = ET.fromstring(xml_text)
    except ET.ParseError as e:
        logger.warning(f"Invalid YouTube feed: {e}")
        return []

    items = []
    for entry in root.findall("atom:entry", FEED_NS):
        if len(items) >= limit:
            break
        video_id = entry.findtext("yt:videoId", default="", namespaces=FEED_NS).strip()
        if not video_id:
            continue
        link = entry.find("atom:link[@rel='alternate']", FEED_NS)
        thumb = entry.find(".//media:thumbnail", FEED_NS)
        items.append(
            schemas.YouTubeVideo(
                video_id=video_id,
                title=entry.findtext("atom:title", default="", namespaces=FEED_NS),
                url=link.get("href") if link is not None and link.get("href") else watch_url(video_id),
                published_at=entry.findtext("atom:published", default=None, namespaces=FEED_NS),
                thumbnail=thumbnail_proxy_url(video_id),
                thumbnail_source=(
                    thumb.get("url") if thumb is not None and thumb.get("url") else THUMBNAIL_URL.format(video_id=video_id)
                ),
            )
        )
    return items


def fetch_from_feed(channel_id: str, limit: int) -> list[schemas.YouTubeVideo]:
    try:
        response = httpx.get(FEED_URL, params={"channel_id": channel_id}, timeout=REQUEST_TIMEOUT)
        response.raise_for_status()
    except httpx.HTTPError as e:
        logger.warning(f"YouTube feed request failed for channel {channel_id}: {e}")
        return []
    return parse_feed(response.text, limit)


def fetch_thumbnail(video_id: str) -> tuple[bytes, str] | None:
    """
    Download the hqdefault thumbnail of a video.

    Returns:
        (image bytes, content type), or None when YouTube has no thumbnail

    Raises:
        httpx.HTTPError: upstream unreachable or answering with an error status
    """
    try:
        response = httpx.get(THUMBNAIL_URL.format(video_id=video_id), timeout=REQUEST_TIMEOUT, follow_redirects=True)
        if response.status_code == 404:
            return None
        response.raise_for_status()
    except httpx.HTTPError as e:
        logger.warning(f"Thumbnail request failed for {video_id}: {e}")
        raise
    return response.content, response.headers.get("content-type", "image/jpeg")


# ============================================================================
# LISTINGS
# ============================================================================


def resolve_channel(channel_id: str | None) -> str:
    return (channel_id or YOUTUBE_CHANNEL_ID or "").strip()


def _cached(key: str, loader) -> list[schemas.YouTubeVideo]:
    cached = cache_get(key)
    if cached is not None:
        return [schemas.YouTubeVideo.model_validate(item) for item in cached]
    videos = loader()
    if videos:
        cache_set(key, [video.model_dump() for video in videos], ttl=YOUTUBE_CACHE_TTL)
    return videos


def latest_videos(channel_id: str, limit: int = 1) -> schemas.YouTubeLatest:
    limit = min(max(limit, 1), MAX_LATEST_LIMIT)

    def load() -> list[schemas.YouTubeVideo]:
        return fetch_from_api(channel_id, limit) or fetch_from_feed(channel_id, limit)

    items = _cached(f"youtube:latest:{channel_id}:{limit}", load)
    return schemas.YouTubeLatest(channel_id=channel_id, items=items[:limit])


def list_videos(
    channel_id: str,
    page: int = 1,
    limit: int = DEFAULT_LIST_LIMIT,
    sort: str = "recent",
    video_type: str | None = None,
) -> schemas.YouTubeVideoPage:
    """
    Paginated channel listing.

    Args:
        sort: ``recent`` (default), ``oldest`` or ``views``
        video_type: ``video``, ``short`` or None/``all``
    """
    limit = min(max(limit, 1), MAX_LIST_LIMIT)
    page = page if page > 0 else 1
    fetch_count = page * limit

    def load() -> list[schemas.YouTubeVideo]:
        return (
            fetch_from_api(channel_id, fetch_count, with_details=True)
            or fetch_from_api(channel_id, fetch_count)
            or fetch_from_feed(channel_id, fetch_count)
        )

    videos = _cached(f"youtube:videos:{channel_id}:{fetch_count}", load)

    video_type = (video_type or "").lower()
    if video_type in ("video", "short"):
        videos = [video for video in videos if video.type == video_type]

    sort = (sort or "recent").lower()
    if sort == "oldest":
        videos.sort(key=lambda v: v.published_at or "")
    elif sort == "views":
        videos.sort(key=lambda v: v.view_count if v.view_count is not None else -1, reverse=True)
    else:
        videos.sort(key=lambda v: v.published_at or "", reverse=True)

    start = (page - 1) * limit
    return schemas.YouTubeVideoPage(
        channel_id=channel_id,
        page=page,
        limit=limit,
        total=len(videos),
        items=videos[start : start + limit],
    )
