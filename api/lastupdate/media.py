"""Uploaded media storage.

Editor uploads land in UPLOAD_DIR (served at /uploads) and member avatars in
AVATAR_DIR (served at /storage/avatars). Files are stored as uploaded, with
no re-encoding.
"""

from __future__ import annotations

import base64
import binascii
import logging
import re
import time
from pathlib import Path
from urllib.parse import unquote, urlparse

from . import settings

logger = logging.getLogger(__name__)

UPLOADS_URL_PREFIX = "/uploads/"
AVATARS_URL_PREFIX = "/storage/avatars/"

# Allowed image MIME types (avatars)
ALLOWED_AVATAR_TYPES: dict[str, str] = {
    "image/png": ".png",
    "image/gif": ".gif",
    "image/webp": ".webp",
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/svg+xml": ".svg",
}

_DATA_URL_RE = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+);base64,(?P<data>.+)$", re.DOTALL)
_MEDIA_SRC_RE = re.compile(r"""(?:src|href|poster)\s*=\s*["']([^"']+)["']""", re.IGNORECASE)


def sanitize_base_name(filename: str) -> str:
    """Reduce a client filename stem to ``[A-Za-z0-9_-]``; ``file`` when nothing is left."""
    stem = Path(filename or "").stem
    base = re.sub(r"[^A-Za-z0-9_-]+", "-", stem).strip("-_")
    return base[:80] or "file"


def _timestamp() -> str:
    return str(int(time.time() * 1000))


def save_upload(filename: str, content: bytes) -> tuple[str, str]:
    """
    Save an editor upload.

    Args:
        filename: Client supplied filename (only used for its stem and extension)
        content: Raw bytes

    Returns:
        (stored file name, public URL)
    """
    if len(content) > settings.MAX_UPLOAD_BYTES:
        raise ValueError(f"File exceeds maximum of {settings.MAX_UPLOAD_BYTES} bytes")

    ext = Path(filename or "").suffix.lower()
    if not re.fullmatch(r"\.[a-z0-9]{1,8}", ext):
        ext = ""
    name = f"{sanitize_base_name(filename)}-{_timestamp()}{ext}"

    settings.UPLOAD_DIR.mkdir(parents=True, exist_ok=True)
    path = settings.UPLOAD_DIR / name
    path.write_bytes(content)

    logger.info(f"Saved upload {name} ({len(content)} bytes)")
    return name, f"{UPLOADS_URL_PREFIX}{name}"


def save_avatar(member_id: int, content: bytes, mime_type: str) -> str:
    """
    Save a member avatar and return its public URL.

    Raises ValueError on a disallowed MIME type or an oversized file.
    """
    mime_type_lower = (mime_type or "").lower()
    if mime_type_lower == "image/jpg":
        mime_type_lower = "image/jpeg"

    if mime_type_lower not in ALLOWED_AVATAR_TYPES:
        raise ValueError(
            f"MIME type '{mime_type}' is not allowed. Allowed types: {list(ALLOWED_AVATAR_TYPES.keys())}"
        )

    if len(content) > settings.MAX_AVATAR_BYTES:
        max_mb = settings.MAX_AVATAR_BYTES / (1024 * 1024)
        raise ValueError(f"Avatar exceeds maximum of {max_mb:.0f} MB")

    name = f"member-{member_id}-{_timestamp()}{ALLOWED_AVATAR_TYPES[mime_type_lower]}"
    settings.AVATAR_DIR.mkdir(parents=True, exist_ok=True)
    (settings.AVATAR_DIR / name).write_bytes(content)

    logger.info(f"Saved avatar for member {member_id} as {name}")
    return f"{AVATARS_URL_PREFIX}{name}"


def decode_data_url(data_url: str) -> tuple[str, bytes]:
    """Split a base64 ``data:`` URL into (mime type, bytes)."""
    match = _DATA_URL_RE.match(data_url.strip())
    if not match:
        raise ValueError("Invalid data URL")
    try:
        content = base64.b64decode(match.group("data"), validate=False)
    except (binascii.Error, ValueError):
        raise ValueError("Invalid base64 payload in data URL")
    return match.group("mime"), content


def _url_path(url: str) -> str:
    return unquote(urlparse(url).path if "://" in url else url.split("?", 1)[0])


def resolve_media_path(url: str | None) -> Path | None:
    """
    Map a public media URL back to the file it serves.

    Only URLs under /uploads/ and /storage/avatars/ resolve; anything that
    would escape those directories returns None.
    """
    if not url:
        return None

    path = _url_path(url)
    if path.startswith(UPLOADS_URL_PREFIX):
        root, relative = settings.UPLOAD_DIR, path[len(UPLOADS_URL_PREFIX):]
    elif path.startswith(AVATARS_URL_PREFIX):
        root, relative = settings.AVATAR_DIR, path[len(AVATARS_URL_PREFIX):]
    else:
        return None

    candidate = (root / relative).resolve()
    if not relative or not candidate.is_relative_to(root.resolve()):
        return None
    return candidate


def try_delete_media(url: str | None) -> bool:
    """
    Best-effort delete of a stored media file referenced by its public URL.

    Returns True if we deleted a file, False otherwise.
    """
    try:
        path = resolve_media_path(url)
        if path is None or not path.is_file():
            return False
        path.unlink()
        logger.info(f"Deleted media file {path}")
        return True
    except OSError as e:
        logger.warning(f"Failed to delete media for url={url}: {e}")
        return False


def avatar_owner_prefix(member_id: int) -> str:
    return f"member-{member_id}-"


def is_avatar_url(url: str | None) -> bool:
    return resolve_media_path(url) is not None and _url_path(url).startswith(AVATARS_URL_PREFIX)


def member_avatar_path(member_id: int, url: str | None) -> Path | None:
    """The stored avatar file behind ``url`` when it belongs to ``member_id``."""
    if not is_avatar_url(url):
        return None
    path = resolve_media_path(url)
    if path.parent != settings.AVATAR_DIR.resolve() or not path.name.startswith(avatar_owner_prefix(member_id)):
        return None
    return path


def try_delete_member_avatar(member_id: int, url: str | None) -> bool:
    """Delete an avatar file, only if it was saved for this member."""
    if member_avatar_path(member_id, url) is None:
        return False
    return try_delete_media(url)


def media_urls_in_html(html: str | None) -> list[str]:
    """Stored media referenced from an article body (images, videos, links)."""
    if not html:
        return []
    urls = []
    for value in _MEDIA_SRC_RE.findall(html):
        if resolve_media_path(value) is not None and value not in urls:
            urls.append(value)
    return urls
