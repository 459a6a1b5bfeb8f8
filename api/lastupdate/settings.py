"""Centralized environment-driven settings.

Keep this module lightweight: stdlib only, no app imports, to avoid circular deps.
"""

from __future__ import annotations

import os
import re
from pathlib import Path


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _bool_env(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _path_env(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    return Path(raw) if raw else default


_DURATION_RE = re.compile(r"^(\d+)\s*([smhd]?)$")
_DURATION_UNITS = {"": 1, "s": 1, "m": 60, "h": 3600, "d": 86400}


def parse_duration(raw: str | None, default_seconds: int) -> int:
    """
    Parse a duration such as ``40m``, ``2h``, ``1d`` or ``900`` into seconds.

    Unparseable or non-positive values fall back to ``default_seconds``.
    """
    if not raw:
        return default_seconds
    match = _DURATION_RE.match(raw.strip().lower())
    if not match:
        return default_seconds
    seconds = int(match.group(1)) * _DURATION_UNITS[match.group(2)]
    return seconds if seconds > 0 else default_seconds


API_DIR = Path(__file__).resolve().parent.parent

DATA_DIR: Path = _path_env("DATA_DIR", API_DIR / "data")
DATABASE_URL: str = os.getenv("DATABASE_URL") or f"sqlite:///{DATA_DIR / 'lastupdate.sqlite'}"

UPLOAD_DIR: Path = _path_env("UPLOAD_DIR", DATA_DIR / "uploads")
AVATAR_DIR: Path = _path_env("AVATAR_DIR", DATA_DIR / "avatars")
BACKUP_DIR: Path = _path_env("BACKUP_DIR", DATA_DIR / "backups")
FRONTEND_DIR: Path = _path_env("FRONTEND_DIR", API_DIR.parent / "frontend")
SITEMAP_PATH: Path = _path_env("SITEMAP_PATH", DATA_DIR / "sitemap.xml")
GEO_CACHE_PATH: Path = _path_env("GEO_CACHE_PATH", DATA_DIR / "br-cities.json")
GEO_FALLBACK_PATH: Path = _path_env("GEO_FALLBACK_PATH", API_DIR / "lastupdate" / "data" / "br-cities.json")

# Sessions
SESSION_COOKIE_NAME = "tlu_session"
SESSION_TTL_SECONDS: int = parse_duration(os.getenv("SESSION_TTL"), 40 * 60)
SESSION_COOKIE_SECURE: bool = _bool_env("SESSION_COOKIE_SECURE", os.getenv("ENVIRONMENT") == "production")
VIEWED_COOKIE_NAME = "tlu_viewed"
VIEWED_COOKIE_MAX_AGE = 365 * 24 * 3600

# Public site
SITE_BASE_URL: str = (os.getenv("SITE_BASE_URL") or "https://www.thelastupdate.com.br").rstrip("/")
DEFAULT_PUSH_ICON = "/assets/img/favicon.svg"

# Uploads (bytes)
MAX_UPLOAD_BYTES: int = _int_env("MAX_UPLOAD_BYTES", 100 * 1024 * 1024)
MAX_AVATAR_BYTES: int = _int_env("MAX_AVATAR_BYTES", 5 * 1024 * 1024)

# Background jobs
ENABLE_AUTO_SITEMAP: bool = _bool_env("ENABLE_AUTO_SITEMAP", True)
ENABLE_AUTO_BACKUP: bool = _bool_env("ENABLE_AUTO_BACKUP", True)
SITEMAP_DEBOUNCE_MS: int = max(1000, _int_env("SITEMAP_DEBOUNCE_MS", 5000))
SQLITE_BACKUP_INTERVAL_MINUTES: int = max(5, _int_env("SQLITE_BACKUP_INTERVAL_MINUTES", 360))
SQLITE_BACKUP_MAX_FILES: int = _int_env("SQLITE_BACKUP_MAX_FILES", 60)
SQLITE_BACKUP_RETENTION_DAYS: int = _int_env("SQLITE_BACKUP_RETENTION_DAYS", 14)

# Web Push (VAPID)
VAPID_PUBLIC_KEY: str = os.getenv("VAPID_PUBLIC_KEY", "")
VAPID_PRIVATE_KEY: str = os.getenv("VAPID_PRIVATE_KEY", "")
VAPID_CONTACT: str = os.getenv("VAPID_CONTACT", "mailto:contato@thelastupdate.com.br")

# YouTube proxy
YOUTUBE_API_KEY: str = os.getenv("YOUTUBE_API_KEY", "")
YOUTUBE_CHANNEL_ID: str = os.getenv("YOUTUBE_CHANNEL_ID", "")
YOUTUBE_CACHE_TTL: int = _int_env("YOUTUBE_CACHE_TTL", 600)

# Bootstrap admin
SEED_ADMIN_NAME: str = os.getenv("SEED_ADMIN_NAME", "Administrador")
SEED_ADMIN_EMAIL: str = os.getenv("SEED_ADMIN_EMAIL", "")
SEED_ADMIN_CPF: str = os.getenv("SEED_ADMIN_CPF", "")
SEED_ADMIN_BIRTH_DATE: str = os.getenv("SEED_ADMIN_BIRTH_DATE", "")
