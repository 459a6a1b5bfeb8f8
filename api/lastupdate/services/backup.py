"""SQLite backups with retention, plus a small database health report."""

from __future__ import annotations

import logging
import sqlite3
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

from ..db import get_sqlite_path
from ..settings import BACKUP_DIR, SQLITE_BACKUP_MAX_FILES, SQLITE_BACKUP_RETENTION_DAYS

logger = logging.getLogger(__name__)

BACKUP_GLOB = "backup-*.sqlite"

_backup_lock = threading.Lock()


@dataclass
class BackupResult:
    path: Path
    size_bytes: int
    removed: list[str] = field(default_factory=list)


def backup_filename(now: datetime | None = None) -> str:
    now = now or datetime.now(timezone.utc)
    return f"backup-{now.strftime('%Y-%m-%dT%H-%M-%S-%fZ')}.sqlite"


def cleanup_backups(
    backup_dir: Path = BACKUP_DIR,
    max_files: int = SQLITE_BACKUP_MAX_FILES,
    retention_days: int = SQLITE_BACKUP_RETENTION_DAYS,
    now: float | None = None,
) -> list[str]:
    """
    Delete backups older than ``retention_days`` and keep at most ``max_files``.

    Non-positive limits disable the corresponding rule. Returns removed names.
    """
    if not backup_dir.exists():
        return []

    entries = sorted(backup_dir.glob(BACKUP_GLOB), key=lambda p: p.stat().st_mtime)
    now = now if now is not None else time.time()
    doomed: list[Path] = []

    if retention_days > 0:
        expires_before = now - retention_days * 86400
        doomed.extend(p for p in entries if p.stat().st_mtime < expires_before)

    if max_files > 0:
        survivors = [p for p in entries if p not in doomed]
        excess = len(survivors) - max_files
        if excess > 0:
            doomed.extend(survivors[:excess])

    removed = []
    for path in doomed:
        try:
            path.unlink()
            removed.append(path.name)
        except OSError as e:
            logger.warning(f"Failed to remove old backup {path}: {e}")
    if removed:
        logger.info(f"Removed {len(removed)} old backups")
    return removed


def create_backup(source: Path, backup_dir: Path = BACKUP_DIR) -> BackupResult:
    """
    Copy a live SQLite database with the online backup API.

    Raises:
        FileNotFoundError: ``source`` does not exist
    """
    if not source.exists():
        raise FileNotFoundError(f"Database file not found: {source}")

    backup_dir.mkdir(parents=True, exist_ok=True)
    target = backup_dir / backup_filename()

    src = sqlite3.connect(str(source))
    try:
        dst = sqlite3.connect(str(target))
        try:
            src.backup(dst)
        finally:
            dst.close()
    finally:
        src.close()

    size = target.stat().st_size
    logger.info(f"Database backup written to {target} ({size} bytes)")
    return BackupResult(path=target, size_bytes=size)


def run_backup(
    source: Path | None = None,
    backup_dir: Path = BACKUP_DIR,
    max_files: int = SQLITE_BACKUP_MAX_FILES,
    retention_days: int = SQLITE_BACKUP_RETENTION_DAYS,
) -> BackupResult | None:
    """
    Backup then cleanup. Returns None when another backup is already running.
    """
    if not _backup_lock.acquire(blocking=False):
        logger.warning("Backup already running, skipping this run")
        return None
    try:
        source = source or get_sqlite_path()
        if source is None:
            raise RuntimeError("Backups require a file-backed SQLite DATABASE_URL")
        result = create_backup(source, backup_dir)
        result.removed = cleanup_backups(backup_dir, max_files, retention_days)
        return result
    finally:
        _backup_lock.release()


def latest_backup(backup_dir: Path = BACKUP_DIR) -> Path | None:
    if not backup_dir.exists():
        return None
    backups = sorted(backup_dir.glob(BACKUP_GLOB), key=lambda p: p.stat().st_mtime)
    return backups[-1] if backups else None


def database_report(source: Path | None = None, backup_dir: Path = BACKUP_DIR) -> dict:
    """File size, row counts per table and the latest backup."""
    source = source or get_sqlite_path()
    report: dict = {"database": str(source) if source else None, "size_mb": None, "tables": {}, "latest_backup": None}
    if source is not None and source.exists():
        report["size_mb"] = round(source.stat().st_size / 1024 / 1024, 2)
        conn = sqlite3.connect(f"file:{source}?mode=ro", uri=True)
        try:
            names = [
                row[0]
                for row in conn.execute(
                    "SELECT name FROM sqlite_master WHERE type='table' AND name NOT LIKE 'sqlite_%' ORDER BY name"
                )
            ]
            for name in names:
                report["tables"][name] = conn.execute(f'SELECT COUNT(*) FROM "{name}"').fetchone()[0]
        finally:
            conn.close()

    latest = latest_backup(backup_dir)
    if latest is not None:
        report["latest_backup"] = {
            "file": latest.name,
            "modified_at": datetime.fromtimestamp(latest.stat().st_mtime, tz=timezone.utc).isoformat(),
        }
    return report
