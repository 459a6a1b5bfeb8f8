#!/usr/bin/env python3
"""
SQLite Backup Script

Copies the live database with SQLite's online backup API into BACKUP_DIR and
applies the retention rules (SQLITE_BACKUP_MAX_FILES, SQLITE_BACKUP_RETENTION_DAYS).

Usage (from the api/ directory):
    python scripts/backup_db.py

Options:
    --output-dir DIR   Write the backup somewhere else
    --no-cleanup       Keep every existing backup
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)

from dotenv import load_dotenv  # noqa: E402

load_dotenv()

from lastupdate.db import get_sqlite_path  # noqa: E402
from lastupdate.services.backup import create_backup, run_backup  # noqa: E402
from lastupdate.settings import BACKUP_DIR  # noqa: E402


def main() -> int:
    parser = argparse.ArgumentParser(description="Back up the SQLite database")
    parser.add_argument("--output-dir", type=Path, default=BACKUP_DIR, help="Backup directory")
    parser.add_argument("--no-cleanup", action="store_true", help="Skip retention cleanup")
    args = parser.parse_args()

    source = get_sqlite_path()
    if source is None:
        logger.error("DATABASE_URL does not point at a SQLite file")
        return 1

    try:
        if args.no_cleanup:
            result = create_backup(source, args.output_dir)
        else:
            result = run_backup(source, args.output_dir)
    except FileNotFoundError as e:
        logger.error(str(e))
        return 1

    if result is None:
        logger.warning("Another backup is running")
        return 1

    logger.info(f"Backup: {result.path} ({result.size_bytes} bytes)")
    if result.removed:
        logger.info(f"Removed: {', '.join(result.removed)}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
