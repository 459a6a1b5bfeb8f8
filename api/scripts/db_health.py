#!/usr/bin/env python3
"""
Database Health Report

Prints the database size, row counts per table and the latest backup as JSON.

Usage (from the api/ directory):
    python scripts/db_health.py
"""

from __future__ import annotations

import json
import logging
import sys

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)

from dotenv import load_dotenv  # noqa: E402

load_dotenv()

from lastupdate.services.backup import database_report  # noqa: E402


def main() -> int:
    report = database_report()
    if report["size_mb"] is None:
        logger.error(f"Database not found: {report['database']}")
        return 1
    print(json.dumps(report, indent=2, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    sys.exit(main())
