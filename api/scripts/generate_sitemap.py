#!/usr/bin/env python3
"""
Sitemap Generation Script

Writes sitemap.xml from the static pages and every published story.

Usage (from the api/ directory):
    python scripts/generate_sitemap.py [--output PATH] [--base-url URL]
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

from lastupdate.db import SessionLocal  # noqa: E402
from lastupdate.services.sitemap import write_sitemap  # noqa: E402
from lastupdate.settings import SITE_BASE_URL, SITEMAP_PATH  # noqa: E402


def main() -> int:
    parser = argparse.ArgumentParser(description="Generate sitemap.xml")
    parser.add_argument("--output", type=Path, default=SITEMAP_PATH, help="Destination file")
    parser.add_argument("--base-url", default=SITE_BASE_URL, help="Absolute site URL")
    args = parser.parse_args()

    db = SessionLocal()
    try:
        path, count = write_sitemap(db, args.output, args.base_url)
    finally:
        db.close()

    logger.info(f"Sitemap with {count} URLs written to {path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
