from __future__ import annotations

import logging
import os

from dotenv import load_dotenv

load_dotenv()

from lastupdate.db import get_sqlite_path  # noqa: E402
from lastupdate.tasks import celery_app  # noqa: E402

logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"))
logger = logging.getLogger(__name__)


if __name__ == "__main__":
    db_path = get_sqlite_path()
    if db_path is None:
        logger.warning("DATABASE_URL is not a file-backed SQLite database; backups are disabled")
    elif not db_path.exists():
        logger.warning(f"Database file {db_path} does not exist yet; start the API once to migrate it")
    else:
        logger.info(f"Using database {db_path}")

    # Embedded beat runs the periodic backup schedule in the same process
    celery_app.worker_main(["worker", "--beat", "--loglevel=info"])
