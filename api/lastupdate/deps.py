from __future__ import annotations

from typing import Generator

from fastapi import Request
from sqlalchemy.orm import Session

from .db import get_session
from .settings import VIEWED_COOKIE_NAME


def get_db() -> Generator[Session, None, None]:
    yield from get_session()


def get_viewed_ids(request: Request) -> set[int]:
    """Publication ids this browser already counted as a unique view."""
    raw = request.cookies.get(VIEWED_COOKIE_NAME, "")
    viewed: set[int] = set()
    for chunk in raw.split(","):
        chunk = chunk.strip()
        if chunk.isdigit():
            viewed.add(int(chunk))
    return viewed
