from __future__ import annotations

import os
import tempfile
from datetime import date
from pathlib import Path
from typing import Callable, Generator

_TMP = Path(tempfile.mkdtemp(prefix="lastupdate-tests-"))
_FRONTEND = _TMP / "frontend"
(_FRONTEND / "pages").mkdir(parents=True)
for _page in ("index", "login", "dashboard", "noticia", "busca", "jornalista", "quemsomos"):
    (_FRONTEND / "pages" / f"{_page}.html").write_text(f"<html><body>{_page}</body></html>", encoding="utf-8")

os.environ.update(
    {
        "DATABASE_URL": f"sqlite:///{_TMP / 'test.sqlite'}",
        "JWT_SECRET_KEY": "test-secret-key-that-is-long-enough-for-hs256",
        "CELERY_TASK_ALWAYS_EAGER": "1",
        "REDIS_URL": "",
        "ENABLE_AUTO_SITEMAP": "false",
        "ENABLE_AUTO_BACKUP": "false",
        "DATA_DIR": str(_TMP / "data"),
        "UPLOAD_DIR": str(_TMP / "data" / "uploads"),
        "AVATAR_DIR": str(_TMP / "data" / "avatars"),
        "BACKUP_DIR": str(_TMP / "data" / "backups"),
        "SITEMAP_PATH": str(_TMP / "data" / "sitemap.xml"),
        "GEO_CACHE_PATH": str(_TMP / "data" / "br-cities.json"),
        "FRONTEND_DIR": str(_FRONTEND),
        "SEED_ADMIN_CPF": "",
        "VAPID_PUBLIC_KEY": "",
        "VAPID_PRIVATE_KEY": "",
        "YOUTUBE_API_KEY": "",
    }
)

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402

from lastupdate import models  # noqa: E402
from lastupdate.auth import create_access_token  # noqa: E402
from lastupdate.db import SessionLocal  # noqa: E402
from lastupdate.main import app, run_startup_tasks  # noqa: E402
from lastupdate.services.passwords import default_password_for, hash_password  # noqa: E402

BIRTH_DATE = date(1990, 2, 1)
DEFAULT_PASSWORD = default_password_for(BIRTH_DATE)
_PASSWORD_HASH = hash_password(DEFAULT_PASSWORD)


@pytest.fixture(scope="session", autouse=True)
def bootstrap() -> None:
    run_startup_tasks()


@pytest.fixture(autouse=True)
def clean_tables() -> Generator[None, None, None]:
    yield
    session = SessionLocal()
    try:
        for model in (
            models.Highlight,
            models.Notification,
            models.Publication,
            models.PushSubscription,
            models.Member,
        ):
            session.query(model).delete()
        session.commit()
    finally:
        session.close()


@pytest.fixture()
def client() -> Generator[TestClient, None, None]:
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def db() -> Generator[Session, None, None]:
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


def auth_headers(member: models.Member) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(member)}"}


@pytest.fixture()
def make_member(db: Session) -> Callable[..., models.Member]:
    """Factory for members; each call gets a fresh CPF and email."""
    counter = {"n": 0}

    def _make(role: str = models.ROLE_JOURNALIST, **fields) -> models.Member:
        counter["n"] += 1
        n = counter["n"]
        member = models.Member(
            name=fields.pop("name", f"Member {n}"),
            email=fields.pop("email", f"member{n}@example.com"),
            cpf=fields.pop("cpf", f"{n:011d}"),
            birth_date=fields.pop("birth_date", BIRTH_DATE),
            password_hash=_PASSWORD_HASH,
            role=role,
            **fields,
        )
        db.add(member)
        db.commit()
        db.refresh(member)
        return member

    return _make


@pytest.fixture()
def admin(make_member) -> models.Member:
    return make_member(models.ROLE_ADMIN, name="Ana Admin")


@pytest.fixture()
def journalist(make_member) -> models.Member:
    return make_member(models.ROLE_JOURNALIST, name="João Repórter")


@pytest.fixture()
def make_publication(db: Session) -> Callable[..., models.Publication]:
    """Insert a publication row directly, bypassing the lifecycle rules."""

    def _make(author: models.Member, **fields) -> models.Publication:
        publication = models.Publication(
            title=fields.pop("title", "Matéria de teste"),
            author_id=author.id,
            date=fields.pop("date", date(2025, 10, 1)),
            category=fields.pop("category", "politica"),
            status=fields.pop("status", models.STATUS_PUBLISHED),
            views=fields.pop("views", 0),
            unique_views=fields.pop("unique_views", 0),
            **fields,
        )
        db.add(publication)
        db.commit()
        db.refresh(publication)
        return publication

    return _make


@pytest.fixture()
def headers_for() -> Callable[[models.Member], dict[str, str]]:
    return auth_headers
