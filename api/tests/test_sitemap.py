"""Test sitemap generation."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from lastupdate import models, settings
from lastupdate.services import sitemap
from lastupdate.services.sitemap import STATIC_PAGES, SitemapEntry, render_sitemap, schedule_sitemap_refresh, write_sitemap
from lastupdate.tasks import regenerate_sitemap


def test_render_escapes_locations():
    xml = render_sitemap([SitemapEntry("/busca?q=a&b", "daily", "0.7")], base_url="https://example.com/")
    assert "<loc>https://example.com/busca?q=a&amp;b</loc>" in xml
    assert xml.startswith('<?xml version="1.0" encoding="UTF-8"?>')


def test_write_sitemap_lists_published_stories(db, tmp_path, journalist, make_publication):
    make_publication(journalist, slug="eleicao-2026")
    make_publication(journalist, slug=None, title="Sem slug")
    make_publication(journalist, slug="rascunho", status=models.STATUS_DRAFT)

    path, count = write_sitemap(db, tmp_path / "sitemap.xml", base_url="https://example.com")
    xml = path.read_text(encoding="utf-8")

    assert count == len(STATIC_PAGES) + 2
    assert "<loc>https://example.com/noticia/eleicao-2026</loc>" in xml
    assert "https://example.com/noticia?id=" in xml
    assert "rascunho" not in xml
    assert "<lastmod>" in xml


def test_refresh_disabled_by_setting():
    assert schedule_sitemap_refresh("test") is False


def test_regenerate_task_and_route(client: TestClient, journalist, make_publication):
    make_publication(journalist, slug="materia")
    result = regenerate_sitemap.apply(kwargs={"reason": "test"}).get()
    assert result["status"] == "success"
    assert result["path"] == str(settings.SITEMAP_PATH)

    response = client.get("/sitemap.xml")
    assert response.status_code == 200
    assert "/noticia/materia</loc>" in response.text


@pytest.fixture
def queued(monkeypatch: pytest.MonkeyPatch) -> list[dict]:
    calls: list[dict] = []
    monkeypatch.setattr(sitemap, "ENABLE_AUTO_SITEMAP", True)
    monkeypatch.setattr(regenerate_sitemap, "apply_async", lambda **kwargs: calls.append(kwargs))
    return calls


def test_refresh_burst_is_coalesced(monkeypatch: pytest.MonkeyPatch, queued):
    held: set[str] = set()

    def set_nx(key, ttl_ms):
        if key in held:
            return False
        held.add(key)
        return True

    monkeypatch.setattr(sitemap, "acquire_window", set_nx)

    assert schedule_sitemap_refresh("publish") is True
    assert schedule_sitemap_refresh("edit") is False
    assert schedule_sitemap_refresh("delete") is False
    assert queued == [{"kwargs": {"reason": "publish"}, "countdown": sitemap.SITEMAP_DEBOUNCE_MS / 1000}]


def test_refresh_without_redis_runs_immediately(monkeypatch: pytest.MonkeyPatch, queued):
    monkeypatch.setattr(sitemap, "acquire_window", lambda key, ttl_ms: None)

    assert schedule_sitemap_refresh("publish") is True
    assert schedule_sitemap_refresh("edit") is True
    assert [call["countdown"] for call in queued] == [0, 0]
