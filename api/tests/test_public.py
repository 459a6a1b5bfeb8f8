"""Test the public site API."""

from __future__ import annotations

from datetime import date

from fastapi.testclient import TestClient

from lastupdate import models
from lastupdate.settings import VIEWED_COOKIE_NAME


def test_news_lists_only_published(client: TestClient, journalist, make_publication):
    make_publication(journalist, title="Publicada")
    make_publication(journalist, title="Rascunho", status=models.STATUS_DRAFT)
    make_publication(journalist, title="Excluída", status=models.STATUS_EXCLUDED)

    titles = [p["title"] for p in client.get("/api/public/news").json()]
    assert titles == ["Publicada"]


def test_news_category_includes_subcategories(client: TestClient, journalist, make_publication):
    make_publication(journalist, title="Futebol", category="esportes/futebol")
    make_publication(journalist, title="Geral", category="esportes")
    make_publication(journalist, title="Outra", category="esportesradicais")

    titles = {p["title"] for p in client.get("/api/public/news?cat=esportes").json()}
    assert titles == {"Futebol", "Geral"}


def test_news_limit_and_order(client: TestClient, journalist, make_publication):
    for day in (1, 3, 2):
        make_publication(journalist, title=f"Dia {day}", date=date(2025, 10, day))

    titles = [p["title"] for p in client.get("/api/public/news?limit=2").json()]
    assert titles == ["Dia 3", "Dia 2"]


def test_view_counting_with_cookie(client: TestClient, db, journalist, make_publication):
    story = make_publication(journalist, slug="materia-teste")
    updated_at = story.updated_at

    first = client.get(f"/api/public/news/{story.id}")
    assert first.status_code == 200
    assert first.json()["views"] == 1
    assert first.json()["unique_views"] == 1
    assert client.cookies.get(VIEWED_COOKIE_NAME) == str(story.id)

    second = client.get("/api/public/news/by-slug/materia-teste")
    assert second.json()["views"] == 2
    assert second.json()["unique_views"] == 1

    client.cookies.clear()
    third = client.get("/api/public/news?slug=materia-teste")
    assert third.json()["views"] == 3
    assert third.json()["unique_views"] == 2

    db.refresh(story)
    assert story.updated_at == updated_at


def test_unpublished_story_is_not_found(client: TestClient, journalist, make_publication):
    draft = make_publication(journalist, status=models.STATUS_DRAFT, slug="rascunho")
    assert client.get(f"/api/public/news/{draft.id}").status_code == 404
    assert client.get("/api/public/news/by-slug/rascunho").status_code == 404


def test_latest_publication(client: TestClient, journalist, make_publication):
    assert client.get("/api/public/latest-publication").json() is None

    make_publication(journalist, title="Ontem", date=date(2025, 10, 1))
    latest = make_publication(journalist, title="Hoje", date=date(2025, 10, 2), slug="hoje")

    body = client.get("/api/public/latest-publication").json()
    assert body["id"] == latest.id
    assert body["slug"] == "hoje"


def test_team_and_journalists(client: TestClient, make_member, make_publication):
    writer = make_member(name="Beatriz", publication_count=2)
    inactive = make_member(name="Carlos", is_active=False, team_member=False)
    make_member(name="Sem matérias")
    make_publication(writer)
    make_publication(inactive)

    team = {m["name"] for m in client.get("/api/public/team").json()}
    assert team == {"Beatriz", "Sem matérias"}

    journalists = [m["name"] for m in client.get("/api/public/journalists").json()]
    assert journalists == ["Beatriz", "Carlos"]

    active_only = [m["name"] for m in client.get("/api/public/journalists?include_inactive=false").json()]
    assert active_only == ["Beatriz"]


def test_journalist_profile(client: TestClient, journalist, make_publication):
    make_publication(journalist, title="Publicada")
    make_publication(journalist, title="Rascunho", status=models.STATUS_DRAFT)
    make_publication(journalist, title="Excluída", status=models.STATUS_EXCLUDED)

    response = client.get(f"/api/public/journalist?id={journalist.id}&name=joão repórter")
    assert response.status_code == 200
    body = response.json()
    assert body["member"]["name"] == "João Repórter"
    assert "cpf" not in body["member"]
    assert [p["title"] for p in body["publications"]] == ["Publicada"]
    assert body["stats"]["exclusions"] == 1
    assert body["name_matches_request"] is True
    assert body["profile_url"].startswith("/jornalista?name=")


def test_journalist_profile_invalid_id(client: TestClient):
    assert client.get("/api/public/journalist?id=0").status_code == 400
    assert client.get("/api/public/journalists/99999").status_code == 404


def test_pages_are_served(client: TestClient):
    assert client.get("/").status_code == 200
    assert "noticia" in client.get("/noticia/qualquer-slug").text
    assert client.get("/politicas").status_code == 404  # page file not present in the test frontend
