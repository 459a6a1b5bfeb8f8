"""Test publication CRUD and the status lifecycle."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from lastupdate import models, settings
from lastupdate.services.errors import ForbiddenError, TransitionError
from lastupdate.services.publications import check_transition
from lastupdate.services.push_notifications import PushNotificationService


def _story(**overrides) -> dict:
    payload = {
        "title": "Eleição em São Paulo: o que muda?",
        "date": "2025-10-01",
        "category": "politica/eleicoes",
        "description": "Resumo da matéria",
        "content": "<p>Texto da matéria</p>",
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def pushed(monkeypatch: pytest.MonkeyPatch) -> list[int]:
    """Publication ids handed to the push fan-out."""
    calls: list[int] = []
    monkeypatch.setattr(PushNotificationService, "dispatch_publication", staticmethod(calls.append))
    return calls


def test_check_transition_rules(admin, journalist):
    check_transition(journalist, None, models.STATUS_DRAFT)
    check_transition(journalist, models.STATUS_DRAFT, models.STATUS_REVIEW)
    check_transition(admin, models.STATUS_REVIEW, models.STATUS_PUBLISHED)
    check_transition(admin, models.STATUS_EXCLUDED, models.STATUS_PUBLISHED)

    with pytest.raises(ForbiddenError):
        check_transition(journalist, models.STATUS_REVIEW, models.STATUS_PUBLISHED)
    with pytest.raises(TransitionError):
        check_transition(admin, models.STATUS_PUBLISHED, models.STATUS_DRAFT)
    with pytest.raises(TransitionError):
        check_transition(admin, None, models.STATUS_EXCLUDED)


def test_create_requires_auth(client: TestClient):
    assert client.post("/api/publications", json=_story()).status_code == 401


def test_create_missing_fields(client: TestClient, journalist, headers_for):
    response = client.post(
        "/api/publications",
        json={"title": "  ", "description": "sem data"},
        headers=headers_for(journalist),
    )
    assert response.status_code == 400
    detail = response.json()["detail"]
    assert detail["error"] == "MISSING_FIELDS"
    assert detail["fields"] == ["category", "date", "title"]


def test_create_defaults_to_draft_without_slug(client: TestClient, journalist, headers_for):
    response = client.post("/api/publications", json=_story(), headers=headers_for(journalist))
    assert response.status_code == 201
    body = response.json()
    assert body["status"] == "draft"
    assert body["slug"] is None
    assert body["author_id"] == journalist.id
    assert body["views"] == 0


def test_journalist_cannot_publish(client: TestClient, journalist, headers_for):
    response = client.post("/api/publications", json=_story(status="published"), headers=headers_for(journalist))
    assert response.status_code == 403


def test_submit_for_review_notifies_admins(client: TestClient, admin, journalist, headers_for):
    created = client.post("/api/publications", json=_story(), headers=headers_for(journalist)).json()

    response = client.put(
        f"/api/publications/{created['id']}",
        json={"status": "review"},
        headers=headers_for(journalist),
    )
    assert response.status_code == 200
    assert response.json()["status"] == "review"
    assert response.json()["slug"] == "eleicao-em-sao-paulo-o-que-muda"

    notifications = client.get("/api/notifications", headers=headers_for(admin)).json()
    assert len(notifications) == 1
    assert notifications[0]["to_role"] == "admin"
    assert notifications[0]["title"] == "Publicação aguardando revisão"
    assert journalist.name in notifications[0]["message"]
    assert notifications[0]["meta"]["publication_id"] == created["id"]


def test_admin_publish_updates_count_and_pushes(client: TestClient, db, admin, journalist, headers_for, pushed):
    created = client.post("/api/publications", json=_story(status="review"), headers=headers_for(journalist)).json()

    response = client.put(
        f"/api/publications/{created['id']}",
        json={"status": "published"},
        headers=headers_for(admin),
    )
    assert response.status_code == 200
    assert response.json()["status"] == "published"
    assert pushed == [created["id"]]

    db.refresh(journalist)
    assert journalist.publication_count == 1


def test_published_cannot_return_to_draft(client: TestClient, admin, headers_for):
    created = client.post("/api/publications", json=_story(status="published"), headers=headers_for(admin)).json()

    response = client.put(f"/api/publications/{created['id']}", json={"status": "draft"}, headers=headers_for(admin))
    assert response.status_code == 409
    assert response.json()["detail"]["error"] == "INVALID_TRANSITION"


def test_duplicate_titles_get_distinct_slugs(client: TestClient, admin, headers_for):
    headers = headers_for(admin)
    first = client.post("/api/publications", json=_story(status="published"), headers=headers).json()
    second = client.post("/api/publications", json=_story(status="published"), headers=headers).json()
    assert first["slug"] == "eleicao-em-sao-paulo-o-que-muda"
    assert second["slug"] == "eleicao-em-sao-paulo-o-que-muda-2"


def test_slug_is_kept_when_title_changes(client: TestClient, admin, headers_for):
    headers = headers_for(admin)
    created = client.post("/api/publications", json=_story(status="published"), headers=headers).json()
    updated = client.put(f"/api/publications/{created['id']}", json={"title": "Outro título"}, headers=headers).json()
    assert updated["title"] == "Outro título"
    assert updated["slug"] == created["slug"]


def test_update_rejects_empty_required_field(client: TestClient, journalist, headers_for):
    created = client.post("/api/publications", json=_story(), headers=headers_for(journalist)).json()
    response = client.put(f"/api/publications/{created['id']}", json={"category": ""}, headers=headers_for(journalist))
    assert response.status_code == 400
    assert response.json()["detail"]["fields"] == ["category"]


def test_only_author_or_admin_can_edit(client: TestClient, make_member, journalist, headers_for):
    created = client.post("/api/publications", json=_story(), headers=headers_for(journalist)).json()
    colleague = make_member(name="Colega")

    response = client.put(
        f"/api/publications/{created['id']}", json={"title": "Invadido"}, headers=headers_for(colleague)
    )
    assert response.status_code == 403
    assert client.get(f"/api/publications/{created['id']}", headers=headers_for(colleague)).status_code == 403


def test_admin_assigns_author(client: TestClient, db, admin, journalist, headers_for):
    response = client.post(
        "/api/publications",
        json=_story(status="published", author_id=journalist.id),
        headers=headers_for(admin),
    )
    assert response.status_code == 201
    assert response.json()["author_id"] == journalist.id
    assert response.json()["author"]["name"] == journalist.name

    db.refresh(journalist)
    assert journalist.publication_count == 1


def test_journalist_cannot_assign_author(client: TestClient, admin, journalist, headers_for):
    response = client.post(
        "/api/publications",
        json=_story(author_id=admin.id),
        headers=headers_for(journalist),
    )
    assert response.status_code == 403


def test_listing_scope(client: TestClient, admin, journalist, make_publication, headers_for):
    own = make_publication(journalist, title="Do jornalista", status=models.STATUS_DRAFT)
    other = make_publication(admin, title="Do admin")

    journalist_ids = [p["id"] for p in client.get("/api/publications", headers=headers_for(journalist)).json()]
    assert journalist_ids == [own.id]

    admin_ids = {p["id"] for p in client.get("/api/publications", headers=headers_for(admin)).json()}
    assert admin_ids == {own.id, other.id}

    mine = [p["id"] for p in client.get("/api/publications?mine=true", headers=headers_for(admin)).json()]
    assert mine == [other.id]

    drafts = [p["id"] for p in client.get("/api/publications?status=draft", headers=headers_for(admin)).json()]
    assert drafts == [own.id]


def test_exclude_and_restore(client: TestClient, db, admin, headers_for, pushed):
    headers = headers_for(admin)
    created = client.post("/api/publications", json=_story(status="published"), headers=headers).json()
    assert pushed == [created["id"]]

    response = client.request(
        "DELETE", f"/api/publications/{created['id']}", json={"reason": "Informação incorreta"}, headers=headers
    )
    assert response.status_code == 200
    assert response.json()["status"] == "excluded"
    assert response.json()["deletion_reason"] == "Informação incorreta"
    db.refresh(admin)
    assert admin.publication_count == 0

    restored = client.put(f"/api/publications/{created['id']}", json={"status": "published"}, headers=headers)
    assert restored.status_code == 200
    assert restored.json()["deletion_reason"] is None
    # Coming back from excluded is not news
    assert pushed == [created["id"]]


def test_permanent_delete_requires_admin(client: TestClient, journalist, headers_for):
    created = client.post("/api/publications", json=_story(), headers=headers_for(journalist)).json()
    response = client.delete(f"/api/publications/{created['id']}?permanent=true", headers=headers_for(journalist))
    assert response.status_code == 403


def test_permanent_delete_removes_media(client: TestClient, admin, journalist, headers_for):
    settings.UPLOAD_DIR.mkdir(parents=True, exist_ok=True)
    cover = settings.UPLOAD_DIR / "capa-1.jpg"
    inline = settings.UPLOAD_DIR / "grafico-2.png"
    cover.write_bytes(b"cover")
    inline.write_bytes(b"inline")

    created = client.post(
        "/api/publications",
        json=_story(image="/uploads/capa-1.jpg", content='<p><img src="/uploads/grafico-2.png"></p>'),
        headers=headers_for(journalist),
    ).json()

    response = client.delete(f"/api/publications/{created['id']}?permanent=true", headers=headers_for(admin))
    assert response.status_code == 204
    assert not cover.exists()
    assert not inline.exists()
    assert client.get(f"/api/publications/{created['id']}", headers=headers_for(admin)).status_code == 404
