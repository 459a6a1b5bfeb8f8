"""Test in-app notifications."""

from __future__ import annotations

from fastapi.testclient import TestClient

from lastupdate.services.notifications import NotificationService


def test_admin_notifies_member(client: TestClient, admin, journalist, headers_for):
    response = client.post(
        "/api/notifications",
        json={"title": "Pauta", "message": "Cobrir a coletiva às 15h", "to_user_id": journalist.id},
        headers=headers_for(admin),
    )
    assert response.status_code == 201

    inbox = client.get("/api/notifications", headers=headers_for(journalist)).json()
    assert [n["title"] for n in inbox] == ["Pauta"]
    assert client.get("/api/notifications", headers=headers_for(admin)).json() == []


def test_journalist_can_only_notify_admins(client: TestClient, admin, journalist, make_member, headers_for):
    colleague = make_member(name="Colega")
    headers = headers_for(journalist)

    response = client.post(
        "/api/notifications",
        json={"title": "Oi", "message": "Mensagem", "to_user_id": colleague.id},
        headers=headers,
    )
    assert response.status_code == 403

    response = client.post(
        "/api/notifications",
        json={"title": "Dúvida", "message": "Posso publicar amanhã?", "to_role": "admin"},
        headers=headers,
    )
    assert response.status_code == 201


def test_notification_validation(client: TestClient, admin, headers_for):
    headers = headers_for(admin)
    missing = client.post("/api/notifications", json={"title": "Sem corpo", "to_role": "admin"}, headers=headers)
    assert missing.status_code == 400
    assert missing.json()["detail"]["error"] == "MISSING_FIELDS"

    no_recipient = client.post("/api/notifications", json={"title": "a", "message": "b"}, headers=headers)
    assert no_recipient.status_code == 400

    unknown = client.post(
        "/api/notifications", json={"title": "a", "message": "b", "to_user_id": 99999}, headers=headers
    )
    assert unknown.status_code == 404


def test_role_notification_read_by_one_admin_is_read_for_all(client: TestClient, db, make_member, headers_for):
    first = make_member("admin", name="Admin Um")
    second = make_member("admin", name="Admin Dois")
    notification = NotificationService.create(db, "Aviso", "Mensagem para a chefia", to_role="admin")

    assert client.get("/api/notifications/unread-count", headers=headers_for(second)).json() == {"unread_count": 1}

    response = client.put(f"/api/notifications/{notification.id}/read", headers=headers_for(first))
    assert response.status_code == 204

    assert client.get("/api/notifications/unread-count", headers=headers_for(second)).json() == {"unread_count": 0}


def test_mark_all_read_and_unread_filter(client: TestClient, db, journalist, headers_for):
    for index in range(3):
        NotificationService.create(db, f"Aviso {index}", "Mensagem", to_user_id=journalist.id)
    headers = headers_for(journalist)

    assert len(client.get("/api/notifications?unread=true", headers=headers).json()) == 3
    assert client.put("/api/notifications/read-all", headers=headers).status_code == 204
    assert client.get("/api/notifications?unread=true", headers=headers).json() == []
    assert len(client.get("/api/notifications", headers=headers).json()) == 3


def test_cannot_read_someone_elses_notification(client: TestClient, db, journalist, make_member, headers_for):
    other = make_member(name="Outro")
    notification = NotificationService.create(db, "Privado", "Só para o outro", to_user_id=other.id)

    response = client.put(f"/api/notifications/{notification.id}/read", headers=headers_for(journalist))
    assert response.status_code == 404


def test_notifications_newest_first(client: TestClient, db, journalist, headers_for):
    NotificationService.create(db, "Primeira", "m", to_user_id=journalist.id)
    NotificationService.create(db, "Segunda", "m", to_user_id=journalist.id)

    inbox = client.get("/api/notifications?limit=1", headers=headers_for(journalist)).json()
    assert [n["title"] for n in inbox] == ["Segunda"]
