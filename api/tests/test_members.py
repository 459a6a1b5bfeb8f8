"""Test member administration."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from lastupdate import models
from lastupdate.services.members import normalize_cpf, parse_birth_date
from lastupdate.services.errors import InvalidDataError


def _payload(**overrides) -> dict:
    payload = {
        "name": "Maria Silva",
        "email": "Maria@Example.com",
        "cpf": "529.982.247-25",
        "birth_date": "15/03/1985",
        "role": "jornalista",
    }
    payload.update(overrides)
    return payload


def test_normalize_cpf():
    assert normalize_cpf("529.982.247-25") == "52998224725"
    with pytest.raises(InvalidDataError):
        normalize_cpf("1234")


def test_parse_birth_date_formats():
    assert parse_birth_date("1985-03-15") == parse_birth_date("15/03/1985")
    with pytest.raises(InvalidDataError):
        parse_birth_date("March 15")


def test_create_member_requires_admin(client: TestClient, journalist, headers_for):
    response = client.post("/api/members", json=_payload(), headers=headers_for(journalist))
    assert response.status_code == 403

    assert client.post("/api/members", json=_payload()).status_code == 401


def test_create_member_and_login_with_birth_date(client: TestClient, admin, headers_for):
    response = client.post("/api/members", json=_payload(), headers=headers_for(admin))
    assert response.status_code == 201
    body = response.json()
    assert body["cpf"] == "52998224725"
    assert body["email"] == "maria@example.com"
    assert body["role"] == "journalist"
    assert body["password_changed"] is False
    assert body["team_member"] is True
    assert body["birth_date"] == "1985-03-15"

    login = client.post("/api/auth/login", json={"cpf": "52998224725", "password": "15031985"})
    assert login.status_code == 200


def test_create_member_duplicate_cpf(client: TestClient, admin, headers_for):
    headers = headers_for(admin)
    assert client.post("/api/members", json=_payload(), headers=headers).status_code == 201

    response = client.post("/api/members", json=_payload(email="other@example.com"), headers=headers)
    assert response.status_code == 409
    assert response.json()["detail"]["error"] == "CONFLICT"


def test_create_member_with_deleted_cpf_offers_restore(client: TestClient, admin, headers_for):
    headers = headers_for(admin)
    member_id = client.post("/api/members", json=_payload(), headers=headers).json()["id"]
    assert client.delete(f"/api/members/{member_id}", headers=headers).status_code == 204

    response = client.post("/api/members", json=_payload(email="new@example.com"), headers=headers)
    assert response.status_code == 409
    detail = response.json()["detail"]
    assert detail["deleted"] is True
    assert detail["member_id"] == member_id
    assert detail["name"] == "Maria Silva"

    restored = client.post(f"/api/members/{member_id}/restore", headers=headers)
    assert restored.status_code == 200
    assert restored.json()["is_active"] is True
    assert restored.json()["deleted_at"] is None


def test_create_member_invalid_role(client: TestClient, admin, headers_for):
    response = client.post("/api/members", json=_payload(role="editor"), headers=headers_for(admin))
    assert response.status_code == 400


def test_soft_delete_hides_member(client: TestClient, db, admin, journalist, headers_for):
    headers = headers_for(admin)
    assert client.delete(f"/api/members/{journalist.id}", headers=headers).status_code == 204

    listed = [m["id"] for m in client.get("/api/members", headers=headers).json()]
    assert journalist.id not in listed

    db.refresh(journalist)
    assert journalist.is_active is False
    assert journalist.team_member is False
    assert journalist.deleted_at is not None

    # The deleted member's session no longer works
    assert client.get("/api/auth/me", headers=headers_for(journalist)).status_code == 401


def test_admin_cannot_delete_self(client: TestClient, admin, headers_for):
    response = client.delete(f"/api/members/{admin.id}", headers=headers_for(admin))
    assert response.status_code == 400


def test_update_birth_date_resets_password(client: TestClient, db, admin, journalist, headers_for):
    journalist.password_changed = True
    db.commit()

    response = client.put(
        f"/api/members/{journalist.id}",
        json={"birth_date": "1970-12-31"},
        headers=headers_for(admin),
    )
    assert response.status_code == 200
    assert response.json()["password_changed"] is False

    login = client.post("/api/auth/login", json={"cpf": journalist.cpf, "password": "31121970"})
    assert login.status_code == 200


def test_update_explicit_password(client: TestClient, admin, journalist, headers_for):
    response = client.put(
        f"/api/members/{journalist.id}",
        json={"password": "segredo123"},
        headers=headers_for(admin),
    )
    assert response.status_code == 200
    assert response.json()["password_changed"] is True

    login = client.post("/api/auth/login", json={"cpf": journalist.cpf, "password": "segredo123"})
    assert login.status_code == 200


def test_update_email_conflict(client: TestClient, admin, journalist, headers_for):
    response = client.put(
        f"/api/members/{journalist.id}",
        json={"email": admin.email.upper()},
        headers=headers_for(admin),
    )
    assert response.status_code == 409


def test_about_is_limited_to_200_characters(client: TestClient, admin, journalist, headers_for):
    headers = headers_for(admin)
    response = client.patch(f"/api/members/{journalist.id}/about", json={"value": "x" * 201}, headers=headers)
    assert response.status_code == 400

    response = client.patch(f"/api/members/{journalist.id}/about", json={"value": "  Repórter de política  "}, headers=headers)
    assert response.status_code == 200
    assert response.json()["about"] == "Repórter de política"


def test_what_they_do(client: TestClient, admin, journalist, headers_for):
    response = client.patch(
        f"/api/members/{journalist.id}/what-they-do",
        json={"value": "Cobre o Congresso."},
        headers=headers_for(admin),
    )
    assert response.status_code == 200
    assert response.json()["what_they_do"] == "Cobre o Congresso."


def test_team_membership(client: TestClient, admin, make_member, headers_for):
    headers = headers_for(admin)
    outsider = make_member(name="Colaborador", team_member=False)

    team = [m["id"] for m in client.get("/api/members/team", headers=headers).json()]
    assert outsider.id not in team

    assert client.post(f"/api/members/{outsider.id}/team", headers=headers).json()["team_member"] is True
    team = [m["id"] for m in client.get("/api/members/team", headers=headers).json()]
    assert outsider.id in team

    assert client.delete(f"/api/members/{outsider.id}/team", headers=headers).json()["team_member"] is False


def test_member_details(client: TestClient, admin, journalist, make_publication, headers_for):
    make_publication(journalist, title="Publicada")
    make_publication(journalist, title="Excluída", status=models.STATUS_EXCLUDED)

    response = client.get(f"/api/members/{journalist.id}/details", headers=headers_for(admin))
    assert response.status_code == 200
    body = response.json()
    assert body["member"]["id"] == journalist.id
    assert body["stats"]["exclusions"] == 1
    assert [p["title"] for p in body["latest_publications"]] == ["Publicada"]


def test_unknown_member(client: TestClient, admin, headers_for):
    response = client.get("/api/members/99999/details", headers=headers_for(admin))
    assert response.status_code == 404
    assert response.json()["detail"]["error"] == "NOT_FOUND"
