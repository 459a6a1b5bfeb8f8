"""Test Web Push subscriptions and fan-out."""

from __future__ import annotations

from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from pywebpush import WebPushException

from lastupdate import models, settings
from lastupdate.services import push_notifications
from lastupdate.services.push_notifications import PushNotificationService, build_publication_payload
from lastupdate.tasks import send_publication_push


def _subscription(endpoint: str = "https://push.example.com/abc") -> dict:
    return {"endpoint": endpoint, "keys": {"auth": "auth-key", "p256dh": "p256dh-key"}, "expirationTime": None}


@pytest.fixture
def vapid(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(settings, "VAPID_PUBLIC_KEY", "public-key")
    monkeypatch.setattr(settings, "VAPID_PRIVATE_KEY", "private-key")


@pytest.fixture
def sent(monkeypatch: pytest.MonkeyPatch) -> list[dict]:
    """Records every webpush call; endpoints containing "gone", "flaky" or "broken" fail."""
    calls: list[dict] = []

    def fake_webpush(subscription_info, data, **kwargs):
        endpoint = subscription_info["endpoint"]
        if "gone" in endpoint:
            raise WebPushException("Gone", response=SimpleNamespace(status_code=410))
        if "flaky" in endpoint:
            raise WebPushException("Server error", response=SimpleNamespace(status_code=500))
        if "broken" in endpoint:
            raise ValueError("Could not deserialize key data")
        calls.append({"endpoint": endpoint, "data": data})

    monkeypatch.setattr(push_notifications, "webpush", fake_webpush)
    return calls


def test_config_disabled_without_keys(client: TestClient):
    assert client.get("/api/push/config").json() == {"enabled": False, "public_key": None}


def test_config_enabled(client: TestClient, vapid):
    assert client.get("/api/push/config").json() == {"enabled": True, "public_key": "public-key"}


def test_subscribe_is_idempotent_per_endpoint(client: TestClient, db):
    first = client.post("/api/push/subscriptions", json={"subscription": _subscription()})
    assert first.status_code == 201
    second = client.post("/api/push/subscriptions", json={"subscription": _subscription(), "preference": "accepted"})
    assert second.json()["id"] == first.json()["id"]
    assert db.query(models.PushSubscription).count() == 1


def test_denied_preference_deactivates(client: TestClient, db):
    client.post("/api/push/subscriptions", json={"subscription": _subscription()})
    response = client.post("/api/push/subscriptions", json={"subscription": _subscription(), "preference": "denied"})
    assert response.status_code == 204

    subscription = db.query(models.PushSubscription).one()
    assert subscription.is_active is False
    assert subscription.preference == "denied"


def test_unsubscribe(client: TestClient):
    client.post("/api/push/subscriptions", json={"subscription": _subscription()})
    known = client.request("DELETE", "/api/push/subscriptions", json={"endpoint": "https://push.example.com/abc"})
    assert known.status_code == 204

    unknown = client.request("DELETE", "/api/push/subscriptions", json={"endpoint": "https://push.example.com/zzz"})
    assert unknown.status_code == 200
    assert unknown.json() == {"ok": False}


def test_payload_defaults(journalist, make_publication):
    story = make_publication(journalist, title="Nova ponte", category="cidades", slug="nova-ponte", image="data:image/png;base64,AAAA")
    payload = build_publication_payload(story)

    assert payload["title"] == "Nova ponte"
    assert payload["body"] == "Confira a nova matéria de cidades."
    assert payload["url"] == "/noticia/nova-ponte"
    assert payload["icon"] == settings.DEFAULT_PUSH_ICON
    assert payload["data"]["post_id"] == story.id


def test_payload_uses_description_and_image(journalist, make_publication):
    story = make_publication(journalist, description="x" * 300, image="/uploads/capa.jpg")
    payload = build_publication_payload(story)

    assert len(payload["body"]) == 160
    assert payload["icon"] == "/uploads/capa.jpg"
    assert payload["url"] == f"/noticia?id={story.id}"


def test_fanout_deactivates_gone_endpoints(db, vapid, sent):
    for endpoint in ("https://push.example.com/ok", "https://push.example.com/gone", "https://push.example.com/flaky"):
        db.add(models.PushSubscription(endpoint=endpoint, auth_key="a", p256dh_key="p"))
    db.commit()

    summary = PushNotificationService.fanout(db, {"title": "Teste"})
    assert summary == {"delivered": 1, "deactivated": 1, "failed": 1, "total": 3}
    assert [call["endpoint"] for call in sent] == ["https://push.example.com/ok"]

    by_endpoint = {s.endpoint: s for s in db.query(models.PushSubscription).all()}
    assert by_endpoint["https://push.example.com/gone"].is_active is False
    assert by_endpoint["https://push.example.com/flaky"].is_active is True
    assert "Server error" in by_endpoint["https://push.example.com/flaky"].last_error
    assert by_endpoint["https://push.example.com/ok"].last_notified_at is not None


def test_fanout_skipped_without_keys(db, sent):
    db.add(models.PushSubscription(endpoint="https://push.example.com/ok"))
    db.commit()
    assert PushNotificationService.fanout(db, {"title": "Teste"})["total"] == 0
    assert sent == []


def test_push_task_only_for_published(journalist, make_publication, vapid, sent):
    draft = make_publication(journalist, status=models.STATUS_DRAFT)
    assert send_publication_push.apply(args=[draft.id]).get()["status"] == "skipped"

    story = make_publication(journalist)
    result = send_publication_push.apply(args=[story.id]).get()
    assert result["status"] == "success"
    assert result["total"] == 0


def test_publishing_through_api_pushes(client: TestClient, db, admin, headers_for, vapid, sent):
    db.add(models.PushSubscription(endpoint="https://push.example.com/ok", auth_key="a", p256dh_key="p"))
    db.commit()

    response = client.post(
        "/api/publications",
        json={"title": "Urgente", "date": "2025-10-01", "category": "brasil", "status": "published"},
        headers=headers_for(admin),
    )
    assert response.status_code == 201
    assert len(sent) == 1
    assert '"title": "Urgente"' in sent[0]["data"]


def test_fanout_continues_past_unexpected_errors(client: TestClient, db, vapid, sent):
    keyless = {"endpoint": "https://push.example.com/no-keys", "keys": {}}
    assert client.post("/api/push/subscriptions", json={"subscription": keyless}).status_code == 201
    for endpoint in ("https://push.example.com/broken", "https://push.example.com/ok"):
        db.add(models.PushSubscription(endpoint=endpoint, auth_key="a", p256dh_key="p"))
    db.commit()

    summary = PushNotificationService.fanout(db, {"title": "Teste"})
    assert summary == {"delivered": 1, "deactivated": 0, "failed": 2, "total": 3}
    assert [call["endpoint"] for call in sent] == ["https://push.example.com/ok"]

    by_endpoint = {s.endpoint: s for s in db.query(models.PushSubscription).all()}
    assert "deserialize" in by_endpoint["https://push.example.com/broken"].last_error
    assert by_endpoint["https://push.example.com/no-keys"].last_error == "Subscription has no encryption keys"
    assert by_endpoint["https://push.example.com/no-keys"].is_active is True
