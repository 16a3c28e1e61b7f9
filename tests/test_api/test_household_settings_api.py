"""
Tests for household, category, settings and data API endpoints
"""
import json

import pytest
from datetime import date

from subtracker.config import get_settings

TODAY = date(2025, 6, 10)  # pinned by the client fixture


@pytest.fixture
def fast_kdf(monkeypatch):
    monkeypatch.setattr(get_settings(), "PIN_KDF_ITERATIONS", 1_000)


def _sub(client, **overrides):
    payload = {"name": "Netflix", "amount": 15.0, "next_renewal_date": "2025-06-15"}
    payload.update(overrides)
    return client.post("/api/v1/subscriptions/", json=payload).json()


# ---- household ----

def test_member_crud_and_spend(client):
    alex = client.post("/api/v1/household/", json={"name": "Alex", "role": "admin"})
    assert alex.status_code == 201
    alex_id = alex.json()["id"]

    _sub(client, payer_id=alex_id)
    _sub(client, name="Gym", amount=30.0)

    spend = client.get("/api/v1/household/spend").json()
    assert [(r["name"], r["monthly_cost"]) for r in spend] == [("Alex", 15.0), ("Unassigned", 30.0)]

    subs = client.get(f"/api/v1/household/{alex_id}/subscriptions").json()
    assert [s["name"] for s in subs] == ["Netflix"]

    updated = client.patch(f"/api/v1/household/{alex_id}", json={"name": "Alexandra", "role": None})
    assert updated.json()["name"] == "Alexandra"
    assert updated.json()["role"] == "admin"

    assert client.delete(f"/api/v1/household/{alex_id}").status_code == 200
    assert client.get(f"/api/v1/household/{alex_id}/subscriptions").status_code == 404


def test_member_validation(client):
    assert client.post("/api/v1/household/", json={"name": "Kid", "role": "owner"}).status_code == 400


# ---- categories ----

def test_category_crud(client):
    created = client.post("/api/v1/categories/", json={"name": "Streaming", "icon": "tv"})
    assert created.status_code == 201
    cat_id = created.json()["id"]

    assert client.post("/api/v1/categories/", json={"name": "streaming"}).status_code == 400

    updated = client.patch(f"/api/v1/categories/{cat_id}", json={"color": "#000000"})
    assert updated.json()["color"] == "#000000"
    assert updated.json()["name"] == "Streaming"

    assert [c["name"] for c in client.get("/api/v1/categories/").json()] == ["Streaming"]
    assert client.delete(f"/api/v1/categories/{cat_id}").status_code == 200
    assert client.patch(f"/api/v1/categories/{cat_id}", json={"name": "X"}).status_code == 404


# ---- settings & PIN ----

def test_settings_update(client):
    data = client.get("/api/v1/settings/").json()
    assert data["has_pin"] is False
    assert "pin_verify_hash" not in data

    data = client.patch("/api/v1/settings/", json={"default_currency": "GBP", "default_alert_days": [1, 14]}).json()
    assert data["default_currency"] == "GBP"
    assert data["default_alert_days"] == [14, 1]

    assert client.patch("/api/v1/settings/", json={"theme": "neon"}).status_code == 400


def test_pin_and_sensitive_notes(client, fast_kdf):
    sub = _sub(client)
    assert client.post("/api/v1/settings/pin", json={"pin": "12"}).status_code == 400
    assert client.post("/api/v1/settings/pin", json={"pin": "1357"}).json() == {"status": "pin_set"}
    assert client.get("/api/v1/settings/").json()["has_pin"] is True

    url = f"/api/v1/subscriptions/{sub['id']}/sensitive-notes"
    assert client.put(url, json={"pin": "1357", "text": "password hint"}).status_code == 200
    assert client.put(url, json={"pin": "0000", "text": "x"}).status_code == 403
    assert client.post(f"{url}/reveal", json={"pin": "1357"}).json() == {"text": "password hint"}
    assert client.post(f"{url}/reveal", json={"pin": "0000"}).status_code == 403
    assert client.get(f"/api/v1/subscriptions/{sub['id']}").json()["subscription"]["has_sensitive_notes"] is True

    removed = client.post("/api/v1/settings/pin/remove", json={"pin": "1357"}).json()
    assert removed == {"status": "pin_removed", "notes_restored": 1}
    detail = client.get(f"/api/v1/subscriptions/{sub['id']}").json()["subscription"]
    assert detail["notes"] == "password hint"
    assert detail["has_sensitive_notes"] is False


def test_reset_reseeds_defaults(client):
    _sub(client)
    client.post("/api/v1/categories/", json={"name": "Mine"})
    assert client.post("/api/v1/settings/reset").json() == {"status": "reset"}
    assert client.get("/api/v1/subscriptions/").json() == []
    names = [c["name"] for c in client.get("/api/v1/categories/").json()]
    assert "Mine" not in names
    assert len(names) == 12


# ---- data ----

def test_json_backup_round_trip(client):
    _sub(client)
    response = client.get("/api/v1/data/export/json")
    assert response.status_code == 200
    assert "subtracker-backup-2025-06-10.json" in response.headers["content-disposition"]
    backup = response.text
    assert json.loads(backup)["settings"]["lastBackupDate"] == "2025-06-10"
    assert client.get("/api/v1/settings/").json()["last_backup_date"] == "2025-06-10"

    data = json.loads(backup)
    data["subscriptions"][0]["id"] = "restored"
    result = client.post("/api/v1/data/import/json", json={"content": json.dumps(data)}).json()
    assert result["success"] is True
    assert result["subscriptions_imported"] == 1
    assert [s["id"] for s in client.get("/api/v1/subscriptions/").json()] == ["restored"]


def test_json_import_failure(client):
    response = client.post("/api/v1/data/import/json", json={"content": "{broken"})
    assert response.status_code == 400
    assert response.json()["detail"]["errors"] == ["Invalid JSON"]


def test_csv_export_and_import(client):
    _sub(client)
    response = client.get("/api/v1/data/export/csv")
    assert response.headers["content-type"].startswith("text/csv")
    assert response.text.startswith("name,categoryId,tags")

    result = client.post("/api/v1/data/import/csv", json={"content": response.text}).json()
    assert result["subscriptions_imported"] == 1
    assert [s["name"] for s in client.get("/api/v1/subscriptions/").json()] == ["Netflix", "Netflix"]
