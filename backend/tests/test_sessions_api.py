"""HTTP surface tests (FastAPI TestClient against an in-memory engine)."""
from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from backend.app.api.sessions import Engine
from backend.app.content.repository import MasterCatalog
from backend.app.db.local_cache import MemoryLocalCache
from backend.app.store.client import InMemoryEventStore
from backend.main import app
from backend.tests.helpers import make_event


@pytest.fixture
def engine():
    catalog = MasterCatalog(
        [
            make_event(id="ITEM-01", isConsumable=True, stats=[{"label": "HP", "value": "+20"}], price=15),
            make_event(
                id="DILEMA-01",
                type="DILEMMA",
                dilemmaOptions=[{"label": "Kick", "consequenceText": "Loud!", "effectType": "gold", "effectValue": 5}],
            ),
            make_event(id="MERCH-01", type="MERCHANT", merchantItems=[{"id": "ITEM-01", "stock": 1}]),
        ],
        origin="test",
    )
    engine = Engine(catalog=catalog, store=InMemoryEventStore(), cache=MemoryLocalCache())
    app.state.engine = engine
    yield engine
    app.state.engine = None


@pytest.fixture
def client(engine) -> TestClient:
    return TestClient(app)


def _login(client, user_id="p1", **extra) -> str:
    res = client.post("/v1/sessions", json={"user_id": user_id, **extra})
    assert res.status_code == 201
    return res.json()["session_id"]


def test_health(client) -> None:
    res = client.get("/health")
    assert res.status_code == 200
    body = res.json()
    assert body["status"] == "healthy"
    assert body["catalog"] == {"origin": "test", "size": 3}


def test_login_state_and_logout(client, engine) -> None:
    sid = _login(client, player_class="Zloděj")
    state = client.get(f"/v1/sessions/{sid}/state").json()
    assert state["userId"] == "p1"
    assert state["playerClass"] == "ROGUE"
    assert state["state"] == {"hp": 100, "mana": 100, "gold": 100, "armor": 0, "luck": 0, "oxygen": 100}

    assert client.delete(f"/v1/sessions/{sid}").status_code == 200
    assert sid not in engine.sessions
    missing = client.get(f"/v1/sessions/{sid}/state")
    assert missing.status_code == 404
    assert missing.json()["error_code"] == "SESSION_HTTP_404"


def test_scan_use_flow(client) -> None:
    sid = _login(client)
    scan = client.post(f"/v1/sessions/{sid}/scan", json={"code": "item-01"}).json()
    assert scan["status"] == "resolved"
    assert scan["source"] == "catalog"
    assert scan["fromScanner"] is True

    used = client.post(f"/v1/sessions/{sid}/use").json()
    assert used["state"]["hp"] == 100
    assert used["effects"][0]["feedback"] == "heal"

    again = client.post(f"/v1/sessions/{sid}/use")
    assert again.status_code == 409
    assert again.json()["error_code"] == "INVALID_MUTATION"

    closed = client.post(f"/v1/sessions/{sid}/close").json()
    assert closed == {"offerTurnAdvance": True}


def test_scan_unknown_code_as_guest_is_404(client) -> None:
    sid = _login(client, user_id="guest")
    res = client.post(f"/v1/sessions/{sid}/scan", json={"code": "QR-NONE"})
    assert res.status_code == 404
    assert res.json()["error_code"] == "NOT_FOUND"
    repeat = client.post(f"/v1/sessions/{sid}/scan", json={"code": "QR-NONE"}).json()
    assert repeat == {"status": "ignored", "code": "QR-NONE", "reason": "repeat_failed_code"}


def test_dilemma_choice(client) -> None:
    sid = _login(client)
    client.post(f"/v1/sessions/{sid}/scan", json={"code": "DILEMA-01"})
    res = client.post(f"/v1/sessions/{sid}/dilemma", json={"option_index": 0}).json()
    assert res["consequenceText"] == "Loud!"
    assert res["state"]["gold"] == 105


def test_locked_event_mutations_answer_409(client) -> None:
    sid = _login(client, user_id="admin")
    saved = client.post(f"/v1/sessions/{sid}/events", json={"id": "RELIC", "type": "ITEM", "title": "Relic"})
    assert saved.status_code == 200
    assert saved.json()["created"] is True

    locked = client.post(f"/v1/sessions/{sid}/events/RELIC/lock").json()
    assert locked["event"]["isLocked"] is True

    for res in (
        client.delete(f"/v1/sessions/{sid}/events/RELIC"),
        client.post(f"/v1/sessions/{sid}/events/RELIC/edit"),
    ):
        assert res.status_code == 409
        body = res.json()
        assert body["error_code"] == "INVALID_MUTATION"
        assert body["details"]["reason"] == "locked"


def test_delete_store_failure_is_reported_and_reverted(client, engine) -> None:
    sid = _login(client)
    client.post(f"/v1/sessions/{sid}/events", json={"id": "D1", "type": "ITEM"})
    engine.store.online = False
    res = client.delete(f"/v1/sessions/{sid}/events/D1")
    assert res.status_code == 502
    assert res.json()["details"]["reverted"] is True
    inventory = client.get(f"/v1/sessions/{sid}/state").json()["inventory"]
    assert [e["id"] for e in inventory] == ["D1"]


def test_invalid_event_payload_is_422(client) -> None:
    sid = _login(client)
    res = client.post(f"/v1/sessions/{sid}/events", json={"type": "ITEM"})
    assert res.status_code == 422


def test_merchant_buy(client) -> None:
    sid = _login(client)
    client.post(f"/v1/sessions/{sid}/scan", json={"code": "MERCH-01"})
    bought = client.post(f"/v1/sessions/{sid}/merchant/buy", json={"item_id": "ITEM-01"})
    assert bought.status_code == 200
    assert bought.json()["state"]["gold"] == 85
    sold_out = client.post(f"/v1/sessions/{sid}/merchant/buy", json={"item_id": "ITEM-01"})
    assert sold_out.status_code == 409
    assert sold_out.json()["message"] == "out_of_stock"
