"""HTTP surface tests."""

from __future__ import annotations

import hashlib
import json

from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from lnurl_server.models import Invoice, InvoiceState, User, Zap
from lnurl_server.services.metadata import calc_metadata
from lnurl_server.services.payment_request import decoded_amount_msat

from .conftest import ADMIN_KEY, DOMAIN, SERVER_PUBKEY, make_zap_request, new_pubkey


def register(client: TestClient, name: str, pubkey: str | None = None):
    return client.post("/v1/register", json={"name": name, "pubkey": pubkey or new_pubkey()})


def test_health_check(client):
    response = client.get("/health-check")
    assert response.status_code == 200
    assert response.json() == {"status": "pass", "version": "0.1.0"}


def test_unknown_route_is_plain_text_404(client):
    response = client.get("/nope")
    assert response.status_code == 404
    assert response.headers["content-type"].startswith("text/plain")
    assert response.text == "No route for http://testserver/nope"


def test_pay_parameters(client):
    response = client.get("/.well-known/lnurlp/alice")
    assert response.status_code == 200
    assert response.json() == {
        "tag": "payRequest",
        "callback": f"https://{DOMAIN}/get-invoice/alice",
        "minSendable": 1000,
        "maxSendable": 11000000000,
        "metadata": calc_metadata("alice", DOMAIN),
        "commentAllowed": 100,
        "allowsNostr": True,
        "nostrPubkey": SERVER_PUBKEY,
    }


def test_pay_parameters_empty_name(client):
    response = client.get("/.well-known/lnurlp/%20")
    assert response.status_code == 400
    assert response.json() == {"status": "ERROR", "reason": "Name parameter is required"}


def test_register_and_name_taken(client, db):
    pubkey = new_pubkey()
    first = register(client, "alice", pubkey)
    assert first.status_code == 200
    assert first.json() == {"name": "alice"}

    second = register(client, "alice")
    assert second.status_code == 400
    assert second.json() == {"status": "ERROR", "reason": "NameTaken"}

    stored = db.query(User).all()
    assert len(stored) == 1
    assert stored[0].pubkey == pubkey
    assert stored[0].disabled_zaps is False


def test_register_rejects_invalid_pubkey(client, db):
    response = register(client, "alice", "02" + "00" * 32)
    assert response.status_code == 400
    assert response.json()["reason"] == "Invalid pubkey"
    assert db.query(User).count() == 0


def test_register_rejects_reused_pubkey(client):
    pubkey = new_pubkey()
    assert register(client, "alice", pubkey).status_code == 200
    response = register(client, "alice2", pubkey)
    assert response.status_code == 400
    assert response.json()["reason"] == "PubkeyTaken"


def test_register_rejects_bad_name(client):
    response = register(client, "Not Valid")
    assert response.status_code == 400
    assert response.json()["reason"] == "Invalid name"


def test_register_requires_body_fields(client):
    response = client.post("/v1/register", json={"name": "alice"})
    assert response.status_code == 400
    assert response.json() == {"status": "ERROR", "reason": "Invalid request"}


def test_callback_issues_invoice(client, db):
    register(client, "alice")

    response = client.get("/get-invoice/alice", params={"amount": 5_000_000})
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "OK"
    assert data["routes"] == []
    assert decoded_amount_msat(data["pr"]) == 5_000_000

    invoice = db.query(Invoice).one()
    assert invoice.bolt11 == data["pr"]
    assert invoice.state == InvoiceState.PENDING
    assert db.query(Zap).count() == 0


def test_callback_below_minimum(client, db):
    register(client, "alice")
    response = client.get("/get-invoice/alice", params={"amount": 500})
    assert response.status_code == 400
    assert response.json() == {"status": "ERROR", "reason": "Amount out of bounds"}
    assert db.query(Invoice).count() == 0


def test_callback_missing_amount(client, db):
    register(client, "alice")
    response = client.get("/get-invoice/alice")
    assert response.status_code == 400
    assert response.json() == {"status": "ERROR", "reason": "Missing amount parameter"}
    assert db.query(Invoice).count() == 0


def test_callback_unknown_user(client, db):
    response = client.get("/get-invoice/bob", params={"amount": 5_000_000})
    assert response.status_code == 400
    assert response.json() == {"status": "ERROR", "reason": "User not found"}
    assert db.query(Invoice).count() == 0


def test_callback_with_zap_request(client, db, wallet):
    register(client, "alice")
    raw = make_zap_request(content="nice")

    response = client.get("/get-invoice/alice", params={"amount": 21_000, "nostr": raw})
    assert response.status_code == 200

    invoice = db.query(Invoice).one()
    zap = db.query(Zap).one()
    assert zap.id == invoice.id
    assert zap.request == raw
    assert wallet.calls[-1]["description_hash"] == hashlib.sha256(raw.encode("utf-8")).digest()


def test_callback_invalid_zap_request(client, db):
    register(client, "alice")
    raw = json.dumps({"kind": 9734})
    response = client.get("/get-invoice/alice", params={"amount": 21_000, "nostr": raw})
    assert response.status_code == 400
    assert response.json()["reason"] == "Invalid zap request"
    assert db.query(Invoice).count() == 0


def test_wallet_outage_is_a_generic_server_error(client, db, wallet):
    register(client, "alice")
    wallet.fail = True
    response = client.get("/get-invoice/alice", params={"amount": 5_000_000})
    assert response.status_code == 500
    assert response.json() == {"status": "ERROR", "reason": "ServerError"}
    assert db.query(Invoice).count() == 0


def test_verify_pending_then_settled(client, db):
    register(client, "alice")
    pr = client.get("/get-invoice/alice", params={"amount": 5_000_000}).json()["pr"]
    invoice = db.query(Invoice).one()

    url = f"/verify/{invoice.description_hash}/{invoice.payment_hash}"
    response = client.get(url)
    assert response.status_code == 200
    assert response.json() == {"status": "OK", "settled": False, "preimage": None, "pr": pr}

    invoice.state = InvoiceState.SETTLED
    invoice.preimage = "01" * 32
    db.commit()

    response = client.get(url)
    assert response.json() == {"status": "OK", "settled": True, "preimage": "01" * 32, "pr": pr}


def test_verify_rejects_wrong_description_hash(client, db):
    register(client, "alice")
    client.get("/get-invoice/alice", params={"amount": 5_000_000})
    invoice = db.query(Invoice).one()

    response = client.get(f"/verify/{'ab' * 32}/{invoice.payment_hash}")
    assert response.status_code == 400
    assert response.json() == {"status": "ERROR", "reason": "Not found"}


def test_verify_unknown_and_malformed_hashes(client):
    response = client.get(f"/verify/{'00' * 32}/{'11' * 32}")
    assert response.status_code == 400
    assert response.json()["reason"] == "Not found"

    response = client.get(f"/verify/nothex/{'11' * 32}")
    assert response.json()["reason"] == "Invalid description hash"

    response = client.get(f"/verify/{'00' * 32}/abcd")
    assert response.json()["reason"] == "Invalid payment hash"


def test_admin_toggles_zaps(client, db):
    register(client, "alice")

    response = client.post("/v1/admin/users/alice/zaps", json={"enabled": False})
    assert response.status_code == 401

    response = client.post(
        "/v1/admin/users/alice/zaps",
        json={"enabled": False},
        headers={"X-API-Key": ADMIN_KEY},
    )
    assert response.status_code == 200
    assert response.json() == {"name": "alice", "disabled_zaps": True}

    response = client.get("/get-invoice/alice", params={"amount": 5_000_000})
    assert response.status_code == 400
    assert response.json()["reason"] == "Zaps are disabled for this user"

    client.post(
        "/v1/admin/users/alice/zaps",
        json={"enabled": True},
        headers={"X-API-Key": ADMIN_KEY},
    )
    assert client.get("/get-invoice/alice", params={"amount": 5_000_000}).status_code == 200


def test_admin_unknown_user(client):
    response = client.post(
        "/v1/admin/users/ghost/zaps",
        json={"enabled": False},
        headers={"X-API-Key": ADMIN_KEY},
    )
    assert response.status_code == 400
    assert response.json()["reason"] == "User not found"


def test_verify_rejects_hash_with_embedded_spaces(client):
    response = client.get(f"/verify/{'00' * 32}/{'aa' * 31} bb")
    assert response.status_code == 400
    assert response.json()["reason"] == "Invalid payment hash"


def test_store_failure_is_a_generic_server_error(client, monkeypatch):
    register(client, "alice")

    def unavailable(self, *args, **kwargs):
        raise OperationalError("SELECT", {}, Exception("database is locked"))

    monkeypatch.setattr(Session, "query", unavailable)

    responses = [
        client.get("/get-invoice/alice", params={"amount": 5_000_000}),
        client.post("/v1/register", json={"name": "bob", "pubkey": new_pubkey()}),
        client.post(
            "/v1/admin/users/alice/zaps",
            json={"enabled": False},
            headers={"X-API-Key": ADMIN_KEY},
        ),
        client.get(f"/verify/{'00' * 32}/{'11' * 32}"),
    ]
    for response in responses:
        assert response.status_code == 500
        assert response.json() == {"status": "ERROR", "reason": "ServerError"}
