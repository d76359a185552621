"""Shared fixtures: in-memory database, fake wallet, signed nostr events."""

from __future__ import annotations

import hashlib
import json
import os
import time
from typing import Any, Dict, List, Optional

import pytest
from bolt11 import Bolt11, MilliSatoshi, TagChar, Tags, encode
from fastapi.testclient import TestClient
from secp256k1 import PrivateKey

from lnurl_server import deps
from lnurl_server.database import create_tables
from lnurl_server.services.nostr import compute_event_id
from lnurl_server.services.wallet import WalletError, WalletInvoice, WalletPaymentStatus

# Private key 1; its x-only public key is the generator point's x coordinate
SERVER_SECRET = "00" * 31 + "01"
SERVER_PUBKEY = "79be667ef9dcbbac55a06295ce870b07029bfcdb2dce28d959f2815b16f81798"
DOMAIN = "example.com"
ADMIN_KEY = "admin-secret"
# Lightning node key that signs test invoices
INVOICE_NODE_KEY = "11" * 32


def make_bolt11(
    amount_msat: Optional[int],
    payment_hash: Optional[str] = None,
    description_hash: Optional[bytes] = None,
) -> str:
    """Signed mainnet invoice for amount_msat (None mints an "any amount" invoice)"""
    tags = Tags()
    tags.add(TagChar.payment_hash, payment_hash or os.urandom(32).hex())
    tags.add(TagChar.payment_secret, os.urandom(32).hex())
    if description_hash is not None:
        tags.add(TagChar.description_hash, description_hash.hex())
    else:
        tags.add(TagChar.description, "test invoice")

    invoice = Bolt11(
        currency="bc",
        amount_msat=None if amount_msat is None else MilliSatoshi(amount_msat),
        date=int(time.time()),
        tags=tags,
    )
    return encode(invoice, INVOICE_NODE_KEY)


def make_zap_request(
    private_key: Optional[PrivateKey] = None,
    kind: int = 9734,
    content: str = "",
    tags: Optional[List[List[str]]] = None,
) -> str:
    private_key = private_key or PrivateKey()
    event: Dict[str, Any] = {
        "pubkey": private_key.pubkey.serialize(compressed=True)[1:].hex(),
        "created_at": int(time.time()),
        "kind": kind,
        "tags": tags if tags is not None else [["p", SERVER_PUBKEY], ["relays", "wss://relay.example.com"]],
        "content": content,
    }
    event["id"] = compute_event_id(event)
    event["sig"] = private_key.schnorr_sign(bytes.fromhex(event["id"]), None, raw=True).hex()
    return json.dumps(event, separators=(",", ":"))


def new_pubkey() -> str:
    return PrivateKey().pubkey.serialize(compressed=True).hex()


class FakeWallet:
    """Stands in for LNbits; records every call"""

    def __init__(self) -> None:
        self.calls: List[Dict[str, Any]] = []
        self.statuses: Dict[str, WalletPaymentStatus] = {}
        self.amount_override_msat: Optional[int] = -1
        self.payment_request_override: Optional[str] = None
        self.fail = False

    async def create_invoice(self, amount_sats, description_hash, payee_pubkey, memo=""):
        if self.fail:
            raise WalletError("connection refused")

        payment_hash = hashlib.sha256(f"{len(self.calls)}:{amount_sats}".encode()).hexdigest()
        self.calls.append(
            {
                "amount_sats": amount_sats,
                "description_hash": description_hash,
                "payee_pubkey": payee_pubkey,
                "memo": memo,
                "payment_hash": payment_hash,
            }
        )
        if self.payment_request_override is not None:
            return WalletInvoice(payment_request=self.payment_request_override, payment_hash=payment_hash)

        embedded = amount_sats * 1000 if self.amount_override_msat == -1 else self.amount_override_msat
        payment_request = make_bolt11(embedded, payment_hash=payment_hash, description_hash=description_hash)
        return WalletInvoice(payment_request=payment_request, payment_hash=payment_hash)

    async def check_invoice(self, payment_hash):
        if self.fail:
            raise WalletError("connection refused")
        return self.statuses.get(payment_hash, WalletPaymentStatus(paid=False))

    async def close(self):
        pass


@pytest.fixture(autouse=True)
def configure_env(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "sqlite://")
    monkeypatch.setenv("LNURL_NSEC", SERVER_SECRET)
    monkeypatch.setenv("LNURL_DOMAIN", DOMAIN)
    monkeypatch.setenv("LNURL_MIN_SENDABLE", "1000")
    monkeypatch.setenv("LNURL_MAX_SENDABLE", "11000000000")
    monkeypatch.setenv("LNURL_COMMENT_ALLOWED", "100")
    monkeypatch.setenv("LNBITS_API_KEY", "test-key")
    monkeypatch.setenv("SETTLEMENT_POLL_ENABLED", "false")
    monkeypatch.setenv("ADMIN_API_KEY", ADMIN_KEY)

    deps.reset_caches()
    yield
    deps.reset_caches()


@pytest.fixture
def wallet() -> FakeWallet:
    return FakeWallet()


@pytest.fixture
def db():
    create_tables(deps._get_engine())
    session = deps._get_session_factory()()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(wallet):
    from lnurl_server.main import app

    app.dependency_overrides[deps.get_wallet_dep] = lambda: wallet
    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        app.dependency_overrides.clear()
