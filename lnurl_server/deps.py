"""FastAPI dependency wiring.

Long-lived collaborators (engine and its pool, wallet client) are built once
and handed to request handlers through ``Depends``.
"""

from functools import lru_cache
from typing import Iterator, Optional

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from config import Settings, get_settings
from lnurl_server.database import build_engine, build_session_factory
from lnurl_server.services.invoices import InvoiceService
from lnurl_server.services.nostr import load_private_key, xonly_public_key_hex
from lnurl_server.services.wallet import LNbitsWallet


@lru_cache()
def _get_engine() -> Engine:
    return build_engine(get_settings().DATABASE_URL)


@lru_cache()
def _get_session_factory() -> sessionmaker:
    return build_session_factory(_get_engine())


@lru_cache()
def _get_wallet() -> LNbitsWallet:
    settings = get_settings()
    return LNbitsWallet(
        endpoint=settings.LNBITS_ENDPOINT,
        api_key=settings.LNBITS_API_KEY,
        invoice_expiry_seconds=settings.INVOICE_EXPIRY_SECONDS,
        timeout=settings.LNBITS_TIMEOUT_SECONDS,
    )


@lru_cache()
def _server_pubkey(secret: str) -> str:
    return xonly_public_key_hex(load_private_key(secret))


def reset_caches() -> None:
    """Forget cached settings and collaborators (used when configuration changes)"""
    get_settings.cache_clear()
    _get_engine.cache_clear()
    _get_session_factory.cache_clear()
    _get_wallet.cache_clear()
    _server_pubkey.cache_clear()


async def get_settings_dep() -> Settings:
    return get_settings()


def get_db() -> Iterator[Session]:
    db = _get_session_factory()()
    try:
        yield db
    finally:
        db.close()


async def get_wallet_dep() -> LNbitsWallet:
    return _get_wallet()


async def get_server_pubkey_dep(settings: Settings = Depends(get_settings_dep)) -> str:
    return _server_pubkey(settings.NSEC)


async def get_invoice_service(
    settings: Settings = Depends(get_settings_dep),
    wallet: LNbitsWallet = Depends(get_wallet_dep),
) -> InvoiceService:
    return InvoiceService(settings, wallet)


async def verify_admin_key(
    x_api_key: Optional[str] = Header(None, description="Admin API key for authentication"),
    settings: Settings = Depends(get_settings_dep),
) -> str:
    if not settings.ADMIN_API_KEY or not x_api_key or x_api_key != settings.ADMIN_API_KEY:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key"
        )
    return x_api_key
