"""LNURL-pay routes: discovery, invoice callback and verification."""

import logging
import re
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from config import Settings
from lnurl_server.deps import get_db, get_invoice_service, get_server_pubkey_dep, get_settings_dep
from lnurl_server.errors import ErrorKind, LnurlError
from lnurl_server.models import Invoice, InvoiceState
from lnurl_server.schemas import ErrorResponse, InvoiceCallbackResponse, PayResponse, VerifyResponse
from lnurl_server.services.invoices import CallbackParams, InvoiceService
from lnurl_server.services.metadata import calc_metadata

logger = logging.getLogger(__name__)
router = APIRouter(tags=["lnurl"])

ERROR_RESPONSES = {400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}}

# 32-byte hex digest
_HASH_RE = re.compile(r"[0-9a-f]{64}")

def build_pay_response(name: str, settings: Settings, nostr_pubkey: str) -> PayResponse:
    if not name:
        raise LnurlError(ErrorKind.EMPTY_NAME)

    return PayResponse(
        callback=f"https://{settings.DOMAIN}/get-invoice/{name}",
        min_sendable=settings.MIN_SENDABLE,
        max_sendable=settings.MAX_SENDABLE,
        metadata=calc_metadata(name, settings.DOMAIN),
        comment_allowed=settings.COMMENT_ALLOWED,
        allows_nostr=True,
        nostr_pubkey=nostr_pubkey
    )

def _parse_hash(value: str, kind: ErrorKind) -> str:
    value = value.lower()
    if not _HASH_RE.fullmatch(value):
        raise LnurlError(kind)
    return value

def verify_invoice(db: Session, desc_hash: str, pay_hash: str) -> VerifyResponse:
    desc_hash = _parse_hash(desc_hash, ErrorKind.INVALID_DESCRIPTION_HASH)
    pay_hash = _parse_hash(pay_hash, ErrorKind.INVALID_PAYMENT_HASH)

    try:
        invoice = db.query(Invoice).filter(Invoice.payment_hash == pay_hash).first()
    except SQLAlchemyError as e:
        logger.error(f"Invoice lookup failed: {e}")
        raise LnurlError(ErrorKind.SERVER_ERROR) from e

    if invoice is None or invoice.description_hash != desc_hash:
        raise LnurlError(ErrorKind.NOT_FOUND)

    settled = invoice.lifecycle_state is InvoiceState.SETTLED
    return VerifyResponse(
        settled=settled,
        preimage=invoice.preimage if settled and invoice.preimage else None,
        pr=invoice.bolt11
    )

@router.get(
    "/.well-known/lnurlp/{name}",
    response_model=PayResponse,
    response_model_by_alias=True,
    response_model_exclude_none=True,
    responses=ERROR_RESPONSES,
    summary="LNURL-pay parameters"
)
async def get_lnurl_pay(
    name: str,
    settings: Settings = Depends(get_settings_dep),
    nostr_pubkey: str = Depends(get_server_pubkey_dep)
):
    """Entry point of LNURL-pay, served for name@domain lightning addresses"""
    return build_pay_response(name.strip(), settings, nostr_pubkey)

@router.get(
    "/get-invoice/{name}",
    response_model=InvoiceCallbackResponse,
    responses=ERROR_RESPONSES,
    summary="LNURL-pay callback"
)
async def get_invoice(
    name: str,
    amount: Optional[int] = Query(None, description="Amount in millisatoshis"),
    comment: Optional[str] = Query(None, description="Payer comment (LUD-12)"),
    nostr: Optional[str] = Query(None, description="Zap request event JSON (NIP-57)"),
    service: InvoiceService = Depends(get_invoice_service),
    db: Session = Depends(get_db)
):
    """Issue an invoice for name, optionally carrying a zap request"""
    params = CallbackParams(amount=amount, comment=comment, nostr=nostr)
    invoice = await service.get_invoice(db, name, params)
    return InvoiceCallbackResponse(pr=invoice.bolt11)

@router.get(
    "/verify/{desc_hash}/{pay_hash}",
    response_model=VerifyResponse,
    responses=ERROR_RESPONSES,
    summary="Verify invoice settlement"
)
async def verify(
    desc_hash: str,
    pay_hash: str,
    db: Session = Depends(get_db)
):
    """Settlement status and preimage for a previously issued invoice"""
    return verify_invoice(db, desc_hash, pay_hash)
