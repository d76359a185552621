"""LNURL-pay callback handling: validate, commit, issue, persist.

The steps run strictly in that order for a single request. Nothing is
written unless validation passed and the wallet returned an invoice for
exactly the requested amount.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from config import Settings
from lnurl_server.errors import ErrorKind, LnurlError
from lnurl_server.models import Invoice, InvoiceState, User, Zap
from lnurl_server.services import users
from lnurl_server.services.metadata import calc_metadata, description_hash
from lnurl_server.services.nostr import parse_zap_request
from lnurl_server.services.payment_request import decoded_amount_msat
from lnurl_server.services.wallet import LNbitsWallet, WalletError, WalletInvoice

logger = logging.getLogger(__name__)

@dataclass
class CallbackParams:
    amount: Optional[int] = None  # millisatoshis
    comment: Optional[str] = None
    nostr: Optional[str] = None  # raw zap request JSON

@dataclass
class ValidatedCallback:
    user: User
    amount_msats: int
    comment: Optional[str]
    zap_request: Optional[str]

def validate_callback(db: Session, name: str, params: CallbackParams, settings: Settings) -> ValidatedCallback:
    """Reject malformed or policy-violating callbacks. Read-only."""
    if params.amount is None:
        raise LnurlError(ErrorKind.MISSING_AMOUNT)

    amount_msats = params.amount
    if amount_msats < settings.MIN_SENDABLE or amount_msats > settings.MAX_SENDABLE:
        raise LnurlError(ErrorKind.AMOUNT_OUT_OF_BOUNDS)

    # Wallet invoices are denominated in whole sats
    if amount_msats % 1000 != 0:
        raise LnurlError(ErrorKind.AMOUNT_NOT_WHOLE_SATS)

    user = users.get_by_name(db, name)
    if not user:
        raise LnurlError(ErrorKind.USER_NOT_FOUND)

    if user.disabled_zaps:
        raise LnurlError(ErrorKind.ISSUANCE_DISABLED)

    zap_request = params.nostr or None
    if zap_request is not None:
        try:
            parse_zap_request(zap_request)
        except ValueError as e:
            logger.info(f"Rejected zap request for {name}: {e}")
            raise LnurlError(ErrorKind.INVALID_ZAP_REQUEST)

    comment = params.comment or None
    if comment is not None and len(comment) > settings.COMMENT_ALLOWED:
        raise LnurlError(ErrorKind.COMMENT_TOO_LONG)

    return ValidatedCallback(
        user=user,
        amount_msats=amount_msats,
        comment=comment,
        zap_request=zap_request
    )

def commitment_for(name: str, domain: str, zap_request: Optional[str]) -> bytes:
    """Description hash: over the raw zap request if present, else over the metadata"""
    if zap_request is not None:
        return description_hash(zap_request)
    return description_hash(calc_metadata(name, domain))

class InvoiceIssuer:
    """Mints invoices through the wallet and checks the amount it embedded"""

    def __init__(self, wallet: LNbitsWallet):
        self.wallet = wallet

    async def issue(self, amount_msats: int, desc_hash: bytes, payee_pubkey: str, memo: str = "") -> WalletInvoice:
        # Sub-satoshi remainder is truncated, the wallet has no msat precision
        amount_sats = amount_msats // 1000

        try:
            issued = await self.wallet.create_invoice(
                amount_sats=amount_sats,
                description_hash=desc_hash,
                payee_pubkey=payee_pubkey,
                memo=memo
            )
        except WalletError as e:
            logger.error(f"Wallet failed to create invoice: {e}")
            raise LnurlError(ErrorKind.ISSUER_UNAVAILABLE) from e

        embedded = decoded_amount_msat(issued.payment_request)
        if embedded is None or embedded != amount_msats:
            logger.error(
                f"Invoice amount mismatch: requested {amount_msats} msat, "
                f"wallet returned {embedded} msat (payment_hash={issued.payment_hash}); discarding"
            )
            raise LnurlError(ErrorKind.INVOICE_AMOUNT_MISMATCH)

        return issued

def persist_invoice(
    db: Session,
    validated: ValidatedCallback,
    issued: WalletInvoice,
    desc_hash: bytes
) -> Invoice:
    """Insert the invoice and its optional zap in one transaction"""
    user_id = validated.user.id
    try:
        invoice = Invoice(
            user_id=user_id,
            bolt11=issued.payment_request,
            amount_msats=validated.amount_msats,
            preimage=issued.preimage,
            lnurlp_comment=validated.comment,
            state=InvoiceState.PENDING,
            payment_hash=issued.payment_hash,
            description_hash=desc_hash.hex()
        )
        db.add(invoice)
        db.flush()  # assigns invoice.id for the zap row

        if validated.zap_request is not None:
            zap = Zap(
                id=invoice.id,
                request=validated.zap_request,
                event_id=None
            )
            db.add(zap)

        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        # The wallet invoice exists but is not recorded; it can still be paid
        logger.error(
            f"Failed to persist invoice {issued.payment_hash} for user {user_id}, "
            f"live invoice left unrecorded: {e}"
        )
        raise LnurlError(ErrorKind.PERSISTENCE_FAILED) from e

    try:
        db.refresh(invoice)
    except SQLAlchemyError as e:
        logger.error(f"Invoice {issued.payment_hash} stored but could not be reloaded: {e}")
        raise LnurlError(ErrorKind.SERVER_ERROR) from e
    return invoice

class InvoiceService:
    def __init__(self, settings: Settings, wallet: LNbitsWallet):
        self.settings = settings
        self.issuer = InvoiceIssuer(wallet)

    async def get_invoice(self, db: Session, name: str, params: CallbackParams) -> Invoice:
        """Run a pay callback end to end and return the stored invoice"""
        validated = validate_callback(db, name, params, self.settings)

        desc_hash = commitment_for(name, self.settings.DOMAIN, validated.zap_request)

        issued = await self.issuer.issue(
            amount_msats=validated.amount_msats,
            desc_hash=desc_hash,
            payee_pubkey=validated.user.pubkey,
            memo=f"Sats for {name}"
        )

        invoice = persist_invoice(db, validated, issued, desc_hash)

        logger.info(
            f"Issued invoice {invoice.id} for {name}: {invoice.amount_msats} msat"
            f"{' (zap)' if validated.zap_request else ''}"
        )
        return invoice
