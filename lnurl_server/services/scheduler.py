import logging
from datetime import datetime, timedelta
from typing import Optional
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from config import Settings
from lnurl_server.models import Invoice, InvoiceState
from lnurl_server.services.wallet import LNbitsWallet, WalletError

logger = logging.getLogger(__name__)

def advance_invoice_state(invoice: Invoice, new_state: InvoiceState, preimage: Optional[str] = None) -> bool:
    """Move a pending invoice to a terminal state.

    Returns False (and changes nothing) if the invoice already left PENDING.
    """
    if new_state == InvoiceState.PENDING:
        raise ValueError("Invoices cannot move back to PENDING")
    if invoice.lifecycle_state is not InvoiceState.PENDING:
        return False

    invoice.state = new_state
    if preimage:
        invoice.preimage = preimage
    return True

class SettlementScheduler:
    """Polls the wallet for pending invoices and records settlement"""

    def __init__(self, settings: Settings, session_factory: sessionmaker, wallet: LNbitsWallet):
        self.settings = settings
        self.session_factory = session_factory
        self.wallet = wallet
        self.scheduler = AsyncIOScheduler()
        self.is_running = False

    def start(self):
        """Start the background scheduler"""
        if self.is_running:
            return

        if not self.settings.SETTLEMENT_POLL_ENABLED:
            logger.info("Settlement polling disabled")
            return

        self.scheduler.add_job(
            self.poll_pending_invoices,
            IntervalTrigger(seconds=self.settings.SETTLEMENT_POLL_INTERVAL_SECONDS),
            id='poll_invoices',
            replace_existing=True
        )
        self.scheduler.start()
        self.is_running = True
        logger.info(f"Settlement polling every {self.settings.SETTLEMENT_POLL_INTERVAL_SECONDS}s")

    def stop(self):
        """Stop the background scheduler"""
        if self.is_running:
            self.scheduler.shutdown()
            self.is_running = False
            logger.info("Background scheduler stopped")

    async def poll_pending_invoices(self):
        """Check every pending invoice once against the wallet"""
        db = self.session_factory()
        try:
            pending = db.query(Invoice).filter(Invoice.state == InvoiceState.PENDING).all()
            logger.debug(f"Polling {len(pending)} pending invoices")

            for invoice in pending:
                await self.check_invoice(db, invoice)
        finally:
            db.close()

    async def check_invoice(self, db: Session, invoice: Invoice):
        try:
            status = await self.wallet.check_invoice(invoice.payment_hash)
        except WalletError as e:
            logger.warning(f"Could not check invoice {invoice.id}: {e}")
            return

        expires_at = invoice.created_at + timedelta(seconds=self.settings.INVOICE_EXPIRY_SECONDS)
        if status.paid:
            changed = advance_invoice_state(invoice, InvoiceState.SETTLED, status.preimage)
        elif expires_at <= datetime.utcnow():
            changed = advance_invoice_state(invoice, InvoiceState.CANCELLED)
        else:
            return

        if not changed:
            return

        try:
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to record state of invoice {invoice.payment_hash}: {e}")
            return

        logger.info(f"Invoice {invoice.payment_hash} is now {invoice.lifecycle_state.name}")
