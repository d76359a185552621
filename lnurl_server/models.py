from sqlalchemy import BigInteger, Column, Integer, String, Boolean, DateTime, ForeignKey, Text
from sqlalchemy.orm import relationship
from datetime import datetime
from enum import IntEnum
from lnurl_server.database import Base

class InvoiceState(IntEnum):
    """Invoice lifecycle: PENDING -> SETTLED or PENDING -> CANCELLED"""
    PENDING = 0
    SETTLED = 1
    CANCELLED = 2

class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    pubkey = Column(String(66), unique=True, index=True, nullable=False)  # hex format
    name = Column(String(255), unique=True, index=True, nullable=False)
    disabled_zaps = Column(Boolean, default=False, nullable=False)

    # Relationship to invoices
    invoices = relationship("Invoice", back_populates="user")

class Invoice(Base):
    __tablename__ = "invoice"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    bolt11 = Column(String(2048), nullable=False)  # Lightning invoice/BOLT11
    amount_msats = Column(BigInteger, nullable=False)
    preimage = Column(String(64), nullable=True)  # hex, unknown until settled
    lnurlp_comment = Column(String(100), nullable=True)
    state = Column(Integer, default=InvoiceState.PENDING, nullable=False, index=True)

    # Commitment data for /verify
    payment_hash = Column(String(64), unique=True, index=True, nullable=False)
    description_hash = Column(String(64), nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    user = relationship("User", back_populates="invoices")
    zap = relationship("Zap", back_populates="invoice", uselist=False)

    @property
    def lifecycle_state(self) -> InvoiceState:
        return InvoiceState(self.state)

class Zap(Base):
    __tablename__ = "zaps"

    # Shares identity with its invoice
    id = Column(Integer, ForeignKey("invoice.id"), primary_key=True)
    request = Column(Text, nullable=False)  # raw zap request JSON, stored verbatim
    event_id = Column(String(64), nullable=True, index=True)  # set once the receipt is published

    invoice = relationship("Invoice", back_populates="zap")
