from pydantic import BaseModel, Field
from typing import Optional, List, Any

# LNURL-pay schemas
class PayResponse(BaseModel):
    tag: str = Field("payRequest", description="LNURL tag, always payRequest")
    callback: str = Field(
        ...,
        description="URL the wallet calls with the chosen amount",
        example="https://example.com/get-invoice/alice"
    )
    min_sendable: int = Field(..., alias="minSendable", description="Minimum amount in millisatoshis", example=1000)
    max_sendable: int = Field(..., alias="maxSendable", description="Maximum amount in millisatoshis", example=11000000000)
    metadata: str = Field(
        ...,
        description="LNURL metadata; invoices commit to its SHA-256",
        example='[["text/identifier","alice@example.com"],["text/plain","Sats for alice"]]'
    )
    comment_allowed: Optional[int] = Field(None, alias="commentAllowed", description="Maximum payer comment length", example=100)
    allows_nostr: Optional[bool] = Field(None, alias="allowsNostr", description="Whether zap requests are accepted", example=True)
    nostr_pubkey: Optional[str] = Field(
        None,
        alias="nostrPubkey",
        description="Hex x-only key that signs zap receipts",
        example="79be667ef9dcbbac55a06295ce870b07029bfcdb2dce28d959f2815b16f81798"
    )

    class Config:
        populate_by_name = True

class InvoiceCallbackResponse(BaseModel):
    status: str = Field("OK", description="Always OK on success")
    pr: str = Field(..., description="BOLT11 payment request", example="lnbc50u1p...")
    routes: List[Any] = Field(default_factory=list, description="Unused, always empty")

class VerifyResponse(BaseModel):
    status: str = Field("OK", description="Always OK on success")
    settled: bool = Field(..., description="Whether the invoice has been paid")
    preimage: Optional[str] = Field(None, description="Hex payment preimage once settled")
    pr: str = Field(..., description="BOLT11 payment request")

# Registration schemas
class RegisterRequest(BaseModel):
    name: str = Field(..., max_length=255, description="Lightning address name to claim", example="alice")
    pubkey: str = Field(
        ...,
        description="Hex-encoded secp256k1 public key of the payee",
        example="0279be667ef9dcbbac55a06295ce870b07029bfcdb2dce28d959f2815b16f81798"
    )

class RegisterResponse(BaseModel):
    name: str = Field(..., description="Registered name", example="alice")

# Admin schemas
class SetZapsRequest(BaseModel):
    enabled: bool = Field(..., description="Whether invoices may be issued for this user")

class UserZapsResponse(BaseModel):
    name: str
    disabled_zaps: bool

# Error schemas
class ErrorResponse(BaseModel):
    status: str = Field("ERROR", description="Always ERROR")
    reason: str = Field(..., description="Machine-readable failure reason", example="User not found")

# Health check schemas
class HealthResponse(BaseModel):
    status: str = Field(..., description="Health status", example="pass")
    version: str = Field(..., description="Service version", example="0.1.0")
