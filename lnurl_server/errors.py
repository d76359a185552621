"""Error kinds surfaced by the LNURL endpoints.

Every failure the service reports maps to one ``ErrorKind``. The kind fixes
the HTTP status and the machine-readable ``reason`` string that wallets see,
so existing clients keep receiving the same reasons.
"""

from enum import Enum

from fastapi import status

_BAD_REQUEST = status.HTTP_400_BAD_REQUEST
_SERVER_ERROR = status.HTTP_500_INTERNAL_SERVER_ERROR


class ErrorKind(Enum):
    # Client input errors
    MISSING_AMOUNT = ("MissingAmount", _BAD_REQUEST, "Missing amount parameter")
    AMOUNT_OUT_OF_BOUNDS = ("AmountOutOfBounds", _BAD_REQUEST, "Amount out of bounds")
    AMOUNT_NOT_WHOLE_SATS = ("AmountNotWholeSats", _BAD_REQUEST, "Amount must be a whole number of satoshis")
    USER_NOT_FOUND = ("UserNotFound", _BAD_REQUEST, "User not found")
    ISSUANCE_DISABLED = ("IssuanceDisabled", _BAD_REQUEST, "Zaps are disabled for this user")
    INVALID_ZAP_REQUEST = ("InvalidZapRequest", _BAD_REQUEST, "Invalid zap request")
    COMMENT_TOO_LONG = ("CommentTooLong", _BAD_REQUEST, "Comment too long")
    EMPTY_NAME = ("EmptyName", _BAD_REQUEST, "Name parameter is required")
    INVALID_NAME = ("InvalidName", _BAD_REQUEST, "Invalid name")
    INVALID_PUBKEY = ("InvalidPubkey", _BAD_REQUEST, "Invalid pubkey")
    NAME_TAKEN = ("NameTaken", _BAD_REQUEST, "NameTaken")
    PUBKEY_TAKEN = ("PubkeyTaken", _BAD_REQUEST, "PubkeyTaken")
    INVALID_DESCRIPTION_HASH = ("InvalidDescriptionHash", _BAD_REQUEST, "Invalid description hash")
    INVALID_PAYMENT_HASH = ("InvalidPaymentHash", _BAD_REQUEST, "Invalid payment hash")
    NOT_FOUND = ("NotFound", _BAD_REQUEST, "Not found")

    # Invariant violation: the wallet minted something other than what was asked for
    INVOICE_AMOUNT_MISMATCH = ("InvoiceAmountMismatch", _BAD_REQUEST, "Invoice amount mismatch")

    # Collaborator failures, never leak details
    ISSUER_UNAVAILABLE = ("IssuerUnavailable", _SERVER_ERROR, "ServerError")
    PERSISTENCE_FAILED = ("PersistenceFailed", _SERVER_ERROR, "ServerError")
    SERVER_ERROR = ("ServerError", _SERVER_ERROR, "ServerError")

    def __init__(self, code: str, status_code: int, reason: str):
        self.code = code
        self.status_code = status_code
        self.reason = reason


class LnurlError(Exception):
    """Raised by the service layer; rendered as ``{"status": "ERROR", "reason": ...}``"""

    def __init__(self, kind: ErrorKind):
        super().__init__(kind.reason)
        self.kind = kind

    @property
    def status_code(self) -> int:
        return self.kind.status_code

    @property
    def reason(self) -> str:
        return self.kind.reason

    def to_response(self) -> dict:
        return {"status": "ERROR", "reason": self.reason}
