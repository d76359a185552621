import hashlib
from typing import Union

def calc_metadata(name: str, domain: str) -> str:
    """Render the LNURL-pay metadata string for name@domain.

    The exact bytes matter: invoices commit to their SHA-256, so this must
    stay byte-for-byte stable for the same inputs.
    """
    return f'[["text/identifier","{name}@{domain}"],["text/plain","Sats for {name}"]]'

def description_hash(payload: Union[str, bytes]) -> bytes:
    """SHA-256 commitment over the metadata string or a raw zap request"""
    if isinstance(payload, str):
        payload = payload.encode("utf-8")
    return hashlib.sha256(payload).digest()
