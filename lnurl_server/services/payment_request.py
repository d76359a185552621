"""BOLT11 payment request decoding.

The issuer only trusts an amount that comes out of a fully decoded invoice:
bech32 checksum intact and a signature the payee key can be recovered from.
"""

import logging
from typing import Optional

import bolt11 as bolt11_lib

logger = logging.getLogger(__name__)

def decoded_amount_msat(payment_request: str) -> Optional[int]:
    """Amount of a BOLT11 invoice in millisatoshis.

    None for "any amount" invoices and for anything that does not decode.
    """
    if not payment_request:
        return None

    try:
        invoice = bolt11_lib.decode(payment_request.strip())
    except Exception as e:
        logger.warning(f"Could not decode payment request {payment_request[:24]}...: {e}")
        return None

    if invoice.amount_msat is None:
        return None
    return int(invoice.amount_msat)
