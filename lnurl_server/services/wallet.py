import httpx
import logging
from dataclasses import dataclass
from typing import Optional, Dict, Any

logger = logging.getLogger(__name__)

class WalletError(Exception):
    """The wallet could not be reached or refused the request"""

@dataclass
class WalletInvoice:
    payment_request: str
    payment_hash: str
    preimage: Optional[str] = None

@dataclass
class WalletPaymentStatus:
    paid: bool
    preimage: Optional[str] = None

class LNbitsWallet:
    """Wallet capability backed by the LNbits payments API.

    One instance holds a single pooled ``httpx.AsyncClient`` shared by all
    requests; call ``close()`` on shutdown.
    """

    def __init__(
        self,
        endpoint: str,
        api_key: str,
        invoice_expiry_seconds: int = 3600,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.endpoint = endpoint.rstrip('/')
        self.invoice_expiry_seconds = invoice_expiry_seconds
        self.client = httpx.AsyncClient(
            base_url=self.endpoint,
            headers={
                'X-Api-Key': api_key,
                'Content-Type': 'application/json'
            },
            timeout=timeout,
            transport=transport
        )

    async def close(self):
        await self.client.aclose()

    async def create_invoice(
        self,
        amount_sats: int,
        description_hash: bytes,
        payee_pubkey: str,
        memo: str = ""
    ) -> WalletInvoice:
        """Create a Lightning invoice committing to description_hash"""

        payload = {
            'out': False,  # Incoming payment
            'amount': amount_sats,
            'memo': memo,
            'description_hash': description_hash.hex(),
            'expiry': self.invoice_expiry_seconds,
            'extra': {'payee_pubkey': payee_pubkey}
        }

        try:
            response = await self.client.post("/api/v1/payments", json=payload)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as e:
            raise WalletError(f"LNbits API error: {str(e)}") from e
        except ValueError as e:
            raise WalletError("Invalid response from LNbits API") from e

        payment_request = data.get('payment_request') or data.get('bolt11')
        payment_hash = data.get('payment_hash')
        if not payment_request or not payment_hash:
            raise WalletError("LNbits response missing payment_request or payment_hash")

        return WalletInvoice(
            payment_request=payment_request,
            payment_hash=payment_hash,
            preimage=data.get('preimage') or None
        )

    async def check_invoice(self, payment_hash: str) -> WalletPaymentStatus:
        """Check the settlement status of a Lightning invoice"""

        try:
            response = await self.client.get(f"/api/v1/payments/{payment_hash}")
            response.raise_for_status()
            data: Dict[str, Any] = response.json()
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 404:
                return WalletPaymentStatus(paid=False)
            raise WalletError(f"LNbits API error: {str(e)}") from e
        except httpx.HTTPError as e:
            raise WalletError(f"LNbits API error: {str(e)}") from e
        except ValueError as e:
            raise WalletError("Invalid response from LNbits API") from e

        preimage = data.get('preimage') or (data.get('details') or {}).get('preimage')
        return WalletPaymentStatus(
            paid=bool(data.get('paid', False)),
            preimage=preimage or None
        )
