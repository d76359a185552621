import hashlib
import json
import logging
import re
from typing import Any, Dict

from bech32 import bech32_decode, convertbits
from secp256k1 import PrivateKey, PublicKey

logger = logging.getLogger(__name__)

ZAP_REQUEST_KIND = 9734

_HEX_32 = re.compile(r"^[0-9a-f]{64}$")
_HEX_64 = re.compile(r"^[0-9a-f]{128}$")

def nsec_to_private_key_hex(nsec: str) -> str:
    """Convert nsec (bech32) to hex private key"""
    hrp, data = bech32_decode(nsec)
    if hrp != 'nsec' or data is None:
        raise ValueError("Invalid nsec format")

    decoded = convertbits(data, 5, 8, False)
    if decoded is None or len(decoded) != 32:
        raise ValueError("Invalid nsec data")

    return bytes(decoded).hex()

def load_private_key(secret: str) -> PrivateKey:
    """Build a secp256k1 key from a hex secret or an nsec1 string"""
    secret = secret.strip()
    if secret.startswith('nsec1'):
        secret = nsec_to_private_key_hex(secret)

    if not _HEX_32.match(secret.lower()):
        raise ValueError("Secret key must be nsec or 64 hex characters")

    return PrivateKey(bytes.fromhex(secret))

def xonly_public_key_hex(private_key: PrivateKey) -> str:
    """BIP-340 x-only public key, the form Nostr uses for identities"""
    return private_key.pubkey.serialize(compressed=True)[1:].hex()

def is_valid_pubkey(pubkey_hex: str) -> bool:
    """True if pubkey_hex is a serialized secp256k1 point (33 or 65 bytes)"""
    try:
        raw = bytes.fromhex(pubkey_hex)
    except (TypeError, ValueError):
        return False

    if len(raw) not in (33, 65):
        return False

    try:
        PublicKey(raw, raw=True)
    except Exception:
        return False
    return True

def compute_event_id(event: Dict[str, Any]) -> str:
    """NIP-01 event id: sha256 of the canonical serialization"""
    serialized = json.dumps([
        0,
        event["pubkey"],
        event["created_at"],
        event["kind"],
        event["tags"],
        event["content"]
    ], separators=(',', ':'), ensure_ascii=False)

    return hashlib.sha256(serialized.encode('utf-8')).hexdigest()

def verify_event_signature(event: Dict[str, Any]) -> bool:
    try:
        public_key = PublicKey(b"\x02" + bytes.fromhex(event["pubkey"]), raw=True)
        return bool(public_key.schnorr_verify(
            bytes.fromhex(event["id"]),
            bytes.fromhex(event["sig"]),
            None,
            raw=True
        ))
    except Exception as e:
        logger.debug(f"Schnorr verification error: {e}")
        return False

def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)

def _has_valid_shape(event: Any) -> bool:
    if not isinstance(event, dict):
        return False

    for key in ("id", "pubkey", "sig", "content"):
        if not isinstance(event.get(key), str):
            return False

    if not _is_int(event.get("created_at")) or not _is_int(event.get("kind")):
        return False

    tags = event.get("tags")
    if not isinstance(tags, list):
        return False
    for tag in tags:
        if not isinstance(tag, list) or not all(isinstance(item, str) for item in tag):
            return False

    return bool(
        _HEX_32.match(event["id"])
        and _HEX_32.match(event["pubkey"])
        and _HEX_64.match(event["sig"])
    )

def parse_zap_request(raw: str) -> Dict[str, Any]:
    """Parse and structurally validate a kind 9734 zap request.

    Checks the NIP-01 shape, that the id is the hash of the content and that
    the signature is valid for the author. Raises ValueError otherwise.
    """
    try:
        event = json.loads(raw)
    except (TypeError, ValueError):
        raise ValueError("Zap request is not valid JSON")

    if not _has_valid_shape(event):
        raise ValueError("Zap request is not a well-formed nostr event")

    if event["kind"] != ZAP_REQUEST_KIND:
        raise ValueError(f"Expected kind {ZAP_REQUEST_KIND}, got {event['kind']}")

    if compute_event_id(event) != event["id"]:
        raise ValueError("Zap request id does not match its content")

    if not verify_event_signature(event):
        raise ValueError("Zap request signature is invalid")

    return event
