# backend/utils/signatures.py
import base64
import hashlib
import hmac
import time
from typing import Optional


# Header values arrive as arbitrary text; compare_digest only takes ASCII str
def _digest_matches(expected: str, candidate: str) -> bool:
    return hmac.compare_digest(expected.encode("ascii"), candidate.encode("utf-8", "replace"))


def verify_stripe_signature(header_signature: Optional[str], request_body: bytes, secret: str,
                            tolerance: int = 300, now: Optional[int] = None) -> bool:
    """Verifies a ``Stripe-Signature`` header.

    The header looks like ``t=1700000000,v1=<hex>,v1=<hex>``. The signed
    payload is ``"{t}.{body}"`` and each ``v1`` is its HMAC-SHA256 under the
    webhook secret. Timestamps outside ``tolerance`` seconds are rejected.
    """
    if not header_signature:
        return False

    timestamp = None
    signatures = []
    for part in header_signature.split(","):
        key, sep, value = part.strip().partition("=")
        if not sep:
            continue
        if key == "t":
            timestamp = value
        elif key == "v1":
            signatures.append(value)

    if not timestamp or not signatures:
        return False
    try:
        ts = int(timestamp)
    except ValueError:
        return False

    current = int(time.time()) if now is None else now
    if tolerance and abs(current - ts) > tolerance:
        return False

    signed_payload = timestamp.encode("utf-8") + b"." + request_body
    expected = hmac.new(secret.encode("utf-8"), signed_payload, hashlib.sha256).hexdigest()
    return any(_digest_matches(expected, sig) for sig in signatures)


def sign_stripe_payload(request_body: bytes, secret: str, timestamp: Optional[int] = None) -> str:
    """Builds a ``Stripe-Signature`` header value for ``request_body``."""
    ts = int(time.time()) if timestamp is None else timestamp
    digest = hmac.new(secret.encode("utf-8"), f"{ts}.".encode("utf-8") + request_body, hashlib.sha256).hexdigest()
    return f"t={ts},v1={digest}"


def _svix_key(secret: str) -> bytes:
    if secret.startswith("whsec_"):
        secret = secret[len("whsec_"):]
    return base64.b64decode(secret)


def verify_svix_signature(msg_id: Optional[str], msg_timestamp: Optional[str], header_signature: Optional[str],
                          request_body: bytes, secret: str, tolerance: int = 300, now: Optional[int] = None) -> bool:
    """Verifies identity-provider webhooks delivered through svix.

    ``svix-signature`` holds space separated ``v1,<base64>`` entries, each an
    HMAC-SHA256 of ``"{id}.{timestamp}.{body}"`` under the base64 secret.
    """
    if not msg_id or not msg_timestamp or not header_signature:
        return False
    try:
        ts = int(msg_timestamp)
    except ValueError:
        return False

    current = int(time.time()) if now is None else now
    if tolerance and abs(current - ts) > tolerance:
        return False

    signed_content = f"{msg_id}.{msg_timestamp}.".encode("utf-8") + request_body
    expected = base64.b64encode(hmac.new(_svix_key(secret), signed_content, hashlib.sha256).digest()).decode("ascii")

    for entry in header_signature.split(" "):
        version, _, signature = entry.partition(",")
        if version == "v1" and _digest_matches(expected, signature):
            return True
    return False


def sign_svix_payload(msg_id: str, request_body: bytes, secret: str, timestamp: Optional[int] = None) -> dict:
    """Returns the three svix headers for ``request_body``."""
    ts = str(int(time.time()) if timestamp is None else timestamp)
    signed_content = f"{msg_id}.{ts}.".encode("utf-8") + request_body
    signature = base64.b64encode(hmac.new(_svix_key(secret), signed_content, hashlib.sha256).digest()).decode("ascii")
    return {"svix-id": msg_id, "svix-timestamp": ts, "svix-signature": f"v1,{signature}"}
