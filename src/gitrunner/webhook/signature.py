# webhook/signature.py
from __future__ import annotations

import hashlib
import hmac
from typing import Optional


SIGNATURE_HEADER = "X-Hub-Signature-256"
SIGNATURE_PREFIX = "sha256="


def sign(raw_body: bytes, secret: str) -> str:
    """Header value a sender with `secret` would attach to `raw_body`."""
    digest = hmac.new(secret.encode("utf-8"), raw_body, hashlib.sha256).hexdigest()
    return f"{SIGNATURE_PREFIX}{digest}"


def verify(raw_body: bytes, header_value: Optional[str], secret: str) -> bool:
    """
    Check `header_value` ("sha256=<hex>") against the HMAC of `raw_body`.

    An empty `secret` disables verification and always returns True; the
    gateway only allows that when the operator opted in explicitly.
    Malformed headers return False, this never raises.
    """
    if not secret:
        return True
    if not header_value or not header_value.startswith(SIGNATURE_PREFIX):
        return False

    expected = sign(raw_body, secret).encode("ascii")
    provided = header_value.encode("utf-8", errors="replace")
    # constant-time comparison
    return hmac.compare_digest(expected, provided)
