"""HMAC-SHA256 helpers for signed state and image payloads."""

from __future__ import annotations

import hashlib
import hmac


def create_hmac_signature(data: str, secret: str) -> str:
    """Hex encoded HMAC-SHA256 of ``data`` keyed with ``secret``."""
    return hmac.new(secret.encode("utf-8"), data.encode("utf-8"), hashlib.sha256).hexdigest()


def verify_hmac_signature(data: str, signature: str, secret: str) -> bool:
    expected = create_hmac_signature(data, secret)
    return hmac.compare_digest(expected, signature.lower())


__all__ = ["create_hmac_signature", "verify_hmac_signature"]
