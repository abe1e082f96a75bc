"""
Signature Utilities — HMAC-SHA256 helpers for gateway callbacks.
"""
import hashlib
import hmac


def hmac_sha256_hex(secret: str, message: str) -> str:
    """Hex HMAC-SHA256 of a UTF-8 message under a shared secret."""
    return hmac.new(secret.encode("utf-8"), message.encode("utf-8"), hashlib.sha256).hexdigest()


def signatures_match(expected: str, supplied: str | None) -> bool:
    """Constant-time comparison of two hex signatures."""
    if not supplied:
        return False
    return hmac.compare_digest(expected.encode("utf-8"), supplied.strip().encode("utf-8"))
