"""One-time code generation and hashing."""

import hashlib
import hmac
import secrets

DIGITS = "0123456789"


def generate_otp(length: int = 6) -> str:
    """
    Generate a numeric one-time code.

    Each digit is drawn independently from the secrets module, so a code of
    length n has 10^n equiprobable values. Returned as a string to keep
    leading zeros.
    """
    return "".join(secrets.choice(DIGITS) for _ in range(length))


def hash_otp(code: str) -> str:
    """SHA-256 hex digest of a code."""
    return hashlib.sha256(code.encode()).hexdigest()


def verify_otp(code: str, digest: str) -> bool:
    """Check a code against a stored digest in constant time."""
    return hmac.compare_digest(hash_otp(code), digest)
