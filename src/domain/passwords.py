"""
Password hashing.

bcrypt hashing and verification used by the registration service when a
vendor is first persisted and at login.

When the account does not exist, verify_password(..., None) still runs a
bcrypt comparison against a pre-computed dummy hash, so unknown emails and
wrong passwords take comparable time.
"""

import bcrypt

# Hash of "dummy_password_for_timing_safety" with cost factor 10.
_DUMMY_BCRYPT_HASH = bcrypt.hashpw(b"dummy_password_for_timing_safety", bcrypt.gensalt(10)).decode()


def _password_bytes(password: str) -> bytes:
    # bcrypt only looks at the first 72 bytes and newer releases reject longer input
    return password.encode("utf-8")[:72]


def hash_password(password: str, rounds: int = 10) -> str:
    """Hash password using bcrypt with the given cost factor."""
    return bcrypt.hashpw(_password_bytes(password), bcrypt.gensalt(rounds=rounds)).decode()


def verify_password(password: str, password_hash: str | None) -> bool:
    """
    Compare a plaintext password against a bcrypt hash.

    Returns False when password_hash is None, after doing the same amount of
    bcrypt work as a real comparison.
    """
    if password_hash is None:
        bcrypt.checkpw(_password_bytes(password), _DUMMY_BCRYPT_HASH.encode())
        return False
    return bcrypt.checkpw(_password_bytes(password), password_hash.encode())
