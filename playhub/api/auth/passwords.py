"""
Password Hashing

Salted bcrypt hashes. Verification re-hashes the candidate with the
stored salt and compares in constant time (``bcrypt.checkpw``); the
plaintext is never stored or compared.
"""

from typing import Optional

import bcrypt

from playhub.api.config import settings
from playhub.api.errors import BadRequestError


# bcrypt only looks at the first 72 bytes of input
MAX_PASSWORD_BYTES = 72

_dummy_hash: Optional[bytes] = None


def hash_password(password: str, rounds: Optional[int] = None) -> str:
    """
    Hash a password with a fresh salt.

    Raises:
        BadRequestError: If the password is longer than bcrypt can hash
    """
    encoded = password.encode()
    if len(encoded) > MAX_PASSWORD_BYTES:
        raise BadRequestError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")

    salt = bcrypt.gensalt(rounds=rounds or settings.BCRYPT_ROUNDS)
    return bcrypt.hashpw(encoded, salt).decode()


def verify_password(password: str, stored_hash: str) -> bool:
    """Check a candidate password against a stored hash."""
    encoded = password.encode()
    if len(encoded) > MAX_PASSWORD_BYTES or not stored_hash:
        return False
    try:
        return bcrypt.checkpw(encoded, stored_hash.encode())
    except ValueError:
        # Malformed stored hash
        return False


def burn_verification() -> None:
    """
    Spend the same time as a real verification.

    Called when the username does not exist so the response time does
    not reveal whether an account exists.
    """
    global _dummy_hash
    if _dummy_hash is None:
        _dummy_hash = bcrypt.hashpw(b"playhub-timing", bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS))
    bcrypt.checkpw(b"playhub-timing-mismatch", _dummy_hash)
