"""
Password hashing and verification utilities.

Follows Layer 1 rules:
- Always use a strong hashing algorithm (bcrypt, cost from BCRYPT_ROUNDS)
- NEVER log plaintext passwords or hashes
"""
from __future__ import annotations
import bcrypt
from core.config import settings


def _to_bytes(x) -> bytes:
    """Convert input to bytes for bcrypt."""
    if x is None:
        return b""
    if isinstance(x, (bytes, bytearray)):
        return bytes(x)
    return str(x).encode()


def hash_password(plain: str, rounds: int | None = None) -> str:
    """
    Hash a plaintext password using bcrypt.

    Args:
        plain: Plaintext password
        rounds: Cost factor override (defaults to settings.BCRYPT_ROUNDS)

    Returns:
        Hashed password string
    """
    salt = bcrypt.gensalt(rounds=rounds or settings.BCRYPT_ROUNDS)
    return bcrypt.hashpw(_to_bytes(plain), salt).decode()


def verify_password(plain: str, hashed: str | None) -> bool:
    """
    Verify a plaintext password against a hash.

    A missing or corrupt hash never matches.
    """
    if not hashed:
        return False
    try:
        return bcrypt.checkpw(_to_bytes(plain), _to_bytes(hashed))
    except ValueError:
        return False
