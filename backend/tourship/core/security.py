"""
Password hashing, JWT issuance and password reset tokens
"""

import hashlib
import secrets
from datetime import datetime, timedelta

from jose import JWTError, jwt
from passlib.hash import pbkdf2_sha256

from tourship.core.config import (
    JWT_ALGORITHM,
    JWT_EXPIRATION_DAYS,
    JWT_SECRET,
    PASSWORD_RESET_EXPIRE_MINUTES,
)

# Verified against when the email is unknown so both login failures cost the same
_DUMMY_HASH = pbkdf2_sha256.hash("tourship-dummy-password")


def hash_password(password: str) -> str:
    return pbkdf2_sha256.hash(password)


def verify_password(password: str, password_hash: str | None) -> bool:
    if not password_hash:
        pbkdf2_sha256.verify(password, _DUMMY_HASH)
        return False
    try:
        return pbkdf2_sha256.verify(password, password_hash)
    except ValueError:
        # Malformed stored hash
        return False


def create_access_token(user: dict) -> str:
    payload = {
        "id": str(user["_id"]),
        "email": user.get("email"),
        "role": user.get("role"),
        "exp": datetime.utcnow() + timedelta(days=JWT_EXPIRATION_DAYS),
    }
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGORITHM)


def decode_access_token(token: str) -> dict | None:
    """Return the token payload, or None if it is invalid or expired."""
    try:
        return jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except JWTError:
        return None


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def generate_reset_token(now: datetime | None = None) -> tuple[str, str, datetime]:
    """
    Create a password reset token.

    Returns (raw_token, token_hash, expires_at). Only the hash is stored;
    the raw token goes to the user.
    """
    now = now or datetime.utcnow()
    raw = secrets.token_hex(32)
    return raw, hash_token(raw), now + timedelta(minutes=PASSWORD_RESET_EXPIRE_MINUTES)
