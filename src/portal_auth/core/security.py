from __future__ import annotations

import secrets
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import jwt
from passlib.context import CryptContext

from portal_auth.core.config import get_settings

_pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# Temporary passwords: legacy rows hold an unsalted hex SHA-256 digest, newer
# rows may hold bcrypt. The stored value identifies its own scheme.
_temp_context = CryptContext(schemes=["bcrypt", "hex_sha256"])

# Alphabet without ambiguous glyphs (0/O, 1/l/I).
_UPPER = "ABCDEFGHJKLMNPQRSTUVWXYZ"
_LOWER = "abcdefghjkmnpqrstuvwxyz"
_DIGITS = "23456789"
_SPECIAL = "!@#$%&*+-=?"


def hash_password(password: str) -> str:
    return _pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return _pwd_context.verify(plain_password, hashed_password)


def hash_temporary_password(password: str, *, scheme: str | None = None) -> str:
    scheme = scheme or get_settings().temp_password_scheme
    return _temp_context.handler(scheme).hash(password)


def verify_temporary_password(password: str, stored_hash: str | None) -> bool:
    """Check a submitted password against a stored temporary password hash.

    An empty or unrecognised stored value never matches.
    """

    if not stored_hash:
        return False
    try:
        return _temp_context.verify(password, stored_hash)
    except ValueError:
        return False


def generate_temporary_password(length: int = 16) -> str:
    if length < 4:
        raise ValueError("temporary passwords need at least 4 characters")
    rng = secrets.SystemRandom()
    alphabet = _UPPER + _LOWER + _DIGITS + _SPECIAL
    chars = [
        rng.choice(_UPPER),
        rng.choice(_LOWER),
        rng.choice(_DIGITS),
        rng.choice(_SPECIAL),
    ]
    chars.extend(rng.choice(alphabet) for _ in range(length - 4))
    rng.shuffle(chars)
    return "".join(chars)


def create_access_token(*, subject: str, extra_claims: dict[str, Any] | None = None) -> tuple[str, datetime]:
    settings = get_settings()
    now = datetime.now(timezone.utc)
    expire = now + timedelta(minutes=settings.access_token_expire_minutes)
    to_encode: dict[str, Any] = {"sub": subject, "iat": int(now.timestamp()), "exp": int(expire.timestamp())}
    if extra_claims:
        to_encode.update(extra_claims)
    return jwt.encode(to_encode, settings.jwt_secret, algorithm=settings.jwt_algorithm), expire
