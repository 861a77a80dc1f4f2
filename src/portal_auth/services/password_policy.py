from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from portal_auth.core.errors import PolicyViolationError

MIN_LENGTH = 8

# ASCII-only classes: accepting other Unicode letters would change which passwords pass.
UPPERCASE = frozenset("ABCDEFGHIJKLMNOPQRSTUVWXYZ")
LOWERCASE = frozenset("abcdefghijklmnopqrstuvwxyz")
DIGITS = frozenset("0123456789")
SPECIAL = frozenset("!@#$%^&*()_+-=[]{};':\"\\|,.<>/?")


@dataclass(frozen=True)
class PolicyCheck:
    valid: bool
    error: Optional[str] = None


def _has_any(password: str, charset: frozenset[str]) -> bool:
    return any(ch in charset for ch in password)


def check_password(password: str, email: str) -> PolicyCheck:
    """Validate a new password. Rules run in a fixed order and the first failure wins."""

    if len(password) < MIN_LENGTH:
        return PolicyCheck(False, f"Password must be at least {MIN_LENGTH} characters long")
    if not _has_any(password, UPPERCASE):
        return PolicyCheck(False, "Password must contain at least one uppercase letter")
    if not _has_any(password, LOWERCASE):
        return PolicyCheck(False, "Password must contain at least one lowercase letter")
    if not _has_any(password, DIGITS):
        return PolicyCheck(False, "Password must contain at least one number")
    if not _has_any(password, SPECIAL):
        return PolicyCheck(False, "Password must contain at least one special character")

    local_part = email.split("@")[0].lower()
    if local_part in password.lower():
        return PolicyCheck(False, "Password cannot contain your email address")

    return PolicyCheck(True)


def enforce_password_policy(password: str, email: str) -> None:
    result = check_password(password, email)
    if not result.valid:
        raise PolicyViolationError(result.error or "Password does not meet the password policy")
