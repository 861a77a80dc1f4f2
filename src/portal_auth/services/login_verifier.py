from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import datetime
import logging
from typing import Any, Optional

from portal_auth.core.errors import (
    AccountDisabledError,
    AuthError,
    ExpiredCredentialError,
    ProfileUpdateError,
    ValidationError,
)
from portal_auth.core.security import verify_temporary_password
from portal_auth.core.time import as_naive_utc, naive_utcnow
from portal_auth.models.profile import Profile
from portal_auth.services.identity import AuthIdentity, AuthSession, IdentityProvider
from portal_auth.services.profile_store import ProfileStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LoginAttempt:
    email: str
    password: str
    profile: Optional[Profile]
    now: datetime  # naive UTC


@dataclass(frozen=True)
class LoginResult:
    requires_reset: bool
    strategy: str
    session: Optional[AuthSession] = None
    user: Optional[AuthIdentity] = None
    user_id: Optional[str] = None
    email: Optional[str] = None

    def to_response(self) -> dict[str, Any]:
        if self.requires_reset:
            return {"success": True, "requires_reset": True, "user_id": self.user_id, "email": self.email}
        return {
            "success": True,
            "requires_reset": False,
            "session": self.session.to_dict() if self.session else None,
            "user": self.user.to_dict() if self.user else None,
        }


# A strategy returns a final result, None for "not applicable", or raises a terminal error.
Strategy = Callable[[LoginAttempt, ProfileStore, IdentityProvider], Optional[LoginResult]]


def expired_temporary_password(
    attempt: LoginAttempt, store: ProfileStore, identity: IdentityProvider
) -> Optional[LoginResult]:
    profile = attempt.profile
    if profile is None or not profile.in_forced_reset():
        return None
    expires_at = profile.temp_password_expires_at
    if expires_at is None or not as_naive_utc(expires_at) < attempt.now:
        return None

    # Read the id and hash before the UPDATE commits and expires the instance.
    profile_id, seen_hash = profile.id, profile.temporary_password_hash
    try:
        store.clear_reset_state(profile_id, expected_hash=seen_hash)
    except ProfileUpdateError:
        logger.warning("Expired temporary password left in place for profile=%s", profile_id)
    raise ExpiredCredentialError(f"temporary password for profile {profile_id} expired at {expires_at.isoformat()}")


def temporary_password(attempt: LoginAttempt, store: ProfileStore, identity: IdentityProvider) -> Optional[LoginResult]:
    profile = attempt.profile
    if profile is None or not profile.in_forced_reset():
        return None
    if not verify_temporary_password(attempt.password, profile.temporary_password_hash):
        # The user may already know the real password; let standard sign-in decide.
        return None
    return LoginResult(
        requires_reset=True,
        strategy="temporary_password",
        user_id=profile.id,
        email=profile.email,
    )


def standard_sign_in(attempt: LoginAttempt, store: ProfileStore, identity: IdentityProvider) -> Optional[LoginResult]:
    session = identity.sign_in_with_password(attempt.email, attempt.password)
    return LoginResult(requires_reset=False, strategy="standard_sign_in", session=session, user=session.user)


def reject_deactivated(attempt: LoginAttempt, result: LoginResult) -> LoginResult:
    """Refuse an accepted credential when the profile has been deactivated.

    Runs only after a strategy accepted the password, so a wrong password on a
    deactivated account still gets the generic credentials error.
    """

    profile = attempt.profile
    if profile is not None and profile.is_active is False:
        raise AccountDisabledError(f"{result.strategy} accepted credentials of deactivated profile {profile.id}")
    return result


DEFAULT_STRATEGIES: tuple[tuple[str, Strategy], ...] = (
    ("expired_temporary_password", expired_temporary_password),
    ("temporary_password", temporary_password),
    ("standard_sign_in", standard_sign_in),
)


class LoginVerifier:
    """Decides whether a login is a normal sign-in or must continue with a password reset."""

    def __init__(
        self,
        store: ProfileStore,
        identity: IdentityProvider,
        strategies: Sequence[tuple[str, Strategy]] = DEFAULT_STRATEGIES,
    ) -> None:
        self._store = store
        self._identity = identity
        self._strategies = tuple(strategies)

    def verify(self, email: str | None, password: str | None, *, now: datetime | None = None) -> LoginResult:
        if not email or not password:
            raise ValidationError("Email and password are required")

        profile = self._store.get_by_email(email)
        attempt = LoginAttempt(
            email=email,
            password=password,
            profile=profile,
            now=as_naive_utc(now) if now is not None else naive_utcnow(),
        )
        logger.debug("verify-login profile_found=%s", profile is not None)

        for name, strategy in self._strategies:
            result = strategy(attempt, self._store, self._identity)
            if result is not None:
                logger.info("verify-login resolved by %s (requires_reset=%s)", name, result.requires_reset)
                return reject_deactivated(attempt, result)

        raise AuthError("no login strategy accepted the attempt")


def verify_login(
    email: str | None,
    password: str | None,
    *,
    store: ProfileStore,
    identity: IdentityProvider,
    now: datetime | None = None,
) -> LoginResult:
    return LoginVerifier(store, identity).verify(email, password, now=now)
