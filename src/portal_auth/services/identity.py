from __future__ import annotations

from dataclasses import asdict, dataclass, field
import logging
from typing import Any, Optional, Protocol

import httpx
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from portal_auth.core.config import Settings
from portal_auth.core.errors import AuthError, CredentialUpdateError, IdentityProviderError
from portal_auth.core.security import create_access_token, hash_password, verify_password
from portal_auth.core.time import naive_utcnow
from portal_auth.models.auth_user import AuthUser

logger = logging.getLogger(__name__)

# Statuses a GoTrue-compatible server uses for rejected credentials.
_SIGN_IN_REJECTED = {400, 401, 403, 422}


@dataclass(frozen=True)
class AuthIdentity:
    id: str
    email: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class AuthSession:
    access_token: str
    user: AuthIdentity
    token_type: str = "bearer"
    expires_in: Optional[int] = None
    expires_at: Optional[int] = None
    refresh_token: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data.pop("user")
        return data


class IdentityProvider(Protocol):
    def sign_in_with_password(self, email: str, password: str) -> AuthSession: ...

    def admin_update_user_password(self, user_id: str, password: str) -> None: ...


class LocalIdentityProvider:
    """Primary credentials kept in the `auth_users` table (bcrypt + HS256 access tokens)."""

    def __init__(self, session: Session, *, token_minutes: int) -> None:
        self._session = session
        self._token_minutes = token_minutes

    def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        normalized = (email or "").strip().lower()
        user = self._session.exec(select(AuthUser).where(func.lower(AuthUser.email) == normalized)).first()
        if not user or not verify_password(password, user.hashed_password):
            raise AuthError("password sign-in rejected")

        token, expire = create_access_token(subject=user.id, extra_claims={"email": user.email})

        user.last_sign_in_at = naive_utcnow()
        try:
            self._session.add(user)
            self._session.commit()
            self._session.refresh(user)
        except SQLAlchemyError:
            # The sign-in itself succeeded; a stale last_sign_in_at is acceptable.
            self._session.rollback()
            logger.warning("Could not record sign-in time for user=%s", user.id, exc_info=True)

        return AuthSession(
            access_token=token,
            user=AuthIdentity(id=user.id, email=user.email),
            expires_in=self._token_minutes * 60,
            expires_at=int(expire.timestamp()),
        )

    def admin_update_user_password(self, user_id: str, password: str) -> None:
        user = self._session.get(AuthUser, user_id)
        if not user:
            raise CredentialUpdateError(f"no identity account for user {user_id}")

        user.hashed_password = hash_password(password)
        try:
            self._session.add(user)
            self._session.commit()
        except SQLAlchemyError as e:
            self._session.rollback()
            raise CredentialUpdateError(f"could not store new password for user {user_id}") from e


@dataclass(frozen=True)
class GoTrueConfig:
    base_url: str
    anon_key: str
    service_role_key: str
    timeout_seconds: float = 10.0


@dataclass
class GoTrueIdentityProvider:
    """Hosted GoTrue-compatible auth service, called over its REST API.

    `transport` is only set by tests (httpx.MockTransport).
    """

    config: GoTrueConfig
    transport: Optional[httpx.BaseTransport] = field(default=None, repr=False)

    def _client(self) -> httpx.Client:
        # Do not pick up proxy settings from the environment.
        return httpx.Client(
            base_url=self.config.base_url.rstrip("/"),
            timeout=self.config.timeout_seconds,
            trust_env=False,
            transport=self.transport,
        )

    def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        headers = {"apikey": self.config.anon_key, "Authorization": f"Bearer {self.config.anon_key}"}
        try:
            with self._client() as client:
                resp = client.post(
                    "/auth/v1/token",
                    params={"grant_type": "password"},
                    json={"email": email, "password": password},
                    headers=headers,
                )
        except httpx.HTTPError as e:
            raise IdentityProviderError("identity service unreachable during sign-in") from e

        if resp.status_code in _SIGN_IN_REJECTED:
            raise AuthError(f"identity service rejected sign-in ({resp.status_code})")
        if resp.is_error:
            raise IdentityProviderError(f"identity service sign-in failed ({resp.status_code})")

        data = resp.json()
        user = data.get("user") or {}
        return AuthSession(
            access_token=data["access_token"],
            user=AuthIdentity(id=str(user.get("id") or ""), email=str(user.get("email") or email)),
            token_type=data.get("token_type") or "bearer",
            expires_in=data.get("expires_in"),
            expires_at=data.get("expires_at"),
            refresh_token=data.get("refresh_token"),
        )

    def admin_update_user_password(self, user_id: str, password: str) -> None:
        key = self.config.service_role_key
        headers = {"apikey": key, "Authorization": f"Bearer {key}"}
        try:
            with self._client() as client:
                resp = client.put(f"/auth/v1/admin/users/{user_id}", json={"password": password}, headers=headers)
        except httpx.HTTPError as e:
            raise CredentialUpdateError(f"identity service unreachable while updating user {user_id}") from e

        if resp.is_error:
            raise CredentialUpdateError(
                f"identity service refused password update for user {user_id} ({resp.status_code}): {resp.text[:200]}"
            )


def build_identity_provider(settings: Settings, session: Session) -> IdentityProvider:
    if settings.identity_provider == "gotrue":
        return GoTrueIdentityProvider(
            GoTrueConfig(
                base_url=settings.identity_url,
                anon_key=settings.identity_anon_key,
                service_role_key=settings.identity_service_role_key,
                timeout_seconds=settings.identity_timeout_seconds,
            )
        )
    return LocalIdentityProvider(session, token_minutes=settings.access_token_expire_minutes)
