import os
import sys
from pathlib import Path

import pytest

# Make the package under src importable without installing it
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
sys.path.insert(0, str(SRC))

# Separate database file so tests never touch app.db
os.environ.setdefault("DATABASE_URL", "sqlite:///./test.db")

# Tell the config loader not to read .env/.env.local
os.environ["PYTEST_RUNNING"] = "1"

# Tests always use the built-in identity provider unless they opt in otherwise
os.environ["IDENTITY_PROVIDER"] = "local"

from portal_auth.core.errors import AuthError, CredentialUpdateError, ProfileUpdateError  # noqa: E402
from portal_auth.services.identity import AuthIdentity, AuthSession  # noqa: E402


class FakeProfileStore:
    """In-memory stand-in for ProfileStore that records every clear."""

    def __init__(self, profiles=(), *, fail_clear: bool = False) -> None:
        self.profiles = {p.id: p for p in profiles}
        self.fail_clear = fail_clear
        self.clear_calls: list[tuple[str, object]] = []

    def get_by_email(self, email):
        normalized = (email or "").strip().lower()
        for p in self.profiles.values():
            if p.email.lower() == normalized:
                return p
        return None

    def clear_reset_state(self, profile_id, *, expected_hash=None):
        self.clear_calls.append((profile_id, expected_hash))
        if self.fail_clear:
            raise ProfileUpdateError(f"simulated failure for {profile_id}")
        p = self.profiles.get(profile_id)
        if p is None:
            return False
        if expected_hash is not None and p.temporary_password_hash != expected_hash:
            return False
        p.requires_password_reset = False
        p.temporary_password_hash = None
        p.temp_password_expires_at = None
        return True


class FakeIdentityProvider:
    """In-memory identity provider keyed by email."""

    def __init__(self, accounts=None, *, fail_update: bool = False) -> None:
        # email -> (user_id, password)
        self.accounts = dict(accounts or {})
        self.fail_update = fail_update
        self.sign_in_calls: list[str] = []
        self.update_calls: list[tuple[str, str]] = []

    def sign_in_with_password(self, email, password):
        self.sign_in_calls.append(email)
        account = self.accounts.get(email.lower())
        if not account or account[1] != password:
            raise AuthError("fake sign-in rejected")
        user_id = account[0]
        return AuthSession(access_token=f"token-{user_id}", user=AuthIdentity(id=user_id, email=email.lower()))

    def admin_update_user_password(self, user_id, password):
        self.update_calls.append((user_id, password))
        if self.fail_update:
            raise CredentialUpdateError(f"simulated rejection for {user_id}")
        for email, (uid, _old) in list(self.accounts.items()):
            if uid == user_id:
                self.accounts[email] = (uid, password)


@pytest.fixture
def fake_store_factory():
    return FakeProfileStore


@pytest.fixture
def fake_identity_factory():
    return FakeIdentityProvider
