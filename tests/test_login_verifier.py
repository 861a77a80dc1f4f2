from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from portal_auth.core.errors import AccountDisabledError, AuthError, ExpiredCredentialError, ValidationError
from portal_auth.core.security import hash_temporary_password
from portal_auth.models.profile import Profile
from portal_auth.services import login_verifier
from portal_auth.services.login_verifier import LoginVerifier, verify_login

NOW = datetime(2026, 3, 1, 12, 0, 0)
TEMP_PASSWORD = "Tmp$Secret42"
REAL_PASSWORD = "Real#Passw0rd"


def _profile(*, requires_reset=True, temp=TEMP_PASSWORD, expires_at=None, is_active=True, scheme="hex_sha256"):
    return Profile(
        id="user-1",
        email="Ada@Example.com",
        is_active=is_active,
        requires_password_reset=requires_reset,
        temporary_password_hash=hash_temporary_password(temp, scheme=scheme) if temp else None,
        temp_password_expires_at=expires_at,
    )


@pytest.fixture
def identity(fake_identity_factory):
    return fake_identity_factory({"ada@example.com": ("user-1", REAL_PASSWORD)})


@pytest.mark.parametrize(("email", "password"), [(None, "x"), ("a@b.c", None), ("", "x"), ("a@b.c", "")])
def test_missing_fields_are_rejected(fake_store_factory, identity, email, password):
    with pytest.raises(ValidationError) as exc_info:
        verify_login(email, password, store=fake_store_factory(), identity=identity, now=NOW)
    assert exc_info.value.public_message == "Email and password are required"
    assert identity.sign_in_calls == []


def test_unknown_email_falls_back_to_standard_sign_in(fake_store_factory, fake_identity_factory):
    identity = fake_identity_factory({"bob@example.com": ("user-2", "Bob#Pass123")})
    result = verify_login("bob@example.com", "Bob#Pass123", store=fake_store_factory(), identity=identity, now=NOW)

    assert result.requires_reset is False
    assert result.strategy == "standard_sign_in"
    assert result.user.id == "user-2"
    body = result.to_response()
    assert body["success"] is True
    assert body["session"]["access_token"] == "token-user-2"
    assert body["user"] == {"id": "user-2", "email": "bob@example.com"}


def test_unknown_email_with_bad_password_is_auth_error(fake_store_factory, identity):
    with pytest.raises(AuthError):
        verify_login("nobody@example.com", "whatever", store=fake_store_factory(), identity=identity, now=NOW)


def test_profile_without_reset_never_compares_temporary_hash(fake_store_factory, identity, monkeypatch):
    def _fail(*_args, **_kwargs):
        raise AssertionError("temporary hash must not be checked")

    monkeypatch.setattr(login_verifier, "verify_temporary_password", _fail)
    # A stale hash without the flag must be ignored.
    store = fake_store_factory([_profile(requires_reset=False)])

    with pytest.raises(AuthError):
        verify_login("ada@example.com", TEMP_PASSWORD, store=store, identity=identity, now=NOW)

    result = verify_login("ada@example.com", REAL_PASSWORD, store=store, identity=identity, now=NOW)
    assert result.requires_reset is False
    assert store.clear_calls == []


def test_flag_without_hash_uses_standard_sign_in(fake_store_factory, identity):
    store = fake_store_factory([_profile(temp=None)])
    result = verify_login("ada@example.com", REAL_PASSWORD, store=store, identity=identity, now=NOW)
    assert result.strategy == "standard_sign_in"


@pytest.mark.parametrize("scheme", ["hex_sha256", "bcrypt"])
def test_matching_temporary_password_requires_reset(fake_store_factory, identity, scheme):
    store = fake_store_factory([_profile(expires_at=NOW + timedelta(hours=48), scheme=scheme)])

    result = verify_login("ada@example.com", TEMP_PASSWORD, store=store, identity=identity, now=NOW)

    assert result.requires_reset is True
    assert result.to_response() == {
        "success": True,
        "requires_reset": True,
        "user_id": "user-1",
        "email": "Ada@Example.com",
    }
    # No session is issued on the temporary path.
    assert identity.sign_in_calls == []
    assert store.clear_calls == []


def test_lookup_is_case_insensitive(fake_store_factory, identity):
    store = fake_store_factory([_profile()])
    result = verify_login("ADA@example.COM", TEMP_PASSWORD, store=store, identity=identity, now=NOW)
    assert result.requires_reset is True


def test_temporary_password_without_expiry_never_expires(fake_store_factory, identity):
    store = fake_store_factory([_profile(expires_at=None)])
    result = verify_login("ada@example.com", TEMP_PASSWORD, store=store, identity=identity, now=NOW + timedelta(days=365))
    assert result.requires_reset is True


def test_mismatch_falls_through_to_standard_sign_in(fake_store_factory, identity):
    store = fake_store_factory([_profile(expires_at=NOW + timedelta(hours=1))])

    result = verify_login("ada@example.com", REAL_PASSWORD, store=store, identity=identity, now=NOW)
    assert result.requires_reset is False
    assert result.strategy == "standard_sign_in"

    with pytest.raises(AuthError):
        verify_login("ada@example.com", "wrong-guess", store=store, identity=identity, now=NOW)
    assert store.clear_calls == []


@pytest.mark.parametrize("password", [TEMP_PASSWORD, REAL_PASSWORD, "wrong-guess"])
def test_expired_temporary_password_clears_state_and_fails(fake_store_factory, identity, password):
    profile = _profile(expires_at=NOW - timedelta(seconds=1))
    seen_hash = profile.temporary_password_hash
    store = fake_store_factory([profile])

    with pytest.raises(ExpiredCredentialError) as exc_info:
        verify_login("ada@example.com", password, store=store, identity=identity, now=NOW)

    assert exc_info.value.public_message == "Temporary password has expired. Please contact an administrator."
    assert store.clear_calls == [("user-1", seen_hash)]
    assert profile.requires_password_reset is False
    assert profile.temporary_password_hash is None
    assert profile.temp_password_expires_at is None
    assert identity.sign_in_calls == []


def test_expiry_boundary_is_strict(fake_store_factory, identity):
    store = fake_store_factory([_profile(expires_at=NOW)])
    result = verify_login("ada@example.com", TEMP_PASSWORD, store=store, identity=identity, now=NOW)
    assert result.requires_reset is True


def test_aware_timestamps_are_compared_in_utc(fake_store_factory, identity):
    # 13:30 at UTC+2 is 11:30 UTC, which is before NOW (12:00 UTC).
    expires = datetime(2026, 3, 1, 13, 30, tzinfo=timezone(timedelta(hours=2)))
    store = fake_store_factory([_profile(expires_at=expires)])
    with pytest.raises(ExpiredCredentialError):
        verify_login("ada@example.com", TEMP_PASSWORD, store=store, identity=identity, now=NOW)


def test_deactivated_account_with_valid_password_is_rejected(fake_store_factory, identity):
    store = fake_store_factory([_profile(requires_reset=False, temp=None, is_active=False)])

    with pytest.raises(AccountDisabledError):
        verify_login("ada@example.com", REAL_PASSWORD, store=store, identity=identity, now=NOW)

    assert identity.sign_in_calls == ["ada@example.com"]


def test_deactivated_account_with_temporary_password_is_rejected(fake_store_factory, identity):
    store = fake_store_factory([_profile(is_active=False)])

    with pytest.raises(AccountDisabledError):
        verify_login("ada@example.com", TEMP_PASSWORD, store=store, identity=identity, now=NOW)

    assert store.clear_calls == []


@pytest.mark.parametrize("requires_reset", [False, True])
def test_deactivated_account_with_wrong_password_is_generic(fake_store_factory, identity, requires_reset):
    store = fake_store_factory([_profile(requires_reset=requires_reset, is_active=False)])

    with pytest.raises(AuthError) as exc_info:
        verify_login("ada@example.com", "totally-wrong", store=store, identity=identity, now=NOW)

    assert exc_info.value.public_message == "Invalid credentials"


def test_failed_expiry_cleanup_still_reports_expiry(fake_store_factory, identity):
    store = fake_store_factory([_profile(expires_at=NOW - timedelta(minutes=1))], fail_clear=True)

    with pytest.raises(ExpiredCredentialError):
        verify_login("ada@example.com", TEMP_PASSWORD, store=store, identity=identity, now=NOW)

    assert len(store.clear_calls) == 1
    assert identity.sign_in_calls == []


def test_custom_strategy_order(fake_store_factory, identity):
    strategies = [
        ("temporary_password", login_verifier.temporary_password),
        ("standard_sign_in", login_verifier.standard_sign_in),
    ]
    # Without the expiry strategy an expired credential is still accepted.
    store = fake_store_factory([_profile(expires_at=NOW - timedelta(days=1))])
    result = LoginVerifier(store, identity, strategies).verify("ada@example.com", TEMP_PASSWORD, now=NOW)
    assert result.requires_reset is True


def test_no_strategy_resolving_is_auth_error(fake_store_factory, identity):
    verifier = LoginVerifier(fake_store_factory(), identity, strategies=[])
    with pytest.raises(AuthError):
        verifier.verify("ada@example.com", REAL_PASSWORD, now=NOW)
