from __future__ import annotations

import logging

from portal_auth.core.errors import CredentialUpdateError, ValidationError
from portal_auth.services.identity import IdentityProvider
from portal_auth.services.password_policy import enforce_password_policy
from portal_auth.services.profile_store import ProfileStore

logger = logging.getLogger(__name__)


def complete_password_reset(
    user_id: str | None,
    email: str | None,
    new_password: str | None,
    *,
    store: ProfileStore,
    identity: IdentityProvider,
) -> None:
    """Validate, rotate the primary credential, then clear the forced-reset fields.

    Safe to repeat with the same input; it does not require the profile to still be
    in forced-reset state. If clearing fails after the credential was rotated the
    error is still raised, and a retry only has to redo the clear.
    """

    if not user_id or not email or not new_password:
        raise ValidationError("user_id, email, and new_password are required")

    enforce_password_policy(new_password, email)

    try:
        identity.admin_update_user_password(user_id, new_password)
    except CredentialUpdateError:
        logger.exception("Password update rejected by identity provider for user=%s", user_id)
        raise

    store.clear_reset_state(user_id)
    logger.info("Password reset completed for user=%s", user_id)
