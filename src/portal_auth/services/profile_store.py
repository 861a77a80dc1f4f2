from __future__ import annotations

import logging

from sqlalchemy import func, update
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from portal_auth.core.errors import ProfileUpdateError
from portal_auth.core.time import naive_utcnow
from portal_auth.models.profile import Profile

logger = logging.getLogger(__name__)


class ProfileStore:
    """Reads and clears forced-reset state on the `profiles` table.

    Built per request around the request's session; nothing is cached between calls.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def get_by_email(self, email: str) -> Profile | None:
        normalized = (email or "").strip().lower()
        if not normalized:
            return None
        return self._session.exec(select(Profile).where(func.lower(Profile.email) == normalized)).first()

    def clear_reset_state(self, profile_id: str, *, expected_hash: str | None = None) -> bool:
        """Clear the three reset fields in a single UPDATE.

        With `expected_hash` the update only applies while the stored hash is still the one
        the caller read, so a temporary password re-issued in the meantime survives.
        Returns True when a row was updated.
        """

        stmt = update(Profile).where(Profile.id == profile_id)
        if expected_hash is not None:
            stmt = stmt.where(Profile.temporary_password_hash == expected_hash)
        stmt = stmt.values(
            requires_password_reset=False,
            temporary_password_hash=None,
            temp_password_expires_at=None,
            updated_at=naive_utcnow(),
        )

        try:
            result = self._session.connection().execute(stmt)
            self._session.commit()
        except SQLAlchemyError as e:
            self._session.rollback()
            logger.exception("Clearing reset state failed for profile=%s", profile_id)
            raise ProfileUpdateError(f"could not clear reset state for profile {profile_id}") from e

        updated = (result.rowcount or 0) > 0
        if not updated:
            logger.info("No reset state cleared for profile=%s (missing or changed concurrently)", profile_id)
        return updated
