from __future__ import annotations

from fastapi import Depends
from sqlmodel import Session

from portal_auth.core.config import get_settings
from portal_auth.db import get_session
from portal_auth.services.identity import IdentityProvider, build_identity_provider
from portal_auth.services.profile_store import ProfileStore


def get_profile_store(session: Session = Depends(get_session)) -> ProfileStore:
    return ProfileStore(session)


def get_identity_provider(session: Session = Depends(get_session)) -> IdentityProvider:
    return build_identity_provider(get_settings(), session)
