from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict

from portal_auth.routers.deps import get_identity_provider, get_profile_store
from portal_auth.services.identity import IdentityProvider
from portal_auth.services.login_verifier import verify_login as run_verify_login
from portal_auth.services.password_reset import complete_password_reset as run_complete_password_reset
from portal_auth.services.profile_store import ProfileStore

router = APIRouter(tags=["functions"])


# Fields are optional here so that a missing one yields the function's own 400 message.
class VerifyLoginRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    email: Optional[str] = None
    password: Optional[str] = None


class CompletePasswordResetRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    user_id: Optional[str] = None
    email: Optional[str] = None
    new_password: Optional[str] = None


@router.post("/verify-login")
def verify_login(
    payload: VerifyLoginRequest,
    store: ProfileStore = Depends(get_profile_store),
    identity: IdentityProvider = Depends(get_identity_provider),
):
    result = run_verify_login(payload.email, payload.password, store=store, identity=identity)
    return result.to_response()


@router.post("/complete-password-reset")
def complete_password_reset(
    payload: CompletePasswordResetRequest,
    store: ProfileStore = Depends(get_profile_store),
    identity: IdentityProvider = Depends(get_identity_provider),
):
    run_complete_password_reset(
        payload.user_id,
        payload.email,
        payload.new_password,
        store=store,
        identity=identity,
    )
    return {"success": True}
