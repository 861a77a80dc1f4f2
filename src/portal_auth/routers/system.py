from __future__ import annotations

from fastapi import APIRouter

from portal_auth.core.config import get_settings

router = APIRouter(prefix="/system", tags=["system"])


BUILD_TAG = "portal-auth-2026-10-19"


@router.get("/health")
def health():
    return {"status": "ok"}


@router.get("/info")
def info():
    s = get_settings()
    # No secrets here
    return {
        "build_tag": BUILD_TAG,
        "app_name": s.app_name,
        "env": s.env,
        "database_url": "sqlite" if s.database_url.startswith("sqlite") else "other",
        "functions_prefix": s.functions_prefix,
        "identity_provider": s.identity_provider,
        "identity_configured": s.identity_provider == "local" or bool((s.identity_url or "").strip()),
        "temp_password_scheme": s.temp_password_scheme,
    }
