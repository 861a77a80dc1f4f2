from __future__ import annotations

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

IDENTITY_PROVIDERS = ("local", "gotrue")
TEMP_PASSWORD_SCHEMES = ("hex_sha256", "bcrypt")


class Settings(BaseSettings):
    # Secrets may live in .env.local (not committed) while .env stays non-sensitive.
    # NOTE: tests set PYTEST_RUNNING=1 to avoid reading local .env/.env.local.
    model_config = SettingsConfigDict(
        env_file=None if os.environ.get("PYTEST_RUNNING") else (".env", ".env.local"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    env: str = "dev"
    app_name: str = "portal-auth-functions"
    database_url: str = "sqlite:///./app.db"
    log_level: str = "INFO"

    # Functions are reachable both at /<name> and under this prefix.
    functions_prefix: str = "/functions/v1"

    jwt_secret: str = "change-me-in-prod"
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60

    # Primary identity provider: "local" (auth_users table) or "gotrue" (hosted auth service)
    identity_provider: str = "local"
    identity_url: str = ""
    identity_anon_key: str = ""
    identity_service_role_key: str = ""
    identity_timeout_seconds: float = 10.0

    # Scheme used when issuing temporary password hashes. Verification accepts every known scheme.
    temp_password_scheme: str = "hex_sha256"


def _validate_settings(s: Settings) -> None:
    # Security: avoid shipping with the default secret outside dev.
    if (not s.jwt_secret) or (s.jwt_secret.strip() == "change-me-in-prod"):
        if str(s.env).lower() != "dev":
            raise RuntimeError("JWT_SECRET is not set or still uses the default value")

    provider = str(s.identity_provider).strip().lower()
    if provider not in IDENTITY_PROVIDERS:
        raise RuntimeError(
            f"IDENTITY_PROVIDER must be one of {', '.join(IDENTITY_PROVIDERS)}; got {s.identity_provider!r}"
        )

    if provider == "gotrue":
        missing: list[str] = []
        if not str(s.identity_url).strip():
            missing.append("IDENTITY_URL")
        if not str(s.identity_anon_key).strip():
            missing.append("IDENTITY_ANON_KEY")
        if not str(s.identity_service_role_key).strip():
            missing.append("IDENTITY_SERVICE_ROLE_KEY")
        if missing:
            raise RuntimeError("IDENTITY_PROVIDER=gotrue requires " + ", ".join(missing))

    if str(s.temp_password_scheme).strip() not in TEMP_PASSWORD_SCHEMES:
        raise RuntimeError(
            f"TEMP_PASSWORD_SCHEME must be one of {', '.join(TEMP_PASSWORD_SCHEMES)}; got {s.temp_password_scheme!r}"
        )


def get_settings() -> Settings:
    # python-dotenv only injects non-empty values so that blank placeholders in
    # .env (e.g. IDENTITY_URL=) do not shadow real environment variables.
    # Under pytest no dotenv file is read.
    if not os.environ.get("PYTEST_RUNNING"):
        from dotenv import dotenv_values

        def _inject_non_empty(path: str, *, allow_override_empty: bool) -> None:
            vals = dotenv_values(path)
            for k, v in (vals or {}).items():
                if k is None or v is None:
                    continue
                vv = str(v)
                if not vv.strip():
                    continue
                cur = os.environ.get(k)
                if cur is None:
                    os.environ[k] = vv
                elif allow_override_empty and str(cur).strip() == "":
                    os.environ[k] = vv

        # .env: only fill missing keys
        _inject_non_empty(".env", allow_override_empty=False)
        # .env.local: fill missing keys and replace empty placeholders
        _inject_non_empty(".env.local", allow_override_empty=True)

    settings = Settings()
    settings.identity_provider = str(settings.identity_provider).strip().lower()

    # We ship psycopg3 (`psycopg`), so normalize plain postgres URLs to
    # `postgresql+psycopg://...` to avoid SQLAlchemy defaulting to psycopg2.
    db_url = str(settings.database_url or "").strip()
    if db_url and ("+" not in db_url.split("://", 1)[0]):
        if db_url.startswith("postgresql://"):
            settings.database_url = "postgresql+psycopg://" + db_url[len("postgresql://") :]
        elif db_url.startswith("postgres://"):
            settings.database_url = "postgresql+psycopg://" + db_url[len("postgres://") :]

    # Vercel Functions can only write under /tmp; the default ./app.db would fail there.
    if os.environ.get("VERCEL") or os.environ.get("VERCEL_ENV"):
        if str(settings.database_url).strip() == "sqlite:///./app.db":
            settings.database_url = "sqlite:////tmp/app.db"

    _validate_settings(settings)
    return settings
