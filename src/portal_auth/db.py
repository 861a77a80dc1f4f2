from __future__ import annotations

from functools import lru_cache
import os

from sqlalchemy import event
from sqlalchemy.pool import NullPool
from sqlmodel import SQLModel, Session, create_engine

from portal_auth.core.config import get_settings
from portal_auth.db_migrations import apply_sqlite_migrations


def _connect_args(database_url: str) -> dict:
    # SQLite needs this when FastAPI runs sync endpoints in a threadpool
    if database_url.startswith("sqlite"):
        return {"check_same_thread": False}
    return {}


@lru_cache
def _engine_for_url(database_url: str):
    engine_kwargs = {
        "echo": False,
        "connect_args": _connect_args(database_url),
        "pool_pre_ping": True,
    }
    # Serverless (e.g. Vercel): do not keep connections around between invocations.
    # SQLite: per-checkout connections avoid QueuePool timeouts under bursts.
    if os.environ.get("VERCEL") or os.environ.get("VERCEL_ENV"):
        engine_kwargs["poolclass"] = NullPool
    elif database_url.startswith("sqlite"):
        engine_kwargs["poolclass"] = NullPool

    engine = create_engine(database_url, **engine_kwargs)

    if database_url.startswith("sqlite"):
        @event.listens_for(engine, "connect")
        def _set_sqlite_pragma(dbapi_connection, _connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return engine


def get_engine():
    settings = get_settings()
    return _engine_for_url(settings.database_url)


def init_db() -> None:
    # Table models must be imported so they register on SQLModel.metadata
    import portal_auth.models  # noqa: F401

    engine = get_engine()
    SQLModel.metadata.create_all(engine)

    # create_all does not alter existing tables; patch older SQLite files in place
    settings = get_settings()
    if settings.database_url.startswith("sqlite"):
        apply_sqlite_migrations(engine)


def get_session():
    with Session(get_engine()) as session:
        yield session
