from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import text
from sqlalchemy.engine import Engine


@dataclass(frozen=True)
class _ColumnSpec:
    name: str
    sql_type: str


def _table_exists(conn, table_name: str) -> bool:
    row = conn.execute(
        text("SELECT name FROM sqlite_master WHERE type='table' AND name=:name"), {"name": table_name}
    ).fetchone()
    return row is not None


def _existing_columns(conn, table_name: str) -> set[str]:
    rows = conn.execute(text(f"PRAGMA table_info({table_name})")).fetchall()
    return {r[1] for r in rows}  # name


def _index_exists(conn, index_name: str) -> bool:
    row = conn.execute(
        text("SELECT name FROM sqlite_master WHERE type='index' AND name=:name"), {"name": index_name}
    ).fetchone()
    return row is not None


def _add_column_if_missing(conn, *, table: str, col: _ColumnSpec) -> None:
    if col.name in _existing_columns(conn, table):
        return
    conn.execute(text(f"ALTER TABLE {table} ADD COLUMN {col.name} {col.sql_type}"))


def _create_index_if_missing(conn, *, index_name: str, table: str, column: str) -> None:
    if _index_exists(conn, index_name):
        return
    conn.execute(text(f"CREATE INDEX IF NOT EXISTS {index_name} ON {table} ({column})"))


MIGRATIONS: dict[str, list[_ColumnSpec]] = {
    # Profiles created before the forced-reset flow existed
    "profiles": [
        _ColumnSpec("full_name", "VARCHAR"),
        _ColumnSpec("is_active", "BOOLEAN DEFAULT 1"),
        _ColumnSpec("requires_password_reset", "BOOLEAN DEFAULT 0"),
        _ColumnSpec("temporary_password_hash", "VARCHAR"),
        _ColumnSpec("temp_password_expires_at", "TIMESTAMP"),
        _ColumnSpec("updated_at", "TIMESTAMP"),
    ],
    "auth_users": [
        _ColumnSpec("last_sign_in_at", "TIMESTAMP"),
    ],
}

INDEXES: list[tuple[str, str, str]] = [
    ("ix_profiles_is_active", "profiles", "is_active"),
    ("ix_profiles_temp_password_expires_at", "profiles", "temp_password_expires_at"),
]


def apply_sqlite_migrations(engine: Engine) -> None:
    """Apply lightweight SQLite migrations for existing DB files.

    Only ADD COLUMN / CREATE INDEX; anything heavier belongs in a real migration tool.
    """

    with engine.begin() as conn:
        for table, cols in MIGRATIONS.items():
            if not _table_exists(conn, table):
                continue
            for col in cols:
                _add_column_if_missing(conn, table=table, col=col)

        for index_name, table, column in INDEXES:
            if not _table_exists(conn, table):
                continue
            _create_index_if_missing(conn, index_name=index_name, table=table, column=column)
