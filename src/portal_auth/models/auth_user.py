from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import uuid4

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel

from portal_auth.core.time import naive_utcnow


class AuthUser(SQLModel, table=True):
    """Account record of the built-in identity provider."""

    __tablename__ = "auth_users"

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    email: str = Field(index=True, unique=True)
    hashed_password: str
    created_at: datetime = Field(default_factory=naive_utcnow, sa_type=DateTime)
    last_sign_in_at: Optional[datetime] = Field(default=None, sa_type=DateTime)
