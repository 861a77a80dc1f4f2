from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel

from portal_auth.core.time import naive_utcnow


class Profile(SQLModel, table=True):
    __tablename__ = "profiles"

    # Same id as the identity provider's user.
    id: str = Field(primary_key=True)
    email: str = Field(index=True, unique=True)
    full_name: Optional[str] = None
    is_active: bool = Field(default=True, index=True)

    # Forced-reset state. The three columns are set together by an administrator
    # and cleared together by the login functions.
    requires_password_reset: bool = Field(default=False)
    temporary_password_hash: Optional[str] = None
    # Naive UTC, like every timestamp in this schema. The column type is pinned so
    # SQLModel does not swap in a timezone-aware type that rejects naive values.
    temp_password_expires_at: Optional[datetime] = Field(default=None, index=True, sa_type=DateTime)

    created_at: datetime = Field(default_factory=naive_utcnow, sa_type=DateTime)
    updated_at: datetime = Field(default_factory=naive_utcnow, sa_type=DateTime)

    def in_forced_reset(self) -> bool:
        return bool(self.requires_password_reset) and bool(self.temporary_password_hash)
