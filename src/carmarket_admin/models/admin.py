# src/carmarket_admin/models/admin.py
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import DateTime
from sqlmodel import SQLModel, Field

from carmarket_admin.core.clock import utcnow


class AdminRole(str, Enum):
    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"


class Admin(SQLModel, table=True):
    __tablename__ = "admins"

    id: Optional[int] = Field(default=None, primary_key=True)
    # stored lower-cased; lookups normalize the same way
    email: str = Field(nullable=False, unique=True, index=True, max_length=320)
    hashed_password: str = Field(nullable=False)
    name: str = Field(nullable=False, max_length=200)
    role: AdminRole = Field(default=AdminRole.ADMIN, nullable=False)
    created_at: datetime = Field(default_factory=utcnow, nullable=False, sa_type=DateTime)
    updated_at: datetime = Field(
        default_factory=utcnow,
        nullable=False,
        sa_type=DateTime,
        sa_column_kwargs={"onupdate": utcnow},
    )

    # password reset
    last_password_reset_request: Optional[datetime] = Field(default=None, sa_type=DateTime)
    reset_password_token_hash: Optional[str] = Field(default=None, index=True, max_length=64)
    reset_password_expires_at: Optional[datetime] = Field(default=None, sa_type=DateTime)
    reset_password_attempts: int = Field(default=0, nullable=False)

    @property
    def is_super_admin(self) -> bool:
        return self.role == AdminRole.SUPER_ADMIN

    @property
    def has_pending_reset(self) -> bool:
        return self.reset_password_token_hash is not None
