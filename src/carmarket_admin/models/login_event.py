# src/carmarket_admin/models/login_event.py
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import DateTime, Index
from sqlmodel import SQLModel, Field

from carmarket_admin.core.clock import utcnow


class LoginStatus(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"


class LoginEvent(SQLModel, table=True):
    """Append-only audit row, one per login attempt."""

    __tablename__ = "login_events"
    __table_args__ = (
        Index("ix_login_events_admin_ts", "admin_id", "timestamp"),
        Index("ix_login_events_email_ts", "email", "timestamp"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    admin_id: Optional[int] = Field(default=None, foreign_key="admins.id", ondelete="SET NULL")
    email: str = Field(nullable=False, max_length=320)
    admin_name: str = Field(nullable=False, max_length=200)
    timestamp: datetime = Field(default_factory=utcnow, nullable=False, index=True, sa_type=DateTime)
    ip_address: Optional[str] = Field(default=None, max_length=64)
    user_agent: Optional[str] = Field(default=None, max_length=512)
    status: LoginStatus = Field(nullable=False)
    failure_reason: Optional[str] = Field(default=None, max_length=200)
