# src/carmarket_admin/schemas/admin.py
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from carmarket_admin.models.admin import AdminRole
from carmarket_admin.models.login_event import LoginStatus


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# Requests: fields are optional so that missing values produce the
# route's own "... are required" message instead of a generic 422.
class AdminRegister(CamelModel):
    email: Optional[str] = None
    password: Optional[str] = None
    name: Optional[str] = None


class AdminLogin(CamelModel):
    email: Optional[str] = None
    password: Optional[str] = None


class ForgotPasswordRequest(CamelModel):
    email: Optional[str] = None


class ResetPasswordRequest(CamelModel):
    token: Optional[str] = None
    new_password: Optional[str] = None


# Responses
class AdminRead(CamelModel):
    id: int
    email: str
    name: str
    role: AdminRole


class AdminProfile(AdminRead):
    created_at: datetime
    updated_at: datetime


class AdminSummary(CamelModel):
    id: int
    email: str
    name: str


class AuthResponse(CamelModel):
    message: str
    token: str
    admin: AdminRead


class ProfileResponse(CamelModel):
    admin: AdminProfile


class AdminListResponse(CamelModel):
    admins: List[AdminProfile]


class AdminDeleteResponse(CamelModel):
    message: str
    admin: AdminSummary


class MessageResponse(CamelModel):
    message: str


class ResetTokenStatus(CamelModel):
    valid: bool
    email: Optional[str] = None
    message: Optional[str] = None


class LoginEventRead(CamelModel):
    id: int
    admin_id: Optional[int] = None
    email: str
    admin_name: str
    timestamp: datetime
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    status: LoginStatus
    failure_reason: Optional[str] = None


class LoginEventListResponse(CamelModel):
    events: List[LoginEventRead]
