# src/carmarket_admin/api/admin.py
import logging
import smtplib
from typing import Dict, Optional

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from carmarket_admin.core.config import settings
from carmarket_admin.core.db import get_session
from carmarket_admin.core.exceptions import AdminNotFound, BadRequest, InvalidCredentials, InvalidOrExpiredToken
from carmarket_admin.core.security import create_access_token
from carmarket_admin.core.validation import MIN_PASSWORD_LENGTH, is_valid_email
from carmarket_admin.crud.admin import (
    compare_password,
    create_admin,
    delete_admin,
    get_admin_by_email,
    get_admin_by_id,
    get_admin_by_reset_token,
    list_admins,
)
from carmarket_admin.crud.login_event import (
    DEFAULT_EVENT_PAGE_SIZE,
    MAX_EVENT_PAGE_SIZE,
    list_login_events,
    record_login_event,
)
from carmarket_admin.deps.auth import admin_id_from_claims, get_current_admin, require_super_admin
from carmarket_admin.deps.request_meta import get_client_ip, get_user_agent
from carmarket_admin.deps.services import get_mailer, registration_rate_limit
from carmarket_admin.models.admin import Admin
from carmarket_admin.models.login_event import LoginStatus
from carmarket_admin.schemas.admin import (
    AdminDeleteResponse,
    AdminListResponse,
    AdminLogin,
    AdminProfile,
    AdminRead,
    AdminRegister,
    AdminSummary,
    AuthResponse,
    ForgotPasswordRequest,
    LoginEventListResponse,
    LoginEventRead,
    MessageResponse,
    ProfileResponse,
    ResetPasswordRequest,
    ResetTokenStatus,
)
from carmarket_admin.service.email import EmailNotConfigured, Mailer, build_reset_url, send_password_reset_email
from carmarket_admin.service.password_reset import (
    abandon_reset,
    consume_reset_token,
    request_reset,
    validate_reset_token,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])

# Same text whether the account exists, is throttled or the mail failed.
FORGOT_PASSWORD_MESSAGE = "If an account exists with this email, a password reset link has been sent."
INVALID_RESET_TOKEN_MESSAGE = "Invalid or expired reset token"
PASSWORD_TOO_SHORT_MESSAGE = f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"


@router.post(
    "/register",
    status_code=status.HTTP_201_CREATED,
    response_model=AuthResponse,
    dependencies=[Depends(registration_rate_limit)],
)
async def register_admin(
    payload: AdminRegister,
    current_admin: Admin = Depends(require_super_admin),
    db: AsyncSession = Depends(get_session),
):
    name = (payload.name or "").strip()
    if not payload.email or not payload.password or not name:
        raise BadRequest("Email, password, and name are required")
    if not is_valid_email(payload.email):
        raise BadRequest("Invalid email format")
    if len(payload.password) < MIN_PASSWORD_LENGTH:
        raise BadRequest(PASSWORD_TOO_SHORT_MESSAGE)

    admin = await create_admin(db, email=payload.email, password=payload.password, name=name)
    logger.info("Admin %s registered by %s", admin.email, current_admin.email)

    return AuthResponse(
        message="Admin registered successfully",
        token=create_access_token(admin.id, admin.email),
        admin=AdminRead.model_validate(admin),
    )


@router.post("/login", response_model=AuthResponse)
async def login_admin(
    payload: AdminLogin,
    request: Request,
    db: AsyncSession = Depends(get_session),
):
    if not payload.email or not payload.password:
        raise BadRequest("Email and password are required")

    ip = get_client_ip(request)
    user_agent = get_user_agent(request)

    admin = await get_admin_by_email(db, payload.email)
    if admin is None:
        await record_login_event(
            db, payload.email, LoginStatus.FAILED,
            ip_address=ip, user_agent=user_agent, failure_reason="Admin not found",
        )
        logger.warning("Login failed for unknown email %s from %s", payload.email, ip)
        raise InvalidCredentials()

    if not compare_password(admin, payload.password):
        await record_login_event(
            db, admin.email, LoginStatus.FAILED, admin=admin,
            ip_address=ip, user_agent=user_agent, failure_reason="Invalid password",
        )
        logger.warning("Login failed for %s from %s", admin.email, ip)
        raise InvalidCredentials()

    await record_login_event(db, admin.email, LoginStatus.SUCCESS, admin=admin, ip_address=ip, user_agent=user_agent)
    logger.info("Admin %s logged in from %s", admin.email, ip)

    return AuthResponse(
        message="Login successful",
        token=create_access_token(admin.id, admin.email),
        admin=AdminRead.model_validate(admin),
    )


@router.get("/me", response_model=ProfileResponse)
async def get_profile(
    claims: Dict[str, str] = Depends(get_current_admin),
    db: AsyncSession = Depends(get_session),
):
    admin = await get_admin_by_id(db, admin_id_from_claims(claims))
    if admin is None:
        raise AdminNotFound()
    return ProfileResponse(admin=AdminProfile.model_validate(admin))


@router.get("/list", response_model=AdminListResponse)
async def list_all_admins(
    current_admin: Admin = Depends(require_super_admin),
    db: AsyncSession = Depends(get_session),
):
    admins = await list_admins(db)
    return AdminListResponse(admins=[AdminProfile.model_validate(a) for a in admins])


@router.get("/login-events", response_model=LoginEventListResponse)
async def list_all_login_events(
    email: Optional[str] = Query(default=None),
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=DEFAULT_EVENT_PAGE_SIZE, ge=1, le=MAX_EVENT_PAGE_SIZE),
    current_admin: Admin = Depends(require_super_admin),
    db: AsyncSession = Depends(get_session),
):
    events = await list_login_events(db, email=email, skip=skip, limit=limit)
    return LoginEventListResponse(events=[LoginEventRead.model_validate(e) for e in events])


@router.delete("/{admin_id}", response_model=AdminDeleteResponse)
async def delete_admin_account(
    admin_id: int,
    current_admin: Admin = Depends(require_super_admin),
    db: AsyncSession = Depends(get_session),
):
    if admin_id == current_admin.id:
        raise BadRequest("You cannot delete your own account")

    admin = await get_admin_by_id(db, admin_id)
    if admin is None:
        raise AdminNotFound()

    summary = AdminSummary.model_validate(admin)
    await delete_admin(db, admin)
    logger.info("Admin %s deleted by %s", summary.email, current_admin.email)
    return AdminDeleteResponse(message="Admin deleted successfully", admin=summary)


#forgot-password
@router.post("/forgot-password", response_model=MessageResponse)
async def forgot_password(
    payload: ForgotPasswordRequest,
    db: AsyncSession = Depends(get_session),
    mailer: Mailer = Depends(get_mailer),
):
    if not is_valid_email(payload.email):
        raise BadRequest("Please provide a valid email address")

    response = MessageResponse(message=FORGOT_PASSWORD_MESSAGE)

    admin = await get_admin_by_email(db, payload.email)
    if admin is None:
        logger.info("Password reset requested for unknown email")
        return response

    previous_request = admin.last_password_reset_request
    raw_token = await request_reset(db, admin)
    if raw_token is None:
        return response

    try:
        await send_password_reset_email(mailer, admin, build_reset_url(settings.ADMIN_CLIENT_URL, raw_token))
    except (EmailNotConfigured, smtplib.SMTPException, OSError):
        logger.exception("Password reset email to %s failed; token withdrawn", admin.email)
        await abandon_reset(db, admin, previous_request)

    return response


#reset-password
@router.get(
    "/reset-password/{token}",
    response_model=ResetTokenStatus,
    response_model_exclude_none=True,
    responses={400: {"model": ResetTokenStatus}},
)
async def check_reset_token(token: str, db: AsyncSession = Depends(get_session)):
    admin = await get_admin_by_reset_token(db, token)
    if admin is None or not await validate_reset_token(db, admin, token):
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"valid": False, "message": INVALID_RESET_TOKEN_MESSAGE},
        )
    return ResetTokenStatus(valid=True, email=admin.email)


@router.post("/reset-password", response_model=MessageResponse)
async def reset_password(payload: ResetPasswordRequest, db: AsyncSession = Depends(get_session)):
    if not payload.token or not payload.new_password:
        raise BadRequest("Token and new password are required")
    if len(payload.new_password) < MIN_PASSWORD_LENGTH:
        raise BadRequest(PASSWORD_TOO_SHORT_MESSAGE)

    admin = await get_admin_by_reset_token(db, payload.token)
    if admin is None:
        raise InvalidOrExpiredToken()

    await consume_reset_token(db, admin, payload.token, payload.new_password)
    return MessageResponse(message="Password has been reset successfully")
