"""
Auth router: registration, two-step login, and session management.

Registration:
  POST /auth/register → create user → access token + refresh cookie

Login (password, then OTP):
  1. POST /auth/login      → validate credentials → email OTP (no tokens yet)
  2. POST /auth/verify-otp → consume OTP → access token + refresh cookie

Sessions:
  POST /auth/change-password → new password, all older refresh tokens revoked
  POST /auth/logout-all      → revoke all refresh tokens
  POST /auth/logout          → drop this browser's refresh cookie

The refresh token only ever travels in an http-only, same-site-strict cookie.
"""
import logging

from fastapi import APIRouter, Depends, Request, Response
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from umurava.config import settings
from umurava.database import get_db
from umurava.core.dependencies import get_current_user
from umurava.core.exceptions import EmailDeliveryException
from umurava.core.rate_limiter import limiter, AUTH_LIMIT
from umurava.models.user import User
from umurava.schemas.auth import (
    RegisterRequest, LoginRequest, VerifyOTPRequest, ChangePasswordRequest,
    TokenResponse, LoginResponse, MessageResponse,
)
from umurava.services import auth_service, otp_service
from umurava.services.email_service import OTPMailer, get_mailer

logger = logging.getLogger(__name__)

router = APIRouter()


def set_refresh_cookie(response: Response, refresh_token: str) -> None:
    response.set_cookie(
        key=settings.refresh_cookie_name,
        value=refresh_token,
        max_age=settings.refresh_token_expire_days * 24 * 60 * 60,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="strict",
        path="/",
    )


def clear_refresh_cookie(response: Response) -> None:
    response.delete_cookie(
        key=settings.refresh_cookie_name,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="strict",
        path="/",
    )


# ── Register ──────────────────────────────────────────────────────────────────

@router.post("/register", response_model=TokenResponse, status_code=201)
@limiter.limit(AUTH_LIMIT)
async def register(
    request: Request,
    response: Response,
    body: RegisterRequest,
    db: Session = Depends(get_db),
):
    """Creates the account and returns an access token; the refresh token is set as a cookie."""
    _, tokens = await run_in_threadpool(
        auth_service.register_user,
        db,
        first_name=body.first_name,
        last_name=body.last_name,
        email=body.email,
        password=body.password,
        role=body.role,
    )
    set_refresh_cookie(response, tokens.refresh_token)
    return TokenResponse(access_token=tokens.access_token)


# ── Login ─────────────────────────────────────────────────────────────────────

@router.post("/login", response_model=LoginResponse)
@limiter.limit(AUTH_LIMIT)
async def login(
    request: Request,
    body: LoginRequest,
    db: Session = Depends(get_db),
    mailer: OTPMailer = Depends(get_mailer),
):
    """
    Step 1 of login. Checks the password and emails a one-time code.
    If the email cannot be sent the challenge is dropped and the request fails.
    """
    user, raw_otp = await run_in_threadpool(
        auth_service.start_login, db, body.email, body.password
    )

    try:
        await mailer(user.email, raw_otp)
    except Exception:
        logger.exception(f"OTP email delivery failed: user={user.id}")
        await run_in_threadpool(otp_service.discard_otp, db, user.id, raw_otp)
        raise EmailDeliveryException()

    return LoginResponse(email=user.email, message="Verify your email for the OTP")


@router.post("/verify-otp", response_model=TokenResponse)
@limiter.limit(AUTH_LIMIT)
async def verify_otp(
    request: Request,
    response: Response,
    body: VerifyOTPRequest,
    db: Session = Depends(get_db),
):
    """Step 2 of login: consume the OTP and receive auth tokens."""
    _, tokens = await run_in_threadpool(
        auth_service.complete_login, db, body.email, body.otp
    )
    set_refresh_cookie(response, tokens.refresh_token)
    return TokenResponse(access_token=tokens.access_token)


# ── Session management ────────────────────────────────────────────────────────

@router.post("/change-password", response_model=TokenResponse)
async def change_password(
    response: Response,
    body: ChangePasswordRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Verifies the current password, stores the new one and bumps token_version.
    Every refresh token issued before this call stops working; this client gets a fresh pair.
    """
    tokens = await run_in_threadpool(
        auth_service.change_password,
        db,
        current_user,
        body.current_password,
        body.new_password,
    )
    set_refresh_cookie(response, tokens.refresh_token)
    return TokenResponse(access_token=tokens.access_token)


@router.post("/logout-all", response_model=MessageResponse)
async def logout_all(
    response: Response,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Revokes every refresh token for the account.
    Access tokens already issued remain valid until they expire (at most 20 minutes).
    """
    await run_in_threadpool(auth_service.logout_everywhere, db, current_user.id)
    clear_refresh_cookie(response)
    return {"message": "Logged out from all sessions."}


@router.post("/logout", response_model=MessageResponse)
async def logout(response: Response):
    clear_refresh_cookie(response)
    return {"message": "Logged out."}
