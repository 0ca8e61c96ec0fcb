"""
Auth service: higher-level auth operations that combine multiple lower-level services.
Keeps routers thin — routers only handle HTTP, services handle logic.

Everything here is synchronous (bcrypt + SQLAlchemy session); routers call it
through run_in_threadpool so hashing never blocks the event loop.
"""
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from umurava.core.exceptions import BadRequestException, InvalidOTPException, NotFoundException
from umurava.core.security import hash_password, verify_password
from umurava.models.user import User
from umurava.repositories import user_repo
from umurava.services import otp_service, token_service
from umurava.services.otp_service import OTPResult
from umurava.services.token_service import TokenPair, UserGoneError

logger = logging.getLogger(__name__)

# Pre-computed bcrypt hash used ONLY for constant-time comparison when the user
# doesn't exist, so "unknown email" and "wrong password" take equally long.
# Generated once at module load. Never stored anywhere or used for real auth.
_DUMMY_HASH: str = hash_password("__dummy_timing_prevention__")


def register_user(
    db: Session,
    *,
    first_name: str,
    last_name: str,
    email: str,
    password: str,
    role: str = "user",
) -> tuple[User, TokenPair]:
    """
    Creates the account and signs the user straight in.
    Returns (user, tokens); the refresh token is bound to token_version 1.
    """
    if not user_repo.is_email_available(db, email):
        raise BadRequestException("User already exists.")

    try:
        user = user_repo.create_user(
            db,
            first_name=first_name,
            last_name=last_name,
            email=email,
            password_hash=hash_password(password),
            role=role,
        )
    except IntegrityError:
        # Lost a race with a concurrent registration for the same email
        raise BadRequestException("User already exists.")

    logger.info(f"User registered: user={user.id}, role={user.role}")
    return user, token_service.issue_token_pair(db, user.id)


def authenticate_credentials(db: Session, email: str, password: str) -> User:
    """
    First login factor. Unknown email → 404, wrong password → 400.
    verify_password always runs so both failures take the same time.
    """
    user = user_repo.get_by_email(db, email)
    password_ok = verify_password(password, user.password_hash if user else _DUMMY_HASH)

    if user is None:
        raise NotFoundException("User")
    if not password_ok:
        raise BadRequestException("Invalid credentials.")
    return user


def start_login(db: Session, email: str, password: str) -> tuple[User, str]:
    """
    Validates credentials and opens an OTP challenge.
    Returns (user, raw_otp). No token is issued at this point.
    """
    user = authenticate_credentials(db, email, password)
    try:
        raw_otp = otp_service.issue_otp(db, user.id)
    except otp_service.UnknownUserError:
        raise NotFoundException("User")
    return user, raw_otp


def complete_login(db: Session, email: str, otp: str) -> tuple[User, TokenPair]:
    """Second factor: consumes the OTP and mints the access/refresh pair."""
    user = user_repo.get_by_email(db, email)
    if user is None:
        raise NotFoundException("User")

    result = otp_service.verify_otp(db, user.id, otp)
    if result is not OTPResult.VERIFIED:
        logger.info(f"OTP rejected: user={user.id}, reason={result.value}")
        raise InvalidOTPException()

    try:
        tokens = token_service.issue_token_pair(db, user.id)
    except UserGoneError:
        raise NotFoundException("User")
    return user, tokens


def change_password(db: Session, user: User, current_password: str, new_password: str) -> TokenPair:
    """
    Replaces the password and revokes every existing refresh token.
    The caller gets a new pair bound to the bumped version.
    """
    if not verify_password(current_password, user.password_hash):
        raise BadRequestException("Invalid credentials.")

    new_version = user_repo.replace_password(db, user.id, hash_password(new_password))
    if new_version is None:
        raise NotFoundException("User")
    logger.info(f"Password changed: user={user.id}, token_version={new_version}")
    try:
        return token_service.issue_token_pair(db, user.id)
    except UserGoneError:
        raise NotFoundException("User")


def logout_everywhere(db: Session, user_id) -> int:
    try:
        return token_service.bump_token_version(db, user_id)
    except UserGoneError:
        raise NotFoundException("User")
