"""
Security utilities: password hashing and JWT token management.
Uses PyJWT (not python-jose) — actively maintained, no known CVEs as of 2026.

Access tokens:  {sub, role, type="access", iat, exp}       20 min, stateless.
Refresh tokens: {sub, tv, type="refresh", iat, exp}         20 days, only valid
                while `tv` equals the user's current token_version.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from jwt.exceptions import InvalidTokenError, PyJWTError
from passlib.context import CryptContext

from umurava.config import settings
from umurava.core.exceptions import HashingError, VerificationError, TokenSigningError

logger = logging.getLogger(__name__)

# ── Password Hashing ──────────────────────────────────────────────────────────
# bcrypt is the industry standard for password hashing.
# The digest embeds salt and cost ($2b$<rounds>$...), so verify() needs nothing else.
# deprecated="auto" means passlib will auto-upgrade old hashes on next login.
pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.bcrypt_rounds,
)


def hash_password(password: str) -> str:
    try:
        return pwd_context.hash(password)
    except (ValueError, TypeError, RuntimeError) as exc:
        logger.exception("bcrypt hashing failed")
        raise HashingError("Failed to hash secret") from exc


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Constant-time comparison against a stored digest.
    Returns False on mismatch; raises VerificationError only if the digest itself is unusable.
    """
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except (ValueError, TypeError) as exc:
        logger.error("Stored password digest could not be parsed")
        raise VerificationError("Malformed digest") from exc


# ── JWT Token Creation ────────────────────────────────────────────────────────

def _sign(payload: dict, secret: str) -> str:
    if not secret:
        raise TokenSigningError("Signing key is not configured")
    try:
        return jwt.encode(payload, secret, algorithm=settings.jwt_algorithm)
    except (PyJWTError, NotImplementedError, TypeError, ValueError) as exc:
        logger.exception("JWT signing failed")
        raise TokenSigningError("Failed to sign token") from exc


def create_access_token(
    user_id: str,
    role: str,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Short-lived access token (default 20 min).
    No renewal path of its own; the session validator renews it from the refresh token.

    PyJWT 2.x note: jwt.encode() returns str directly — no need to call .decode().
    Always use timezone-aware datetimes to avoid PyJWT deprecation warnings.
    """
    now = datetime.now(timezone.utc)
    payload = {
        "sub": user_id,           # 'sub' is the standard JWT subject claim
        "role": role,
        "type": "access",         # custom claim to distinguish token types
        "iat": now,
        "exp": now + (expires_delta or timedelta(minutes=settings.access_token_expire_minutes)),
    }
    return _sign(payload, settings.access_token_secret)


def create_refresh_token(
    user_id: str,
    token_version: int,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Long-lived refresh token (default 20 days).
    Does NOT contain the role. It is re-read from the user record on every renewal.
    token_version must come from a fresh read of the user, never from an earlier step.
    """
    now = datetime.now(timezone.utc)
    payload = {
        "sub": user_id,
        "tv": token_version,
        "type": "refresh",
        "iat": now,
        "exp": now + (expires_delta or timedelta(days=settings.refresh_token_expire_days)),
    }
    return _sign(payload, settings.refresh_token_secret)


def decode_access_token(token: str) -> dict:
    """
    Decodes and validates an access token.
    Raises jwt.exceptions.InvalidTokenError (or subclass) on any failure.
    The caller is responsible for converting this into an HTTPException.
    """
    payload = jwt.decode(
        token,
        settings.access_token_secret,
        algorithms=[settings.jwt_algorithm],
        options={"require": ["sub", "exp", "iat"]},
    )
    if payload.get("type") != "access":
        raise InvalidTokenError("Not an access token")
    return payload


def decode_refresh_token(token: str) -> dict:
    """
    Decodes and validates a refresh token.
    Raises jwt.exceptions.InvalidTokenError on failure.
    Only the signature and expiry are checked here; the token_version
    comparison needs the store and happens in the session service.
    """
    payload = jwt.decode(
        token,
        settings.refresh_token_secret,
        algorithms=[settings.jwt_algorithm],
        options={"require": ["sub", "exp", "iat"]},
    )
    if payload.get("type") != "refresh":
        raise InvalidTokenError("Not a refresh token")
    if not isinstance(payload.get("tv"), int):
        raise InvalidTokenError("Refresh token carries no token version")
    return payload
