"""
Per-request session validation.

    Start ──no access token──────────────────────────────▶ Unauthenticated
      │                                    (unless ALLOW_REFRESH_WITHOUT_ACCESS_TOKEN)
      ├─ access token valid ──▶ role check ─────────────▶ Authorized / Forbidden
      └─ access token missing/expired/bad
            ├─ no refresh cookie ───────────────────────▶ Unauthenticated
            ├─ refresh signature/expiry bad ────────────▶ Unauthenticated
            ├─ user gone or token_version moved on ─────▶ Unauthenticated
            └─ renew access token ──▶ role check ───────▶ Authorized / Forbidden

Nothing here is cached between requests: token_version is read from the store
on every renewal so revocations are seen immediately.
"""
import enum
import logging
from dataclasses import dataclass
from typing import Optional

from jwt.exceptions import InvalidTokenError
from sqlalchemy.orm import Session

from umurava.config import settings
from umurava.core.security import create_access_token, decode_access_token, decode_refresh_token
from umurava.repositories import user_repo

logger = logging.getLogger(__name__)

ROLES = ("user", "admin")


class SessionOutcome(str, enum.Enum):
    AUTHORIZED = "authorized"
    UNAUTHENTICATED = "unauthenticated"
    FORBIDDEN = "forbidden"


@dataclass(frozen=True)
class Principal:
    user_id: str
    role: str


@dataclass(frozen=True)
class SessionResult:
    outcome: SessionOutcome
    principal: Optional[Principal] = None
    # Set when the access token was re-minted from the refresh token
    renewed_access_token: Optional[str] = None
    # For server-side logs only; never sent to the client
    reason: str = ""


def _unauthenticated(reason: str) -> SessionResult:
    return SessionResult(outcome=SessionOutcome.UNAUTHENTICATED, reason=reason)


def _authorize(
    principal: Principal,
    required_role: Optional[str],
    renewed_access_token: Optional[str] = None,
) -> SessionResult:
    if required_role and principal.role != required_role:
        return SessionResult(
            outcome=SessionOutcome.FORBIDDEN,
            principal=principal,
            renewed_access_token=renewed_access_token,
            reason=f"role {principal.role} lacks {required_role}",
        )
    return SessionResult(
        outcome=SessionOutcome.AUTHORIZED,
        principal=principal,
        renewed_access_token=renewed_access_token,
    )


def _principal_from_access(token: str) -> Optional[Principal]:
    try:
        payload = decode_access_token(token)
    except InvalidTokenError:
        return None
    role = payload.get("role")
    if role not in ROLES:
        return None
    return Principal(user_id=str(payload["sub"]), role=role)


def authenticate(
    db: Session,
    access_token: Optional[str],
    refresh_token: Optional[str],
    required_role: Optional[str] = None,
) -> SessionResult:
    """
    Runs the state machine above for one request.
    Store and signing faults are not caught here; they surface as a generic 500.
    """
    if not access_token and not settings.allow_refresh_without_access_token:
        return _unauthenticated("access token missing")

    if access_token:
        principal = _principal_from_access(access_token)
        if principal is not None:
            return _authorize(principal, required_role)

    if not refresh_token:
        return _unauthenticated("access token invalid and no refresh token")

    try:
        claims = decode_refresh_token(refresh_token)
    except InvalidTokenError:
        return _unauthenticated("refresh token invalid or expired")

    user = user_repo.get_by_id(db, claims["sub"], fresh=True)
    if user is None:
        return _unauthenticated("refresh token subject no longer exists")
    if user.token_version != claims["tv"]:
        logger.warning(f"Revoked refresh token presented: user={user.id}")
        return _unauthenticated("refresh token revoked")

    principal = Principal(user_id=str(user.id), role=user.role)
    renewed = create_access_token(principal.user_id, principal.role)
    logger.info(f"Access token renewed: user={user.id}")
    return _authorize(principal, required_role, renewed_access_token=renewed)
