"""
Token service: minting access/refresh pairs and revoking sessions.

Revocation model: no blacklist. Each refresh token carries the user's
token_version at mint time; bumping the counter makes every earlier refresh
token fail the version check in session_service. Access tokens already handed
out stay valid until their own short expiry.
"""
import logging
from dataclasses import dataclass

from sqlalchemy.orm import Session

from umurava.core.security import create_access_token, create_refresh_token
from umurava.repositories import user_repo
from umurava.repositories.user_repo import UserId

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str


class UserGoneError(LookupError):
    """The account disappeared between authentication and token issuance."""


def issue_token_pair(db: Session, user_id: UserId) -> TokenPair:
    """
    Re-reads the user right before minting so the refresh token is bound to the
    latest token_version, even if a password change committed a moment ago.
    """
    user = user_repo.get_by_id(db, user_id, fresh=True)
    if user is None:
        raise UserGoneError(str(user_id))

    subject = str(user.id)
    return TokenPair(
        access_token=create_access_token(subject, user.role),
        refresh_token=create_refresh_token(subject, user.token_version),
    )


def bump_token_version(db: Session, user_id: UserId) -> int:
    """
    Invalidates every refresh token issued to the user so far.
    Returns the new version.
    """
    new_version = user_repo.increment_token_version(db, user_id)
    if new_version is None:
        raise UserGoneError(str(user_id))
    logger.info(f"Sessions revoked: user={user_id}, token_version={new_version}")
    return new_version
