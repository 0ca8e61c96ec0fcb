"""
FastAPI dependencies used across routers.
Keep this file lean — only auth/DB dependencies go here.
Business logic belongs in services/.
"""
from typing import Optional

from fastapi import Depends, Request, Response
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from umurava.config import settings
from umurava.database import get_db
from umurava.core.exceptions import CredentialsException, ForbiddenException
from umurava.models.user import User
from umurava.repositories import user_repo
from umurava.services import session_service
from umurava.services.session_service import Principal, SessionOutcome

# auto_error=False: a missing header is a state of the session machine, not an immediate 403
bearer_scheme = HTTPBearer(auto_error=False)

RENEWED_TOKEN_HEADER = "Authorization"


def require_role(required_role: Optional[str] = None):
    """
    Builds a dependency that authenticates the request and optionally enforces a role.

    On silent renewal the new access token is returned to the client as
    `Authorization: Bearer <token>` on the response.
    """

    def dependency(
        request: Request,
        response: Response,
        credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
        db: Session = Depends(get_db),
    ) -> Principal:
        result = session_service.authenticate(
            db,
            access_token=credentials.credentials if credentials else None,
            refresh_token=request.cookies.get(settings.refresh_cookie_name),
            required_role=required_role,
        )

        if result.outcome is SessionOutcome.UNAUTHENTICATED:
            raise CredentialsException("Not authenticated.")
        renewed = (
            {RENEWED_TOKEN_HEADER: f"Bearer {result.renewed_access_token}"}
            if result.renewed_access_token
            else None
        )
        if result.outcome is SessionOutcome.FORBIDDEN:
            # a renewed token is sent back on 403 too
            raise ForbiddenException(headers=renewed)

        if renewed:
            response.headers.update(renewed)
        return result.principal

    return dependency


get_current_principal = require_role()
get_current_admin = require_role("admin")


def get_current_user(
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> User:
    """
    Resolves the authenticated principal to its User row.
    An access token can outlive its account by a few minutes; treat that as unauthenticated.
    """
    user = user_repo.get_by_id(db, principal.user_id)
    if user is None:
        raise CredentialsException("Not authenticated.")
    return user
