"""
Users router: account listing, profile reads/updates, and account deletion.

Endpoints:
  GET    /users            → all users (public view, admin only)
  GET    /users/me         → current user's profile
  GET    /users/{user_id}  → one user's profile
  PATCH  /users/{user_id}  → update firstName/lastName (owner or admin)
  DELETE /users/{user_id}  → delete account (owner or admin)

Deleting an account needs no token cleanup: refresh-token renewal looks the
user up and fails once the row is gone.
"""
import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from umurava.database import get_db
from umurava.core.dependencies import get_current_user, get_current_admin
from umurava.core.exceptions import BadRequestException, ForbiddenException, NotFoundException
from umurava.models.user import User
from umurava.repositories import user_repo
from umurava.schemas.auth import MessageResponse
from umurava.schemas.user import UserOut, UserUpdateRequest
from umurava.services.session_service import Principal

logger = logging.getLogger(__name__)

router = APIRouter()


def get_user_or_404(db: Session, user_id: str) -> User:
    if user_repo.parse_user_id(user_id) is None:
        raise BadRequestException("Invalid user id.")
    user = user_repo.get_by_id(db, user_id)
    if not user:
        raise NotFoundException("User")
    return user


def ensure_owner_or_admin(current_user: User, target: User) -> None:
    if current_user.id != target.id and current_user.role != "admin":
        raise ForbiddenException()


@router.get("", response_model=list[UserOut])
def list_users(
    db: Session = Depends(get_db),
    admin: Principal = Depends(get_current_admin),
):
    """Admin only: every account's email is in here."""
    return user_repo.list_users(db)


@router.get("/me", response_model=UserOut)
def get_me(current_user: User = Depends(get_current_user)):
    """
    Return the authenticated user's profile.
    No extra DB call needed — get_current_user already fetched the user.
    """
    return current_user


@router.get("/{user_id}", response_model=UserOut)
def get_user(
    user_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return get_user_or_404(db, user_id)


@router.patch("/{user_id}", response_model=UserOut)
def update_user(
    user_id: str,
    body: UserUpdateRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Only the provided fields are changed."""
    target = get_user_or_404(db, user_id)
    ensure_owner_or_admin(current_user, target)
    return user_repo.update_names(
        db, target, first_name=body.first_name, last_name=body.last_name
    )


@router.delete("/{user_id}", response_model=MessageResponse)
def delete_user(
    user_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    target = get_user_or_404(db, user_id)
    ensure_owner_or_admin(current_user, target)
    user_repo.delete_user(db, target)
    logger.info(f"User deleted: user={user_id}, by={current_user.id}")
    return {"message": "User deleted successfully"}
