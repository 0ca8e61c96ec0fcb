"""
Credential store: every read and write of the users table goes through here.

Writes that guard an invariant are single conditional UPDATE statements, never
read-modify-write from Python:
  - set_pending_otp         overwrites any outstanding challenge
  - clear_pending_otp       compare-and-clear; only one concurrent caller wins
  - increment_token_version token_version = token_version + 1, no lost increments
  - replace_password        new hash and version bump land in the same commit
"""
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional, Union

from sqlalchemy import select, update
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.sql import exists

from umurava.models.user import User

UserId = Union[str, uuid.UUID]


def parse_user_id(user_id: UserId) -> Optional[uuid.UUID]:
    """Returns None for anything that is not a UUID, so callers can treat it as 'not found'."""
    if isinstance(user_id, uuid.UUID):
        return user_id
    try:
        return uuid.UUID(str(user_id))
    except (ValueError, TypeError, AttributeError):
        return None


# ------------------------------------------------------------
# READ
# ------------------------------------------------------------
def get_by_id(db: Session, user_id: UserId, *, fresh: bool = False) -> Optional[User]:
    """
    fresh=True bypasses the session identity map and re-reads the row,
    needed wherever token_version or pending OTP fields are about to be trusted.
    """
    uid = parse_user_id(user_id)
    if uid is None:
        return None
    if not fresh:
        return db.get(User, uid)
    stmt = select(User).where(User.id == uid).execution_options(populate_existing=True)
    return db.scalar(stmt)


def get_by_email(db: Session, email: str) -> Optional[User]:
    return db.scalar(select(User).where(User.email == email.strip().lower()))


def is_email_available(db: Session, email: str) -> bool:
    return not db.scalar(select(exists().where(User.email == email.strip().lower())))


def list_users(db: Session) -> list[User]:
    return list(db.scalars(select(User).order_by(User.created_at, User.email)))


# ------------------------------------------------------------
# CREATE
# ------------------------------------------------------------
def create_user(
    db: Session,
    *,
    first_name: str,
    last_name: str,
    email: str,
    password_hash: str,
    role: str = "user",
) -> User:
    user = User(
        first_name=first_name,
        last_name=last_name,
        email=email.strip().lower(),
        password_hash=password_hash,
        role=role,
        token_version=1,
    )
    db.add(user)
    try:
        db.flush()
        db.commit()
    except IntegrityError:
        db.rollback()
        raise
    db.refresh(user)
    return user


# ------------------------------------------------------------
# UPDATE
# ------------------------------------------------------------
def update_names(
    db: Session,
    user: User,
    *,
    first_name: Optional[str] = None,
    last_name: Optional[str] = None,
) -> User:
    if first_name is not None:
        user.first_name = first_name
    if last_name is not None:
        user.last_name = last_name
    db.commit()
    db.refresh(user)
    return user


def replace_password(db: Session, user_id: UserId, new_hash: str) -> Optional[int]:
    """
    Stores the new hash and bumps token_version in one statement and one commit,
    so a failure leaves both columns untouched.
    Returns the new version, or None if the user is gone.
    """
    uid = parse_user_id(user_id)
    if uid is None:
        return None
    try:
        new_version = db.execute(
            update(User)
            .where(User.id == uid)
            .values(password_hash=new_hash, token_version=User.token_version + 1)
            .returning(User.token_version)
            .execution_options(synchronize_session=False)
        ).scalar_one_or_none()
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise
    return new_version


def set_pending_otp(db: Session, user_id: UserId, otp_hash: str, expires_at: datetime) -> bool:
    """Replaces whatever challenge was outstanding. Returns False if the user is gone."""
    uid = parse_user_id(user_id)
    if uid is None:
        return False
    result = db.execute(
        update(User)
        .where(User.id == uid)
        .values(pending_otp_hash=otp_hash, pending_otp_expires_at=expires_at)
        .execution_options(synchronize_session=False)
    )
    db.commit()
    return result.rowcount == 1


def clear_pending_otp(db: Session, user_id: UserId, expected_hash: str) -> bool:
    """
    Clears the challenge only if it is still the one the caller read.
    True means this caller consumed it; False means another request already
    did, or a newer OTP replaced it in the meantime.
    """
    uid = parse_user_id(user_id)
    if uid is None:
        return False
    result = db.execute(
        update(User)
        .where(User.id == uid, User.pending_otp_hash == expected_hash)
        .values(pending_otp_hash=None, pending_otp_expires_at=None)
        .execution_options(synchronize_session=False)
    )
    db.commit()
    return result.rowcount == 1


def increment_token_version(db: Session, user_id: UserId) -> Optional[int]:
    """
    Atomic bump done by the database. Returns the new version, or None if the user is gone.
    """
    uid = parse_user_id(user_id)
    if uid is None:
        return None
    new_version = db.execute(
        update(User)
        .where(User.id == uid)
        .values(token_version=User.token_version + 1)
        .returning(User.token_version)
        .execution_options(synchronize_session=False)
    ).scalar_one_or_none()
    db.commit()
    return new_version


# ------------------------------------------------------------
# DELETE
# ------------------------------------------------------------
def delete_user(db: Session, user: User) -> None:
    db.delete(user)
    db.commit()
