"""
OTP service: generation, storage (hashed), and verification of the login challenge.

Security design decisions:
  1. Raw OTP is NEVER stored — only the bcrypt hash. If the DB is breached, OTPs are useless.
  2. One outstanding challenge per user, kept on the user row. Issuing a new OTP
     overwrites the previous one, so only the most recent code can verify.
  3. OTPs expire after OTP_EXPIRE_MINUTES (5 by default). Expiry is decided by
     comparing the stored deadline with the clock at verification time; there is
     no background sweep.
  4. secrets.randbelow() is cryptographically secure (unlike random.randint) and
     uniform over the range (no modulo bias).
  5. Consumption is a compare-and-clear UPDATE, so two parallel verifications of
     the same valid code cannot both succeed.
  6. Brute-force of the 6-digit space is bounded by slowapi rate limiting at the HTTP layer.
"""
import enum
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy.orm import Session

from umurava.config import settings
from umurava.core.security import hash_password, verify_password
from umurava.repositories import user_repo
from umurava.repositories.user_repo import UserId

logger = logging.getLogger(__name__)

OTP_DIGITS = 6
_OTP_LOW = 10 ** (OTP_DIGITS - 1)
_OTP_HIGH = 10 ** OTP_DIGITS


class OTPResult(str, enum.Enum):
    VERIFIED = "verified"
    NOT_FOUND = "not_found"
    EXPIRED = "expired"
    MISMATCH = "mismatch"


class UnknownUserError(LookupError):
    """Raised by issue_otp when the user row no longer exists."""


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; Postgres returns aware ones
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def generate_otp() -> str:
    """
    Generate a cryptographically secure 6-digit OTP.
    secrets.randbelow(900000) gives 0–899999, +100000 gives 100000–999999.
    Always 6 digits — no leading zero issues.
    """
    return str(secrets.randbelow(_OTP_HIGH - _OTP_LOW) + _OTP_LOW)


def issue_otp(db: Session, user_id: UserId) -> str:
    """
    Creates a new challenge for the user and returns the raw OTP.

    Steps:
    1. Generate new raw OTP.
    2. Hash it with bcrypt.
    3. Overwrite the user's pending hash and expiry in one UPDATE.
    4. Return the raw OTP to the caller (who passes it to email_service).
    """
    raw_otp = generate_otp()
    otp_hash = hash_password(raw_otp)
    expires_at = _now() + timedelta(minutes=settings.otp_expire_minutes)

    if not user_repo.set_pending_otp(db, user_id, otp_hash, expires_at):
        raise UnknownUserError(str(user_id))

    logger.info(f"OTP issued: user={user_id}")
    return raw_otp


def verify_otp(db: Session, user_id: UserId, otp: str) -> OTPResult:
    """
    Checks a submitted code against the user's pending challenge.

    Checks (in order):
    - A challenge exists                    → NOT_FOUND otherwise
    - It has not expired                    → EXPIRED (and the stale challenge is cleared)
    - bcrypt.verify(submitted, stored_hash) → MISMATCH otherwise
    - This request is the one that clears it → NOT_FOUND if another request got there first
    """
    pending = _load_pending(db, user_id)
    if pending is None:
        return OTPResult.NOT_FOUND

    otp_hash, expires_at = pending

    if _now() > expires_at:
        user_repo.clear_pending_otp(db, user_id, otp_hash)
        logger.info(f"Expired OTP cleared: user={user_id}")
        return OTPResult.EXPIRED

    if not verify_password(otp, otp_hash):
        return OTPResult.MISMATCH

    # Single-use: only the request whose UPDATE matches the hash it read wins
    if not user_repo.clear_pending_otp(db, user_id, otp_hash):
        return OTPResult.NOT_FOUND

    logger.info(f"OTP verified: user={user_id}")
    return OTPResult.VERIFIED


def discard_otp(db: Session, user_id: UserId, otp: str) -> bool:
    """
    Drops the challenge for this exact code, e.g. when the email carrying it could not be sent.
    A newer challenge issued in the meantime is left alone. Returns True if something was cleared.
    """
    pending = _load_pending(db, user_id)
    if pending is None or not verify_password(otp, pending[0]):
        return False
    return user_repo.clear_pending_otp(db, user_id, pending[0])


def _load_pending(db: Session, user_id: UserId) -> Optional[tuple[str, datetime]]:
    user = user_repo.get_by_id(db, user_id, fresh=True)
    if user is None or not user.pending_otp_hash or user.pending_otp_expires_at is None:
        return None
    return user.pending_otp_hash, _as_utc(user.pending_otp_expires_at)
