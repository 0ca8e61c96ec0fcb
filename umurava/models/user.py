import uuid
from sqlalchemy import Column, String, Integer, TIMESTAMP, Uuid, Enum as SAEnum
from sqlalchemy.sql import func
from umurava.database import Base

DEFAULT_PROFILE_PICTURE = "https://www.gravatar.com/avatar/?d=mp"


class User(Base):
    """
    Account record and the only persisted state that affects token validity.

    token_version:
      Starts at 1 and only ever goes up. Every refresh token embeds the value
      current at mint time; bumping it voids all of them at once.

    pending_otp_hash / pending_otp_expires_at:
      The single outstanding login challenge. Issuing a new OTP overwrites
      both columns; successful verification or expiry clears them.
    """
    __tablename__ = "users"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4, nullable=False)
    first_name = Column(String(255), nullable=False)
    last_name = Column(String(255), nullable=False)
    # Always stored lower-cased (see schemas.auth) so uniqueness is case-insensitive
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String, nullable=False)
    role = Column(
        SAEnum("user", "admin", name="user_role"),
        nullable=False,
        server_default="user",
    )
    profile_picture_url = Column(String(500), nullable=False, default=DEFAULT_PROFILE_PICTURE)

    token_version = Column(Integer, nullable=False, default=1, server_default="1")

    pending_otp_hash = Column(String, nullable=True)
    pending_otp_expires_at = Column(TIMESTAMP(timezone=True), nullable=True)

    # Timestamps
    created_at = Column(
        TIMESTAMP(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    updated_at = Column(
        TIMESTAMP(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
