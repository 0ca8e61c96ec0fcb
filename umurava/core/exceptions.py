"""
Centralised custom exceptions.
Having them in one place means consistent error messages across the entire app
and easy global changes (e.g., changing status codes or adding logging).

Two families live here:
  - HTTPException subclasses: expected outcomes, raised by routers/dependencies
    and rendered by FastAPI as-is.
  - Infrastructure faults (hashing, signing): not recoverable locally. The
    handler registered in main.py logs them and answers with a generic 500.
"""
from typing import Optional

from fastapi import HTTPException, status


class BadRequestException(HTTPException):
    def __init__(self, detail: str = "Bad request"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class CredentialsException(HTTPException):
    def __init__(self, detail: str = "Could not validate credentials"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


class ForbiddenException(HTTPException):
    def __init__(self, detail: str = "Access denied.", headers: Optional[dict[str, str]] = None):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail, headers=headers)


class NotFoundException(HTTPException):
    def __init__(self, resource: str = "Resource"):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"{resource} not found.",
        )


class InvalidOTPException(HTTPException):
    # Same message for missing, expired and wrong codes
    def __init__(self):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid or expired OTP.",
        )


class EmailDeliveryException(HTTPException):
    def __init__(self):
        super().__init__(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Sending OTP failed. Please try again later.",
        )


# ── Infrastructure faults ─────────────────────────────────────────────────────

class InternalError(Exception):
    """Base for faults that must surface as a generic 500."""


class HashingError(InternalError):
    """The password hashing primitive could not produce a digest."""


class VerificationError(InternalError):
    """A stored digest is malformed. A plain mismatch is never an error."""


class TokenSigningError(InternalError):
    """The signing key is missing or unusable."""
