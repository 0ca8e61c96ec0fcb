"""
Auth schemas: request bodies and responses for registration, login, OTP, and session operations.
Field names are snake_case in Python and camelCase on the wire.
"""
from pydantic import BaseModel, EmailStr, field_validator, ConfigDict
from pydantic.alias_generators import to_camel
from typing import Literal
import re

NAME_RE = re.compile(r"^[A-Za-z]+$")
# lowercase + uppercase + digit + symbol, only from this alphabet, 8+ chars
PASSWORD_RE = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[@$!%*?&])[A-Za-z\d@$!%*?&]{8,}$")
OTP_RE = re.compile(r"^\d{6}$")


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def check_name(v: str) -> str:
    v = v.strip()
    if len(v) < 2 or len(v) > 255:
        raise ValueError("must be between 2 and 255 characters")
    if not NAME_RE.match(v):
        raise ValueError("can only contain letters")
    return v


def check_password(v: str) -> str:
    if not PASSWORD_RE.match(v):
        raise ValueError(
            "must be at least 8 characters and contain an uppercase letter, "
            "a lowercase letter, a digit and one of @$!%*?&"
        )
    return v


def normalize_email(v: str) -> str:
    return v.strip().lower()


class RegisterRequest(CamelModel):
    first_name: str
    last_name: str
    email: EmailStr
    password: str
    role: Literal["user", "admin"] = "user"

    @field_validator("first_name", "last_name")
    @classmethod
    def name_valid(cls, v: str) -> str:
        return check_name(v)

    @field_validator("email")
    @classmethod
    def email_lower(cls, v: str) -> str:
        return normalize_email(v)

    @field_validator("password")
    @classmethod
    def password_strong(cls, v: str) -> str:
        return check_password(v)


class LoginRequest(CamelModel):
    email: EmailStr
    password: str

    @field_validator("email")
    @classmethod
    def email_lower(cls, v: str) -> str:
        return normalize_email(v)

    @field_validator("password")
    @classmethod
    def password_present(cls, v: str) -> str:
        if not v:
            raise ValueError("is required")
        return v


class VerifyOTPRequest(CamelModel):
    email: EmailStr
    otp: str

    @field_validator("email")
    @classmethod
    def email_lower(cls, v: str) -> str:
        return normalize_email(v)

    @field_validator("otp")
    @classmethod
    def otp_format(cls, v: str) -> str:
        v = v.strip()
        if not OTP_RE.match(v):
            raise ValueError("must be a 6-digit code")
        return v


class ChangePasswordRequest(CamelModel):
    current_password: str
    new_password: str

    @field_validator("new_password")
    @classmethod
    def password_strong(cls, v: str) -> str:
        return check_password(v)


class TokenResponse(CamelModel):
    access_token: str
    token_type: str = "bearer"


class LoginResponse(CamelModel):
    email: str
    message: str


class MessageResponse(CamelModel):
    message: str
