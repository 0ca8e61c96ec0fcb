"""
User schemas: public profile views and update requests.
"""
from pydantic import field_validator, model_validator, ConfigDict
from pydantic.alias_generators import to_camel
from typing import Optional
from datetime import datetime

from umurava.schemas.auth import CamelModel, check_name


class UserOut(CamelModel):
    """
    Public-safe user representation.
    password_hash, token_version and the pending OTP columns are never included:
    Pydantic only exposes fields declared here.
    """
    model_config = ConfigDict(from_attributes=True, alias_generator=to_camel, populate_by_name=True)

    id: str
    first_name: str
    last_name: str
    email: str
    role: str
    profile_picture_url: Optional[str] = None
    created_at: Optional[datetime] = None

    # UUID → str conversion for JSON serialization
    @field_validator("id", mode="before")
    @classmethod
    def uuid_to_str(cls, v) -> str:
        return str(v)


class UserUpdateRequest(CamelModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None

    @field_validator("first_name", "last_name")
    @classmethod
    def name_valid(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return check_name(v)

    @model_validator(mode="after")
    def something_to_update(self) -> "UserUpdateRequest":
        if self.first_name is None and self.last_name is None:
            raise ValueError("Provide firstName or lastName")
        return self
