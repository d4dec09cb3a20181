"""
Pydantic schemas for API request/response validation.
"""

import re
import uuid
from urllib.parse import urlparse
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


# === Shared field validation ===

PROFILE_PHONE_RE = re.compile(r"^(?:0\d{9}|\+40\d{9}|0040\d{9})$")
DIRECTORY_PHONE_RE = re.compile(r"^[+()\-\s\d]{7,}$")


def _trimmed(value: Any) -> Any:
    return value.strip() if isinstance(value, str) else value


def _check_phone(value: str | None, pattern: re.Pattern) -> str | None:
    value = _trimmed(value)
    if value and not pattern.match(value):
        raise ValueError("Enter a valid phone number")
    return value


def _check_url(value: str | None) -> str | None:
    value = _trimmed(value)
    if value:
        parsed = urlparse(value)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError("Enter a valid URL (include https://)")
    return value


# === Chat Request Schemas ===

class ChatRequestResponse(BaseModel):
    """A chat request as seen by clients."""
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    status: str
    created_by: uuid.UUID
    created_by_name: str
    accepted_by: int | None
    created_at: datetime
    closed_at: datetime | None


class PendingCountResponse(BaseModel):
    pending: int


# === Specialist Schemas ===

class SpecialistResponse(BaseModel):
    """Directory entry."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    created_at: datetime
    fullname: str | None
    phone: str | None
    email: str | None
    website: str | None
    about: str | None
    is_verified: bool
    avatar_path: str | None
    avatar_alt: str | None


class SpecialistCreate(BaseModel):
    """Directory management: new entry."""
    fullname: str = Field(..., description="Full name")
    email: str = Field(..., description="Login e-mail of the specialist")
    phone: str = ""
    website: str = ""
    about: str = Field("", max_length=2000)
    is_verified: bool = False

    @field_validator("fullname")
    @classmethod
    def validate_fullname(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 2:
            raise ValueError("Full name must be at least 2 characters")
        return v

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        v = v.strip().lower()
        if "@" not in v:
            raise ValueError("Enter a valid e-mail address")
        return v

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v: str) -> str:
        return _check_phone(v, DIRECTORY_PHONE_RE)

    @field_validator("website")
    @classmethod
    def validate_website(cls, v: str) -> str:
        return _check_url(v)


class SpecialistUpdate(BaseModel):
    """Directory management: partial update (unset fields are left alone)."""
    fullname: str | None = None
    phone: str | None = None
    website: str | None = None
    about: str | None = Field(None, max_length=2000)
    is_verified: bool | None = None

    @field_validator("fullname")
    @classmethod
    def validate_fullname(cls, v: str | None) -> str | None:
        if v is not None and len(v.strip()) < 2:
            raise ValueError("Full name must be at least 2 characters")
        return _trimmed(v)

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v: str | None) -> str | None:
        return _check_phone(v, DIRECTORY_PHONE_RE)

    @field_validator("website")
    @classmethod
    def validate_website(cls, v: str | None) -> str | None:
        return _check_url(v)


# === Profile Schemas ===

class ProfileUpdate(BaseModel):
    """Own profile form. E-mail comes from the token, never from the body."""
    fullname: str
    phone: str = ""
    website: str = ""
    about: str = ""
    avatar_alt: str | None = None  # left untouched unless sent

    @field_validator("fullname")
    @classmethod
    def validate_fullname(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 2:
            raise ValueError("Full name must be at least 2 characters")
        return v

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v: str) -> str:
        return _check_phone(v, PROFILE_PHONE_RE)

    @field_validator("website")
    @classmethod
    def validate_website(cls, v: str) -> str:
        return _check_url(v)

    @field_validator("about")
    @classmethod
    def validate_about(cls, v: str) -> str:
        v = v.strip()
        if len(v) > 2000:
            raise ValueError("About must be at most 2000 characters")
        return v

    @field_validator("avatar_alt")
    @classmethod
    def validate_avatar_alt(cls, v: str | None) -> str | None:
        if v is None:
            return None
        v = v.strip()
        if len(v) > 120:
            raise ValueError("Alt text must be at most 120 characters")
        return v


class ProfileResponse(BaseModel):
    """Own profile: identity, directory entry (if any) and avatar fallbacks."""
    user_id: uuid.UUID
    email: str | None
    display_name: str
    initial: str
    color: str
    avatar_url: str | None
    specialist: SpecialistResponse | None


class AvatarResponse(BaseModel):
    avatar_path: str
    avatar_url: str


# === Errors / Health ===

class ErrorResponse(BaseModel):
    """Body returned for handled errors."""
    detail: str
    error_type: str
    details: dict[str, Any] = {}


class HealthResponse(BaseModel):
    status: str
    version: str
