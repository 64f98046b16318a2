from __future__ import annotations

import re
from datetime import datetime

from pydantic import BaseModel, EmailStr, Field, field_validator

from app.schemas.common import ResultEnvelope

PHONE_STRIP_RE = re.compile(r"[\s\-.()]")
PHONE_RE = re.compile(r"^\+?[0-9]{7,15}$")


def normalize_phone(value: str | None) -> str | None:
    if value is None:
        return None
    phone = PHONE_STRIP_RE.sub("", value)
    if not PHONE_RE.match(phone):
        raise ValueError("phone must be 7 to 15 digits, optionally prefixed with +")
    return phone


class PersonCreate(BaseModel):
    full_name: str = Field(min_length=1, max_length=255)
    username: str | None = Field(default=None, min_length=1, max_length=64)
    email: EmailStr | None = None
    phone: str | None = None
    gender: str | None = Field(default=None, max_length=32)
    profile_pic: str | None = Field(default=None, max_length=512)

    @field_validator("phone")
    @classmethod
    def coerce_phone(cls, value: str | None) -> str | None:
        return normalize_phone(value)


class PersonUpdate(BaseModel):
    full_name: str | None = Field(default=None, min_length=1, max_length=255)
    username: str | None = Field(default=None, min_length=1, max_length=64)
    email: EmailStr | None = None
    phone: str | None = None
    gender: str | None = Field(default=None, max_length=32)
    profile_pic: str | None = Field(default=None, max_length=512)

    @field_validator("full_name")
    @classmethod
    def require_full_name(cls, value: str | None) -> str:
        # Omit the field to keep the current name; null is not a name.
        if value is None:
            raise ValueError("full_name cannot be null")
        return value

    @field_validator("phone")
    @classmethod
    def coerce_phone(cls, value: str | None) -> str | None:
        return normalize_phone(value)


class PersonResponse(BaseModel):
    id: int
    full_name: str
    username: str | None
    email: str | None
    phone: str | None
    gender: str | None
    profile_pic: str | None
    role: str
    family_rooted_to_id: int | None
    creator_id: int | None
    is_active: bool
    created_at: datetime


class PersonBrief(BaseModel):
    id: int
    full_name: str
    role: str
    profile_pic: str | None


class PersonEnvelope(ResultEnvelope):
    data: PersonResponse | None = None


class AvailabilityEnvelope(ResultEnvelope):
    data: bool | None = None
