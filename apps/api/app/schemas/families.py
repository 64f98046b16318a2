from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from app.models.entities import FamilyTypeEnum, RelationshipEnum
from app.schemas.common import ResultEnvelope
from app.schemas.persons import PersonBrief


def normalize_family_type(value):
    if isinstance(value, str):
        return value.strip().upper()
    return value


class FamilyCreate(BaseModel):
    creator: int
    family_name: str = Field(min_length=1, max_length=200)
    country: str = Field(min_length=1, max_length=255)
    state: str = Field(min_length=1, max_length=255)
    tribe: str = Field(min_length=1, max_length=255)
    family_cover_image: str | None = Field(default=None, max_length=512)
    family_type: FamilyTypeEnum | None = None
    relationship_to_root: RelationshipEnum

    # Existing-root mode: an existing person anchors the family.
    root: int | None = None
    # New-root mode: a placeholder root is created from these.
    new_root_full_name: str | None = Field(default=None, min_length=1, max_length=255)
    new_root_user_name: str | None = Field(default=None, min_length=1, max_length=64)

    # Placeholder parent linking a non top-level creator to the root.
    new_parent_relationship: RelationshipEnum | None = None
    new_parent_full_name: str | None = Field(default=None, min_length=1, max_length=255)
    new_parent_gender: str | None = Field(default=None, max_length=32)

    @field_validator("family_type", mode="before")
    @classmethod
    def coerce_family_type(cls, value):
        return normalize_family_type(value)


class FamilyUpdate(BaseModel):
    family_name: str | None = Field(default=None, min_length=1, max_length=200)
    country: str | None = Field(default=None, min_length=1, max_length=255)
    state: str | None = Field(default=None, min_length=1, max_length=255)
    tribe: str | None = Field(default=None, min_length=1, max_length=255)
    family_cover_image: str | None = Field(default=None, max_length=512)


class JoinFamilyRequest(BaseModel):
    user: int
    relationship_to_root: RelationshipEnum
    family_type: FamilyTypeEnum | None = None
    parent: int | None = None

    @field_validator("family_type", mode="before")
    @classmethod
    def coerce_family_type(cls, value):
        return normalize_family_type(value)


class BranchAttachRequest(BaseModel):
    branch_id: int


class FamilyTypeValidateRequest(BaseModel):
    user_id: int
    family_type: FamilyTypeEnum

    @field_validator("family_type", mode="before")
    @classmethod
    def coerce_family_type(cls, value):
        return normalize_family_type(value)


class RelationshipValidateRequest(BaseModel):
    relationship_to_root: RelationshipEnum


class FamilyMemberResponse(BaseModel):
    id: int
    user_id: int
    family_id: int | None
    family_username: str
    family_type: str | None
    relationship_to_root: str
    parent_id: int | None
    created_at: datetime


class FamilyBrief(BaseModel):
    id: int
    family_name: str
    family_username: str
    family_join_link: str


class FamilyResponse(BaseModel):
    id: int
    creator_id: int
    root_id: int
    family_name: str
    country: str
    state: str
    tribe: str
    family_username: str
    family_cover_image: str
    family_join_link: str
    parent_family_id: int | None
    wiki_id: int | None
    members_count: int
    members: list[FamilyMemberResponse]
    branches: list[FamilyBrief]
    created_at: datetime


class MemberPreview(BaseModel):
    id: int
    user_id: int
    username: str | None
    full_name: str
    profile_pic: str | None
    relationship_to_root: str


class FamilySummary(BaseModel):
    id: int
    family_name: str
    family_username: str
    family_cover_image: str
    family_join_link: str
    root: PersonBrief
    members: list[MemberPreview]


class FamilyEnvelope(ResultEnvelope):
    data: FamilyResponse | None = None


class FamilyBriefListEnvelope(ResultEnvelope):
    data: list[FamilyBrief] | None = None


class FamilySummaryListEnvelope(ResultEnvelope):
    data: list[FamilySummary] | None = None


class FamilyMemberEnvelope(ResultEnvelope):
    data: FamilyMemberResponse | None = None


class FamilyMemberListEnvelope(ResultEnvelope):
    data: list[FamilyMemberResponse] | None = None


class ValidationEnvelope(ResultEnvelope):
    data: bool | None = None
