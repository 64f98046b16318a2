from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.db import get_db
from app.core.errors import ConflictError
from app.models.entities import Family, FamilyMember
from app.schemas.families import (
    BranchAttachRequest,
    FamilyBrief,
    FamilyBriefListEnvelope,
    FamilyCreate,
    FamilyEnvelope,
    FamilyMemberEnvelope,
    FamilyMemberListEnvelope,
    FamilyMemberResponse,
    FamilyResponse,
    FamilySummary,
    FamilySummaryListEnvelope,
    FamilyTypeValidateRequest,
    FamilyUpdate,
    JoinFamilyRequest,
    MemberPreview,
    RelationshipValidateRequest,
    ValidationEnvelope,
)
from app.schemas.persons import PersonBrief
from app.services.families import attach_branch, list_members, query_families, require_family, search_families, update_family
from app.services.graph import create_family, join_family
from app.services.identity import require_person
from app.services.membership import validate_family_type_uniqueness, validate_relationship_to_root

router = APIRouter(prefix="/v1/families", tags=["families"])


def _to_member_response(member: FamilyMember) -> FamilyMemberResponse:
    return FamilyMemberResponse(
        id=member.id,
        user_id=member.user_id,
        family_id=member.family_id,
        family_username=member.family_username,
        family_type=member.family_type.value if member.family_type is not None else None,
        relationship_to_root=member.relationship_to_root.value,
        parent_id=member.parent_id,
        created_at=member.created_at,
    )


def _to_family_brief(family: Family) -> FamilyBrief:
    return FamilyBrief(
        id=family.id,
        family_name=family.family_name,
        family_username=family.family_username,
        family_join_link=family.family_join_link,
    )


def _to_family_response(family: Family) -> FamilyResponse:
    return FamilyResponse(
        id=family.id,
        creator_id=family.creator_id,
        root_id=family.root_id,
        family_name=family.family_name,
        country=family.country,
        state=family.state,
        tribe=family.tribe,
        family_username=family.family_username,
        family_cover_image=family.family_cover_image,
        family_join_link=family.family_join_link,
        parent_family_id=family.parent_family_id,
        wiki_id=family.wiki_id,
        members_count=family.members_count,
        members=[_to_member_response(item) for item in family.members],
        branches=[_to_family_brief(item) for item in family.branches],
        created_at=family.created_at,
    )


def _to_family_summary(family: Family) -> FamilySummary:
    return FamilySummary(
        id=family.id,
        family_name=family.family_name,
        family_username=family.family_username,
        family_cover_image=family.family_cover_image,
        family_join_link=family.family_join_link,
        root=PersonBrief(
            id=family.root.id,
            full_name=family.root.full_name,
            role=family.root.role.value,
            profile_pic=family.root.profile_pic,
        ),
        members=[
            MemberPreview(
                id=item.id,
                user_id=item.user_id,
                username=item.user.username,
                full_name=item.user.full_name,
                profile_pic=item.user.profile_pic,
                relationship_to_root=item.relationship_to_root.value,
            )
            for item in family.members[: settings.query_member_preview_limit]
        ],
    )


@router.post("", response_model=FamilyEnvelope, status_code=201)
def create_family_route(payload: FamilyCreate, db: Session = Depends(get_db)):
    family = create_family(db, payload)
    return FamilyEnvelope(
        status_code=201,
        message=f"{family.family_name} family created successfully",
        data=_to_family_response(family),
    )


@router.get("", response_model=FamilySummaryListEnvelope)
def query_families_route(
    family_name: str | None = Query(default=None),
    country: str | None = Query(default=None),
    state: str | None = Query(default=None),
    tribe: str | None = Query(default=None),
    db: Session = Depends(get_db),
):
    families = query_families(db, family_name=family_name, country=country, state=state, tribe=tribe)
    message = "families found with this record are" if families else "no family found with these record"
    return FamilySummaryListEnvelope(
        status_code=200,
        message=message,
        data=[_to_family_summary(item) for item in families],
    )


@router.get("/search", response_model=FamilyBriefListEnvelope)
def search_families_route(text: str = Query(min_length=1, pattern=r"\S"), db: Session = Depends(get_db)):
    families = search_families(db, text)
    message = f"families with [{text}] retrieved successfully" if families else f"no family found with {text}"
    return FamilyBriefListEnvelope(
        status_code=200,
        message=message,
        data=[_to_family_brief(item) for item in families],
    )


@router.post("/validate/family-type", response_model=ValidationEnvelope)
def validate_family_type_route(payload: FamilyTypeValidateRequest, db: Session = Depends(get_db)):
    require_person(db, payload.user_id)
    available, family_name = validate_family_type_uniqueness(db, payload.user_id, payload.family_type)
    if not available:
        raise ConflictError(
            "family_type_conflict",
            f"you already belong to [{payload.family_type.value} family {family_name}]: "
            "to create a family of same type, first exit the one you're on",
            data=False,
        )
    return ValidationEnvelope(status_code=200, message="user does not belong to any family of same type", data=True)


@router.post("/validate/relationship", response_model=ValidationEnvelope)
def validate_relationship_route(payload: RelationshipValidateRequest):
    if validate_relationship_to_root(payload.relationship_to_root):
        message = "relationship is directly related to root, skip parent create or select"
        return ValidationEnvelope(status_code=200, message=message, data=True)
    message = "relationship is disconnected from root, create or select your parent who link you to the root"
    return ValidationEnvelope(status_code=200, message=message, data=False)


@router.get("/{family_id}", response_model=FamilyEnvelope)
def get_family_route(family_id: int, db: Session = Depends(get_db)):
    family = require_family(db, family_id)
    return FamilyEnvelope(status_code=200, message="family fetched successfully", data=_to_family_response(family))


@router.patch("/{family_id}", response_model=FamilyEnvelope)
def update_family_route(family_id: int, payload: FamilyUpdate, db: Session = Depends(get_db)):
    family = update_family(db, family_id, payload)
    return FamilyEnvelope(status_code=200, message="family updated successfully", data=_to_family_response(family))


@router.post("/{family_id}/join", response_model=FamilyMemberEnvelope)
def join_family_route(family_id: int, payload: JoinFamilyRequest, db: Session = Depends(get_db)):
    family, member = join_family(db, family_id, payload)
    return FamilyMemberEnvelope(
        status_code=200,
        message=f"you've successfully joined {family.family_name} family",
        data=_to_member_response(member),
    )


@router.get("/{family_id}/members", response_model=FamilyMemberListEnvelope)
def list_family_members_route(family_id: int, db: Session = Depends(get_db)):
    members = list_members(db, family_id)
    return FamilyMemberListEnvelope(
        status_code=200,
        message="family members fetched successfully",
        data=[_to_member_response(item) for item in members],
    )


@router.post("/{family_id}/branches", response_model=FamilyEnvelope)
def attach_branch_route(family_id: int, payload: BranchAttachRequest, db: Session = Depends(get_db)):
    family = attach_branch(db, family_id, payload.branch_id)
    return FamilyEnvelope(status_code=200, message="branch attached successfully", data=_to_family_response(family))
