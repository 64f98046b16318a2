from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session, joinedload

from app.core.errors import ConflictError, ValidationFailure
from app.models.entities import TOP_LEVEL_RELATIONS, FamilyMember, FamilyTypeEnum, RelationshipEnum

logger = logging.getLogger(__name__)


def coerce_family_type(value: FamilyTypeEnum | str) -> FamilyTypeEnum:
    if isinstance(value, FamilyTypeEnum):
        return value
    try:
        return FamilyTypeEnum(value.strip().upper())
    except ValueError:
        raise ValidationFailure("family_type_invalid", f"unknown family type: {value}") from None


def coerce_relationship(value: RelationshipEnum | str) -> RelationshipEnum:
    if isinstance(value, RelationshipEnum):
        return value
    try:
        return RelationshipEnum(value.strip().lower())
    except ValueError:
        raise ValidationFailure("relationship_invalid", f"unknown relationship to root: {value}") from None


def find_membership(db: Session, user_id: int, family_username: str) -> FamilyMember | None:
    return db.execute(
        select(FamilyMember).where(
            FamilyMember.user_id == user_id,
            FamilyMember.family_username == family_username,
        )
    ).scalar_one_or_none()


def find_membership_by_type(db: Session, user_id: int, family_type: FamilyTypeEnum | str) -> FamilyMember | None:
    return db.execute(
        select(FamilyMember)
        .options(joinedload(FamilyMember.family))
        .where(
            FamilyMember.user_id == user_id,
            FamilyMember.family_type == coerce_family_type(family_type),
        )
        .limit(1)
    ).scalar_one_or_none()


def validate_family_type_uniqueness(
    db: Session, user_id: int, family_type: FamilyTypeEnum | str
) -> tuple[bool, str | None]:
    """
    Check that a person does not already belong to a family of the given type.

    Returns `(True, None)` when the type is free, otherwise `(False, name)` where `name`
    is the family already occupying that axis for the person.
    """
    logger.info("validating user %s doesn't already belong to a %s family", user_id, family_type)
    existing = find_membership_by_type(db, user_id, family_type)
    if existing is None:
        return True, None
    if existing.family is not None:
        return False, existing.family.family_name
    return False, existing.family_username


def ensure_family_type_available(db: Session, user_id: int, family_type: FamilyTypeEnum | str | None) -> None:
    if family_type is None:
        return
    family_type = coerce_family_type(family_type)
    available, family_name = validate_family_type_uniqueness(db, user_id, family_type)
    if not available:
        logger.warning("user %s already belongs to %s family %s", user_id, family_type.value, family_name)
        raise ConflictError(
            "family_type_conflict",
            f"you already belong to [{family_type.value} family {family_name}]: "
            "to create or join a family of same type, first exit the one you're on",
            data={"family_name": family_name},
        )


def validate_relationship_to_root(relationship: RelationshipEnum | str) -> bool:
    """True when the relation hangs directly off the root, False when a parent must link it."""
    return coerce_relationship(relationship) in TOP_LEVEL_RELATIONS


def ensure_parent_chain(relationship: RelationshipEnum | str, has_parent: bool) -> RelationshipEnum:
    relationship = coerce_relationship(relationship)
    if relationship is RelationshipEnum.root:
        raise ValidationFailure("relationship_invalid", "relationship 'root' is reserved for the family root")
    if validate_relationship_to_root(relationship):
        if has_parent:
            raise ValidationFailure(
                "parent_not_allowed",
                f"{relationship.value} is directly related to root, skip parent create or select",
            )
    elif not has_parent:
        raise ValidationFailure(
            "parent_required",
            f"{relationship.value} is disconnected from root, create or select your parent who link you to the root",
        )
    return relationship


def parent_attributes_complete(
    relationship: RelationshipEnum | str | None,
    full_name: str | None,
    gender: str | None,
) -> bool:
    return all((relationship, full_name, gender))
