"""
Family graph construction.

Creating a family touches three tables in a fixed order: placeholder persons, the two
initial memberships (root and creator), the family itself, the back-link from the
memberships to the family, and finally the root person's promotion. Memberships and the
family reference each other, so the members are inserted first, tagged only with the
generated family username, and linked to the family id once it exists.

Each branch runs inside a single transaction. Uniqueness is decided by the store
(`uq_families_root_id`, `uq_family_members_user_family`, ...); the pre-checks only exist
to produce friendlier messages, and an integrity error from a racing writer is mapped
back onto the same conflict the pre-check would have raised.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import (
    ConflictError,
    PersistenceFailure,
    ServiceError,
    ValidationFailure,
    integrity_violation,
    unexpected_error_message,
)
from app.models.entities import Family, FamilyMember, Person, PersonRoleEnum, RelationshipEnum
from app.schemas.families import FamilyCreate, JoinFamilyRequest
from app.services.families import family_username_taken, require_family
from app.services.identity import create_placeholder_person, ensure_username_free, require_person
from app.services.links import generate_family_username, generate_join_link
from app.services.membership import (
    ensure_family_type_available,
    ensure_parent_chain,
    find_membership,
    parent_attributes_complete,
)

logger = logging.getLogger(__name__)


class _RootPromotionLost(Exception):
    """Another writer promoted the selected root between the check and the write."""


def reserve_family_username(db: Session, family_name: str) -> str:
    candidate = generate_family_username(family_name)
    for _ in range(settings.family_username_max_attempts - 1):
        if not family_username_taken(db, candidate):
            break
        candidate = generate_family_username(family_name)
    return candidate


def rooted_family(db: Session, person: Person) -> Family | None:
    """The family `person` is already root of, if any."""
    if person.role is not PersonRoleEnum.root:
        return None
    if person.family_rooted_to is not None:
        return person.family_rooted_to
    return db.execute(select(Family).where(Family.root_id == person.id)).scalar_one_or_none()


def _root_conflict(family: Family | None) -> ConflictError:
    name = family.family_name if family is not None else "another"
    return ConflictError(
        "family_root_conflict",
        f"user selected as root is already a root in {name} family, consider joining the family instead",
        data={"family_username": family.family_username if family is not None else None},
    )


def _already_member() -> ConflictError:
    return ConflictError("family_member_exists", "you're already a member of this family")


def _has_new_parent(payload: FamilyCreate) -> bool:
    return parent_attributes_complete(
        payload.new_parent_relationship,
        payload.new_parent_full_name,
        payload.new_parent_gender,
    )


def _create_parent_placeholder(db: Session, payload: FamilyCreate) -> Person | None:
    if not _has_new_parent(payload):
        return None
    logger.info(
        "creating new inactive %s record for non-first generational family member %s",
        payload.new_parent_relationship.value,
        payload.creator,
    )
    return create_placeholder_person(
        db,
        creator_id=payload.creator,
        full_name=payload.new_parent_full_name,
        gender=payload.new_parent_gender,
    )


def _build_family(
    db: Session,
    payload: FamilyCreate,
    *,
    root: Person,
    creator: Person,
    relationship: RelationshipEnum | None,
    parent: Person | None,
    family_username: str,
) -> Family:
    members = [
        FamilyMember(
            user_id=root.id,
            family_username=family_username,
            family_type=payload.family_type,
            relationship_to_root=RelationshipEnum.root,
        )
    ]
    if creator.id != root.id:
        members.append(
            FamilyMember(
                user_id=creator.id,
                family_username=family_username,
                family_type=payload.family_type,
                relationship_to_root=relationship,
                parent_id=parent.id if parent is not None else None,
            )
        )
    db.add_all(members)
    db.flush()

    logger.info("creating the family %s", family_username)
    family = Family(
        creator_id=creator.id,
        root_id=root.id,
        family_name=payload.family_name,
        country=payload.country,
        state=payload.state,
        tribe=payload.tribe,
        family_username=family_username,
        family_cover_image=payload.family_cover_image or settings.default_family_cover_image,
        family_join_link=generate_join_link(family_username, payload.state),
    )
    db.add(family)
    db.flush()

    db.execute(
        update(FamilyMember)
        .where(FamilyMember.family_username == family_username)
        .values(family_id=family.id)
    )
    return family


def _create_conflict(db: Session, exc: IntegrityError, root_id: int | None) -> ServiceError:
    if integrity_violation(exc, "families.root_id", "uq_families_root_id", "persons.family_rooted_to_id"):
        family = None
        if root_id is not None:
            family = db.execute(select(Family).where(Family.root_id == root_id)).scalar_one_or_none()
        return _root_conflict(family)
    if integrity_violation(exc, "family_members.family_type", "uq_family_members_user_family_type"):
        return ConflictError(
            "family_type_conflict",
            "a member of this family already belongs to another family of the same type",
        )
    if integrity_violation(exc, "families.family_username", "uq_families_family_username"):
        return ConflictError("family_username_conflict", "could not allocate a unique family username, try again")
    if integrity_violation(exc, "persons.username", "persons_username_key"):
        return ConflictError("username_already_exist", "a user with this username already exist")
    logger.exception("error creating new family")
    return PersistenceFailure("family_create_failed", unexpected_error_message(exc))


def _run_create(db: Session, steps: Callable[[], Family], root_id: int | None) -> Family:
    try:
        family = steps()
        db.commit()
    except ServiceError:
        db.rollback()
        raise
    except _RootPromotionLost:
        db.rollback()
        logger.warning("user %s was promoted to root by a concurrent request", root_id)
        family = db.execute(select(Family).where(Family.root_id == root_id)).scalar_one_or_none()
        raise _root_conflict(family) from None
    except IntegrityError as exc:
        db.rollback()
        raise _create_conflict(db, exc, root_id) from None
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("error creating new family")
        raise PersistenceFailure("family_create_failed", unexpected_error_message(exc)) from exc
    except Exception as exc:
        db.rollback()
        logger.exception("unexpected error creating new family")
        raise PersistenceFailure("family_create_failed", unexpected_error_message(exc)) from exc
    return require_family(db, family.id)


def _create_with_existing_root(db: Session, payload: FamilyCreate, creator: Person) -> Family:
    logger.info("validating user %s selected as root isn't already root on another family", payload.root)
    root = require_person(db, payload.root)
    existing = rooted_family(db, root)
    if existing is not None:
        logger.warning("user %s is already root of family %s", root.id, existing.id)
        raise _root_conflict(existing)

    creator_is_root = creator.id == root.id
    has_parent = _has_new_parent(payload)
    relationship = None
    if creator_is_root:
        if has_parent:
            raise ValidationFailure("parent_not_allowed", "the root of a family has no parent within it")
    else:
        relationship = ensure_parent_chain(payload.relationship_to_root, has_parent)
        ensure_family_type_available(db, creator.id, payload.family_type)
    ensure_family_type_available(db, root.id, payload.family_type)
    family_username = reserve_family_username(db, payload.family_name)

    def steps() -> Family:
        parent = _create_parent_placeholder(db, payload)
        logger.info("creating new family with an existing family tree user as root")
        family = _build_family(
            db,
            payload,
            root=root,
            creator=creator,
            relationship=relationship,
            parent=parent,
            family_username=family_username,
        )

        logger.info('updating role of user %s selected as root to "root"', root.id)
        promoted = db.execute(
            update(Person)
            .where(Person.id == root.id, Person.role != PersonRoleEnum.root)
            .values(role=PersonRoleEnum.root, family_rooted_to_id=family.id)
            .execution_options(synchronize_session=False)
        )
        if promoted.rowcount != 1:
            raise _RootPromotionLost()
        return family

    return _run_create(db, steps, root.id)


def _create_with_new_root(db: Session, payload: FamilyCreate, creator: Person) -> Family:
    if not payload.new_root_full_name:
        raise ValidationFailure("root_required", "select an existing root or provide the new root's full name")

    relationship = ensure_parent_chain(payload.relationship_to_root, _has_new_parent(payload))
    ensure_family_type_available(db, creator.id, payload.family_type)
    if payload.new_root_user_name:
        ensure_username_free(db, payload.new_root_user_name)
    family_username = reserve_family_username(db, payload.family_name)

    def steps() -> Family:
        # The creator's parent placeholder must exist before the creator's membership row.
        parent = _create_parent_placeholder(db, payload)

        logger.info("creating the root %s", payload.new_root_full_name)
        root = create_placeholder_person(
            db,
            creator_id=creator.id,
            full_name=payload.new_root_full_name,
            username=payload.new_root_user_name,
            role=PersonRoleEnum.root,
        )
        family = _build_family(
            db,
            payload,
            root=root,
            creator=creator,
            relationship=relationship,
            parent=parent,
            family_username=family_username,
        )
        root.family_rooted_to_id = family.id
        db.flush()
        return family

    return _run_create(db, steps, None)


def create_family(db: Session, payload: FamilyCreate) -> Family:
    """
    Create a family anchored either on an existing person (`payload.root`) or on a new
    inactive root built from `new_root_full_name` / `new_root_user_name`.

    Raises NotFoundError, ConflictError or ValidationFailure before any write, and
    PersistenceFailure (`family_create_failed`) when the store fails mid-sequence; the
    transaction is rolled back in every failure case.
    """
    if payload.family_cover_image:
        logger.info("handling family cover image %s", payload.family_cover_image)
    creator = require_person(db, payload.creator)
    if payload.root is not None:
        return _create_with_existing_root(db, payload, creator)
    logger.info("creating new family with a new user as root")
    return _create_with_new_root(db, payload, creator)


def join_family(db: Session, family_id: int, payload: JoinFamilyRequest) -> tuple[Family, FamilyMember]:
    family = require_family(db, family_id)
    user = require_person(db, payload.user)

    if find_membership(db, user.id, family.family_username) is not None:
        logger.warning("user %s is already a member of family %s", user.id, family.id)
        raise _already_member()

    relationship = ensure_parent_chain(payload.relationship_to_root, payload.parent is not None)
    if payload.parent is not None:
        require_person(db, payload.parent)
    ensure_family_type_available(db, user.id, payload.family_type)

    family_name = family.family_name
    member = FamilyMember(
        user_id=user.id,
        family_username=family.family_username,
        family_type=payload.family_type,
        relationship_to_root=relationship,
        parent_id=payload.parent,
    )
    family.members.append(member)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        if integrity_violation(exc, "family_members.family_type", "uq_family_members_user_family_type"):
            raise ConflictError(
                "family_type_conflict",
                f"you already belong to a {payload.family_type.value} family",
            ) from None
        if integrity_violation(exc, "family_members.family_username", "uq_family_members_user_family"):
            logger.warning("concurrent join of user %s to family %s rejected", user.id, family_id)
            raise _already_member() from None
        logger.exception("error adding new member to %s family", family_name)
        raise PersistenceFailure("family_join_failed", unexpected_error_message(exc)) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("error adding new member to %s family", family_name)
        raise PersistenceFailure("family_join_failed", unexpected_error_message(exc)) from exc
    except Exception as exc:
        db.rollback()
        logger.exception("unexpected error adding new member to %s family", family_name)
        raise PersistenceFailure("family_join_failed", unexpected_error_message(exc)) from exc

    db.refresh(member)
    return family, member
