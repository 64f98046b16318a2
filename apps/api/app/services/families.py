from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from app.core.errors import ConflictError, NotFoundError, PersistenceFailure, ValidationFailure, unexpected_error_message
from app.models.entities import Family, FamilyMember
from app.schemas.families import FamilyUpdate
from app.services.links import generate_join_link

logger = logging.getLogger(__name__)


def get_family(db: Session, family_id: int) -> Family | None:
    logger.info("lookup family with id: [%s]", family_id)
    return db.execute(
        select(Family)
        .options(selectinload(Family.branches), selectinload(Family.members))
        .where(Family.id == family_id)
    ).scalar_one_or_none()


def require_family(db: Session, family_id: int) -> Family:
    family = get_family(db, family_id)
    if family is None:
        raise NotFoundError("family_not_found", f"family with id {family_id} not found")
    return family


def family_username_taken(db: Session, family_username: str) -> bool:
    return db.execute(select(Family.id).where(Family.family_username == family_username)).first() is not None


def list_members(db: Session, family_id: int) -> list[FamilyMember]:
    return list(require_family(db, family_id).members)


def _contains(text: str) -> str:
    escaped = text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def search_families(db: Session, text: str) -> list[Family]:
    text = text.strip()
    if not text:
        raise ValidationFailure("search_text_required", "provide a family name, username, country or state to search")
    pattern = _contains(text)
    try:
        return list(
            db.execute(
                select(Family)
                .where(
                    or_(
                        Family.family_name.ilike(pattern, escape="\\"),
                        Family.family_username.ilike(pattern, escape="\\"),
                        Family.country.ilike(pattern, escape="\\"),
                        Family.state.ilike(pattern, escape="\\"),
                    )
                )
                .order_by(Family.id.asc())
            ).scalars()
        )
    except SQLAlchemyError as exc:
        logger.exception("an error occurred searching family with [%s]", text)
        raise PersistenceFailure("family_search_failed", unexpected_error_message(exc)) from exc


def query_families(
    db: Session,
    *,
    family_name: str | None = None,
    country: str | None = None,
    state: str | None = None,
    tribe: str | None = None,
) -> list[Family]:
    filters = [
        column.ilike(_contains(value.strip()), escape="\\")
        for column, value in (
            (Family.family_name, family_name),
            (Family.country, country),
            (Family.state, state),
            (Family.tribe, tribe),
        )
        if value
    ]
    try:
        return list(
            db.execute(
                select(Family)
                .options(
                    selectinload(Family.root),
                    selectinload(Family.members).selectinload(FamilyMember.user),
                )
                .where(*filters)
                .order_by(Family.id.asc())
            ).scalars()
        )
    except SQLAlchemyError as exc:
        logger.exception("an error occurred querying families")
        raise PersistenceFailure("family_search_failed", unexpected_error_message(exc)) from exc


def update_family(db: Session, family_id: int, payload: FamilyUpdate) -> Family:
    family = require_family(db, family_id)
    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    for field, value in changes.items():
        setattr(family, field, value)
    if "state" in changes:
        # The join link is derived from username + state.
        family.family_join_link = generate_join_link(family.family_username, family.state)

    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("error updating family %s", family_id)
        raise PersistenceFailure("family_update_failed", unexpected_error_message(exc)) from exc
    return require_family(db, family_id)


def attach_branch(db: Session, family_id: int, branch_id: int) -> Family:
    """Attach `branch_id` as a sub-family of `family_id`, keeping the family tree acyclic."""
    family = require_family(db, family_id)
    branch = require_family(db, branch_id)

    if family.id == branch.id:
        raise ConflictError("family_branch_conflict", "a family cannot be a branch of itself")
    if branch.parent_family_id is not None:
        raise ConflictError(
            "family_branch_conflict",
            f"{branch.family_name} family is already a branch of family {branch.parent_family_id}",
        )
    ancestor = family.parent_family
    while ancestor is not None:
        if ancestor.id == branch.id:
            raise ConflictError(
                "family_branch_conflict",
                f"{branch.family_name} family is an ancestor of {family.family_name} family",
            )
        ancestor = ancestor.parent_family

    logger.info("attaching family %s as a branch of family %s", branch.id, family.id)
    branch.parent_family_id = family.id
    branch.attached_at = datetime.now(timezone.utc)
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("error attaching branch %s to family %s", branch_id, family_id)
        raise PersistenceFailure("family_update_failed", unexpected_error_message(exc)) from exc
    return require_family(db, family_id)
