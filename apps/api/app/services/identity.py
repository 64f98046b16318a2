from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import (
    ConflictError,
    NotFoundError,
    PersistenceFailure,
    integrity_violation,
    unexpected_error_message,
)
from app.models.entities import Person, PersonRoleEnum
from app.schemas.persons import PersonCreate, PersonUpdate
from app.services.links import generate_placeholder_username

logger = logging.getLogger(__name__)


def get_person(db: Session, person_id: int) -> Person | None:
    return db.get(Person, person_id)


def require_person(db: Session, person_id: int) -> Person:
    person = get_person(db, person_id)
    if person is None:
        raise NotFoundError("user_not_found", f"user with id {person_id} not found")
    return person


def find_by_email(db: Session, email: str) -> Person | None:
    return db.execute(select(Person).where(Person.email == email.strip().lower())).scalar_one_or_none()


def find_by_phone(db: Session, phone: str) -> Person | None:
    return db.execute(select(Person).where(Person.phone == phone)).scalar_one_or_none()


def find_by_username(db: Session, username: str) -> Person | None:
    return db.execute(select(Person).where(Person.username == username)).scalar_one_or_none()


def validate_username(db: Session, username: str) -> bool:
    return find_by_username(db, username) is None


def ensure_username_free(db: Session, username: str, exclude_id: int | None = None) -> None:
    existing = find_by_username(db, username)
    if existing is not None and existing.id != exclude_id:
        raise ConflictError("username_already_exist", f"a user with username {username} already exist")


def _ensure_identifiers_free(
    db: Session,
    *,
    email: str | None,
    phone: str | None,
    username: str | None,
    exclude_id: int | None = None,
) -> None:
    if email:
        existing = find_by_email(db, email)
        if existing is not None and existing.id != exclude_id:
            raise ConflictError("mail_already_exist", f"user with email {email} already exist")
    if phone:
        existing = find_by_phone(db, phone)
        if existing is not None and existing.id != exclude_id:
            raise ConflictError("phone_already_exist", f"user with phone {phone} already exist")
    if username:
        ensure_username_free(db, username, exclude_id)


def _identity_conflict(exc: IntegrityError) -> ConflictError | None:
    if integrity_violation(exc, "persons.email", "persons_email_key"):
        return ConflictError("mail_already_exist", "user with this mail already exist")
    if integrity_violation(exc, "persons.phone", "persons_phone_key"):
        return ConflictError("phone_already_exist", "user with this phone already exist")
    if integrity_violation(exc, "persons.username", "persons_username_key"):
        return ConflictError("username_already_exist", "a user with this username already exist")
    return None


def create_person(db: Session, payload: PersonCreate) -> Person:
    email = str(payload.email).lower() if payload.email else None
    _ensure_identifiers_free(db, email=email, phone=payload.phone, username=payload.username)

    logger.info("creating new user %s", payload.full_name)
    person = Person(
        full_name=payload.full_name,
        username=payload.username,
        email=email,
        phone=payload.phone,
        gender=payload.gender,
        profile_pic=payload.profile_pic,
        role=PersonRoleEnum.none,
        is_active=True,
    )
    db.add(person)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        conflict = _identity_conflict(exc)
        if conflict is None:
            logger.exception("error creating new user")
            raise PersistenceFailure("user_create_failed", unexpected_error_message(exc)) from exc
        raise conflict from None
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("error creating new user")
        raise PersistenceFailure("user_create_failed", unexpected_error_message(exc)) from exc
    db.refresh(person)
    return person


def update_person(db: Session, person_id: int, payload: PersonUpdate) -> Person:
    person = require_person(db, person_id)
    changes = payload.model_dump(exclude_unset=True)
    if changes.get("email"):
        changes["email"] = str(changes["email"]).lower()
    _ensure_identifiers_free(
        db,
        email=changes.get("email"),
        phone=changes.get("phone"),
        username=changes.get("username"),
        exclude_id=person.id,
    )

    for field, value in changes.items():
        setattr(person, field, value)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        conflict = _identity_conflict(exc)
        if conflict is None:
            logger.exception("error updating user %s", person_id)
            raise PersistenceFailure("user_update_failed", unexpected_error_message(exc)) from exc
        raise conflict from None
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("error updating user %s", person_id)
        raise PersistenceFailure("user_update_failed", unexpected_error_message(exc)) from exc
    db.refresh(person)
    return person


def create_placeholder_person(
    db: Session,
    *,
    creator_id: int,
    full_name: str,
    gender: str | None = None,
    username: str | None = None,
    role: PersonRoleEnum = PersonRoleEnum.none,
) -> Person:
    """
    Inactive person standing in for an ancestor who has not registered.

    Flushes but does not commit; the caller owns the transaction.
    """
    if username is None:
        for _ in range(settings.family_username_max_attempts):
            username = generate_placeholder_username(full_name)
            if validate_username(db, username):
                break
    person = Person(
        full_name=full_name,
        username=username,
        gender=gender,
        role=role,
        creator_id=creator_id,
        is_active=False,
    )
    db.add(person)
    db.flush()
    return person
