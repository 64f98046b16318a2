from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.db import get_db
from app.models.entities import Person
from app.schemas.persons import AvailabilityEnvelope, PersonCreate, PersonEnvelope, PersonResponse, PersonUpdate
from app.services.identity import create_person, require_person, update_person, validate_username

router = APIRouter(prefix="/v1/persons", tags=["persons"])


def _to_person_response(person: Person) -> PersonResponse:
    return PersonResponse(
        id=person.id,
        full_name=person.full_name,
        username=person.username,
        email=person.email,
        phone=person.phone,
        gender=person.gender,
        profile_pic=person.profile_pic,
        role=person.role.value,
        family_rooted_to_id=person.family_rooted_to_id,
        creator_id=person.creator_id,
        is_active=person.is_active,
        created_at=person.created_at,
    )


@router.post("", response_model=PersonEnvelope, status_code=201)
def create_person_route(payload: PersonCreate, db: Session = Depends(get_db)):
    person = create_person(db, payload)
    return PersonEnvelope(status_code=201, message="user created successfully", data=_to_person_response(person))


@router.get("/username/{username}/available", response_model=AvailabilityEnvelope)
def username_available_route(username: str, db: Session = Depends(get_db)):
    if validate_username(db, username):
        return AvailabilityEnvelope(status_code=200, message="username valid", data=True)
    return AvailabilityEnvelope(status_code=200, message="a user with this username already exist", data=False)


@router.get("/{person_id}", response_model=PersonEnvelope)
def get_person_route(person_id: int, db: Session = Depends(get_db)):
    person = require_person(db, person_id)
    return PersonEnvelope(status_code=200, message="user fetched successfully", data=_to_person_response(person))


@router.patch("/{person_id}", response_model=PersonEnvelope)
def update_person_route(person_id: int, payload: PersonUpdate, db: Session = Depends(get_db)):
    person = update_person(db, person_id, payload)
    return PersonEnvelope(status_code=200, message="user updated successfully", data=_to_person_response(person))
