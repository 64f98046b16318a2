import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.db import get_db
from app.main import app
from app.models.base import Base
from app.models import entities  # noqa: F401
from app.models.entities import Person, PersonRoleEnum


engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


app.dependency_overrides[get_db] = override_get_db


@pytest.fixture(autouse=True)
def reset_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def db_session():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def make_person(db_session):
    counter = {"n": 0}

    def _make(full_name: str = "Ada Obi", **fields) -> Person:
        counter["n"] += 1
        person = Person(
            full_name=full_name,
            username=fields.pop("username", f"user{counter['n']}"),
            role=fields.pop("role", PersonRoleEnum.none),
            is_active=fields.pop("is_active", True),
            **fields,
        )
        db_session.add(person)
        db_session.commit()
        db_session.refresh(person)
        return person

    return _make
