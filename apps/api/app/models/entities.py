from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import (
    Boolean,
    DateTime,
    Enum as SqlEnum,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base


class PersonRoleEnum(str, Enum):
    none = "none"
    root = "root"


class FamilyTypeEnum(str, Enum):
    maternal = "MATERNAL"
    paternal = "PATERNAL"


class RelationshipEnum(str, Enum):
    root = "root"
    husband = "husband"
    wife = "wife"
    son = "son"
    daughter = "daughter"
    brother = "brother"
    sister = "sister"
    grandson = "grandson"
    granddaughter = "granddaughter"
    grandchild = "grandchild"
    great_grandson = "great-grandson"
    great_granddaughter = "great-granddaughter"
    great_grandchild = "great-grandchild"
    nephew = "nephew"
    niece = "niece"
    son_in_law = "son-in-law"
    daughter_in_law = "daughter-in-law"
    cousin = "cousin"


# Relations that hang directly off the root, without a parent record in between.
TOP_LEVEL_RELATIONS = frozenset(
    {
        RelationshipEnum.husband,
        RelationshipEnum.wife,
        RelationshipEnum.son,
        RelationshipEnum.daughter,
        RelationshipEnum.brother,
        RelationshipEnum.sister,
    }
)


def _enum_values(enum_cls):
    return [item.value for item in enum_cls]


person_role_sql_enum = SqlEnum(PersonRoleEnum, name="personroleenum", values_callable=_enum_values)
family_type_sql_enum = SqlEnum(FamilyTypeEnum, name="familytypeenum", values_callable=_enum_values)
relationship_sql_enum = SqlEnum(RelationshipEnum, name="relationshipenum", values_callable=_enum_values)


class Person(Base):
    __tablename__ = "persons"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    username: Mapped[str | None] = mapped_column(String(64), unique=True)
    email: Mapped[str | None] = mapped_column(String(255), unique=True)
    phone: Mapped[str | None] = mapped_column(String(32), unique=True)
    gender: Mapped[str | None] = mapped_column(String(32))
    profile_pic: Mapped[str | None] = mapped_column(String(512))
    role: Mapped[PersonRoleEnum] = mapped_column(person_role_sql_enum, nullable=False, default=PersonRoleEnum.none)
    # Plain column rather than a FK so persons <-> families stays free of a create-order cycle.
    family_rooted_to_id: Mapped[int | None] = mapped_column(Integer, unique=True)
    creator_id: Mapped[int | None] = mapped_column(ForeignKey("persons.id"))
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=lambda: datetime.now(timezone.utc))

    family_rooted_to: Mapped[Family | None] = relationship(
        "Family",
        primaryjoin="foreign(Person.family_rooted_to_id) == Family.id",
        viewonly=True,
    )


class Family(Base):
    __tablename__ = "families"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    creator_id: Mapped[int] = mapped_column(ForeignKey("persons.id"), nullable=False)
    root_id: Mapped[int] = mapped_column(ForeignKey("persons.id"), nullable=False)
    family_name: Mapped[str] = mapped_column(String(255), nullable=False)
    country: Mapped[str] = mapped_column(String(255), nullable=False)
    state: Mapped[str] = mapped_column(String(255), nullable=False)
    tribe: Mapped[str] = mapped_column(String(255), nullable=False)
    family_username: Mapped[str] = mapped_column(String(255), nullable=False)
    family_cover_image: Mapped[str] = mapped_column(String(512), nullable=False)
    family_join_link: Mapped[str] = mapped_column(String(1024), nullable=False)
    parent_family_id: Mapped[int | None] = mapped_column(ForeignKey("families.id"))
    attached_at: Mapped[datetime | None] = mapped_column(DateTime)
    wiki_id: Mapped[int | None] = mapped_column(Integer)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    creator: Mapped[Person] = relationship(foreign_keys=[creator_id])
    root: Mapped[Person] = relationship(foreign_keys=[root_id])
    members: Mapped[list[FamilyMember]] = relationship(back_populates="family", order_by="FamilyMember.id")
    parent_family: Mapped[Family | None] = relationship(back_populates="branches", remote_side=[id])
    branches: Mapped[list[Family]] = relationship(back_populates="parent_family", order_by="Family.attached_at")

    __table_args__ = (
        UniqueConstraint("root_id", name="uq_families_root_id"),
        UniqueConstraint("family_username", name="uq_families_family_username"),
    )

    @property
    def members_count(self) -> int:
        return len(self.members)


class FamilyMember(Base):
    __tablename__ = "family_members"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("persons.id"), nullable=False)
    family_id: Mapped[int | None] = mapped_column(ForeignKey("families.id"))
    family_username: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    family_type: Mapped[FamilyTypeEnum | None] = mapped_column(family_type_sql_enum)
    relationship_to_root: Mapped[RelationshipEnum] = mapped_column(relationship_sql_enum, nullable=False)
    parent_id: Mapped[int | None] = mapped_column(ForeignKey("persons.id"))
    created_at: Mapped[datetime] = mapped_column(DateTime, default=lambda: datetime.now(timezone.utc))

    user: Mapped[Person] = relationship(foreign_keys=[user_id])
    parent: Mapped[Person | None] = relationship(foreign_keys=[parent_id])
    family: Mapped[Family | None] = relationship(back_populates="members")

    __table_args__ = (
        UniqueConstraint("user_id", "family_username", name="uq_family_members_user_family"),
        UniqueConstraint("user_id", "family_type", name="uq_family_members_user_family_type"),
    )
