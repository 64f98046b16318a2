"""initial family tree schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


person_role = sa.Enum("none", "root", name="personroleenum")
family_type = sa.Enum("MATERNAL", "PATERNAL", name="familytypeenum")
relationship_to_root = sa.Enum(
    "root",
    "husband",
    "wife",
    "son",
    "daughter",
    "brother",
    "sister",
    "grandson",
    "granddaughter",
    "grandchild",
    "great-grandson",
    "great-granddaughter",
    "great-grandchild",
    "nephew",
    "niece",
    "son-in-law",
    "daughter-in-law",
    "cousin",
    name="relationshipenum",
)


def upgrade() -> None:
    op.create_table(
        "persons",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("full_name", sa.String(length=255), nullable=False),
        sa.Column("username", sa.String(length=64), nullable=True, unique=True),
        sa.Column("email", sa.String(length=255), nullable=True, unique=True),
        sa.Column("phone", sa.String(length=32), nullable=True, unique=True),
        sa.Column("gender", sa.String(length=32), nullable=True),
        sa.Column("profile_pic", sa.String(length=512), nullable=True),
        sa.Column("role", person_role, nullable=False, server_default="none"),
        sa.Column("family_rooted_to_id", sa.Integer(), nullable=True, unique=True),
        sa.Column("creator_id", sa.Integer(), sa.ForeignKey("persons.id"), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_table(
        "families",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("creator_id", sa.Integer(), sa.ForeignKey("persons.id"), nullable=False),
        sa.Column("root_id", sa.Integer(), sa.ForeignKey("persons.id"), nullable=False),
        sa.Column("family_name", sa.String(length=255), nullable=False),
        sa.Column("country", sa.String(length=255), nullable=False),
        sa.Column("state", sa.String(length=255), nullable=False),
        sa.Column("tribe", sa.String(length=255), nullable=False),
        sa.Column("family_username", sa.String(length=255), nullable=False),
        sa.Column("family_cover_image", sa.String(length=512), nullable=False),
        sa.Column("family_join_link", sa.String(length=1024), nullable=False),
        sa.Column("parent_family_id", sa.Integer(), sa.ForeignKey("families.id"), nullable=True),
        sa.Column("attached_at", sa.DateTime(), nullable=True),
        sa.Column("wiki_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("root_id", name="uq_families_root_id"),
        sa.UniqueConstraint("family_username", name="uq_families_family_username"),
    )
    op.create_table(
        "family_members",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("persons.id"), nullable=False),
        sa.Column("family_id", sa.Integer(), sa.ForeignKey("families.id"), nullable=True),
        sa.Column("family_username", sa.String(length=255), nullable=False),
        sa.Column("family_type", family_type, nullable=True),
        sa.Column("relationship_to_root", relationship_to_root, nullable=False),
        sa.Column("parent_id", sa.Integer(), sa.ForeignKey("persons.id"), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("user_id", "family_username", name="uq_family_members_user_family"),
        sa.UniqueConstraint("user_id", "family_type", name="uq_family_members_user_family_type"),
    )
    op.create_index("ix_family_members_family_username", "family_members", ["family_username"])


def downgrade() -> None:
    op.drop_index("ix_family_members_family_username", table_name="family_members")
    op.drop_table("family_members")
    op.drop_table("families")
    op.drop_table("persons")
    bind = op.get_bind()
    relationship_to_root.drop(bind, checkfirst=True)
    family_type.drop(bind, checkfirst=True)
    person_role.drop(bind, checkfirst=True)
