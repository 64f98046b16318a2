import importlib.util
from pathlib import Path

from alembic.migration import MigrationContext
from alembic.operations import Operations
from sqlalchemy import create_engine, inspect

MIGRATION = Path(__file__).resolve().parents[1] / "alembic" / "versions" / "0001_initial.py"


def _load_migration():
    spec = importlib.util.spec_from_file_location("migration_0001_initial", MIGRATION)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def test_initial_migration_upgrade_and_downgrade():
    migration = _load_migration()
    engine = create_engine("sqlite://")

    with engine.begin() as connection:
        context = MigrationContext.configure(connection)
        with Operations.context(context):
            migration.upgrade()

        inspector = inspect(connection)
        assert {"persons", "families", "family_members"} <= set(inspector.get_table_names())
        constraints = {item["name"] for item in inspector.get_unique_constraints("family_members")}
        assert {"uq_family_members_user_family", "uq_family_members_user_family_type"} <= constraints
        constraints = {item["name"] for item in inspector.get_unique_constraints("families")}
        assert "uq_families_root_id" in constraints

        with Operations.context(context):
            migration.downgrade()
        assert "families" not in inspect(connection).get_table_names()
