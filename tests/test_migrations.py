"""Tests for the Alembic migration environment.

The initial revision is rendered in offline (--sql) mode, so these tests
need no database: they check that the migration history is linear and that
the generated DDL matches the ORM models.
"""

import io
import re

import pytest
from alembic import command
from alembic.script import ScriptDirectory
from pydantic import SecretStr

from softagon.db import to_driver_url
from softagon.db.models import Base
from softagon.db.schema import MIGRATIONS_DIR, migration_config


@pytest.fixture
def alembic_config(database_settings):
    return migration_config(database_settings)


@pytest.fixture
def upgrade_sql(alembic_config) -> str:
    """SQL emitted by `alembic upgrade head --sql`."""
    buffer = io.StringIO()
    alembic_config.output_buffer = buffer
    command.upgrade(alembic_config, "head", sql=True)
    return buffer.getvalue()


class TestMigrationConfig:
    """Tests for migration_config()."""

    def test_points_at_packaged_scripts(self, alembic_config):
        assert alembic_config.get_main_option("script_location") == str(MIGRATIONS_DIR)

    def test_uses_psycopg_driver(self, alembic_config):
        assert alembic_config.get_main_option("sqlalchemy.url").startswith(
            "postgresql+psycopg://"
        )

    def test_percent_in_password_survives_interpolation(self, database_settings):
        settings = database_settings.model_copy(
            update={"url": None, "password": SecretStr("50%off")}
        )
        config = migration_config(settings)
        assert "50%25off" in config.get_main_option("sqlalchemy.url")


class TestDriverUrl:
    def test_rewrites_plain_scheme(self):
        assert to_driver_url("postgresql://u:p@h/db") == "postgresql+psycopg://u:p@h/db"

    def test_rewrites_short_scheme(self):
        assert to_driver_url("postgres://u:p@h/db") == "postgresql+psycopg://u:p@h/db"

    def test_keeps_explicit_driver(self):
        url = "postgresql+psycopg://u:p@h/db"
        assert to_driver_url(url) == url


class TestRevisionHistory:
    """Tests for the revision graph."""

    def test_single_head(self, alembic_config):
        script = ScriptDirectory.from_config(alembic_config)
        assert script.get_heads() == ["001"]

    def test_initial_revision_has_no_parent(self, alembic_config):
        script = ScriptDirectory.from_config(alembic_config)
        assert script.get_revision("001").down_revision is None


class TestInitialSchemaSql:
    """The initial revision creates exactly what the models declare."""

    def test_creates_every_model_table(self, upgrade_sql):
        created = set(re.findall(r"CREATE TABLE (\w+)", upgrade_sql))
        created.discard("alembic_version")
        assert created == set(Base.metadata.tables)

    def test_creates_every_model_index(self, upgrade_sql):
        created = set(re.findall(r"CREATE INDEX (\w+)", upgrade_sql))
        declared = {
            index.name for table in Base.metadata.tables.values() for index in table.indexes
        }
        assert created == declared

    @pytest.mark.parametrize(
        "fragment",
        [
            "CONSTRAINT uq_users_email UNIQUE (email)",
            "CONSTRAINT uq_file_metadata_document_id UNIQUE (document_id)",
            "CONSTRAINT ck_departments_not_own_parent CHECK",
            "CONSTRAINT ck_document_versions_version_number_positive CHECK",
            "REFERENCES users (user_id) ON DELETE RESTRICT",
            "REFERENCES documents (document_id) ON DELETE CASCADE",
            "REFERENCES users (user_id) ON DELETE SET NULL",
            "DEFAULT gen_random_uuid()",
            "GENERATED BY DEFAULT AS IDENTITY",
            "USING gin (keywords)",
        ],
    )
    def test_ddl_fragments(self, upgrade_sql, fragment):
        assert fragment in upgrade_sql

    def test_workflow_status_has_no_default(self, upgrade_sql):
        workflows = upgrade_sql.split("CREATE TABLE workflows", 1)[1].split(");", 1)[0]
        assert re.search(r"status VARCHAR\(50\) NOT NULL,", workflows)

    def test_user_role_default(self, upgrade_sql):
        assert "role VARCHAR(50) DEFAULT 'user' NOT NULL" in upgrade_sql

    def test_downgrade_drops_every_table(self, alembic_config):
        buffer = io.StringIO()
        alembic_config.output_buffer = buffer
        command.downgrade(alembic_config, "001:base", sql=True)
        dropped = set(re.findall(r"DROP TABLE (\w+)", buffer.getvalue()))
        dropped.discard("alembic_version")
        assert dropped == set(Base.metadata.tables)
