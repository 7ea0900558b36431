"""Tests for the MySQL inspector using a scripted connection."""

import pytest

from schema_inspector.inspectors import MySQLInspector, MySQLTable

TABLES = r"SELECT TABLE_NAME AS table_name\s+FROM information_schema\.TABLES"
TABLE_INFO = r"TABLE_COLLATION"
HAS_TABLE = r"COUNT\(\*\) AS matches\s+FROM information_schema\.TABLES"
HAS_COLUMN = r"COUNT\(\*\) AS matches\s+FROM information_schema\.COLUMNS"
COLUMN_INFO = r"c\.EXTRA"
COLUMNS = r"SELECT c\.TABLE_NAME AS table_name, c\.COLUMN_NAME AS column_name"
FOREIGN_KEYS = r"REFERENTIAL_CONSTRAINTS"
CONSTRAINTS = r"tc\.CONSTRAINT_TYPE IN"
PRIMARY_KEYS = r"CONSTRAINT_NAME = 'PRIMARY'"


def _column_row(name, data_type, **overrides):
    row = {
        "TABLE_NAME": "teams",
        "TABLE_SCHEMA": "app",
        "COLUMN_NAME": name,
        "DATA_TYPE": data_type,
        "MAX_LENGTH": None,
        "NUMERIC_PRECISION": None,
        "NUMERIC_SCALE": None,
        "IS_NULLABLE": "YES",
        "DEFAULT_VALUE": None,
        "EXTRA": "",
        "GENERATION_EXPRESSION": "",
        "COLUMN_COMMENT": "",
    }
    row.update(overrides)
    return row


def _constraint_row(column, constraint_type, name, column_count=1, **foreign):
    row = {
        "table_schema": "app",
        "table_name": "teams",
        "column_name": column,
        "constraint_name": name,
        "constraint_type": constraint_type,
        "foreign_key_schema": None,
        "foreign_key_table": None,
        "foreign_key_column": None,
        "column_count": column_count,
    }
    row.update(foreign)
    return row


@pytest.fixture
def connection(fake_connection):
    fake_connection.dialect.name = "mysql"
    return fake_connection


@pytest.fixture
def inspector(connection):
    return MySQLInspector(connection)


class TestTables:
    """Tests for table listing."""

    def test_database_from_connection_url(self, inspector):
        assert inspector.database == "app"

    def test_explicit_database(self, connection):
        assert MySQLInspector(connection, database="other").database == "other"

    def test_tables(self, connection, inspector):
        connection.add_response(TABLES, [{"TABLE_NAME": "page_visits"}, {"TABLE_NAME": "teams"}])
        assert inspector.tables() == ["page_visits", "teams"]
        call = connection.calls_matching(TABLES)[0]
        assert call["params"] == {"database": "app"}
        assert "TABLE_TYPE = 'BASE TABLE'" in call["sql"]

    def test_table_info(self, connection, inspector):
        connection.add_response(TABLE_INFO, [{
            "table_name": "teams",
            "table_schema": "app",
            "table_comment": "",
            "table_collation": "utf8mb4_general_ci",
            "table_engine": "InnoDB",
        }])
        assert inspector.table_info("teams") == MySQLTable(
            name="teams",
            schema="app",
            comment=None,
            collation="utf8mb4_general_ci",
            engine="InnoDB",
        )

    def test_has_table(self, connection, inspector):
        connection.add_response(HAS_TABLE, [{"matches": 1}])
        assert inspector.has_table("teams")
        assert connection.calls_matching(HAS_TABLE)[0]["params"] == {"database": "app", "table_name": "teams"}

    def test_has_table_zero(self, connection, inspector):
        connection.add_response(HAS_TABLE, [{"matches": 0}])
        assert not inspector.has_table("missing")


class TestColumns:
    """Tests for column metadata."""

    @pytest.fixture
    def columns(self, connection, inspector):
        connection.add_response(COLUMN_INFO, [
            _column_row(
                "id", "int",
                NUMERIC_PRECISION=10, NUMERIC_SCALE=0, IS_NULLABLE="NO", EXTRA="auto_increment",
            ),
            _column_row("uuid", "varchar", MAX_LENGTH=36, IS_NULLABLE="NO"),
            _column_row("name", "varchar", MAX_LENGTH=100, DEFAULT_VALUE="unnamed", COLUMN_COMMENT="Display name"),
            _column_row("credits", "int", NUMERIC_PRECISION=10, NUMERIC_SCALE=0, DEFAULT_VALUE="0"),
            _column_row("status", "varchar", MAX_LENGTH=20, DEFAULT_VALUE="'active'"),
            _column_row(
                "name_upper", "varchar",
                MAX_LENGTH=100, EXTRA="VIRTUAL GENERATED", GENERATION_EXPRESSION="upper(`name`)",
            ),
            _column_row(
                "created_at", "datetime",
                DEFAULT_VALUE="CURRENT_TIMESTAMP", EXTRA="DEFAULT_GENERATED",
            ),
            _column_row("owner_id", "int"),
            _column_row("code_a", "char", MAX_LENGTH=2),
        ])
        connection.add_response(CONSTRAINTS, [
            _constraint_row("id", "PRIMARY KEY", "PRIMARY"),
            _constraint_row("code_a", "UNIQUE", "code_idx", column_count=2),
            _constraint_row(
                "owner_id", "FOREIGN KEY", "teams_owner_fk",
                foreign_key_schema="app", foreign_key_table="users", foreign_key_column="id",
            ),
            _constraint_row(
                "owner_id", "FOREIGN KEY", "teams_owner_fk2",
                foreign_key_schema="app", foreign_key_table="admins", foreign_key_column="id",
            ),
            _constraint_row("uuid", "UNIQUE", "uuid"),
        ])
        return {column.name: column for column in inspector.column_info("teams")}

    def test_auto_increment_primary_key(self, columns):
        column = columns["id"]
        assert column.has_auto_increment
        assert column.is_primary_key
        assert column.is_unique
        assert not column.is_nullable
        assert column.numeric_precision == 10

    def test_unique(self, columns):
        assert columns["uuid"].is_unique
        assert columns["uuid"].max_length == 36

    def test_defaults_not_coerced(self, columns):
        assert columns["name"].default_value == "unnamed"
        assert columns["credits"].default_value == "0"
        assert columns["status"].default_value == "active"
        assert columns["created_at"].default_value == "CURRENT_TIMESTAMP"

    def test_comments(self, columns):
        assert columns["name"].comment == "Display name"
        assert columns["uuid"].comment is None

    def test_generated(self, columns):
        column = columns["name_upper"]
        assert column.is_generated
        assert column.generation_expression == "upper(`name`)"
        assert column.default_value is None

    def test_default_generated_is_not_a_generated_column(self, columns):
        column = columns["created_at"]
        assert not column.is_generated
        assert column.generation_expression is None

    def test_first_foreign_key_wins(self, columns):
        assert columns["owner_id"].foreign_key_table == "users"

    def test_composite_unique_ignored(self, columns):
        assert not columns["code_a"].is_unique

    def test_single_column(self, connection, inspector):
        connection.add_response(COLUMN_INFO, [_column_row("uuid", "varchar", MAX_LENGTH=36)])
        column = inspector.column_info("teams", "uuid")
        assert column.name == "uuid"
        params = connection.calls_matching(COLUMN_INFO)[0]["params"]
        assert params == {"database": "app", "table_name": "teams", "column_name": "uuid"}

    def test_missing_column(self, inspector):
        assert inspector.column_info("teams", "missing") is None

    def test_columns_listing(self, connection, inspector):
        connection.add_response(COLUMNS, [
            {"TABLE_NAME": "teams", "COLUMN_NAME": "id"},
            {"TABLE_NAME": "teams", "COLUMN_NAME": "uuid"},
        ])
        assert [r.column for r in inspector.columns("teams")] == ["id", "uuid"]

    def test_has_column(self, connection, inspector):
        connection.add_response(HAS_COLUMN, [{"matches": 1}])
        assert inspector.has_column("teams", "id")


class TestKeys:
    """Tests for primary and foreign keys."""

    def test_primary(self, connection, inspector):
        connection.add_response(PRIMARY_KEYS, [{"column_name": "id"}])
        assert inspector.primary("teams") == "id"

    def test_composite_primary(self, connection, inspector):
        connection.add_response(PRIMARY_KEYS, [{"column_name": "team_id"}, {"column_name": "user_id"}])
        assert inspector.primary("memberships") is None
        assert inspector.primary_keys("memberships") == ["team_id", "user_id"]

    def test_foreign_keys(self, connection, inspector):
        connection.add_response(FOREIGN_KEYS, [
            {
                "table_name": "users", "column_name": "team_id",
                "foreign_key_schema": "app", "foreign_key_table": "teams", "foreign_key_column": "id",
                "constraint_name": "fk_team", "on_update": "CASCADE", "on_delete": "RESTRICT",
                "column_count": 1,
            },
            {
                "table_name": "assignments", "column_name": "team_id",
                "foreign_key_schema": "app", "foreign_key_table": "memberships", "foreign_key_column": "team_id",
                "constraint_name": "fk_membership", "on_update": "NO ACTION", "on_delete": "NO ACTION",
                "column_count": 2,
            },
        ])
        keys = inspector.foreign_keys()
        assert [fk.constraint_name for fk in keys] == ["fk_team"]
        assert keys[0].on_update == "CASCADE"
        assert keys[0].on_delete == "RESTRICT"

    def test_foreign_keys_for_table_without_any(self, inspector):
        assert inspector.foreign_keys("teams") == []
