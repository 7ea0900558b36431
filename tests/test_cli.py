"""Tests for the schema-inspector command line."""

import json

import pytest
from typer.testing import CliRunner

from schema_inspector.config import settings
from schema_inspector.main import app
from tests.fixtures import SQLITE_SUPPORTED

pytestmark = pytest.mark.skipif(not SQLITE_SUPPORTED, reason="SQLite 3.31+ required")

runner = CliRunner()


def _json(result):
    assert result.exit_code == 0, result.output
    return json.loads(result.output)


class TestTablesCommand:
    """Test the tables and table commands."""

    def test_tables(self, sqlite_url):
        result = runner.invoke(app, ["tables", "--url", sqlite_url])
        assert result.exit_code == 0, result.output
        assert "teams" in result.output
        assert "active_teams" not in result.output

    def test_tables_json(self, sqlite_url):
        names = _json(runner.invoke(app, ["tables", "--url", sqlite_url, "--json"]))
        assert names == ["assignments", "memberships", "page_visits", "teams", "users"]

    def test_table_json(self, sqlite_url):
        data = _json(runner.invoke(app, ["table", "teams", "--url", sqlite_url, "--json"]))
        assert data["name"] == "teams"
        assert data["schema"] == "main"
        assert data["sql"].startswith("CREATE TABLE teams")

    def test_table_missing(self, sqlite_url):
        result = runner.invoke(app, ["table", "missing", "--url", sqlite_url])
        assert result.exit_code == 1
        assert "Table not found" in result.output


class TestColumnCommands:
    """Test the columns and column commands."""

    def test_columns_json(self, sqlite_url):
        rows = _json(runner.invoke(app, ["columns", "page_visits", "--url", sqlite_url, "--json"]))
        assert [row["name"] for row in rows] == ["request_path", "user_id", "created_at"]
        assert rows[1]["foreign_key_table"] == "users"

    def test_columns_for_missing_table(self, sqlite_url):
        result = runner.invoke(app, ["columns", "missing", "--url", sqlite_url])
        assert result.exit_code == 1
        assert "Table not found" in result.output

    def test_column(self, sqlite_url):
        result = runner.invoke(app, ["column", "teams", "status", "--url", sqlite_url])
        assert result.exit_code == 0, result.output
        assert "Column: teams.status" in result.output
        assert "default_value: active" in result.output

    def test_column_json(self, sqlite_url):
        data = _json(runner.invoke(app, ["column", "teams", "id", "--url", sqlite_url, "--json"]))
        assert data["is_primary_key"] is True
        assert data["has_auto_increment"] is True

    def test_column_missing(self, sqlite_url):
        result = runner.invoke(app, ["column", "teams", "missing", "--url", sqlite_url])
        assert result.exit_code == 1
        assert "Column not found" in result.output


class TestKeyCommands:
    """Test the primary and foreign-keys commands."""

    def test_primary(self, sqlite_url):
        result = runner.invoke(app, ["primary", "memberships", "--url", sqlite_url])
        assert result.exit_code == 0, result.output
        assert "team_id, user_id" in result.output

    def test_no_primary(self, sqlite_url):
        result = runner.invoke(app, ["primary", "page_visits", "--url", sqlite_url])
        assert result.exit_code == 0
        assert "No primary key" in result.output

    def test_foreign_keys_json(self, sqlite_url):
        rows = _json(runner.invoke(app, ["foreign-keys", "users", "--url", sqlite_url, "--json"]))
        assert len(rows) == 1
        assert rows[0]["foreign_key_table"] == "teams"
        assert rows[0]["on_delete"] == "CASCADE"

    def test_no_foreign_keys(self, sqlite_url):
        result = runner.invoke(app, ["foreign-keys", "teams", "--url", sqlite_url])
        assert result.exit_code == 0
        assert "No foreign keys found" in result.output


class TestErrors:
    """Test error reporting."""

    def test_missing_url(self, monkeypatch):
        monkeypatch.setattr(settings, "database_url", None)
        result = runner.invoke(app, ["tables"])
        assert result.exit_code == 1
        assert "No database URL" in result.output

    def test_url_from_settings(self, monkeypatch, sqlite_url):
        monkeypatch.setattr(settings, "database_url", sqlite_url)
        names = _json(runner.invoke(app, ["tables", "--json"]))
        assert "teams" in names

    def test_unsupported_client(self, sqlite_url):
        result = runner.invoke(app, ["tables", "--url", sqlite_url, "--client", "db2"])
        assert result.exit_code == 1
        assert "Unsupported database client" in result.output

    def test_invalid_url(self):
        result = runner.invoke(app, ["tables", "--url", "not a url"])
        assert result.exit_code == 1
        assert "Cannot create engine" in result.output

    def test_config(self):
        result = runner.invoke(app, ["config"])
        assert result.exit_code == 0
        assert "Current Configuration" in result.output
