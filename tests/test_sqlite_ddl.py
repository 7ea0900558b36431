"""Tests for the SQLite CREATE TABLE scanner."""

from schema_inspector.utils.sqlite_ddl import (
    column_definitions,
    find_definition,
    generation_expression,
    is_autoincrement,
)

USERS_SQL = (
    'CREATE TABLE "users" (\n'
    '\t"id"\tINTEGER NOT NULL PRIMARY KEY AUTOINCREMENT,\n'
    '\t"team_id"\tinteger NOT NULL,\n'
    '\t"email"\tvarchar(100),\n'
    "\t\"status\"\tvarchar(60) DEFAULT 'a,b',\n"
    '\t[full name]\ttext AS (email || \'(x)\') STORED,\n'
    '\tFOREIGN KEY("team_id") REFERENCES "teams"("id") ON UPDATE CASCADE ON DELETE CASCADE\n'
    ')'
)


class TestColumnDefinitions:
    """Tests for splitting CREATE TABLE into column definitions."""

    def test_columns_found_in_order(self):
        definitions = column_definitions(USERS_SQL)
        assert list(definitions) == ["id", "team_id", "email", "status", "full name"]

    def test_table_constraints_skipped(self):
        definitions = column_definitions(USERS_SQL)
        assert not any(name.upper().startswith("FOREIGN") for name in definitions)

    def test_commas_inside_literals_and_parens(self):
        assert column_definitions(USERS_SQL)["status"] == "varchar(60) DEFAULT 'a,b'"

    def test_unquoted_names(self):
        sql = "CREATE TABLE t (a int, b decimal(10, 2) NOT NULL, CONSTRAINT pk PRIMARY KEY (a))"
        assert column_definitions(sql) == {"a": "int", "b": "decimal(10, 2) NOT NULL"}

    def test_escaped_quote_in_name(self):
        sql = 'CREATE TABLE t ("we""ird" int)'
        assert column_definitions(sql) == {'we"ird': "int"}

    def test_missing_sql(self):
        assert column_definitions(None) == {}
        assert column_definitions("CREATE TABLE t") == {}

    def test_find_definition_ignores_case(self):
        assert find_definition(USERS_SQL, "EMAIL") == "varchar(100)"
        assert find_definition(USERS_SQL, "missing") is None


class TestAutoincrement:
    """Tests for AUTOINCREMENT detection."""

    def test_autoincrement(self):
        assert is_autoincrement("INTEGER NOT NULL PRIMARY KEY AUTOINCREMENT")
        assert is_autoincrement("integer primary key desc on conflict replace autoincrement")

    def test_plain_primary_key(self):
        assert not is_autoincrement("INTEGER PRIMARY KEY")
        assert not is_autoincrement(None)


class TestGenerationExpression:
    """Tests for generated column expression extraction."""

    def test_short_form(self):
        definition = find_definition(USERS_SQL, "full name")
        assert generation_expression(definition) == "email || '(x)'"

    def test_long_form(self):
        assert generation_expression("varchar(100) GENERATED ALWAYS AS (upper(name)) VIRTUAL") == "upper(name)"

    def test_not_generated(self):
        assert generation_expression("varchar(100) DEFAULT 'x'") is None
        assert generation_expression(None) is None


class TestComments:
    """Tests for CREATE TABLE text carrying SQL comments."""

    def test_line_comment_above_column(self):
        sql = (
            "CREATE TABLE notes (\n"
            "    -- surrogate key\n"
            "    id INTEGER PRIMARY KEY AUTOINCREMENT,\n"
            "    name text\n"
            ")"
        )
        assert column_definitions(sql) == {
            "id": "INTEGER PRIMARY KEY AUTOINCREMENT",
            "name": "text",
        }

    def test_line_comment_with_quote_paren_and_comma(self):
        sql = (
            "CREATE TABLE notes (\n"
            "    id INTEGER PRIMARY KEY AUTOINCREMENT, -- the author's id (see docs, page 2\n"
            "    body text,\n"
            "    body_upper text GENERATED ALWAYS AS (upper(body)) VIRTUAL\n"
            ")"
        )
        assert list(column_definitions(sql)) == ["id", "body", "body_upper"]
        assert is_autoincrement(find_definition(sql, "id"))
        assert generation_expression(find_definition(sql, "body_upper")) == "upper(body)"

    def test_block_comments(self):
        sql = (
            "CREATE TABLE notes (\n"
            "    id INTEGER /* rowid alias, see (docs) */ PRIMARY KEY AUTOINCREMENT,\n"
            "    /* 'quoted' */ total AS (id * 2 /* doubled ) */) STORED\n"
            ")"
        )
        assert list(column_definitions(sql)) == ["id", "total"]
        assert is_autoincrement(find_definition(sql, "id"))
        assert generation_expression(find_definition(sql, "total")) == "id * 2"

    def test_comment_before_body(self):
        sql = "CREATE TABLE notes -- (draft)\n(a int, b text)"
        assert column_definitions(sql) == {"a": "int", "b": "text"}

    def test_commented_out_autoincrement_ignored(self):
        sql = "CREATE TABLE t (id INTEGER PRIMARY KEY -- AUTOINCREMENT later\n, name text)"
        assert find_definition(sql, "id") == "INTEGER PRIMARY KEY"
        assert not is_autoincrement(find_definition(sql, "id"))

    def test_comment_markers_inside_literals_kept(self):
        sql = "CREATE TABLE t (note text DEFAULT '-- not /* a */ comment', b int)"
        assert column_definitions(sql) == {
            "note": "text DEFAULT '-- not /* a */ comment'",
            "b": "int",
        }
