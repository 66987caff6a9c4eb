"""Tests for SQL statement rendering."""

import pytest

from recordspine.dialect import PostgreSQLDialect, SQLiteDialect
from recordspine.errors import QueryError
from recordspine.params import ParamNamer
from recordspine.query import Query
from recordspine.statements import (
    render_count,
    render_delete,
    render_insert,
    render_select,
    render_update,
)

sqlite = SQLiteDialect()


@pytest.fixture
def query() -> Query:
    return Query(namer=ParamNamer())


class TestRenderSelect:
    def test_full_shape(self, query):
        query.get(["name"]).where("age", ">", 19).order("name").limit(5)
        stmt = render_select("users", query, sqlite)
        assert stmt.sql == "SELECT name FROM users WHERE age > :age_1 ORDER BY name LIMIT 5"
        assert stmt.params == {"age_1": 19}

    def test_defaults_to_star(self, query):
        assert render_select("users", query, sqlite).sql == "SELECT * FROM users"

    def test_single_means_limit_one(self, query):
        query.limit(50).single()
        assert render_select("users", query, sqlite).sql.endswith(" LIMIT 1")

    def test_implicit_join(self, query):
        query.join_tables("orders", "users")
        assert render_select("users", query, sqlite).sql == "SELECT * FROM users, orders"

    def test_postgres_placeholders(self, query):
        query.where("age", 3)
        assert render_select("users", query, PostgreSQLDialect()).sql == (
            "SELECT * FROM users WHERE age = %(age_1)s"
        )


class TestRenderCount:
    def test_without_query(self):
        assert render_count("users", None, sqlite).sql == "SELECT COUNT(*) AS count FROM users"

    def test_with_where(self, query):
        stmt = render_count("users", query.where("age", 3), sqlite)
        assert stmt.sql == "SELECT COUNT(*) AS count FROM users WHERE age = :age_1"


class TestRenderInsert:
    def test_values_are_bound(self):
        stmt = render_insert("users", {"name": "ann", "age": 3}, sqlite)
        assert stmt.sql.startswith("INSERT INTO users (name, age) VALUES (:name_")
        assert sorted(stmt.params.values(), key=str) == [3, "ann"]
        assert "ann" not in stmt.sql

    def test_empty_data(self):
        assert render_insert("users", {}, sqlite).sql == "INSERT INTO users DEFAULT VALUES"

    def test_returning(self):
        stmt = render_insert("users", {"name": "ann"}, PostgreSQLDialect(), returning="id")
        assert stmt.sql.endswith(" RETURNING id")
        assert "%(name_" in stmt.sql

    def test_returning_ignored_without_support(self):
        stmt = render_insert("users", {"name": "ann"}, sqlite, returning="id")
        assert "RETURNING" not in stmt.sql


class TestRenderUpdate:
    def test_values_and_increments(self, query):
        stmt = render_update(
            "users", query.where("id", 7), sqlite, values={"name": "x"}, increments={"logins": 1}
        )
        assert stmt.sql.startswith("UPDATE users SET name = :name_")
        assert "logins = logins + :logins_" in stmt.sql
        assert stmt.sql.endswith(" WHERE id = :id_1")
        assert stmt.params["id_1"] == 7
        assert len(stmt.params) == 3

    def test_uses_query_column_data(self, query):
        query.set({"name": "x"}).where("id", 1)
        stmt = render_update("users", query, sqlite)
        assert "SET name = :name_" in stmt.sql

    def test_nothing_to_set(self, query):
        with pytest.raises(QueryError):
            render_update("users", query.where("id", 1), sqlite)

    def test_needs_where(self, query):
        with pytest.raises(QueryError, match="WHERE"):
            render_update("users", query, sqlite, values={"name": "x"})


class TestRenderDelete:
    def test_delete(self, query):
        stmt = render_delete("users", query.where("id", 2), sqlite)
        assert stmt.sql == "DELETE FROM users WHERE id = :id_1"

    def test_needs_where(self, query):
        with pytest.raises(QueryError):
            render_delete("users", query, sqlite)
