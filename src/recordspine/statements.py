"""Render SQL statements from a :class:`~recordspine.query.Query`.

Each ``render_*`` function returns a :class:`Statement`: the SQL text in the
dialect's placeholder style plus the parameter mapping to bind with it.
Column and table names are written as given; values are always bound.

Examples:
    >>> q = Query().get(["name"]).where("age", ">", 19).order("name").limit(5)
    >>> stmt = render_select("users", q, get_dialect("sqlite"))
    >>> stmt.sql
    'SELECT name FROM users WHERE age > :age_1 ORDER BY name LIMIT 5'
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, NamedTuple

from recordspine.dialect import Dialect
from recordspine.errors import QueryError
from recordspine.params import param_id
from recordspine.query import Query


class Statement(NamedTuple):
    sql: str
    params: dict[str, Any]


def _from_clause(table: str, query: Query) -> str:
    tables = [table, *(t for t in query.shape.tables if t != table)]
    return ", ".join(tables)


def _columns(cols: str | list[str] | None) -> str:
    if cols is None:
        return "*"
    if isinstance(cols, str):
        return cols
    return ", ".join(cols)


def _where(query: Query | None) -> tuple[str, dict[str, Any]]:
    if query is None or query.is_empty:
        return "", {}
    where, params = query.compile()
    return f" WHERE {where}", params


def render_select(table: str, query: Query, dialect: Dialect) -> Statement:
    """``SELECT cols FROM table[, joined] [WHERE] [ORDER BY] [LIMIT/OFFSET]``."""
    shape = query.shape
    where, params = _where(query)
    sql = f"SELECT {_columns(shape.cols)} FROM {_from_clause(table, query)}{where}"
    if shape.order:
        sql += f" ORDER BY {shape.order}"
    limit = 1 if shape.single else shape.limit
    sql += dialect.limit_clause(limit, shape.offset)
    return Statement(*dialect.bind(sql, params))


def render_count(table: str, query: Query | None, dialect: Dialect) -> Statement:
    """``SELECT COUNT(*) AS count FROM table [WHERE]``."""
    where, params = _where(query)
    from_clause = _from_clause(table, query) if query is not None else table
    sql = f"SELECT COUNT(*) AS count FROM {from_clause}{where}"
    return Statement(*dialect.bind(sql, params))


def render_insert(
    table: str,
    data: Mapping[str, Any],
    dialect: Dialect,
    *,
    returning: str | None = None,
) -> Statement:
    """``INSERT INTO table (cols) VALUES (:placeholders)``.

    With *returning* the dialect's ``RETURNING`` suffix is appended
    (empty on dialects that report the id through ``lastrowid``).
    """
    if not data:
        sql = f"INSERT INTO {table} DEFAULT VALUES"
        params: dict[str, Any] = {}
    else:
        params = {}
        names = []
        for column, value in data.items():
            name = param_id(column)
            params[name] = value
            names.append(f":{name}")
        sql = f"INSERT INTO {table} ({', '.join(data)}) VALUES ({', '.join(names)})"
    if returning:
        sql += dialect.returning(returning)
    return Statement(*dialect.bind(sql, params))


def render_update(
    table: str,
    query: Query,
    dialect: Dialect,
    *,
    values: Mapping[str, Any] | None = None,
    increments: Mapping[str, Any] | None = None,
) -> Statement:
    """``UPDATE table SET col = :v, n = n + :d WHERE ...``.

    *values* are assigned, *increments* are added to the current column
    value. When both are omitted the query's ``set()`` data is used.

    Raises:
        QueryError: With nothing to assign, or without a WHERE clause.
    """
    if values is None and increments is None:
        values = query.shape.column_data
    assignments: list[str] = []
    params: dict[str, Any] = {}
    for column, value in (values or {}).items():
        name = param_id(column)
        params[name] = value
        assignments.append(f"{column} = :{name}")
    for column, delta in (increments or {}).items():
        name = param_id(column)
        params[name] = delta
        assignments.append(f"{column} = {column} + :{name}")
    if not assignments:
        raise QueryError(f"UPDATE on '{table}' has no columns to set").with_context(table=table)

    where, where_params = _where(query)
    if not where:
        raise QueryError(f"UPDATE on '{table}' needs a WHERE clause").with_context(table=table)
    params.update(where_params)
    sql = f"UPDATE {table} SET {', '.join(assignments)}{where}"
    return Statement(*dialect.bind(sql, params))


def render_delete(table: str, query: Query, dialect: Dialect) -> Statement:
    """``DELETE FROM table WHERE ...``.

    Raises:
        QueryError: Without a WHERE clause.
    """
    where, params = _where(query)
    if not where:
        raise QueryError(f"DELETE on '{table}' needs a WHERE clause").with_context(table=table)
    return Statement(*dialect.bind(f"DELETE FROM {table}{where}", params))


__all__ = [
    "Statement",
    "render_select",
    "render_count",
    "render_insert",
    "render_update",
    "render_delete",
]
