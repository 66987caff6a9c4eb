"""SQL dialect abstraction for statement rendering.

The query builder always writes ``:name`` placeholders. A :class:`Dialect`
turns that text into what the target driver accepts and supplies the few
fragments that differ between backends (``RETURNING``, ``LIMIT/OFFSET``).

Architecture::

    Query.compile()  →  "age > :age_1"  +  {"age_1": 19}
                              │
                              ▼
    ┌──────────────┐ ┌──────────────────┐ ┌──────────────────┐
    │ SQLite       │ │ PostgreSQL       │ │ MySQL            │
    │ :age_1       │ │ %(age_1)s        │ │ %(age_1)s        │
    │ lastrowid    │ │ RETURNING id     │ │ lastrowid        │
    └──────────────┘ └──────────────────┘ └──────────────────┘

Examples:
    >>> d = get_dialect("postgresql")
    >>> d.bind("SELECT * FROM t WHERE a = :a_1", {"a_1": 1})
    ('SELECT * FROM t WHERE a = %(a_1)s', {'a_1': 1})

Guardrails:
    ❌ DON'T: Interpolate values into SQL text
    ✅ DO: Bind every value through a placeholder and ``Dialect.bind``

Tags:
    dialect, sql, placeholders, portability, recordspine

Doc-Types:
    - API Reference
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class Dialect(Protocol):
    """SQL dialect contract."""

    @property
    def name(self) -> str:
        """Human-readable dialect name (e.g. ``'sqlite'``)."""
        ...

    def bind(self, sql: str, params: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        """Rewrite ``:name`` markers in *sql* into the driver's named style."""
        ...

    def returning(self, column: str) -> str:
        """Suffix that makes an INSERT return *column* (``""`` if unsupported)."""
        ...

    def limit_clause(self, limit: int | None, offset: int | None) -> str:
        """``LIMIT``/``OFFSET`` fragment (leading space included, or ``""``)."""
        ...


def _named_to_pyformat(sql: str) -> str:
    """Replace each ``:name`` outside single-quoted strings with ``%(name)s``.

    Literal ``%`` characters are doubled, and ``::`` casts are left alone.
    """
    result: list[str] = []
    in_string = False
    i = 0
    length = len(sql)
    while i < length:
        ch = sql[i]
        if ch == "'":
            if in_string and i + 1 < length and sql[i + 1] == "'":
                result.append("''")
                i += 2
                continue
            in_string = not in_string
            result.append(ch)
        elif ch == "%":
            result.append("%%")
        elif (
            ch == ":"
            and not in_string
            and i + 1 < length
            and (sql[i + 1].isalpha() or sql[i + 1] == "_")
            and (i == 0 or sql[i - 1] != ":")
        ):
            j = i + 1
            while j < length and (sql[j].isalnum() or sql[j] == "_"):
                j += 1
            result.append(f"%({sql[i + 1:j]})s")
            i = j
            continue
        elif ch == ":" and not in_string and i + 1 < length and sql[i + 1] == ":":
            result.append("::")
            i += 2
            continue
        else:
            result.append(ch)
        i += 1
    return "".join(result)


# =========================================================================
# Concrete Dialect Implementations
# =========================================================================


class SQLiteDialect:
    """SQLite dialect: native ``:name`` placeholders, ``cursor.lastrowid``."""

    @property
    def name(self) -> str:
        return "sqlite"

    def bind(self, sql: str, params: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        return sql, params

    def returning(self, column: str) -> str:  # noqa: ARG002
        return ""

    def limit_clause(self, limit: int | None, offset: int | None) -> str:
        if limit is None and offset is None:
            return ""
        clause = f" LIMIT {int(limit) if limit is not None else -1}"
        if offset is not None:
            clause += f" OFFSET {int(offset)}"
        return clause


class PostgreSQLDialect:
    """PostgreSQL dialect: ``%(name)s`` placeholders (psycopg), ``RETURNING``."""

    @property
    def name(self) -> str:
        return "postgresql"

    def bind(self, sql: str, params: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        return _named_to_pyformat(sql), params

    def returning(self, column: str) -> str:
        return f" RETURNING {column}"

    def limit_clause(self, limit: int | None, offset: int | None) -> str:
        clause = ""
        if limit is not None:
            clause += f" LIMIT {int(limit)}"
        if offset is not None:
            clause += f" OFFSET {int(offset)}"
        return clause


class MySQLDialect:
    """MySQL dialect: ``%(name)s`` placeholders, ``cursor.lastrowid``."""

    # MySQL has no OFFSET without LIMIT; this is the documented "all rows" value.
    _MAX_ROWS = 18446744073709551615

    @property
    def name(self) -> str:
        return "mysql"

    def bind(self, sql: str, params: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        return _named_to_pyformat(sql), params

    def returning(self, column: str) -> str:  # noqa: ARG002
        return ""

    def limit_clause(self, limit: int | None, offset: int | None) -> str:
        if limit is None and offset is None:
            return ""
        clause = f" LIMIT {int(limit) if limit is not None else self._MAX_ROWS}"
        if offset is not None:
            clause += f" OFFSET {int(offset)}"
        return clause


# =========================================================================
# Registry / Factory
# =========================================================================

# Pre-instantiated singletons (dialects are stateless)
_DIALECTS: dict[str, Dialect] = {
    "sqlite": SQLiteDialect(),
    "postgresql": PostgreSQLDialect(),
    "postgres": PostgreSQLDialect(),  # alias
    "mysql": MySQLDialect(),
    "mariadb": MySQLDialect(),  # alias
}


def get_dialect(db_type: str) -> Dialect:
    """Get a dialect by database type name.

    Raises:
        ValueError: If ``db_type`` is not recognised.
    """
    key = db_type.lower()
    if key not in _DIALECTS:
        raise ValueError(
            f"Unknown dialect '{db_type}'. "
            f"Supported: {sorted(set(_DIALECTS) - {'postgres', 'mariadb'})}"
        )
    return _DIALECTS[key]


def register_dialect(name: str, dialect: Dialect) -> None:
    """Register a custom dialect implementation (lower-cased key)."""
    _DIALECTS[name.lower()] = dialect


__all__ = [
    "Dialect",
    "SQLiteDialect",
    "PostgreSQLDialect",
    "MySQLDialect",
    "get_dialect",
    "register_dialect",
]
