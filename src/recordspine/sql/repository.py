"""Base repository with dialect-aware database access.

Provides :class:`BaseRepository`, which pairs a
:class:`~recordspine.protocols.Connection` with a
:class:`~recordspine.dialect.Dialect` so that models can execute rendered
statements without referencing any specific database driver.

Architecture::

    ┌────────────────────────────────────────────────────────────────────┐
    │                       BaseRepository                               │
    │                                                                    │
    │   conn: Connection        ← protocol from recordspine.protocols    │
    │   dialect: Dialect        ← from recordspine.dialect               │
    │                                                                    │
    │   execute(sql, params)     → cursor                                │
    │   run(statement)           → cursor                                │
    │   query(sql, params)       → list[dict]                            │
    │   query_one(sql, params)   → dict | None                           │
    └────────────────────────────────────────────────────────────────────┘

Usage:
    >>> conn = sqlite3.connect(":memory:")
    >>> repo = BaseRepository(conn)
    >>> repo.query("SELECT * FROM users WHERE id = :id", {"id": 1})

Tags:
    repository, database, abstraction, portability
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from recordspine.dialect import Dialect, SQLiteDialect
from recordspine.protocols import Connection
from recordspine.statements import Statement


def rows_as_dicts(cursor: Any, rows: list[Any]) -> list[dict[str, Any]]:
    """Turn fetched rows into column → value dicts.

    Uses the DB-API ``description`` when present, else ``dict(row)``
    (``sqlite3.Row``, mapping rows).
    """
    if not rows:
        return []
    description = getattr(cursor, "description", None)
    if description:
        columns = [desc[0] for desc in description]
        return [dict(zip(columns, row, strict=False)) for row in rows]
    return [dict(row) for row in rows]


class BaseRepository:
    """Dialect-aware base class for data-access repositories.

    Parameters:
        conn: Any object satisfying the :class:`Connection` protocol.
        dialect: SQL dialect to use. Defaults to :class:`SQLiteDialect`
                 for raw ``sqlite3.Connection`` objects.
    """

    def __init__(self, conn: Connection, dialect: Dialect | None = None) -> None:
        self.conn = conn
        self.dialect: Dialect = dialect or SQLiteDialect()

    @classmethod
    def from_session(
        cls,
        session: Any,
        dialect: Dialect | None = None,
        **kwargs: Any,
    ) -> BaseRepository:
        """Create a repository backed by a SQLAlchemy ORM session.

        Wraps *session* in :class:`~recordspine.sql.session.SAConnectionBridge`
        so that ``execute``, ``query`` and every model operation work over the
        session. Without *dialect* one is picked from the session's bind.

        Parameters:
            session: A ``sqlalchemy.orm.Session`` instance.
            dialect: SQL dialect.
            **kwargs: Forwarded to the subclass constructor (after *conn*
                      and *dialect*).

        Example::

            from recordspine.sql.session import create_record_engine, RecordSession

            with RecordSession(create_record_engine()) as session:
                users = UserModel.from_session(session)
                users.new_record({"name": "x"}).save()
                users.commit()
        """
        from recordspine.sql.session import SAConnectionBridge, session_dialect

        bridge = SAConnectionBridge(session)
        return cls(conn=bridge, dialect=dialect or session_dialect(session), **kwargs)  # type: ignore[arg-type]

    # -- Query helpers -----------------------------------------------------

    def execute(self, sql: str, params: Mapping[str, Any] | None = None) -> Any:
        """Execute a statement and return the raw cursor/result."""
        return self.conn.execute(sql, dict(params or {}))

    def run(self, statement: Statement) -> Any:
        """Execute a rendered :class:`~recordspine.statements.Statement`."""
        return self.execute(statement.sql, statement.params)

    def query(self, sql: str, params: Mapping[str, Any] | None = None) -> list[dict[str, Any]]:
        """Execute a SELECT and return rows as dicts."""
        cursor = self.execute(sql, params)
        return rows_as_dicts(cursor, cursor.fetchall())

    def query_one(self, sql: str, params: Mapping[str, Any] | None = None) -> dict[str, Any] | None:
        """Execute a SELECT and return the first row as a dict (or None)."""
        results = self.query(sql, params)
        return results[0] if results else None

    def commit(self) -> None:
        """Commit the current transaction."""
        self.conn.commit()


__all__ = [
    "BaseRepository",
    "rows_as_dicts",
]
