"""SQLAlchemy engine factory, session, and Connection bridge.

Models work over a raw DB-API connection (``sqlite3``) or a SQLAlchemy
``Session`` through the same :class:`~recordspine.protocols.Connection`
contract. :class:`SAConnectionBridge` is the adapter for the second case::

    engine = create_record_engine("sqlite:///app.db")
    with RecordSession(engine) as session:
        users = UserModel.from_session(session)
        users.get_by_id(1)
        session.commit()

SQLite engines get ``foreign_keys=ON`` on every connection, plus WAL
journaling for file databases.

Tags:
    recordspine, orm, sqlalchemy, session, engine, bridge, connection

Doc-Types:
    api-reference
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from sqlalchemy import create_engine as _sa_create_engine
from sqlalchemy import event, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from recordspine.dialect import Dialect, get_dialect
from recordspine.settings import get_settings

_POOL_OPTIONS = ("pool_size", "max_overflow", "pool_timeout")


def _is_in_memory(url: str) -> bool:
    return ":memory:" in url or url.rstrip("/") == "sqlite:"


def _install_sqlite_pragmas(engine: Engine, *, wal: bool) -> None:
    pragmas = ["PRAGMA foreign_keys=ON"]
    if wal:
        pragmas.insert(0, "PRAGMA journal_mode=WAL")

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection: Any, _record: Any) -> None:
        cursor = dbapi_connection.cursor()
        for pragma in pragmas:
            cursor.execute(pragma)
        cursor.close()


def create_record_engine(url: str | None = None, *, echo: bool = False, **options: Any) -> Engine:
    """Create a SQLAlchemy engine for record models.

    Args:
        url: Database URL. ``None`` reads ``RECORDSPINE_DATABASE_URL``.
        echo: Log every statement through SQLAlchemy.
        **options: ``pool_size``, ``max_overflow`` and ``pool_timeout``
            (dropped for SQLite, ``None`` values skipped) plus any other
            ``sqlalchemy.create_engine`` argument.
    """
    url = url or get_settings().database_url
    pool = {name: options.pop(name) for name in _POOL_OPTIONS if name in options}

    if not url.startswith("sqlite"):
        pool = {name: value for name, value in pool.items() if value is not None}
        return _sa_create_engine(url, echo=echo, **pool, **options)

    options.setdefault("connect_args", {"check_same_thread": False})
    engine = _sa_create_engine(url, echo=echo, **options)
    _install_sqlite_pragmas(engine, wal=not _is_in_memory(url))
    return engine


class RecordSession(Session):
    """A ``Session`` that keeps loaded state after commit."""

    def __init__(self, bind: Engine | None = None, **kwargs: Any) -> None:
        kwargs.setdefault("expire_on_commit", False)
        super().__init__(bind=bind, **kwargs)


def record_session_factory(engine: Engine) -> sessionmaker[RecordSession]:
    return sessionmaker(bind=engine, class_=RecordSession)


class _TextDialect:
    """A dialect for SQLAlchemy ``text()``: ``:name`` stays as written.

    Everything except parameter binding comes from the backend dialect.
    """

    def __init__(self, backend: Dialect) -> None:
        self._backend = backend

    @property
    def name(self) -> str:
        return self._backend.name

    def bind(self, sql: str, params: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        return sql, params

    def returning(self, column: str) -> str:
        return self._backend.returning(column)

    def limit_clause(self, limit: int | None, offset: int | None) -> str:
        return self._backend.limit_clause(limit, offset)


def session_dialect(session: Session) -> Dialect:
    """The dialect to render statements run through an :class:`SAConnectionBridge`.

    Raises:
        ValueError: If the session's backend has no registered dialect.
    """
    return _TextDialect(get_dialect(session.get_bind().dialect.name))


class SAConnectionBridge:
    """A SQLAlchemy ``Session`` seen as a DB-API connection.

    ``execute`` runs the statement through ``text()`` and returns the bridge
    itself, which then answers the cursor calls the repository makes
    (``fetchone``, ``fetchall``, ``description``, ``rowcount``,
    ``lastrowid``) from the last result.
    """

    def __init__(self, session: Session) -> None:
        self._session = session
        self._result: Any = None

    @property
    def session(self) -> Session:
        return self._session

    def execute(self, sql: str, parameters: Mapping[str, Any] | None = None) -> SAConnectionBridge:
        self._result = self._session.execute(text(sql), dict(parameters or {}))
        return self

    def _rows(self) -> Any:
        """The last result if it produced rows, else ``None``."""
        if self._result is not None and self._result.returns_rows:
            return self._result
        return None

    def fetchone(self) -> tuple[Any, ...] | None:
        rows = self._rows()
        row = rows.fetchone() if rows is not None else None
        return None if row is None else tuple(row)

    def fetchall(self) -> list[tuple[Any, ...]]:
        rows = self._rows()
        return [] if rows is None else [tuple(row) for row in rows.fetchall()]

    @property
    def description(self) -> list[tuple[Any, ...]] | None:
        rows = self._rows()
        if rows is None:
            return None
        # name first, the six other DB-API slots unused
        return [(key,) + (None,) * 6 for key in rows.keys()]

    @property
    def rowcount(self) -> int:
        return -1 if self._result is None else self._result.rowcount

    @property
    def lastrowid(self) -> Any:
        return None if self._result is None else self._result.lastrowid

    def commit(self) -> None:
        self._session.commit()

    def rollback(self) -> None:
        self._session.rollback()


__all__ = [
    "RecordSession",
    "SAConnectionBridge",
    "create_record_engine",
    "record_session_factory",
    "session_dialect",
]
