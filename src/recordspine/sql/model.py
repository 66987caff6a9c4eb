"""Table-bound models for SQL databases.

An :class:`SQLModel` is a repository for one table and the record store
for the :class:`~recordspine.sql.record.SQLRecord` objects it returns.

Architecture::

    SQLModel(conn, dialect)
    ├── select(Query)  → ResultList | SQLRecord | raw rows
    ├── get_by_id / count / fetch_id
    └── RecordStore:   insert / update / replace / patch / delete_id
                              │
                              ▼
              statements.render_*  →  Dialect.bind  →  Connection.execute

Example:
    >>> class Users(SQLModel):
    ...     table = "users"
    ...     known_fields = ["name", "age"]
    >>> users = Users(sqlite3.connect(":memory:"))
    >>> user = users.new_record({"name": "Ann", "age": 30})
    >>> user.save(return_new_id=True)
    1
    >>> users.select(Query().where("age", ">", 19)).map("name")
    {1: 'Ann'}

Only ``$set``, ``$unset`` and ``$inc`` can be expressed as SQL assignments;
:meth:`SQLModel.patch` raises :class:`~recordspine.errors.QueryError` for
any other update operator.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from recordspine.dialect import Dialect
from recordspine.errors import ConstructionError, QueryError
from recordspine.models import ModelCommon
from recordspine.outcomes import DeleteOutcome, InsertOutcome, UpdateOutcome
from recordspine.protocols import Connection
from recordspine.query import FetchMode, Query, Reference
from recordspine.record import Record
from recordspine.sql.record import SQLRecord
from recordspine.sql.repository import BaseRepository, rows_as_dicts
from recordspine.sql.results import ResultList
from recordspine.statements import (
    render_count,
    render_delete,
    render_insert,
    render_select,
    render_update,
)


def _shape_rows(cursor: Any, rows: list[Any], fetch: FetchMode | None) -> list[Any]:
    match fetch:
        case FetchMode.TUPLE:
            return [tuple(row) for row in rows]
        case FetchMode.BOTH:
            dicts = rows_as_dicts(cursor, rows)
            return [{**dict(enumerate(tuple(row))), **named} for row, named in zip(rows, dicts, strict=False)]
        case _:
            return rows_as_dicts(cursor, rows)


class SQLModel(ModelCommon, BaseRepository):
    """A repository bound to one table.

    Parameters:
        conn: A :class:`~recordspine.protocols.Connection`.
        dialect: SQL dialect (default SQLite).
        table: Table name; overrides the class attribute.
        primary_key: Primary-key column; overrides the class attribute.
        record_class: Record type to wrap rows in.

    Raises:
        ConstructionError: If no table name is given.
    """

    table: str | None = None
    primary_key = "id"
    record_class = SQLRecord

    def __init__(
        self,
        conn: Connection,
        dialect: Dialect | None = None,
        *,
        table: str | None = None,
        primary_key: str | None = None,
        record_class: type[Record] | None = None,
    ) -> None:
        BaseRepository.__init__(self, conn, dialect)
        if table is not None:
            self.table = table
        if not self.table:
            raise ConstructionError(f"{type(self).__name__} needs a table name").with_context(
                operation="construct"
            )
        self._init_model(primary_key, record_class)

    # -- Joins ------------------------------------------------------------

    def ref_name(self, column: str) -> str:
        """``table.column`` for use as a WHERE key in an implicit join."""
        return f"{self.table}.{column}"

    def ref(self, column: str) -> Reference:
        """A :class:`~recordspine.query.Reference` to ``table.column``."""
        return Reference(self.table, column, self)

    # -- Reading ----------------------------------------------------------

    def select(self, query: Query | None = None) -> Any:
        """Run a SELECT on this table.

        Returns a :class:`ResultList` of records, one record (or ``None``)
        when the query is ``single()``, or plain rows in the query's fetch
        shape when the query is ``raw()``.
        """
        query = query if query is not None else Query()
        cursor = self.run(render_select(self.table, query, self.dialect))
        shape = query.shape

        if shape.raw_results:
            rows = _shape_rows(cursor, cursor.fetchall(), shape.fetch)
            if shape.single:
                return rows[0] if rows else None
            return rows

        rows = rows_as_dicts(cursor, cursor.fetchall())
        if shape.single:
            return self.wrap_row(rows[0]) if rows else None
        return ResultList(rows, self)

    def get_by_id(self, key: Any) -> Record | None:
        return self.select(Query().where(self.primary_key, key).single())

    def fetch_id(self, key: Any) -> dict[str, Any] | None:
        return self.select(Query().where(self.primary_key, key).single().raw())

    def count(self, query: Query | None = None) -> int:
        """Rows matching the query's WHERE tree (all rows without one)."""
        cursor = self.run(render_count(self.table, query, self.dialect))
        row = cursor.fetchone()
        return int(row[0]) if row else 0

    # -- Writing ----------------------------------------------------------

    def insert(self, data: Mapping[str, Any]) -> InsertOutcome:
        """Insert one row. A ``None`` primary key is left to the database."""
        pk = self.primary_key
        row = {k: v for k, v in data.items() if not (k == pk and v is None)}

        returning = pk if pk not in row and self.dialect.returning(pk) else None
        cursor = self.run(render_insert(self.table, row, self.dialect, returning=returning))

        if pk in row:
            inserted = row[pk]
        elif returning:
            fetched = cursor.fetchone()
            inserted = fetched[0] if fetched else None
        else:
            inserted = cursor.lastrowid
        return InsertOutcome(acknowledged=True, inserted_id=inserted)

    def update(self, key: Any, changes: Mapping[str, Any], operator: str = "$set") -> UpdateOutcome:
        """Apply *changes* to the row with primary key *key* using *operator*."""
        return self.patch(key, {operator: dict(changes)})

    def replace(self, key: Any, data: Mapping[str, Any]) -> UpdateOutcome:
        """Overwrite every column in *data* (except the primary key)."""
        values = {k: v for k, v in data.items() if k != self.primary_key}
        return self.patch(key, {"$set": values})

    def patch(self, key: Any, ops: Mapping[str, Any]) -> UpdateOutcome:
        """Translate update operators into one UPDATE statement.

        ``$set`` assigns, ``$unset`` assigns NULL and ``$inc`` adds to the
        current value.

        Raises:
            QueryError: For any other operator.
        """
        values: dict[str, Any] = {}
        increments: dict[str, Any] = {}
        for op, fields in ops.items():
            match op:
                case "$set":
                    values.update(fields)
                case "$unset":
                    values.update(dict.fromkeys(fields))
                case "$inc":
                    increments.update(fields)
                case _:
                    raise QueryError(f"Update operator '{op}' is not supported on SQL tables").with_context(
                        table=self.table, operation="patch"
                    )

        if not values and not increments:
            return UpdateOutcome(acknowledged=True)

        statement = render_update(
            self.table,
            Query().where(self.primary_key, key),
            self.dialect,
            values=values,
            increments=increments,
        )
        count = max(self.run(statement).rowcount, 0)
        return UpdateOutcome(acknowledged=True, matched_count=count, modified_count=count)

    def delete_id(self, key: Any) -> DeleteOutcome:
        cursor = self.run(render_delete(self.table, Query().where(self.primary_key, key), self.dialect))
        return DeleteOutcome(acknowledged=True, deleted_count=max(cursor.rowcount, 0))

    def __repr__(self) -> str:
        return f"{type(self).__name__}(table={self.table!r}, dialect={self.dialect.name!r})"


__all__ = ["SQLModel"]
