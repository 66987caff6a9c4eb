"""Read-only list of fetched rows, wrapped into records on access."""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from typing import TYPE_CHECKING, Any, overload

if TYPE_CHECKING:
    from recordspine.record import Record
    from recordspine.sql.model import SQLModel


class ResultList(Sequence):
    """Rows from one SELECT.

    Rows are plain dicts until indexed or iterated, when the owning model
    wraps them into records. Each access builds a fresh record.
    """

    def __init__(self, rows: list[dict[str, Any]], model: SQLModel, primary_key: str | None = None) -> None:
        self._rows = rows
        self._model = model
        self.primary_key = primary_key or model.primary_key

    @overload
    def __getitem__(self, index: int) -> Record: ...

    @overload
    def __getitem__(self, index: slice) -> list[Record]: ...

    def __getitem__(self, index: int | slice) -> Record | list[Record]:
        if isinstance(index, slice):
            return [self._model.wrap_row(row) for row in self._rows[index]]
        return self._model.wrap_row(self._rows[index])

    def __len__(self) -> int:
        return len(self._rows)

    def __iter__(self) -> Iterator[Record]:
        for row in self._rows:
            yield self._model.wrap_row(row)

    def __bool__(self) -> bool:
        return bool(self._rows)

    def map(self, value: str, key: str | None = None) -> dict[Any, Any]:
        """``{row[key]: row[value]}`` over the raw rows; *key* defaults to the primary key."""
        key = key or self.primary_key
        return {row[key]: row[value] for row in self._rows}

    def to_list(self, shallow: bool = True) -> list[Any]:
        """The rows as dicts; with ``shallow=False`` as records."""
        if shallow:
            return [dict(row) for row in self._rows]
        return list(self)

    def __repr__(self) -> str:
        return f"ResultList({len(self._rows)} rows from {self._model.table!r})"


__all__ = ["ResultList"]
