"""Records bound to an :class:`~recordspine.sql.model.SQLModel`."""

from __future__ import annotations

from recordspine.record import Record


class SQLRecord(Record):
    """A table row. The primary key ``id`` is generated by the database."""

    primary_key = "id"
    auto_generated_pk = True

    @property
    def table(self) -> str:
        return self.model.table


__all__ = ["SQLRecord"]
