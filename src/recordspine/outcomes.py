"""Write outcomes returned by storage collaborators.

Each variant is a frozen dataclass tagged with an :class:`OutcomeKind`.
Storage code builds them; :mod:`recordspine.normalize` is the only place that
branches on the tag.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, NamedTuple, Union


class OutcomeKind(str, Enum):
    INSERT = "insert"
    INSERT_MANY = "insert_many"
    UPDATE = "update"
    DELETE = "delete"
    BULK = "bulk"


@dataclass(frozen=True)
class InsertOutcome:
    """A single-document/row insert."""

    acknowledged: bool = True
    inserted_id: Any = None
    kind: OutcomeKind = field(default=OutcomeKind.INSERT, init=False)


@dataclass(frozen=True)
class InsertManyOutcome:
    """A multi-document insert."""

    acknowledged: bool = True
    inserted_ids: tuple[Any, ...] = ()
    kind: OutcomeKind = field(default=OutcomeKind.INSERT_MANY, init=False)


@dataclass(frozen=True)
class UpdateOutcome:
    """An update, replace or upsert of a single target."""

    acknowledged: bool = True
    matched_count: int = 0
    modified_count: int = 0
    upserted_id: Any = None
    kind: OutcomeKind = field(default=OutcomeKind.UPDATE, init=False)

    @property
    def upserted_count(self) -> int:
        return 0 if self.upserted_id is None else 1


@dataclass(frozen=True)
class DeleteOutcome:
    acknowledged: bool = True
    deleted_count: int = 0
    kind: OutcomeKind = field(default=OutcomeKind.DELETE, init=False)


@dataclass(frozen=True)
class BulkOutcome:
    """A mixed batch of writes."""

    acknowledged: bool = True
    inserted_ids: tuple[Any, ...] = ()
    upserted_ids: tuple[Any, ...] = ()
    matched_count: int = 0
    modified_count: int = 0
    deleted_count: int = 0
    kind: OutcomeKind = field(default=OutcomeKind.BULK, init=False)


WriteOutcome = Union[InsertOutcome, InsertManyOutcome, UpdateOutcome, DeleteOutcome, BulkOutcome]


class SaveReturn(NamedTuple):
    """What a model-level ``save(doc, update)`` call hands back.

    ``is_new`` is 1 when a document was created (insert, or an acknowledged
    upsert), ``outcome`` is the raw write outcome and ``document`` the
    document that was sent.
    """

    is_new: int
    outcome: WriteOutcome
    document: dict[str, Any]


__all__ = [
    "OutcomeKind",
    "InsertOutcome",
    "InsertManyOutcome",
    "UpdateOutcome",
    "DeleteOutcome",
    "BulkOutcome",
    "WriteOutcome",
    "SaveReturn",
]
