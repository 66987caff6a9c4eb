"""
Canonical protocol definitions for recordspine.

Every module that needs a connection, a document collection or a record
store imports the contract from here.

Manifesto:
    Protocols define contracts without inheritance. They enable:
    - **Decoupling:** Records depend on the shape of a store, not a driver
    - **Testability:** Any object matching the protocol works
    - **Portability:** The save algorithm runs unchanged on SQL and documents

Architecture:
    ::

        protocols.py (YOU ARE HERE)
        ├── Connection          : DB-API style connection (sqlite3, bridge)
        ├── DocumentCollection  : document storage collaborator
        └── RecordStore         : what a Record needs from its model

    Implementations:
        Connection          → sqlite3.Connection, sql.session.SAConnectionBridge
        DocumentCollection  → documents.memory.MemoryCollection
        RecordStore         → sql.model.SQLModel, documents.model.DocumentModel

Guardrails:
    ❌ DON'T: Branch on the concrete store class inside the save algorithm
    ✅ DO: Add what the algorithm needs to RecordStore

    ❌ DON'T: Add implementation logic to protocol classes
    ✅ DO: Keep protocols pure contracts

Tags:
    protocol, connection, document-store, record-store, contracts,
    recordspine

Doc-Types:
    - API Reference
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any, Protocol, runtime_checkable

from recordspine.outcomes import DeleteOutcome, InsertOutcome, UpdateOutcome

# ---------------------------------------------------------------------------
# Database Connection Protocol
# ---------------------------------------------------------------------------


@runtime_checkable
class Connection(Protocol):
    """
    Minimal synchronous connection for named-parameter SQL.

    ``execute`` returns a cursor-like object exposing ``fetchone()``,
    ``fetchall()``, ``description``, ``rowcount`` and ``lastrowid``.

    Implementations:
    ┌────────────────────────────────────────────────────────┐
    │ sqlite3.Connection      → native ``:name`` markers     │
    │ SAConnectionBridge      → SQLAlchemy ``text()``        │
    └────────────────────────────────────────────────────────┘
    """

    def execute(self, sql: str, params: Mapping[str, Any] = ...) -> Any:
        """Execute one statement with named parameters."""
        ...

    def commit(self) -> None:
        """Commit current transaction."""
        ...

    def rollback(self) -> None:
        """Rollback current transaction."""
        ...


# ---------------------------------------------------------------------------
# Document Storage Protocol
# ---------------------------------------------------------------------------


@runtime_checkable
class DocumentCollection(Protocol):
    """
    The document storage collaborator.

    Filters are mappings of field → value or field → ``{"$op": value}``.
    Writes return outcome variants from :mod:`recordspine.outcomes`.
    """

    name: str

    def find(self, filter: Mapping[str, Any] | None = None, **options: Any) -> Iterable[dict[str, Any]]:
        """Iterate documents matching *filter* (``sort``, ``skip``, ``limit``)."""
        ...

    def find_one(self, filter: Mapping[str, Any] | None = None, **options: Any) -> dict[str, Any] | None:
        """First document matching *filter*, or ``None``."""
        ...

    def count(self, filter: Mapping[str, Any] | None = None, **options: Any) -> int:
        """Number of documents matching *filter*."""
        ...

    def insert(self, document: Mapping[str, Any], **options: Any) -> InsertOutcome:
        """Insert one document, generating ``_id`` when missing."""
        ...

    def replace_or_update(
        self,
        filter: Mapping[str, Any],
        document: Mapping[str, Any],
        *,
        upsert: bool = False,
        **options: Any,
    ) -> UpdateOutcome:
        """Replace the first match, or apply update operators to it."""
        ...

    def delete_one(self, filter: Mapping[str, Any]) -> DeleteOutcome:
        """Delete the first document matching *filter*."""
        ...


# ---------------------------------------------------------------------------
# Record Store Protocol
# ---------------------------------------------------------------------------


@runtime_checkable
class RecordStore(Protocol):
    """
    What a :class:`~recordspine.record.Record` and the save algorithm
    need from the model that owns it.

    ``update`` sends a partial change-set, ``replace`` a full snapshot and
    ``patch`` a caller-supplied update-operator mapping.
    """

    primary_key: str
    reserved_fields: list[str] | None

    def is_known(self, name: str) -> bool:
        """``True`` if *name* is the primary key or a known field."""
        ...

    def insert(self, data: Mapping[str, Any]) -> InsertOutcome:
        ...

    def update(self, key: Any, changes: Mapping[str, Any], operator: str = "$set") -> UpdateOutcome:
        ...

    def replace(self, key: Any, data: Mapping[str, Any]) -> UpdateOutcome:
        ...

    def patch(self, key: Any, ops: Mapping[str, Any]) -> UpdateOutcome:
        ...

    def delete_id(self, key: Any) -> DeleteOutcome:
        ...

    def fetch_id(self, key: Any) -> dict[str, Any] | None:
        """The stored row/document for *key* as a plain dict, or ``None``."""
        ...

    def remove_reserved(self, ops: dict[str, Any]) -> dict[str, dict[str, Any]]:
        """Strip ``reserved_fields`` from *ops* using the model's match policy."""
        ...


__all__ = [
    "Connection",
    "DocumentCollection",
    "RecordStore",
]
