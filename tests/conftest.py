"""
Shared pytest fixtures for recordspine tests.

This module provides:
- Settings and structlog reset between tests
- An in-memory sqlite3 connection with a ``users`` table
- A SQLAlchemy engine/session over in-memory SQLite
- A memory document collection
- ``StubStore``: a record store that records every call it receives

Usage:
    Fixtures are auto-discovered by pytest; take them as test arguments.

    def test_save(stub_store):
        record = Record(stub_store, {"id": 5, "name": "old"})
"""

from __future__ import annotations

import sqlite3
from collections.abc import Generator, Mapping
from typing import Any

import pytest
import structlog
from sqlalchemy import text

from recordspine.documents import DocumentModel, IdentityLookupMixin, MemoryCollection
from recordspine.models import ModelCommon
from recordspine.outcomes import DeleteOutcome, InsertOutcome, UpdateOutcome
from recordspine.record import Record
from recordspine.settings import clear_settings_cache
from recordspine.sql import RecordSession, SQLModel, SQLRecord, create_record_engine

USERS_DDL = """
CREATE TABLE users (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT,
    email TEXT,
    age INTEGER,
    logins INTEGER DEFAULT 0
)
"""


# =============================================================================
# Isolation
# =============================================================================


@pytest.fixture(autouse=True)
def _reset_settings() -> Generator[None, None, None]:
    """Every test starts from freshly loaded settings."""
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture(autouse=True)
def _reset_structlog() -> Generator[None, None, None]:
    """Undo any configure_logging() a test performed."""
    yield
    structlog.reset_defaults()


# =============================================================================
# Record store double
# =============================================================================


class StubStore(ModelCommon):
    """In-memory record store that keeps a log of every call.

    ``acknowledge`` controls the acknowledgement flag of every outcome it
    returns; ``rows`` backs ``fetch_id``.
    """

    primary_key = "id"
    record_class = Record
    known_fields = ("name", "email")

    def __init__(self, *, acknowledge: bool = True, next_id: Any = 100) -> None:
        self._init_model(None, None)
        self.acknowledge = acknowledge
        self.next_id = next_id
        self.calls: list[tuple[Any, ...]] = []
        self.rows: dict[Any, dict[str, Any]] = {}

    def insert(self, data: Mapping[str, Any]) -> InsertOutcome:
        self.calls.append(("insert", dict(data)))
        key = data.get(self.primary_key) or self.next_id
        return InsertOutcome(acknowledged=self.acknowledge, inserted_id=key)

    def update(self, key: Any, changes: Mapping[str, Any], operator: str = "$set") -> UpdateOutcome:
        self.calls.append(("update", key, dict(changes), operator))
        return UpdateOutcome(acknowledged=self.acknowledge, matched_count=1, modified_count=1)

    def replace(self, key: Any, data: Mapping[str, Any]) -> UpdateOutcome:
        self.calls.append(("replace", key, dict(data)))
        return UpdateOutcome(acknowledged=self.acknowledge, matched_count=1, modified_count=1)

    def patch(self, key: Any, ops: Mapping[str, Any]) -> UpdateOutcome:
        self.calls.append(("patch", key, {op: dict(fields) for op, fields in ops.items()}))
        return UpdateOutcome(acknowledged=self.acknowledge, matched_count=1, modified_count=1)

    def delete_id(self, key: Any) -> DeleteOutcome:
        self.calls.append(("delete", key))
        return DeleteOutcome(acknowledged=self.acknowledge, deleted_count=1)

    def fetch_id(self, key: Any) -> dict[str, Any] | None:
        self.calls.append(("fetch", key))
        row = self.rows.get(key)
        return dict(row) if row is not None else None


@pytest.fixture
def make_store() -> type[StubStore]:
    return StubStore


@pytest.fixture
def stub_store() -> StubStore:
    return StubStore()


@pytest.fixture
def stored_record(stub_store: StubStore) -> Record:
    """A record that is already stored: ``{"id": 5, "name": "old"}``."""
    return Record(stub_store, {"id": 5, "name": "old", "email": "old@example.com"})


# =============================================================================
# SQL fixtures
# =============================================================================


class UserRecord(SQLRecord):
    aliases = {"full_name": "name"}


class UserModel(SQLModel):
    table = "users"
    record_class = UserRecord
    known_fields = {"name": "", "email": None, "age": None, "logins": 0}


@pytest.fixture
def sqlite_conn() -> Generator[sqlite3.Connection, None, None]:
    """In-memory sqlite3 connection with an empty ``users`` table."""
    conn = sqlite3.connect(":memory:")
    conn.execute(USERS_DDL)
    yield conn
    conn.close()


@pytest.fixture
def users_model_class() -> type[UserModel]:
    return UserModel


@pytest.fixture
def users(sqlite_conn: sqlite3.Connection) -> UserModel:
    return UserModel(sqlite_conn)


@pytest.fixture
def seeded_users(users: UserModel) -> UserModel:
    """``users`` with three rows: ann (30), bob (17), cid (45)."""
    for name, age in [("ann", 30), ("bob", 17), ("cid", 45)]:
        users.insert({"name": name, "email": f"{name}@example.com", "age": age, "logins": 0})
    return users


@pytest.fixture
def sa_session() -> Generator[RecordSession, None, None]:
    """SQLAlchemy session over in-memory SQLite with a ``users`` table."""
    engine = create_record_engine("sqlite:///:memory:")
    with RecordSession(engine) as session:
        session.execute(text(USERS_DDL))
        yield session
    engine.dispose()


# =============================================================================
# Document fixtures
# =============================================================================


class AccountModel(IdentityLookupMixin, DocumentModel):
    known_fields = ["name", "email", "username"]
    identity_fields = ["email", "username"]


@pytest.fixture
def collection() -> MemoryCollection:
    return MemoryCollection("accounts")


@pytest.fixture
def accounts(collection: MemoryCollection) -> AccountModel:
    return AccountModel(collection)


@pytest.fixture
def seeded_accounts(accounts: AccountModel) -> AccountModel:
    """``accounts`` with documents a1 (ann) and a2 (bob)."""
    accounts.collection.insert({"_id": "a1", "name": "ann", "email": "ann@example.com", "username": "ann", "logins": 1})
    accounts.collection.insert({"_id": "a2", "name": "bob", "email": "bob@example.com", "username": "bobby", "logins": 5})
    return accounts
