"""SQL path: table-bound models, rendered statements, SQLAlchemy bridge."""

from recordspine.sql.model import SQLModel
from recordspine.sql.record import SQLRecord
from recordspine.sql.repository import BaseRepository
from recordspine.sql.results import ResultList
from recordspine.sql.session import (
    RecordSession,
    SAConnectionBridge,
    create_record_engine,
    record_session_factory,
)

__all__ = [
    "SQLModel",
    "SQLRecord",
    "BaseRepository",
    "ResultList",
    "RecordSession",
    "SAConnectionBridge",
    "create_record_engine",
    "record_session_factory",
]
