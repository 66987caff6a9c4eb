"""recordspine -- Dirty-tracking records and query composition over SQL and document stores.

Manifesto:
    Application code should say *what* changed, not *how* to write it.
    A record remembers which fields moved since it was loaded, the save
    algorithm turns that into the smallest insert or update, and every write
    outcome is read through one vocabulary (acknowledged, new id, counts).

    - **Minimal writes:** Only tracked fields go into an update
    - **One-level undo:** Each field keeps the value it had before its first change
    - **Safe binding:** Query values never reach SQL text
    - **Guarded patches:** Reserved fields are stripped from caller operators

Architecture::

    Layer 1 -- Primitives
        errors.py          Structured error hierarchy (RecordSpineError)
        logging.py         structlog configuration and helpers
        settings.py        RECORDSPINE_* settings (pydantic-settings)
        outcomes.py        Write outcome variants + SaveReturn
        normalize.py       acknowledged / new_id / new_count / deleted_count
        patch.py           Update operators + reserved-field sanitizer
        params.py          Unique placeholder names

    Layer 2 -- Records & Queries
        query.py           Query / Subquery WHERE tree + shape descriptor
        fields.py          Per-field hook decorators
        record.py          Record (dirty tracking, undo, batch)
        saving.py          Differential save, save_updates, replace_data
        models.py          ModelCommon (known fields, wrapping, reserved fields)

    Layer 3 -- Backends
        dialect.py, statements.py, sql/        SQL tables
        cache.py, documents/                   Document collections

Tags:
    recordspine, orm, dirty-tracking, query-builder, document-store

Doc-Types:
    - API Reference
    - Package Overview
"""

from recordspine.errors import (
    ConstructionError,
    ErrorCategory,
    ErrorContext,
    FieldError,
    ImmutableKeyError,
    InvalidDataError,
    NewDocumentError,
    QueryError,
    RecordSpineError,
    ReservedFieldError,
    UnknownFieldError,
)
from recordspine.fields import field_checker, field_clearer, field_default, field_getter, field_setter
from recordspine.normalize import acknowledged, deleted_count, is_deleted, new_count, new_id, new_ids, unwrap
from recordspine.outcomes import (
    BulkOutcome,
    DeleteOutcome,
    InsertManyOutcome,
    InsertOutcome,
    OutcomeKind,
    SaveReturn,
    UpdateOutcome,
)
from recordspine.params import ParamNamer, param_id
from recordspine.patch import UPDATE_OPERATORS, MatchMode, is_patch, remove_reserved
from recordspine.query import FetchMode, Join, Query, Queryable, Reference, Subquery
from recordspine.record import Record
from recordspine.saving import SaveOptions, SaveStatus

__version__ = "0.1.0"

__all__ = [
    # errors
    "RecordSpineError",
    "ErrorCategory",
    "ErrorContext",
    "FieldError",
    "UnknownFieldError",
    "ImmutableKeyError",
    "NewDocumentError",
    "InvalidDataError",
    "ReservedFieldError",
    "ConstructionError",
    "QueryError",
    # records
    "Record",
    "SaveOptions",
    "SaveStatus",
    "field_getter",
    "field_setter",
    "field_checker",
    "field_clearer",
    "field_default",
    # queries
    "Query",
    "Queryable",
    "Subquery",
    "Join",
    "FetchMode",
    "Reference",
    "ParamNamer",
    "param_id",
    # patches
    "UPDATE_OPERATORS",
    "MatchMode",
    "is_patch",
    "remove_reserved",
    # outcomes
    "OutcomeKind",
    "InsertOutcome",
    "InsertManyOutcome",
    "UpdateOutcome",
    "DeleteOutcome",
    "BulkOutcome",
    "SaveReturn",
    "acknowledged",
    "new_id",
    "new_ids",
    "new_count",
    "deleted_count",
    "is_deleted",
    "unwrap",
]
