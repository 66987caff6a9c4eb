"""
Structured error types for recordspine.

Every failure the data-access layer raises on purpose is a
:class:`RecordSpineError`. Each error carries a category for routing, an
:class:`ErrorContext` describing which record, field, table or collection
was involved, and an optional chained cause.

Manifesto:
    - **Typed Error Hierarchy:** One class per failure the caller can act on
    - **Rich Context:** Errors carry record/field metadata for logging
    - **Error Chaining:** Preserve original exceptions while adding context
    - **No Wrapping of Drivers:** Storage driver failures propagate as-is

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────────┐
        │                      RecordSpineError                           │
        │                 (category, context, cause)                      │
        ├─────────────────────────────────────────────────────────────────┤
        │                                                                 │
        │  FieldError          NewDocumentError     ConstructionError     │
        │  (VALIDATION)        (STORAGE)            (CONFIG)              │
        │       │                                                         │
        │  UnknownFieldError   InvalidDataError     QueryError            │
        │  ImmutableKeyError   (VALIDATION)         (QUERY)               │
        │                                                                 │
        │                      ReservedFieldError                         │
        │                      (VALIDATION)                               │
        └─────────────────────────────────────────────────────────────────┘

Examples:
    >>> error = UnknownFieldError("Unknown field 'nmae'")
    >>> error.category
    <ErrorCategory.VALIDATION: 'VALIDATION'>

    >>> error = UnknownFieldError("Unknown field").with_context(
    ...     record_type="User", field="nmae"
    ... )
    >>> error.context.field
    'nmae'

Guardrails:
    ❌ DON'T: Raise bare Exception for expected failures
    ✅ DO: Use the RecordSpineError subclass the caller can catch

    ❌ DON'T: Wrap storage driver errors in RecordSpineError
    ✅ DO: Let driver failures propagate to the immediate caller

Tags:
    error-handling, exception-hierarchy, error-context, recordspine

Doc-Types:
    - API Reference
    - Error Handling Guide
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Standard error categories for classification and routing."""

    VALIDATION = "VALIDATION"     # Field names, data shapes, reserved fields
    STORAGE = "STORAGE"           # Operations that need a stored document
    QUERY = "QUERY"               # Query building and statement rendering
    CONFIG = "CONFIG"             # Records/models built with bad options
    INTERNAL = "INTERNAL"         # Bugs, unexpected state


@dataclass
class ErrorContext:
    """
    Structured metadata context for errors.

    Only fields that are set show up in :meth:`to_dict`; anything without a
    typed slot goes into ``metadata``.

    Attributes:
        record_type: Class name of the record involved
        field: Field (logical or storage) name involved
        operation: The operation that failed (``save``, ``set``, ...)
        table: SQL table name
        collection: Document collection name
        metadata: Additional key-value pairs
    """

    record_type: str | None = None
    field: str | None = None
    operation: str | None = None
    table: str | None = None
    collection: str | None = None

    metadata: dict[str, Any] = dataclasses.field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["record_type", "field", "operation", "table", "collection"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class RecordSpineError(Exception):
    """
    Base exception for all recordspine errors.

    Subclasses set ``default_category`` to classify themselves; callers may
    still override the category per instance.

    Examples:
        >>> error = RecordSpineError("Something went wrong")
        >>> error.category
        <ErrorCategory.INTERNAL: 'INTERNAL'>

        >>> try:
        ...     raise KeyError("name")
        ... except KeyError as e:
        ...     error = RecordSpineError("Lookup failed", cause=e)
        >>> error.cause
        KeyError('name')
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> RecordSpineError:
        """
        Add context to this error (fluent API).

        Usage:
            raise UnknownFieldError("Unknown field").with_context(
                record_type="User", field="nmae"
            )
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key) and key != "metadata":
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# FIELD ERRORS
# =============================================================================


class FieldError(RecordSpineError):
    """Base class for field access failures on a record."""

    default_category = ErrorCategory.VALIDATION


class UnknownFieldError(FieldError):
    """A field name resolved to nothing under the strict policy."""


class ImmutableKeyError(FieldError):
    """Attempt to overwrite an auto-generated primary key."""


# =============================================================================
# SAVE / STORAGE ERRORS
# =============================================================================


class NewDocumentError(RecordSpineError):
    """An update-only operation was invoked on a record with no stored key."""

    default_category = ErrorCategory.STORAGE


class InvalidDataError(RecordSpineError):
    """Data given to a replace/update path is not a structured document."""

    default_category = ErrorCategory.VALIDATION


class ReservedFieldError(RecordSpineError):
    """Fatal-mode patch sanitization found a protected field."""

    default_category = ErrorCategory.VALIDATION

    def __init__(self, message: str, *, operator: str | None = None, key: str | None = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.operator = operator
        self.key = key


# =============================================================================
# CONSTRUCTION / QUERY ERRORS
# =============================================================================


class ConstructionError(RecordSpineError):
    """A record, model or query node was built with an invalid option set."""

    default_category = ErrorCategory.CONFIG


class QueryError(RecordSpineError):
    """A query or statement could not be built from the given arguments."""

    default_category = ErrorCategory.QUERY


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "RecordSpineError",
    "FieldError",
    "UnknownFieldError",
    "ImmutableKeyError",
    "NewDocumentError",
    "InvalidDataError",
    "ReservedFieldError",
    "ConstructionError",
    "QueryError",
]
