"""Result normalization for write outcomes.

Storage collaborators return one of several outcome shapes
(:mod:`recordspine.outcomes`). These functions reduce any of them to four
questions: was it acknowledged, which ids were created, how many records were
created, and how many were deleted.

This is a normalization boundary, not a validation boundary: ``None``,
foreign objects and unacknowledged outcomes all produce the "zero" answer
(``False``, ``None``, ``[]`` or ``0``) instead of raising.

Model-level ``save()`` calls return a :class:`~recordspine.outcomes.SaveReturn`
triple; pass ``is_save=True`` (or use the id/count helpers, which always
unwrap) to look through it.

Examples:
    >>> from recordspine.outcomes import UpdateOutcome
    >>> new_count(UpdateOutcome(matched_count=0, upserted_id="abc"))
    1
    >>> new_count(None)
    0

Tags:
    normalization, write-outcome, recordspine
"""

from __future__ import annotations

from typing import Any

from recordspine.outcomes import OutcomeKind, WriteOutcome


def unwrap(outcome: Any, is_save: bool = False) -> WriteOutcome | None:
    """Return the write outcome inside *outcome*, or ``None``.

    A :class:`~recordspine.outcomes.SaveReturn` (or any 3-tuple shaped like
    one) is unwrapped only when *is_save* is set.
    """
    if outcome is None:
        return None
    if is_save and isinstance(outcome, tuple) and len(outcome) == 3:
        outcome = outcome[1]
    if isinstance(getattr(outcome, "kind", None), OutcomeKind):
        return outcome
    return None


def acknowledged(outcome: Any, *, unwrap_outcome: bool = True, is_save: bool = False) -> bool:
    """True iff the outcome reports acknowledgement."""
    if unwrap_outcome:
        outcome = unwrap(outcome, is_save)
    if outcome is None:
        return False
    return bool(getattr(outcome, "acknowledged", False))


def new_id(outcome: Any, multiple: bool = False) -> Any:
    """The id created by the write.

    Inserts report the inserted id, updates the upserted id (if any). With
    *multiple* the result is always a list, and multi-insert and bulk
    outcomes contribute every inserted and upserted id.
    """
    outcome = unwrap(outcome, is_save=True)
    if outcome is None or not acknowledged(outcome, unwrap_outcome=False):
        return [] if multiple else None

    match outcome.kind:
        case OutcomeKind.INSERT:
            single = outcome.inserted_id
        case OutcomeKind.UPDATE:
            single = outcome.upserted_id
        case OutcomeKind.INSERT_MANY:
            return list(outcome.inserted_ids) if multiple else None
        case OutcomeKind.BULK:
            return list(outcome.inserted_ids) + list(outcome.upserted_ids) if multiple else None
        case _:
            return [] if multiple else None

    if multiple:
        return [] if single is None else [single]
    return single


def new_ids(outcome: Any) -> list[Any]:
    """Shortcut for ``new_id(outcome, multiple=True)``."""
    return new_id(outcome, multiple=True)


def new_count(outcome: Any) -> int:
    """Number of records created (inserted or upserted) by the write."""
    outcome = unwrap(outcome, is_save=True)
    if outcome is None or not acknowledged(outcome, unwrap_outcome=False):
        return 0

    match outcome.kind:
        case OutcomeKind.UPDATE:
            return outcome.upserted_count
        case OutcomeKind.INSERT:
            return 1
        case OutcomeKind.INSERT_MANY:
            return len(outcome.inserted_ids)
        case OutcomeKind.BULK:
            return len(outcome.inserted_ids) + len(outcome.upserted_ids)
    return 0


def deleted_count(outcome: Any) -> int:
    """Number of records deleted by the write."""
    outcome = unwrap(outcome, is_save=True)
    if outcome is None or not acknowledged(outcome, unwrap_outcome=False):
        return 0

    match outcome.kind:
        case OutcomeKind.DELETE | OutcomeKind.BULK:
            return outcome.deleted_count
    return 0


def is_deleted(outcome: Any) -> bool:
    return deleted_count(outcome) > 0


__all__ = [
    "unwrap",
    "acknowledged",
    "new_id",
    "new_ids",
    "new_count",
    "deleted_count",
    "is_deleted",
]
