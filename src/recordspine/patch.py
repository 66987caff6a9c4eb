"""Reserved-field protection for update-operator patches.

A patch is a mapping from update operator (``$set``, ``$inc``, ...) to a
mapping of field → value. Caller-supplied patches must not be able to
rewrite identity or audit fields, so :func:`remove_reserved` strips (or, in
fatal mode, rejects) every key that matches a reserved name.

Example::

    patch = {"$set": {"pwd_hash": "x", "email": "y"}}
    removed = remove_reserved(patch, ["pwd"], MatchMode.PREFIX)
    # patch   == {"$set": {"email": "y"}}
    # removed == {"$set": {"pwd_hash": "x"}}

Only the operators in :data:`UPDATE_OPERATORS` are inspected; aggregation
pipelines are not supported.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, MutableMapping
from enum import Enum
from typing import Any

from recordspine.errors import ReservedFieldError
from recordspine.logging import get_logger

logger = get_logger(__name__)

UPDATE_OPERATORS: tuple[str, ...] = (
    "$set", "$unset", "$rename", "$setOnInsert",        # Main
    "$inc", "$min", "$max", "$mul",                     # Numeric
    "$push", "$pop", "$pull", "$pullAll", "$addToSet",  # Array
    "$bit", "$currentDate",                             # More
)

ALL_FIELDS_KEY = "*"


class MatchMode(str, Enum):
    """How a patch key is compared against a reserved name."""

    EXACT = "exact"          # key == reserved
    PREFIX = "prefix"        # key.startswith(reserved)
    SUBSTRING = "substring"  # reserved in key
    PATTERN = "pattern"      # re.search(reserved, key)


def is_patch(document: Any) -> bool:
    """Return True if *document* holds at least one recognised update operator."""
    if not isinstance(document, MutableMapping):
        return False
    return any(isinstance(document.get(op), MutableMapping) for op in UPDATE_OPERATORS)


def _matches(key: str, reserved: Iterable[str | re.Pattern[str]], mode: MatchMode) -> bool:
    for name in reserved:
        match mode:
            case MatchMode.EXACT:
                found = key == name
            case MatchMode.PREFIX:
                found = key.startswith(name)
            case MatchMode.SUBSTRING:
                found = name in key
            case MatchMode.PATTERN:
                found = re.search(name, key) is not None
        if found:
            return True
    return False


def remove_reserved(
    patch: MutableMapping[str, Any],
    reserved: Iterable[str | re.Pattern[str]],
    mode: MatchMode | str = MatchMode.PREFIX,
    *,
    fatal: bool = False,
    log: bool = True,
    all_key: str = ALL_FIELDS_KEY,
) -> dict[str, dict[str, Any]]:
    """Strip reserved fields from *patch* in place.

    Args:
        patch: The update-operator mapping to sanitize. Modified in place.
        reserved: Reserved field names (or regex patterns in PATTERN mode).
        mode: How keys are matched against reserved names.
        fatal: Raise :class:`ReservedFieldError` on the first match instead of
            removing anything.
        log: Log a warning for every removed key.
        all_key: Key set to ``True`` in the report for an operator whose
            fields were all removed (the operator itself is dropped too).

    Returns:
        ``{operator: {field: value, ...}}`` for every operator that lost
        fields; empty when nothing was removed.

    Raises:
        ReservedFieldError: In fatal mode, when a reserved field is found.
    """
    mode = MatchMode(mode)
    reserved = list(reserved)

    report: dict[str, dict[str, Any]] = {}
    for op in UPDATE_OPERATORS:
        fields = patch.get(op)
        if not isinstance(fields, MutableMapping):
            continue

        removed = {}
        for key, value in fields.items():
            if not _matches(key, reserved, mode):
                continue
            if fatal:
                raise ReservedFieldError(
                    f"Reserved field '{key}' found in '{op}'", operator=op, key=key
                ).with_context(field=key, operation=op)
            removed[key] = value

        if removed:
            report[op] = removed

    for op, removed in report.items():
        fields = patch[op]
        for key in removed:
            if log:
                logger.warning("reserved_field_removed", field=key, operator=op)
            del fields[key]
        if not fields:
            del patch[op]
            removed[all_key] = True

    return report


__all__ = [
    "UPDATE_OPERATORS",
    "ALL_FIELDS_KEY",
    "MatchMode",
    "is_patch",
    "remove_reserved",
]
