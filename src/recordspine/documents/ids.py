"""Helpers for identifiers embedded in documents."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from recordspine.errors import InvalidDataError


def id_string(value: Any, primary_key: str = "_id") -> str:
    """String form of an identifier.

    Accepts a plain id (string, int, UUID, driver id object), a document or
    sub-document carrying *primary_key*, an extended-JSON ``{"$oid": ...}``
    mapping, or a record.

    Raises:
        InvalidDataError: If no identifier can be found in *value*.
    """
    from recordspine.record import Record

    if isinstance(value, str):
        return value
    if isinstance(value, Record):
        return id_string(value.id, primary_key)
    if isinstance(value, Mapping):
        if value.get(primary_key) is not None:
            return id_string(value[primary_key], primary_key)
        if value.get("$oid") is not None:
            return id_string(value["$oid"], primary_key)
        raise InvalidDataError(f"Could not find an id in {value!r}")
    if value is None:
        raise InvalidDataError("Could not find an id in None")
    return str(value)


def is_same(first: Any, second: Any, primary_key: str = "_id") -> bool:
    """True if *first* and *second* carry the same identifier."""
    if first is second or (type(first) is type(second) and first == second):
        return True
    return id_string(first, primary_key) == id_string(second, primary_key)


__all__ = ["id_string", "is_same"]
