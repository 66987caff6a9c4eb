"""
In-process document collection.

:class:`MemoryCollection` implements
:class:`~recordspine.protocols.DocumentCollection` over a dict of
documents keyed by ``_id``. It understands the filter and update-operator
vocabulary the document models send, so records, models and the identity
cache can be exercised without a document server.

Architecture:
    ::

        MemoryCollection(name)
        ├── _docs: {_id: document}      insertion ordered
        ├── find / find_one / count     filter → sort → skip → limit
        ├── insert / insert_many        uuid4().hex ids when _id is missing
        ├── replace_or_update           replace, or apply UPDATE_OPERATORS
        └── delete_one

Filters:
    ``{"field": value}`` equality (a list field matches when it contains
    the value), dotted paths (``"address.city"``), ``$eq $ne $gt $gte $lt
    $lte $in $nin $exists`` conditions, and top-level ``$and`` / ``$or``.

Guardrails:
    ❌ DON'T: Share one collection across processes
    ✅ DO: Use one collection per test or per process

Tags:
    document-store, in-memory, collection, testing, recordspine

Doc-Types:
    - API Reference
"""

from __future__ import annotations

import copy
import operator
from collections.abc import Callable, Iterator, Mapping, Sequence
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from recordspine.errors import InvalidDataError, QueryError
from recordspine.outcomes import DeleteOutcome, InsertManyOutcome, InsertOutcome, UpdateOutcome
from recordspine.patch import UPDATE_OPERATORS, is_patch

_MISSING = object()

_COMPARISONS: dict[str, Callable[[Any, Any], bool]] = {
    "$gt": operator.gt,
    "$gte": operator.ge,
    "$lt": operator.lt,
    "$lte": operator.le,
}


# ---------------------------------------------------------------------------
# Paths
# ---------------------------------------------------------------------------


def _get_path(doc: Mapping[str, Any], path: str) -> Any:
    current: Any = doc
    for part in path.split("."):
        if isinstance(current, Mapping) and part in current:
            current = current[part]
        elif isinstance(current, list) and part.isdigit() and int(part) < len(current):
            current = current[int(part)]
        else:
            return _MISSING
    return current


def _parent_of(doc: dict[str, Any], path: str, create: bool) -> tuple[Any, str]:
    parts = path.split(".")
    current: Any = doc
    for part in parts[:-1]:
        if isinstance(current, list) and part.isdigit():
            current = current[int(part)]
            continue
        if part not in current or not isinstance(current[part], (dict, list)):
            if not create:
                return None, parts[-1]
            current[part] = {}
        current = current[part]
    return current, parts[-1]


def _set_path(doc: dict[str, Any], path: str, value: Any) -> None:
    parent, key = _parent_of(doc, path, create=True)
    if isinstance(parent, list):
        parent[int(key)] = value
    else:
        parent[key] = value


def _unset_path(doc: dict[str, Any], path: str) -> Any:
    parent, key = _parent_of(doc, path, create=False)
    if isinstance(parent, dict):
        return parent.pop(key, _MISSING)
    return _MISSING


# ---------------------------------------------------------------------------
# Filters
# ---------------------------------------------------------------------------


def _is_condition(value: Any) -> bool:
    return isinstance(value, Mapping) and bool(value) and all(str(k).startswith("$") for k in value)


def _equals(actual: Any, expected: Any) -> bool:
    if actual is _MISSING:
        return expected is None
    if isinstance(actual, list) and not isinstance(expected, list):
        return expected in actual
    return actual == expected


def _compare(actual: Any, op: str, operand: Any) -> bool:
    match op:
        case "$eq":
            return _equals(actual, operand)
        case "$ne":
            return not _equals(actual, operand)
        case "$in":
            return any(_equals(actual, item) for item in operand)
        case "$nin":
            return not any(_equals(actual, item) for item in operand)
        case "$exists":
            return (actual is not _MISSING) == bool(operand)
        case "$gt" | "$gte" | "$lt" | "$lte":
            if actual is _MISSING or actual is None:
                return False
            try:
                return _COMPARISONS[op](actual, operand)
            except TypeError:
                return False
    raise QueryError(f"Unsupported filter operator '{op}'")


def matches(doc: Mapping[str, Any], filter: Mapping[str, Any] | None) -> bool:
    """True if *doc* satisfies *filter*."""
    for key, expected in (filter or {}).items():
        if key == "$and":
            if not all(matches(doc, sub) for sub in expected):
                return False
            continue
        if key == "$or":
            if not any(matches(doc, sub) for sub in expected):
                return False
            continue

        actual = _get_path(doc, key)
        if _is_condition(expected):
            if not all(_compare(actual, op, operand) for op, operand in expected.items()):
                return False
        elif not _equals(actual, expected):
            return False
    return True


def _sort_key(value: Any) -> tuple[int, Any]:
    return (0, 0) if value is _MISSING or value is None else (1, value)


def _normalize_sort(sort: Any) -> list[tuple[str, int]]:
    if sort is None:
        return []
    if isinstance(sort, str):
        return [(sort, 1)]
    if isinstance(sort, Mapping):
        return [(field, int(direction)) for field, direction in sort.items()]
    return [(field, int(direction)) for field, direction in sort]


# ---------------------------------------------------------------------------
# Update operators
# ---------------------------------------------------------------------------


def _each(value: Any) -> list[Any]:
    if isinstance(value, Mapping) and "$each" in value:
        return list(value["$each"])
    return [value]


def _apply_operator(doc: dict[str, Any], op: str, fields: Mapping[str, Any], inserting: bool) -> None:
    for path, value in fields.items():
        current = _get_path(doc, path)
        match op:
            case "$set":
                _set_path(doc, path, copy.deepcopy(value))
            case "$setOnInsert":
                if inserting:
                    _set_path(doc, path, copy.deepcopy(value))
            case "$unset":
                _unset_path(doc, path)
            case "$rename":
                moved = _unset_path(doc, path)
                if moved is not _MISSING:
                    _set_path(doc, value, moved)
            case "$inc":
                _set_path(doc, path, (0 if current is _MISSING else current) + value)
            case "$mul":
                _set_path(doc, path, (0 if current is _MISSING else current) * value)
            case "$min":
                if current is _MISSING or value < current:
                    _set_path(doc, path, value)
            case "$max":
                if current is _MISSING or value > current:
                    _set_path(doc, path, value)
            case "$push":
                items = [] if current is _MISSING else list(current)
                items.extend(copy.deepcopy(_each(value)))
                _set_path(doc, path, items)
            case "$addToSet":
                items = [] if current is _MISSING else list(current)
                for item in _each(value):
                    if item not in items:
                        items.append(copy.deepcopy(item))
                _set_path(doc, path, items)
            case "$pop":
                if isinstance(current, list) and current:
                    items = list(current)
                    items.pop(0 if value == -1 else -1)
                    _set_path(doc, path, items)
            case "$pull":
                if isinstance(current, list):
                    if _is_condition(value):
                        kept = [i for i in current if not all(_compare(i, o, v) for o, v in value.items())]
                    else:
                        kept = [i for i in current if i != value]
                    _set_path(doc, path, kept)
            case "$pullAll":
                if isinstance(current, list):
                    _set_path(doc, path, [i for i in current if i not in value])
            case "$bit":
                result = 0 if current is _MISSING else current
                for bit_op, operand in value.items():
                    match bit_op:
                        case "and":
                            result &= operand
                        case "or":
                            result |= operand
                        case "xor":
                            result ^= operand
                _set_path(doc, path, result)
            case "$currentDate":
                _set_path(doc, path, datetime.now(timezone.utc))


def apply_update(doc: dict[str, Any], ops: Mapping[str, Any], *, inserting: bool = False) -> dict[str, Any]:
    """Return a copy of *doc* with update operators *ops* applied.

    Raises:
        QueryError: If *ops* contains an operator outside ``UPDATE_OPERATORS``.
    """
    unknown = [op for op in ops if op not in UPDATE_OPERATORS]
    if unknown:
        raise QueryError(f"Unsupported update operator(s): {', '.join(unknown)}")
    result = copy.deepcopy(doc)
    for op in UPDATE_OPERATORS:
        if op in ops:
            _apply_operator(result, op, ops[op], inserting)
    return result


# ---------------------------------------------------------------------------
# Collection
# ---------------------------------------------------------------------------


class MemoryCollection:
    """A document collection held in a dict.

    Documents are deep-copied on the way in and out, so callers never share
    state with the stored copy.

    Example:
        coll = MemoryCollection("users")
        outcome = coll.insert({"name": "ann"})
        coll.find_one({"_id": outcome.inserted_id})
    """

    def __init__(
        self,
        name: str = "documents",
        documents: Sequence[Mapping[str, Any]] = (),
        *,
        id_factory: Callable[[], Any] | None = None,
    ) -> None:
        self.name = name
        self._docs: dict[Any, dict[str, Any]] = {}
        self._id_factory = id_factory or (lambda: uuid4().hex)
        for document in documents:
            self.insert(document)

    def _select(
        self,
        filter: Mapping[str, Any] | None,
        sort: Any = None,
        skip: int = 0,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        found = [doc for doc in self._docs.values() if matches(doc, filter)]
        for field, direction in reversed(_normalize_sort(sort)):
            found.sort(key=lambda d, f=field: _sort_key(_get_path(d, f)), reverse=direction < 0)
        if skip:
            found = found[skip:]
        if limit:
            found = found[:limit]
        return found

    def find(
        self,
        filter: Mapping[str, Any] | None = None,
        *,
        sort: Any = None,
        skip: int = 0,
        limit: int | None = None,
    ) -> Iterator[dict[str, Any]]:
        for doc in self._select(filter, sort, skip, limit):
            yield copy.deepcopy(doc)

    def find_one(self, filter: Mapping[str, Any] | None = None, **options: Any) -> dict[str, Any] | None:
        options["limit"] = 1
        return next(self.find(filter, **options), None)

    def count(
        self,
        filter: Mapping[str, Any] | None = None,
        *,
        skip: int = 0,
        limit: int | None = None,
    ) -> int:
        return len(self._select(filter, None, skip, limit))

    def insert(self, document: Mapping[str, Any]) -> InsertOutcome:
        """Insert a copy of *document*.

        Raises:
            InvalidDataError: If a document with the same ``_id`` exists.
        """
        doc = copy.deepcopy(dict(document))
        if doc.get("_id") is None:
            doc["_id"] = self._id_factory()
        if doc["_id"] in self._docs:
            raise InvalidDataError(f"Duplicate _id {doc['_id']!r}").with_context(
                collection=self.name, operation="insert"
            )
        self._docs[doc["_id"]] = doc
        return InsertOutcome(acknowledged=True, inserted_id=doc["_id"])

    def insert_many(self, documents: Sequence[Mapping[str, Any]]) -> InsertManyOutcome:
        ids = tuple(self.insert(document).inserted_id for document in documents)
        return InsertManyOutcome(acknowledged=True, inserted_ids=ids)

    def replace_or_update(
        self,
        filter: Mapping[str, Any],
        document: Mapping[str, Any],
        *,
        upsert: bool = False,
    ) -> UpdateOutcome:
        """Replace the first match with *document*, or apply it as update operators.

        With *upsert* and no match, a new document is created from the
        filter's equality fields plus the replacement or operators.

        Raises:
            InvalidDataError: If a replacement document has ``$`` keys.
            QueryError: If update operators are mixed with plain fields or
                include an unsupported operator.
        """
        patching = is_patch(document)
        if not patching:
            operators = [key for key in document if str(key).startswith("$")]
            if operators:
                raise InvalidDataError(
                    f"Replacement document has operator keys: {', '.join(map(str, operators))}"
                ).with_context(collection=self.name, operation="replace_or_update")
        found = self._select(filter, limit=1)

        if not found:
            if not upsert:
                return UpdateOutcome(acknowledged=True)
            seed = {k: copy.deepcopy(v) for k, v in filter.items() if not k.startswith("$") and not _is_condition(v)}
            if patching:
                new = apply_update({}, document, inserting=True)
                for path, value in seed.items():
                    if _get_path(new, path) is _MISSING:
                        _set_path(new, path, value)
            else:
                new = {**seed, **copy.deepcopy(dict(document))}
            outcome = self.insert(new)
            return UpdateOutcome(acknowledged=True, upserted_id=outcome.inserted_id)

        current = found[0]
        key = current["_id"]
        if patching:
            new = apply_update(current, document)
        else:
            new = copy.deepcopy(dict(document))
        new["_id"] = key
        modified = new != current
        self._docs[key] = new
        return UpdateOutcome(acknowledged=True, matched_count=1, modified_count=int(modified))

    def delete_one(self, filter: Mapping[str, Any]) -> DeleteOutcome:
        found = self._select(filter, limit=1)
        if not found:
            return DeleteOutcome(acknowledged=True, deleted_count=0)
        del self._docs[found[0]["_id"]]
        return DeleteOutcome(acknowledged=True, deleted_count=1)

    def __len__(self) -> int:
        return len(self._docs)

    def __repr__(self) -> str:
        return f"MemoryCollection({self.name!r}, {len(self._docs)} documents)"


__all__ = ["MemoryCollection", "apply_update", "matches"]
