"""Collection-bound models for document stores.

A :class:`DocumentModel` wraps one
:class:`~recordspine.protocols.DocumentCollection` and is the record store
for the :class:`~recordspine.documents.record.DocumentRecord` objects it
returns.

Architecture::

    DocumentModel(collection)
    ├── find / find_one / count / get_doc_by_id / id_count
    ├── save(doc, update, upsert) → SaveReturn(is_new, outcome, document)
    ├── delete_id
    ├── model[id], id in model, del model[id], model[id] = doc, iter(model)
    └── RecordStore: insert / update / replace / patch / fetch_id
                          │
                          ▼
                 collection.insert / replace_or_update / delete_one

Example:
    >>> users = UserModel(MemoryCollection("users"))
    >>> user = users.new_record({"name": "ann"})
    >>> user.save(return_boolean=True)
    True
    >>> users[user.id]["name"]
    'ann'
"""

from __future__ import annotations

from collections.abc import Callable, Iterator, Mapping
from typing import Any, ClassVar

from recordspine.documents.record import DocumentRecord
from recordspine.documents.results import DocumentResults
from recordspine.models import ModelCommon
from recordspine.normalize import acknowledged
from recordspine.outcomes import DeleteOutcome, InsertOutcome, SaveReturn, UpdateOutcome
from recordspine.protocols import DocumentCollection
from recordspine.record import Record


class DocumentModel(ModelCommon):
    """A model bound to one document collection.

    Parameters:
        collection: The storage collaborator.
        primary_key: Primary-key field; overrides the class attribute.
        record_class: Record type to wrap documents in.
        id_coercer: Converts incoming id values to the driver's id type
            (for example a string to an ``ObjectId``). Applied to the
            primary key in every lookup, save and delete.
    """

    primary_key = "_id"
    record_class = DocumentRecord

    # len(results) applies skip/limit when True
    results_use_filtered_count: ClassVar[bool] = True

    def __init__(
        self,
        collection: DocumentCollection,
        *,
        primary_key: str | None = None,
        record_class: type[Record] | None = None,
        id_coercer: Callable[[Any], Any] | None = None,
    ) -> None:
        self.collection = collection
        self._id_coercer = id_coercer
        self._init_model(primary_key, record_class)

    def coerce_id(self, value: Any) -> Any:
        """Convert *value* to the stored id type."""
        if self._id_coercer is None or value is None:
            return value
        return self._id_coercer(value)

    # -- Reading ----------------------------------------------------------

    def find(
        self,
        filter: Mapping[str, Any] | None = None,
        *,
        raw: bool = False,
        **options: Any,
    ) -> DocumentResults | list[dict[str, Any]]:
        """Documents matching *filter*.

        Returns lazy :class:`DocumentResults`, or a list of plain documents
        with *raw*. *options* (``sort``, ``skip``, ``limit``) go to the
        collection.
        """
        if raw:
            return list(self.collection.find(filter or {}, **options))
        return DocumentResults(self, filter, **options)

    def find_one(
        self,
        filter: Mapping[str, Any] | None = None,
        *,
        raw: bool = False,
        **options: Any,
    ) -> Record | dict[str, Any] | None:
        doc = self.collection.find_one(filter or {}, **options)
        if raw:
            return doc
        return self.wrap_row(doc)

    def count(self, filter: Mapping[str, Any] | None = None, **options: Any) -> int:
        return self.collection.count(filter or {}, **options)

    def get_doc_by_id(self, key: Any, *, raw: bool = False) -> Record | dict[str, Any] | None:
        return self.find_one({self.primary_key: self.coerce_id(key)}, raw=raw)

    def id_count(self, key: Any) -> int:
        return self.count({self.primary_key: self.coerce_id(key)})

    # -- Writing ----------------------------------------------------------

    def save(
        self,
        doc: Mapping[str, Any] | Record,
        update: Mapping[str, Any] | None = None,
        upsert: bool = False,
    ) -> SaveReturn:
        """Write a document.

        With a primary key the stored document is replaced by *doc*, or
        *update* operators are applied to it. Without one *doc* is inserted.

        Returns:
            ``SaveReturn(is_new, outcome, document)``: ``is_new`` is 1 for
            an insert or an acknowledged upsert that created a document.
        """
        pk = self.primary_key
        document = doc.to_dict() if isinstance(doc, Record) else dict(doc)

        if document.get(pk) is not None:
            document[pk] = self.coerce_id(document[pk])
            outcome = self.collection.replace_or_update(
                {pk: document[pk]},
                update if update is not None else document,
                upsert=upsert,
            )
            is_new = outcome.upserted_count if upsert and acknowledged(outcome) else 0
            return SaveReturn(is_new, outcome, document)

        document.pop(pk, None)
        outcome = self.collection.insert(document)
        if acknowledged(outcome):
            document[pk] = outcome.inserted_id
        return SaveReturn(1, outcome, document)

    def delete_id(self, key: Any) -> DeleteOutcome:
        return self.collection.delete_one({self.primary_key: self.coerce_id(key)})

    # -- RecordStore ------------------------------------------------------

    def insert(self, data: Mapping[str, Any]) -> InsertOutcome:
        """Insert *data*; a caller-chosen primary key is kept, ``None`` is dropped."""
        pk = self.primary_key
        document = {k: v for k, v in data.items() if not (k == pk and v is None)}
        if pk in document:
            document[pk] = self.coerce_id(document[pk])
        return self.collection.insert(document)

    def update(self, key: Any, changes: Mapping[str, Any], operator: str = "$set") -> UpdateOutcome:
        return self.save({self.primary_key: key}, {operator: dict(changes)}).outcome

    def replace(self, key: Any, data: Mapping[str, Any]) -> UpdateOutcome:
        return self.save({**data, self.primary_key: key}).outcome

    def patch(self, key: Any, ops: Mapping[str, Any]) -> UpdateOutcome:
        return self.save({self.primary_key: key}, ops).outcome

    def fetch_id(self, key: Any) -> dict[str, Any] | None:
        return self.get_doc_by_id(key, raw=True)

    # -- Mapping sugar ----------------------------------------------------

    def __getitem__(self, key: Any) -> Record | None:
        return self.get_doc_by_id(key)

    def __contains__(self, key: object) -> bool:
        return self.id_count(key) > 0

    def __delitem__(self, key: Any) -> None:
        self.delete_id(key)

    def __setitem__(self, key: Any, doc: Mapping[str, Any] | Record) -> None:
        """Store *doc* under *key*, creating it when no document has that id."""
        document = doc.to_dict() if isinstance(doc, Record) else dict(doc)
        document[self.primary_key] = key
        self.save(document, upsert=True)
        if isinstance(doc, Record):
            doc.store(doc.primary_key, self.coerce_id(key))
            doc.clear_modified()

    def __iter__(self) -> Iterator[Record]:
        return iter(self.find())

    def __len__(self) -> int:
        return self.count()

    def __repr__(self) -> str:
        return f"{type(self).__name__}(collection={self.collection.name!r})"


__all__ = ["DocumentModel"]
