"""Lazy results of a document find."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from recordspine.documents.model import DocumentModel
    from recordspine.record import Record


class DocumentResults:
    """A find that runs when iterated.

    Every iteration starts a fresh cursor, so the results can be walked more
    than once. ``len()`` asks the model for a count; whether ``skip`` and
    ``limit`` are applied to it follows the model's
    ``results_use_filtered_count``.
    """

    def __init__(self, model: DocumentModel, filter: Mapping[str, Any] | None = None, **options: Any) -> None:
        self.model = model
        self.filter = dict(filter or {})
        self.options = options

    def cursor(self) -> Iterator[dict[str, Any]]:
        return iter(self.model.collection.find(self.filter, **self.options))

    def __iter__(self) -> Iterator[Record]:
        for doc in self.cursor():
            yield self.model.wrap_row(doc)

    def count(self, filtered: bool = False) -> int:
        """Documents matching the filter; *filtered* also applies skip/limit."""
        count_options = {}
        if filtered:
            count_options = {k: self.options[k] for k in ("skip", "limit") if k in self.options}
        return self.model.count(self.filter, **count_options)

    def __len__(self) -> int:
        return self.count(self.model.results_use_filtered_count)

    def first(self) -> Record | None:
        return next(iter(self), None)

    def to_list(self, raw: bool = False) -> list[Any]:
        """All results as records, or as plain documents with *raw*."""
        if raw:
            return list(self.cursor())
        return list(self)

    def __repr__(self) -> str:
        return f"DocumentResults({self.model.collection.name!r}, {self.filter!r})"


__all__ = ["DocumentResults"]
