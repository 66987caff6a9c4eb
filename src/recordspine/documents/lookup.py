"""Look documents up by a natural identity, with a per-model cache.

Mix :class:`IdentityLookupMixin` into a
:class:`~recordspine.documents.model.DocumentModel` to get
:meth:`~IdentityLookupMixin.get_doc`::

    class Users(IdentityLookupMixin, DocumentModel):
        identity_fields = ["email", "username"]
        identity_delimiter = ":"
        identity_case = CaseMode.DEFAULT_LOWER

    users.get_doc("Alice")              # _id, then email, then username = "alice"
    users.get_doc("email:a@x.org")      # email only
    users.get_doc(42, column="legacy_id")

Found documents are cached by identity for the life of the model. The
cache is never invalidated by writes; call ``clear_doc_cache()`` when a
fresh read matters.
"""

from __future__ import annotations

import json
from collections.abc import Hashable, Sequence
from enum import Enum
from typing import Any, ClassVar

from recordspine.cache import CacheBackend, InMemoryCache
from recordspine.errors import InvalidDataError
from recordspine.logging import get_logger

logger = get_logger(__name__)


class CaseMode(str, Enum):
    """Case forcing applied to string identities."""

    NONE = "none"
    DEFAULT_LOWER = "default_lower"  # lowercase when no column was given
    DEFAULT_UPPER = "default_upper"  # uppercase when no column was given
    ALL_LOWER = "all_lower"
    ALL_UPPER = "all_upper"


class IdentityLookupMixin:
    """Adds ``get_doc()`` to a document model.

    Class attributes:
        identity_fields: Field (or fields) searched after the primary key.
        identity_delimiter: When set, ``"column<delim>value"`` identities
            name the field to search (split once).
        identity_case: :class:`CaseMode` for string identities.
    """

    identity_fields: ClassVar[str | Sequence[str] | None] = None
    identity_delimiter: ClassVar[str | None] = None
    identity_case: ClassVar[CaseMode] = CaseMode.NONE

    @property
    def doc_cache(self) -> CacheBackend:
        cache = self.__dict__.get("_doc_cache")
        if cache is None:
            cache = self.__dict__["_doc_cache"] = InMemoryCache()
        return cache

    def clear_doc_cache(self) -> None:
        self.doc_cache.clear()

    def _lookup_fields(self) -> list[str]:
        pk = self.primary_key
        fields = self.identity_fields
        if fields is None:
            return [pk]
        if isinstance(fields, str):
            return [pk] if fields == pk else [pk, fields]
        fields = list(fields)
        return fields if pk in fields else [pk, *fields]

    def get_doc(self, identity: Any, column: str | None = None) -> Any:
        """Find a document by identity.

        Returns the wrapped record, or ``None`` when no field matched.
        """
        cache_key: Hashable
        if isinstance(identity, (dict, list, tuple)):
            cache_key = json.dumps(identity, sort_keys=True, default=str)
        else:
            cache_key = str(identity)
        if column is not None:
            cache_key = f"{column}_{cache_key}"

        if isinstance(identity, str):
            if self.identity_delimiter and self.identity_delimiter in identity:
                column, identity = identity.split(self.identity_delimiter, 1)
            elif column is None:
                match self.identity_case:
                    case CaseMode.DEFAULT_LOWER:
                        identity = identity.lower()
                    case CaseMode.DEFAULT_UPPER:
                        identity = identity.upper()
            match self.identity_case:
                case CaseMode.ALL_LOWER:
                    identity = identity.lower()
                case CaseMode.ALL_UPPER:
                    identity = identity.upper()

        cached = self.doc_cache.get(cache_key)
        if cached is not None:
            logger.debug("document_cache_hit", key=cache_key)
            return cached

        fields = [column] if column is not None else self._lookup_fields()
        for field in fields:
            doc = self._get_doc_with(cache_key, field, identity)
            if doc is not None:
                return doc
        return None

    def _get_doc_with(self, cache_key: Hashable, field: str, value: Any) -> Any:
        if field == self.primary_key:
            try:
                value = self.coerce_id(value)
            except (TypeError, ValueError, InvalidDataError):
                # not a valid id for this store
                return None
        doc = self.find_one({field: value})
        if doc is not None:
            self.doc_cache.set(cache_key, doc)
        return doc


__all__ = ["CaseMode", "IdentityLookupMixin"]
