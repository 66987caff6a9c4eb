"""Records bound to a :class:`~recordspine.documents.model.DocumentModel`."""

from __future__ import annotations

from typing import Any

from recordspine.documents.ids import id_string
from recordspine.record import Record


class DocumentRecord(Record):
    """One document. The primary key ``_id`` is generated by the collection.

    Update operators can be applied directly with :meth:`save_updates`::

        user.save_updates({"$inc": {"logins": 1}, "$currentDate": {"seen": True}})

    When the model declares ``reserved_fields`` they are stripped (or
    rejected, in fatal mode) before the update is sent.
    """

    primary_key = "_id"
    auto_generated_pk = True

    def id_string(self) -> str | None:
        """The primary-key value as a string, or ``None`` for a new document."""
        key = self.id
        return None if key is None else id_string(key, self.primary_key)

    def to_dict(self, id_strings: bool = False) -> dict[str, Any]:
        """Shallow copy of the document; *id_strings* stringifies the primary key."""
        data = super().to_dict()
        if id_strings and data.get(self.primary_key) is not None:
            data[self.primary_key] = id_string(data[self.primary_key], self.primary_key)
        return data


__all__ = ["DocumentRecord"]
