"""Document path: collection-bound models, lazy results, identity lookups."""

from recordspine.documents.ids import id_string, is_same
from recordspine.documents.lookup import CaseMode, IdentityLookupMixin
from recordspine.documents.memory import MemoryCollection
from recordspine.documents.model import DocumentModel
from recordspine.documents.record import DocumentRecord
from recordspine.documents.results import DocumentResults

__all__ = [
    "CaseMode",
    "DocumentModel",
    "DocumentRecord",
    "DocumentResults",
    "IdentityLookupMixin",
    "MemoryCollection",
    "id_string",
    "is_same",
]
