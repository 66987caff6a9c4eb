"""
Identity cache for fetched documents.

Models that look documents up by a natural identity (a username, a
``(tenant, slug)`` pair, ...) keep what they found in a
:class:`CacheBackend`. The default :class:`InMemoryCache` lives as long as
the model that owns it.

Architecture:
    ::

        CacheBackend (Protocol)
        └── InMemoryCache   OrderedDict of key → _Entry(value, expires_at)
                            max_size evicts the least recently read key
                            ttl uses time.monotonic()

Guardrails:
    ❌ DON'T: Expect cached documents to reflect later writes
    ✅ DO: Call ``clear()`` (or ``delete(key)``) after writing through
       another path when a fresh read matters

Tags:
    cache, identity-lookup, in-memory, recordspine

Doc-Types:
    - API Reference
"""

from __future__ import annotations

import time
from collections import OrderedDict
from collections.abc import Hashable
from typing import Any, NamedTuple, Protocol


class CacheBackend(Protocol):
    """Where an identity lookup keeps documents it already found."""

    def get(self, key: Hashable) -> Any | None:
        """The cached value, or ``None`` when missing or expired."""
        ...

    def set(self, key: Hashable, value: Any, *, ttl_seconds: float | None = None) -> None: ...

    def delete(self, key: Hashable) -> None: ...

    def exists(self, key: Hashable) -> bool: ...

    def clear(self) -> None: ...


class _Entry(NamedTuple):
    value: Any
    expires_at: float | None


class InMemoryCache:
    """Dict-backed cache with an optional size bound and optional expiry.

    Without ``max_size`` and ``default_ttl_seconds`` nothing is ever
    evicted; entries leave only through ``delete`` or ``clear``.

    Example:
        cache = InMemoryCache(max_size=500)
        cache.set(("acme", "alice"), {"_id": "u1", "name": "alice"})
        cache.get(("acme", "alice"))
    """

    def __init__(self, *, max_size: int | None = None, default_ttl_seconds: float | None = None):
        self._entries: OrderedDict[Hashable, _Entry] = OrderedDict()
        self.max_size = max_size
        self.default_ttl_seconds = default_ttl_seconds

    def _live(self, key: Hashable) -> _Entry | None:
        """The entry for *key*, dropping it first if it has expired."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.expires_at is not None and time.monotonic() > entry.expires_at:
            del self._entries[key]
            return None
        return entry

    def get(self, key: Hashable) -> Any | None:
        entry = self._live(key)
        if entry is None:
            return None
        self._entries.move_to_end(key)
        return entry.value

    def set(self, key: Hashable, value: Any, *, ttl_seconds: float | None = None) -> None:
        ttl = self.default_ttl_seconds if ttl_seconds is None else ttl_seconds
        expires_at = time.monotonic() + ttl if ttl else None

        full = self.max_size is not None and len(self._entries) >= self.max_size
        if full and key not in self._entries and self._entries:
            self._entries.popitem(last=False)

        self._entries[key] = _Entry(value, expires_at)
        self._entries.move_to_end(key)

    def delete(self, key: Hashable) -> None:
        self._entries.pop(key, None)

    def exists(self, key: Hashable) -> bool:
        return self._live(key) is not None

    def clear(self) -> None:
        self._entries.clear()

    def size(self) -> int:
        """Number of stored keys, expired ones included until next touched."""
        return len(self._entries)


__all__ = ["CacheBackend", "InMemoryCache"]
