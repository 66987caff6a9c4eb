"""Per-field accessor hooks for records and models.

Record classes customise individual fields by decorating methods::

    class User(SQLRecord):
        @field_getter("name")
        def _name(self):
            return self.raw("name").title()

        @field_setter("name")
        def _set_name(self, value):
            self.store("name", value.strip())

The hook table is built once per class in ``__init_subclass__`` (see
:func:`collect_hooks`); lookups at runtime are a single dict access.

Hook signatures:

=================  ==============================================
``field_getter``   ``(self) -> value``
``field_setter``   ``(self, value) -> None``
``field_checker``  ``(self) -> bool`` (replaces :meth:`Record.has`)
``field_clearer``  ``(self) -> None`` (replaces :meth:`Record.unset`)
``field_default``  ``(self, default, declared) -> value`` (models only)
=================  ==============================================
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

_HOOK_ATTR = "__recordspine_field_hooks__"


@dataclass
class FieldHooks:
    """Callables registered for one field name."""

    getter: Callable[..., Any] | None = None
    setter: Callable[..., Any] | None = None
    checker: Callable[..., Any] | None = None
    clearer: Callable[..., Any] | None = None
    default: Callable[..., Any] | None = None


def _hook(kind: str, name: str) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    def decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
        registered = list(getattr(fn, _HOOK_ATTR, ()))
        registered.append((kind, name))
        setattr(fn, _HOOK_ATTR, registered)
        return fn

    return decorator


def field_getter(name: str) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Mark a method as the getter for field *name*."""
    return _hook("getter", name)


def field_setter(name: str) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Mark a method as the setter for field *name*."""
    return _hook("setter", name)


def field_checker(name: str) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Mark a method as the presence check for field *name*."""
    return _hook("checker", name)


def field_clearer(name: str) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Mark a method as the clear/unset handler for field *name*."""
    return _hook("clearer", name)


def field_default(name: str) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Mark a model method as the default-value provider for field *name*."""
    return _hook("default", name)


def collect_hooks(cls: type) -> dict[str, FieldHooks]:
    """Build the hook table for *cls*.

    Walks the MRO from the most basic class down so that a subclass hook
    replaces an inherited hook of the same kind for the same field.
    """
    table: dict[str, FieldHooks] = {}
    for klass in reversed(cls.__mro__):
        for attr in vars(klass).values():
            fn = attr.__func__ if isinstance(attr, (staticmethod, classmethod)) else attr
            for kind, name in getattr(fn, _HOOK_ATTR, ()):
                setattr(table.setdefault(name, FieldHooks()), kind, fn)
    return table


__all__ = [
    "FieldHooks",
    "field_getter",
    "field_setter",
    "field_checker",
    "field_clearer",
    "field_default",
    "collect_hooks",
]
