"""Dirty-tracking record over one row or document.

A :class:`Record` wraps the current known state of one stored entity and
remembers, for every field changed since the last save, the value it had
*before the first change*. That single prior value is what
:meth:`Record.restore_field` and :meth:`Record.undo_all` put back, and the
set of tracked names is what the differential save turns into a change-set.

Architecture::

    caller ──get/set/has/unset──▶ Record ──save()──▶ saving.save_record
                                   │                        │
                                   │ resolve_field          ▼
                                   │  data key? alias?   RecordStore
                                   │  pk? known? virtual?  (SQLModel,
                                   │  else policy          DocumentModel)
                                   ▼
                                 _data  +  _modified {field: prior value}

Field name resolution order: existing storage key, alias, primary key,
field known to the model, virtual field. Anything else is unknown and
handled by the record's policy: ``strict_keys`` raises
:class:`~recordspine.errors.UnknownFieldError`, otherwise ``warn_keys``
logs ``unknown_field`` and ``null_keys`` makes the name resolve to nothing
(``get`` returns ``None``, ``has`` returns ``False``, ``set``/``unset`` do
nothing). With neither flag the name passes through unchanged.

Policies are class attributes. ``strict_keys``, ``warn_keys`` and
``null_keys`` left at ``None`` are filled in from
:func:`~recordspine.settings.get_settings` when the record is built.

A record is meant for one owner at a time; the undo slots and the batch
slot are not safe for concurrent use.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, ClassVar

from pydantic import BaseModel

from recordspine.errors import ConstructionError, ImmutableKeyError, UnknownFieldError
from recordspine.fields import FieldHooks, collect_hooks
from recordspine.logging import get_logger
from recordspine.settings import get_settings

if TYPE_CHECKING:
    from recordspine.protocols import RecordStore
    from recordspine.saving import SaveStatus

logger = get_logger(__name__)


class Record:
    """One row or document with per-field change tracking.

    Args:
        model: The :class:`~recordspine.protocols.RecordStore` that owns
            this record. Required.
        data: Initial storage data (mapping, pydantic model or ``None`` for
            :meth:`default_data`).
        primary_key: Overrides the class-level ``primary_key``.

    Raises:
        ConstructionError: If *model* is missing or *data* is not a mapping.
    """

    primary_key: str = "id"
    auto_generated_pk: ClassVar[bool] = True

    auto_save: bool = False
    clear_on_update: ClassVar[bool] = True
    clear_on_insert: ClassVar[bool] = True

    strict_keys: bool | None = None
    warn_keys: bool | None = None
    null_keys: bool | None = None

    aliases: ClassVar[Mapping[str, str]] = {}
    virtual_fields: ClassVar[frozenset[str] | set[str] | tuple[str, ...]] = ()

    save_return_boolean: ClassVar[bool] = False
    save_return_new_id: ClassVar[bool] = False
    delete_return_boolean: ClassVar[bool] = False

    _field_hooks: ClassVar[dict[str, FieldHooks]] = {}

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        cls._field_hooks = collect_hooks(cls)

    def __init__(
        self,
        model: RecordStore | None,
        data: Mapping[str, Any] | BaseModel | None = None,
        *,
        primary_key: str | None = None,
    ) -> None:
        if model is None:
            raise ConstructionError(
                f"{type(self).__name__} needs the model that owns it"
            ).with_context(record_type=type(self).__name__, operation="construct")

        self.model = model
        if primary_key is not None:
            self.primary_key = primary_key

        settings = get_settings()
        if self.strict_keys is None:
            self.strict_keys = settings.strict_fields
        if self.warn_keys is None:
            self.warn_keys = settings.warn_unknown_fields
        if self.null_keys is None:
            self.null_keys = settings.null_unknown_fields

        self._modified: dict[str, Any] = {}
        self._saved_auto_save: bool | None = None
        self.last_save_status: SaveStatus | None = None

        if data is None:
            data = self.default_data()
        data = self.init_data(data)
        if isinstance(data, BaseModel):
            data = data.model_dump()
        if not isinstance(data, Mapping):
            raise ConstructionError(
                f"Record data must be a mapping, got {type(data).__name__}"
            ).with_context(record_type=type(self).__name__, operation="construct")
        self._data: dict[str, Any] = dict(data)

    # -- Construction hooks -----------------------------------------------

    def default_data(self) -> dict[str, Any]:
        """Initial data for a record built without any.

        Uses the model's known-field defaults when it declares them.
        """
        populate = getattr(self.model, "populate_known_fields", None)
        return populate({}) if populate is not None else {}

    def init_data(self, data: Any) -> Any:
        """Transform the initial data before it is stored. Identity by default."""
        return data

    # -- Field resolution -------------------------------------------------

    def resolve_field(self, name: str, strict: bool | None = None) -> str | None:
        """Map a logical field name to its storage key.

        Returns ``None`` when the name is unknown and the null policy is on.

        Raises:
            UnknownFieldError: When the name is unknown and the record (or
                the *strict* override) is strict.
        """
        if name in self._data:
            return name
        if name in self.aliases:
            return self.aliases[name]
        if name == self.primary_key:
            return name
        if self.model.is_known(name):
            return name
        if name in self.virtual_fields:
            return name

        if strict is None:
            strict = self.strict_keys
        if strict:
            raise UnknownFieldError(f"Unknown field '{name}'").with_context(
                record_type=type(self).__name__, field=name
            )
        if self.warn_keys:
            logger.warning("unknown_field", field=name, record_type=type(self).__name__)
        if self.null_keys:
            return None
        return name

    def _hooks(self, name: str, resolved: str | None) -> FieldHooks | None:
        hooks = self._field_hooks.get(name)
        if hooks is None and resolved is not None and resolved != name:
            hooks = self._field_hooks.get(resolved)
        return hooks

    # -- Field access -----------------------------------------------------

    def get(self, name: str) -> Any:
        """Current value of a field (through its getter hook, if any)."""
        resolved = self.resolve_field(name)
        hooks = self._hooks(name, resolved)
        if hooks is not None and hooks.getter is not None:
            return hooks.getter(self)
        if resolved is None:
            return None
        return self._data.get(resolved)

    def set(self, name: str, value: Any) -> None:
        """Assign a field, tracking its prior value.

        Raises:
            ImmutableKeyError: When assigning an auto-generated primary key.
        """
        resolved = self.resolve_field(name)
        if resolved is None:
            return

        if resolved == self.primary_key:
            if self.auto_generated_pk:
                raise ImmutableKeyError(
                    f"Cannot overwrite auto-generated primary key '{resolved}'"
                ).with_context(record_type=type(self).__name__, field=resolved, operation="set")
            if self._data.get(resolved) is None:
                self._data[resolved] = True

        tracked = resolved not in self.virtual_fields
        if tracked:
            self._mark(resolved)

        hooks = self._hooks(name, resolved)
        if hooks is not None and hooks.setter is not None:
            hooks.setter(self, value)
        else:
            self._data[resolved] = value

        if tracked:
            self._prune(resolved)
        if self.auto_save:
            self.save()

    def has(self, name: str) -> bool:
        """True iff the field holds a value other than ``None`` or ``""``."""
        resolved = self.resolve_field(name, strict=False)
        hooks = self._hooks(name, resolved)
        if hooks is not None and hooks.checker is not None:
            return bool(hooks.checker(self))
        if resolved is None:
            return False
        value = self._data.get(resolved)
        return value is not None and not (isinstance(value, str) and value == "")

    def unset(self, name: str) -> None:
        """Set a field to ``None``, tracking its prior value."""
        resolved = self.resolve_field(name)
        hooks = self._hooks(name, resolved)
        if hooks is not None and hooks.clearer is not None:
            hooks.clearer(self)
            return
        if resolved is None:
            return

        tracked = resolved not in self.virtual_fields
        if tracked:
            self._mark(resolved)
        self._data[resolved] = None
        if tracked:
            self._prune(resolved)
        if self.auto_save:
            self.save()

    clear = unset

    def raw(self, key: str, default: Any = None) -> Any:
        """Read a storage key directly, bypassing resolution and hooks."""
        return self._data.get(key, default)

    def store(self, key: str, value: Any) -> None:
        """Write a storage key directly, bypassing resolution, hooks and tracking."""
        self._data[key] = value

    # -- Change tracking --------------------------------------------------

    def _mark(self, key: str) -> None:
        # First write wins: later writes keep the original undo value.
        if key not in self._modified:
            self._modified[key] = self._data.get(key)

    def _prune(self, key: str) -> None:
        if key in self._modified and key in self._data and self._data[key] == self._modified[key]:
            del self._modified[key]

    @property
    def modified_fields(self) -> Mapping[str, Any]:
        """Read-only view of ``{storage key: prior value}``."""
        return MappingProxyType(self._modified)

    def is_modified(self, name: str) -> bool:
        resolved = self.resolve_field(name, strict=False)
        return resolved is not None and resolved in self._modified

    def clear_modified(self) -> None:
        """Forget every tracked change. Undo is impossible afterwards."""
        self._modified.clear()

    def restore_field(self, name: str) -> None:
        """Put back the value a field had before its first tracked change."""
        resolved = self.resolve_field(name)
        if resolved is not None and resolved in self._modified:
            self._data[resolved] = self._modified.pop(resolved)

    def undo_all(self) -> None:
        """Restore every tracked field and clear the tracking."""
        for key, value in self._modified.items():
            self._data[key] = value
        self._modified.clear()

    # -- Batch mode -------------------------------------------------------

    def begin_batch(self) -> None:
        """Suspend auto-save.

        The previous setting is kept in one slot; a second ``begin_batch``
        before ending the first overwrites it.
        """
        self._saved_auto_save = self.auto_save
        self.auto_save = False

    def end_batch(self) -> None:
        """Restore auto-save and save if it is now on."""
        if self._saved_auto_save is not None:
            self.auto_save = self._saved_auto_save
        if self.auto_save:
            self.save()

    def cancel_batch(self) -> None:
        """Undo every tracked change and restore auto-save without saving."""
        self.undo_all()
        if self._saved_auto_save is not None:
            self.auto_save = self._saved_auto_save

    @contextmanager
    def batch(self) -> Iterator[Record]:
        """Run a block in batch mode; an exception cancels the batch.

        Example::

            with user.batch():
                user["name"] = "Bob"
                user["email"] = "bob@example.com"
        """
        self.begin_batch()
        try:
            yield self
        except BaseException:
            self.cancel_batch()
            raise
        self.end_batch()

    # -- Persistence ------------------------------------------------------

    def save(
        self,
        *,
        save_all: bool = False,
        return_boolean: bool | None = None,
        return_new_id: bool | None = None,
        primary_key: str | None = None,
        update_operator: str = "$set",
    ) -> Any:
        """Insert or update this record. See :func:`recordspine.saving.save_record`."""
        from recordspine.saving import SaveOptions, save_record

        return save_record(
            self,
            SaveOptions(
                primary_key=primary_key,
                save_all=save_all,
                return_boolean=return_boolean,
                return_new_id=return_new_id,
                update_operator=update_operator,
            ),
        )

    def save_updates(
        self,
        ops: Mapping[str, Any],
        *,
        refresh: bool = True,
        on_updated: Any = None,
        return_boolean: bool = False,
    ) -> Any:
        """Apply update operators directly. See :func:`recordspine.saving.save_updates`."""
        from recordspine.saving import save_updates

        return save_updates(
            self, ops, refresh=refresh, on_updated=on_updated, return_boolean=return_boolean
        )

    def replace_data(self, document: Any, *, return_boolean: bool = False) -> Any:
        """Replace the stored document. See :func:`recordspine.saving.replace_data`."""
        from recordspine.saving import replace_data

        return replace_data(self, document, return_boolean=return_boolean)

    def delete(self, return_boolean: bool | None = None) -> Any:
        """Delete this record from its store."""
        from recordspine.saving import delete_record

        return delete_record(self, return_boolean=return_boolean)

    def refresh(self) -> bool:
        """Reload storage data from the store. Tracked changes are kept."""
        key = self._data.get(self.primary_key)
        if key is None:
            return False
        data = self.model.fetch_id(key)
        if data is None:
            return False
        self._data = dict(data)
        return True

    # -- Introspection ----------------------------------------------------

    @property
    def id(self) -> Any:
        """The primary-key value, or ``None`` for an unsaved record."""
        return self._data.get(self.primary_key)

    def column_names(self) -> list[str]:
        """Storage keys currently held."""
        return list(self._data)

    def to_dict(self) -> dict[str, Any]:
        """Shallow copy of the storage data."""
        return dict(self._data)

    # -- Index sugar ------------------------------------------------------

    def __getitem__(self, name: str) -> Any:
        return self.get(name)

    def __setitem__(self, name: str, value: Any) -> None:
        self.set(name, value)

    def __delitem__(self, name: str) -> None:
        self.unset(name)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.has(name)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._data!r})"


__all__ = ["Record"]
