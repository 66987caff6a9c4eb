"""Behaviour shared by SQL and document models.

A model owns a table or collection and is the
:class:`~recordspine.protocols.RecordStore` for the records it produces.
:class:`ModelCommon` holds what does not depend on the backend: known
fields and their defaults, record wrapping and the reserved-field policy
for caller-supplied update operators.

``known_fields`` is either a sequence of names (each defaulting to
``default_value``) or a mapping of name → default. A method decorated with
:func:`~recordspine.fields.field_default` computes the default for one
field::

    class UserModel(SQLModel):
        table = "users"
        known_fields = {"name": "", "roles": None}

        @field_default("roles")
        def _roles(self, default, declared):
            return []
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping, Sequence
from typing import TYPE_CHECKING, Any, ClassVar

from recordspine.fields import FieldHooks, collect_hooks
from recordspine.patch import MatchMode, remove_reserved
from recordspine.settings import get_settings

if TYPE_CHECKING:
    from recordspine.record import Record


class ModelCommon:
    """Mixin for models: known fields, record wrapping, reserved fields."""

    primary_key: str = "id"
    record_class: type[Record]

    known_fields: ClassVar[Sequence[str] | Mapping[str, Any]] = ()
    default_value: ClassVar[Any] = None

    reserved_fields: Sequence[str] | None = None
    reserved_match_mode: MatchMode | None = None
    reserved_fatal: bool | None = None
    reserved_log: bool | None = None

    _field_hooks: ClassVar[dict[str, FieldHooks]] = {}

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        cls._field_hooks = collect_hooks(cls)

    def _init_model(self, primary_key: str | None, record_class: type[Record] | None) -> None:
        if primary_key is not None:
            self.primary_key = primary_key
        if record_class is not None:
            self.record_class = record_class

        settings = get_settings()
        if self.reserved_match_mode is None:
            self.reserved_match_mode = settings.reserved_match_mode
        if self.reserved_fatal is None:
            self.reserved_fatal = settings.reserved_fatal
        if self.reserved_log is None:
            self.reserved_log = settings.reserved_log

    # -- Known fields -----------------------------------------------------

    def _known_items(self) -> Iterator[tuple[str, Any]]:
        if isinstance(self.known_fields, Mapping):
            yield from self.known_fields.items()
        else:
            for name in self.known_fields:
                yield name, self.default_value

    def is_known(self, name: str) -> bool:
        """True for the primary key and every known field."""
        if name == self.primary_key:
            return True
        return any(name == known for known, _ in self._known_items())

    def populate_known_fields(self, data: Mapping[str, Any]) -> dict[str, Any]:
        """Copy of *data* with every missing known field set to its default."""
        result = dict(data)
        for name, declared in self._known_items():
            if name in result:
                continue
            default = declared
            hooks = self._field_hooks.get(name)
            if hooks is not None and hooks.default is not None:
                default = hooks.default(self, default, declared)
            result[name] = default
        return result

    # -- Records ----------------------------------------------------------

    def wrap_row(self, row: Mapping[str, Any] | None) -> Record | None:
        """Wrap a fetched row/document into a record (``None`` stays ``None``)."""
        if row is None:
            return None
        return self.record_class(self, self.populate_known_fields(row), primary_key=self.primary_key)

    def new_record(self, data: Mapping[str, Any] | None = None) -> Record:
        """A fresh, unsaved record. ``None`` data gets the known-field defaults."""
        if data is not None:
            data = self.populate_known_fields(data)
        return self.record_class(self, data, primary_key=self.primary_key)

    # -- Reserved fields --------------------------------------------------

    def remove_reserved(self, ops: dict[str, Any]) -> dict[str, dict[str, Any]]:
        """Strip ``reserved_fields`` from update operators *ops* in place."""
        if not self.reserved_fields:
            return {}
        return remove_reserved(
            ops,
            self.reserved_fields,
            self.reserved_match_mode or MatchMode.PREFIX,
            fatal=bool(self.reserved_fatal),
            log=bool(self.reserved_log),
        )


__all__ = ["ModelCommon"]
