"""Differential save for records.

:func:`save_record` decides between insert and update and sends the
smallest payload that brings storage up to date:

- **Update** when the primary key is present in the record's data and has
  not itself been modified. Only the tracked fields (minus the primary key)
  are sent, with their *current* values. With nothing tracked the save is
  skipped and reports :attr:`SaveStatus.NO_CHANGE`. ``save_all`` sends the
  whole snapshot as a replace instead.
- **Insert** otherwise. The full snapshot is sent and the new id reported
  by the store is written back into the primary-key field.

:func:`save_updates` sends caller-supplied update operators as-is (after
reserved-field sanitizing), :func:`replace_data` swaps in a whole new
document, and :func:`delete_record` removes the record.

Return values follow one precedence rule: ``return_boolean`` wins over
``return_new_id``, which wins over the raw write outcome.

Examples:
    >>> user = users.get_by_id(5)          # {"id": 5, "name": "old"}
    >>> user["name"] = "new"
    >>> user.modified_fields
    mappingproxy({'name': 'old'})
    >>> user.save(return_boolean=True)     # UPDATE users SET name = ... WHERE id = 5
    True
    >>> user.save()
    <SaveStatus.NO_CHANGE: 'no_change'>
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel

from recordspine.errors import InvalidDataError, NewDocumentError
from recordspine.logging import get_logger
from recordspine.normalize import acknowledged, is_deleted, new_id
from recordspine.patch import UPDATE_OPERATORS

if TYPE_CHECKING:
    from recordspine.record import Record

logger = get_logger(__name__)


class SaveStatus(str, Enum):
    """What the last save of a record did."""

    NO_CHANGE = "no_change"  # update with nothing tracked; storage untouched
    SUCCESS = "success"
    FAILURE = "failure"      # the store did not acknowledge the write


@dataclass
class SaveOptions:
    """Options for :func:`save_record`.

    ``None`` for ``return_boolean`` / ``return_new_id`` means "use the
    record class default" (``save_return_boolean`` / ``save_return_new_id``).
    """

    primary_key: str | None = None
    save_all: bool = False
    return_boolean: bool | None = None
    return_new_id: bool | None = None
    update_operator: str = "$set"


def _finish(record: Record, ok: bool) -> None:
    record.last_save_status = SaveStatus.SUCCESS if ok else SaveStatus.FAILURE


def save_record(record: Record, options: SaveOptions | None = None) -> Any:
    """Insert or update *record* through its model.

    Returns:
        With ``return_boolean``: whether the write was acknowledged (``True``
        for a skipped no-change save). With ``return_new_id``: the new id
        (``None`` for updates without an upsert). Otherwise the raw write
        outcome, or :attr:`SaveStatus.NO_CHANGE` for a skipped save.
    """
    options = options or SaveOptions()
    pk = options.primary_key or record.primary_key
    store = record.model
    data = record._data
    modified = record._modified
    record_type = type(record).__name__

    return_boolean = record.save_return_boolean if options.return_boolean is None else options.return_boolean
    return_new_id = record.save_return_new_id if options.return_new_id is None else options.return_new_id

    if data.get(pk) is not None and pk not in modified:
        key = data[pk]

        if options.save_all:
            outcome = store.replace(key, data)
            ok = acknowledged(outcome)
            if ok and record.clear_on_update:
                modified.clear()
            _finish(record, ok)
            logger.debug("record_replaced", record_type=record_type, key=key, acknowledged=ok)
        else:
            if not modified:
                record.last_save_status = SaveStatus.NO_CHANGE
                logger.debug("save_skipped_no_changes", record_type=record_type, key=key)
                if return_boolean:
                    return True
                if return_new_id:
                    return None
                return SaveStatus.NO_CHANGE

            changes = {field: data.get(field) for field in modified if field != pk}
            outcome = store.update(key, changes, options.update_operator)
            ok = acknowledged(outcome)
            if ok and record.clear_on_update:
                modified.clear()
            _finish(record, ok)
            logger.debug(
                "record_updated",
                record_type=record_type,
                key=key,
                fields=sorted(changes),
                acknowledged=ok,
            )

        if return_boolean:
            return ok
        if return_new_id:
            return new_id(outcome)
        return outcome

    outcome = store.insert(data)
    ok = acknowledged(outcome)
    created = new_id(outcome)
    if created is not None:
        data[pk] = created
    if ok and record.clear_on_insert:
        modified.clear()
    _finish(record, ok)
    logger.debug("record_inserted", record_type=record_type, key=created, acknowledged=ok)

    if return_boolean:
        return ok
    if return_new_id:
        return created
    return outcome


def _copy_ops(ops: Mapping[str, Any]) -> dict[str, Any]:
    return {op: dict(fields) if isinstance(fields, Mapping) else fields for op, fields in ops.items()}


def save_updates(
    record: Record,
    ops: Mapping[str, Any],
    *,
    refresh: bool = True,
    on_updated: Callable[[Any, Record, dict[str, Any]], Any] | None = None,
    return_boolean: bool = False,
) -> Any:
    """Apply update operators (``{"$inc": {"hits": 1}}``) to a stored record.

    The operators are copied, then stripped of reserved fields when the
    model declares any. On an acknowledged write the tracked changes are
    cleared (per ``clear_on_update``), the record is reloaded when
    *refresh* is set, and ``on_updated(outcome, record, ops)`` is called.

    Raises:
        InvalidDataError: If *ops* is not a mapping, or has a key that
            is not a known update operator with a mapping of fields.
        NewDocumentError: If the record has no primary-key value.
    """
    record_type = type(record).__name__
    if not isinstance(ops, Mapping):
        raise InvalidDataError(
            f"Update operators must be a mapping, got {type(ops).__name__}"
        ).with_context(record_type=record_type, operation="save_updates")
    invalid = [op for op, fields in ops.items() if op not in UPDATE_OPERATORS or not isinstance(fields, Mapping)]
    if invalid:
        raise InvalidDataError(
            f"Not update operators: {', '.join(map(str, invalid))}"
        ).with_context(record_type=record_type, operation="save_updates")

    key = record._data.get(record.primary_key)
    if key is None:
        raise NewDocumentError("save_updates() needs a record that is already stored").with_context(
            record_type=record_type, operation="save_updates"
        )

    store = record.model
    ops = _copy_ops(ops)
    if store.reserved_fields:
        store.remove_reserved(ops)

    if not ops:
        record.last_save_status = SaveStatus.NO_CHANGE
        logger.debug("save_skipped_no_changes", record_type=record_type, key=key)
        return True if return_boolean else SaveStatus.NO_CHANGE

    outcome = store.patch(key, ops)
    ok = acknowledged(outcome)
    _finish(record, ok)
    logger.debug("record_patched", record_type=record_type, key=key, operators=sorted(ops), acknowledged=ok)

    if ok:
        if record.clear_on_update:
            record._modified.clear()
        if refresh:
            record.refresh()
        if on_updated is not None:
            on_updated(outcome, record, ops)

    if return_boolean:
        return ok
    return outcome


def _as_document(document: Any) -> dict[str, Any]:
    from recordspine.record import Record

    if isinstance(document, Record):
        return document.to_dict()
    if isinstance(document, BaseModel):
        return document.model_dump()
    if isinstance(document, Mapping):
        return dict(document)
    raise InvalidDataError(f"Cannot use {type(document).__name__} as a document")


def replace_data(record: Record, document: Any, *, return_boolean: bool = False) -> Any:
    """Replace the stored document of *record* with *document*.

    The record's primary-key value is carried over into the new document.
    On an acknowledged write the record holds the new data and its tracked
    changes are cleared.

    Raises:
        InvalidDataError: If *document* is not a mapping, record or
            pydantic model.
        NewDocumentError: If the record has no primary-key value.
    """
    record_type = type(record).__name__
    try:
        doc = _as_document(document)
    except InvalidDataError as e:
        raise e.with_context(record_type=record_type, operation="replace_data")

    pk = record.primary_key
    key = record._data.get(pk)
    if key is None:
        raise NewDocumentError("replace_data() needs a record that is already stored").with_context(
            record_type=record_type, operation="replace_data"
        )
    doc[pk] = key

    outcome = record.model.replace(key, doc)
    ok = acknowledged(outcome)
    _finish(record, ok)
    if ok:
        record._data = doc
        record._modified.clear()
    logger.debug("record_replaced", record_type=record_type, key=key, acknowledged=ok)

    if return_boolean:
        return ok
    return outcome


def delete_record(record: Record, return_boolean: bool | None = None) -> Any:
    """Delete *record* from its model.

    Raises:
        NewDocumentError: If the record has no primary-key value.
    """
    record_type = type(record).__name__
    if return_boolean is None:
        return_boolean = record.delete_return_boolean

    key = record._data.get(record.primary_key)
    if key is None:
        raise NewDocumentError("delete() needs a record that is already stored").with_context(
            record_type=record_type, operation="delete"
        )

    outcome = record.model.delete_id(key)
    deleted = is_deleted(outcome)
    logger.debug("record_deleted", record_type=record_type, key=key, deleted=deleted)

    if return_boolean:
        return deleted
    return outcome


__all__ = [
    "SaveStatus",
    "SaveOptions",
    "save_record",
    "save_updates",
    "replace_data",
    "delete_record",
]
