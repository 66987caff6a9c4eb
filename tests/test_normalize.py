"""Tests for write-outcome normalization."""

import pytest

from recordspine.normalize import acknowledged, deleted_count, is_deleted, new_count, new_id, new_ids, unwrap
from recordspine.outcomes import (
    BulkOutcome,
    DeleteOutcome,
    InsertManyOutcome,
    InsertOutcome,
    OutcomeKind,
    SaveReturn,
    UpdateOutcome,
)

UNACKNOWLEDGED = [
    InsertOutcome(acknowledged=False, inserted_id=1),
    InsertManyOutcome(acknowledged=False, inserted_ids=(1, 2)),
    UpdateOutcome(acknowledged=False, upserted_id=3),
    DeleteOutcome(acknowledged=False, deleted_count=4),
    BulkOutcome(acknowledged=False, inserted_ids=(5,), deleted_count=1),
]


class TestOutcomes:
    def test_kind_tags(self):
        assert InsertOutcome().kind is OutcomeKind.INSERT
        assert BulkOutcome().kind is OutcomeKind.BULK

    def test_frozen(self):
        with pytest.raises(AttributeError):
            InsertOutcome().inserted_id = 3

    def test_upserted_count(self):
        assert UpdateOutcome(upserted_id="x").upserted_count == 1
        assert UpdateOutcome().upserted_count == 0


class TestAcknowledged:
    def test_true(self):
        assert acknowledged(UpdateOutcome())

    def test_false_flag(self):
        assert not acknowledged(UpdateOutcome(acknowledged=False))

    @pytest.mark.parametrize("value", [None, {}, "ok", 1, object()])
    def test_foreign_values(self, value):
        assert acknowledged(value) is False

    def test_save_return_needs_flag(self):
        triple = SaveReturn(1, InsertOutcome(inserted_id=1), {})
        assert acknowledged(triple) is False
        assert acknowledged(triple, is_save=True) is True


class TestNewId:
    def test_insert(self):
        assert new_id(InsertOutcome(inserted_id=7)) == 7

    def test_update_upsert(self):
        assert new_id(UpdateOutcome(upserted_id="u1")) == "u1"

    def test_update_without_upsert(self):
        assert new_id(UpdateOutcome(matched_count=1)) is None
        assert new_id(UpdateOutcome(matched_count=1), multiple=True) == []

    def test_multiple_single(self):
        assert new_ids(InsertOutcome(inserted_id=7)) == [7]

    def test_insert_many(self):
        outcome = InsertManyOutcome(inserted_ids=(1, 2))
        assert new_id(outcome, multiple=True) == [1, 2]
        assert new_id(outcome) is None

    def test_bulk(self):
        outcome = BulkOutcome(inserted_ids=(1,), upserted_ids=(2, 3))
        assert new_ids(outcome) == [1, 2, 3]

    def test_delete_has_no_id(self):
        assert new_id(DeleteOutcome(deleted_count=1)) is None

    def test_unwraps_save_return(self):
        assert new_id(SaveReturn(1, InsertOutcome(inserted_id="n"), {"_id": "n"})) == "n"

    @pytest.mark.parametrize("outcome", UNACKNOWLEDGED)
    def test_unacknowledged(self, outcome):
        assert new_id(outcome) is None
        assert new_ids(outcome) == []

    def test_none(self):
        assert new_id(None) is None
        assert new_ids(None) == []


class TestNewCount:
    def test_upserted_update(self):
        assert new_count(UpdateOutcome(upserted_id="x", modified_count=0)) == 1

    def test_plain_update(self):
        assert new_count(UpdateOutcome(matched_count=1, modified_count=1)) == 0

    def test_insert_variants(self):
        assert new_count(InsertOutcome(inserted_id=1)) == 1
        assert new_count(InsertManyOutcome(inserted_ids=(1, 2, 3))) == 3
        assert new_count(BulkOutcome(inserted_ids=(1,), upserted_ids=(2,))) == 2

    @pytest.mark.parametrize("outcome", UNACKNOWLEDGED)
    def test_unacknowledged(self, outcome):
        assert new_count(outcome) == 0

    def test_none(self):
        assert new_count(None) == 0


class TestDeletedCount:
    def test_delete(self):
        assert deleted_count(DeleteOutcome(deleted_count=2)) == 2
        assert is_deleted(DeleteOutcome(deleted_count=2))

    def test_bulk(self):
        assert deleted_count(BulkOutcome(deleted_count=4)) == 4

    def test_not_applicable(self):
        assert deleted_count(InsertOutcome(inserted_id=1)) == 0
        assert not is_deleted(UpdateOutcome())

    def test_nothing_deleted(self):
        assert not is_deleted(DeleteOutcome(deleted_count=0))

    @pytest.mark.parametrize("outcome", UNACKNOWLEDGED)
    def test_unacknowledged(self, outcome):
        assert deleted_count(outcome) == 0
        assert is_deleted(outcome) is False


class TestUnwrap:
    def test_outcome_passes_through(self):
        outcome = DeleteOutcome()
        assert unwrap(outcome) is outcome

    def test_tuple_without_flag(self):
        assert unwrap((0, DeleteOutcome(), {})) is None

    def test_foreign(self):
        assert unwrap({"acknowledged": True}) is None
