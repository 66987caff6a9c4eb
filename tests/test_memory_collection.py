"""Tests for the in-process document collection."""

from datetime import datetime

import pytest

from recordspine.documents.memory import MemoryCollection, apply_update, matches
from recordspine.errors import InvalidDataError, QueryError


@pytest.fixture
def people() -> MemoryCollection:
    return MemoryCollection(
        "people",
        [
            {"_id": 1, "name": "ann", "age": 30, "tags": ["a", "b"], "address": {"city": "Oslo"}},
            {"_id": 2, "name": "bob", "age": 17, "tags": ["b"]},
            {"_id": 3, "name": "cid", "age": 45, "address": {"city": "Rome"}},
        ],
    )


class TestFilters:
    def test_equality(self):
        assert matches({"a": 1}, {"a": 1})
        assert not matches({"a": 1}, {"a": 2})

    def test_missing_field_equals_none(self):
        assert matches({}, {"a": None})

    def test_list_contains(self):
        assert matches({"tags": ["x", "y"]}, {"tags": "y"})
        assert matches({"tags": ["x", "y"]}, {"tags": ["x", "y"]})

    def test_dotted_path(self):
        assert matches({"address": {"city": "Oslo"}}, {"address.city": "Oslo"})
        assert matches({"items": [{"n": 1}]}, {"items.0.n": 1})

    def test_conditions(self):
        doc = {"age": 30}
        assert matches(doc, {"age": {"$gt": 20, "$lte": 30}})
        assert matches(doc, {"age": {"$in": [1, 30]}})
        assert matches(doc, {"age": {"$nin": [1, 2]}})
        assert matches(doc, {"age": {"$ne": 31}})
        assert matches(doc, {"age": {"$exists": True}, "nope": {"$exists": False}})
        assert not matches(doc, {"nope": {"$gt": 1}})

    def test_incomparable_types(self):
        assert not matches({"age": "thirty"}, {"age": {"$gt": 1}})

    def test_and_or(self):
        doc = {"a": 1, "b": 2}
        assert matches(doc, {"$or": [{"a": 9}, {"b": 2}]})
        assert not matches(doc, {"$and": [{"a": 1}, {"b": 3}]})

    def test_unknown_operator(self):
        with pytest.raises(QueryError):
            matches({"a": 1}, {"a": {"$regex": "x"}})


class TestFind:
    def test_find_all(self, people):
        assert [doc["_id"] for doc in people.find()] == [1, 2, 3]

    def test_sort_skip_limit(self, people):
        found = people.find({}, sort=[("age", -1)], skip=1, limit=1)
        assert [doc["name"] for doc in found] == ["ann"]

    def test_sort_forms(self, people):
        assert [d["_id"] for d in people.find(sort="age")] == [2, 1, 3]
        assert [d["_id"] for d in people.find(sort={"name": -1})] == [3, 2, 1]

    def test_missing_values_sort_first(self, people):
        assert [d["_id"] for d in people.find(sort="address.city")] == [2, 1, 3]

    def test_returns_copies(self, people):
        doc = people.find_one({"_id": 1})
        doc["tags"].append("z")
        assert people.find_one({"_id": 1})["tags"] == ["a", "b"]

    def test_find_one_missing(self, people):
        assert people.find_one({"name": "nobody"}) is None

    def test_count(self, people):
        assert people.count() == 3
        assert people.count({"tags": "b"}) == 2
        assert people.count({}, skip=1, limit=1) == 1
        assert len(people) == 3


class TestInsert:
    def test_generated_id(self):
        coll = MemoryCollection(id_factory=lambda: "fixed")
        outcome = coll.insert({"name": "x"})
        assert outcome.inserted_id == "fixed"
        assert coll.find_one({"_id": "fixed"})["name"] == "x"

    def test_default_ids_are_hex(self):
        outcome = MemoryCollection().insert({})
        assert len(outcome.inserted_id) == 32

    def test_duplicate_id(self, people):
        with pytest.raises(InvalidDataError):
            people.insert({"_id": 1})

    def test_insert_does_not_mutate_input(self):
        doc = {"name": "x"}
        MemoryCollection().insert(doc)
        assert doc == {"name": "x"}

    def test_insert_many(self):
        coll = MemoryCollection()
        outcome = coll.insert_many([{"_id": "a"}, {"_id": "b"}])
        assert outcome.inserted_ids == ("a", "b")
        assert repr(coll) == "MemoryCollection('documents', 2 documents)"


class TestReplaceOrUpdate:
    def test_replace(self, people):
        outcome = people.replace_or_update({"_id": 2}, {"name": "robert"})
        assert (outcome.matched_count, outcome.modified_count) == (1, 1)
        assert people.find_one({"_id": 2}) == {"_id": 2, "name": "robert"}

    def test_identical_replace_not_modified(self, people):
        doc = people.find_one({"_id": 2})
        assert people.replace_or_update({"_id": 2}, doc).modified_count == 0

    def test_update_operators(self, people):
        people.replace_or_update({"_id": 1}, {"$inc": {"age": 1}, "$set": {"address.zip": "0150"}})
        doc = people.find_one({"_id": 1})
        assert doc["age"] == 31
        assert doc["address"] == {"city": "Oslo", "zip": "0150"}

    def test_no_match(self, people):
        outcome = people.replace_or_update({"_id": 99}, {"$set": {"a": 1}})
        assert outcome.matched_count == 0
        assert outcome.upserted_id is None
        assert len(people) == 3

    def test_upsert_with_operators(self, people):
        outcome = people.replace_or_update(
            {"_id": 9, "age": {"$gt": 1}}, {"$set": {"name": "new"}, "$setOnInsert": {"created": True}}, upsert=True
        )
        assert outcome.upserted_id == 9
        assert people.find_one({"_id": 9}) == {"_id": 9, "name": "new", "created": True}

    def test_upsert_with_document(self, people):
        outcome = people.replace_or_update({"_id": "n"}, {"name": "doc"}, upsert=True)
        assert outcome.upserted_count == 1
        assert people.find_one({"_id": "n"}) == {"_id": "n", "name": "doc"}

    def test_replacement_with_operator_keys(self, people):
        with pytest.raises(InvalidDataError):
            people.replace_or_update({"_id": 2}, {"$sett": {"name": "x"}})
        with pytest.raises(InvalidDataError):
            people.replace_or_update({"_id": "new"}, {"$where": "x"}, upsert=True)
        assert people.find_one({"_id": 2})["name"] == "bob"
        assert len(people) == 3

    def test_operators_mixed_with_fields(self, people):
        with pytest.raises(QueryError):
            people.replace_or_update({"_id": 2}, {"$set": {"age": 18}, "name": "x"})
        assert people.find_one({"_id": 2})["age"] == 17

    def test_set_on_insert_ignored_for_updates(self, people):
        people.replace_or_update({"_id": 2}, {"$setOnInsert": {"created": True}})
        assert "created" not in people.find_one({"_id": 2})


class TestDeleteOne:
    def test_delete(self, people):
        assert people.delete_one({"name": "bob"}).deleted_count == 1
        assert people.delete_one({"name": "bob"}).deleted_count == 0
        assert len(people) == 2


class TestApplyUpdate:
    """Every supported update operator."""

    def test_does_not_mutate(self):
        doc = {"a": 1}
        apply_update(doc, {"$set": {"a": 2}})
        assert doc == {"a": 1}

    def test_unset_and_rename(self):
        doc = apply_update({"a": 1, "b": 2}, {"$unset": {"a": ""}, "$rename": {"b": "c"}})
        assert doc == {"c": 2}

    def test_numeric(self):
        doc = apply_update(
            {"n": 2, "m": 5, "lo": 5, "hi": 5},
            {"$inc": {"n": 3, "fresh": 1}, "$mul": {"m": 2}, "$min": {"hi": 1}, "$max": {"lo": 100}},
        )
        assert doc == {"n": 5, "fresh": 1, "m": 10, "lo": 100, "hi": 1}

    def test_arrays(self):
        doc = apply_update(
            {"a": [1, 2, 3], "b": [1, 2], "c": [1, 2, 2, 3], "d": [1, 5, 9]},
            {
                "$push": {"a": {"$each": [4, 5]}},
                "$addToSet": {"b": {"$each": [2, 3]}},
                "$pullAll": {"c": [2]},
                "$pop": {"a": -1},
                "$pull": {"d": {"$gte": 5}},
            },
        )
        assert doc == {"a": [2, 3, 4, 5], "b": [1, 2, 3], "c": [1, 3], "d": [1]}

    def test_pull_value(self):
        assert apply_update({"a": [1, 2, 1]}, {"$pull": {"a": 1}}) == {"a": [2]}

    def test_bit(self):
        assert apply_update({"f": 0b1010}, {"$bit": {"f": {"and": 0b0110, "or": 0b0001}}}) == {"f": 0b0011}

    def test_current_date(self):
        doc = apply_update({}, {"$currentDate": {"seen": True}})
        assert isinstance(doc["seen"], datetime)

    def test_unknown_operator(self):
        with pytest.raises(QueryError):
            apply_update({}, {"$where": {"a": 1}})
