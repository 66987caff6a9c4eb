"""Tests for DocumentModel and DocumentRecord over a MemoryCollection."""

import pytest

from recordspine.documents import DocumentModel, DocumentRecord, DocumentResults, MemoryCollection
from recordspine.errors import InvalidDataError
from recordspine.outcomes import SaveReturn
from recordspine.saving import SaveStatus


class IntIdModel(DocumentModel):
    known_fields = ["name"]


# =============================================================================
# Reading
# =============================================================================


class TestFind:
    def test_find_is_lazy(self, seeded_accounts):
        results = seeded_accounts.find({"logins": {"$gt": 2}})
        assert isinstance(results, DocumentResults)
        seeded_accounts.collection.insert({"_id": "a3", "name": "cid", "logins": 9})
        assert [doc.id for doc in results] == ["a2", "a3"]

    def test_results_iterate_twice(self, seeded_accounts):
        results = seeded_accounts.find()
        assert [d["name"] for d in results] == [d["name"] for d in results]

    def test_results_are_records(self, seeded_accounts):
        first = seeded_accounts.find(sort="name").first()
        assert isinstance(first, DocumentRecord)
        assert first["name"] == "ann"

    def test_raw(self, seeded_accounts):
        docs = seeded_accounts.find({"name": "bob"}, raw=True)
        assert docs == [
            {"_id": "a2", "name": "bob", "email": "bob@example.com", "username": "bobby", "logins": 5}
        ]

    def test_len_applies_skip_and_limit(self, seeded_accounts):
        results = seeded_accounts.find({}, skip=1, limit=5)
        assert len(results) == 1
        assert results.count() == 2

    def test_len_unfiltered(self, seeded_accounts):
        class Unfiltered(DocumentModel):
            results_use_filtered_count = False

        results = Unfiltered(seeded_accounts.collection).find({}, limit=1)
        assert len(results) == 2

    def test_to_list(self, seeded_accounts):
        results = seeded_accounts.find(sort=[("name", -1)])
        assert [doc["_id"] for doc in results.to_list(raw=True)] == ["a2", "a1"]
        assert all(isinstance(doc, DocumentRecord) for doc in results.to_list())
        assert "accounts" in repr(results)

    def test_find_one_and_missing(self, seeded_accounts):
        assert seeded_accounts.find_one({"username": "bobby"}).id == "a2"
        assert seeded_accounts.find_one({"username": "nobody"}) is None
        assert seeded_accounts.find_one({"_id": "a1"}, raw=True)["name"] == "ann"

    def test_known_fields_populated(self, accounts):
        accounts.collection.insert({"_id": "x"})
        assert accounts.get_doc_by_id("x").to_dict() == {
            "_id": "x", "name": None, "email": None, "username": None
        }

    def test_counts(self, seeded_accounts):
        assert seeded_accounts.count() == 2
        assert seeded_accounts.count({"logins": 1}) == 1
        assert seeded_accounts.id_count("a1") == 1
        assert seeded_accounts.id_count("zz") == 0


# =============================================================================
# Writing through the model
# =============================================================================


class TestModelSave:
    def test_insert(self, accounts):
        result = accounts.save({"name": "ann"})
        assert isinstance(result, SaveReturn)
        assert result.is_new == 1
        assert result.document["_id"] == result.outcome.inserted_id
        assert accounts.count() == 1

    def test_insert_drops_none_key(self, accounts):
        result = accounts.save({"_id": None, "name": "ann"})
        assert result.document["_id"] is not None

    def test_replace(self, seeded_accounts):
        result = seeded_accounts.save({"_id": "a1", "name": "replaced"})
        assert result.is_new == 0
        assert result.outcome.modified_count == 1
        assert seeded_accounts.collection.find_one({"_id": "a1"}) == {"_id": "a1", "name": "replaced"}

    def test_update_operators(self, seeded_accounts):
        seeded_accounts.save({"_id": "a1"}, {"$inc": {"logins": 4}})
        assert seeded_accounts.fetch_id("a1")["logins"] == 5

    def test_upsert_reports_new(self, accounts):
        result = accounts.save({"_id": "n1", "name": "new"}, upsert=True)
        assert result.is_new == 1
        assert accounts.fetch_id("n1") == {"_id": "n1", "name": "new"}

    def test_upsert_of_existing_is_not_new(self, seeded_accounts):
        assert seeded_accounts.save({"_id": "a1", "name": "x"}, upsert=True).is_new == 0

    def test_accepts_records(self, seeded_accounts):
        doc = seeded_accounts["a1"]
        doc.store("name", "stored")
        seeded_accounts.save(doc)
        assert seeded_accounts.fetch_id("a1")["name"] == "stored"

    def test_delete_id(self, seeded_accounts):
        assert seeded_accounts.delete_id("a1").deleted_count == 1
        assert seeded_accounts.delete_id("a1").deleted_count == 0


class TestMappingSugar:
    def test_get_contains_delete(self, seeded_accounts):
        assert seeded_accounts["a2"]["username"] == "bobby"
        assert seeded_accounts["nope"] is None
        assert "a1" in seeded_accounts
        del seeded_accounts["a1"]
        assert "a1" not in seeded_accounts
        assert len(seeded_accounts) == 1

    def test_setitem_creates(self, accounts):
        accounts["k1"] = {"name": "set"}
        assert accounts.fetch_id("k1") == {"_id": "k1", "name": "set"}

    def test_setitem_replaces(self, seeded_accounts):
        seeded_accounts["a1"] = {"name": "only"}
        assert seeded_accounts.fetch_id("a1") == {"_id": "a1", "name": "only"}

    def test_setitem_record(self, accounts):
        doc = accounts.new_record({"name": "rec"})
        accounts["r1"] = doc
        assert doc.id == "r1"
        assert not doc.modified_fields

    def test_iterates_records(self, seeded_accounts):
        assert sorted(doc.id for doc in seeded_accounts) == ["a1", "a2"]

    def test_repr(self, accounts):
        assert repr(accounts) == "AccountModel(collection='accounts')"


class TestIdCoercion:
    def test_coercer_applies_to_lookups(self):
        coll = MemoryCollection("ints", [{"_id": 7, "name": "seven"}])
        model = IntIdModel(coll, id_coercer=int)
        assert model["7"]["name"] == "seven"
        assert "7" in model
        assert model.coerce_id(None) is None

    def test_coercer_applies_to_inserts(self):
        model = IntIdModel(MemoryCollection(), id_coercer=int)
        assert model.insert({"_id": "12", "name": "x"}).inserted_id == 12

    def test_custom_primary_key(self):
        coll = MemoryCollection()
        model = DocumentModel(coll, primary_key="_id", record_class=DocumentRecord)
        assert model.record_class is DocumentRecord
        assert model.primary_key == "_id"


# =============================================================================
# Records saved through a document model
# =============================================================================


class TestRecordRoundTrip:
    """DocumentRecord.save and friends reach the collection."""

    def test_insert_assigns_id(self, accounts):
        doc = accounts.new_record({"name": "ann", "email": "ann@example.com"})
        new_id = doc.save(return_new_id=True)
        assert new_id == doc.id
        assert accounts.fetch_id(new_id)["email"] == "ann@example.com"
        assert not doc.modified_fields

    def test_update_changes_only(self, seeded_accounts):
        doc = seeded_accounts["a1"]
        seeded_accounts.collection.replace_or_update({"_id": "a1"}, {"$set": {"logins": 50}})
        doc["name"] = "Ann"
        assert doc.save(return_boolean=True) is True
        stored = seeded_accounts.fetch_id("a1")
        assert stored["name"] == "Ann"
        assert stored["logins"] == 50

    def test_no_change(self, seeded_accounts):
        assert seeded_accounts["a1"].save() is SaveStatus.NO_CHANGE

    def test_save_all_replaces(self, seeded_accounts):
        doc = seeded_accounts["a2"]
        doc.store("logins", 0)
        doc.save(save_all=True)
        assert seeded_accounts.fetch_id("a2")["logins"] == 0

    def test_save_updates_refreshes(self, seeded_accounts):
        doc = seeded_accounts["a2"]
        doc.save_updates({"$inc": {"logins": 1}, "$push": {"tags": "vip"}})
        assert doc["logins"] == 6
        assert doc["tags"] == ["vip"]

    def test_reserved_fields_stripped(self, seeded_accounts):
        seeded_accounts.reserved_fields = ["username"]
        doc = seeded_accounts["a1"]
        doc.save_updates({"$set": {"username": "hijack", "name": "Ann"}})
        stored = seeded_accounts.fetch_id("a1")
        assert stored["username"] == "ann"
        assert stored["name"] == "Ann"

    def test_save_updates_rejects_plain_fields(self, seeded_accounts):
        seeded_accounts.reserved_fields = ["username"]
        doc = seeded_accounts["a1"]
        before = seeded_accounts.fetch_id("a1")
        with pytest.raises(InvalidDataError):
            doc.save_updates({"username": "hijack"})
        with pytest.raises(InvalidDataError):
            doc.save_updates({"$sett": {"name": "bob"}})
        assert seeded_accounts.fetch_id("a1") == before

    def test_replace_data(self, seeded_accounts):
        doc = seeded_accounts["a1"]
        doc.replace_data({"name": "fresh"})
        assert seeded_accounts.fetch_id("a1") == {"_id": "a1", "name": "fresh"}

    def test_delete(self, seeded_accounts):
        assert seeded_accounts["a2"].delete(return_boolean=True) is True
        assert "a2" not in seeded_accounts

    def test_refresh(self, seeded_accounts):
        doc = seeded_accounts["a1"]
        seeded_accounts.collection.replace_or_update({"_id": "a1"}, {"$set": {"name": "remote"}})
        assert doc.refresh() is True
        assert doc["name"] == "remote"


class TestDocumentRecord:
    def test_id_string(self, seeded_accounts, accounts):
        assert seeded_accounts["a1"].id_string() == "a1"
        assert accounts.new_record({"name": "x"}).id_string() is None

    def test_to_dict_id_strings(self):
        model = IntIdModel(MemoryCollection("ints", [{"_id": 3, "name": "x"}]))
        assert model[3].to_dict(id_strings=True) == {"_id": "3", "name": "x"}
        assert model[3].to_dict() == {"_id": 3, "name": "x"}

    def test_duplicate_insert_raises(self, seeded_accounts):
        with pytest.raises(InvalidDataError):
            seeded_accounts.insert({"_id": "a1"})
