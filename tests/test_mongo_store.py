from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime, timezone

import pytest
from bson import ObjectId
from pymongo.errors import AutoReconnect, ServerSelectionTimeoutError

import todo_store.db as db
from todo_store.db import MongoTodoStore
from todo_store.errors import NotFound, StorageError
from todo_store.schemas import Todo

NOW = datetime(2025, 1, 25, 10, 15, 30, 123000, tzinfo=timezone.utc)


def stored_doc(oid, is_done):
    return {"_id": oid, "text": "race", "isDone": is_done, "createdAt": NOW, "updatedAt": NOW}


class TestDocumentShape:
    def test_persisted_document_uses_camel_case_keys(self, mongo_client):
        store = MongoTodoStore(mongo_client)
        added = store.add(Todo(text="shape", is_done=True, created_at=NOW, updated_at=NOW))
        doc = mongo_client["todos"]["todos"].find_one({"_id": ObjectId(added.id)})
        assert set(doc) == {"_id", "text", "isDone", "createdAt", "updatedAt"}
        assert doc["text"] == "shape"
        assert doc["isDone"] is True

    def test_custom_database_and_collection(self, mongo_client):
        store = MongoTodoStore(mongo_client, database="app", collection="items")
        added = store.add(Todo(text="elsewhere"))
        assert mongo_client["app"]["items"].count_documents({}) == 1
        assert mongo_client["todos"]["todos"].count_documents({}) == 0
        assert store.get(added.id).text == "elsewhere"

    def test_reads_documents_written_by_other_clients(self, mongo_client):
        oid = mongo_client["todos"]["todos"].insert_one(stored_doc(ObjectId(), False)).inserted_id
        todo = MongoTodoStore(mongo_client).get(str(oid))
        assert todo.id == str(oid)
        assert todo.text == "race"
        assert todo.created_at == NOW

    def test_toggle_document_without_is_done(self, mongo_client):
        legacy = {"text": "legacy", "createdAt": NOW, "updatedAt": NOW}
        oid = mongo_client["todos"]["todos"].insert_one(legacy).inserted_id
        store = MongoTodoStore(mongo_client)
        assert store.get(str(oid)).is_done is False

        toggled = store.toggle(str(oid))
        assert toggled.is_done is True
        assert mongo_client["todos"]["todos"].find_one({"_id": oid})["isDone"] is True
        assert store.toggle(str(oid)).is_done is False

    def test_rejects_non_positive_toggle_attempts(self, mongo_client):
        with pytest.raises(ValueError):
            MongoTodoStore(mongo_client, toggle_max_attempts=0)


class TestStorageErrors:
    def test_add_failure_is_storage_error(self, collection, mock_client):
        cause = ServerSelectionTimeoutError("no servers available")
        collection.insert_one.side_effect = cause
        with pytest.raises(StorageError) as exc_info:
            MongoTodoStore(mock_client).add(Todo(text="lost"))
        assert exc_info.value.__cause__ is cause

    def test_get_failure_is_storage_error(self, collection, mock_client):
        collection.find_one.side_effect = AutoReconnect("connection reset")
        with pytest.raises(StorageError):
            MongoTodoStore(mock_client).get(str(ObjectId()))

    def test_list_failure_mid_cursor_returns_nothing(self, collection, mock_client):
        def cursor():
            yield stored_doc(ObjectId(), False)
            raise AutoReconnect("connection reset")

        collection.find.return_value = cursor()
        with pytest.raises(StorageError):
            MongoTodoStore(mock_client).list()

    def test_update_and_delete_failures(self, collection, mock_client):
        collection.find_one_and_update.side_effect = AutoReconnect("down")
        collection.delete_one.side_effect = AutoReconnect("down")
        store = MongoTodoStore(mock_client)
        with pytest.raises(StorageError):
            store.update(Todo(id=str(ObjectId()), text="x"))
        with pytest.raises(StorageError):
            store.delete(str(ObjectId()))

    def test_session_is_passed_to_driver(self, collection, mock_client):
        session = object()
        oid = ObjectId()
        collection.find_one.return_value = stored_doc(oid, False)
        MongoTodoStore(mock_client).get(str(oid), session=session)
        assert collection.find_one.call_args.kwargs["session"] is session


class TestToggleCompareAndSwap:
    def test_retries_after_losing_race(self, collection, mock_client):
        oid = ObjectId()
        # Another writer flips the todo between our read and our swap
        collection.find_one.side_effect = [stored_doc(oid, False), stored_doc(oid, True)]
        collection.find_one_and_update.side_effect = [None, stored_doc(oid, False)]

        todo = MongoTodoStore(mock_client).toggle(str(oid))

        assert todo.is_done is False
        assert collection.find_one_and_update.call_count == 2
        first, second = collection.find_one_and_update.call_args_list
        assert first.args[0] == {"_id": oid, "isDone": {"$ne": True}}
        assert second.args[0] == {"_id": oid, "isDone": True}
        assert second.args[1]["$set"]["isDone"] is False

    def test_gives_up_after_max_attempts(self, collection, mock_client):
        oid = ObjectId()
        collection.find_one.return_value = stored_doc(oid, False)
        collection.find_one_and_update.return_value = None

        with pytest.raises(StorageError):
            MongoTodoStore(mock_client, toggle_max_attempts=3).toggle(str(oid))
        assert collection.find_one_and_update.call_count == 3

    def test_deleted_during_retry_is_not_found(self, collection, mock_client):
        oid = ObjectId()
        collection.find_one.side_effect = [stored_doc(oid, False), None]
        collection.find_one_and_update.return_value = None
        with pytest.raises(NotFound):
            MongoTodoStore(mock_client).toggle(str(oid))


class TestDeadlines:
    @pytest.fixture
    def deadlines(self, monkeypatch):
        seen = []

        @contextmanager
        def fake_timeout(seconds):
            seen.append(seconds)
            yield

        monkeypatch.setattr(db.pymongo, "timeout", fake_timeout)
        return seen

    def test_no_deadline_by_default(self, mongo_client, deadlines):
        MongoTodoStore(mongo_client).list()
        assert deadlines == []

    def test_store_default_deadline(self, mongo_client, deadlines):
        store = MongoTodoStore(mongo_client, operation_timeout=2.5)
        added = store.add(Todo(text="x"))
        store.get(added.id)
        assert deadlines == [2.5, 2.5]

    def test_per_call_deadline_overrides_default(self, mongo_client, deadlines):
        store = MongoTodoStore(mongo_client, operation_timeout=2.5)
        added = store.add(Todo(text="x"), timeout=0.5)
        store.toggle(added.id, timeout=1.0)
        # toggle's read and swap share a single deadline
        assert deadlines == [0.5, 1.0]
