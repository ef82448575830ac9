from __future__ import annotations

from typing import Iterator
from unittest.mock import MagicMock

import mongomock
import pytest

from todo_store.db import MongoTodoStore
from todo_store.repositories import InMemoryTodoStore, TodoStore


@pytest.fixture
def mongo_client() -> Iterator[mongomock.MongoClient]:
    """
    In-process stand-in for a MongoDB server; every test gets an empty one.
    """
    client = mongomock.MongoClient()
    # mongomock clients for the same host share data
    _drop_all(client)
    yield client
    _drop_all(client)
    client.close()


def _drop_all(client: mongomock.MongoClient) -> None:
    for name in client.list_database_names():
        client.drop_database(name)


@pytest.fixture(params=["memory", "mongo"])
def store(request: pytest.FixtureRequest, mongo_client: mongomock.MongoClient) -> TodoStore:
    """
    Every store backend, so contract tests run against each of them.
    """
    if request.param == "memory":
        return InMemoryTodoStore()
    return MongoTodoStore(mongo_client)


@pytest.fixture
def collection() -> MagicMock:
    """Collection double for exercising driver failures and races."""
    return MagicMock()


@pytest.fixture
def mock_client(collection: MagicMock) -> MagicMock:
    """Client double whose client[db][collection] is the ``collection`` fixture."""
    client = MagicMock()
    client.__getitem__.return_value.__getitem__.return_value = collection
    return client
