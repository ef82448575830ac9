from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Generator, List, Mapping, Optional

import pymongo
from pymongo import MongoClient, ReturnDocument
from pymongo.client_session import ClientSession
from pymongo.collection import Collection
from pymongo.errors import PyMongoError

from .errors import InvalidID, NotFound, StorageError
from .models import TodoDocument
from .repositories import TodoStore
from .schemas import Todo
from .settings import Settings
from .utils import parse_object_id, utcnow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _Fields:
    id: str = "_id"
    text: str = "text"
    is_done: str = "isDone"
    created_at: str = "createdAt"
    updated_at: str = "updatedAt"


_FIELDS = _Fields()


# PUBLIC_INTERFACE
def create_client(settings: Settings) -> MongoClient:
    """
    Build a MongoClient for the configured server. The client connects lazily;
    the first operation fails with StorageError if no server is reachable
    within server_selection_timeout_ms.
    """
    return MongoClient(
        settings.mongo_uri,
        tz_aware=True,
        serverSelectionTimeoutMS=settings.server_selection_timeout_ms,
    )


def _document_to_todo(doc: Mapping[str, Any]) -> Todo:
    return Todo(
        id=str(doc[_FIELDS.id]),
        text=doc.get(_FIELDS.text, ""),
        is_done=bool(doc.get(_FIELDS.is_done, False)),
        created_at=doc.get(_FIELDS.created_at),
        updated_at=doc.get(_FIELDS.updated_at),
    )


class MongoTodoStore(TodoStore):
    """
    TodoStore over a single MongoDB collection.

    The client is injected and shared; the store never mutates it. Each call
    fetches the collection handle and makes its round trip(s) under one
    deadline. Driver errors are re-raised as StorageError.
    """

    def __init__(
        self,
        client: MongoClient,
        database: str = "todos",
        collection: str = "todos",
        *,
        operation_timeout: Optional[float] = None,
        toggle_max_attempts: int = 5,
    ) -> None:
        if toggle_max_attempts < 1:
            raise ValueError("toggle_max_attempts must be at least 1")
        self._client = client
        self._database = database
        self._collection_name = collection
        self._operation_timeout = operation_timeout
        self._toggle_max_attempts = toggle_max_attempts

    def _collection(self) -> Collection:
        return self._client[self._database][self._collection_name]

    @contextmanager
    def _deadline(self, op: str, timeout: Optional[float]) -> Generator[None, None, None]:
        seconds = timeout if timeout is not None else self._operation_timeout
        try:
            if seconds is None:
                yield
            else:
                with pymongo.timeout(seconds):
                    yield
        except PyMongoError as e:
            logger.warning("todo %s failed: %s", op, e)
            raise StorageError(f"todo {op} failed: {e}") from e

    def add(
        self,
        todo: Todo,
        *,
        session: Optional[ClientSession] = None,
        timeout: Optional[float] = None,
    ) -> Todo:
        now = utcnow()
        stamped = todo.model_copy(
            update={
                "id": None,
                "created_at": todo.created_at or now,
                "updated_at": todo.updated_at or now,
            }
        )
        doc = stamped.model_dump(by_alias=True, exclude={"id"})
        with self._deadline("add", timeout):
            result = self._collection().insert_one(doc, session=session)
        logger.debug("added todo %s", result.inserted_id)
        return stamped.model_copy(update={"id": str(result.inserted_id)})

    def get(
        self,
        todo_id: str,
        *,
        session: Optional[ClientSession] = None,
        timeout: Optional[float] = None,
    ) -> Todo:
        oid = parse_object_id(todo_id)
        with self._deadline("get", timeout):
            doc: Optional[TodoDocument] = self._collection().find_one(
                {_FIELDS.id: oid}, session=session
            )
        if doc is None:
            raise NotFound(todo_id)
        return _document_to_todo(doc)

    def list(
        self,
        *,
        session: Optional[ClientSession] = None,
        timeout: Optional[float] = None,
    ) -> List[Todo]:
        # Materialize inside the deadline so a failure mid-cursor never yields a partial list
        with self._deadline("list", timeout):
            docs = [doc for doc in self._collection().find({}, session=session)]
        return [_document_to_todo(doc) for doc in docs]

    def delete(
        self,
        todo_id: str,
        *,
        session: Optional[ClientSession] = None,
        timeout: Optional[float] = None,
    ) -> None:
        oid = parse_object_id(todo_id)
        with self._deadline("delete", timeout):
            result = self._collection().delete_one({_FIELDS.id: oid}, session=session)
        if result.deleted_count == 0:
            raise NotFound(todo_id)
        logger.debug("deleted todo %s", oid)

    def update(
        self,
        todo: Todo,
        *,
        session: Optional[ClientSession] = None,
        timeout: Optional[float] = None,
    ) -> Todo:
        if todo.id is None:
            raise InvalidID(todo.id)
        oid = parse_object_id(todo.id)
        with self._deadline("update", timeout):
            doc = self._collection().find_one_and_update(
                {_FIELDS.id: oid},
                {"$set": {_FIELDS.text: todo.text, _FIELDS.updated_at: utcnow()}},
                return_document=ReturnDocument.AFTER,
                session=session,
            )
        if doc is None:
            raise NotFound(todo.id)
        return _document_to_todo(doc)

    def toggle(
        self,
        todo_id: str,
        *,
        session: Optional[ClientSession] = None,
        timeout: Optional[float] = None,
    ) -> Todo:
        oid = parse_object_id(todo_id)
        collection = self._collection()
        with self._deadline("toggle", timeout):
            for attempt in range(1, self._toggle_max_attempts + 1):
                current = collection.find_one({_FIELDS.id: oid}, session=session)
                if current is None:
                    raise NotFound(todo_id)
                was_done = bool(current.get(_FIELDS.is_done, False))
                # Only matches while isDone still holds the value just read (absent counts as False)
                held = True if was_done else {"$ne": True}
                doc = collection.find_one_and_update(
                    {_FIELDS.id: oid, _FIELDS.is_done: held},
                    {"$set": {_FIELDS.is_done: not was_done, _FIELDS.updated_at: utcnow()}},
                    return_document=ReturnDocument.AFTER,
                    session=session,
                )
                if doc is not None:
                    return _document_to_todo(doc)
                logger.debug("toggle of todo %s raced on attempt %d, retrying", todo_id, attempt)

        logger.warning(
            "toggle of todo %s gave up after %d attempts", todo_id, self._toggle_max_attempts
        )
        raise StorageError(
            f"toggle of todo {todo_id} did not apply after {self._toggle_max_attempts} attempts"
        )
