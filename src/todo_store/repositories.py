from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from threading import RLock
from typing import TYPE_CHECKING, List, Optional

from bson import ObjectId

from .errors import InvalidID, NotFound
from .schemas import Todo
from .settings import Settings, get_settings
from .utils import parse_object_id, utcnow

if TYPE_CHECKING:
    from pymongo import MongoClient
    from pymongo.client_session import ClientSession

logger = logging.getLogger(__name__)


# PUBLIC_INTERFACE
class TodoStore(ABC):
    """
    Persistence contract for todos.

    Every operation accepts keyword-only ``session`` (run the call inside that
    driver session, e.g. in a transaction) and ``timeout`` (deadline in
    seconds for this call; None falls back to the store default).
    """

    @abstractmethod
    def add(
        self,
        todo: Todo,
        *,
        session: Optional[ClientSession] = None,
        timeout: Optional[float] = None,
    ) -> Todo:
        """Insert a new todo and return a copy carrying the generated id."""

    @abstractmethod
    def get(
        self,
        todo_id: str,
        *,
        session: Optional[ClientSession] = None,
        timeout: Optional[float] = None,
    ) -> Todo:
        """Return the todo with this id. Raises InvalidID or NotFound."""

    @abstractmethod
    def list(
        self,
        *,
        session: Optional[ClientSession] = None,
        timeout: Optional[float] = None,
    ) -> List[Todo]:
        """Return every stored todo, in the backend's natural order."""

    @abstractmethod
    def delete(
        self,
        todo_id: str,
        *,
        session: Optional[ClientSession] = None,
        timeout: Optional[float] = None,
    ) -> None:
        """Permanently remove the todo. Raises InvalidID or NotFound."""

    @abstractmethod
    def update(
        self,
        todo: Todo,
        *,
        session: Optional[ClientSession] = None,
        timeout: Optional[float] = None,
    ) -> Todo:
        """
        Overwrite the text of the stored todo with todo.id and refresh its
        updated_at. Other fields of the input are ignored. Returns the stored
        todo after the change. Raises InvalidID or NotFound.
        """

    @abstractmethod
    def toggle(
        self,
        todo_id: str,
        *,
        session: Optional[ClientSession] = None,
        timeout: Optional[float] = None,
    ) -> Todo:
        """
        Flip is_done and refresh updated_at. Each call is applied exactly once
        even when other callers toggle the same todo concurrently.
        """


class InMemoryTodoStore(TodoStore):
    """
    Thread-safe in-memory store suitable for testing and local runs.

    Identifiers are generated ObjectIds so id parsing behaves exactly as with
    MongoTodoStore. ``session`` and ``timeout`` are accepted and ignored.
    """

    def __init__(self) -> None:
        self._lock = RLock()
        self._items: dict[str, Todo] = {}

    @staticmethod
    def _key(todo_id: Optional[str]) -> str:
        if todo_id is None:
            raise InvalidID(todo_id)
        return str(parse_object_id(todo_id))

    def add(
        self,
        todo: Todo,
        *,
        session: Optional[ClientSession] = None,
        timeout: Optional[float] = None,
    ) -> Todo:
        now = utcnow()
        entity = todo.model_copy(
            update={
                "id": str(ObjectId()),
                "created_at": todo.created_at or now,
                "updated_at": todo.updated_at or now,
            }
        )
        with self._lock:
            self._items[entity.id] = entity
        logger.debug("added todo %s", entity.id)
        return entity.model_copy()

    def get(
        self,
        todo_id: str,
        *,
        session: Optional[ClientSession] = None,
        timeout: Optional[float] = None,
    ) -> Todo:
        key = self._key(todo_id)
        with self._lock:
            item = self._items.get(key)
            if item is None:
                raise NotFound(todo_id)
            return item.model_copy()

    def list(
        self,
        *,
        session: Optional[ClientSession] = None,
        timeout: Optional[float] = None,
    ) -> List[Todo]:
        with self._lock:
            # Return copies to avoid external mutation
            return [t.model_copy() for t in self._items.values()]

    def delete(
        self,
        todo_id: str,
        *,
        session: Optional[ClientSession] = None,
        timeout: Optional[float] = None,
    ) -> None:
        key = self._key(todo_id)
        with self._lock:
            if self._items.pop(key, None) is None:
                raise NotFound(todo_id)
        logger.debug("deleted todo %s", key)

    def update(
        self,
        todo: Todo,
        *,
        session: Optional[ClientSession] = None,
        timeout: Optional[float] = None,
    ) -> Todo:
        key = self._key(todo.id)
        with self._lock:
            existing = self._items.get(key)
            if existing is None:
                raise NotFound(todo.id)
            updated = existing.model_copy(update={"text": todo.text, "updated_at": utcnow()})
            self._items[key] = updated
            return updated.model_copy()

    def toggle(
        self,
        todo_id: str,
        *,
        session: Optional[ClientSession] = None,
        timeout: Optional[float] = None,
    ) -> Todo:
        key = self._key(todo_id)
        with self._lock:
            existing = self._items.get(key)
            if existing is None:
                raise NotFound(todo_id)
            toggled = existing.model_copy(
                update={"is_done": not existing.is_done, "updated_at": utcnow()}
            )
            self._items[key] = toggled
            return toggled.model_copy()


# PUBLIC_INTERFACE
def get_store(
    settings: Optional[Settings] = None,
    client: Optional[MongoClient] = None,
) -> TodoStore:
    """
    Factory to return the configured store based on settings.
    - memory: InMemoryTodoStore
    - mongo: MongoTodoStore over ``client``, or over a client built from settings
    """
    settings = settings or get_settings()
    if settings.backend == "memory":
        return InMemoryTodoStore()

    from .db import MongoTodoStore, create_client

    return MongoTodoStore(
        client if client is not None else create_client(settings),
        database=settings.database,
        collection=settings.collection,
        operation_timeout=settings.operation_timeout,
        toggle_max_attempts=settings.toggle_max_attempts,
    )
