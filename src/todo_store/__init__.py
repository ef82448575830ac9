"""
Todo persistence layer.

Exposes the TodoStore contract, its MongoDB and in-memory implementations,
the Todo model and the error taxonomy for convenience imports:

    from todo_store import Todo, get_store

    store = get_store()
    todo = store.add(Todo(text="do the dishes"))
    store.toggle(todo.id)
"""

from .db import MongoTodoStore, create_client
from .errors import InvalidID, NotFound, StorageError, TodoStoreError
from .repositories import InMemoryTodoStore, TodoStore, get_store
from .schemas import Todo
from .settings import Settings, get_settings

__all__ = [
    "Todo",
    "TodoStore",
    "MongoTodoStore",
    "InMemoryTodoStore",
    "get_store",
    "create_client",
    "Settings",
    "get_settings",
    "TodoStoreError",
    "InvalidID",
    "NotFound",
    "StorageError",
]
