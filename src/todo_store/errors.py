from __future__ import annotations

from typing import Any


class TodoStoreError(Exception):
    """Base class for all errors raised by todo stores."""


# PUBLIC_INTERFACE
class InvalidID(TodoStoreError, ValueError):
    """
    The supplied identifier cannot be parsed into a storage identifier.
    """

    def __init__(self, todo_id: Any) -> None:
        super().__init__(f"Invalid todo id: {todo_id!r}")
        self.todo_id = todo_id


# PUBLIC_INTERFACE
class NotFound(TodoStoreError, LookupError):
    """
    No stored todo matches the identifier.
    """

    def __init__(self, todo_id: str) -> None:
        super().__init__(f"Todo not found: {todo_id}")
        self.todo_id = todo_id


# PUBLIC_INTERFACE
class StorageError(TodoStoreError):
    """
    The backing database failed (connectivity loss, timeout, driver error).
    The driver exception, when there is one, is chained as __cause__.
    """
