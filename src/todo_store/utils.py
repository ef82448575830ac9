from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from bson import ObjectId
from bson.errors import InvalidId

from .errors import InvalidID


# PUBLIC_INTERFACE
def parse_object_id(todo_id: Any) -> ObjectId:
    """
    Parse a todo identifier into an ObjectId.

    Args:
        todo_id: A 24-character hex string (an ObjectId is accepted as-is).

    Returns:
        The parsed ObjectId.

    Raises:
        InvalidID: if the value is not a valid ObjectId.
    """
    if isinstance(todo_id, ObjectId):
        return todo_id
    if not isinstance(todo_id, str):
        raise InvalidID(todo_id)
    try:
        return ObjectId(todo_id)
    except (InvalidId, TypeError) as e:
        raise InvalidID(todo_id) from e


# PUBLIC_INTERFACE
def normalize_timestamp(value: datetime) -> datetime:
    """
    Return value as an aware UTC datetime truncated to milliseconds.
    Naive datetimes are taken to be UTC already.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    else:
        value = value.astimezone(timezone.utc)
    return value.replace(microsecond=(value.microsecond // 1000) * 1000)


def utcnow() -> datetime:
    """Current time at BSON date precision."""
    return normalize_timestamp(datetime.now(timezone.utc))
