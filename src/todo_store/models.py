from __future__ import annotations

from datetime import datetime
from typing import TypedDict

from bson import ObjectId

# PUBLIC_INTERFACE
TodoDocument = TypedDict(
    "TodoDocument",
    {
        "_id": ObjectId,
        "text": str,
        "isDone": bool,
        "createdAt": datetime,
        "updatedAt": datetime,
    },
)
"""
Shape of a todo as persisted in the todos collection.

Fields:
- _id: ObjectId generated by the database on insert
- text: free-form description
- isDone: completion flag
- createdAt: creation timestamp, never modified after insert
- updatedAt: refreshed by update and toggle
"""
