from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .utils import normalize_timestamp


# PUBLIC_INTERFACE
class Todo(BaseModel):
    """
    A todo item as seen by callers of a TodoStore.

    Attribute names are snake_case; the persisted document uses the camelCase
    aliases (isDone, createdAt, updatedAt). Both spellings are accepted on
    construction, and model_dump(by_alias=True) yields the document shape.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "id": "65a1f0c2e4b0a1b2c3d4e5f6",
                "text": "do the dishes",
                "isDone": False,
                "createdAt": "2025-01-25T10:15:30.123000Z",
                "updatedAt": "2025-01-26T09:00:00.000000Z",
            }
        },
    )

    id: Optional[str] = Field(
        default=None,
        description="Database-assigned identifier (ObjectId hex); None until first persisted",
    )
    text: str = Field(default="", description="Free-form description of the todo")
    is_done: bool = Field(default=False, alias="isDone", description="Completion flag")
    created_at: Optional[datetime] = Field(
        default=None, alias="createdAt", description="Creation timestamp (UTC)"
    )
    updated_at: Optional[datetime] = Field(
        default=None, alias="updatedAt", description="Last modification timestamp (UTC)"
    )

    @field_validator("created_at", "updated_at")
    @classmethod
    def normalize_timestamps(cls, v: Optional[datetime]) -> Optional[datetime]:
        """
        Store timestamps as aware UTC at millisecond precision so a todo read
        back from the database compares equal to the one that was written.
        """
        if v is None:
            return v
        return normalize_timestamp(v)
