"""Todo list domain models and enums."""

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field


class ListStatus(StrEnum):
    """Lifecycle marker for a todo list."""

    ACTIVE = "active"
    DELETING = "deleting"


class TodoList(BaseModel):
    """Todo list data transfer object."""

    id: str = Field(..., description="Store-generated list id")
    name: str = Field(..., description="List name (e.g., 'Groceries')")
    owner_id: str = Field(..., description="ID of the user owning the list")
    created_by: str = Field(default="", description="Email of the owner at creation time")
    created_at: datetime = Field(..., description="Creation timestamp")
    status: ListStatus = Field(default=ListStatus.ACTIVE, description="Set to deleting during cascade delete")
