"""Task domain models and enums."""

from collections.abc import Mapping
from datetime import date, datetime
from enum import StrEnum
from typing import Any

import pydantic
from pydantic import BaseModel, Field, field_validator

from todosync.core.errors import ValidationError


class TaskPriority(StrEnum):
    """Task priority."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class TaskFields(BaseModel):
    """The editable field set of a task.

    Updates replace all four fields, so callers always supply the full set.
    """

    title: str = Field(default="", description="Task title")
    description: str = Field(default="", description="Free-form description, may be empty")
    due_date: date | None = Field(default=None, description="Due date, None when unset")
    priority: TaskPriority = Field(default=TaskPriority.LOW, description="low, medium or high")

    @field_validator("due_date", mode="before")
    @classmethod
    def empty_due_date_is_none(cls, v: Any) -> Any:
        """Treat an empty string as an unset due date."""
        if v == "":
            return None
        return v

    @field_validator("priority", mode="before")
    @classmethod
    def missing_priority_is_low(cls, v: Any) -> Any:
        """Fall back to low priority when the field is blank."""
        if v is None or v == "":
            return TaskPriority.LOW
        return v

    def require_title(self) -> None:
        """Raise ValidationError if the title is empty or whitespace."""
        if not self.title.strip():
            raise ValidationError("Task title is required")

    def to_document(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "description": self.description,
            "due_date": self.due_date.isoformat() if self.due_date else "",
            "priority": str(self.priority),
        }


class Task(BaseModel):
    """Task data transfer object."""

    id: str = Field(..., description="Store-generated id, unique within its list")
    list_id: str = Field(..., description="ID of the owning list")
    title: str = Field(..., description="Task title")
    description: str = Field(default="", description="Detailed task description")
    due_date: date | None = Field(default=None, description="Due date, None when unset")
    priority: TaskPriority = Field(default=TaskPriority.LOW, description="low, medium or high")
    created_at: datetime = Field(..., description="Creation timestamp")

    @field_validator("due_date", mode="before")
    @classmethod
    def empty_due_date_is_none(cls, v: Any) -> Any:
        if v == "":
            return None
        return v

    def fields(self) -> TaskFields:
        """Return the editable fields of this task."""
        return TaskFields(
            title=self.title,
            description=self.description,
            due_date=self.due_date,
            priority=self.priority,
        )


def parse_task_fields(data: Mapping[str, Any]) -> TaskFields:
    """Build TaskFields from loose input, converting pydantic errors to ValidationError."""
    try:
        return TaskFields.model_validate(dict(data))
    except pydantic.ValidationError as e:
        fields = ", ".join(str(err["loc"][0]) for err in e.errors() if err["loc"])
        raise ValidationError(f"Invalid task fields: {fields}") from e
