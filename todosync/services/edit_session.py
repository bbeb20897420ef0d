"""Single-slot state machine tracking the task currently being edited.

States:
    IDLE     no task is being edited
    EDITING  one task (across all lists) is being edited with a draft

Beginning an edit while another task is being edited discards the unsaved
draft and moves the slot to the new task. Saving hands the draft to a saver
callable and returns to IDLE only when the save succeeds.
"""

import logging
from collections.abc import Awaitable, Callable, Mapping
from enum import StrEnum
from typing import Any

from pydantic import BaseModel

from todosync.core.errors import InvalidTransitionError
from todosync.domain.task import Task, TaskFields, parse_task_fields


logger = logging.getLogger(__name__)

TaskSaver = Callable[[str, str, TaskFields], Awaitable[object]]


class EditState(StrEnum):
    """Edit session state."""

    IDLE = "idle"
    EDITING = "editing"


class EditSlot(BaseModel):
    """The task occupying the edit slot and its draft."""

    list_id: str
    task_id: str
    draft: TaskFields


class EditSession:
    """Owns the single edit slot for one user session."""

    def __init__(self) -> None:
        self._slot: EditSlot | None = None

    @property
    def state(self) -> EditState:
        return EditState.IDLE if self._slot is None else EditState.EDITING

    @property
    def slot(self) -> EditSlot | None:
        return self._slot

    def is_editing(self, task_id: str) -> bool:
        return self._slot is not None and self._slot.task_id == task_id

    def begin_edit(self, *, list_id: str, task: Task) -> EditSlot:
        """Move the slot to ``task``, seeding the draft from its current fields."""
        if self._slot is not None and self._slot.task_id != task.id:
            logger.info(
                "Discarding unsaved draft",
                extra={"list_id": self._slot.list_id, "task_id": self._slot.task_id, "next_task_id": task.id},
            )

        self._slot = EditSlot(list_id=list_id, task_id=task.id, draft=task.fields())
        logger.debug("Editing task %s in list %s", task.id, list_id)
        return self._slot

    def update_draft(self, changes: Mapping[str, Any]) -> TaskFields:
        """Change fields of the draft.

        Raises:
            InvalidTransitionError: If no task is being edited
            ValidationError: If a changed value is invalid
        """
        if self._slot is None:
            raise InvalidTransitionError("Cannot update draft: no task is being edited")

        draft = parse_task_fields({**self._slot.draft.model_dump(), **changes})
        self._slot = self._slot.model_copy(update={"draft": draft})
        return draft

    async def save(self, saver: TaskSaver) -> EditSlot:
        """Persist the draft through ``saver`` and clear the slot.

        The slot is kept if validation or the saver fails, so the draft can be
        corrected and saved again.

        Raises:
            InvalidTransitionError: If no task is being edited
            ValidationError: If the draft title is empty
        """
        if self._slot is None:
            raise InvalidTransitionError("Cannot save: no task is being edited")

        slot = self._slot
        slot.draft.require_title()
        await saver(slot.list_id, slot.task_id, slot.draft)

        # A begin_edit during the await moved the slot elsewhere; leave it be.
        if self._slot is slot:
            self._slot = None
        logger.info("Saved draft", extra={"list_id": slot.list_id, "task_id": slot.task_id})
        return slot

    def cancel(self) -> None:
        """Discard the draft and return to IDLE without saving."""
        if self._slot is not None:
            logger.debug("Cancelled edit of task %s", self._slot.task_id)
        self._slot = None
