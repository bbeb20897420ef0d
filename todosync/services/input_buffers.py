"""Pending user input for new lists and new tasks."""

from collections.abc import Mapping
from typing import Any

from todosync.domain.task import TaskPriority


def _blank_task_input() -> dict[str, Any]:
    return {"title": "", "description": "", "due_date": "", "priority": str(TaskPriority.LOW)}


_TASK_FORM_FIELDS = frozenset(_blank_task_input())


class InputBuffers:
    """Holds the new-list name and one new-task form per list.

    Buffers are only reset after a successful create, so rejected input stays
    available for correction.
    """

    def __init__(self) -> None:
        self.new_list_name: str = ""
        self._task_inputs: dict[str, dict[str, Any]] = {}

    def set_new_list_name(self, name: str) -> None:
        self.new_list_name = name

    def reset_new_list_name(self) -> None:
        self.new_list_name = ""

    def task_input(self, list_id: str) -> dict[str, Any]:
        """Return a copy of the new-task form for a list."""
        return {**_blank_task_input(), **self._task_inputs.get(list_id, {})}

    def set_task_input(self, list_id: str, fields: Mapping[str, Any]) -> dict[str, Any]:
        """Merge field values into the new-task form for a list.

        Keys that are not form fields are ignored.
        """
        known = {key: value for key, value in fields.items() if key in _TASK_FORM_FIELDS}
        self._task_inputs[list_id] = {**self._task_inputs.get(list_id, {}), **known}
        return self.task_input(list_id)

    def reset_task_input(self, list_id: str) -> None:
        self._task_inputs[list_id] = _blank_task_input()

    def task_inputs(self) -> dict[str, dict[str, Any]]:
        return {list_id: self.task_input(list_id) for list_id in self._task_inputs}

    def clear(self) -> None:
        self.new_list_name = ""
        self._task_inputs.clear()
