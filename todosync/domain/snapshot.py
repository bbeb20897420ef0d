"""In-memory materialization of a user's lists and tasks."""

from pydantic import BaseModel, Field

from todosync.domain.task import Task
from todosync.domain.todo_list import TodoList


class TodoListSnapshot(TodoList):
    """A todo list together with its resolved tasks."""

    tasks: list[Task] = Field(default_factory=list, description="Tasks belonging to the list")


class Snapshot(BaseModel):
    """Full view of a user's hierarchy at one point in time."""

    lists: list[TodoListSnapshot] = Field(default_factory=list)

    def find_list(self, list_id: str) -> TodoListSnapshot | None:
        return next((lst for lst in self.lists if lst.id == list_id), None)

    def find_task(self, list_id: str, task_id: str) -> Task | None:
        todo_list = self.find_list(list_id)
        if todo_list is None:
            return None
        return next((task for task in todo_list.tasks if task.id == task_id), None)

    @property
    def is_empty(self) -> bool:
        return not self.lists
