"""Domain models and DTOs."""

from todosync.domain.snapshot import Snapshot, TodoListSnapshot
from todosync.domain.task import Task, TaskFields, TaskPriority, parse_task_fields
from todosync.domain.todo_list import ListStatus, TodoList
from todosync.domain.user import User


__all__ = [
    "ListStatus",
    "Snapshot",
    "Task",
    "TaskFields",
    "TaskPriority",
    "TodoList",
    "TodoListSnapshot",
    "User",
    "parse_task_fields",
]
