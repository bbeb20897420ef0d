"""Task service for CRUD operations on tasks inside a user's list."""

import logging
from datetime import UTC, datetime

from todosync.core import db_client
from todosync.core.config import constants
from todosync.core.errors import RemoteError
from todosync.core.logging import span
from todosync.domain.task import Task, TaskFields
from todosync.domain.user import User


logger = logging.getLogger(__name__)


def tasks_path(user_id: str, list_id: str) -> str:
    """Collection path holding the tasks of one list."""
    return db_client.collection_path(
        constants.USERS_COLLECTION,
        user_id,
        constants.LISTS_COLLECTION,
        list_id,
        constants.TASKS_COLLECTION,
    )


def _to_task(record: dict, list_id: str) -> Task:
    return Task.model_validate({**record, "list_id": list_id})


async def create_task(*, owner: User, list_id: str, fields: TaskFields) -> Task:
    """Create a new task in a list.

    Args:
        owner: User owning the list
        list_id: ID of the list to add the task to
        fields: Task fields; priority defaults to low

    Returns:
        Created task

    Raises:
        ValidationError: If the title is empty or whitespace
        RemoteError: If the list does not exist or the store request fails
    """
    with span("task_service.create_task"):
        fields.require_title()

        try:
            lists_path = db_client.collection_path(constants.USERS_COLLECTION, owner.id, constants.LISTS_COLLECTION)
            await db_client.get_document(path=lists_path, doc_id=list_id)
            record = await db_client.add_document(
                path=tasks_path(owner.id, list_id),
                data={
                    **fields.to_document(),
                    "list_id": list_id,
                    "created_at": datetime.now(UTC),
                },
            )
        except (db_client.DatabaseError, ValueError) as e:
            msg = f"Failed to create task in list {list_id}: {e}"
            raise RemoteError(msg) from e

        logger.info("Created task: %s (list: %s, priority: %s)", fields.title, list_id, fields.priority)
        return _to_task(record, list_id)


async def update_task(*, owner: User, list_id: str, task_id: str, fields: TaskFields) -> Task:
    """Replace the editable fields of a task.

    Title, description, due date and priority are all written; values absent
    from ``fields`` fall back to their defaults rather than the stored ones.

    Raises:
        ValidationError: If the title is empty or whitespace
        RemoteError: If the task does not exist or the store request fails
    """
    with span("task_service.update_task"):
        fields.require_title()

        try:
            record = await db_client.update_document(
                path=tasks_path(owner.id, list_id),
                doc_id=task_id,
                data=fields.to_document(),
            )
        except (db_client.DatabaseError, ValueError) as e:
            msg = f"Failed to update task {task_id}: {e}"
            raise RemoteError(msg) from e

        logger.info("Updated task %s in list %s", task_id, list_id)
        return _to_task(record, list_id)


async def delete_task(*, owner: User, list_id: str, task_id: str) -> None:
    """Delete a single task.

    Raises:
        RemoteError: If the task does not exist or the store request fails
    """
    with span("task_service.delete_task"):
        try:
            await db_client.delete_document(path=tasks_path(owner.id, list_id), doc_id=task_id)
        except (db_client.DatabaseError, ValueError) as e:
            msg = f"Failed to delete task {task_id}: {e}"
            raise RemoteError(msg) from e

        logger.info("Deleted task %s from list %s", task_id, list_id)


async def list_tasks(*, owner: User, list_id: str) -> list[Task]:
    """Get every task in a list."""
    with span("task_service.list_tasks"):
        try:
            records = await db_client.list_documents(path=tasks_path(owner.id, list_id))
        except (db_client.DatabaseError, ValueError) as e:
            msg = f"Failed to list tasks of list {list_id}: {e}"
            raise RemoteError(msg) from e

        logger.debug("Retrieved %d tasks for list %s", len(records), list_id)
        return [_to_task(record, list_id) for record in records]
