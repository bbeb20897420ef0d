"""List service for CRUD operations on a user's todo lists.

Deleting a list cascades to its tasks. The store has no multi-document
transactions, so the cascade runs as a saga: the list is marked ``deleting``,
its tasks are deleted concurrently, then the list itself is removed even if
some task deletions failed. ``reconcile_orphans`` later sweeps up whatever a
partial or interrupted cascade left behind.
"""

import asyncio
import logging
from datetime import UTC, datetime

from pydantic import BaseModel, Field

from todosync.core import db_client
from todosync.core.config import constants
from todosync.core.errors import RemoteError, ValidationError
from todosync.core.logging import log_with_user_context, span
from todosync.domain.todo_list import ListStatus, TodoList
from todosync.domain.user import User
from todosync.services import task_service


logger = logging.getLogger(__name__)


class CascadeDeleteResult(BaseModel):
    """Outcome of deleting a list together with its tasks."""

    list_id: str
    deleted_task_ids: list[str] = Field(default_factory=list)
    failed_task_ids: list[str] = Field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not self.failed_task_ids


def lists_path(user_id: str) -> str:
    """Collection path holding a user's lists."""
    return db_client.collection_path(constants.USERS_COLLECTION, user_id, constants.LISTS_COLLECTION)


async def create_list(*, owner: User, name: str) -> TodoList:
    """Create a new todo list.

    Args:
        owner: User who will own the list
        name: List name

    Returns:
        Created list

    Raises:
        ValidationError: If the name is empty or whitespace
        RemoteError: If the store request fails
    """
    with span("list_service.create_list"):
        if not name or not name.strip():
            raise ValidationError("List name is required")

        try:
            record = await db_client.add_document(
                path=lists_path(owner.id),
                data={
                    "name": name,
                    "owner_id": owner.id,
                    "created_by": owner.email,
                    "created_at": datetime.now(UTC),
                    "status": ListStatus.ACTIVE,
                },
            )
        except (db_client.DatabaseError, ValueError) as e:
            msg = f"Failed to create list {name!r}: {e}"
            raise RemoteError(msg) from e

        log_with_user_context(logger, "info", "Created list", user_id=owner.id, list_id=record["id"])
        return TodoList.model_validate(record)


async def list_lists(*, owner: User) -> list[TodoList]:
    """Get every list owned by a user. Ordering is not guaranteed."""
    with span("list_service.list_lists"):
        try:
            records = await db_client.list_documents(path=lists_path(owner.id))
        except (db_client.DatabaseError, ValueError) as e:
            msg = f"Failed to list lists for user {owner.id}: {e}"
            raise RemoteError(msg) from e

        logger.debug("Retrieved %d lists for user %s", len(records), owner.id)
        return [TodoList.model_validate({"owner_id": owner.id, **record}) for record in records]


async def _delete_documents(*, path: str, doc_ids: list[str]) -> tuple[list[str], list[str]]:
    """Issue all deletions concurrently and split ids into (deleted, failed)."""
    outcomes = await asyncio.gather(
        *(db_client.delete_document(path=path, doc_id=doc_id) for doc_id in doc_ids),
        return_exceptions=True,
    )

    deleted: list[str] = []
    failed: list[str] = []
    for doc_id, outcome in zip(doc_ids, outcomes, strict=True):
        if isinstance(outcome, BaseException):
            logger.warning("Failed to delete document", extra={"path": path, "doc_id": doc_id, "error": str(outcome)})
            failed.append(doc_id)
        else:
            deleted.append(doc_id)
    return deleted, failed


async def delete_list(*, owner: User, list_id: str) -> CascadeDeleteResult:
    """Delete a list and every task in it.

    Task deletions that fail are reported in the result but do not stop the
    list itself from being deleted.

    Args:
        owner: User owning the list
        list_id: ID of the list to delete

    Returns:
        CascadeDeleteResult listing deleted and failed task ids

    Raises:
        RemoteError: If the list cannot be marked, its tasks cannot be read,
            or the list document cannot be deleted
    """
    with span("list_service.delete_list"):
        try:
            path = lists_path(owner.id)
            await db_client.update_document(path=path, doc_id=list_id, data={"status": ListStatus.DELETING})
            child_path = task_service.tasks_path(owner.id, list_id)
            tasks = await db_client.list_documents(path=child_path)
        except (db_client.DatabaseError, ValueError) as e:
            msg = f"Failed to start deleting list {list_id}: {e}"
            raise RemoteError(msg) from e

        deleted, failed = await _delete_documents(path=child_path, doc_ids=[task["id"] for task in tasks])
        if failed:
            log_with_user_context(
                logger,
                "warning",
                "Cascade delete left orphaned tasks",
                user_id=owner.id,
                list_id=list_id,
                failed_count=len(failed),
            )

        try:
            await db_client.delete_document(path=path, doc_id=list_id)
        except db_client.DatabaseError as e:
            msg = f"Failed to delete list {list_id}: {e}"
            raise RemoteError(msg) from e

        log_with_user_context(
            logger, "info", "Deleted list", user_id=owner.id, list_id=list_id, deleted_tasks=len(deleted)
        )
        return CascadeDeleteResult(list_id=list_id, deleted_task_ids=deleted, failed_task_ids=failed)


async def reconcile_orphans(*, owner: User) -> int:
    """Finish interrupted cascade deletes and remove tasks whose list is gone.

    Returns:
        Number of documents removed

    Raises:
        RemoteError: If the user's collections cannot be read
    """
    with span("list_service.reconcile_orphans"):
        removed = 0

        for todo_list in await list_lists(owner=owner):
            if todo_list.status != ListStatus.DELETING:
                continue
            try:
                result = await delete_list(owner=owner, list_id=todo_list.id)
            except RemoteError as e:
                logger.warning("Could not finish deleting list %s: %s", todo_list.id, e)
                continue
            removed += len(result.deleted_task_ids) + 1

        live_ids = {todo_list.id for todo_list in await list_lists(owner=owner)}

        try:
            collections = await db_client.list_collections(prefix=lists_path(owner.id))
        except db_client.DatabaseError as e:
            msg = f"Failed to scan collections for user {owner.id}: {e}"
            raise RemoteError(msg) from e

        for path in collections:
            segments = path.split("/")
            # users/{user_id}/todoLists/{list_id}/tasks
            if len(segments) != 5 or segments[4] != constants.TASKS_COLLECTION or segments[3] in live_ids:
                continue
            try:
                orphans = await db_client.list_documents(path=path)
            except db_client.DatabaseError as e:
                logger.warning("Could not read orphaned tasks in %s: %s", path, e)
                continue
            deleted, _ = await _delete_documents(path=path, doc_ids=[task["id"] for task in orphans])
            removed += len(deleted)

        log_with_user_context(logger, "info", "Reconciled orphans", user_id=owner.id, removed=removed)
        return removed
