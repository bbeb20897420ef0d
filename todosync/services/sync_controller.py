"""Sync controller: runs mutations and keeps the in-memory snapshot current.

Every mutation goes to the document store first and is followed by a full
reload of the user's lists and tasks, whether the mutation succeeded or not.
There is no optimistic local update; the snapshot changes only when a reload
has been fully assembled.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import Any

from pydantic import BaseModel

from todosync.core.auth import AuthGate, Unsubscribe
from todosync.core.errors import (
    AuthRequiredError,
    ErrorResponse,
    InvalidTransitionError,
    RemoteError,
    classify_error,
)
from todosync.core.logging import log_with_user_context, span
from todosync.domain.snapshot import Snapshot, TodoListSnapshot
from todosync.domain.task import TaskFields, parse_task_fields
from todosync.domain.user import User
from todosync.services import list_service, task_service
from todosync.services.edit_session import EditSession, EditSlot
from todosync.services.input_buffers import InputBuffers


logger = logging.getLogger(__name__)


class OperationResult(BaseModel):
    """Outcome of a mutation, returned to callers that want to surface failures."""

    ok: bool
    error: ErrorResponse | None = None

    @classmethod
    def success(cls) -> "OperationResult":
        return cls(ok=True)

    @classmethod
    def failure(cls, exception: Exception) -> "OperationResult":
        return cls(ok=False, error=classify_error(exception))


def _as_fields(fields: TaskFields | Mapping[str, Any]) -> TaskFields:
    return fields if isinstance(fields, TaskFields) else parse_task_fields(fields)


class SyncController:
    """Session-scoped owner of the snapshot, input buffers and edit slot."""

    def __init__(self, *, auth: AuthGate) -> None:
        self._auth = auth
        self._snapshot = Snapshot()
        self._unsubscribe: Unsubscribe | None = None
        self.edit_session = EditSession()
        self.buffers = InputBuffers()

    @property
    def snapshot(self) -> Snapshot:
        return self._snapshot

    @property
    def current_user(self) -> User | None:
        return self._auth.current_user

    async def start(self) -> None:
        """Subscribe to session changes and load a session that is already active."""
        if self._unsubscribe is not None:
            return
        self._unsubscribe = self._auth.subscribe(self.on_session_change)
        user = self._auth.current_user
        if user is not None:
            await self.on_session_change(user)

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    async def on_session_change(self, user: User | None) -> None:
        """Reload on sign-in, clear all session state on sign-out."""
        if user is not None:
            await self.reload(user)
            return

        self._snapshot = Snapshot()
        self.edit_session.cancel()
        self.buffers.clear()
        logger.info("Cleared snapshot after sign-out")

    async def sign_out(self) -> None:
        await self._auth.sign_out()

    async def reload(self, owner: User) -> bool:
        """Fetch every list and task for ``owner`` and swap in the new snapshot.

        Returns:
            True if the snapshot was replaced. On a store failure, or when the
            session changed while fetching, the current snapshot is kept.
        """
        with span("sync_controller.reload"):
            try:
                lists = await list_service.list_lists(owner=owner)
                task_groups = await asyncio.gather(
                    *(task_service.list_tasks(owner=owner, list_id=todo_list.id) for todo_list in lists)
                )
            except RemoteError as e:
                log_with_user_context(logger, "error", "Reload failed", user_id=owner.id, error=str(e))
                return False

            snapshot = Snapshot(
                lists=sorted(
                    (
                        TodoListSnapshot(
                            **todo_list.model_dump(),
                            tasks=sorted(tasks, key=lambda task: (task.created_at, task.id)),
                        )
                        for todo_list, tasks in zip(lists, task_groups, strict=True)
                    ),
                    key=lambda todo_list: (todo_list.created_at, todo_list.id),
                )
            )

            current = self._auth.current_user
            if current is None or current.id != owner.id:
                logger.info("Discarded reload for inactive session", extra={"user_id": owner.id})
                return False

            self._snapshot = snapshot
            logger.debug("Snapshot replaced", extra={"user_id": owner.id, "lists": len(snapshot.lists)})
            return True

    async def _mutate(self, operation: str, action: Callable[[User], Awaitable[object]]) -> OperationResult:
        """Run ``action`` for the signed-in user, then reload.

        ValidationError and InvalidTransitionError propagate without a reload
        since nothing was sent to the store.
        """
        user = self._auth.current_user
        if user is None:
            logger.warning("Skipped %s: no authenticated user", operation)
            return OperationResult.failure(AuthRequiredError(f"{operation} requires a signed-in user"))

        try:
            await action(user)
        except RemoteError as e:
            log_with_user_context(logger, "error", f"{operation} failed", user_id=user.id, error=str(e))
            result = OperationResult.failure(e)
        else:
            result = OperationResult.success()

        await self.reload(user)
        return result

    async def create_list(self, name: str) -> OperationResult:
        async def action(user: User) -> None:
            await list_service.create_list(owner=user, name=name)

        return await self._mutate("create_list", action)

    async def delete_list(self, list_id: str) -> OperationResult:
        async def action(user: User) -> None:
            await list_service.delete_list(owner=user, list_id=list_id)
            if self.edit_session.slot is not None and self.edit_session.slot.list_id == list_id:
                self.edit_session.cancel()

        return await self._mutate("delete_list", action)

    async def create_task(self, list_id: str, fields: TaskFields | Mapping[str, Any]) -> OperationResult:
        async def action(user: User) -> None:
            await task_service.create_task(owner=user, list_id=list_id, fields=_as_fields(fields))

        return await self._mutate("create_task", action)

    async def update_task(
        self, list_id: str, task_id: str, fields: TaskFields | Mapping[str, Any]
    ) -> OperationResult:
        async def action(user: User) -> None:
            await task_service.update_task(owner=user, list_id=list_id, task_id=task_id, fields=_as_fields(fields))

        return await self._mutate("update_task", action)

    async def delete_task(self, list_id: str, task_id: str) -> OperationResult:
        async def action(user: User) -> None:
            await task_service.delete_task(owner=user, list_id=list_id, task_id=task_id)
            if self.edit_session.is_editing(task_id):
                self.edit_session.cancel()

        return await self._mutate("delete_task", action)

    async def reconcile(self) -> OperationResult:
        async def action(user: User) -> None:
            await list_service.reconcile_orphans(owner=user)

        return await self._mutate("reconcile", action)

    async def submit_new_list(self) -> OperationResult:
        """Create a list from the new-list buffer, clearing it on success."""
        result = await self.create_list(self.buffers.new_list_name)
        if result.ok:
            self.buffers.reset_new_list_name()
        return result

    async def submit_new_task(self, list_id: str) -> OperationResult:
        """Create a task from the list's new-task buffer, clearing it on success."""
        result = await self.create_task(list_id, self.buffers.task_input(list_id))
        if result.ok:
            self.buffers.reset_task_input(list_id)
        return result

    def begin_edit(self, list_id: str, task_id: str) -> EditSlot:
        """Put a task from the current snapshot into the edit slot.

        Raises:
            InvalidTransitionError: If the task is not in the snapshot
        """
        task = self._snapshot.find_task(list_id, task_id)
        if task is None:
            raise InvalidTransitionError(f"Cannot edit: task {task_id} is not in list {list_id}")
        return self.edit_session.begin_edit(list_id=list_id, task=task)

    def update_draft(self, changes: Mapping[str, Any]) -> TaskFields:
        return self.edit_session.update_draft(changes)

    def cancel_edit(self) -> None:
        self.edit_session.cancel()

    async def save_edit(self) -> OperationResult:
        """Save the draft in the edit slot through update_task."""

        async def action(user: User) -> None:
            async def saver(list_id: str, task_id: str, draft: TaskFields) -> None:
                await task_service.update_task(owner=user, list_id=list_id, task_id=task_id, fields=draft)

            await self.edit_session.save(saver)

        return await self._mutate("save_edit", action)
