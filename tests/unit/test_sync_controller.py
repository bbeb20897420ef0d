"""Unit tests for SyncController."""

import asyncio

import pytest

from todosync.core.errors import ErrorCode, InvalidTransitionError, ValidationError
from todosync.domain.task import TaskFields, TaskPriority
from todosync.services.edit_session import EditState
from todosync.services.sync_controller import SyncController


@pytest.fixture
async def signed_in(controller, auth, alice):
    await auth.sign_in(alice)
    return controller


async def add_list(controller, name):
    result = await controller.create_list(name)
    assert result.ok
    return next(lst for lst in controller.snapshot.lists if lst.name == name)


async def add_task(controller, list_id, **fields):
    result = await controller.create_task(list_id, fields)
    assert result.ok
    return controller.snapshot.find_list(list_id).tasks[-1]


@pytest.mark.unit
class TestSessionChanges:
    """Tests for on_session_change."""

    async def test_sign_in_loads_existing_lists(self, controller, auth, patched_store, alice):
        patched_store.seed(
            "users/alice/todoLists",
            "l1",
            {"name": "Existing", "owner_id": "alice", "created_at": "2026-01-01T00:00:00+00:00"},
        )

        await auth.sign_in(alice)

        assert [lst.name for lst in controller.snapshot.lists] == ["Existing"]

    async def test_sign_out_clears_everything(self, signed_in, auth):
        todo_list = await add_list(signed_in, "Groceries")
        task = await add_task(signed_in, todo_list.id, title="Buy milk")
        signed_in.begin_edit(todo_list.id, task.id)
        signed_in.buffers.set_new_list_name("Draft")

        await auth.sign_out()

        assert signed_in.snapshot.is_empty
        assert signed_in.edit_session.state == EditState.IDLE
        assert signed_in.buffers.new_list_name == ""

    async def test_start_loads_active_session(self, patched_store, auth, alice):
        """Test a controller started after sign-in loads the signed-in user's lists."""
        patched_store.seed(
            "users/alice/todoLists",
            "l1",
            {"name": "Existing", "owner_id": "alice", "created_at": "2026-01-01T00:00:00+00:00"},
        )
        await auth.sign_in(alice)
        sync = SyncController(auth=auth)

        await sync.start()

        try:
            assert [lst.name for lst in sync.snapshot.lists] == ["Existing"]
        finally:
            sync.close()

    async def test_start_twice_subscribes_once(self, controller, auth, alice, patched_store):
        await controller.start()

        await auth.sign_in(alice)

        assert patched_store.calls.count(("list_documents", "users/alice/todoLists")) == 1

    async def test_close_unsubscribes(self, controller, auth, alice, patched_store):
        controller.close()

        await auth.sign_in(alice)

        assert patched_store.calls == []


@pytest.mark.unit
class TestMutations:
    """Tests for mutate-then-reload behaviour."""

    async def test_create_list_appears_once_with_no_tasks(self, signed_in):
        result = await signed_in.create_list("Groceries")

        assert result.ok
        matching = [lst for lst in signed_in.snapshot.lists if lst.name == "Groceries"]
        assert len(matching) == 1
        assert matching[0].tasks == []

    async def test_blank_list_name_raises_and_changes_nothing(self, signed_in, patched_store):
        await add_list(signed_in, "Groceries")
        before = signed_in.snapshot
        calls_before = len(patched_store.calls)

        with pytest.raises(ValidationError):
            await signed_in.create_list("")

        assert signed_in.snapshot is before
        assert len(patched_store.calls) == calls_before

    async def test_groceries_scenario(self, signed_in):
        """Test the create list + add task defaults."""
        todo_list = await add_list(signed_in, "Groceries")

        task = await add_task(signed_in, todo_list.id, title="Buy milk")

        assert task.priority == TaskPriority.LOW
        assert task.description == ""

    async def test_update_task_full_replace(self, signed_in):
        todo_list = await add_list(signed_in, "Groceries")
        task = await add_task(signed_in, todo_list.id, title="Buy milk", description="2L", priority="high")

        result = await signed_in.update_task(todo_list.id, task.id, TaskFields(title="Buy oat milk"))

        assert result.ok
        updated = signed_in.snapshot.find_task(todo_list.id, task.id)
        assert updated.fields() == TaskFields(title="Buy oat milk")

    async def test_delete_list_removes_list_and_tasks(self, signed_in, patched_store):
        todo_list = await add_list(signed_in, "Groceries")
        await add_task(signed_in, todo_list.id, title="Buy milk")

        result = await signed_in.delete_list(todo_list.id)

        assert result.ok
        assert signed_in.snapshot.find_list(todo_list.id) is None
        assert patched_store.documents(f"users/alice/todoLists/{todo_list.id}/tasks") == []

    async def test_delete_task(self, signed_in):
        todo_list = await add_list(signed_in, "Groceries")
        task = await add_task(signed_in, todo_list.id, title="Buy milk")

        result = await signed_in.delete_task(todo_list.id, task.id)

        assert result.ok
        assert signed_in.snapshot.find_list(todo_list.id).tasks == []

    async def test_remote_failure_reloads_and_reports(self, signed_in, patched_store):
        """Test a failed mutation still reloads and returns a typed error."""
        todo_list = await add_list(signed_in, "Groceries")
        reloads_before = patched_store.calls.count(("list_documents", "users/alice/todoLists"))

        result = await signed_in.delete_task(todo_list.id, "missing")

        assert not result.ok
        assert result.error.code == ErrorCode.ERR_NOT_FOUND
        assert patched_store.calls.count(("list_documents", "users/alice/todoLists")) == reloads_before + 1
        assert signed_in.snapshot.find_list(todo_list.id) is not None

    async def test_failed_reload_keeps_previous_snapshot(self, signed_in, patched_store):
        await add_list(signed_in, "Groceries")
        before = signed_in.snapshot
        patched_store.failing_operations.update({"add_document", "list_documents"})

        result = await signed_in.create_list("Work")

        assert not result.ok
        assert signed_in.snapshot is before


@pytest.mark.unit
class TestAuthRequired:
    """Tests for mutations without a signed-in user."""

    @pytest.mark.parametrize(
        "call",
        [
            lambda c: c.create_list("Groceries"),
            lambda c: c.delete_list("l1"),
            lambda c: c.create_task("l1", {"title": "Buy milk"}),
            lambda c: c.update_task("l1", "t1", {"title": "Buy milk"}),
            lambda c: c.delete_task("l1", "t1"),
            lambda c: c.reconcile(),
        ],
    )
    async def test_mutation_skipped(self, controller, patched_store, call):
        before = controller.snapshot

        result = await call(controller)

        assert not result.ok
        assert result.error.code == ErrorCode.ERR_AUTH_REQUIRED
        assert patched_store.calls == []
        assert controller.snapshot is before


@pytest.mark.unit
class TestReload:
    """Tests for reload consistency."""

    async def test_reload_discarded_after_sign_out(self, signed_in, auth, alice, patched_store):
        await add_list(signed_in, "Groceries")
        patched_store.gate = asyncio.Event()

        pending = asyncio.create_task(signed_in.reload(alice))
        await asyncio.sleep(0)
        await auth.sign_out()
        patched_store.gate.set()
        replaced = await pending

        assert replaced is False
        assert signed_in.snapshot.is_empty

    async def test_old_snapshot_visible_until_reload_completes(self, signed_in, alice, patched_store):
        await add_list(signed_in, "Groceries")
        before = signed_in.snapshot
        patched_store.seed(
            "users/alice/todoLists",
            "l2",
            {"name": "Work", "owner_id": "alice", "created_at": "2026-01-01T00:00:00+00:00"},
        )
        patched_store.gate = asyncio.Event()

        pending = asyncio.create_task(signed_in.reload(alice))
        await asyncio.sleep(0)
        assert signed_in.snapshot is before

        patched_store.gate.set()
        assert await pending
        assert {lst.name for lst in signed_in.snapshot.lists} == {"Groceries", "Work"}

    async def test_reconcile_removes_orphans(self, signed_in, patched_store):
        patched_store.seed("users/alice/todoLists/gone/tasks", "t1", {"title": "Orphan", "list_id": "gone"})

        result = await signed_in.reconcile()

        assert result.ok
        assert patched_store.documents("users/alice/todoLists/gone/tasks") == []


@pytest.mark.unit
class TestEditing:
    """Tests for edit slot handling through the controller."""

    async def test_switching_edit_does_not_save_first_task(self, signed_in, patched_store):
        todo_a = await add_list(signed_in, "A")
        todo_b = await add_list(signed_in, "B")
        task_a = await add_task(signed_in, todo_a.id, title="Task A")
        task_b = await add_task(signed_in, todo_b.id, title="Task B", priority="high")
        updates_before = [c for c in patched_store.calls if c[0] == "update_document"]

        signed_in.begin_edit(todo_a.id, task_a.id)
        signed_in.update_draft({"title": "Unsaved"})
        slot = signed_in.begin_edit(todo_b.id, task_b.id)

        assert signed_in.edit_session.state == EditState.EDITING
        assert (slot.list_id, slot.task_id) == (todo_b.id, task_b.id)
        assert slot.draft == task_b.fields()
        assert [c for c in patched_store.calls if c[0] == "update_document"] == updates_before
        assert signed_in.snapshot.find_task(todo_a.id, task_a.id).title == "Task A"

    async def test_save_edit_persists_and_clears(self, signed_in):
        todo_list = await add_list(signed_in, "Groceries")
        task = await add_task(signed_in, todo_list.id, title="Buy milk")
        signed_in.begin_edit(todo_list.id, task.id)
        signed_in.update_draft({"title": "Buy oat milk", "priority": "medium"})

        result = await signed_in.save_edit()

        assert result.ok
        assert signed_in.edit_session.state == EditState.IDLE
        saved = signed_in.snapshot.find_task(todo_list.id, task.id)
        assert saved.title == "Buy oat milk"
        assert saved.priority == TaskPriority.MEDIUM

    async def test_failed_save_keeps_slot(self, signed_in, patched_store):
        todo_list = await add_list(signed_in, "Groceries")
        task = await add_task(signed_in, todo_list.id, title="Buy milk")
        signed_in.begin_edit(todo_list.id, task.id)
        patched_store.failing_operations.add("update_document")

        result = await signed_in.save_edit()

        assert not result.ok
        assert signed_in.edit_session.state == EditState.EDITING

    async def test_cancel_edit_makes_no_store_call(self, signed_in, patched_store):
        todo_list = await add_list(signed_in, "Groceries")
        task = await add_task(signed_in, todo_list.id, title="Buy milk")
        signed_in.begin_edit(todo_list.id, task.id)
        calls_before = len(patched_store.calls)

        signed_in.cancel_edit()

        assert signed_in.edit_session.state == EditState.IDLE
        assert len(patched_store.calls) == calls_before

    async def test_begin_edit_unknown_task(self, signed_in):
        with pytest.raises(InvalidTransitionError):
            signed_in.begin_edit("l1", "missing")

    async def test_deleting_edited_task_clears_slot(self, signed_in):
        todo_list = await add_list(signed_in, "Groceries")
        task = await add_task(signed_in, todo_list.id, title="Buy milk")
        signed_in.begin_edit(todo_list.id, task.id)

        await signed_in.delete_task(todo_list.id, task.id)

        assert signed_in.edit_session.state == EditState.IDLE


@pytest.mark.unit
class TestBuffers:
    """Tests for submitting from input buffers."""

    async def test_submit_new_list_clears_buffer(self, signed_in):
        signed_in.buffers.set_new_list_name("Groceries")

        result = await signed_in.submit_new_list()

        assert result.ok
        assert signed_in.buffers.new_list_name == ""
        assert [lst.name for lst in signed_in.snapshot.lists] == ["Groceries"]

    async def test_rejected_list_name_kept(self, signed_in):
        signed_in.buffers.set_new_list_name("   ")

        with pytest.raises(ValidationError):
            await signed_in.submit_new_list()

        assert signed_in.buffers.new_list_name == "   "

    async def test_submit_new_task_resets_form(self, signed_in):
        todo_list = await add_list(signed_in, "Groceries")
        signed_in.buffers.set_task_input(todo_list.id, {"title": "Buy milk", "priority": "high"})

        result = await signed_in.submit_new_task(todo_list.id)

        assert result.ok
        assert signed_in.buffers.task_input(todo_list.id)["title"] == ""
        assert signed_in.snapshot.find_list(todo_list.id).tasks[0].priority == TaskPriority.HIGH

    async def test_failed_task_submit_keeps_form(self, signed_in, patched_store):
        todo_list = await add_list(signed_in, "Groceries")
        signed_in.buffers.set_task_input(todo_list.id, {"title": "Buy milk"})
        patched_store.failing_operations.add("add_document")

        result = await signed_in.submit_new_task(todo_list.id)

        assert not result.ok
        assert signed_in.buffers.task_input(todo_list.id)["title"] == "Buy milk"
