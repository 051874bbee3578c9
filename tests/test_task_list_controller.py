"""
Test suite for the TaskListController.

Validates that:
1. Loading replaces the list (newest first) and loads ordered steps
2. Add, delete and update only change the list after the store replies
3. Store failures land in the error slot and leave the list untouched
4. Busy rows reject a second mutation without calling the store
5. Mutations on different rows compose in any completion order
6. The status state machine and the edit session are enforced
"""

import asyncio

import pytest

from break_it_down.core import TaskListController, TaskListSnapshot
from break_it_down.models import OperationOutcome, TaskStatus
from break_it_down.utils.exceptions import InvalidParameterError

APPLIED = OperationOutcome.APPLIED
REJECTED = OperationOutcome.REJECTED
FAILED = OperationOutcome.FAILED


async def settle():
    """Let freshly created tasks run up to their first real suspension."""
    for _ in range(5):
        await asyncio.sleep(0)


async def loaded_controller(store, *titles, **kwargs):
    for title in titles:
        await store.seed_task(title)
    controller = TaskListController(store, **kwargs)
    await controller.load()
    store.calls.clear()
    return controller


class TestLoading:
    """Test load() and load_steps()."""

    def test_load_orders_newest_first(self, store):
        async def scenario():
            await store.seed_task("first")
            await store.seed_task("second")
            await store.seed_task("third")
            controller = TaskListController(store)
            outcome = await controller.load()
            return controller, outcome

        controller, outcome = asyncio.run(scenario())
        assert outcome == APPLIED
        assert [t.title for t in controller.tasks] == ["third", "second", "first"]
        assert controller.loading is False
        assert controller.error is None

        method, table, kwargs = store.calls_to("select")[0]
        assert table == "tasks"
        assert kwargs["order_by"] == "created_at"
        assert kwargs["ascending"] is False

    def test_load_replaces_initial_tasks(self, store):
        async def scenario():
            seeded = await store.seed_task("stored")
            stale = await store.seed_task("stale")
            await store.inner.delete("tasks", stale.id)
            controller = TaskListController(store, initial_tasks=[stale])
            await controller.load()
            return controller, seeded

        controller, seeded = asyncio.run(scenario())
        assert controller.tasks == [seeded]

    def test_load_failure_sets_error_and_empties_list(self, store):
        async def scenario():
            await store.seed_task("one")
            controller = TaskListController(store)
            await controller.load()
            store.fail("select", "permission denied for table tasks")
            outcome = await controller.load()
            return controller, outcome

        controller, outcome = asyncio.run(scenario())
        assert outcome == FAILED
        assert controller.tasks == []
        assert controller.error == "permission denied for table tasks"
        assert controller.loading is False

    def test_loading_flag_set_while_waiting(self, store):
        async def scenario():
            controller = TaskListController(store)
            gate = store.hold("select")
            pending = asyncio.create_task(controller.load())
            await settle()
            during = controller.snapshot().loading
            gate.set()
            await pending
            return during, controller.loading

        during, after = asyncio.run(scenario())
        assert during is True
        assert after is False

    def test_load_steps_ordered_by_index(self, store):
        async def scenario():
            task = await store.seed_task("plan trip")
            other = await store.seed_task("write report")
            await store.seed_step(task.id, 2, "book hotel")
            await store.seed_step(task.id, 0, "pick dates")
            await store.seed_step(task.id, 1, "book flights", done=True)
            await store.seed_step(other.id, 0, "outline")
            controller = await loaded_controller(store)
            outcome = await controller.load_steps()
            return controller, task, other, outcome

        controller, task, other, outcome = asyncio.run(scenario())
        assert outcome == APPLIED
        assert [s.text for s in controller.steps_for(task.id)] == ["pick dates", "book flights", "book hotel"]
        assert [s.step_index for s in controller.steps_for(task.id)] == [0, 1, 2]
        assert controller.steps_for(task.id)[1].done is True
        assert [s.text for s in controller.steps_for(other.id)] == ["outline"]

        method, table, kwargs = store.calls_to("select")[0]
        assert table == "steps"
        assert kwargs["order_by"] == "step_index"
        assert kwargs["ascending"] is True
        assert kwargs["in_filter"][0] == "task_id"
        assert set(kwargs["in_filter"][1]) == {task.id, other.id}

    def test_load_steps_skipped_without_tasks(self, store):
        controller = TaskListController(store)
        outcome = asyncio.run(controller.load_steps())
        assert outcome == APPLIED
        assert store.calls == []

    def test_load_steps_failure_sets_error(self, store):
        async def scenario():
            controller = await loaded_controller(store, "one")
            store.fail("select", "steps unavailable")
            return controller, await controller.load_steps()

        controller, outcome = asyncio.run(scenario())
        assert outcome == FAILED
        assert controller.error == "steps unavailable"
        assert len(controller.tasks) == 1


class TestAddTask:
    """Test add_task()."""

    @pytest.mark.parametrize("title", ["", "   ", "\t\n"])
    def test_blank_title_rejected_without_store_call(self, store, title):
        controller = TaskListController(store)
        controller.error = "earlier failure"
        outcome = asyncio.run(controller.add_task(title))
        assert outcome == REJECTED
        assert store.calls == []
        assert controller.error == "earlier failure"
        assert controller.tasks == []

    def test_add_prepends_trimmed_task(self, store):
        async def scenario():
            controller = await loaded_controller(store, "older")
            controller.error = "stale error"
            controller.set_new_title("  Buy milk  ")
            return controller, await controller.add_task()

        controller, outcome = asyncio.run(scenario())
        assert outcome == APPLIED
        assert [t.title for t in controller.tasks] == ["Buy milk", "older"]
        assert controller.tasks[0].status == TaskStatus.ACTIVE
        assert controller.new_title == ""
        assert controller.error is None

        method, table, kwargs = store.calls_to("insert")[0]
        assert table == "tasks"
        assert kwargs["values"] == {"title": "Buy milk", "status": "active"}

    def test_task_appears_only_after_store_reply(self, store):
        async def scenario():
            controller = TaskListController(store)
            gate = store.hold("insert")
            pending = asyncio.create_task(controller.add_task("Buy milk"))
            await settle()
            during = (list(controller.tasks), controller.new_title)
            gate.set()
            await pending
            return controller, during

        controller, (tasks_during, input_during) = asyncio.run(scenario())
        assert tasks_during == []
        assert input_during == ""
        assert [t.title for t in controller.tasks] == ["Buy milk"]

    def test_failed_add_restores_input(self, store):
        async def scenario():
            controller = await loaded_controller(store, "existing")
            store.fail("insert", "new row violates row-level security policy")
            return controller, await controller.add_task("Buy milk")

        controller, outcome = asyncio.run(scenario())
        assert outcome == FAILED
        assert controller.new_title == "Buy milk"
        assert controller.error == "new row violates row-level security policy"
        assert [t.title for t in controller.tasks] == ["existing"]


class TestDeleteTask:
    """Test delete_task()."""

    def test_delete_removes_exactly_one_task(self, store):
        async def scenario():
            controller = await loaded_controller(store, "a", "b", "c")
            target = controller.tasks[1]
            outcome = await controller.delete_task(target.id)
            return controller, target, outcome

        controller, target, outcome = asyncio.run(scenario())
        assert outcome == APPLIED
        assert [t.title for t in controller.tasks] == ["c", "a"]
        assert controller.get_task(target.id) is None
        assert not controller.is_busy(target.id)

    def test_delete_drops_steps(self, store):
        async def scenario():
            task = await store.seed_task("with steps")
            await store.seed_step(task.id, 0, "one")
            controller = await loaded_controller(store)
            await controller.load_steps()
            await controller.delete_task(task.id)
            return controller, task

        controller, task = asyncio.run(scenario())
        assert controller.steps_for(task.id) == ()
        assert store.database.tables["steps"] == {}

    def test_failed_delete_keeps_row(self, store):
        async def scenario():
            controller = await loaded_controller(store, "keep me")
            task = controller.tasks[0]
            store.fail("delete", "network down")
            return controller, task, await controller.delete_task(task.id)

        controller, task, outcome = asyncio.run(scenario())
        assert outcome == FAILED
        assert controller.tasks == [task]
        assert controller.error == "network down"
        assert not controller.is_busy(task.id)

    def test_unknown_id_rejected(self, store):
        controller = TaskListController(store)
        assert asyncio.run(controller.delete_task("missing")) == REJECTED
        assert store.calls == []

    def test_delete_ends_edit_session_of_that_task(self, store):
        async def scenario():
            controller = await loaded_controller(store, "editing")
            task = controller.tasks[0]
            controller.start_editing(task)
            await controller.delete_task(task.id)
            return controller

        controller = asyncio.run(scenario())
        assert controller.editing is None


class TestUpdateTask:
    """Test update_task(), toggle_complete() and archive()."""

    def test_update_replaces_row_with_store_row(self, store):
        async def scenario():
            controller = await loaded_controller(store, "old title", "other")
            task = controller.tasks[1]
            outcome = await controller.update_task(task.id, title="  new title ")
            return controller, task, outcome

        controller, task, outcome = asyncio.run(scenario())
        assert outcome == APPLIED
        updated = controller.get_task(task.id)
        assert updated.title == "new title"
        assert updated.created_at == task.created_at
        assert [t.id for t in controller.tasks][1] == task.id

    def test_failed_update_leaves_row(self, store):
        async def scenario():
            controller = await loaded_controller(store, "stay")
            task = controller.tasks[0]
            store.fail("update", "timeout")
            return controller, task, await controller.update_task(task.id, title="changed")

        controller, task, outcome = asyncio.run(scenario())
        assert outcome == FAILED
        assert controller.tasks == [task]
        assert controller.error == "timeout"

    def test_unknown_field_is_a_programming_error(self, store):
        async def scenario():
            controller = await loaded_controller(store, "x")
            await controller.update_task(controller.tasks[0].id, created_at="2020-01-01")

        with pytest.raises(InvalidParameterError):
            asyncio.run(scenario())

    def test_blank_title_update_rejected(self, store):
        async def scenario():
            controller = await loaded_controller(store, "x")
            return await controller.update_task(controller.tasks[0].id, title="   ")

        assert asyncio.run(scenario()) == REJECTED
        assert store.calls_to("update") == []

    def test_toggle_round_trip(self, store):
        async def scenario():
            controller = await loaded_controller(store, "toggle me")
            first = await controller.toggle_complete(controller.tasks[0])
            completed = controller.tasks[0].status
            second = await controller.toggle_complete(controller.tasks[0])
            return controller, first, completed, second

        controller, first, completed, second = asyncio.run(scenario())
        assert (first, second) == (APPLIED, APPLIED)
        assert completed == TaskStatus.COMPLETED
        assert controller.tasks[0].status == TaskStatus.ACTIVE
        statuses = [c[2]["values"]["status"] for c in store.calls_to("update")]
        assert statuses == ["completed", "active"]

    def test_archive_is_terminal(self, store):
        async def scenario():
            controller = await loaded_controller(store, "done with it")
            task_id = controller.tasks[0].id
            archived = await controller.archive(task_id)
            store.calls.clear()
            task = controller.get_task(task_id)
            results = [
                await controller.toggle_complete(task),
                await controller.archive(task_id),
                await controller.update_task(task_id, title="renamed"),
                await controller.update_task(task_id, status="active"),
                controller.start_editing(task),
            ]
            return controller, task, archived, results

        controller, task, archived, results = asyncio.run(scenario())
        assert archived == APPLIED
        assert task.status == TaskStatus.ARCHIVED
        assert results == [REJECTED] * 5
        assert store.calls == []
        assert controller.editing is None

    def test_archived_task_can_still_be_deleted(self, store):
        async def scenario():
            task = await store.seed_task("old", status="archived")
            controller = await loaded_controller(store)
            return controller, await controller.delete_task(task.id)

        controller, outcome = asyncio.run(scenario())
        assert outcome == APPLIED
        assert controller.tasks == []


class TestBusyTracking:
    """Test per-row in-flight tracking and concurrent mutations."""

    def test_row_busy_while_mutation_in_flight(self, store):
        async def scenario():
            controller = await loaded_controller(store, "slow")
            task = controller.tasks[0]
            gate = store.hold("update")
            pending = asyncio.create_task(controller.toggle_complete(task))
            await settle()
            busy_during = controller.snapshot().is_busy(task.id)
            second = await controller.delete_task(task.id)
            gate.set()
            first = await pending
            return controller, task, busy_during, first, second

        controller, task, busy_during, first, second = asyncio.run(scenario())
        assert busy_during is True
        assert second == REJECTED
        assert first == APPLIED
        assert store.calls_to("delete") == []
        assert not controller.is_busy(task.id)
        assert controller.get_task(task.id).status == TaskStatus.COMPLETED

    def test_busy_rejection_leaves_error_alone(self, store):
        async def scenario():
            controller = await loaded_controller(store, "slow")
            task = controller.tasks[0]
            gate = store.hold("delete")
            store.fail("delete", "boom")
            pending = asyncio.create_task(controller.delete_task(task.id))
            await settle()
            await controller.archive(task.id)
            gate.set()
            await pending
            return controller

        controller = asyncio.run(scenario())
        assert controller.error == "boom"

    def test_different_rows_complete_in_reverse_order(self, store):
        async def scenario():
            controller = await loaded_controller(store, "a", "b")
            b, a = controller.tasks
            delete_gate = store.hold("delete", a.id)
            update_gate = store.hold("update", b.id)
            deleting = asyncio.create_task(controller.delete_task(a.id))
            toggling = asyncio.create_task(controller.toggle_complete(b))
            await settle()
            busy = controller.busy_ids
            update_gate.set()
            await toggling
            delete_gate.set()
            await deleting
            return controller, a, b, busy

        controller, a, b, busy = asyncio.run(scenario())
        assert busy == {a.id, b.id}
        assert controller.busy_ids == frozenset()
        assert [t.id for t in controller.tasks] == [b.id]
        assert controller.tasks[0].status == TaskStatus.COMPLETED

    def test_concurrent_adds_both_land(self, store):
        async def scenario():
            controller = TaskListController(store)
            await asyncio.gather(controller.add_task("one"), controller.add_task("two"))
            return controller

        controller = asyncio.run(scenario())
        assert sorted(t.title for t in controller.tasks) == ["one", "two"]

    def test_error_cleared_by_next_attempt(self, store):
        async def scenario():
            controller = await loaded_controller(store, "x")
            task = controller.tasks[0]
            store.fail("update", "first failure")
            await controller.toggle_complete(task)
            error_after_failure = controller.error
            await controller.toggle_complete(controller.get_task(task.id))
            return controller, error_after_failure

        controller, error_after_failure = asyncio.run(scenario())
        assert error_after_failure == "first failure"
        assert controller.error is None

    def test_last_failure_wins(self, store):
        async def scenario():
            controller = await loaded_controller(store, "a", "b")
            b, a = controller.tasks
            store.fail("update", "failure for a")
            store.fail("update", "failure for b")
            await controller.toggle_complete(a)
            await controller.toggle_complete(b)
            return controller

        controller = asyncio.run(scenario())
        assert controller.error == "failure for b"


class TestEditSession:
    """Test start_editing(), submit_editing() and cancel_editing()."""

    def test_start_and_cancel(self, store):
        async def scenario():
            return await loaded_controller(store, "draft me")

        controller = asyncio.run(scenario())
        task = controller.tasks[0]
        assert controller.start_editing(task) == APPLIED
        assert controller.editing.task_id == task.id
        assert controller.editing.draft_title == "draft me"
        controller.set_editing_title("changed")
        controller.cancel_editing()
        assert controller.editing is None
        assert controller.tasks[0].title == "draft me"
        assert store.calls == []

    def test_blank_draft_keeps_session_open(self, store):
        async def scenario():
            controller = await loaded_controller(store, "keep")
            controller.start_editing(controller.tasks[0])
            controller.set_editing_title("   ")
            return controller, await controller.submit_editing()

        controller, outcome = asyncio.run(scenario())
        assert outcome == REJECTED
        assert controller.editing is not None
        assert store.calls == []

    def test_submit_saves_trimmed_title_and_exits(self, store):
        async def scenario():
            controller = await loaded_controller(store, "before")
            controller.start_editing(controller.tasks[0])
            controller.set_editing_title("  after ")
            return controller, await controller.submit_editing()

        controller, outcome = asyncio.run(scenario())
        assert outcome == APPLIED
        assert controller.editing is None
        assert controller.tasks[0].title == "after"

    def test_failed_submit_still_exits(self, store):
        async def scenario():
            controller = await loaded_controller(store, "before")
            controller.start_editing(controller.tasks[0])
            controller.set_editing_title("after")
            store.fail("update", "could not save")
            return controller, await controller.submit_editing()

        controller, outcome = asyncio.run(scenario())
        assert outcome == FAILED
        assert controller.editing is None
        assert controller.error == "could not save"
        assert controller.tasks[0].title == "before"

    def test_submit_without_session_rejected(self, store):
        controller = TaskListController(store)
        assert asyncio.run(controller.submit_editing()) == REJECTED


class TestSnapshot:
    """Test the read-only snapshot."""

    def test_snapshot_is_detached_from_later_changes(self, store):
        async def scenario():
            controller = await loaded_controller(store, "one")
            before = controller.snapshot()
            await controller.add_task("two")
            return before, controller.snapshot()

        before, after = asyncio.run(scenario())
        assert isinstance(before, TaskListSnapshot)
        assert len(before.tasks) == 1
        assert len(after.tasks) == 2

    def test_to_dict_shape(self, store):
        async def scenario():
            task = await store.seed_task("plan")
            await store.seed_step(task.id, 0, "first step")
            controller = await loaded_controller(store)
            await controller.load_steps()
            controller.start_editing(controller.tasks[0])
            return controller.snapshot().to_dict(), task

        data, task = asyncio.run(scenario())
        assert data["total"] == 1
        assert data["tasks"][0]["id"] == task.id
        assert data["tasks"][0]["status"] == "active"
        assert data["tasks"][0]["steps"][0]["text"] == "first step"
        assert data["editing"] == {"task_id": task.id, "draft_title": "plan"}
        assert data["busy_ids"] == []
        assert data["error"] is None


class TestActivityLogging:
    """Test that task events reach the structured activity log."""

    def test_events_logged(self, store, activity):
        async def scenario():
            controller = TaskListController(store, activity=activity)
            await controller.add_task("logged")
            store.fail("delete", "nope")
            await controller.delete_task(controller.tasks[0].id)

        asyncio.run(scenario())
        task_logs = activity.get_recent_logs(category="task")
        assert task_logs[0]["level"] == "WARNING"
        assert "delete" in task_logs[0]["tags"]
        assert "added" in task_logs[1]["tags"]
