"""
Task List Controller - in-memory task list synchronized with the data store

The controller owns everything the task list view shows: the ordered tasks,
their steps, the add-task input, the inline edit session, the last error and
the set of task ids with a mutation in flight. Views read an immutable
TaskListSnapshot; user actions call the async operations below.

Every store call is a suspension point. Operations on different task ids may
be in flight at the same time and compose: each one applies its result to
the list as it is when the reply arrives. A second mutation for a task id
that is already in flight is rejected without touching the store.

Failures reported by the store land in ``error`` (last writer wins) and are
never raised. Every operation that reaches the store clears ``error`` first.
"""

import time
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Tuple

from break_it_down.backends.base import DataStoreClient
from break_it_down.models import (
    OperationOutcome,
    Step,
    StoreResult,
    Task,
    TaskStatus,
    TASKS_TABLE,
    STEPS_TABLE,
    TASK_COLUMNS,
    STEP_COLUMNS,
)
from break_it_down.utils.activity_logger import ActivityLogger
from break_it_down.utils.exceptions import InvalidParameterError
from break_it_down.utils.logger import get_logger

from .task_status import can_transition, is_editable, next_toggle_status

logger = get_logger(__name__)

UPDATABLE_FIELDS = ("title", "status")


@dataclass(frozen=True)
class EditSession:
    """Inline title edit in progress for one task."""
    task_id: str
    draft_title: str


@dataclass(frozen=True)
class TaskListSnapshot:
    """Read-only view of the controller state."""
    tasks: Tuple[Task, ...]
    steps: Dict[str, Tuple[Step, ...]] = field(default_factory=dict)
    busy_ids: FrozenSet[str] = frozenset()
    error: Optional[str] = None
    new_title: str = ""
    editing: Optional[EditSession] = None
    loading: bool = False

    def is_busy(self, task_id: str) -> bool:
        return task_id in self.busy_ids

    def is_editing(self, task_id: str) -> bool:
        return self.editing is not None and self.editing.task_id == task_id

    def steps_for(self, task_id: str) -> Tuple[Step, ...]:
        return self.steps.get(task_id, ())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tasks": [
                {**t.to_dict(), "steps": [s.to_dict() for s in self.steps_for(t.id)]}
                for t in self.tasks
            ],
            "total": len(self.tasks),
            "busy_ids": sorted(self.busy_ids),
            "error": self.error,
            "new_title": self.new_title,
            "editing": (
                {"task_id": self.editing.task_id, "draft_title": self.editing.draft_title}
                if self.editing else None
            ),
            "loading": self.loading,
        }


class TaskListController:
    """
    Owns the task list state for one signed-in user.

    Args:
        store: DataStoreClient scoped to the user
        initial_tasks: tasks already loaded by the page loader
        initial_steps: steps already loaded by the page loader
        activity: optional structured activity log
    """

    def __init__(
        self,
        store: DataStoreClient,
        initial_tasks: Optional[Iterable[Task]] = None,
        initial_steps: Optional[Iterable[Step]] = None,
        activity: Optional[ActivityLogger] = None,
    ):
        self.store = store
        self.activity = activity
        self.tasks: List[Task] = list(initial_tasks or [])
        self._steps: Dict[str, List[Step]] = {}
        self._set_steps(initial_steps or [])
        self.new_title = ""
        self.editing: Optional[EditSession] = None
        self.error: Optional[str] = None
        self.loading = False
        # task id -> name of the operation awaiting a store reply
        self._in_flight: Dict[str, str] = {}

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def busy_ids(self) -> FrozenSet[str]:
        return frozenset(self._in_flight)

    def is_busy(self, task_id: str) -> bool:
        return task_id in self._in_flight

    def get_task(self, task_id: str) -> Optional[Task]:
        for task in self.tasks:
            if task.id == task_id:
                return task
        return None

    def steps_for(self, task_id: str) -> Tuple[Step, ...]:
        """Steps of a task ordered by step_index ascending."""
        return tuple(sorted(self._steps.get(task_id, []), key=lambda s: s.step_index))

    def snapshot(self) -> TaskListSnapshot:
        return TaskListSnapshot(
            tasks=tuple(self.tasks),
            steps={task.id: self.steps_for(task.id) for task in self.tasks},
            busy_ids=self.busy_ids,
            error=self.error,
            new_title=self.new_title,
            editing=self.editing,
            loading=self.loading,
        )

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    async def load(self) -> OperationOutcome:
        """Replace the whole list with the user's tasks, newest first."""
        self.loading = True
        self.error = None
        started = time.monotonic()
        try:
            result = await self.store.select(
                TASKS_TABLE, TASK_COLUMNS, order_by="created_at", ascending=False
            )
            tasks = self._tasks_from(result, "load")
            if tasks is None:
                self.tasks = []
                return OperationOutcome.FAILED
            self.tasks = tasks
            logger.log_performance("load_tasks", time.monotonic() - started, metadata={"count": len(tasks)})
            return OperationOutcome.APPLIED
        finally:
            self.loading = False

    async def load_steps(self) -> OperationOutcome:
        """Load the steps of every task in the list, ordered by step_index."""
        task_ids = [task.id for task in self.tasks]
        if not task_ids:
            self._steps = {}
            return OperationOutcome.APPLIED

        self.error = None
        result = await self.store.select(
            STEPS_TABLE, STEP_COLUMNS,
            order_by="step_index", ascending=True,
            in_filter=("task_id", task_ids),
        )
        if not result.ok:
            self._fail("load_steps", result.error)
            return OperationOutcome.FAILED
        try:
            steps = [Step.from_dict(row) for row in result.rows]
        except (KeyError, ValueError, TypeError) as e:
            self._fail("load_steps", f"Malformed step row from store: {e}")
            return OperationOutcome.FAILED

        self._set_steps(steps)
        return OperationOutcome.APPLIED

    # ------------------------------------------------------------------
    # Add
    # ------------------------------------------------------------------

    def set_new_title(self, text: str) -> None:
        self.new_title = text

    async def add_task(self, title: Optional[str] = None) -> OperationOutcome:
        """
        Insert a task from the add input (or *title*, which is typed into it).

        The input is cleared before the insert and restored if it fails. The
        new task only appears once the store has returned it.
        """
        if title is not None:
            self.new_title = title
        trimmed = self.new_title.strip()
        if not trimmed:
            return OperationOutcome.REJECTED

        self.error = None
        self.new_title = ""

        result = await self.store.insert(
            TASKS_TABLE, {"title": trimmed, "status": TaskStatus.ACTIVE.value}, TASK_COLUMNS
        )
        created = self._task_from(result, "add")
        if created is None:
            self.new_title = trimmed
            return OperationOutcome.FAILED

        self.tasks = [created] + self.tasks
        self._log_event("added", created.id, created.title)
        return OperationOutcome.APPLIED

    # ------------------------------------------------------------------
    # Delete / update
    # ------------------------------------------------------------------

    async def delete_task(self, task_id: str) -> OperationOutcome:
        if self.get_task(task_id) is None or self.is_busy(task_id):
            return OperationOutcome.REJECTED

        self._in_flight[task_id] = "delete"
        self.error = None
        try:
            result = await self.store.delete(TASKS_TABLE, task_id)
            if not result.ok:
                self._fail("delete", result.error, task_id)
                return OperationOutcome.FAILED

            self.tasks = [task for task in self.tasks if task.id != task_id]
            self._steps.pop(task_id, None)
            if self.editing is not None and self.editing.task_id == task_id:
                self.editing = None
            self._log_event("deleted", task_id)
            return OperationOutcome.APPLIED
        finally:
            self._in_flight.pop(task_id, None)

    async def update_task(self, task_id: str, **fields: Any) -> OperationOutcome:
        """
        Apply *fields* (title and/or status) to a task.

        On success the in-memory row is replaced by the row the store returns.
        Archived tasks accept no updates; status changes must follow the
        status state machine.
        """
        unknown = set(fields) - set(UPDATABLE_FIELDS)
        if unknown:
            raise InvalidParameterError("fields", f"Cannot update {sorted(unknown)}")

        task = self.get_task(task_id)
        if task is None or self.is_busy(task_id) or not fields:
            return OperationOutcome.REJECTED
        if not is_editable(task):
            return OperationOutcome.REJECTED

        values: Dict[str, Any] = {}
        if "status" in fields:
            try:
                target = TaskStatus(fields["status"])
            except ValueError:
                raise InvalidParameterError("status", "Unknown task status", actual_value=fields["status"])
            if target != task.status and not can_transition(task.status, target):
                return OperationOutcome.REJECTED
            values["status"] = target.value
        if "title" in fields:
            title = (fields["title"] or "").strip()
            if not title:
                return OperationOutcome.REJECTED
            values["title"] = title

        self._in_flight[task_id] = "update"
        self.error = None
        try:
            result = await self.store.update(TASKS_TABLE, task_id, values, TASK_COLUMNS)
            updated = self._task_from(result, "update", task_id)
            if updated is None:
                return OperationOutcome.FAILED

            self.tasks = [updated if t.id == task_id else t for t in self.tasks]
            self._log_event("updated", task_id, updated.title, values)
            return OperationOutcome.APPLIED
        finally:
            self._in_flight.pop(task_id, None)

    async def toggle_complete(self, task: Task) -> OperationOutcome:
        """Completed tasks go back to active; anything else is completed."""
        if not is_editable(task):
            return OperationOutcome.REJECTED
        return await self.update_task(task.id, status=next_toggle_status(task.status))

    async def archive(self, task_id: str) -> OperationOutcome:
        return await self.update_task(task_id, status=TaskStatus.ARCHIVED)

    # ------------------------------------------------------------------
    # Edit session
    # ------------------------------------------------------------------

    def start_editing(self, task: Task) -> OperationOutcome:
        if not is_editable(task) or self.is_busy(task.id):
            return OperationOutcome.REJECTED
        self.editing = EditSession(task_id=task.id, draft_title=task.title)
        return OperationOutcome.APPLIED

    def set_editing_title(self, text: str) -> None:
        if self.editing is not None:
            self.editing = EditSession(task_id=self.editing.task_id, draft_title=text)

    def cancel_editing(self) -> None:
        self.editing = None

    async def submit_editing(self) -> OperationOutcome:
        """
        Save the draft title. An empty draft keeps the session open; otherwise
        the session ends whatever the update's outcome, and failures show up
        in ``error`` only.
        """
        session = self.editing
        if session is None:
            return OperationOutcome.REJECTED
        draft = session.draft_title.strip()
        if not draft:
            return OperationOutcome.REJECTED

        outcome = await self.update_task(session.task_id, title=draft)
        if self.editing is not None and self.editing.task_id == session.task_id:
            self.editing = None
        return outcome

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _set_steps(self, steps: Iterable[Step]) -> None:
        grouped: Dict[str, List[Step]] = {}
        for step in steps:
            grouped.setdefault(step.task_id, []).append(step)
        self._steps = grouped

    def _tasks_from(self, result: StoreResult, operation: str) -> Optional[List[Task]]:
        if not result.ok:
            self._fail(operation, result.error)
            return None
        try:
            return [Task.from_dict(row) for row in result.rows]
        except (KeyError, ValueError, TypeError) as e:
            self._fail(operation, f"Malformed task row from store: {e}")
            return None

    def _task_from(self, result: StoreResult, operation: str, task_id: Optional[str] = None) -> Optional[Task]:
        if result.ok and result.row is None:
            self._fail(operation, "Store returned no row", task_id)
            return None
        tasks = self._tasks_from(result, operation)
        if tasks is None:
            return None
        return tasks[0]

    def _fail(self, operation: str, message: Optional[str], task_id: Optional[str] = None) -> None:
        self.error = message or "Unknown store error"
        logger.warning(f"Task {operation} failed: {self.error}", extra={"task_id": task_id})
        if self.activity is not None:
            self.activity.log_task_event(operation, task_id or "-", outcome="failed", error=self.error)

    def _log_event(self, event: str, task_id: str, title: str = "", values: Optional[Dict[str, Any]] = None) -> None:
        logger.info(f"Task {event}: {task_id}", extra=values)
        if self.activity is not None:
            self.activity.log_task_event(event, task_id, title=title, outcome="applied")
