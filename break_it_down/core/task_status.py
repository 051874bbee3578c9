"""
Task status state machine.

    active <-> completed      (toggle complete)
    active -> archived        (archive)
    completed -> archived     (archive)

``archived`` is a sink: nothing leads out of it, and an archived task can no
longer be edited, toggled or archived again. Deleting stays possible from
every state.
"""

from typing import Dict, FrozenSet, Union

from break_it_down.models import Task, TaskStatus

INITIAL_STATUS = TaskStatus.ACTIVE

ALLOWED_TRANSITIONS: Dict[TaskStatus, FrozenSet[TaskStatus]] = {
    TaskStatus.ACTIVE: frozenset({TaskStatus.COMPLETED, TaskStatus.ARCHIVED}),
    TaskStatus.COMPLETED: frozenset({TaskStatus.ACTIVE, TaskStatus.ARCHIVED}),
    TaskStatus.ARCHIVED: frozenset(),
}


def next_toggle_status(status: Union[TaskStatus, str]) -> TaskStatus:
    """``completed`` goes back to ``active``; anything else becomes ``completed``."""
    if TaskStatus(status) == TaskStatus.COMPLETED:
        return TaskStatus.ACTIVE
    return TaskStatus.COMPLETED


def can_transition(current: Union[TaskStatus, str], target: Union[TaskStatus, str]) -> bool:
    return TaskStatus(target) in ALLOWED_TRANSITIONS[TaskStatus(current)]


def is_editable(task: Task) -> bool:
    """Edit, toggle and archive are only offered for tasks that are not archived."""
    return not task.is_archived
