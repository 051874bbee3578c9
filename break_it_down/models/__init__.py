"""
Models module - Data structures and enums for Break It Down
"""

from .enums import TaskStatus, OperationOutcome
from .task import Task, Step, TASKS_TABLE, STEPS_TABLE, TASK_COLUMNS, STEP_COLUMNS
from .results import StoreResult, SessionResult, User

__all__ = [
    'TaskStatus',
    'OperationOutcome',
    'Task',
    'Step',
    'TASKS_TABLE',
    'STEPS_TABLE',
    'TASK_COLUMNS',
    'STEP_COLUMNS',
    'StoreResult',
    'SessionResult',
    'User',
]
