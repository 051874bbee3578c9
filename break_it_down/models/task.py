"""
Task module - Task and Step structures as stored in the ``tasks`` and ``steps`` tables
"""

from dataclasses import dataclass, asdict
from typing import Any, Dict

from .enums import TaskStatus

TASKS_TABLE = "tasks"
STEPS_TABLE = "steps"

TASK_COLUMNS = "id, title, status, created_at"
STEP_COLUMNS = "id, task_id, step_index, text, done"


@dataclass(frozen=True)
class Task:
    """Top-level work item; ``id`` and ``created_at`` are assigned by the store."""
    id: str
    title: str
    status: TaskStatus
    created_at: str

    @property
    def is_archived(self) -> bool:
        return self.status == TaskStatus.ARCHIVED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "status": self.status.value,
            "created_at": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Task":
        return cls(
            id=str(data["id"]),
            title=data["title"],
            status=TaskStatus(data["status"]),
            created_at=str(data["created_at"]),
        )


@dataclass(frozen=True)
class Step:
    """Ordered sub-item of a task."""
    id: str
    task_id: str
    step_index: int
    text: str
    done: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Step":
        return cls(
            id=str(data["id"]),
            task_id=str(data["task_id"]),
            step_index=int(data["step_index"]),
            text=data["text"],
            done=bool(data.get("done", False)),
        )
