"""
Enums module - Task status and operation outcome types
"""

from enum import Enum


class TaskStatus(str, Enum):
    """Enumeration of possible task statuses"""
    ACTIVE = "active"
    COMPLETED = "completed"
    ARCHIVED = "archived"


class OperationOutcome(str, Enum):
    """Result of a controller mutation"""
    APPLIED = "applied"
    REJECTED = "rejected"  # no store call was made
    FAILED = "failed"      # the store reported an error
