"""
Core module - Task list controller, status machine and page-level flows
"""

from .task_status import (
    INITIAL_STATUS,
    ALLOWED_TRANSITIONS,
    next_toggle_status,
    can_transition,
    is_editable,
)
from .task_list_controller import TaskListController, TaskListSnapshot, EditSession
from .sign_out import SignOutFlow, LOGIN_PATH
from .workspace import Workspace, load_workspace
from .health_proxy import AIServiceHealthProbe, ProbeResult, probe_ai_service

__all__ = [
    'INITIAL_STATUS',
    'ALLOWED_TRANSITIONS',
    'next_toggle_status',
    'can_transition',
    'is_editable',
    'TaskListController',
    'TaskListSnapshot',
    'EditSession',
    'SignOutFlow',
    'LOGIN_PATH',
    'Workspace',
    'load_workspace',
    'AIServiceHealthProbe',
    'ProbeResult',
    'probe_ai_service',
]
