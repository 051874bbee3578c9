"""
Workspace loader - everything the task page needs before first render
"""

from dataclasses import dataclass
from typing import Optional

from break_it_down.backends.base import DataStoreClient, SessionProvider
from break_it_down.models import User
from break_it_down.utils.activity_logger import ActivityLogger
from break_it_down.utils.logger import get_logger

from .task_list_controller import TaskListController

logger = get_logger(__name__)


@dataclass
class Workspace:
    """Signed-in user plus their loaded task list."""
    user: User
    controller: TaskListController


async def load_workspace(
    session_provider: SessionProvider,
    store: DataStoreClient,
    access_token: Optional[str],
    activity: Optional[ActivityLogger] = None,
) -> Optional[Workspace]:
    """
    Resolve the current user and load their tasks (newest first) and steps.

    Returns None when nobody is signed in; the caller redirects to the login
    page. Load failures do not prevent the page from rendering, they show up
    in the controller's error.
    """
    user = await session_provider.get_current_user(access_token)
    if user is None:
        return None

    controller = TaskListController(store, activity=activity)
    await controller.load()
    await controller.load_steps()
    logger.debug(f"Workspace loaded for {user.email}: {len(controller.tasks)} tasks")
    return Workspace(user=user, controller=controller)
