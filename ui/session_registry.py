"""
Per-session workspaces for the web server.

Each access token maps to one Workspace (user plus TaskListController). The
token is re-validated with the session provider on every request; a token
the provider no longer knows drops its workspace.
"""

from typing import Dict, Optional

from break_it_down.backends import SessionProvider, StoreFactory
from break_it_down.core import SignOutFlow, Workspace, load_workspace
from break_it_down.utils.activity_logger import ActivityLogger
from break_it_down.utils.logger import get_logger

logger = get_logger(__name__)


class SessionRegistry:
    """Maps access tokens to loaded workspaces and sign-out flows."""

    def __init__(
        self,
        session_provider: SessionProvider,
        store_factory: StoreFactory,
        activity: Optional[ActivityLogger] = None,
    ):
        self.session_provider = session_provider
        self.store_factory = store_factory
        self.activity = activity
        self._workspaces: Dict[str, Workspace] = {}
        self._sign_outs: Dict[str, SignOutFlow] = {}

    def __len__(self) -> int:
        return len(self._workspaces)

    def __contains__(self, access_token: str) -> bool:
        return access_token in self._workspaces

    async def workspace(self, access_token: Optional[str]) -> Optional[Workspace]:
        """Workspace for *access_token*, loading it on first use; None if signed out."""
        if not access_token:
            return None

        user = await self.session_provider.get_current_user(access_token)
        if user is None:
            self.drop(access_token)
            return None

        cached = self._workspaces.get(access_token)
        if cached is not None and cached.user.id == user.id:
            return cached

        store = self.store_factory(user, access_token)
        workspace = await load_workspace(self.session_provider, store, access_token, activity=self.activity)
        if workspace is None:
            return None
        self._workspaces[access_token] = workspace
        logger.info(f"Opened workspace for {user.email}")
        return workspace

    def sign_out_flow(self, access_token: Optional[str]) -> SignOutFlow:
        key = access_token or ""
        flow = self._sign_outs.get(key)
        if flow is None:
            flow = SignOutFlow(self.session_provider, activity=self.activity)
            self._sign_outs[key] = flow
        return flow

    def is_signing_out(self, access_token: Optional[str]) -> bool:
        flow = self._sign_outs.get(access_token or "")
        return flow is not None and flow.signing_out

    async def sign_out(self, access_token: Optional[str]) -> str:
        """Run the sign-out flow and forget the session; returns the next path."""
        flow = self.sign_out_flow(access_token)
        try:
            return await flow.run(access_token)
        finally:
            self._sign_outs.pop(access_token or "", None)
            if access_token:
                self.drop(access_token)

    def drop(self, access_token: str) -> None:
        if self._workspaces.pop(access_token, None) is not None:
            logger.debug("Dropped workspace for signed-out session")
