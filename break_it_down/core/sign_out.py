"""
Sign-out flow.

Ends the provider session and tells the caller where to go next. Provider
failures are logged and otherwise ignored: the user is always sent to the
login page, and the web layer drops the session cookie and controller so the
next page load starts from fresh server data.
"""

from typing import Optional

from break_it_down.backends.base import SessionProvider
from break_it_down.utils.activity_logger import ActivityLogger
from break_it_down.utils.logger import get_logger

logger = get_logger(__name__)

LOGIN_PATH = "/login"


class SignOutFlow:
    """Tracks whether a sign-out is in progress (views disable the button)."""

    def __init__(self, session_provider: SessionProvider, activity: Optional[ActivityLogger] = None):
        self.session_provider = session_provider
        self.activity = activity
        self.signing_out = False

    async def run(self, access_token: Optional[str]) -> str:
        """Sign out and return the path to navigate to."""
        self.signing_out = True
        try:
            result = await self.session_provider.sign_out(access_token)
            if not result.ok:
                logger.warning(f"Sign-out reported an error: {result.error}")
            if self.activity is not None:
                self.activity.log_user_action("sign_out", {"ok": result.ok, "error": result.error})
            return LOGIN_PATH
        finally:
            self.signing_out = False
