"""
Local session provider.

Accounts come from configuration (``BID_LOCAL_USERS``); sessions are opaque
random tokens kept in process memory, so a restart signs everybody out.
User ids are derived from the email address and stay stable across restarts,
which keeps file-store rows attached to their owner.
"""

import hmac
import secrets
import uuid
from typing import Dict, Optional

from break_it_down.models import SessionResult, User
from break_it_down.utils.logger import get_logger

logger = get_logger(__name__)

_USER_NAMESPACE = uuid.UUID("6f1c4d3e-2b7a-4c55-9d0e-8a1f3b2c4d5e")

INVALID_CREDENTIALS = "Invalid login credentials"


def user_id_for(email: str) -> str:
    return str(uuid.uuid5(_USER_NAMESPACE, email.strip().lower()))


class LocalSessionProvider:
    """SessionProvider backed by a static email -> password table."""

    def __init__(self, users: Dict[str, str]):
        self._users = {email.strip().lower(): password for email, password in users.items()}
        self._sessions: Dict[str, User] = {}

    async def sign_in(self, email: str, password: str) -> SessionResult:
        email = (email or "").strip().lower()
        expected = self._users.get(email)
        if expected is None or not hmac.compare_digest(expected.encode(), (password or "").encode()):
            logger.info(f"Rejected sign-in for {email or '<empty>'}")
            return SessionResult.failure(INVALID_CREDENTIALS)

        user = User(id=user_id_for(email), email=email)
        token = secrets.token_urlsafe(32)
        self._sessions[token] = user
        logger.info(f"Signed in {email}")
        return SessionResult.signed_in(user, token)

    async def get_current_user(self, access_token: Optional[str]) -> Optional[User]:
        if not access_token:
            return None
        return self._sessions.get(access_token)

    async def sign_out(self, access_token: Optional[str]) -> SessionResult:
        user = self._sessions.pop(access_token, None) if access_token else None
        if user is not None:
            logger.info(f"Signed out {user.email}")
        return SessionResult.signed_out()
