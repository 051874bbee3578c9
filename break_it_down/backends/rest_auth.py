"""
HTTP session provider for a GoTrue-compatible auth service.

Password sign-in goes to ``/auth/v1/token?grant_type=password``; the current
user is read from ``/auth/v1/user`` and sessions end with ``/auth/v1/logout``.
"""

from typing import Any, Dict, Optional

import httpx

from break_it_down.models import SessionResult, User
from break_it_down.utils.exceptions import describe_transport_error
from break_it_down.utils.logger import get_logger

from .rest_store import error_message

logger = get_logger(__name__)


class RestSessionProvider:
    """SessionProvider speaking to the hosted backend's auth endpoints."""

    def __init__(
        self,
        base_url: str,
        anon_key: Optional[str],
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.anon_key = anon_key or ""
        self.timeout = timeout
        self._transport = transport

    def _headers(self, access_token: Optional[str] = None) -> Dict[str, str]:
        headers = {"apikey": self.anon_key, "Content-Type": "application/json"}
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"
        return headers

    async def _send(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            return await client.request(method, f"{self.base_url}/auth/v1{path}", **kwargs)

    async def sign_in(self, email: str, password: str) -> SessionResult:
        try:
            resp = await self._send(
                "POST", "/token",
                params={"grant_type": "password"},
                json={"email": email, "password": password},
                headers=self._headers(),
            )
        except httpx.HTTPError as e:
            error = describe_transport_error(f"{self.base_url}/auth/v1/token", e)
            logger.warning(f"Sign-in request failed: {error.message}")
            return SessionResult.failure(error.message)

        if resp.status_code != 200:
            return SessionResult.failure(error_message(resp))

        try:
            payload = resp.json()
        except ValueError:
            return SessionResult.failure("Auth service returned a non-JSON response")
        if not isinstance(payload, dict):
            return SessionResult.failure("Auth service returned an unexpected response")
        user = payload.get("user") or {}
        token = payload.get("access_token")
        if not token or not user.get("id"):
            return SessionResult.failure("Auth service returned an incomplete session")
        return SessionResult.signed_in(User(id=str(user["id"]), email=user.get("email") or email), token)

    async def get_current_user(self, access_token: Optional[str]) -> Optional[User]:
        if not access_token:
            return None
        try:
            resp = await self._send("GET", "/user", headers=self._headers(access_token))
        except httpx.HTTPError as e:
            logger.warning(f"User lookup failed: {describe_transport_error(self.base_url, e).message}")
            return None

        if resp.status_code != 200:
            return None
        try:
            data = resp.json()
        except ValueError:
            return None
        if not isinstance(data, dict) or not data.get("id"):
            return None
        return User(id=str(data["id"]), email=data.get("email") or "")

    async def sign_out(self, access_token: Optional[str]) -> SessionResult:
        if not access_token:
            return SessionResult.signed_out()
        try:
            resp = await self._send("POST", "/logout", headers=self._headers(access_token))
        except httpx.HTTPError as e:
            error = describe_transport_error(f"{self.base_url}/auth/v1/logout", e)
            return SessionResult.failure(error.message)

        if resp.status_code >= 400:
            return SessionResult.failure(error_message(resp))
        return SessionResult.signed_out()
