"""
HTTP data store for a PostgREST-compatible hosted backend.

Requests go to ``<backend_url>/rest/v1/<table>`` with the project's public
``apikey`` and the signed-in user's bearer token, so row-level security on
the backend scopes every query to that user. HTTP error bodies and transport
failures are turned into failure results.
"""

import time
from typing import Any, Dict, List, Optional, Sequence, Tuple

import httpx

from break_it_down.models import StoreResult, TaskStatus
from break_it_down.utils.exceptions import describe_transport_error
from break_it_down.utils.logger import get_logger

from .base import check_table, parse_columns

logger = get_logger(__name__)


def _plain(value: Any) -> Any:
    return value.value if isinstance(value, TaskStatus) else value


def _quote(value: Any) -> str:
    text = str(_plain(value))
    return '"' + text.replace('"', '\\"') + '"'


def _json_values(values: Dict[str, Any]) -> Dict[str, Any]:
    return {k: _plain(v) for k, v in values.items()}


def error_message(response: httpx.Response) -> str:
    """Best human-readable message from an error response."""
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        for key in ("message", "error_description", "msg", "error"):
            if body.get(key):
                return str(body[key])
    text = response.text.strip()
    return text[:300] if text else f"HTTP {response.status_code}"


class RestDataStore:
    """DataStoreClient speaking the PostgREST query dialect over httpx."""

    def __init__(
        self,
        base_url: str,
        anon_key: Optional[str],
        access_token: Optional[str],
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.anon_key = anon_key or ""
        self.access_token = access_token
        self.timeout = timeout
        self._transport = transport

    def _headers(self, returning: bool = False) -> Dict[str, str]:
        headers = {
            "apikey": self.anon_key,
            "Authorization": f"Bearer {self.access_token or self.anon_key}",
            "Content-Type": "application/json",
        }
        if returning:
            headers["Prefer"] = "return=representation"
        return headers

    def _url(self, table: str) -> str:
        return f"{self.base_url}/rest/v1/{check_table(table)}"

    @staticmethod
    def _select_param(columns: str) -> str:
        return ",".join(parse_columns(columns))

    async def _request(
        self,
        method: str,
        table: str,
        params: List[Tuple[str, str]],
        json_body: Optional[Dict[str, Any]] = None,
        returning: bool = False,
    ) -> StoreResult:
        url = self._url(table)
        start_time = time.time()
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.request(
                    method, url, params=params, json=json_body, headers=self._headers(returning)
                )
        except httpx.HTTPError as e:
            error = describe_transport_error(url, e)
            logger.warning(f"{method} {url} failed: {error.message}")
            return StoreResult.failure(error.message)

        duration = time.time() - start_time
        if resp.status_code >= 400:
            message = error_message(resp)
            logger.warning(f"{method} {url} -> {resp.status_code}: {message}")
            return StoreResult.failure(message)

        logger.debug(f"{method} {url} -> {resp.status_code} in {duration:.3f}s")
        if not resp.content:
            return StoreResult.success()
        try:
            payload = resp.json()
        except ValueError:
            return StoreResult.failure("Backend returned a non-JSON response")
        if isinstance(payload, dict):
            payload = [payload]
        return StoreResult.success(payload)

    # ------------------------------------------------------------------
    # DataStoreClient
    # ------------------------------------------------------------------

    async def select(
        self,
        table: str,
        columns: str,
        order_by: Optional[str] = None,
        ascending: bool = True,
        filters: Optional[Dict[str, Any]] = None,
        in_filter: Optional[Tuple[str, Sequence[Any]]] = None,
    ) -> StoreResult:
        params = [("select", self._select_param(columns))]
        for column, value in (filters or {}).items():
            value = _plain(value)
            if isinstance(value, bool):
                value = "true" if value else "false"
            params.append((column, f"eq.{value}"))
        if in_filter is not None:
            column, values = in_filter
            params.append((column, "in.(" + ",".join(_quote(v) for v in values) + ")"))
        if order_by:
            params.append(("order", f"{order_by}.{'asc' if ascending else 'desc'}"))
        return await self._request("GET", table, params)

    async def insert(self, table: str, values: Dict[str, Any], columns: str) -> StoreResult:
        params = [("select", self._select_param(columns))]
        result = await self._request("POST", table, params, json_body=_json_values(values), returning=True)
        return self._single(result, table)

    async def update(self, table: str, row_id: str, values: Dict[str, Any], columns: str) -> StoreResult:
        params = [("id", f"eq.{row_id}"), ("select", self._select_param(columns))]
        result = await self._request("PATCH", table, params, json_body=_json_values(values), returning=True)
        return self._single(result, table)

    async def delete(self, table: str, row_id: str) -> StoreResult:
        return await self._request("DELETE", table, [("id", f"eq.{row_id}")])

    @staticmethod
    def _single(result: StoreResult, table: str) -> StoreResult:
        """Insert/update must hand back exactly one row."""
        if result.ok and len(result.rows) != 1:
            return StoreResult.failure(
                f"Expected a single row from '{table}', got {len(result.rows)}"
            )
        return result
