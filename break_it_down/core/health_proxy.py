"""
AI service health probe.

Sends a fixed test request to the step-generation service and reports what
happened, as an HTTP status plus JSON body for ``GET /api/debug/ai``:

    no service URL configured        500  {"error": ...}
    upstream answered 2xx            200  {"status", "ok": true, "body"}
    upstream answered non-2xx        502  {"status", "ok": false, "body"}
    timeout or transport failure     502  {"error": ..., "detail"}
"""

import asyncio
import time
from typing import Any, Dict, Optional, Tuple

import httpx

from break_it_down.utils.activity_logger import ActivityLogger
from break_it_down.utils.exceptions import describe_transport_error
from break_it_down.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_TIMEOUT_SECONDS = 8.0
PROBE_PATH = "/generate-steps"
PROBE_PAYLOAD = {"task": "test task"}

NOT_CONFIGURED = "AI service URL is not configured."
UNREACHABLE = "Failed to reach AI service."

ProbeResult = Tuple[int, Dict[str, Any]]


class AIServiceHealthProbe:
    """
    One-shot reachability check of the AI step-generation service.

    Args:
        service_url: Base URL of the service; empty or None means unconfigured
        timeout: Seconds before the request is abandoned
        transport: Optional httpx transport (tests pass a MockTransport)
        activity: Optional structured activity log
    """

    def __init__(
        self,
        service_url: Optional[str],
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        activity: Optional[ActivityLogger] = None,
    ):
        self.service_url = (service_url or "").strip()
        self.timeout = timeout
        self._transport = transport
        self.activity = activity

    @property
    def configured(self) -> bool:
        return bool(self.service_url)

    @property
    def probe_url(self) -> str:
        return self.service_url.rstrip("/") + PROBE_PATH

    async def run(self) -> ProbeResult:
        if not self.configured:
            logger.warning("AI service probe skipped: no service URL configured")
            return 500, {"error": NOT_CONFIGURED}

        url = self.probe_url
        start_time = time.time()
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                # One deadline for connecting, sending and reading the whole body
                resp = await asyncio.wait_for(client.post(url, json=PROBE_PAYLOAD), self.timeout)
        except asyncio.TimeoutError:
            message = f"Timed out after {self.timeout:g}s"
            duration_ms = (time.time() - start_time) * 1000
            logger.warning(f"AI service probe failed: {message}")
            self._record(url, None, duration_ms, message)
            return 502, {"error": UNREACHABLE, "detail": message}
        except httpx.HTTPError as e:
            error = describe_transport_error(url, e)
            duration_ms = (time.time() - start_time) * 1000
            logger.warning(f"AI service probe failed: {error.message}")
            self._record(url, None, duration_ms, error.message)
            return 502, {"error": UNREACHABLE, "detail": error.message}

        duration_ms = (time.time() - start_time) * 1000
        ok = resp.is_success
        logger.log_performance("ai_probe", duration_ms / 1000, success=ok, metadata={"status_code": resp.status_code})
        self._record(url, resp.status_code, duration_ms, None if ok else resp.text[:300])
        return (200 if ok else 502), {"status": resp.status_code, "ok": ok, "body": resp.text}

    def _record(self, url: str, status_code: Optional[int], duration_ms: float, error: Optional[str]) -> None:
        if self.activity is None:
            return
        self.activity.log_api_call(
            endpoint=url, method="POST", status_code=status_code,
            duration_ms=duration_ms, error=error,
        )


async def probe_ai_service(
    service_url: Optional[str],
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> ProbeResult:
    """Convenience wrapper running a single probe."""
    return await AIServiceHealthProbe(service_url, timeout=timeout, transport=transport).run()

