"""Decision log sinks.

A sink receives DecisionRecords forwarded by the AuditRecorder. Sinks are
external collaborators: they may fail, and the recorder contains every
failure.
"""

import logging
from typing import Dict, Optional, Protocol

import httpx

from .records import DecisionRecord

logger = logging.getLogger(__name__)


class DecisionForwardError(Exception):
    """Raised when a sink could not accept a record."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class DecisionLogSink(Protocol):
    """Receives decision records."""

    async def send(self, record: DecisionRecord) -> None:
        ...


class HttpDecisionLogSink:
    """Posts decision payloads to a remote decision log endpoint."""

    def __init__(
        self,
        url: str,
        *,
        timeout: float = 5.0,
        headers: Optional[Dict[str, str]] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize the sink.

        Args:
            url: Endpoint receiving the JSON payload
            timeout: Request timeout in seconds
            headers: Extra request headers (e.g. authorization)
            client: Shared client; a short-lived one is opened per send otherwise
        """
        self.url = url
        self.timeout = timeout
        self.headers = dict(headers or {})
        self._client = client

    async def send(self, record: DecisionRecord) -> None:
        headers = dict(self.headers)
        headers["Content-Type"] = "application/json"
        payload = record.to_payload()

        try:
            if self._client is not None:
                response = await self._client.post(self.url, json=payload, headers=headers)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.post(self.url, json=payload, headers=headers)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise DecisionForwardError(
                f"Decision log sink returned {e.response.status_code}",
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise DecisionForwardError(f"Decision log sink unreachable: {e}") from e


class LoggingDecisionLogSink:
    """Renders decision records to a logger."""

    def __init__(self, log: Optional[logging.Logger] = None):
        self.log = log or logger

    async def send(self, record: DecisionRecord) -> None:
        level = logging.INFO if record.granted else logging.WARNING
        self.log.log(
            level,
            "Decision %s: action=%r actor=%s required=%s matching=%s super_admin=%s",
            record.result.value,
            record.action_name,
            record.actor_id or "unknown",
            ",".join(record.required_permissions) or "-",
            ",".join(record.matching_permissions) or "-",
            record.is_super_admin,
        )
