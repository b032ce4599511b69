from __future__ import annotations

import json
import time
import uuid
from dataclasses import dataclass
from typing import Any, Mapping

import httpx

from .config import ClientConfig
from .error_mapper import map_error
from .exceptions import TransportError

TRACE_HEADER = "X-Trace-ID"
TRACE_HEADER_ALIASES = (TRACE_HEADER, "X-Trace-Id", "x-trace-id")


@dataclass
class TraceContext:
    trace_id: str | None = None

    def ensure(self) -> str:
        if not self.trace_id:
            self.trace_id = str(uuid.uuid4())
        return self.trace_id

    def update_from_headers(self, headers: Mapping[str, str]) -> None:
        for key in TRACE_HEADER_ALIASES:
            trace_id = headers.get(key)
            if trace_id:
                self.trace_id = trace_id
                return


@dataclass
class LastOperation:
    operation: str
    duration_ms: int
    result: str
    trace_id: str | None


class HttpClient:
    """Single-attempt async JSON client; retry policy belongs to the callers."""

    def __init__(
        self,
        config: ClientConfig,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.config = config
        self._client = client or httpx.AsyncClient(
            base_url=self.config.api_base_url.rstrip("/") + "/",
            timeout=httpx.Timeout(
                self.config.read_timeout_seconds,
                connect=self.config.connect_timeout_seconds,
            ),
            verify=self.config.verify_ssl,
        )
        self.last_operation: LastOperation | None = None

    async def request(
        self,
        method: str,
        path: str,
        *,
        token: str | None = None,
        json_body: Any = None,
        headers: dict[str, str] | None = None,
        params: dict[str, Any] | None = None,
        operation: str = "unknown",
    ) -> Any:
        request_headers = {"Accept": "application/json"}
        request_headers.update(headers or {})
        if token:
            request_headers["Authorization"] = f"Bearer {token}"
        trace = TraceContext()
        request_headers[TRACE_HEADER] = trace.ensure()

        started = time.monotonic()
        try:
            response = await self._client.request(
                method.upper(),
                path.lstrip("/"),
                json=json_body,
                headers=request_headers,
                params=params,
            )
        except httpx.TimeoutException as exc:
            self._record(operation, started, "timeout", trace.trace_id)
            raise TransportError(
                code="TIMEOUT_ERROR",
                message="The shift API did not respond in time",
                details={"type": type(exc).__name__},
                trace_id=trace.trace_id,
            ) from exc
        except httpx.TransportError as exc:
            self._record(operation, started, "network_error", trace.trace_id)
            raise TransportError(
                code="NETWORK_ERROR",
                message="Network error while calling the shift API",
                details={"type": type(exc).__name__, "reason": str(exc)},
                trace_id=trace.trace_id,
            ) from exc

        trace.update_from_headers(response.headers)
        if response.is_success:
            self._record(operation, started, "success", trace.trace_id)
            if not response.content:
                return None
            try:
                return response.json()
            except json.JSONDecodeError:
                return None

        payload = self._safe_json(response)
        self._record(operation, started, "error", trace.trace_id)
        raise map_error(response.status_code, payload, trace.trace_id)

    async def aclose(self) -> None:
        await self._client.aclose()

    def _record(self, operation: str, started: float, result: str, trace_id: str | None) -> None:
        self.last_operation = LastOperation(
            operation=operation,
            duration_ms=int((time.monotonic() - started) * 1000),
            result=result,
            trace_id=trace_id,
        )

    @staticmethod
    def _safe_json(response: httpx.Response) -> dict[str, Any]:
        try:
            payload = response.json()
        except ValueError:
            return {"message": response.text}
        return payload if isinstance(payload, dict) else {"details": payload}
