from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ..http_client import HttpClient


@dataclass
class BaseClient:
    http: HttpClient
    access_token: str | None = None
    location_id: str | None = None
    device_id: str | None = None

    def _context_headers(self) -> dict[str, str]:
        headers: dict[str, str] = {}
        if self.location_id:
            headers["X-Location-ID"] = self.location_id
        if self.device_id:
            headers["X-Device-ID"] = self.device_id
        return headers

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        headers = kwargs.pop("headers", {})
        merged = {**self._context_headers(), **headers}
        return await self.http.request(method, path, token=self.access_token, headers=merged, **kwargs)
