from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field

from .clients.shift_store_client import RemoteShiftStore
from .exceptions import ApiError
from .logger import get_logger, log_event
from .session import ShiftSession

logger = get_logger(__name__)


@dataclass
class SalesTotalSynchronizer:
    """Polls the running sales total of the held shift while it is open."""

    store: RemoteShiftStore
    session: ShiftSession
    interval_seconds: float = 30.0
    _task: asyncio.Task | None = field(default=None, init=False, repr=False)
    _shift_id: str | None = field(default=None, init=False, repr=False)

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def shift_id(self) -> str | None:
        return self._shift_id if self.running else None

    def start(self, shift_id: str) -> None:
        if self.running and self._shift_id == shift_id:
            return
        self.cancel()
        self._shift_id = shift_id
        self._task = asyncio.get_running_loop().create_task(self._run(shift_id))

    def cancel(self) -> None:
        task, self._task = self._task, None
        self._shift_id = None
        if task is not None and not task.done():
            task.cancel()

    async def stop(self) -> None:
        task = self._task
        self.cancel()
        if task is None:
            return
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def tick(self, shift_id: str) -> bool:
        if self.session.active_shift_id != shift_id:
            return False
        try:
            result = await self.store.get_shift_sales_total(shift_id)
        except ApiError as exc:
            log_event(
                logger,
                "sales_sync",
                "tick",
                "error",
                shift_id=shift_id,
                trace_id=exc.trace_id,
                level=logging.WARNING,
                code=exc.code,
            )
            return False
        applied = self.session.apply_sales_total(result.shift_id or shift_id, result.total)
        if not applied:
            log_event(logger, "sales_sync", "tick", "stale", shift_id=shift_id, held_shift_id=self.session.active_shift_id)
        return applied

    async def _run(self, shift_id: str) -> None:
        while self.session.active_shift_id == shift_id:
            await asyncio.sleep(self.interval_seconds)
            await self.tick(shift_id)
