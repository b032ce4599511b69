from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field

from .logger import get_logger, log_event
from .session import ShiftSession

logger = get_logger(__name__)


@dataclass
class StuckCheckWatchdog:
    """Releases the resolver's check guard when it stays set too long.

    Only the flag is reset; a request still in flight keeps running.
    """

    session: ShiftSession
    interval_seconds: float = 5.0
    threshold_seconds: float = 10.0
    _task: asyncio.Task | None = field(default=None, init=False, repr=False)

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def check(self) -> bool:
        elapsed = self.session.check_elapsed()
        if elapsed is None or elapsed <= self.threshold_seconds:
            return False
        self.session.force_reset_check()
        log_event(
            logger,
            "watchdog",
            "reset_check_guard",
            "reset",
            identity_id=self.session.identity_id,
            level=logging.WARNING,
            elapsed_seconds=round(elapsed, 3),
        )
        return True

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            self.check()
