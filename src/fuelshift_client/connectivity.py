from __future__ import annotations

from dataclasses import dataclass
from typing import Callable


@dataclass
class ConnectivityMonitor:
    """Device online flag, set by the host application or a probe callable."""

    online: bool = True
    probe: Callable[[], bool] | None = None

    def is_online(self) -> bool:
        if self.probe is not None:
            return bool(self.probe())
        return self.online

    def mark_online(self) -> None:
        self.online = True

    def mark_offline(self) -> None:
        self.online = False
