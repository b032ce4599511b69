from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from platformdirs import user_data_dir
from pydantic import ValidationError as ModelValidationError

from .logger import get_logger, log_event
from .models import Shift

logger = get_logger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_.-]")


@dataclass(frozen=True)
class CacheKey:
    scope: Literal["identity", "system"]
    id: str | None = None

    @classmethod
    def for_identity(cls, identity_id: str) -> "CacheKey":
        if not identity_id:
            raise ValueError("identity cache keys need an identity id")
        return cls(scope="identity", id=identity_id)

    @classmethod
    def system(cls) -> "CacheKey":
        return cls(scope="system")

    @property
    def storage_name(self) -> str:
        if self.scope == "system":
            return "activeShift_system"
        return f"activeShift_{self.id}"


@dataclass
class ShiftCache:
    """Last confirmed active shift per key, one JSON file each.

    Only meant to answer "is a shift open" while offline.
    """

    app_name: str = "fuelshift"
    base_dir: str | Path | None = None

    def _dir(self) -> Path:
        base = Path(self.base_dir) if self.base_dir else Path(user_data_dir(self.app_name, "FuelShift")) / "active_shift"
        base.mkdir(parents=True, exist_ok=True)
        return base

    def _path(self, key: CacheKey) -> Path:
        return self._dir() / f"{_UNSAFE_CHARS.sub('_', key.storage_name)}.json"

    def save(self, key: CacheKey, shift: Shift) -> None:
        try:
            path = self._path(key)
            path.write_text(shift.model_dump_json(indent=2))
            path.chmod(0o600)
        except OSError as exc:
            self._log_failure("save", key, exc, shift_id=shift.id)

    def load(self, key: CacheKey) -> Shift | None:
        try:
            path = self._path(key)
            if not path.exists():
                return None
            raw = path.read_text()
        except OSError as exc:
            self._log_failure("load", key, exc)
            return None
        try:
            return Shift.model_validate(json.loads(raw))
        except (json.JSONDecodeError, ModelValidationError):
            self.clear(key)
            return None

    def clear(self, key: CacheKey) -> None:
        try:
            self._path(key).unlink(missing_ok=True)
        except OSError as exc:
            self._log_failure("clear", key, exc)

    def _log_failure(self, action: str, key: CacheKey, exc: OSError, shift_id: str | None = None) -> None:
        log_event(
            logger,
            "shift_cache",
            action,
            "failed",
            shift_id=shift_id,
            level=logging.WARNING,
            key=key.storage_name,
            reason=str(exc),
        )
