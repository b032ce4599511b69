from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field

from .clients.shift_store_client import RemoteShiftStore
from .connectivity import ConnectivityMonitor
from .exceptions import ApiError, ShiftResolutionError
from .logger import get_logger, log_event
from .models import Shift
from .retry import SleepFn, retry_async
from .session import ShiftSession
from .shift_cache import CacheKey, ShiftCache

logger = get_logger(__name__)


@dataclass
class ActiveShiftResolver:
    """Answers "which shift is active right now" for an identity or the location.

    Lookup order: single-flight guard, fresh in-memory handle, offline cache,
    system-wide shift, then the identity's own shift with bounded retries.
    """

    store: RemoteShiftStore
    session: ShiftSession
    cache: ShiftCache
    connectivity: ConnectivityMonitor = field(default_factory=ConnectivityMonitor)
    max_attempts: int = 3
    backoff_seconds: float = 1.0
    fresh_seconds: float = 5.0
    sleep: SleepFn = asyncio.sleep

    async def resolve(self, identity_id: str | None = None, force_refresh: bool = False) -> Shift | None:
        identity_id = identity_id or self.session.identity_id
        if not identity_id:
            log_event(logger, "resolver", "resolve", "skipped", reason="no identity")
            return None

        if self.session.is_checking_shift and not force_refresh:
            return self.session.active_shift
        if not force_refresh and self.session.is_fresh(self.fresh_seconds):
            return self.session.active_shift

        token = self.session.begin_check()
        try:
            if not self.connectivity.is_online():
                return self._resolve_offline(identity_id)

            system_shift = await self._system_active_shift(identity_id)
            if system_shift is not None:
                return system_shift

            return await self._identity_active_shift(identity_id)
        finally:
            self.session.end_check(token)

    def _resolve_offline(self, identity_id: str) -> Shift | None:
        cached = self.cache.load(CacheKey.for_identity(identity_id)) or self.cache.load(CacheKey.system())
        log_event(
            logger,
            "resolver",
            "resolve_offline",
            "cache_hit" if cached else "cache_miss",
            identity_id=identity_id,
            shift_id=cached.id if cached else None,
        )
        if cached is not None:
            self.session.set_active_shift(cached, confirmed=False)
        return cached

    async def _system_active_shift(self, identity_id: str) -> Shift | None:
        try:
            shift = await self.store.get_system_active_shift()
        except ApiError as exc:
            log_event(
                logger,
                "resolver",
                "system_check",
                "error",
                identity_id=identity_id,
                trace_id=exc.trace_id,
                level=logging.WARNING,
                code=exc.code,
            )
            return None
        if shift is None or not shift.is_open:
            return None

        self.session.set_active_shift(shift)
        self.cache.save(CacheKey.system(), shift)
        if shift.is_assigned_to(identity_id):
            self.cache.save(CacheKey.for_identity(identity_id), shift)
        log_event(logger, "resolver", "system_check", "found", identity_id=identity_id, shift_id=shift.id)
        return shift

    async def _identity_active_shift(self, identity_id: str) -> Shift | None:
        def _on_retry(attempt: int, exc: Exception) -> None:
            log_event(
                logger,
                "resolver",
                "identity_check",
                "retrying",
                identity_id=identity_id,
                level=logging.WARNING,
                attempt=attempt,
                max_attempts=self.max_attempts,
                code=getattr(exc, "code", None),
            )

        try:
            shift = await retry_async(
                lambda: self.store.get_active_shift_for_identity(identity_id),
                max_attempts=self.max_attempts,
                base_delay_seconds=self.backoff_seconds,
                sleep=self.sleep,
                on_retry=_on_retry,
            )
        except ApiError as exc:
            log_event(
                logger,
                "resolver",
                "identity_check",
                "failed",
                identity_id=identity_id,
                trace_id=exc.trace_id,
                level=logging.ERROR,
                code=exc.code,
            )
            if not exc.is_transient:
                raise
            raise ShiftResolutionError(
                code="RESOLUTION_FAILED",
                message=f"Could not resolve the active shift after {self.max_attempts} attempts: {exc.message}",
                details={"identity_id": identity_id, "last_error": exc.code},
                trace_id=exc.trace_id,
                status_code=exc.status_code,
            ) from exc

        key = CacheKey.for_identity(identity_id)
        if shift is not None and shift.is_open:
            self.session.set_active_shift(shift)
            self.cache.save(key, shift)
            log_event(logger, "resolver", "identity_check", "found", identity_id=identity_id, shift_id=shift.id)
            return shift

        if not self.session.close_in_progress:
            self.cache.clear(key)
        self.session.set_active_shift(None)
        log_event(logger, "resolver", "identity_check", "none", identity_id=identity_id)
        return None
