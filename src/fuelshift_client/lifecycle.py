from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Sequence

from .clients.shift_store_client import RemoteShiftStore
from .exceptions import ApiError, no_active_shift, validation_failure
from .logger import get_logger, log_event
from .models import PaymentMethodEntry, Shift
from .session import ShiftSession
from .shift_cache import CacheKey, ShiftCache
from .validation import (
    coerce_payment_entries,
    require_cash_amount,
    validate_begin_payload,
    validate_close_payload,
)

logger = get_logger(__name__)


@dataclass
class ShiftLifecycleController:
    """Begin/end transitions for the location's shift.

    Neither transition is retried here; callers re-invoke explicitly.
    """

    store: RemoteShiftStore
    session: ShiftSession
    cache: ShiftCache
    success_reset_seconds: float = 3.0
    _success_reset: asyncio.TimerHandle | None = field(default=None, init=False, repr=False)

    async def begin(self, opening_cash: Any, identity_ids: Sequence[str] | None = None) -> Shift:
        requester = self.session.identity_id
        ids = list(identity_ids or ([requester] if requester else []))
        validate_begin_payload(opening_cash, ids).raise_for_issues()
        amount = require_cash_amount(opening_cash, "opening_cash")

        self.session.set_loading(True)
        self.session.set_success(False)
        try:
            shift = await self.store.start_shift(amount, ids)
        except ApiError as exc:
            log_event(
                logger,
                "lifecycle",
                "begin",
                "failed",
                identity_id=requester,
                trace_id=exc.trace_id,
                level=logging.ERROR,
                code=exc.code,
            )
            raise
        finally:
            self.session.set_loading(False)

        self.session.set_active_shift(shift)
        self.cache.save(CacheKey.system(), shift)
        for identity in {*ids, *([requester] if requester else [])}:
            self.cache.save(CacheKey.for_identity(identity), shift)
        self._flag_success()
        log_event(logger, "lifecycle", "begin", "success", identity_id=requester, shift_id=shift.id)
        return shift

    async def end(
        self,
        closing_cash: Any,
        payment_entries: Iterable[PaymentMethodEntry | Mapping[str, Any]] | None = None,
    ) -> Shift | None:
        shift = self.session.active_shift
        if shift is None:
            raise no_active_shift("end_shift")
        if not shift.is_open:
            raise validation_failure(f"Shift {shift.id} is already closed", field="shift_id")
        validate_close_payload(closing_cash).raise_for_issues()
        amount = require_cash_amount(closing_cash, "closing_cash")
        entries = coerce_payment_entries(payment_entries or [], shift.id)

        self.session.set_loading(True)
        self.session.set_success(False)
        self.session.close_in_progress = True
        try:
            closed = await self.store.close_shift(shift.id, amount, entries or None)
        except ApiError as exc:
            log_event(
                logger,
                "lifecycle",
                "end",
                "failed",
                identity_id=self.session.identity_id,
                shift_id=shift.id,
                trace_id=exc.trace_id,
                level=logging.ERROR,
                code=exc.code,
            )
            raise
        finally:
            self.session.close_in_progress = False
            self.session.set_loading(False)

        self.session.set_active_shift(None)
        self._clear_cached(shift)
        self._flag_success()
        log_event(logger, "lifecycle", "end", "success", identity_id=self.session.identity_id, shift_id=shift.id)
        return closed

    def cancel_pending(self) -> None:
        if self._success_reset is not None:
            self._success_reset.cancel()
            self._success_reset = None

    def _clear_cached(self, shift: Shift) -> None:
        identities = set(shift.identity_ids)
        if self.session.identity_id:
            identities.add(self.session.identity_id)
        for identity in identities:
            self.cache.clear(CacheKey.for_identity(identity))
        self.cache.clear(CacheKey.system())

    def _flag_success(self) -> None:
        self.session.set_success(True)
        self.cancel_pending()
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        self._success_reset = loop.call_later(self.success_reset_seconds, self.session.set_success, False)
