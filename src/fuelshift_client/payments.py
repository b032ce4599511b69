from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Iterable, Mapping

from .clients.shift_store_client import RemoteShiftStore
from .exceptions import ApiError, no_active_shift, validation_failure
from .logger import get_logger, log_event
from .models import CashReconciliation, PaymentMethodEntry, PaymentMethodKind, Shift
from .session import ShiftSession
from .validation import coerce_payment_entries

logger = get_logger(__name__)


def _closing_cash(shift: Shift) -> Decimal:
    if shift.closing_cash is None:
        raise validation_failure(f"Shift {shift.id} has no closing cash yet", field="closing_cash")
    return shift.closing_cash


def compute_cash_difference(shift: Shift) -> Decimal:
    """Closing cash minus opening cash; payment entries play no part."""
    return _closing_cash(shift) - shift.opening_cash


def entries_total(entries: Iterable[PaymentMethodEntry]) -> Decimal:
    return sum((entry.amount for entry in entries), Decimal("0"))


def cash_total(entries: Iterable[PaymentMethodEntry]) -> Decimal:
    return entries_total(entry for entry in entries if entry.payment_method is PaymentMethodKind.CASH)


def reconcile(shift: Shift, entries: Iterable[PaymentMethodEntry]) -> CashReconciliation:
    entries = list(entries)
    closing = _closing_cash(shift)
    total = entries_total(entries)
    return CashReconciliation(
        shift_id=shift.id,
        opening_cash=shift.opening_cash,
        closing_cash=closing,
        cash_difference=closing - shift.opening_cash,
        entries_total=total,
        cash_entries_total=cash_total(entries),
        entries_gap=closing - total,
    )


@dataclass
class PaymentReconciliationManager:
    store: RemoteShiftStore
    session: ShiftSession

    async def list_payment_methods(self, shift_id: str) -> list[PaymentMethodEntry]:
        try:
            entries = await self.store.get_shift_payment_methods(shift_id)
        except ApiError as exc:
            log_event(
                logger,
                "payments",
                "list",
                "error",
                shift_id=shift_id,
                trace_id=exc.trace_id,
                level=logging.WARNING,
                code=exc.code,
            )
            return []
        if shift_id == self.session.active_shift_id:
            self.session.set_payment_methods(entries)
        return entries

    async def add_payment_methods(
        self,
        entries: Iterable[PaymentMethodEntry | Mapping[str, Any]],
        shift_id: str | None = None,
    ) -> list[PaymentMethodEntry]:
        active = self.session.active_shift
        if active is None:
            raise no_active_shift("add_payment_methods")
        target = shift_id or active.id
        coerced = coerce_payment_entries(entries, target)
        if not coerced:
            raise validation_failure("At least one payment method is required", field="payment_methods")

        await self.store.add_shift_payment_methods(target, coerced)
        log_event(logger, "payments", "add", "success", shift_id=target, count=len(coerced))
        return await self.list_payment_methods(target)

    async def remove_payment_methods(self, shift_id: str | None = None) -> list[PaymentMethodEntry]:
        target = shift_id or self.session.active_shift_id
        if target is None:
            raise no_active_shift("remove_payment_methods")

        await self.store.delete_shift_payment_methods(target)
        log_event(logger, "payments", "remove", "success", shift_id=target)
        return await self.list_payment_methods(target)
