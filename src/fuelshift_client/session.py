from __future__ import annotations

import time
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Callable

from .models import PaymentMethodEntry, Shift

Listener = Callable[[str, "ShiftSession"], None]


class ShiftState(str, Enum):
    NO_ACTIVE_SHIFT = "NO_ACTIVE_SHIFT"
    ACTIVE_SHIFT = "ACTIVE_SHIFT"


@dataclass
class ShiftSession:
    """Observable shift state shared by the coordinator's components.

    Only the resolver and the lifecycle controller replace ``active_shift``;
    the sales synchronizer may refresh its sales total in place.
    """

    identity_id: str | None = None
    clock: Callable[[], float] = time.monotonic
    active_shift: Shift | None = None
    confirmed_at: float | None = None
    is_checking_shift: bool = False
    check_started_at: float | None = None
    is_loading: bool = False
    success: bool = False
    close_in_progress: bool = False
    shift_payment_methods: list[PaymentMethodEntry] = field(default_factory=list)
    _check_token: int = 0
    _listeners: list[Listener] = field(default_factory=list)

    @property
    def state(self) -> ShiftState:
        return ShiftState.ACTIVE_SHIFT if self.active_shift else ShiftState.NO_ACTIVE_SHIFT

    @property
    def active_shift_id(self) -> str | None:
        return self.active_shift.id if self.active_shift else None

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def set_active_shift(self, shift: Shift | None, *, confirmed: bool = True) -> None:
        previous_id = self.active_shift_id
        self.active_shift = shift
        self.confirmed_at = self.clock() if shift is not None and confirmed else None
        if shift is None:
            self.shift_payment_methods = []
        self._notify("active_shift" if previous_id != self.active_shift_id else "active_shift_snapshot")

    def is_fresh(self, window_seconds: float) -> bool:
        if self.active_shift is None or self.confirmed_at is None or not self.active_shift.is_open:
            return False
        return self.clock() - self.confirmed_at <= window_seconds

    def apply_sales_total(self, shift_id: str, total: Decimal) -> bool:
        shift = self.active_shift
        if shift is None or shift.id != shift_id or not shift.is_open:
            return False
        self.active_shift = shift.with_sales_total(total)
        self._notify("sales_total")
        return True

    def set_payment_methods(self, entries: list[PaymentMethodEntry]) -> None:
        self.shift_payment_methods = list(entries)
        self._notify("shift_payment_methods")

    def begin_check(self) -> int:
        self._check_token += 1
        self.is_checking_shift = True
        self.check_started_at = self.clock()
        self._notify("is_checking_shift")
        return self._check_token

    def end_check(self, token: int) -> None:
        # A newer check owns the guard once the watchdog has reset this one.
        if token != self._check_token or not self.is_checking_shift:
            return
        self.is_checking_shift = False
        self.check_started_at = None
        self._notify("is_checking_shift")

    def check_elapsed(self) -> float | None:
        if not self.is_checking_shift or self.check_started_at is None:
            return None
        return self.clock() - self.check_started_at

    def force_reset_check(self) -> None:
        self._check_token += 1
        self.is_checking_shift = False
        self.check_started_at = None
        self._notify("is_checking_shift")

    def set_loading(self, value: bool) -> None:
        self.is_loading = value
        self._notify("is_loading")

    def set_success(self, value: bool) -> None:
        self.success = value
        self._notify("success")

    def _notify(self, changed: str) -> None:
        for listener in list(self._listeners):
            listener(changed, self)
