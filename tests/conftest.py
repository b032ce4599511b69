from __future__ import annotations

import asyncio
import sys
from decimal import Decimal
from pathlib import Path
from typing import Any, Sequence

import pytest

BASE_DIR = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(BASE_DIR / "src"))

from fuelshift_client.exceptions import ShiftAlreadyOpenError, TransportError  # noqa: E402
from fuelshift_client.models import PaymentMethodEntry, SalesTotal, Shift  # noqa: E402
from fuelshift_client.session import ShiftSession  # noqa: E402
from fuelshift_client.shift_cache import ShiftCache  # noqa: E402


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def network_down(operation: str = "test") -> TransportError:
    return TransportError(code="NETWORK_ERROR", message=f"offline during {operation}")


def make_shift(shift_id: str = "shift-1", identities: Sequence[str] = ("emp-a",), **overrides: Any) -> Shift:
    data: dict[str, Any] = {
        "id": shift_id,
        "status": "OPEN",
        "opening_cash": "100000",
        "start_time": "2025-05-20T06:00:00Z",
        "sales_total": "0",
        "employees": [{"employee_id": identity} for identity in identities],
    }
    data.update(overrides)
    return Shift.model_validate(data)


def make_closed_shift(shift: Shift, closing_cash: str) -> Shift:
    return Shift.model_validate(
        {
            **shift.model_dump(mode="json"),
            "status": "CLOSED",
            "closing_cash": closing_cash,
            "end_time": "2025-05-20T14:00:00Z",
        }
    )


class FakeShiftStore:
    """In-memory stand-in for the shift API with call accounting."""

    def __init__(self) -> None:
        self.calls: list[str] = []
        self.system_shift: Shift | None = None
        self.identity_shifts: dict[str, Shift | None] = {}
        self.system_errors: list[Exception] = []
        self.identity_errors: list[Exception] = []
        self.start_error: Exception | None = None
        self.close_error: Exception | None = None
        self.payments: dict[str, list[PaymentMethodEntry]] = {}
        self.payment_list_error: Exception | None = None
        self.sales_totals: dict[str, SalesTotal] = {}
        self.sales_error: Exception | None = None
        self.identity_gate: asyncio.Event | None = None
        self.closed_with: dict[str, Any] = {}
        self._next_id = 1

    async def get_system_active_shift(self) -> Shift | None:
        self.calls.append("get_system_active_shift")
        if self.system_errors:
            raise self.system_errors.pop(0)
        return self.system_shift

    async def get_active_shift_for_identity(self, identity_id: str) -> Shift | None:
        self.calls.append(f"get_active_shift_for_identity:{identity_id}")
        if self.identity_gate is not None:
            await self.identity_gate.wait()
        if self.identity_errors:
            raise self.identity_errors.pop(0)
        return self.identity_shifts.get(identity_id)

    async def start_shift(self, opening_cash: Decimal, identity_ids: Sequence[str]) -> Shift:
        self.calls.append("start_shift")
        if self.start_error is not None:
            raise self.start_error
        if self.system_shift is not None:
            raise ShiftAlreadyOpenError(code="SHIFT_ALREADY_OPEN", message="A shift is already open", status_code=409)
        shift = make_shift(f"shift-{self._next_id}", identity_ids, opening_cash=str(opening_cash))
        self._next_id += 1
        self.system_shift = shift
        for identity in identity_ids:
            self.identity_shifts[identity] = shift
        return shift

    async def close_shift(
        self,
        shift_id: str,
        closing_cash: Decimal,
        payment_entries: Sequence[PaymentMethodEntry] | None = None,
    ) -> Shift | None:
        self.calls.append("close_shift")
        if self.close_error is not None:
            raise self.close_error
        self.closed_with = {"shift_id": shift_id, "closing_cash": closing_cash, "entries": list(payment_entries or [])}
        shift = self.system_shift
        self.system_shift = None
        self.identity_shifts = {key: None for key in self.identity_shifts}
        if payment_entries:
            self.payments[shift_id] = list(payment_entries)
        if shift is None:
            return None
        return make_closed_shift(shift, str(closing_cash))

    async def get_shift_payment_methods(self, shift_id: str) -> list[PaymentMethodEntry]:
        self.calls.append("get_shift_payment_methods")
        if self.payment_list_error is not None:
            raise self.payment_list_error
        return list(self.payments.get(shift_id, []))

    async def add_shift_payment_methods(self, shift_id: str, entries: Sequence[PaymentMethodEntry]) -> None:
        self.calls.append("add_shift_payment_methods")
        self.payments.setdefault(shift_id, []).extend(entries)

    async def delete_shift_payment_methods(self, shift_id: str) -> None:
        self.calls.append("delete_shift_payment_methods")
        self.payments.pop(shift_id, None)

    async def get_shift_sales_total(self, shift_id: str) -> SalesTotal:
        self.calls.append("get_shift_sales_total")
        if self.sales_error is not None:
            raise self.sales_error
        return self.sales_totals.get(shift_id, SalesTotal(total=Decimal("0")))

    def count(self, prefix: str) -> int:
        return sum(1 for call in self.calls if call.startswith(prefix))


async def no_sleep(_: float) -> None:
    return None


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> FakeShiftStore:
    return FakeShiftStore()


@pytest.fixture
def cache(tmp_path) -> ShiftCache:
    return ShiftCache(base_dir=tmp_path / "cache")


@pytest.fixture
def session(clock: FakeClock) -> ShiftSession:
    return ShiftSession(identity_id="emp-a", clock=clock)
