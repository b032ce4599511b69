from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ShiftStatus(str, Enum):
    OPEN = "OPEN"
    CLOSED = "CLOSED"


class PaymentMethodKind(str, Enum):
    CASH = "cash"
    CARD = "card"
    BANK_TRANSFER = "bank_transfer"
    MOBILE_PAYMENT = "mobile_payment"


class ShiftEmployee(BaseModel):
    model_config = ConfigDict(extra="allow")

    employee_id: str
    employee_name: str | None = None
    employee_position: str | None = None


class Shift(BaseModel):
    """Snapshot of one work session as returned by the shift API."""

    model_config = ConfigDict(extra="allow")

    id: str
    status: ShiftStatus = ShiftStatus.OPEN
    opening_cash: Decimal = Field(default=Decimal("0"), ge=0)
    closing_cash: Decimal | None = Field(default=None, ge=0)
    start_time: datetime | None = None
    end_time: datetime | None = None
    sales_total: Decimal = Field(default=Decimal("0"), ge=0)
    employee_id: str | None = None
    employees: list[ShiftEmployee] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _derive_status(cls, data: Any) -> Any:
        # Older payloads only carry is_active.
        if isinstance(data, dict) and "status" not in data and "is_active" in data:
            data = dict(data)
            data["status"] = ShiftStatus.OPEN if data["is_active"] else ShiftStatus.CLOSED
        return data

    @model_validator(mode="after")
    def _check_closed_fields(self) -> "Shift":
        if self.status is ShiftStatus.CLOSED and self.end_time is None:
            raise ValueError("closed shift requires end_time")
        if self.status is ShiftStatus.OPEN and self.end_time is not None:
            raise ValueError("open shift cannot have end_time")
        if self.status is ShiftStatus.OPEN and self.closing_cash is not None:
            raise ValueError("open shift cannot have closing_cash")
        return self

    @property
    def is_open(self) -> bool:
        return self.status is ShiftStatus.OPEN

    @property
    def identity_ids(self) -> list[str]:
        ids = [employee.employee_id for employee in self.employees]
        if self.employee_id and self.employee_id not in ids:
            ids.append(self.employee_id)
        return ids

    def is_assigned_to(self, identity_id: str) -> bool:
        return identity_id in self.identity_ids

    def with_sales_total(self, total: Decimal) -> "Shift":
        if not self.is_open:
            raise ValueError(f"shift {self.id} is closed; sales total is frozen")
        return self.model_copy(update={"sales_total": total})


class PaymentMethodEntry(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str | None = None
    shift_id: str | None = None
    payment_method: PaymentMethodKind
    amount: Decimal = Field(ge=0)
    notes: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class SalesTotal(BaseModel):
    model_config = ConfigDict(extra="allow")

    total: Decimal = Field(default=Decimal("0"), ge=0)
    shift_id: str | None = None


class ShiftStartRequest(BaseModel):
    opening_cash: Decimal = Field(ge=0)
    employee_ids: list[str]


class ShiftCloseRequest(BaseModel):
    closing_cash: Decimal = Field(ge=0)
    payment_methods: list[PaymentMethodEntry] | None = None


class CashReconciliation(BaseModel):
    shift_id: str
    opening_cash: Decimal
    closing_cash: Decimal
    cash_difference: Decimal
    entries_total: Decimal
    cash_entries_total: Decimal
    entries_gap: Decimal
