from __future__ import annotations

import uuid
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Protocol, Sequence

from pydantic import ValidationError as ModelValidationError

from ..exceptions import ApiError, NotFoundError
from ..models import PaymentMethodEntry, SalesTotal, Shift, ShiftCloseRequest, ShiftStartRequest
from .base import BaseClient


class RemoteShiftStore(Protocol):
    async def get_system_active_shift(self) -> Shift | None: ...

    async def get_active_shift_for_identity(self, identity_id: str) -> Shift | None: ...

    async def start_shift(self, opening_cash: Decimal, identity_ids: Sequence[str]) -> Shift: ...

    async def close_shift(
        self,
        shift_id: str,
        closing_cash: Decimal,
        payment_entries: Sequence[PaymentMethodEntry] | None = None,
    ) -> Shift | None: ...

    async def get_shift_payment_methods(self, shift_id: str) -> list[PaymentMethodEntry]: ...

    async def add_shift_payment_methods(self, shift_id: str, entries: Sequence[PaymentMethodEntry]) -> None: ...

    async def delete_shift_payment_methods(self, shift_id: str) -> None: ...

    async def get_shift_sales_total(self, shift_id: str) -> SalesTotal: ...


@dataclass
class ShiftStoreClient(BaseClient):
    """HTTP adapter for the ``shifts`` function of the back-office API."""

    async def get_system_active_shift(self) -> Shift | None:
        try:
            data = await self._request("GET", "shifts/system-active", operation="shifts.system_active")
        except NotFoundError:
            return None
        return _optional_shift(data)

    async def get_active_shift_for_identity(self, identity_id: str) -> Shift | None:
        try:
            data = await self._request("GET", f"shifts/active/{identity_id}", operation="shifts.active_for_identity")
        except NotFoundError:
            return None
        return _optional_shift(data)

    async def start_shift(self, opening_cash: Decimal, identity_ids: Sequence[str]) -> Shift:
        request = ShiftStartRequest(opening_cash=opening_cash, employee_ids=list(identity_ids))
        data = await self._request(
            "POST",
            "shifts",
            json_body=request.model_dump(mode="json"),
            headers={"Idempotency-Key": str(uuid.uuid4())},
            operation="shifts.start",
        )
        shift = _optional_shift(data)
        if shift is None:
            raise ApiError(code="EMPTY_RESPONSE", message="No data returned from start operation", status_code=200)
        return shift

    async def close_shift(
        self,
        shift_id: str,
        closing_cash: Decimal,
        payment_entries: Sequence[PaymentMethodEntry] | None = None,
    ) -> Shift | None:
        request = ShiftCloseRequest(
            closing_cash=closing_cash,
            payment_methods=list(payment_entries) if payment_entries else None,
        )
        data = await self._request(
            "POST",
            f"shifts/{shift_id}/close",
            json_body=request.model_dump(mode="json", exclude_none=True),
            headers={"Idempotency-Key": str(uuid.uuid4())},
            operation="shifts.close",
        )
        return _optional_shift(data)

    async def get_shift_payment_methods(self, shift_id: str) -> list[PaymentMethodEntry]:
        data = _unwrap(
            await self._request("GET", f"shifts/{shift_id}/payment-methods", operation="shifts.payment_methods")
        )
        if data is None:
            return []
        if not isinstance(data, list):
            raise _invalid_response("Expected payment methods response to be a JSON array")
        try:
            return [PaymentMethodEntry.model_validate(row) for row in data]
        except ModelValidationError as exc:
            raise _invalid_response(str(exc)) from exc

    async def add_shift_payment_methods(self, shift_id: str, entries: Sequence[PaymentMethodEntry]) -> None:
        body = [entry.model_dump(mode="json", exclude_none=True) for entry in entries]
        await self._request(
            "POST",
            f"shifts/{shift_id}/payment-methods",
            json_body=body,
            operation="shifts.add_payment_methods",
        )

    async def delete_shift_payment_methods(self, shift_id: str) -> None:
        await self._request(
            "DELETE",
            f"shifts/{shift_id}/payment-methods",
            operation="shifts.delete_payment_methods",
        )

    async def get_shift_sales_total(self, shift_id: str) -> SalesTotal:
        data = _unwrap(await self._request("GET", f"shifts/{shift_id}/sales-total", operation="shifts.sales_total"))
        if not isinstance(data, dict):
            raise _invalid_response("Expected sales total response to be a JSON object")
        try:
            return SalesTotal.model_validate(data)
        except ModelValidationError as exc:
            raise _invalid_response(str(exc)) from exc


def _unwrap(data: Any) -> Any:
    if isinstance(data, dict) and "data" in data and "id" not in data:
        return data["data"]
    return data


def _optional_shift(data: Any) -> Shift | None:
    data = _unwrap(data)
    if not data:
        return None
    if not isinstance(data, dict):
        raise _invalid_response("Expected shift response to be a JSON object")
    try:
        return Shift.model_validate(data)
    except ModelValidationError as exc:
        raise _invalid_response(str(exc)) from exc


def _invalid_response(message: str) -> ApiError:
    return ApiError(code="INVALID_RESPONSE", message=message, status_code=200)
