from __future__ import annotations

import json
from decimal import Decimal

import httpx
import pytest

from fuelshift_client.clients.shift_store_client import ShiftStoreClient
from fuelshift_client.config import ClientConfig
from fuelshift_client.exceptions import (
    ApiError,
    AuthError,
    ServerError,
    ShiftAlreadyOpenError,
    TransportError,
)
from fuelshift_client.http_client import TRACE_HEADER, HttpClient
from fuelshift_client.models import PaymentMethodEntry, ShiftStatus

BASE_URL = "https://api.test/functions/v1"

OPEN_SHIFT = {
    "id": "shift-1",
    "is_active": True,
    "opening_cash": 100000,
    "start_time": "2025-05-20T06:00:00Z",
    "employee_id": "emp-a",
    "employees": [{"employee_id": "emp-a", "employee_name": "Ana"}],
}


class _Recorder:
    def __init__(self, responses):
        self.responses = list(responses)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        result = self.responses.pop(0)
        if isinstance(result, Exception):
            raise result
        return result


def _client(recorder: _Recorder, **kwargs) -> ShiftStoreClient:
    config = ClientConfig(env_name="test", api_base_url=BASE_URL)
    transport = httpx.AsyncClient(base_url=BASE_URL + "/", transport=httpx.MockTransport(recorder))
    return ShiftStoreClient(http=HttpClient(config, client=transport), access_token="tok-1", **kwargs)


@pytest.mark.asyncio
async def test_system_active_shift_unwraps_envelope() -> None:
    recorder = _Recorder([httpx.Response(200, json={"data": OPEN_SHIFT})])
    client = _client(recorder, location_id="station-7")

    shift = await client.get_system_active_shift()

    assert shift.id == "shift-1"
    assert shift.status is ShiftStatus.OPEN
    assert shift.identity_ids == ["emp-a"]
    request = recorder.requests[0]
    assert request.method == "GET"
    assert request.url.path == "/functions/v1/shifts/system-active"
    assert request.headers["Authorization"] == "Bearer tok-1"
    assert request.headers["X-Location-ID"] == "station-7"
    assert request.headers[TRACE_HEADER]


@pytest.mark.asyncio
async def test_not_found_means_no_active_shift() -> None:
    recorder = _Recorder([httpx.Response(404, json={"error": "No active shift found"})])

    assert await _client(recorder).get_active_shift_for_identity("emp-a") is None
    assert recorder.requests[0].url.path.endswith("/shifts/active/emp-a")


@pytest.mark.asyncio
async def test_null_data_means_no_active_shift() -> None:
    recorder = _Recorder([httpx.Response(200, json={"data": None})])

    assert await _client(recorder).get_active_shift_for_identity("emp-a") is None


@pytest.mark.asyncio
async def test_start_shift_posts_amount_and_idempotency_key() -> None:
    recorder = _Recorder([httpx.Response(201, json=OPEN_SHIFT)])

    shift = await _client(recorder).start_shift(Decimal("100000"), ["emp-a"])

    request = recorder.requests[0]
    assert request.method == "POST"
    assert request.url.path.endswith("/shifts")
    assert json.loads(request.content) == {"opening_cash": "100000", "employee_ids": ["emp-a"]}
    assert request.headers["Idempotency-Key"]
    assert shift.opening_cash == Decimal("100000")


@pytest.mark.asyncio
async def test_start_shift_conflict_maps_to_already_open() -> None:
    recorder = _Recorder(
        [httpx.Response(400, json={"error": "There is already an active shift"}, headers={TRACE_HEADER: "srv-1"})]
    )

    with pytest.raises(ShiftAlreadyOpenError) as excinfo:
        await _client(recorder).start_shift(Decimal("1"), ["emp-a"])

    assert excinfo.value.trace_id == "srv-1"


@pytest.mark.asyncio
async def test_start_shift_without_data_is_an_error() -> None:
    recorder = _Recorder([httpx.Response(200, json={"data": None})])

    with pytest.raises(ApiError) as excinfo:
        await _client(recorder).start_shift(Decimal("1"), ["emp-a"])

    assert excinfo.value.code == "EMPTY_RESPONSE"


@pytest.mark.asyncio
async def test_close_shift_sends_entries() -> None:
    closed = {**OPEN_SHIFT, "is_active": False, "closing_cash": 102300, "end_time": "2025-05-20T14:00:00Z"}
    recorder = _Recorder([httpx.Response(200, json={"data": closed})])
    entries = [PaymentMethodEntry(shift_id="shift-1", payment_method="card", amount=Decimal("2000"))]

    result = await _client(recorder).close_shift("shift-1", Decimal("102300"), entries)

    body = json.loads(recorder.requests[0].content)
    assert recorder.requests[0].url.path.endswith("/shifts/shift-1/close")
    assert body == {
        "closing_cash": "102300",
        "payment_methods": [{"shift_id": "shift-1", "payment_method": "card", "amount": "2000"}],
    }
    assert result.status is ShiftStatus.CLOSED
    assert result.closing_cash == Decimal("102300")


@pytest.mark.asyncio
async def test_payment_methods_round_trip_routes() -> None:
    recorder = _Recorder(
        [
            httpx.Response(200, json={"data": [{"id": "pm-1", "shift_id": "shift-1", "payment_method": "cash", "amount": 5}]}),
            httpx.Response(201, json={"data": []}),
            httpx.Response(204),
        ]
    )
    client = _client(recorder)

    listed = await client.get_shift_payment_methods("shift-1")
    await client.add_shift_payment_methods("shift-1", listed)
    await client.delete_shift_payment_methods("shift-1")

    assert [entry.id for entry in listed] == ["pm-1"]
    assert [request.method for request in recorder.requests] == ["GET", "POST", "DELETE"]
    assert all(request.url.path.endswith("/shifts/shift-1/payment-methods") for request in recorder.requests)
    assert json.loads(recorder.requests[1].content)[0]["payment_method"] == "cash"


@pytest.mark.asyncio
async def test_sales_total() -> None:
    recorder = _Recorder([httpx.Response(200, json={"data": {"total": "4500.25", "shift_id": "shift-1"}})])

    result = await _client(recorder).get_shift_sales_total("shift-1")

    assert result.total == Decimal("4500.25")
    assert result.shift_id == "shift-1"


@pytest.mark.asyncio
async def test_malformed_payload_is_invalid_response() -> None:
    recorder = _Recorder([httpx.Response(200, json={"data": {"total": "lots"}})])

    with pytest.raises(ApiError) as excinfo:
        await _client(recorder).get_shift_sales_total("shift-1")

    assert excinfo.value.code == "INVALID_RESPONSE"


@pytest.mark.asyncio
async def test_http_errors_are_mapped_once() -> None:
    recorder = _Recorder([httpx.Response(401, json={"code": "UNAUTHORIZED", "message": "expired"})])

    with pytest.raises(AuthError):
        await _client(recorder).get_system_active_shift()

    assert len(recorder.requests) == 1


@pytest.mark.asyncio
async def test_server_error_is_not_retried_by_the_client() -> None:
    recorder = _Recorder([httpx.Response(503, text="upstream down")])

    with pytest.raises(ServerError) as excinfo:
        await _client(recorder).get_active_shift_for_identity("emp-a")

    assert excinfo.value.message == "upstream down"
    assert len(recorder.requests) == 1


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("failure", "code"),
    [
        (httpx.ReadTimeout("slow"), "TIMEOUT_ERROR"),
        (httpx.ConnectError("refused"), "NETWORK_ERROR"),
    ],
)
async def test_transport_failures(failure, code) -> None:
    client = _client(_Recorder([failure]))

    with pytest.raises(TransportError) as excinfo:
        await client.get_system_active_shift()

    assert excinfo.value.code == code
    assert excinfo.value.is_transient
    assert client.http.last_operation.operation == "shifts.system_active"
