from __future__ import annotations

import argparse
import asyncio
import json
from typing import Any

from .config import ConfigError, load_config
from .coordinator import ShiftCoordinator
from .exceptions import ApiError
from .payments import cash_total, reconcile
from .validation import coerce_payment_entries


def _payment_arg(raw: str) -> dict[str, Any]:
    kind, _, amount = raw.partition("=")
    if not kind.strip() or not amount.strip():
        raise argparse.ArgumentTypeError(f"Expected KIND=AMOUNT, got {raw!r}")
    return {"payment_method": kind.strip(), "amount": amount.strip()}


def _dump(payload: Any) -> None:
    print(json.dumps(payload, indent=2, default=str))


async def cmd_status(coordinator: ShiftCoordinator, args: argparse.Namespace) -> None:
    shift = await coordinator.check_active_shift(args.identity, skip_cache=True)
    _dump({"active_shift": shift.model_dump(mode="json") if shift else None})


async def cmd_open(coordinator: ShiftCoordinator, args: argparse.Namespace) -> None:
    shift = await coordinator.begin_shift(args.opening_cash, args.employee or None)
    _dump({"opened": shift.model_dump(mode="json")})


async def cmd_close(coordinator: ShiftCoordinator, args: argparse.Namespace) -> None:
    await coordinator.check_active_shift(args.identity, skip_cache=True)
    payments = args.payment
    closing_cash = args.closing_cash
    if closing_cash is None:
        shift_id = coordinator.active_shift.id if coordinator.active_shift else ""
        closing_cash = cash_total(coerce_payment_entries(payments, shift_id))
    closed = await coordinator.end_shift(closing_cash, payments)
    result: dict[str, Any] = {"closed": closed.model_dump(mode="json") if closed else None}
    if closed is not None and closed.closing_cash is not None:
        entries = coerce_payment_entries(payments, closed.id)
        result["reconciliation"] = reconcile(closed, entries).model_dump(mode="json")
    _dump(result)


async def cmd_payments(coordinator: ShiftCoordinator, args: argparse.Namespace) -> None:
    entries = await coordinator.list_payment_methods(args.shift_id)
    _dump([entry.model_dump(mode="json") for entry in entries])


async def _run(args: argparse.Namespace) -> None:
    config = load_config(args.env_file)
    coordinator = ShiftCoordinator.from_config(config, args.identity, location_id=args.location_id)
    try:
        await coordinator.start(check=False)
        await args.func(coordinator, args)
    finally:
        await coordinator.aclose()


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Fuel station shift smoke CLI")
    parser.add_argument("--env-file", default=None)
    parser.add_argument("--identity", required=True, help="Employee id acting on the shift")
    parser.add_argument("--location-id")
    subparsers = parser.add_subparsers(dest="command", required=True)

    status_parser = subparsers.add_parser("status")
    status_parser.set_defaults(func=cmd_status)

    open_parser = subparsers.add_parser("open")
    open_parser.add_argument("--opening-cash", required=True)
    open_parser.add_argument("--employee", action="append", default=[])
    open_parser.set_defaults(func=cmd_open)

    close_parser = subparsers.add_parser("close")
    close_parser.add_argument("--closing-cash", help="Defaults to the sum of cash payments")
    close_parser.add_argument("--payment", action="append", default=[], type=_payment_arg, help="KIND=AMOUNT, e.g. card=2000")
    close_parser.set_defaults(func=cmd_close)

    payments_parser = subparsers.add_parser("payments")
    payments_parser.add_argument("--shift-id", required=True)
    payments_parser.set_defaults(func=cmd_payments)

    args = parser.parse_args(argv)
    try:
        asyncio.run(_run(args))
    except ApiError as exc:
        _dump({"error": exc.code, "message": exc.message, "trace_id": exc.trace_id})
        raise SystemExit(1) from exc
    except ConfigError as exc:
        parser.error(str(exc))


if __name__ == "__main__":
    main()
