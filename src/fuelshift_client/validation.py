from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Mapping

from pydantic import ValidationError as ModelValidationError

from .exceptions import ShiftValidationError
from .models import PaymentMethodEntry


@dataclass(frozen=True)
class CashValidationIssue:
    field: str
    reason: str


@dataclass(frozen=True)
class CashValidationResult:
    ok: bool
    issues: list[CashValidationIssue]

    def raise_for_issues(self) -> None:
        if not self.ok:
            raise self.as_error()

    def as_error(self) -> ShiftValidationError:
        summary = "; ".join(f"{issue.field} {issue.reason}" for issue in self.issues)
        return ShiftValidationError(
            code="VALIDATION_ERROR",
            message=summary,
            details={"issues": [{"field": issue.field, "reason": issue.reason} for issue in self.issues]},
        )


def parse_cash_amount(value: Any) -> Decimal | None:
    """Return the amount as a Decimal, or None when it is not a usable number."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip().replace(",", "")
        if not value:
            return None
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
    if not amount.is_finite():
        return None
    return amount


def _require_non_negative_amount(value: Any, field: str, issues: list[CashValidationIssue]) -> Decimal | None:
    amount = parse_cash_amount(value)
    if amount is None:
        issues.append(CashValidationIssue(field=field, reason="must be a number"))
        return None
    if amount < 0:
        issues.append(CashValidationIssue(field=field, reason="must be zero or greater"))
        return None
    return amount


def validate_begin_payload(opening_cash: Any, identity_ids: Iterable[str]) -> CashValidationResult:
    issues: list[CashValidationIssue] = []
    _require_non_negative_amount(opening_cash, "opening_cash", issues)
    ids = list(identity_ids)
    if not ids:
        issues.append(CashValidationIssue(field="identity_ids", reason="needs at least one identity"))
    elif any(not str(identity).strip() for identity in ids):
        issues.append(CashValidationIssue(field="identity_ids", reason="cannot contain blank identities"))
    return CashValidationResult(ok=not issues, issues=issues)


def validate_close_payload(closing_cash: Any) -> CashValidationResult:
    issues: list[CashValidationIssue] = []
    _require_non_negative_amount(closing_cash, "closing_cash", issues)
    return CashValidationResult(ok=not issues, issues=issues)


def require_cash_amount(value: Any, field: str) -> Decimal:
    issues: list[CashValidationIssue] = []
    amount = _require_non_negative_amount(value, field, issues)
    if amount is None:
        raise CashValidationResult(ok=False, issues=issues).as_error()
    return amount


def coerce_payment_entries(
    entries: Iterable[PaymentMethodEntry | Mapping[str, Any]],
    shift_id: str,
) -> list[PaymentMethodEntry]:
    """Validate entries and bind them to ``shift_id``.

    Mappings may use ``reference`` for the free-text note, as the payment form does.
    """
    coerced: list[PaymentMethodEntry] = []
    issues: list[CashValidationIssue] = []
    for index, entry in enumerate(entries):
        field = f"payment_methods[{index}]"
        if isinstance(entry, PaymentMethodEntry):
            coerced.append(entry.model_copy(update={"shift_id": shift_id}))
            continue
        data = dict(entry)
        if "reference" in data and "notes" not in data:
            data["notes"] = data.pop("reference")
        data["shift_id"] = shift_id
        try:
            coerced.append(PaymentMethodEntry.model_validate(data))
        except ModelValidationError as exc:
            reasons = ", ".join(sorted({str(error["loc"][0]) for error in exc.errors() if error.get("loc")}))
            issues.append(CashValidationIssue(field=field, reason=f"is invalid ({reasons or 'entry'})"))
    CashValidationResult(ok=not issues, issues=issues).raise_for_issues()
    return coerced
