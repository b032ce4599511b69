from __future__ import annotations

from dataclasses import dataclass


@dataclass
class ApiError(Exception):
    code: str
    message: str
    details: object | None = None
    trace_id: str | None = None
    status_code: int = 0
    raw_payload: object | None = None

    def __str__(self) -> str:
        trace = f" trace_id={self.trace_id}" if self.trace_id else ""
        return f"[{self.status_code}] {self.code}: {self.message}{trace}"

    @property
    def is_transient(self) -> bool:
        return False


class AuthError(ApiError):
    """Authentication failed or session is invalid."""


class PermissionError(ApiError):
    """Authorization denied by the shift API."""


class NotFoundError(ApiError):
    pass


class ValidationError(ApiError):
    """Server-side validation failure (400/422)."""


class ConflictError(ApiError):
    """409 or conflict-style errors."""


class ShiftAlreadyOpenError(ConflictError):
    """Another shift is already open at this location."""


class RateLimitError(ApiError):
    """429 throttling error."""


class ServerError(ApiError):
    """5xx server-side failures."""

    @property
    def is_transient(self) -> bool:
        return True


class TransportError(ApiError):
    """Network/transport failure before an HTTP response was returned."""

    @property
    def is_transient(self) -> bool:
        return True


class ShiftValidationError(ApiError):
    """Input rejected locally, before any request was sent."""


class NoActiveShiftError(ShiftValidationError):
    """The operation needs an active shift and none is held."""


class ShiftResolutionError(ApiError):
    """The active shift could not be determined after all retries."""


def validation_failure(message: str, *, field: str | None = None, code: str = "VALIDATION_ERROR") -> ShiftValidationError:
    details = {"field": field} if field else None
    return ShiftValidationError(code=code, message=message, details=details)


def no_active_shift(operation: str) -> NoActiveShiftError:
    return NoActiveShiftError(
        code="NO_ACTIVE_SHIFT",
        message="No active shift",
        details={"operation": operation},
    )
