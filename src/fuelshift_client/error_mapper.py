from __future__ import annotations

from typing import Any, Mapping

from .exceptions import (
    ApiError,
    AuthError,
    ConflictError,
    NotFoundError,
    PermissionError,
    RateLimitError,
    ServerError,
    ShiftAlreadyOpenError,
    ValidationError,
)

_ALREADY_OPEN_MARKERS = ("already open", "already an active shift", "active shift exists")


def map_error(status_code: int, payload: Mapping[str, Any] | None, trace_id: str | None) -> ApiError:
    payload = payload or {}
    message = str(payload.get("message") or payload.get("error") or "Request failed")
    code = str(payload.get("code") or _default_code(status_code))
    details = payload.get("details")
    payload_trace_id = payload.get("trace_id")
    resolved_trace_id = str(payload_trace_id) if payload_trace_id is not None else trace_id
    mapped: type[ApiError]
    if status_code == 401:
        mapped = AuthError
    elif status_code == 403:
        mapped = PermissionError
    elif status_code == 404:
        mapped = NotFoundError
    elif status_code in {400, 422}:
        mapped = ValidationError
    elif status_code == 409:
        mapped = ConflictError
    elif status_code == 429:
        mapped = RateLimitError
    elif status_code >= 500:
        mapped = ServerError
    else:
        mapped = ApiError
    if status_code in {400, 409, 422} and _mentions_open_shift(message, payload.get("error")):
        mapped = ShiftAlreadyOpenError
        code = "SHIFT_ALREADY_OPEN"
    return mapped(
        code=code,
        message=message,
        details=details,
        trace_id=resolved_trace_id,
        status_code=status_code,
        raw_payload=dict(payload),
    )


def _default_code(status_code: int) -> str:
    if status_code == 404:
        return "NOT_FOUND"
    if status_code >= 500:
        return "INTERNAL_ERROR"
    return "HTTP_ERROR"


def _mentions_open_shift(*texts: object) -> bool:
    combined = " ".join(str(text) for text in texts if text).lower()
    return any(marker in combined for marker in _ALREADY_OPEN_MARKERS)


class ErrorMapper:
    _KNOWN_CODES = {
        "NO_ACTIVE_SHIFT": ("No active shift.", "Open a shift before continuing."),
        "SHIFT_ALREADY_OPEN": (
            "Another shift is already open at this location.",
            "Refresh the active shift or close the open one first.",
        ),
        "VALIDATION_ERROR": ("The request has invalid values.", "Check the amounts entered."),
        "RESOLUTION_FAILED": (
            "Could not determine the active shift.",
            "Check the connection and retry.",
        ),
        "TIMEOUT_ERROR": ("The server took too long to respond.", "Retry the same operation."),
        "NETWORK_ERROR": ("The shift API is unreachable.", "Check the network and retry."),
        "INTERNAL_ERROR": ("Transient server error.", "Retry in a few seconds."),
    }

    @classmethod
    def to_payload(cls, error: Exception) -> dict:
        if isinstance(error, ApiError):
            message, suggestion = cls._KNOWN_CODES.get(
                error.code,
                (error.message, "Contact support with the trace_id."),
            )
            if error.code not in cls._KNOWN_CODES or error.code in {"VALIDATION_ERROR", "SHIFT_ALREADY_OPEN"}:
                message = error.message or message
            return {
                "code": error.code,
                "message": message,
                "details": error.details,
                "trace_id": error.trace_id,
                "suggestion": suggestion,
            }
        return {
            "code": "INTERNAL_ERROR",
            "message": str(error),
            "details": None,
            "trace_id": None,
            "suggestion": "Retry and report the incident if it persists.",
        }

    @classmethod
    def to_display_message(cls, error: Exception) -> str:
        payload = cls.to_payload(error)
        return f"[{payload['code']}] {payload['message']} (trace_id={payload['trace_id']})"
