import json
import logging
from datetime import datetime, timezone
from typing import Any


def get_logger(name: str) -> logging.Logger:
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger
    logger.setLevel(logging.INFO)
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)
    return logger


def log_event(
    logger: logging.Logger,
    module: str,
    action: str,
    outcome: str,
    *,
    identity_id: str | None = None,
    shift_id: str | None = None,
    trace_id: str | None = None,
    level: int = logging.INFO,
    **context: Any,
) -> None:
    payload = {
        "ts": datetime.now(timezone.utc).isoformat(),
        "level": logging.getLevelName(level),
        "module": module,
        "action": action,
        "identity_id": identity_id,
        "shift_id": shift_id,
        "trace_id": trace_id,
        "outcome": outcome,
    }
    if context:
        payload["context"] = context
    logger.log(level, json.dumps(payload, default=str))
