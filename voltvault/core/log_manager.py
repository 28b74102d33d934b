"""JSON structured event logging."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict

from ..utils.logbook import get_logger

_logger = get_logger("events")


def log_event(action: str, level: int = logging.INFO, **payload: Any) -> None:
    """Emit a single JSON line describing *action*.

    Callers must never pass secret values in *payload*.
    """

    if not _logger.isEnabledFor(level):
        return
    entry: Dict[str, Any] = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "action": action,
        **payload,
    }
    _logger.log(level, json.dumps(entry, sort_keys=True, default=str))


__all__ = ["log_event"]
