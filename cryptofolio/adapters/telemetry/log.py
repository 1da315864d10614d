"""Telemetry adapter over the standard logging module.

Default hook of the bus: every telemetry event becomes one log record on the
given logger. Error events are logged at ERROR, everything else at the
configured level. An `exc_info` field is handed to the logger, not rendered.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

_ERROR_EVENTS = frozenset({"bus_subscriber_error", "fetch_failed", "announce_failed"})


class LoggingTelemetry:
    def __init__(self, logger: Optional[logging.Logger] = None, level: int = logging.DEBUG) -> None:
        self._logger = logger or logging.getLogger("cryptofolio.telemetry")
        self._level = level

    def log(self, event: str, **fields: Any) -> None:
        level = logging.ERROR if event in _ERROR_EVENTS else self._level
        if not self._logger.isEnabledFor(level):
            return
        exc_info = fields.pop("exc_info", None)
        rendered = " ".join(f"{key}={value!r}" for key, value in fields.items())
        self._logger.log(
            level, f"{event} {rendered}".rstrip(), exc_info=exc_info, extra={"event": event}
        )
