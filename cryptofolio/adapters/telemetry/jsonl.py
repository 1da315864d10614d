"""JSON Lines Telemetry adapter.

Implements the Telemetry port by appending structured JSON objects (one per
line) to a sink file. Values that are not JSON native (Decimal, dataclasses,
datetimes) are written via their string form. Secret keys are redacted inside
nested mappings, lists and tuples too; other objects are not inspected.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Iterable, Mapping, Optional


class JsonlTelemetry:
    _REDACTION_TOKEN = "***REDACTED***"
    _DEFAULT_SECRET_KEYS = frozenset(
        {
            "api_key",
            "api_secret",
            "secret",
            "password",
            "token",
            "access_token",
            "refresh_token",
        }
    )

    def __init__(
        self,
        sink_path: Path,
        component: Optional[str] = "bus",
        secret_keys: Iterable[str] = _DEFAULT_SECRET_KEYS,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self._sink_path = sink_path if isinstance(sink_path, Path) else Path(sink_path)
        self._component = component
        self._secret_keys = frozenset(secret_keys)
        self._clock = clock

    def log(self, event: str, **fields: Any) -> None:
        if not event:
            raise ValueError("JsonlTelemetry.log(): event must be a non-empty string")
        extras = dict(fields)
        extras.pop("exc_info", None)

        # Tagging telemetry events with their subsystem (origin)
        component = extras.pop("component", self._component)

        sanitized_fields, redacted = self._sanitize_fields(extras)

        record: dict[str, Any] = {
            "event": event,
            "ts_utc": self._clock().isoformat(),
            **sanitized_fields,
        }
        if component is not None:
            record["component"] = component
        if redacted:
            record["redacted_fields"] = sorted(redacted)

        self._write_record(record)

    def _sanitize_fields(self, fields: Mapping[str, Any]) -> tuple[dict[str, Any], set[str]]:
        redacted: set[str] = set()
        return self._redact_mapping(fields, "", redacted), redacted

    def _redact_mapping(
        self, fields: Mapping[Any, Any], prefix: str, redacted: set[str]
    ) -> dict[Any, Any]:
        """Replace secret keys at any depth of mappings, lists and tuples. Paths are dotted."""
        sanitized: dict[Any, Any] = {}
        for key, value in fields.items():
            path = f"{prefix}{key}"
            if key in self._secret_keys:
                sanitized[key] = self._REDACTION_TOKEN
                redacted.add(path)
            else:
                sanitized[key] = self._redact_value(value, path, redacted)
        return sanitized

    def _redact_value(self, value: Any, path: str, redacted: set[str]) -> Any:
        if isinstance(value, Mapping):
            return self._redact_mapping(value, f"{path}.", redacted)
        if isinstance(value, (list, tuple)):
            return [
                self._redact_value(item, f"{path}.{i}", redacted) for i, item in enumerate(value)
            ]
        return value

    def _write_record(self, record: Mapping[str, Any]) -> None:
        payload = json.dumps(
            record, sort_keys=True, separators=(",", ":"), ensure_ascii=True, default=str
        )
        with self._sink_path.open("a", encoding="utf-8") as handle:
            handle.write(payload + "\n")
