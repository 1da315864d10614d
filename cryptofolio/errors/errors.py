from __future__ import annotations

from typing import Any, Optional

# --- Bus ---


class BusError(Exception):
    "Error in connection with the event bus"


class UnknownEventError(BusError):
    """Raised by a strict bus when an event name is not part of the registry."""

    def __init__(self, name: str) -> None:
        super().__init__(name)
        self.name = name

    def __str__(self) -> str:
        return f"Event '{self.name}' is not a registered event name"


# --- Data fetching ---


class FetchError(Exception):
    """Raised (and recorded) when a backend fetch fails after all retries."""

    def __init__(self, message: str, *, attempts: int = 0) -> None:
        super().__init__(message)
        self.attempts = attempts


class AuthorizationError(FetchError):
    """Backend refused the request (session missing, policy denied). Never retried."""


# --- Config ---


class ConfigurationError(ValueError):
    """Raised when configuration is invalid."""

    def __init__(
        self,
        message: str,
        *,
        field: Optional[str] = None,
        value: Any = None,
    ) -> None:
        self.field = field
        self.value = value
        super().__init__(message)

    def __str__(self) -> str:
        parts = [super().__str__()]
        if self.field:
            parts.append(f"[field={self.field}]")
        if self.value is not None:
            parts.append(f"[value={self.value!r}]")
        return " ".join(parts)
