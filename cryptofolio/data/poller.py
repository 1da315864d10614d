"""
Polling fetcher for backend data.

Wraps an async fetch (exchanges, assets, portfolio) with loading / error state,
retries with exponential backoff and an optional polling loop. Every successful
fetch is announced on the event bus so subscribed views can refresh.

- Transient errors are retried up to max_retries times, waiting
  retry_delay_s * 2**attempt between attempts.
- Authorization / permission failures are never retried.
- A failed refresh keeps the previous data and records the error; it does not raise.
- A failing announcement (mapper or bus) is logged; the fetched data is kept.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar

from cryptofolio.adapters.telemetry.log import LoggingTelemetry
from cryptofolio.config.configs import PollerConfig
from cryptofolio.core.bus import EventBus
from cryptofolio.errors.errors import AuthorizationError, FetchError
from cryptofolio.ports.telemetry import Telemetry

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Backend error messages come back localized
_AUTH_MARKERS = ("authorization", "autorización", "permission", "permiso")


@dataclass
class FetchState(Generic[T]):
    """Loading / error state of one fetcher, as seen by its consumers."""

    data: Optional[T] = None
    is_loading: bool = False
    error: Optional[FetchError] = None
    last_updated: Optional[datetime] = None
    retry_count: int = 0  # retries used by the latest refresh


def is_authorization_error(exc: BaseException) -> bool:
    if isinstance(exc, AuthorizationError):
        return True
    message = str(exc).lower()
    return any(marker in message for marker in _AUTH_MARKERS)


class PollingFetcher(Generic[T]):
    def __init__(
        self,
        fetch: Callable[[], Awaitable[T]],
        bus: EventBus,
        *,
        to_event: Optional[Callable[[T], Any]] = None,
        cfg: Optional[PollerConfig] = None,
        telemetry: Optional[Telemetry] = None,
        name: str = "poller",
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """
        fetch: coroutine function returning fresh data from the backend
        to_event: maps fetched data to a typed payload for bus.emit(); without it the
            raw data is published on cfg.event
        sleep: awaited between retries and polls (swap for a fake in tests)
        """
        self._fetch = fetch
        self._bus = bus
        self._to_event = to_event
        self._cfg = cfg or PollerConfig()
        self._telemetry: Telemetry = telemetry or LoggingTelemetry(logger, logging.INFO)
        self._name = name
        self._sleep = sleep

        self._state: FetchState[T] = FetchState()
        self._task: Optional[asyncio.Task[None]] = None

    @property
    def state(self) -> FetchState[T]:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    # --- single fetch ---

    async def refresh(self) -> FetchState[T]:
        state = self._state
        state.is_loading = True
        state.error = None
        state.retry_count = 0
        attempt = 0
        try:
            while True:
                try:
                    data = await self._fetch()
                except Exception as exc:
                    if not is_authorization_error(exc) and attempt < self._cfg.max_retries:
                        delay = self._cfg.retry_delay_s * (2**attempt)
                        attempt += 1
                        state.retry_count = attempt
                        logger.warning(
                            f"[{self._name}] Fetch failed, retrying "
                            f"({attempt}/{self._cfg.max_retries}) in {delay:.2f}s: {exc}"
                        )
                        await self._sleep(delay)
                        continue
                    state.error = self._final_error(exc, attempt)
                    self._telemetry.log(
                        "fetch_failed",
                        fetcher=self._name,
                        attempts=attempt + 1,
                        error=str(state.error),
                    )
                    return state

                state.data = data
                state.last_updated = datetime.now(timezone.utc)
                state.retry_count = 0
                self._telemetry.log("fetch_succeeded", fetcher=self._name, attempts=attempt + 1)
                break
        finally:
            state.is_loading = False

        try:
            self._announce(data)
        except Exception as exc:
            logger.exception(f"[{self._name}] Failed to announce refreshed data")
            self._telemetry.log("announce_failed", fetcher=self._name, error=repr(exc))
        return state

    def _final_error(self, exc: Exception, attempt: int) -> FetchError:
        if is_authorization_error(exc):
            return AuthorizationError(f"Authorization error: {exc}", attempts=attempt + 1)
        return FetchError(
            f"{exc} (after {self._cfg.max_retries} retries)", attempts=attempt + 1
        )

    def _announce(self, data: T) -> None:
        if self._to_event is not None:
            self._bus.emit(self._to_event(data))
        else:
            self._bus.publish(self._cfg.event, data)

    # --- polling loop ---

    def start(self) -> asyncio.Task[None]:
        """Start polling on the running loop. Without interval_s, refresh once."""
        if self.is_running:
            raise RuntimeError(f"[{self._name}] Poller already running")
        self._task = asyncio.get_running_loop().create_task(self._run())
        logger.info(f"[{self._name}] Polling started (interval={self._cfg.interval_s})")
        return self._task

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info(f"[{self._name}] Polling stopped")

    async def _run(self) -> None:
        while True:
            await self.refresh()
            if self._cfg.interval_s is None:
                return
            await self._sleep(self._cfg.interval_s)
