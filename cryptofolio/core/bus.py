from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Type

from cryptofolio.adapters.telemetry.log import LoggingTelemetry
from cryptofolio.config.configs import BusConfig
from cryptofolio.errors.errors import BusError, UnknownEventError
from cryptofolio.ports.telemetry import Telemetry
from cryptofolio.types.events import EVENT_TYPES, DomainEvent
from cryptofolio.types.topics import EventName, event_key, is_known

logger = logging.getLogger(__name__)

Callback = Callable[..., Any]
Disposer = Callable[[], None]


# --- Data structures ---


@dataclass(eq=False)
class _Registration:
    """One (event name, callback) entry. Compared by identity."""

    name: str
    callback: Callback
    active: bool = True


@dataclass
class _EventState:
    """Internal per-event subscriber list & stats."""

    name: str
    subscribers: list[_Registration] = field(default_factory=list)

    # Observability
    _pub_count: int = 0
    _error_count: int = 0
    _last_publish_utc: Optional[float] = None


@dataclass
class EventStats:
    """Snapshot of one event channel. Counters reset once its last subscriber leaves."""

    name: str
    subscribers: int
    publish_count: int
    error_count: int  # subscriber callbacks that raised during publish
    last_publish_utc: Optional[float]


@dataclass
class BusStats:
    events: int
    event_names: list[str]
    subscribers: int
    publish_count: int  # includes publishes on names nobody listens to
    error_count: int
    per_event: list[EventStats]


def _callback_name(callback: Callback) -> str:
    return getattr(callback, "__qualname__", None) or repr(callback)


# --- Bus object ---


class EventBus:
    """
    Synchronous in-process publish/subscribe registry.

    - subscribe(name, callback) appends to the ordered subscriber list of name and
      returns a disposer that removes exactly that registration.
    - publish(name, *args, **kwargs) calls a snapshot of the list, in subscription
      order, on the calling thread. Callback errors are reported and discarded.
    - Construct one per application and pass it to consumers; tests build their own.
    """

    def __init__(
        self,
        cfg: Optional[BusConfig] = None,
        telemetry: Optional[Telemetry] = None,
    ) -> None:
        self._cfg = cfg or BusConfig()
        self._telemetry: Telemetry = telemetry or LoggingTelemetry(logger, self._cfg.level_no)
        self._events: dict[str, _EventState] = {}

        # Guards _events; callbacks always run outside the lock
        self._lock = threading.RLock()

        self._publish_count = 0
        self._error_count = 0

    @classmethod
    def from_config(cls, cfg: BusConfig, telemetry: Optional[Telemetry] = None) -> EventBus:
        return cls(cfg=cfg, telemetry=telemetry)

    # --- helpers ---

    def _key(self, name: EventName | str) -> str:
        key = event_key(name)
        if self._cfg.strict and not is_known(key):
            raise UnknownEventError(key)
        return key

    def _emit(self, event: str, **fields: Any) -> None:
        try:
            self._telemetry.log(event, **fields)
        except Exception:
            logger.exception("Telemetry hook failed for %s", event)

    # --- subscriptions ---

    def subscribe(self, name: EventName | str, callback: Callback) -> Disposer:
        """
        Register callback under name and return its disposer.
        The same callback may be registered more than once; each disposer removes
        only its own entry.
        """
        if not callable(callback):
            raise TypeError(f"subscribe(): callback must be callable, got {type(callback)}")
        key = self._key(name)
        registration = _Registration(name=key, callback=callback)

        with self._lock:
            state = self._events.get(key)
            if state is None:
                state = _EventState(name=key)
                self._events[key] = state
            state.subscribers.append(registration)
            count = len(state.subscribers)

        self._emit(
            "bus_subscribed",
            event_name=key,
            callback=_callback_name(callback),
            subscribers=count,
        )

        def dispose() -> None:
            self._unsubscribe(registration)

        return dispose

    def on(self, event_type: Type[Any], handler: Callable[[Any], Any]) -> Disposer:
        """
        Subscribe handler to the channel of a typed payload class. Publishes on that
        channel whose single argument is not an instance of event_type are skipped.
        """
        name = getattr(event_type, "name", None)
        if not isinstance(name, EventName) or EVENT_TYPES.get(name) is not event_type:
            raise BusError(f"on(): {event_type!r} is not a registered event payload type")

        def typed(*args: Any, **kwargs: Any) -> None:
            if len(args) == 1 and not kwargs and isinstance(args[0], event_type):
                handler(args[0])
                return
            logger.debug("Skipping untyped publish on %s for %s", name.value, event_type.__name__)

        typed.__qualname__ = _callback_name(handler)
        return self.subscribe(name, typed)

    def _unsubscribe(self, registration: _Registration) -> None:
        with self._lock:
            if not registration.active:
                return
            registration.active = False
            state = self._events.get(registration.name)
            if state is not None:
                for i, reg in enumerate(state.subscribers):
                    if reg is registration:
                        del state.subscribers[i]
                        break
                # Channels live only while someone listens
                if not state.subscribers:
                    del self._events[registration.name]
            remaining = len(state.subscribers) if state is not None else 0

        self._emit(
            "bus_unsubscribed",
            event_name=registration.name,
            callback=_callback_name(registration.callback),
            subscribers=remaining,
        )

    def clear(self, name: Optional[EventName | str] = None) -> None:
        """Drop all registrations of name, or of every event if name is None."""
        with self._lock:
            if name is None:
                states = list(self._events.values())
            else:
                state = self._events.get(event_key(name))
                states = [state] if state is not None else []
            for state in states:
                for reg in state.subscribers:
                    reg.active = False
                state.subscribers.clear()
                self._events.pop(state.name, None)

    # --- publish ---

    def publish(self, name: EventName | str, *args: Any, **kwargs: Any) -> None:
        """
        Fan-out to a snapshot of the current subscribers of name.
        Never raises because of a subscriber; names without subscribers are a no-op.
        """
        key = self._key(name)

        # 1. Snapshot subscribers, update stats
        with self._lock:
            self._publish_count += 1
            state = self._events.get(key)
            if state is not None:
                state._pub_count += 1
                state._last_publish_utc = time.time()
                snapshot = list(state.subscribers)
            else:
                snapshot = []

        if self._cfg.log_payloads:
            self._emit(
                "bus_publish", event_name=key, args=args, kwargs=kwargs, subscribers=len(snapshot)
            )
        else:
            self._emit("bus_publish", event_name=key, subscribers=len(snapshot))

        # 2. Deliver; removals during this loop only affect later publishes
        for reg in snapshot:
            try:
                reg.callback(*args, **kwargs)
            except Exception as exc:
                with self._lock:
                    self._error_count += 1
                    if state is not None:
                        state._error_count += 1
                self._emit(
                    "bus_subscriber_error",
                    event_name=key,
                    callback=_callback_name(reg.callback),
                    error=repr(exc),
                    exc_info=exc,
                )

    def emit(self, event: DomainEvent) -> None:
        """Publish a typed payload on the channel named by its class."""
        self.publish(event.name, event)

    # --- diagnostics ---

    def subscriber_count(self, name: EventName | str) -> int:
        with self._lock:
            state = self._events.get(event_key(name))
            return len(state.subscribers) if state is not None else 0

    def event_names(self) -> list[str]:
        """Names with at least one active subscriber, sorted."""
        with self._lock:
            return sorted(k for k, s in self._events.items() if s.subscribers)

    def stats(self) -> BusStats:
        with self._lock:
            per_event = [
                EventStats(
                    name=s.name,
                    subscribers=len(s.subscribers),
                    publish_count=s._pub_count,
                    error_count=s._error_count,
                    last_publish_utc=s._last_publish_utc,
                )
                for s in sorted(self._events.values(), key=lambda s: s.name)
            ]
            return BusStats(
                events=len(per_event),
                event_names=[e.name for e in per_event],
                subscribers=sum(e.subscribers for e in per_event),
                publish_count=self._publish_count,
                error_count=self._error_count,
                per_event=per_event,
            )
