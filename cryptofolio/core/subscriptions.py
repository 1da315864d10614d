"""
Subscriber lifecycle helper.

A consumer (view, widget, background task) opens a SubscriptionGroup when it
mounts, registers its callbacks through it and closes the group when it
unmounts. Closing runs every disposer once, newest first.

    with SubscriptionGroup(bus) as subs:
        subs.subscribe(E_ASSET_UPDATED, on_asset_updated)
        subs.on(AssetDeleted, on_asset_deleted)
        ...
"""

from __future__ import annotations

import logging
from types import TracebackType
from typing import Any, Callable, Optional, Type

from cryptofolio.core.bus import Disposer, EventBus
from cryptofolio.types.topics import EventName

logger = logging.getLogger(__name__)


class SubscriptionGroup:
    def __init__(self, bus: EventBus, name: str = "subscriptions") -> None:
        self._bus = bus
        self.name = name
        self._disposers: list[Disposer] = []
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def __len__(self) -> int:
        return len(self._disposers)

    def subscribe(self, event: EventName | str, callback: Callable[..., Any]) -> Disposer:
        self._ensure_open()
        disposer = self._bus.subscribe(event, callback)
        self._disposers.append(disposer)
        return disposer

    def on(self, event_type: Type[Any], handler: Callable[[Any], Any]) -> Disposer:
        self._ensure_open()
        disposer = self._bus.on(event_type, handler)
        self._disposers.append(disposer)
        return disposer

    def close(self) -> None:
        """Run every disposer (newest first). Safe to call multiple times."""
        if self._closed:
            return
        self._closed = True
        disposers, self._disposers = self._disposers, []
        for dispose in reversed(disposers):
            dispose()
        logger.debug(f"[{self.name}] Closed {len(disposers)} subscription(s)")

    def _ensure_open(self) -> None:
        if self._closed:
            raise RuntimeError(f"[{self.name}] Cannot subscribe: group is closed")

    def __enter__(self) -> SubscriptionGroup:
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        self.close()
