"""EventBus Port Interface.

Contract: fire-and-forget notification from data-mutating actions to the
consumers that refresh in response. Publishers and subscribers only share
the event name.
"""
from __future__ import annotations
from typing import Protocol, Callable, Any

from cryptofolio.types.topics import EventName

Disposer = Callable[[], None]

class EventBus(Protocol):
    def publish(self, name: EventName | str, *args: Any, **kwargs: Any) -> None:
        """Invoke every current subscriber of name, in subscription order."""
        ...

    def subscribe(self, name: EventName | str, callback: Callable[..., Any]) -> Disposer:
        """Register callback under name; the returned disposer removes it again."""
        ...
