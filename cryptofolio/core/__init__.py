"""
Notification core of the portfolio tracker.

Components:
- EventBus: synchronous publish/subscribe registry (subscribe / publish / emit / on)
- SubscriptionGroup: collects the disposers of one consumer and releases them together

Usage:
    from cryptofolio.core import EventBus, SubscriptionGroup
    from cryptofolio.types.topics import E_ASSET_UPDATED

    bus = EventBus()
    dispose = bus.subscribe(E_ASSET_UPDATED, refresh_row)
    bus.publish(E_ASSET_UPDATED, {"id": "42", "symbol": "BTC"})
    dispose()
"""

from cryptofolio.core.bus import BusStats, Disposer, EventBus, EventStats
from cryptofolio.core.subscriptions import SubscriptionGroup

__all__ = [
    "EventBus",
    "SubscriptionGroup",
    "Disposer",
    "BusStats",
    "EventStats",
]
