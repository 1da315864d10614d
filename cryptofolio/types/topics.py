"""
Centralized event names for the event bus.

The set is closed: publishers and subscribers across the application must
only use names from here. The bus itself does not validate names unless it
runs in strict mode.
"""

from __future__ import annotations

from enum import Enum


class EventName(str, Enum):
    EXCHANGE_ADDED = "exchange-added"
    EXCHANGE_UPDATED = "exchange-updated"
    EXCHANGE_DELETED = "exchange-deleted"
    ASSET_ADDED = "asset-added"
    ASSET_UPDATED = "asset-updated"
    ASSET_DELETED = "asset-deleted"
    PORTFOLIO_REFRESHED = "portfolio-refreshed"
    SETTINGS_UPDATED = "settings-updated"


# Exchange topics
E_EXCHANGE_ADDED = EventName.EXCHANGE_ADDED.value
E_EXCHANGE_UPDATED = EventName.EXCHANGE_UPDATED.value
E_EXCHANGE_DELETED = EventName.EXCHANGE_DELETED.value

# Asset topics
E_ASSET_ADDED = EventName.ASSET_ADDED.value
E_ASSET_UPDATED = EventName.ASSET_UPDATED.value
E_ASSET_DELETED = EventName.ASSET_DELETED.value

# Portfolio / settings
E_PORTFOLIO_REFRESHED = EventName.PORTFOLIO_REFRESHED.value
E_SETTINGS_UPDATED = EventName.SETTINGS_UPDATED.value

ALL_EVENTS: frozenset[str] = frozenset(e.value for e in EventName)


def event_key(name: EventName | str) -> str:
    """Normalise an enum member or raw string to the channel key used by the bus."""
    if isinstance(name, EventName):
        return name.value
    return str(name)


def is_known(name: EventName | str) -> bool:
    return event_key(name) in ALL_EVENTS
