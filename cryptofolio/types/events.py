"""
Typed payloads, one per event name.

Each payload class carries its channel in the `name` class variable, so
`bus.emit(AssetDeleted(asset_id, exchange_id))` and
`bus.publish(E_ASSET_DELETED, payload)` address the same subscribers.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import ClassVar, Optional, Union

from cryptofolio.types.topics import EventName
from cryptofolio.types.types import Asset, Exchange, ExchangeWithAssets

# --- Exchanges ---


@dataclass(frozen=True)
class ExchangeAdded:
    name: ClassVar[EventName] = EventName.EXCHANGE_ADDED
    exchange: Exchange


@dataclass(frozen=True)
class ExchangeUpdated:
    name: ClassVar[EventName] = EventName.EXCHANGE_UPDATED
    exchange: Exchange


@dataclass(frozen=True)
class ExchangeDeleted:
    name: ClassVar[EventName] = EventName.EXCHANGE_DELETED
    exchange_id: str


# --- Assets ---


@dataclass(frozen=True)
class AssetAdded:
    name: ClassVar[EventName] = EventName.ASSET_ADDED
    asset: Asset
    exchange_id: str


@dataclass(frozen=True)
class AssetUpdated:
    name: ClassVar[EventName] = EventName.ASSET_UPDATED
    asset: Asset


@dataclass(frozen=True)
class AssetDeleted:
    name: ClassVar[EventName] = EventName.ASSET_DELETED
    asset_id: str
    exchange_id: str


# --- Portfolio / settings ---


@dataclass(frozen=True)
class PortfolioRefreshed:
    name: ClassVar[EventName] = EventName.PORTFOLIO_REFRESHED
    exchanges: tuple[ExchangeWithAssets, ...] = ()


@dataclass(frozen=True)
class SettingsUpdated:
    name: ClassVar[EventName] = EventName.SETTINGS_UPDATED
    initial_capital: Optional[Decimal] = None


DomainEvent = Union[
    ExchangeAdded,
    ExchangeUpdated,
    ExchangeDeleted,
    AssetAdded,
    AssetUpdated,
    AssetDeleted,
    PortfolioRefreshed,
    SettingsUpdated,
]

EVENT_TYPES: dict[EventName, type] = {
    EventName.EXCHANGE_ADDED: ExchangeAdded,
    EventName.EXCHANGE_UPDATED: ExchangeUpdated,
    EventName.EXCHANGE_DELETED: ExchangeDeleted,
    EventName.ASSET_ADDED: AssetAdded,
    EventName.ASSET_UPDATED: AssetUpdated,
    EventName.ASSET_DELETED: AssetDeleted,
    EventName.PORTFOLIO_REFRESHED: PortfolioRefreshed,
    EventName.SETTINGS_UPDATED: SettingsUpdated,
}
