from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Optional, Union

"""
Records exchanged between the backend data layer, publishers and subscribers.
Rows mirror the hosted database tables; the *WithValue / summary records carry
values computed elsewhere and are only rendered here.
"""

Number = Union[int, float, Decimal]


# --- Log ---


@dataclass
class LogEvent:
    """
    Generic structure for diagnostics emitted by the bus and its collaborators.
    """

    level: str  # DEBUG, INFO, WARN, ERROR
    component: str
    msg: str
    payload: dict[str, Any] = field(default_factory=dict)
    wall_time: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())


# --- Database rows ---


@dataclass(frozen=True)
class Exchange:
    id: str
    name: str
    logo_url: Optional[str] = None
    created_at: Optional[str] = None  # ISO timestamp as returned by the backend


@dataclass(frozen=True)
class Asset:
    id: str
    exchange_id: str
    symbol: str  # e.g. "BTC"
    quantity: Decimal
    purchase_price_avg: Decimal
    last_updated: Optional[str] = None
    logo_url: Optional[str] = None


# --- Derived records (values computed upstream) ---


@dataclass(frozen=True)
class AssetWithValue:
    asset: Asset
    current_price: Decimal = Decimal("0")
    current_value: Decimal = Decimal("0")
    profit_loss: Decimal = Decimal("0")
    profit_loss_percentage: Decimal = Decimal("0")
    last_updated: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def symbol(self) -> str:
        return self.asset.symbol


@dataclass(frozen=True)
class ExchangeWithAssets:
    exchange: Exchange
    assets: tuple[AssetWithValue, ...] = ()
    total_value: Decimal = Decimal("0")

    @property
    def id(self) -> str:
        return self.exchange.id


@dataclass(frozen=True)
class DistributionEntry:
    key: str  # exchange id or asset symbol
    label: str
    value: Decimal
    percentage: Decimal


@dataclass(frozen=True)
class PortfolioSummary:
    total_value: Decimal
    total_investment: Decimal
    total_profit_loss: Decimal
    profit_loss_percentage: Decimal
    last_updated: datetime
    by_exchange: tuple[DistributionEntry, ...] = ()
    by_asset: tuple[DistributionEntry, ...] = ()


@dataclass(frozen=True)
class CryptoPrice:
    id: str
    symbol: str
    name: str
    current_price: Decimal
    price_change_percentage_24h: Decimal
    last_updated: str


# --- Display formatting ---


def format_currency(value: Number, symbol: str = "$") -> str:
    """
    Render an amount as '$1,234.56' (two decimals, half-up). Negative amounts
    keep the sign in front of the currency symbol: '-$12.00'.
    """
    amount = Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    sign = "-" if amount < 0 else ""
    return f"{sign}{symbol}{abs(amount):,.2f}"


def format_percentage(value: Number, digits: int = 2) -> str:
    """'12.345' -> '12.35%'."""
    if digits < 0:
        raise ValueError("format_percentage: digits must be >= 0")
    quant = Decimal(1).scaleb(-digits)
    pct = Decimal(str(value)).quantize(quant, rounding=ROUND_HALF_UP)
    return f"{pct:.{digits}f}%"
