"""
Shared data models for walletdash.

These dataclasses are the plain data shapes handed to the presentation
layer: fetchers produce them, metrics derive them, output renders them.
Raw on-chain amounts stay decimal strings so no precision is lost.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import timedelta
from enum import Enum
from typing import Generic, TypeVar

T = TypeVar("T")


class TimePeriod(str, Enum):
    """Chart periods offered by the profit/loss widget."""

    HOUR = "1H"
    SIX_HOURS = "6H"
    DAY = "1D"
    WEEK = "1W"
    MONTH = "1M"
    ALL = "All"

    @property
    def label(self) -> str:
        return _PERIOD_LABELS[self]

    @property
    def lookback_days(self) -> int:
        """Day-count requested from the price source for this period."""
        return _PERIOD_DAYS[self]

    @property
    def duration(self) -> timedelta | None:
        """Client-side cutoff window; None means keep the full fetched range."""
        return _PERIOD_DURATIONS[self]


_PERIOD_LABELS = {
    TimePeriod.HOUR: "Past Hour",
    TimePeriod.SIX_HOURS: "Past 6 Hours",
    TimePeriod.DAY: "Past Day",
    TimePeriod.WEEK: "Past Week",
    TimePeriod.MONTH: "Past Month",
    TimePeriod.ALL: "All Time",
}

_PERIOD_DAYS = {
    TimePeriod.HOUR: 1,
    TimePeriod.SIX_HOURS: 1,
    TimePeriod.DAY: 1,
    TimePeriod.WEEK: 7,
    TimePeriod.MONTH: 30,
    TimePeriod.ALL: 365,
}

_PERIOD_DURATIONS = {
    TimePeriod.HOUR: timedelta(hours=1),
    TimePeriod.SIX_HOURS: timedelta(hours=6),
    TimePeriod.DAY: timedelta(days=1),
    TimePeriod.WEEK: timedelta(days=7),
    TimePeriod.MONTH: timedelta(days=30),
    TimePeriod.ALL: None,
}


@dataclass
class EthBalance:
    """Native-coin balance of the tracked wallet."""

    wei: str                # raw integer amount
    eth_formatted: str      # 6 decimal places
    usd_value: float

    @classmethod
    def zero(cls) -> EthBalance:
        return cls(wei="0", eth_formatted="0.000000", usd_value=0.0)

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class TokenBalance:
    """ERC-20 (USDC) balance of the tracked wallet."""

    raw: str                # raw integer amount in token base units
    formatted: str          # 2 decimal places
    usd_value: float
    daily_change: float = 0.0
    daily_change_percent: float = 0.0
    is_profit: bool = True

    @classmethod
    def zero(cls) -> TokenBalance:
        return cls(raw="0", formatted="0.00", usd_value=0.0)

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class PortfolioValue:
    """Combined valuation: ETH holdings in USD plus the token balance."""

    eth_value: float        # ETH holdings only, in USD
    total_value: float      # token + ETH, in USD
    eth_balance: str        # formatted ETH amount

    @classmethod
    def zero(cls) -> PortfolioValue:
        return cls(eth_value=0.0, total_value=0.0, eth_balance="0")

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class PricePoint:
    timestamp: int          # Unix milliseconds
    value: float
    display_date: str


@dataclass
class ProfitLoss:
    amount: float           # always non-negative
    is_profit: bool
    period_label: str


@dataclass
class ChartSeries:
    """Price points in ascending time order plus the derived profit/loss."""

    points: list[PricePoint]
    profit_loss: ProfitLoss

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class DepositTransaction:
    """An incoming token transfer to the tracked wallet."""

    hash: str
    from_addr: str
    amount: str             # 2 decimal places
    timestamp: int          # Unix milliseconds
    confirmations: int

    @property
    def status(self) -> str:
        # One confirmation means the transfer is included in a block.
        return "confirmed" if self.confirmations >= 1 else "pending"

    def to_dict(self) -> dict:
        d = asdict(self)
        d["status"] = self.status
        return d


@dataclass
class WalletInfo:
    name: str
    address: str
    joined_date: str

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class TransferResult:
    """Outcome of a token transfer; failures are never reported as success."""

    success: bool
    hash: str | None = None
    error: str | None = None

    def to_dict(self) -> dict:
        return {k: v for k, v in asdict(self).items() if v is not None}


@dataclass
class FetchResult(Generic[T]):
    """
    Tagged outcome of a fetch: either a value or the error that prevented it.

    Fetchers never substitute fallbacks themselves; the presentation boundary
    calls unwrap_or() and decides what the widget shows.
    """

    value: T | None = None
    error: Exception | None = field(default=None)

    @classmethod
    def ok(cls, value: T) -> FetchResult[T]:
        return cls(value=value)

    @classmethod
    def err(cls, error: Exception) -> FetchResult[T]:
        return cls(error=error)

    @property
    def is_ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]

    def unwrap_or(self, fallback: T) -> T:
        return fallback if self.error is not None else self.value  # type: ignore[return-value]
