"""Derived metrics: price-history filtering, profit/loss and portfolio value.

Pure functions only — no I/O, no cache. `now_ms` is always passed in so the
period cutoff is testable to the millisecond.
"""

from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Iterable

from walletdash.models import (
    ChartSeries,
    EthBalance,
    PortfolioValue,
    PricePoint,
    ProfitLoss,
    TimePeriod,
    TokenBalance,
)

SYNTHETIC_BASE_PRICE = 3500.0
SYNTHETIC_FLOOR_PRICE = 3000.0


def now_ms() -> int:
    return int(datetime.now(tz=timezone.utc).timestamp() * 1000)


def format_display_date(timestamp_ms: int) -> str:
    """'Mar 4, 02:30 PM' in UTC."""
    dt = datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc)
    return f"{dt:%b} {dt.day}, {dt:%I:%M %p}"


def format_month_year(timestamp_s: int) -> str:
    """'Nov 2025' in UTC."""
    dt = datetime.fromtimestamp(timestamp_s, tz=timezone.utc)
    return f"{dt:%b %Y}"


def period_cutoff_ms(period: TimePeriod, now: int) -> int | None:
    """Oldest timestamp kept for `period`, or None when nothing is cut."""
    duration = period.duration
    if duration is None:
        return None
    return now - int(duration.total_seconds() * 1000)


def filter_by_period(
    prices: Iterable[tuple[int, float]], period: TimePeriod, now: int
) -> list[tuple[int, float]]:
    """Keep pairs with timestamp >= now - period duration (inclusive)."""
    cutoff = period_cutoff_ms(period, now)
    if cutoff is None:
        return list(prices)
    return [(ts, price) for ts, price in prices if ts >= cutoff]


def to_price_points(prices: Iterable[tuple[int, float]]) -> list[PricePoint]:
    return [
        PricePoint(timestamp=ts, value=price, display_date=format_display_date(ts))
        for ts, price in prices
    ]


def compute_profit_loss(
    points: list[PricePoint], holding: float, period: TimePeriod
) -> ProfitLoss:
    """
    (last price - first price) × holding.

    The holding is applied across the whole period, so the figure reflects
    present holdings rather than what was held at each point. An empty
    series counts as zero change (a profit).
    """
    first = points[0].value if points else 0.0
    last = points[-1].value if points else 0.0
    diff = last - first
    return ProfitLoss(
        amount=abs(diff * holding),
        is_profit=diff >= 0,
        period_label=period.label,
    )


def build_chart(
    prices: Iterable[tuple[int, float]], period: TimePeriod, holding: float, now: int
) -> ChartSeries:
    points = to_price_points(filter_by_period(prices, period, now))
    return ChartSeries(points=points, profit_loss=compute_profit_loss(points, holding, period))


def synthetic_series(period: TimePeriod, now: int, holding: float) -> ChartSeries:
    """
    Placeholder chart shown when the price source is unavailable.

    Values follow a fixed drift + sine curve so repeated failures render the
    same shape; only the timestamps move with `now`.
    """
    duration = period.duration
    span_ms = (
        int(duration.total_seconds() * 1000)
        if duration is not None
        else period.lookback_days * 86_400_000
    )
    if period is TimePeriod.HOUR:
        count = 12
    elif period is TimePeriod.SIX_HOURS:
        count = 36
    else:
        count = 48

    step = span_ms / count
    prices: list[tuple[int, float]] = []
    for i in range(count):
        value = SYNTHETIC_BASE_PRICE + 2.5 * i + 40.0 * math.sin(i / 3)
        prices.append((int(now - span_ms + step * i), max(SYNTHETIC_FLOOR_PRICE, value)))

    points = to_price_points(prices)
    return ChartSeries(points=points, profit_loss=compute_profit_loss(points, holding, period))


def portfolio_value(eth: EthBalance, token: TokenBalance) -> PortfolioValue:
    return PortfolioValue(
        eth_value=eth.usd_value,
        total_value=eth.usd_value + token.usd_value,
        eth_balance=eth.eth_formatted,
    )
