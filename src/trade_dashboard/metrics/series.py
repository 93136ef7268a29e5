from __future__ import annotations

from dataclasses import dataclass
from datetime import tzinfo
from typing import Iterable

from trade_dashboard.models import Trade
from trade_dashboard.timestamps import format_date


@dataclass(frozen=True)
class CumulativePoint:
    index: int
    profit: float
    cumulative: float
    date: str


def order_by_time(trades: Iterable[Trade]) -> list[Trade]:
    return sorted(trades, key=lambda trade: trade.timestamp_ms)


def cumulative_pnl(trades: Iterable[Trade], tz: tzinfo | None = None) -> list[CumulativePoint]:
    running = 0.0
    points: list[CumulativePoint] = []
    for index, trade in enumerate(order_by_time(trades), start=1):
        profit = trade.profit_value
        # Accumulate unrounded values; only the emitted fields are rounded.
        running += profit
        points.append(
            CumulativePoint(
                index=index,
                profit=round2(profit),
                cumulative=round2(running),
                date=format_date(trade.timestamp, tz),
            )
        )
    return points


def downsample_points(points: list[CumulativePoint], max_points: int | None) -> list[CumulativePoint]:
    if max_points is None or max_points <= 0 or len(points) <= max_points:
        return points
    stride = max(1, len(points) // max_points)
    sampled = points[::stride]
    if sampled and sampled[-1].index != points[-1].index:
        sampled.append(points[-1])
    return sampled


def round2(value: float) -> float:
    rounded = round(value, 2)
    return rounded + 0.0  # collapse -0.0
