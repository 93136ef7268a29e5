from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable

from trade_dashboard.models import Trade


class OutcomeFilter(str, Enum):
    ALL = "all"
    WINS = "wins"
    LOSSES = "losses"


class SortKey(str, Enum):
    DATE = "date"
    PROFIT = "profit"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


@dataclass(frozen=True)
class TradeFilters:
    outcome: OutcomeFilter = OutcomeFilter.ALL
    ticker: str = ""

    @classmethod
    def from_params(cls, outcome: str | None = None, ticker: str | None = None) -> "TradeFilters":
        cleaned = (outcome or OutcomeFilter.ALL.value).strip().lower()
        try:
            resolved = OutcomeFilter(cleaned)
        except ValueError as exc:
            raise ValueError(f"Unknown outcome filter: {outcome}") from exc
        return cls(outcome=resolved, ticker=(ticker or "").strip())


def apply_filters(
    trades: Iterable[Trade],
    filters: TradeFilters,
    sort_by: SortKey = SortKey.DATE,
    sort_order: SortOrder = SortOrder.DESC,
) -> list[Trade]:
    filtered = [trade for trade in trades if matches(trade, filters)]
    return sort_trades(filtered, sort_by, sort_order)


def matches(trade: Trade, filters: TradeFilters) -> bool:
    profit = trade.profit_value
    if filters.outcome == OutcomeFilter.WINS and not profit > 0:
        return False
    if filters.outcome == OutcomeFilter.LOSSES and not profit < 0:
        return False
    if filters.ticker:
        if not trade.ticker or filters.ticker.lower() not in trade.ticker.lower():
            return False
    return True


def sort_trades(trades: Iterable[Trade], sort_by: SortKey, sort_order: SortOrder) -> list[Trade]:
    # sorted() is stable in both directions, so ties keep their input order.
    if sort_by == SortKey.PROFIT:
        return sorted(trades, key=lambda trade: trade.profit_value, reverse=sort_order == SortOrder.DESC)
    return sorted(trades, key=lambda trade: trade.timestamp_ms, reverse=sort_order == SortOrder.DESC)


def parse_sort(sort_by: str | None, sort_order: str | None) -> tuple[SortKey, SortOrder]:
    key_text = (sort_by or SortKey.DATE.value).strip().lower()
    order_text = (sort_order or SortOrder.DESC.value).strip().lower()
    try:
        return SortKey(key_text), SortOrder(order_text)
    except ValueError as exc:
        raise ValueError(f"Unknown sort: {sort_by} {sort_order}") from exc
