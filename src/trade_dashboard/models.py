from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

from trade_dashboard.timestamps import normalize_timestamp


@dataclass(frozen=True)
class Trade:
    trade_id: str
    timestamp: str
    action: str
    ticker: str | None
    entry_price: str
    exit_price: str
    quantity: str
    profit: str
    indicators: Any = None
    raw: Mapping[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @property
    def profit_value(self) -> float:
        return parse_number(self.profit)

    @property
    def entry_price_value(self) -> float:
        return parse_number(self.entry_price)

    @property
    def exit_price_value(self) -> float:
        return parse_number(self.exit_price)

    @property
    def timestamp_ms(self) -> int:
        return normalize_timestamp(self.timestamp)

    @classmethod
    def from_payload(cls, raw: Mapping[str, Any]) -> "Trade":
        trade_id = _pick(raw, "trade_id", "id", "tradeId")
        ticker = _pick(raw, "ticker", "symbol")
        return cls(
            trade_id=str(trade_id) if trade_id is not None else "",
            timestamp=_text(_pick(raw, "timestamp", "time")),
            action=_text(raw.get("action")),
            ticker=str(ticker) if ticker is not None else None,
            entry_price=_text(_pick(raw, "entry_price", "entryPrice")),
            exit_price=_text(_pick(raw, "exit_price", "exitPrice")),
            quantity=_text(_pick(raw, "quantity", "qty")),
            profit=_text(raw.get("profit")),
            indicators=raw.get("indicators"),
            raw=dict(raw),
        )

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "trade_id": self.trade_id,
            "timestamp": self.timestamp,
            "action": self.action,
            "ticker": self.ticker,
            "entry_price": self.entry_price,
            "exit_price": self.exit_price,
            "quantity": self.quantity,
            "profit": self.profit,
        }
        if self.indicators is not None:
            payload["indicators"] = self.indicators
        return payload


@dataclass(frozen=True)
class AccountInfo:
    account: str
    total_trades: int
    complete: int
    total_pnl: float
    latest_activity: str | None


def parse_number(value: Any) -> float:
    if value is None:
        return 0.0
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        try:
            number = float(str(value).strip())
        except ValueError:
            return 0.0
    if number != number or number in (float("inf"), float("-inf")):
        return 0.0
    return number


def _pick(raw: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in raw and raw[key] not in (None, ""):
            return raw[key]
    return None


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value)
