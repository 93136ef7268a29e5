from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Iterable

from trade_dashboard.metrics.series import order_by_time
from trade_dashboard.models import Trade

OUTCOME_WIN = "win"
OUTCOME_LOSS = "loss"
OUTCOME_FLAT = "flat"


@dataclass(frozen=True)
class TradeMetrics:
    total_trades: int
    winning_trades: int
    losing_trades: int
    win_rate: float | None
    total_profit: float
    total_loss: float
    net_pnl: float
    average_win: float | None
    average_loss: float | None
    profit_factor: float | None
    largest_win: float | None
    largest_loss: float | None
    max_consecutive_wins: int
    max_consecutive_losses: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def classify_outcome(profit: float) -> str:
    if profit > 0:
        return OUTCOME_WIN
    if profit < 0:
        return OUTCOME_LOSS
    return OUTCOME_FLAT


def compute_trade_metrics(trades: Iterable[Trade]) -> TradeMetrics:
    trade_list = list(trades)
    profits = [trade.profit_value for trade in trade_list]
    wins = [value for value in profits if value > 0]
    losses = [value for value in profits if value < 0]

    win_rate = None
    if wins or losses:
        win_rate = len(wins) / (len(wins) + len(losses))

    total_profit = sum(wins)
    total_loss = sum(losses)
    profit_factor = None
    if total_loss < 0:
        profit_factor = total_profit / abs(total_loss)

    max_wins, max_losses = _max_streaks(trade_list)

    return TradeMetrics(
        total_trades=len(trade_list),
        winning_trades=len(wins),
        losing_trades=len(losses),
        win_rate=win_rate,
        total_profit=total_profit,
        total_loss=total_loss,
        net_pnl=sum(profits),
        average_win=total_profit / len(wins) if wins else None,
        average_loss=total_loss / len(losses) if losses else None,
        profit_factor=profit_factor,
        largest_win=max(wins, default=None),
        largest_loss=min(losses, default=None),
        max_consecutive_wins=max_wins,
        max_consecutive_losses=max_losses,
    )


def _max_streaks(trades: list[Trade]) -> tuple[int, int]:
    max_wins = 0
    max_losses = 0
    current_wins = 0
    current_losses = 0

    for trade in order_by_time(trades):
        outcome = classify_outcome(trade.profit_value)
        if outcome == OUTCOME_WIN:
            current_wins += 1
            current_losses = 0
        elif outcome == OUTCOME_LOSS:
            current_losses += 1
            current_wins = 0
        else:
            current_wins = 0
            current_losses = 0
        max_wins = max(max_wins, current_wins)
        max_losses = max(max_losses, current_losses)

    return max_wins, max_losses
