from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from trade_dashboard.models import Trade


@dataclass(frozen=True)
class WinLossDistribution:
    wins: int
    losses: int

    @property
    def total(self) -> int:
        return self.wins + self.losses


@dataclass(frozen=True)
class ActionCount:
    action: str
    count: int

    @property
    def label(self) -> str:
        return self.action.upper()


def win_loss_distribution(trades: Iterable[Trade]) -> WinLossDistribution:
    """Split trades for the distribution chart.

    Zero-profit trades land in ``losses`` here, unlike the win-rate metrics
    in ``metrics.summary`` which leave them unclassified.
    """
    wins = 0
    losses = 0
    for trade in trades:
        if trade.profit_value > 0:
            wins += 1
        else:
            losses += 1
    return WinLossDistribution(wins=wins, losses=losses)


def action_distribution(trades: Iterable[Trade]) -> list[ActionCount]:
    counts: dict[str, int] = {}
    for trade in trades:
        counts[trade.action] = counts.get(trade.action, 0) + 1
    return [ActionCount(action=action, count=count) for action, count in counts.items()]
