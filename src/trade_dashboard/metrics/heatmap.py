from __future__ import annotations

from dataclasses import dataclass, field
from datetime import tzinfo
from typing import Iterable

from trade_dashboard.models import Trade
from trade_dashboard.timestamps import UNKNOWN_TIME, timestamp_to_datetime

DAY_LABELS = ("Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat")
HOURS = tuple(range(24))

MIN_INTENSITY = 0.2
MAX_INTENSITY = 1.0

TONE_EMPTY = "empty"
TONE_NEUTRAL = "neutral"
TONE_PROFIT = "profit"
TONE_LOSS = "loss"


@dataclass
class HeatmapCell:
    sum_profit: float = 0.0
    count: int = 0

    @property
    def average(self) -> float | None:
        if self.count == 0:
            return None
        return self.sum_profit / self.count


@dataclass
class Heatmap:
    cells: list[list[HeatmapCell]] = field(
        default_factory=lambda: [[HeatmapCell() for _ in HOURS] for _ in DAY_LABELS]
    )
    skipped: int = 0

    def cell(self, day: int, hour: int) -> HeatmapCell:
        return self.cells[day][hour]

    @property
    def bounds(self) -> tuple[float, float]:
        low = 0.0
        high = 0.0
        for row in self.cells:
            for cell in row:
                average = cell.average
                if average is None:
                    continue
                low = min(low, average)
                high = max(high, average)
        return low, high

    def intensity(
        self, day: int, hour: int, bounds: tuple[float, float] | None = None
    ) -> float | None:
        average = self.cell(day, hour).average
        if average is None:
            return None
        low, high = bounds or self.bounds
        return cell_intensity(average, low, high)

    def tone(self, day: int, hour: int) -> str:
        return cell_tone(self.cell(day, hour))

    def to_rows(self) -> list[dict[str, object]]:
        bounds = self.bounds
        rows = []
        for day, label in enumerate(DAY_LABELS):
            hours = []
            for hour in HOURS:
                cell = self.cells[day][hour]
                hours.append(
                    {
                        "hour": hour,
                        "count": cell.count,
                        "sum_profit": cell.sum_profit,
                        "avg_profit": cell.average,
                        "tone": self.tone(day, hour),
                        "intensity": self.intensity(day, hour, bounds),
                    }
                )
            rows.append({"day": day, "label": label, "hours": hours})
        return rows


def build_heatmap(trades: Iterable[Trade], tz: tzinfo | None = None) -> Heatmap:
    """Bucket trades by local (day-of-week, hour) with Sunday as day 0."""
    heatmap = Heatmap()
    for trade in trades:
        millis = trade.timestamp_ms
        moment = timestamp_to_datetime(millis, tz) if millis != UNKNOWN_TIME else None
        if moment is None:
            heatmap.skipped += 1
            continue
        day = (moment.weekday() + 1) % 7
        cell = heatmap.cells[day][moment.hour]
        cell.sum_profit += trade.profit_value
        cell.count += 1
    return heatmap


def cell_intensity(average: float, low: float, high: float) -> float:
    scale = max(abs(low), abs(high))
    if scale == 0:
        return MIN_INTENSITY
    return min(max(abs(average) / scale, MIN_INTENSITY), MAX_INTENSITY)


def cell_tone(cell: HeatmapCell) -> str:
    average = cell.average
    if average is None:
        return TONE_EMPTY
    if average == 0:
        return TONE_NEUTRAL
    return TONE_PROFIT if average > 0 else TONE_LOSS
