from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Union

DEFAULT_QUERY_LIMIT = 100

WINNERS_MIN_PROFIT = 0.01
LOSERS_MAX_PROFIT = -0.01


class DatePreset(str, Enum):
    ALL = "all"
    TODAY = "today"
    WEEK = "week"
    MONTH = "month"
    QUARTER = "quarter"


@dataclass(frozen=True)
class CustomRange:
    start_date: str
    end_date: str


DateSelection = Union[DatePreset, CustomRange]


class DataScope(str, Enum):
    ALL_TRADES = "all_trades"
    WINNERS = "winners"
    LOSERS = "losers"
    ENTRIES = "entries"
    EXITS = "exits"
    WITH_INDICATORS = "with_indicators"


_PRESET_DAYS = {
    DatePreset.WEEK: 7,
    DatePreset.MONTH: 30,
    DatePreset.QUARTER: 90,
}

_SCOPE_ARGUMENTS: dict[DataScope, dict[str, Any]] = {
    DataScope.ALL_TRADES: {},
    DataScope.WINNERS: {"min_profit": WINNERS_MIN_PROFIT},
    DataScope.LOSERS: {"max_profit": LOSERS_MAX_PROFIT},
    DataScope.ENTRIES: {"signal_type": "entry"},
    DataScope.EXITS: {"signal_type": "exit"},
    DataScope.WITH_INDICATORS: {"complete_only": True},
}


@dataclass(frozen=True)
class QueryArgs:
    account: str
    limit: int = DEFAULT_QUERY_LIMIT
    start_date: str | None = None
    end_date: str | None = None
    action: str | None = None
    min_profit: float | None = None
    max_profit: float | None = None
    signal_type: str | None = None
    complete_only: bool | None = None

    def to_arguments(self) -> dict[str, Any]:
        arguments: dict[str, Any] = {"account": self.account}
        for key in (
            "start_date",
            "end_date",
            "action",
            "min_profit",
            "max_profit",
            "signal_type",
            "complete_only",
        ):
            value = getattr(self, key)
            if value is not None:
                arguments[key] = value
        arguments["limit"] = self.limit
        return arguments


def date_range(selection: DateSelection, now: datetime | None = None) -> dict[str, str]:
    if isinstance(selection, CustomRange):
        return {"start_date": selection.start_date, "end_date": selection.end_date}

    current = _utc_now(now)
    end_date = current.date().isoformat()
    if selection == DatePreset.TODAY:
        return {"start_date": end_date, "end_date": end_date}
    days = _PRESET_DAYS.get(selection)
    if days is not None:
        start = current - timedelta(days=days)
        return {"start_date": start.date().isoformat(), "end_date": end_date}
    return {}


def scope_arguments(scope: DataScope) -> dict[str, Any]:
    return dict(_SCOPE_ARGUMENTS[scope])


def build_query_args(
    account: str,
    selection: DateSelection = DatePreset.ALL,
    scope: DataScope = DataScope.ALL_TRADES,
    *,
    action: str | None = None,
    min_profit: float | None = None,
    max_profit: float | None = None,
    limit: int = DEFAULT_QUERY_LIMIT,
    now: datetime | None = None,
) -> QueryArgs:
    fields: dict[str, Any] = {
        "account": account,
        "limit": int(limit),
        "min_profit": min_profit,
        "max_profit": max_profit,
    }
    normalized_action = (action or "").strip().lower()
    if normalized_action and normalized_action != "all":
        fields["action"] = normalized_action
    fields.update(date_range(selection, now))
    fields.update(scope_arguments(scope))
    return QueryArgs(**fields)


def parse_date_selection(
    preset: str | None,
    start_date: str | None = None,
    end_date: str | None = None,
) -> DateSelection:
    cleaned = (preset or DatePreset.ALL.value).strip().lower()
    if cleaned == "custom":
        if start_date is None or end_date is None:
            raise ValueError("Custom date range requires both start_date and end_date.")
        return CustomRange(start_date=start_date, end_date=end_date)
    try:
        return DatePreset(cleaned)
    except ValueError as exc:
        raise ValueError(f"Unknown date preset: {preset}") from exc


def parse_data_scope(value: str | None) -> DataScope:
    cleaned = (value or DataScope.ALL_TRADES.value).strip().lower()
    try:
        return DataScope(cleaned)
    except ValueError as exc:
        raise ValueError(f"Unknown data scope: {value}") from exc


def _utc_now(now: datetime | None) -> datetime:
    if now is None:
        return datetime.now(timezone.utc)
    if now.tzinfo is None:
        return now.replace(tzinfo=timezone.utc)
    return now.astimezone(timezone.utc)
