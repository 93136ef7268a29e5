from datetime import datetime, timezone

import pytest

from trade_dashboard.query import (
    CustomRange,
    DataScope,
    DatePreset,
    QueryArgs,
    build_query_args,
    date_range,
    parse_data_scope,
    parse_date_selection,
)

NOW = datetime(2026, 2, 16, 12, 0, tzinfo=timezone.utc)


def test_presets_resolve_relative_to_now():
    assert date_range(DatePreset.ALL, NOW) == {}
    assert date_range(DatePreset.TODAY, NOW) == {"start_date": "2026-02-16", "end_date": "2026-02-16"}
    assert date_range(DatePreset.WEEK, NOW) == {"start_date": "2026-02-09", "end_date": "2026-02-16"}
    assert date_range(DatePreset.MONTH, NOW) == {"start_date": "2026-01-17", "end_date": "2026-02-16"}
    assert date_range(DatePreset.QUARTER, NOW) == {"start_date": "2025-11-18", "end_date": "2026-02-16"}


def test_custom_range_passes_bounds_through():
    selection = CustomRange(start_date="2026-01-01", end_date="2026-01-31")
    assert date_range(selection, NOW) == {"start_date": "2026-01-01", "end_date": "2026-01-31"}


def test_scope_arguments_are_merged():
    winners = build_query_args("ACC", scope=DataScope.WINNERS, now=NOW)
    assert winners.min_profit == 0.01
    losers = build_query_args("ACC", scope=DataScope.LOSERS, now=NOW)
    assert losers.max_profit == -0.01
    entries = build_query_args("ACC", scope=DataScope.ENTRIES, now=NOW)
    assert entries.signal_type == "entry"
    complete = build_query_args("ACC", scope=DataScope.WITH_INDICATORS, now=NOW)
    assert complete.complete_only is True


def test_scope_overrides_explicit_profit_bound():
    args = build_query_args("ACC", scope=DataScope.WINNERS, min_profit=50.0, now=NOW)
    assert args.min_profit == 0.01


def test_action_is_lowercased_and_all_is_dropped():
    assert build_query_args("ACC", action=" SELL ").action == "sell"
    assert build_query_args("ACC", action="all").action is None
    assert build_query_args("ACC", action="").action is None


def test_to_arguments_omits_unset_fields():
    args = build_query_args("ACC", DatePreset.WEEK, limit=25, now=NOW)
    assert args.to_arguments() == {
        "account": "ACC",
        "start_date": "2026-02-09",
        "end_date": "2026-02-16",
        "limit": 25,
    }


def test_default_limit():
    assert QueryArgs(account="ACC").to_arguments() == {"account": "ACC", "limit": 100}


def test_parse_date_selection():
    assert parse_date_selection("Month") == DatePreset.MONTH
    assert parse_date_selection(None) == DatePreset.ALL
    assert parse_date_selection("custom", "2026-01-01", "2026-01-02") == CustomRange("2026-01-01", "2026-01-02")


def test_custom_selection_requires_both_bounds():
    with pytest.raises(ValueError):
        parse_date_selection("custom", "2026-01-01", None)


def test_unknown_presets_and_scopes_raise():
    with pytest.raises(ValueError):
        parse_date_selection("fortnight")
    with pytest.raises(ValueError):
        parse_data_scope("everything")
    assert parse_data_scope(None) == DataScope.ALL_TRADES
