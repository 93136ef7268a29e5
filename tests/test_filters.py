import pytest

from trade_dashboard.filters import (
    OutcomeFilter,
    SortKey,
    SortOrder,
    TradeFilters,
    apply_filters,
    parse_sort,
)


def test_outcome_filters(trade_factory):
    trades = [
        trade_factory(profit="5", trade_id="win"),
        trade_factory(profit="-3", trade_id="loss"),
        trade_factory(profit="0", trade_id="flat"),
    ]
    wins = apply_filters(trades, TradeFilters(outcome=OutcomeFilter.WINS))
    losses = apply_filters(trades, TradeFilters(outcome=OutcomeFilter.LOSSES))
    assert [trade.trade_id for trade in wins] == ["win"]
    assert [trade.trade_id for trade in losses] == ["loss"]
    assert len(apply_filters(trades, TradeFilters())) == 3


def test_ticker_filter_is_case_insensitive_substring(trade_factory):
    trades = [
        trade_factory(ticker="NQ1!", trade_id="nq"),
        trade_factory(ticker="ES1!", trade_id="es"),
        trade_factory(ticker=None, trade_id="none"),
    ]
    result = apply_filters(trades, TradeFilters(ticker="nq"))
    assert [trade.trade_id for trade in result] == ["nq"]


def test_filters_combine_with_and(trade_factory):
    trades = [
        trade_factory(profit="5", ticker="NQ1!", trade_id="a"),
        trade_factory(profit="-5", ticker="NQ1!", trade_id="b"),
        trade_factory(profit="5", ticker="ES1!", trade_id="c"),
    ]
    result = apply_filters(trades, TradeFilters(outcome=OutcomeFilter.WINS, ticker="NQ"))
    assert [trade.trade_id for trade in result] == ["a"]


def test_sort_by_date_uses_normalized_timestamps(trade_factory):
    trades = [
        trade_factory(timestamp="2026-02-16T10:00:00Z", trade_id="iso"),
        trade_factory(timestamp="1771200000000", trade_id="ms"),
        trade_factory(timestamp="2026-02-17T00:00:00Z", trade_id="late"),
    ]
    ascending = apply_filters(trades, TradeFilters(), SortKey.DATE, SortOrder.ASC)
    assert [trade.trade_id for trade in ascending] == ["ms", "iso", "late"]
    descending = apply_filters(trades, TradeFilters(), SortKey.DATE, SortOrder.DESC)
    assert [trade.trade_id for trade in descending] == ["late", "iso", "ms"]


def test_sort_by_profit_keeps_ties_in_input_order(trade_factory):
    trades = [
        trade_factory(profit="2", trade_id="a"),
        trade_factory(profit="9", trade_id="b"),
        trade_factory(profit="2", trade_id="c"),
    ]
    ascending = apply_filters(trades, TradeFilters(), SortKey.PROFIT, SortOrder.ASC)
    assert [trade.trade_id for trade in ascending] == ["a", "c", "b"]
    descending = apply_filters(trades, TradeFilters(), SortKey.PROFIT, SortOrder.DESC)
    assert [trade.trade_id for trade in descending] == ["b", "a", "c"]


def test_filtering_is_idempotent(trade_factory):
    trades = [trade_factory(profit=str(value), trade_id=str(value)) for value in (3, -1, 7, 0)]
    filters = TradeFilters(outcome=OutcomeFilter.WINS)
    once = apply_filters(trades, filters, SortKey.PROFIT, SortOrder.DESC)
    twice = apply_filters(once, filters, SortKey.PROFIT, SortOrder.DESC)
    assert once == twice


def test_params_parsing():
    assert TradeFilters.from_params("WINS", " nq ") == TradeFilters(OutcomeFilter.WINS, "nq")
    assert parse_sort(None, None) == (SortKey.DATE, SortOrder.DESC)
    with pytest.raises(ValueError):
        TradeFilters.from_params("breakeven")
    with pytest.raises(ValueError):
        parse_sort("ticker", "asc")
