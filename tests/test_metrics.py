import pytest

from trade_dashboard.metrics.distribution import action_distribution, win_loss_distribution
from trade_dashboard.metrics.series import cumulative_pnl, downsample_points, round2
from trade_dashboard.metrics.summary import compute_trade_metrics


def test_cumulative_pnl_orders_by_time(trade_factory):
    trades = [
        trade_factory(profit="20", timestamp="3000"),
        trade_factory(profit="10", timestamp="1000"),
        trade_factory(profit="-5", timestamp="2000"),
    ]
    points = cumulative_pnl(trades)
    assert [point.index for point in points] == [1, 2, 3]
    assert [point.profit for point in points] == [10.0, -5.0, 20.0]
    assert [point.cumulative for point in points] == [10.0, 5.0, 25.0]


def test_cumulative_pnl_accumulates_unrounded(trade_factory):
    trades = [trade_factory(profit="0.004", timestamp=str(1000 + index)) for index in range(3)]
    points = cumulative_pnl(trades)
    assert [point.profit for point in points] == [0.0, 0.0, 0.0]
    assert points[-1].cumulative == 0.01


def test_cumulative_pnl_keeps_input_order_for_equal_times(trade_factory):
    trades = [
        trade_factory(profit="1", timestamp="garbage"),
        trade_factory(profit="2", timestamp=""),
    ]
    assert [point.profit for point in cumulative_pnl(trades)] == [1.0, 2.0]


def test_empty_input_gives_empty_series():
    assert cumulative_pnl([]) == []


def test_round2_collapses_negative_zero():
    assert str(round2(-0.001)) == "0.0"


def test_downsample_keeps_last_point(trade_factory):
    trades = [trade_factory(profit="1", timestamp=str(1000 + index)) for index in range(10)]
    points = cumulative_pnl(trades)
    sampled = downsample_points(points, 3)
    assert sampled[0].index == 1
    assert sampled[-1].index == 10
    assert downsample_points(points, None) == points


def test_zero_profit_counts_as_loss_in_distribution_only(trade_factory):
    trades = [trade_factory(profit=value) for value in ("5", "-3", "0", "7")]
    distribution = win_loss_distribution(trades)
    assert (distribution.wins, distribution.losses) == (2, 2)
    assert distribution.total == 4

    metrics = compute_trade_metrics(trades)
    assert metrics.winning_trades == 2
    assert metrics.losing_trades == 1
    assert metrics.win_rate == pytest.approx(2 / 3)


def test_action_distribution_preserves_first_seen_order(trade_factory):
    trades = [trade_factory(action=action) for action in ("sell", "buy", "sell", "close")]
    counts = action_distribution(trades)
    assert [(item.action, item.count) for item in counts] == [("sell", 2), ("buy", 1), ("close", 1)]
    assert counts[0].label == "SELL"


def test_metrics_on_empty_input():
    metrics = compute_trade_metrics([])
    assert metrics.total_trades == 0
    assert metrics.win_rate is None
    assert metrics.profit_factor is None
    assert metrics.largest_win is None


def test_metrics_aggregates(trade_factory):
    trades = [
        trade_factory(profit="10", timestamp="1000"),
        trade_factory(profit="-5", timestamp="2000"),
        trade_factory(profit="20", timestamp="3000"),
    ]
    metrics = compute_trade_metrics(trades)
    assert metrics.total_profit == 30.0
    assert metrics.total_loss == -5.0
    assert metrics.net_pnl == 25.0
    assert metrics.profit_factor == 6.0
    assert metrics.average_win == 15.0
    assert metrics.largest_win == 20.0
    assert metrics.largest_loss == -5.0


def test_streaks_follow_time_order_and_reset_on_flat(trade_factory):
    profits = ["1", "2", "0", "3", "-1", "-2", "-3", "4"]
    trades = [trade_factory(profit=value, timestamp=str(1000 + index)) for index, value in enumerate(profits)]
    metrics = compute_trade_metrics(reversed(trades))
    assert metrics.max_consecutive_wins == 2
    assert metrics.max_consecutive_losses == 3


def test_unparseable_profit_reads_as_zero(trade_factory):
    metrics = compute_trade_metrics([trade_factory(profit="n/a")])
    assert metrics.net_pnl == 0.0
    assert metrics.win_rate is None
