from datetime import timezone

from trade_dashboard.metrics.heatmap import (
    MIN_INTENSITY,
    TONE_EMPTY,
    TONE_LOSS,
    TONE_NEUTRAL,
    TONE_PROFIT,
    build_heatmap,
    cell_intensity,
)

# 2026-02-15 is a Sunday.
SUNDAY_9AM = "2026-02-15T09:30:00Z"
MONDAY_14PM = "2026-02-16T14:05:00Z"
SATURDAY_23PM = "2026-02-21T23:59:00Z"


def test_buckets_by_day_and_hour_with_sunday_first(trade_factory):
    trades = [
        trade_factory(profit="10", timestamp=SUNDAY_9AM),
        trade_factory(profit="20", timestamp=SUNDAY_9AM),
        trade_factory(profit="-6", timestamp=MONDAY_14PM),
        trade_factory(profit="1", timestamp=SATURDAY_23PM),
    ]
    heatmap = build_heatmap(trades, timezone.utc)
    sunday = heatmap.cell(0, 9)
    assert (sunday.count, sunday.sum_profit, sunday.average) == (2, 30.0, 15.0)
    assert heatmap.cell(1, 14).average == -6.0
    assert heatmap.cell(6, 23).count == 1


def test_counts_are_conserved(trade_factory):
    trades = [trade_factory(timestamp=str(1771229700000 + index * 3_600_000)) for index in range(40)]
    heatmap = build_heatmap(trades, timezone.utc)
    total = sum(cell.count for row in heatmap.cells for cell in row)
    assert total == 40
    assert heatmap.skipped == 0


def test_unknown_times_are_skipped(trade_factory):
    trades = [trade_factory(timestamp="never"), trade_factory(timestamp=SUNDAY_9AM)]
    heatmap = build_heatmap(trades, timezone.utc)
    assert heatmap.skipped == 1
    assert sum(cell.count for row in heatmap.cells for cell in row) == 1


def test_intensity_scales_against_largest_magnitude(trade_factory):
    trades = [
        trade_factory(profit="100", timestamp=SUNDAY_9AM),
        trade_factory(profit="-50", timestamp=MONDAY_14PM),
        trade_factory(profit="1", timestamp=SATURDAY_23PM),
    ]
    heatmap = build_heatmap(trades, timezone.utc)
    assert heatmap.bounds == (-50.0, 100.0)
    assert heatmap.intensity(0, 9) == 1.0
    assert heatmap.intensity(1, 14) == 0.5
    assert heatmap.intensity(6, 23) == MIN_INTENSITY
    assert heatmap.intensity(3, 3) is None


def test_bounds_include_zero():
    assert cell_intensity(5.0, 0.0, 10.0) == 0.5
    assert cell_intensity(0.0, 0.0, 0.0) == MIN_INTENSITY


def test_tones(trade_factory):
    trades = [
        trade_factory(profit="5", timestamp=SUNDAY_9AM),
        trade_factory(profit="-5", timestamp=MONDAY_14PM),
        trade_factory(profit="0", timestamp=SATURDAY_23PM),
    ]
    heatmap = build_heatmap(trades, timezone.utc)
    assert heatmap.tone(0, 9) == TONE_PROFIT
    assert heatmap.tone(1, 14) == TONE_LOSS
    assert heatmap.tone(6, 23) == TONE_NEUTRAL
    assert heatmap.tone(2, 2) == TONE_EMPTY


def test_rows_cover_full_grid(trade_factory):
    rows = build_heatmap([], timezone.utc).to_rows()
    assert [row["label"] for row in rows] == ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]
    assert all(len(row["hours"]) == 24 for row in rows)


def test_rows_carry_cell_tone_and_intensity(trade_factory):
    trades = [
        trade_factory(profit="100", timestamp=SUNDAY_9AM),
        trade_factory(profit="-50", timestamp=MONDAY_14PM),
    ]
    rows = build_heatmap(trades, timezone.utc).to_rows()
    assert rows[0]["hours"][9]["tone"] == TONE_PROFIT
    assert rows[0]["hours"][9]["intensity"] == 1.0
    assert rows[1]["hours"][14]["tone"] == TONE_LOSS
    assert rows[1]["hours"][14]["intensity"] == 0.5
    assert rows[3]["hours"][3]["tone"] == TONE_EMPTY
    assert rows[3]["hours"][3]["intensity"] is None
