"""Unit tests for growth report computation."""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

import pytest
from sqlalchemy import create_engine

from datastore.sample_store import SampleStore
from errors import InsufficientData, ReportError
from services.reporter import TrendReporter, elapsed_hours, growth_percent, used_percent
from tests.factories import NOW, FrozenClock, make_record


def test_growth_percent_for_ten_percent_increase() -> None:
    assert growth_percent(1000, 1100) == Decimal("10")
    assert str(growth_percent(1000, 1100)) == "10.00"


def test_growth_percent_can_be_negative() -> None:
    assert growth_percent(200, 150) == Decimal("-25")


def test_growth_unavailable_for_zero_baseline() -> None:
    assert growth_percent(0, 500) is None
    assert growth_percent(500, 0) is None


def test_growth_rounds_half_up() -> None:
    # 2/3 growth = 66.666...%
    assert growth_percent(3, 5) == Decimal("66.67")


def test_elapsed_hours_round_half_up_to_two_places() -> None:
    assert elapsed_hours(NOW, NOW + timedelta(hours=2)) == Decimal("2.00")
    assert elapsed_hours(NOW, NOW + timedelta(hours=1, seconds=18)) == Decimal("1.01")
    assert elapsed_hours(NOW, NOW + timedelta(minutes=7)) == Decimal("0.12")
    assert elapsed_hours(NOW, NOW + timedelta(microseconds=999)) == Decimal("0.00")


def test_used_percent_is_whole_number() -> None:
    assert used_percent(Decimal("0.57")) == 57
    assert used_percent(Decimal("1.00")) == 100


def test_report_end_to_end(store: SampleStore, clock: FrozenClock) -> None:
    t1 = NOW
    t2 = t1 + timedelta(hours=2)
    store.insert_batch([make_record("/data", used=100, total=1000)], t1)
    store.insert_batch([make_record("/data", used=150, total=1000)], t2)
    clock.now = t2 + timedelta(minutes=10)

    result = TrendReporter(store).report("web-1", Decimal(2))

    assert result.then == t1
    assert result.now == t2
    assert result.elapsed_hours == Decimal("2.00")
    assert result.window_shortened is False
    assert len(result.rows) == 1
    row = result.rows[0]
    assert row.mount_point == "/data"
    assert row.change_kb == 50
    assert row.growth_percent == Decimal("50")
    assert row.used_kb == 150
    assert row.free_kb == 850
    assert row.used_percent == 15


def test_report_picks_latest_sample_before_window(store: SampleStore, clock: FrozenClock) -> None:
    for hours_ago, used in ((30, 100), (26, 200), (20, 300), (0, 400)):
        store.insert_batch([make_record("/", used=used)], NOW - timedelta(hours=hours_ago))

    result = TrendReporter(store).report("web-1", Decimal(24))

    assert result.then == NOW - timedelta(hours=26)
    assert result.now == NOW
    assert result.rows[0].change_kb == 200


def test_report_falls_back_to_oldest_sample(store: SampleStore, clock: FrozenClock) -> None:
    store.insert_batch([make_record("/", used=100)], NOW - timedelta(hours=3))
    store.insert_batch([make_record("/", used=120)], NOW - timedelta(hours=1))
    store.insert_batch([make_record("/", used=130)], NOW)

    result = TrendReporter(store).report("web-1", Decimal(24))

    assert result.window_shortened is True
    assert result.then == NOW - timedelta(hours=3)
    assert result.elapsed_hours == Decimal("3.00")
    assert result.rows[0].change_kb == 30


def test_report_with_single_sample_compares_it_to_itself(store: SampleStore) -> None:
    store.insert_batch([make_record("/", used=100)], NOW)

    result = TrendReporter(store).report("web-1", Decimal(24))

    assert result.then == result.now == NOW
    assert result.elapsed_hours == Decimal("0.00")
    assert result.rows[0].change_kb == 0
    assert result.rows[0].growth_percent == Decimal("0")


def test_report_omits_mount_points_missing_from_either_snapshot(store: SampleStore) -> None:
    store.insert_batch(
        [make_record("/", used=100), make_record("/old", used=10)],
        NOW - timedelta(hours=30),
    )
    store.insert_batch(
        [make_record("/", used=110), make_record("/new", used=10)],
        NOW,
    )

    result = TrendReporter(store).report("web-1", Decimal(24))

    assert [row.mount_point for row in result.rows] == ["/"]


def test_report_marks_growth_unavailable_for_empty_filesystem(store: SampleStore) -> None:
    store.insert_batch([make_record("/scratch", used=0)], NOW - timedelta(hours=30))
    store.insert_batch([make_record("/scratch", used=500)], NOW)

    result = TrendReporter(store).report("web-1", Decimal(24))

    assert result.rows[0].change_kb == 500
    assert result.rows[0].growth_percent is None


def test_report_without_samples_is_insufficient(store: SampleStore) -> None:
    store.insert_batch([make_record("/", hostname="other-host")], NOW)

    with pytest.raises(InsufficientData):
        TrendReporter(store).report("web-1", Decimal(24))


def test_report_without_schema_is_insufficient(tmp_path) -> None:
    store = SampleStore(engine=create_engine(f"sqlite:///{tmp_path / 'empty.db'}"))
    try:
        with pytest.raises(InsufficientData):
            TrendReporter(store).report("web-1", Decimal(24))
    finally:
        store.close()


def test_negative_window_is_rejected(store: SampleStore) -> None:
    with pytest.raises(ReportError):
        TrendReporter(store).report("web-1", Decimal(-1))


def test_window_beyond_representable_time_uses_oldest_sample(store: SampleStore) -> None:
    store.insert_batch([make_record("/data", used=100)], NOW - timedelta(hours=2))
    store.insert_batch([make_record("/data", used=150)], NOW)

    for hours in (Decimal("20000000"), Decimal("1e30")):
        result = TrendReporter(store).report("web-1", hours)

        assert result.window_shortened is True
        assert result.then == NOW - timedelta(hours=2)
        assert result.rows[0].change_kb == 50
