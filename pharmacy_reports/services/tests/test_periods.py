from datetime import date, datetime

import pandas as pd
import pytest

from pharmacy_reports.services.periods import (
    add_months,
    as_local_date,
    assign_buckets,
    day_buckets,
    iso_week_buckets,
    iso_week_key,
    local_now,
    month_buckets,
    week_of_month_buckets,
    year_buckets,
)


@pytest.mark.parametrize(
    "d,expected",
    [
        (date(2021, 1, 1), "2020-W53"),
        (date(2024, 12, 30), "2025-W01"),
        (date(2024, 6, 12), "2024-W24"),
    ],
)
def test_iso_week_key_uses_thursday_rule(d, expected):
    assert iso_week_key(d) == expected


def test_add_months_rolls_over_year():
    assert add_months(date(2024, 11, 15), 2) == date(2025, 1, 1)
    assert add_months(date(2024, 1, 31), -1) == date(2023, 12, 1)


def test_week_of_month_starts_on_monday_before_the_first():
    # February 2024 starts on a Thursday
    buckets = week_of_month_buckets(2024, 2)
    assert [b.label for b in buckets] == ["Week 1", "Week 2", "Week 3", "Week 4", "Week 5"]
    assert (buckets[0].start, buckets[0].last_day) == (date(2024, 2, 1), date(2024, 2, 4))
    assert (buckets[-1].start, buckets[-1].last_day) == (date(2024, 2, 26), date(2024, 2, 29))
    assert buckets[-1].optional
    assert not any(b.optional for b in buckets[:-1])


def test_week_of_month_full_final_week_is_not_optional():
    # March 2024 ends on a Sunday
    buckets = week_of_month_buckets(2024, 3)
    assert buckets[-1].last_day == date(2024, 3, 31)
    assert not buckets[-1].optional


def test_builders_clip_to_range():
    weeks = iso_week_buckets(date(2024, 6, 5), date(2024, 6, 12))
    assert [(b.start, b.last_day) for b in weeks] == [
        (date(2024, 6, 5), date(2024, 6, 9)),
        (date(2024, 6, 10), date(2024, 6, 12)),
    ]
    months = month_buckets(date(2024, 1, 15), date(2024, 3, 10))
    assert [b.label for b in months] == ["Jan", "Feb", "Mar"]
    assert months[0].start == date(2024, 1, 15)
    assert months[-1].last_day == date(2024, 3, 10)
    assert [b.key for b in day_buckets(date(2024, 2, 28), date(2024, 3, 1))] == ["2024-02-28", "2024-02-29", "2024-03-01"]


def test_year_buckets_swap_reversed_years():
    assert [b.label for b in year_buckets(2024, 2022)] == ["2022", "2023", "2024"]


def test_assign_buckets_half_open_edges():
    buckets = month_buckets(date(2024, 1, 1), date(2024, 2, 29))
    ts = pd.Series(
        pd.to_datetime(
            ["2024-01-01 00:00:00", "2024-01-31 23:59:59", "2024-02-01 00:00:00", "2024-03-01 00:00:00", "2023-12-31 23:59:59", None]
        )
    )
    assert assign_buckets(ts, buckets).tolist() == [0, 0, 1, -1, -1, -1]


def test_assign_buckets_without_buckets():
    ts = pd.Series(pd.to_datetime(["2024-01-01"]))
    assert assign_buckets(ts, []).tolist() == [-1]


def test_local_dates_and_now():
    assert as_local_date("2024-01-31T20:00:00Z", "Asia/Manila") == date(2024, 2, 1)
    assert as_local_date(date(2024, 5, 1), "Asia/Manila") == date(2024, 5, 1)
    assert as_local_date(None, "Asia/Manila") is None
    assert local_now(datetime(2024, 5, 1, 8, 0), "Asia/Manila") == datetime(2024, 5, 1, 8, 0)
    assert local_now(pd.Timestamp("2024-05-01 00:30", tz="UTC"), "Asia/Manila") == datetime(2024, 5, 1, 8, 30)
