"""Calendar buckets for the sales reports.

Buckets are contiguous half-open day ranges ``[start, end)`` so that a sorted
list of them can be searched with a single ``searchsorted`` pass.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Any, List, Optional, Tuple

import numpy as np
import pandas as pd

MONTHS = ["Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]


@dataclass(frozen=True)
class Bucket:
    key: str
    label: str
    start: date
    end: date  # exclusive
    # dropped from the report when it holds no transactions
    optional: bool = False

    @property
    def last_day(self) -> date:
        return self.end - timedelta(days=1)


# ---------- date helpers ----------

def month_start(d: date) -> date:
    return date(d.year, d.month, 1)


def add_months(d: date, months: int) -> date:
    """First day of the month ``months`` after the month of ``d``."""
    years, month0 = divmod(d.month - 1 + months, 12)
    return date(d.year + years, month0 + 1, 1)


def week_start(d: date) -> date:
    """Monday on or before ``d``."""
    return d - timedelta(days=d.weekday())


def iso_week_key(d: date) -> str:
    # isocalendar applies the Thursday rule for the week-year
    iso_year, iso_week, _ = d.isocalendar()
    return f"{iso_year}-W{iso_week:02d}"


def day_start(d: date) -> datetime:
    return datetime.combine(d, time.min)


def local_now(now: Any, tz: str) -> datetime:
    """``now`` as a naive local datetime in ``tz``; the current time when None."""
    if now is None:
        return pd.Timestamp.now(tz=tz).tz_localize(None).to_pydatetime()
    ts = pd.Timestamp(now)
    if ts.tzinfo is not None:
        ts = ts.tz_convert(tz).tz_localize(None)
    return ts.to_pydatetime()


def as_local_date(value: Any, tz: str) -> Optional[date]:
    """Coerce a date, datetime, Timestamp or ISO string to a calendar date in ``tz``."""
    if value is None:
        return None
    if isinstance(value, date) and not isinstance(value, datetime):
        return value
    ts = pd.Timestamp(value)
    if ts.tzinfo is not None:
        ts = ts.tz_convert(tz).tz_localize(None)
    return ts.date()


def ordered(first: date, last: date) -> Tuple[date, date]:
    return (first, last) if first <= last else (last, first)


# ---------- bucket builders ----------

def day_buckets(first: date, last: date) -> List[Bucket]:
    buckets = []
    d = first
    while d <= last:
        key = d.isoformat()
        buckets.append(Bucket(key=key, label=key, start=d, end=d + timedelta(days=1)))
        d += timedelta(days=1)
    return buckets


def iso_week_buckets(first: date, last: date) -> List[Bucket]:
    """Monday-aligned weeks covering ``first..last``, clipped to the range."""
    buckets = []
    cur = week_start(first)
    stop = last + timedelta(days=1)
    while cur < stop:
        key = iso_week_key(cur)
        nxt = cur + timedelta(days=7)
        buckets.append(Bucket(key=key, label=key, start=max(cur, first), end=min(nxt, stop)))
        cur = nxt
    return buckets


def week_of_month_buckets(year: int, month: int) -> List[Bucket]:
    """Partition a month into Monday-aligned 7-day spans.

    Spans start at the Monday on or before the 1st. The final span is marked
    optional when it runs past the end of the month.
    """
    first = date(year, month, 1)
    stop = add_months(first, 1)
    buckets = []
    cur = week_start(first)
    n = 1
    while cur < stop:
        nxt = cur + timedelta(days=7)
        buckets.append(
            Bucket(
                key=f"{year}-{month:02d}-W{n}",
                label=f"Week {n}",
                start=max(cur, first),
                end=min(nxt, stop),
                optional=n > 1 and nxt > stop,
            )
        )
        cur = nxt
        n += 1
    return buckets


def month_buckets(first: date, last: date) -> List[Bucket]:
    buckets = []
    cur = month_start(first)
    stop = last + timedelta(days=1)
    while cur < stop:
        nxt = add_months(cur, 1)
        buckets.append(
            Bucket(
                key=f"{cur.year}-{cur.month:02d}",
                label=MONTHS[cur.month - 1],
                start=max(cur, first),
                end=min(nxt, stop),
            )
        )
        cur = nxt
    return buckets


def year_buckets(first_year: int, last_year: int) -> List[Bucket]:
    first_year, last_year = min(first_year, last_year), max(first_year, last_year)
    return [
        Bucket(key=str(y), label=str(y), start=date(y, 1, 1), end=date(y + 1, 1, 1))
        for y in range(first_year, last_year + 1)
    ]


# ---------- assignment ----------

def assign_buckets(timestamps: pd.Series, buckets: List[Bucket]) -> np.ndarray:
    """Index of the bucket holding each timestamp, -1 when outside every bucket or NaT."""
    values = pd.to_datetime(timestamps, errors="coerce").to_numpy(dtype="datetime64[ns]")
    if not buckets:
        return np.full(len(values), -1, dtype=np.int64)

    edges = np.array(
        [pd.Timestamp(b.start).to_datetime64() for b in buckets] + [pd.Timestamp(buckets[-1].end).to_datetime64()],
        dtype="datetime64[ns]",
    )
    idx = np.searchsorted(edges, values, side="right").astype(np.int64) - 1
    outside = np.isnat(values) | (idx < 0) | (idx >= len(buckets))
    idx[outside] = -1
    return idx
