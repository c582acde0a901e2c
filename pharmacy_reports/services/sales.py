from __future__ import annotations

from dataclasses import replace
from datetime import date, timedelta
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from ..config import get_config
from ..data.frames import normalize_transaction_items, normalize_transactions
from ..data.interface import DataAccess
from ..data.models import (
    PeriodReport,
    PeriodTotal,
    TopItem,
    TopItemsReport,
    TransactionCount,
    TransactionFilters,
    TransactionItemFilters,
)
from ..logging import get_logger
from .periods import (
    Bucket,
    add_months,
    as_local_date,
    assign_buckets,
    day_buckets,
    day_start,
    iso_week_buckets,
    local_now,
    month_buckets,
    month_start,
    ordered,
    week_of_month_buckets,
    week_start,
    year_buckets,
)

PERIOD_TYPES = ("day", "week", "month", "year")
TOP_PERIOD_TYPES = PERIOD_TYPES + ("range",)


def _best_by(sold: pd.DataFrame, key: str, label: Optional[str] = None) -> Dict[int, str]:
    """
    Per bucket, the ``label`` of the ``key`` group with the highest summed quantity.
    Ties go to the smallest label. Rows with a missing key never win.
    """
    if sold.empty:
        return {}
    if label is None or label == key:
        sums = sold.groupby(["bucket", key], sort=False)["quantity"].sum().reset_index()
        sums["name"] = sums[key]
    else:
        sums = sold.groupby(["bucket", key], sort=False).agg(
            quantity=("quantity", "sum"), name=(label, "first")
        ).reset_index()
    sums = sums[sums["quantity"] > 0]
    sums = sums.sort_values(
        ["bucket", "quantity", "name", key], ascending=[True, False, True, True], kind="mergesort"
    )
    first = sums.drop_duplicates("bucket")
    return dict(zip(first["bucket"].astype(int), first["name"]))


class SalesAggregator:
    """
    Calendar reports over transactions and their line items.
    - Every call reads a fresh snapshot from the store and has no side effects.
    - Monetary sums stay floating point and are rounded to 2 decimals on output.
    - Rows without a parseable timestamp are skipped.
    """

    def __init__(
        self,
        store: DataAccess,
        *,
        timezone: Optional[str] = None,
        daily_window_days: Optional[int] = None,
        yearly_window_years: Optional[int] = None,
        allowed_top_n: Optional[Sequence[int]] = None,
    ) -> None:
        config = get_config()
        self.store = store
        self.timezone = timezone or config.reporting_timezone
        self.daily_window_days = int(config.daily_window_days if daily_window_days is None else daily_window_days)
        self.yearly_window_years = int(
            config.yearly_window_years if yearly_window_years is None else yearly_window_years
        )
        self.allowed_top_n = tuple(sorted(allowed_top_n or config.allowed_top_n))
        self.default_top_n = config.default_top_n
        self.logger = get_logger(__name__)

    # ---------- fetching ----------

    def _fetch_transactions(self, first: date, last: date) -> pd.DataFrame:
        filters = TransactionFilters(start_ts=day_start(first), end_ts=day_start(last + timedelta(days=1)))
        tx = normalize_transactions(self.store.get_transactions(filters), self.timezone)
        return self._drop_undated(tx, "transactions")

    def _fetch_items(self, first: date, last: date) -> pd.DataFrame:
        filters = TransactionItemFilters(start_ts=day_start(first), end_ts=day_start(last + timedelta(days=1)))
        items = normalize_transaction_items(self.store.get_transaction_items(filters), self.timezone)
        return self._drop_undated(items, "transaction items")

    def _drop_undated(self, df: pd.DataFrame, what: str) -> pd.DataFrame:
        undated = df["order_ts"].isna()
        if undated.any():
            self.logger.warning(f"Skipping {int(undated.sum())} {what} without a valid order timestamp")
            df = df[~undated].reset_index(drop=True)
        return df

    # ---------- parameter resolution ----------

    def _period(self, period: Any, allowed: Tuple[str, ...]) -> str:
        value = str(period).strip().lower() if period is not None else ""
        if value in allowed:
            return value
        self.logger.warning(f"Unknown period type {period!r}; using 'month'")
        return "month"

    def _clamp_limit(self, limit: Any) -> int:
        try:
            requested = int(limit)
        except (TypeError, ValueError):
            self.logger.warning(f"Invalid top-N limit {limit!r}; using {self.allowed_top_n[0]}")
            return self.allowed_top_n[0]
        clamped = min(self.allowed_top_n, key=lambda n: (abs(n - requested), n))
        if clamped != requested:
            self.logger.warning(f"Top-N limit {requested} clamped to {clamped}")
        return clamped

    def _buckets(
        self, period: str, start: Optional[date], end: Optional[date], days: Optional[int], today: date
    ) -> Tuple[List[Bucket], date, date]:
        explicit = start is not None or end is not None
        last = end or today

        if period == "day":
            window = max(int(days if days is not None else self.daily_window_days), 1)
            first = start or last - timedelta(days=window - 1)
            first, last = ordered(first, last)
            return day_buckets(first, last), first, last

        if period == "week":
            if not explicit:
                first = month_start(today)
                return week_of_month_buckets(today.year, today.month), first, add_months(first, 1) - timedelta(days=1)
            first, last = ordered(start or month_start(last), last)
            return iso_week_buckets(first, last), first, last

        if period == "month":
            if not explicit:
                first, last = date(today.year, 1, 1), date(today.year, 12, 31)
            else:
                first, last = ordered(start or date(last.year, 1, 1), last)
            return month_buckets(first, last), first, last

        # year
        if not explicit:
            first_year = today.year - max(self.yearly_window_years, 1) + 1
            return year_buckets(first_year, today.year), date(first_year, 1, 1), date(today.year, 12, 31)
        first, last = ordered(start or date(last.year - max(self.yearly_window_years, 1) + 1, 1, 1), last)
        stop = last + timedelta(days=1)
        buckets = [
            replace(b, start=max(b.start, first), end=min(b.end, stop))
            for b in year_buckets(first.year, last.year)
        ]
        return buckets, first, last

    # ---------- aggregation ----------

    def _totals(self, buckets: List[Bucket], tx: pd.DataFrame, items: pd.DataFrame) -> List[PeriodTotal]:
        n = len(buckets)

        tx_idx = assign_buckets(tx["order_ts"], buckets)
        in_tx = tx_idx >= 0
        counts = np.bincount(tx_idx[in_tx], minlength=n)
        sales = np.bincount(tx_idx[in_tx], weights=tx["total"].to_numpy(dtype=float)[in_tx], minlength=n)
        vat = np.bincount(tx_idx[in_tx], weights=tx["vat_amount"].to_numpy(dtype=float)[in_tx], minlength=n)

        item_idx = assign_buckets(items["order_ts"], buckets)
        in_items = item_idx >= 0
        units = np.bincount(item_idx[in_items], weights=items["quantity"].to_numpy(dtype=float)[in_items], minlength=n)

        sold = items.assign(bucket=item_idx)[in_items]
        best_product = _best_by(sold, "product_id", "product_name")
        best_category = _best_by(sold, "category")

        totals = []
        for i, bucket in enumerate(buckets):
            if bucket.optional and counts[i] == 0:
                continue
            totals.append(
                PeriodTotal(
                    key=bucket.key,
                    label=bucket.label,
                    start=bucket.start,
                    end=bucket.last_day,
                    transactions=int(counts[i]),
                    total_sales=round(float(sales[i]), 2),
                    total_vat=round(float(vat[i]), 2),
                    units_sold=int(round(float(units[i]))),
                    best_product=best_product.get(i),
                    best_category=best_category.get(i),
                )
            )
        return totals

    def _counts(self, buckets: List[Bucket], first: date, last: date) -> List[TransactionCount]:
        tx = self._fetch_transactions(first, last)
        idx = assign_buckets(tx["order_ts"], buckets)
        counts = np.bincount(idx[idx >= 0], minlength=len(buckets))
        return [TransactionCount(label=b.label, total_transactions=int(c)) for b, c in zip(buckets, counts)]

    # ---------- public API ----------

    def period_totals(
        self,
        period: str = "month",
        start: Any = None,
        end: Any = None,
        *,
        days: Optional[int] = None,
        now: Any = None,
    ) -> PeriodReport:
        """
        Dense per-bucket totals for one period type.

        - day: each day of the trailing ``days`` window ending today (or each day of start..end).
        - week: the week-of-month partition of the current month, or ISO weeks over start..end.
        - month: Jan..Dec of the current year, or each month of start..end.
        - year: the trailing yearly window, or each year of start..end.

        ``start``/``end`` are inclusive calendar dates; a reversed range is swapped.
        """
        period = self._period(period, PERIOD_TYPES)
        today = local_now(now, self.timezone).date()
        buckets, first, last = self._buckets(
            period, as_local_date(start, self.timezone), as_local_date(end, self.timezone), days, today
        )

        tx = self._fetch_transactions(first, last)
        items = self._fetch_items(first, last)
        self.logger.debug(f"{period} totals {first}..{last}: {len(tx)} transactions, {len(items)} line items")

        totals = self._totals(buckets, tx, items)
        self.logger.info(f"Built {len(totals)} {period} buckets for {first}..{last}")
        return PeriodReport(period=period, start=first, end=last, totals=totals)

    def week_of_month_totals(
        self, year: Optional[int] = None, month: Optional[int] = None, now: Any = None
    ) -> PeriodReport:
        """``Week 1..n`` totals of one month; the trailing partial week appears only when it has transactions."""
        today = local_now(now, self.timezone).date()
        year = int(today.year if year is None else year)
        month = int(today.month if month is None else month)
        if not 1 <= month <= 12:
            self.logger.warning(f"Month {month} out of range; using {min(max(month, 1), 12)}")
            month = min(max(month, 1), 12)

        first = date(year, month, 1)
        last = add_months(first, 1) - timedelta(days=1)
        buckets = week_of_month_buckets(year, month)
        totals = self._totals(buckets, self._fetch_transactions(first, last), self._fetch_items(first, last))
        return PeriodReport(period="week", start=first, end=last, totals=totals)

    def monthly_transaction_counts(self, year: Optional[int] = None, now: Any = None) -> List[TransactionCount]:
        """Transactions per month (Jan..Dec) of ``year``, defaulting to the current year."""
        year = int(year or local_now(now, self.timezone).year)
        first, last = date(year, 1, 1), date(year, 12, 31)
        return self._counts(month_buckets(first, last), first, last)

    def yearly_transaction_counts(
        self, from_year: Optional[int] = None, to_year: Optional[int] = None, now: Any = None
    ) -> List[TransactionCount]:
        """Transactions per year; the default range is the trailing yearly window."""
        current = local_now(now, self.timezone).year
        to_year = int(to_year or current)
        from_year = int(from_year or to_year - max(self.yearly_window_years, 1) + 1)
        from_year, to_year = min(from_year, to_year), max(from_year, to_year)
        return self._counts(
            year_buckets(from_year, to_year), date(from_year, 1, 1), date(to_year, 12, 31)
        )

    def top_items(
        self,
        type: str = "product",
        limit: Any = None,
        period_type: str = "month",
        start: Any = None,
        end: Any = None,
        now: Any = None,
    ) -> TopItemsReport:
        """
        Top products or categories by revenue over a date range.

        Args:
            type: "product" or "category"; anything else ranks products.
            limit: clamped to the nearest allowed size (5 or 10); defaults to ``default_top_n``.
            period_type: day (today), week (this Monday..Sunday), month (this month),
                year (this year) or range (``start``..``end``, inclusive).
        """
        kind = "category" if str(type).strip().lower() == "category" else "product"
        limit = self._clamp_limit(self.default_top_n if limit is None else limit)
        first, last = self._top_range(period_type, start, end, local_now(now, self.timezone).date())

        items = self._fetch_items(first, last)
        if kind == "product":
            unknown = items["product_id"].isna()
            if unknown.any():
                self.logger.warning(f"Skipping {int(unknown.sum())} transaction items without a product id")
                items = items[~unknown].reset_index(drop=True)
        total_revenue = float(items["subtotal"].sum()) if not items.empty else 0.0

        ranked = self._rank(items, kind, total_revenue).head(limit)
        top = [
            TopItem(
                rank=rank,
                product_id=row["product_id"] if kind == "product" else None,
                name=row["name"],
                category=row["category"],
                quantity_sold=int(round(row["quantity"])),
                revenue=round(float(row["revenue"]), 2),
                average_price=round(float(row["average_price"]), 2),
                transaction_count=int(row["transaction_count"]),
                percentage_of_sales=round(float(row["percentage"]), 2),
            )
            for rank, (_, row) in enumerate(ranked.iterrows(), start=1)
        ]
        self.logger.info(f"Top {limit} {kind} items {first}..{last}: {len(top)} ranked of {len(items)} line items")
        return TopItemsReport(
            type=kind, limit=limit, start=first, end=last, total_revenue=round(total_revenue, 2), items=top
        )

    def _top_range(self, period_type: Any, start: Any, end: Any, today: date) -> Tuple[date, date]:
        period_type = self._period(period_type, TOP_PERIOD_TYPES)
        if period_type == "range":
            first, last = as_local_date(start, self.timezone), as_local_date(end, self.timezone)
            if first is not None and last is not None:
                return ordered(first, last)
            self.logger.warning("Range top-N report needs both start and end; using the current month")
            period_type = "month"

        if period_type == "day":
            return today, today
        if period_type == "week":
            monday = week_start(today)
            return monday, monday + timedelta(days=6)
        if period_type == "year":
            return date(today.year, 1, 1), date(today.year, 12, 31)
        first = month_start(today)
        return first, add_months(first, 1) - timedelta(days=1)

    @staticmethod
    def _rank(items: pd.DataFrame, kind: str, total_revenue: float) -> pd.DataFrame:
        columns = ["product_id", "name", "category", "quantity", "revenue", "transaction_count"]
        if items.empty:
            return pd.DataFrame(columns=columns + ["average_price", "percentage"])

        if kind == "category":
            grouped = items.groupby("category", sort=False).agg(
                quantity=("quantity", "sum"),
                revenue=("subtotal", "sum"),
                transaction_count=("transaction_id", "nunique"),
            ).reset_index()
            grouped["name"] = grouped["category"]
            grouped["product_id"] = None
        else:
            grouped = items.groupby("product_id", sort=False).agg(
                name=("product_name", "first"),
                category=("category", "first"),
                quantity=("quantity", "sum"),
                revenue=("subtotal", "sum"),
                transaction_count=("transaction_id", "nunique"),
            ).reset_index()

        quantity = grouped["quantity"].to_numpy(dtype=float)
        revenue = grouped["revenue"].to_numpy(dtype=float)
        grouped["average_price"] = np.divide(revenue, quantity, out=np.zeros_like(revenue), where=quantity > 0)
        grouped["percentage"] = revenue / total_revenue * 100 if total_revenue > 0 else 0.0

        return grouped[columns + ["average_price", "percentage"]].sort_values(
            ["revenue", "name"], ascending=[False, True], kind="mergesort"
        )
