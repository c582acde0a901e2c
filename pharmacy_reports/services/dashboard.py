from __future__ import annotations

import math
from datetime import date, datetime, timedelta
from typing import Any, List, Optional, Tuple

import pandas as pd

from ..config import get_config
from ..data.frames import normalize_batches, normalize_products, normalize_transactions
from ..data.interface import DataAccess
from ..data.models import (
    BatchFilters,
    ExpiringCounts,
    ExpiringRow,
    LowStockCount,
    LowStockRow,
    ProductFilters,
    TotalSales,
    TransactionFilters,
    TransactionsCount,
)
from ..logging import get_logger
from .periods import as_local_date, day_start, local_now, ordered

SECONDS_PER_DAY = 86400.0
DAYS_PER_MONTH = 30


def _page(rows: list, limit: int, offset: int) -> list:
    offset = max(int(offset), 0)
    if limit is None or limit <= 0:
        return rows[offset:]
    return rows[offset:offset + int(limit)]


class DashboardMetrics:
    """
    Numbers behind the dashboard tiles: low stock, expiring batches and
    year-to-date sales.
    - Only active products and active batches are considered.
    - List methods page with ``limit``/``offset``; a non-positive limit returns every row.
    """

    def __init__(
        self,
        store: DataAccess,
        *,
        timezone: Optional[str] = None,
        currency: Optional[str] = None,
    ) -> None:
        config = get_config()
        self.store = store
        self.timezone = timezone or config.reporting_timezone
        self.currency = currency or config.currency
        self.low_stock_threshold = config.low_stock_threshold
        self.warn_months = config.expiry_warn_months
        self.danger_months = config.expiry_danger_months
        self.logger = get_logger(__name__)

    # ---------- low stock ----------

    def _stock_levels(self) -> pd.DataFrame:
        """Active products with their total active stock and earliest batch expiry."""
        products = normalize_products(self.store.get_products(ProductFilters(active=True)))
        batches = normalize_batches(self.store.get_product_batches(BatchFilters(active=True)), self.timezone)
        products = products[products["is_active"]]
        batches = batches[batches["is_active"]]

        per_product = batches.groupby("product_id").agg(
            qty=("stock", "sum"),
            expiry=("expiry_date", "min"),
        )
        levels = products.merge(per_product, how="left", left_on="product_id", right_index=True)
        levels["qty"] = levels["qty"].fillna(0.0)
        return levels

    def low_stock_count(self, threshold: Optional[int] = None) -> LowStockCount:
        """Active products whose total stock is at or below ``threshold``; products without batches hold 0."""
        threshold = self.low_stock_threshold if threshold is None else int(threshold)
        levels = self._stock_levels()
        count = int((levels["qty"] <= threshold).sum())
        self.logger.debug(f"{count} of {len(levels)} active products at or below {threshold}")
        return LowStockCount(count=count, threshold=threshold)

    def list_low_stock(
        self, threshold: Optional[int] = None, limit: int = 100, offset: int = 0
    ) -> List[LowStockRow]:
        threshold = self.low_stock_threshold if threshold is None else int(threshold)
        levels = self._stock_levels()
        low = levels[levels["qty"] <= threshold].sort_values(["qty", "name"], kind="mergesort")

        rows = [
            dict(
                product_id=r.product_id,
                name=r.name,
                category=r.category,
                brand=r.brand,
                price=round(float(r.selling_price), 2),
                expiry=None if pd.isna(r.expiry) else r.expiry.date(),
                qty=int(round(r.qty)),
            )
            for r in low.itertuples(index=False)
        ]
        offset = max(int(offset), 0)
        return [
            LowStockRow(row_no=offset + i + 1, **row)
            for i, row in enumerate(_page(rows, limit, offset))
        ]

    # ---------- expiry ----------

    def _expiring_batches(self) -> pd.DataFrame:
        batches = normalize_batches(
            self.store.get_product_batches(BatchFilters(active=True, has_expiry=True)), self.timezone
        )
        batches = batches[batches["is_active"]]
        undated = batches["expiry_date"].isna()
        if undated.any():
            self.logger.warning(f"Skipping {int(undated.sum())} batches with an unreadable expiry date")
        return batches[~undated]

    def expiring_counts(
        self,
        warn_months: Optional[int] = None,
        danger_months: Optional[int] = None,
        now: Any = None,
    ) -> ExpiringCounts:
        """
        Count active batches that have not expired yet.

        - danger: expires within ``danger_months`` from now.
        - warn: expires after the danger window but within ``warn_months``.
        """
        warn_months = self.warn_months if warn_months is None else int(warn_months)
        danger_months = self.danger_months if danger_months is None else int(danger_months)
        now = pd.Timestamp(local_now(now, self.timezone))
        warn_until = now + pd.DateOffset(months=warn_months)
        danger_until = now + pd.DateOffset(months=danger_months)

        expiry = self._expiring_batches()["expiry_date"]
        upcoming = expiry[(expiry > now) & (expiry <= warn_until)]
        danger = int((upcoming <= danger_until).sum())
        warn = len(upcoming) - danger

        return ExpiringCounts(
            total=warn + danger,
            warn=warn,
            danger=danger,
            warn_months=warn_months,
            danger_months=danger_months,
        )

    def list_expiring_batches(
        self,
        months: Optional[int] = None,
        danger: Optional[int] = None,
        limit: int = 100,
        offset: int = 0,
        now: Any = None,
    ) -> List[ExpiringRow]:
        """Batches of active products by days left, soonest (or already expired) first.

        The level uses ``days_left / 30`` against ``danger`` and ``months``;
        batches beyond ``months`` are left out.
        """
        months = self.warn_months if months is None else int(months)
        danger = self.danger_months if danger is None else int(danger)
        now = pd.Timestamp(local_now(now, self.timezone))

        batches = self._expiring_batches()
        products = normalize_products(self.store.get_products(ProductFilters(active=True)))
        products = products[products["is_active"]].drop_duplicates("product_id").set_index("product_id")
        batches = batches[batches["product_id"].isin(products.index)]

        rows = []
        for b in batches.itertuples(index=False):
            days_left = math.ceil((b.expiry_date - now).total_seconds() / SECONDS_PER_DAY)
            months_left = days_left / DAYS_PER_MONTH
            if months_left <= danger:
                level = "danger"
            elif months_left <= months:
                level = "warn"
            else:
                continue
            product = products.loc[b.product_id]
            rows.append(
                ExpiringRow(
                    product_item_id=b.product_item_id or "",
                    product_id=b.product_id,
                    product_name=product["name"],
                    category=product["category"],
                    brand=product["brand"],
                    expiry_date=b.expiry_date.date(),
                    days_left=days_left,
                    qty=int(round(b.stock)),
                    expiry_level=level,
                )
            )
        rows.sort(key=lambda r: (r.days_left, r.product_name))
        return _page(rows, limit, offset)

    # ---------- sales ----------

    def _window(self, start: Any, end: Any, now: Any) -> Tuple[datetime, datetime]:
        """Inclusive calendar dates as a half-open timestamp range; defaults to the current year."""
        year = local_now(now, self.timezone).year
        first = as_local_date(start, self.timezone) or date(year, 1, 1)
        last = as_local_date(end, self.timezone) or date(year, 12, 31)
        first, last = ordered(first, last)
        return day_start(first), day_start(last + timedelta(days=1))

    def _transactions(self, start_ts: datetime, end_ts: datetime) -> pd.DataFrame:
        tx = normalize_transactions(
            self.store.get_transactions(TransactionFilters(start_ts=start_ts, end_ts=end_ts)), self.timezone
        )
        return tx[tx["order_ts"].notna()]

    def transactions_count(self, start: Any = None, end: Any = None, now: Any = None) -> TransactionsCount:
        start_ts, end_ts = self._window(start, end, now)
        return TransactionsCount(count=len(self._transactions(start_ts, end_ts)), start=start_ts, end=end_ts)

    def total_sales(self, start: Any = None, end: Any = None, now: Any = None) -> TotalSales:
        start_ts, end_ts = self._window(start, end, now)
        total = float(self._transactions(start_ts, end_ts)["total"].sum())
        return TotalSales(total_sales=round(total, 2), currency=self.currency, start=start_ts, end=end_ts)
