from __future__ import annotations

import math
from datetime import datetime, timedelta
from typing import List, Optional, Tuple

import pandas as pd

from ..config import get_config
from ..data.frames import (
    normalize_batches,
    normalize_products,
    normalize_purchase_orders,
    normalize_transaction_items,
)
from ..data.interface import DataAccess
from ..data.models import (
    BatchFilters,
    ProductFilters,
    PurchaseOrderFilters,
    ReorderReport,
    ReorderSuggestion,
    StockStatus,
    TransactionItemFilters,
)
from ..logging import get_logger
from .periods import local_now

SECONDS_PER_DAY = 86400.0


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def compute_safety_stock(avg_daily_usage: float, lead_time_days: float, safety_factor: float) -> float:
    if avg_daily_usage < 0 or lead_time_days < 0 or safety_factor < 0:
        return 0.0
    return safety_factor * avg_daily_usage * lead_time_days


def compute_reorder_level(avg_daily_usage: float, lead_time_days: float, safety_stock: float) -> float:
    if avg_daily_usage < 0 or lead_time_days < 0 or safety_stock < 0:
        return 0.0
    return avg_daily_usage * lead_time_days + safety_stock


def compute_status(current_stock: float, reorder_level: float) -> StockStatus:
    if current_stock <= reorder_level:
        return "LOW STOCK"
    return "OK"


def compute_reorder_fields(
    current_stock: float,
    avg_daily_usage: float,
    lead_time_days: float,
    safety_factor: float,
) -> dict:
    safety = compute_safety_stock(avg_daily_usage, lead_time_days, safety_factor)
    level = compute_reorder_level(avg_daily_usage, lead_time_days, safety)
    status = compute_status(current_stock, level)
    suggested = max(level - current_stock + safety, 0.0)

    return {
        "safety_stock": safety,
        "reorder_level": level,
        "status": status,
        "suggested_reorder_quantity": suggested,
        "shortfall": level - current_stock,
    }


# ---------- per-product inputs ----------

def stock_on_hand(batches: pd.DataFrame) -> pd.Series:
    """Total stock per product over the given (active) batches."""
    if batches.empty:
        return pd.Series(dtype=float)
    return batches.groupby("product_id")["stock"].sum()


def average_daily_usage(items: pd.DataFrame, now: datetime, window_days: int) -> pd.Series:
    """Units sold per product over the trailing ``window_days``, divided by the window length."""
    if items.empty:
        return pd.Series(dtype=float)
    window_start = now - timedelta(days=max(window_days, 0))
    in_window = items[(items["order_ts"] >= window_start) & (items["order_ts"] <= now)]
    return in_window.groupby("product_id")["quantity"].sum() / max(window_days, 1)


def lead_times(purchase_orders: pd.DataFrame) -> pd.Series:
    """Mean arrival - placed delay in days per product, over orders with a positive delay."""
    if purchase_orders.empty:
        return pd.Series(dtype=float)
    delay = (purchase_orders["arrived_at"] - purchase_orders["placed_at"]).dt.total_seconds() / SECONDS_PER_DAY
    valid = purchase_orders.assign(delay=delay)
    valid = valid[valid["delay"].notna() & (valid["delay"] > 0)]
    if valid.empty:
        return pd.Series(dtype=float)
    return valid.groupby("product_id")["delay"].mean()


class ReorderAdvisor:
    """Flags under-stocked products from stock, recent usage and supplier lead time.

    reorder level = usage x lead time + safety stock, where
    safety stock = safety factor x usage x lead time. A product is LOW STOCK
    when its stock is at or below its reorder level.
    """

    def __init__(
        self,
        store: DataAccess,
        *,
        window_days: Optional[int] = None,
        default_lead_time_days: Optional[float] = None,
        safety_factor: Optional[float] = None,
        timezone: Optional[str] = None,
    ) -> None:
        config = get_config()
        self.store = store
        self.window_days = int(config.usage_window_days if window_days is None else window_days)
        self.default_lead_time_days = float(
            config.default_lead_time_days if default_lead_time_days is None else default_lead_time_days
        )
        self.safety_factor = float(config.safety_factor if safety_factor is None else safety_factor)
        self.timezone = timezone or config.reporting_timezone
        self.logger = get_logger(__name__)

    def _evaluate(self, now: datetime) -> List[Tuple[ReorderSuggestion, float]]:
        window_start = now - timedelta(days=max(self.window_days, 0))

        # Bulk reads; a StoreReadFailure from any of them aborts the whole computation
        products = normalize_products(self.store.get_products(ProductFilters(active=True)))
        batches = normalize_batches(self.store.get_product_batches(BatchFilters(active=True)), self.timezone)
        orders = normalize_purchase_orders(
            self.store.get_purchase_orders(PurchaseOrderFilters(completed_only=True)), self.timezone
        )
        items = normalize_transaction_items(
            self.store.get_transaction_items(TransactionItemFilters(start_ts=window_start, end_ts=now)),
            self.timezone,
        )
        self.logger.debug(
            f"Fetched {len(products)} products, {len(batches)} batches, "
            f"{len(orders)} purchase orders, {len(items)} sold lines"
        )

        products = products[products["is_active"]]
        batches = batches[batches["is_active"]]

        stock = stock_on_hand(batches)
        usage = average_daily_usage(items, now, self.window_days)
        lead = lead_times(orders)

        results = []
        for row in products.itertuples(index=False):
            pid = row.product_id
            on_hand = float(stock.get(pid, 0.0))
            avg = float(usage.get(pid, 0.0))
            lead_days = float(lead.get(pid, self.default_lead_time_days))

            fields = compute_reorder_fields(on_hand, avg, lead_days, self.safety_factor)
            suggestion = ReorderSuggestion(
                product_id=pid,
                name=row.name,
                current_stock=round_half_up(on_hand),
                avg_daily_usage=round(avg, 2),
                lead_time_days=round(lead_days, 2),
                safety_stock=round_half_up(fields["safety_stock"]),
                reorder_level=round_half_up(fields["reorder_level"]),
                suggested_reorder_quantity=round_half_up(fields["suggested_reorder_quantity"]),
                status=fields["status"],
            )
            results.append((suggestion, fields["shortfall"]))
        return results

    def evaluate(self, now: Optional[datetime] = None) -> List[ReorderSuggestion]:
        """Reorder fields for every active product, in store order."""
        return [s for s, _ in self._evaluate(local_now(now, self.timezone))]

    def suggest(
        self,
        limit: Optional[int] = None,
        threshold: Optional[float] = None,
        now: Optional[datetime] = None,
    ) -> ReorderReport:
        """Low-stock products, most urgent (largest shortfall) first.

        Args:
            limit: keep only the first ``limit`` entries; None or <= 0 keeps all.
            threshold: when set, keep only products whose stock is at or below it.
            now: evaluation instant, defaults to the current local time.
        """
        now = local_now(now, self.timezone)
        evaluated = self._evaluate(now)

        low = [(s, gap) for s, gap in evaluated if s.status == "LOW STOCK"]
        if threshold is not None:
            low = [(s, gap) for s, gap in low if s.current_stock <= threshold]
        low.sort(key=lambda pair: (-pair[1], pair[0].name))

        items = [s for s, _ in low]
        if limit is not None and limit > 0:
            items = items[:limit]

        self.logger.info(f"Reorder check: {len(low)} of {len(evaluated)} active products low on stock")
        return ReorderReport(
            generated_at=now,
            window_days=self.window_days,
            safety_factor=self.safety_factor,
            default_lead_time_days=self.default_lead_time_days,
            count=len(items),
            items=items,
        )
