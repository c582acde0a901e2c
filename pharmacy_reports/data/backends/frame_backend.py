from __future__ import annotations

from typing import Iterable, Optional

import pandas as pd

from ..frames import (
    TRANSACTION_ITEM_COLUMNS,
    ensure_columns,
    flatten_related,
    local_timestamp,
    normalize_batches,
    normalize_products,
    normalize_purchase_orders,
    normalize_transaction_items,
    normalize_transactions,
    to_identifier,
)
from ..interface import DataAccess
from ..models import (
    BatchFilters,
    ProductFilters,
    PurchaseOrderFilters,
    TransactionFilters,
    TransactionItemFilters,
)
from ..schema import RELATED_PRODUCT_FIELDS, RELATED_TRANSACTION_FIELDS, rename_source_columns
from ...config import get_config


def _isin(series: pd.Series, values: str | Iterable[str]) -> pd.Series:
    if isinstance(values, str):
        return series == values
    return series.isin([str(v) for v in values])


class FrameDataAccess(DataAccess):
    """
    Filtering over whole-table frames.
    - Subclasses implement ``_load(table)`` returning the raw table
      (database or canonical column names), read fresh on every call.
    - Every method call performs a fresh filter pass over the loaded frame,
      mirroring a DB query.
    """

    def __init__(self, timezone: Optional[str] = None) -> None:
        self.timezone = timezone or get_config().reporting_timezone

    def _load(self, table: str) -> pd.DataFrame:
        raise NotImplementedError

    def _table(self, table: str) -> pd.DataFrame:
        return rename_source_columns(self._load(table), table)

    # ---------- interface implementation ----------

    def get_products(self, filters: ProductFilters) -> pd.DataFrame:
        df = normalize_products(self._table("products"))

        if filters.active is not None:
            df = df[df["is_active"] == filters.active]
        if filters.product_ids is not None:
            df = df[_isin(df["product_id"], filters.product_ids)]
        if filters.category:
            df = df[_isin(df["category"], filters.category)]

        return df.reset_index(drop=True)

    def get_product_batches(self, filters: BatchFilters) -> pd.DataFrame:
        df = normalize_batches(self._table("product_items"), self.timezone)

        if filters.active is not None:
            df = df[df["is_active"] == filters.active]
        if filters.product_ids is not None:
            df = df[_isin(df["product_id"], filters.product_ids)]
        if filters.has_expiry is not None:
            df = df[df["expiry_date"].notna() == filters.has_expiry]

        return df.reset_index(drop=True)

    def get_purchase_orders(self, filters: PurchaseOrderFilters) -> pd.DataFrame:
        df = normalize_purchase_orders(self._table("purchase_orders"), self.timezone)

        if filters.completed_only:
            df = df[df["placed_at"].notna() & df["arrived_at"].notna()]
        if filters.product_ids is not None:
            df = df[_isin(df["product_id"], filters.product_ids)]

        return df.reset_index(drop=True)

    def get_transactions(self, filters: TransactionFilters) -> pd.DataFrame:
        df = normalize_transactions(self._table("transactions"), self.timezone)

        if filters.start_ts is not None:
            df = df[df["order_ts"] >= local_timestamp(filters.start_ts, self.timezone)]
        if filters.end_ts is not None:
            df = df[df["order_ts"] < local_timestamp(filters.end_ts, self.timezone)]
        if filters.status:
            df = df[_isin(df["status"].astype(str), filters.status)]

        return df.reset_index(drop=True)

    def get_transaction_items(self, filters: TransactionItemFilters) -> pd.DataFrame:
        raw = self._table("transaction_items")
        raw = flatten_related(raw, "transaction", RELATED_TRANSACTION_FIELDS)
        raw = flatten_related(raw, "product", RELATED_PRODUCT_FIELDS)
        items = ensure_columns(raw, TRANSACTION_ITEM_COLUMNS)
        items["transaction_id"] = to_identifier(items["transaction_id"])
        items["product_id"] = to_identifier(items["product_id"])

        # Join the parent transaction date and product details where the rows lack them
        if items["order_ts"].isna().any():
            tx = normalize_transactions(self._table("transactions"), self.timezone)
            order_ts = dict(zip(tx["transaction_id"], tx["order_ts"]))
            items["order_ts"] = items["order_ts"].where(
                items["order_ts"].notna(), items["transaction_id"].map(order_ts)
            )
        if items["product_name"].isna().any() or items["category"].isna().any():
            products = normalize_products(self._table("products"))
            names = dict(zip(products["product_id"], products["name"]))
            categories = dict(zip(products["product_id"], products["category"]))
            items["product_name"] = items["product_name"].where(
                items["product_name"].notna(), items["product_id"].map(names)
            )
            items["category"] = items["category"].where(
                items["category"].notna(), items["product_id"].map(categories)
            )

        df = normalize_transaction_items(items, self.timezone)

        if filters.start_ts is not None:
            df = df[df["order_ts"] >= local_timestamp(filters.start_ts, self.timezone)]
        if filters.end_ts is not None:
            df = df[df["order_ts"] < local_timestamp(filters.end_ts, self.timezone)]
        if filters.product_ids is not None:
            df = df[_isin(df["product_id"], filters.product_ids)]

        return df.reset_index(drop=True)
