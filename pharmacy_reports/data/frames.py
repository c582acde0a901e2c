from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

import numpy as np
import pandas as pd

from .models import (
    ProductRecord,
    ProductBatchRecord,
    PurchaseOrderRecord,
    TransactionRecord,
    TransactionItemRecord,
)
from .schema import RELATED_PRODUCT_FIELDS, RELATED_TRANSACTION_FIELDS

UNKNOWN_PRODUCT = "Unknown Product"
UNCATEGORIZED = "Uncategorized"

PRODUCT_COLUMNS = list(ProductRecord.model_fields)
BATCH_COLUMNS = list(ProductBatchRecord.model_fields)
PURCHASE_ORDER_COLUMNS = list(PurchaseOrderRecord.model_fields)
TRANSACTION_COLUMNS = list(TransactionRecord.model_fields)
TRANSACTION_ITEM_COLUMNS = list(TransactionItemRecord.model_fields)


# ---------- column helpers ----------

def ensure_columns(df: Optional[pd.DataFrame], columns: Iterable[str]) -> pd.DataFrame:
    """Return a copy of ``df`` holding exactly ``columns`` (missing ones filled with None)."""
    columns = list(columns)
    if df is None:
        return pd.DataFrame(columns=columns)
    out = df.copy()
    for col in columns:
        if col not in out.columns:
            out[col] = None
    return out[columns].reset_index(drop=True)


def to_number(series: pd.Series, *, non_negative: bool = False) -> pd.Series:
    """Coerce to float; missing, non-numeric and infinite values become 0."""
    out = pd.to_numeric(series, errors="coerce").astype(float)
    out = out.replace([np.inf, -np.inf], np.nan).fillna(0.0)
    if non_negative:
        out = out.clip(lower=0.0)
    return out


def local_timestamp(value: Any, tz: str) -> pd.Timestamp:
    """Parse one value into a naive timestamp in ``tz`` (NaT when unparseable)."""
    ts = pd.to_datetime(value, errors="coerce")
    if ts is pd.NaT or pd.isna(ts):
        return pd.NaT
    if ts.tzinfo is not None:
        ts = ts.tz_convert(tz).tz_localize(None)
    return ts


def to_local_timestamps(series: pd.Series, tz: str) -> pd.Series:
    """Parse timestamps into naive values in the reporting timezone.

    Timezone-aware values are converted to ``tz``; naive values are taken as
    already local. Unparseable values become NaT.
    """
    if pd.api.types.is_datetime64_any_dtype(series):
        parsed = series
    else:
        try:
            parsed = pd.to_datetime(series, errors="coerce", format="mixed")
        except (TypeError, ValueError):
            # mixed offsets in one column
            parsed = pd.to_datetime(series.map(lambda v: local_timestamp(v, tz)), errors="coerce")

    if isinstance(parsed.dtype, pd.DatetimeTZDtype):
        parsed = parsed.dt.tz_convert(tz).dt.tz_localize(None)
    elif not pd.api.types.is_datetime64_any_dtype(parsed):
        parsed = pd.to_datetime(parsed.map(lambda v: local_timestamp(v, tz)), errors="coerce")
    return parsed.astype("datetime64[ns]")


def to_text(series: pd.Series, default: str) -> pd.Series:
    """Strip strings; missing or blank values become ``default``."""
    def _text(value: Any) -> str:
        if value is None or value is pd.NA or (isinstance(value, float) and np.isnan(value)):
            return default
        text = str(value).strip()
        return text or default

    return series.map(_text).astype(object)


def to_flag(series: pd.Series, default: bool = True) -> pd.Series:
    truthy = {"true", "t", "1", "yes", "y"}
    falsy = {"false", "f", "0", "no", "n"}

    def _flag(value: Any) -> bool:
        if value is None or (isinstance(value, float) and np.isnan(value)):
            return default
        if isinstance(value, (bool, np.bool_)):
            return bool(value)
        text = str(value).strip().lower()
        if text in truthy:
            return True
        if text in falsy:
            return False
        return default

    return series.map(_flag).astype(bool)


def to_identifier(series: pd.Series) -> pd.Series:
    """Identifiers compare as strings; numeric ids read from CSV lose their float suffix."""
    def _ident(value: Any) -> Optional[str]:
        if value is None or (isinstance(value, float) and np.isnan(value)):
            return None
        if isinstance(value, float) and value.is_integer():
            return str(int(value))
        return str(value)

    return series.map(_ident).astype(object)


# ---------- join shape normalisation ----------

def first_related(value: Any) -> Optional[Dict[str, Any]]:
    """A related row may arrive as a record, a one-element list of records, or nothing."""
    if isinstance(value, dict):
        return value
    if isinstance(value, (list, tuple)):
        for entry in value:
            if isinstance(entry, dict):
                return entry
    return None


def flatten_related(df: pd.DataFrame, column: str, fields: Dict[str, str]) -> pd.DataFrame:
    """Lift ``fields`` ({source_key: target_column}) out of a nested related column.

    Values already present in a target column take precedence.
    """
    if column not in df.columns:
        return df
    out = df.copy()
    related = out[column].map(first_related)
    for source, target in fields.items():
        lifted = related.map(lambda rec: rec.get(source) if rec else None)
        if target in out.columns:
            out[target] = out[target].where(out[target].notna(), lifted)
        else:
            out[target] = lifted
    return out.drop(columns=[column])


# ---------- per-table normalisation ----------

def normalize_products(df: Optional[pd.DataFrame]) -> pd.DataFrame:
    out = ensure_columns(df, PRODUCT_COLUMNS)
    out["product_id"] = to_identifier(out["product_id"])
    out["name"] = to_text(out["name"], UNKNOWN_PRODUCT)
    out["category"] = to_text(out["category"], UNCATEGORIZED)
    out["brand"] = to_text(out["brand"], "")
    out["selling_price"] = to_number(out["selling_price"])
    out["is_active"] = to_flag(out["is_active"])
    return out[out["product_id"].notna()].reset_index(drop=True)


def normalize_batches(df: Optional[pd.DataFrame], tz: str) -> pd.DataFrame:
    out = ensure_columns(df, BATCH_COLUMNS)
    out["product_item_id"] = to_identifier(out["product_item_id"])
    out["product_id"] = to_identifier(out["product_id"])
    out["stock"] = to_number(out["stock"], non_negative=True)
    out["expiry_date"] = to_local_timestamps(out["expiry_date"], tz)
    out["is_active"] = to_flag(out["is_active"])
    return out[out["product_id"].notna()].reset_index(drop=True)


def normalize_purchase_orders(df: Optional[pd.DataFrame], tz: str) -> pd.DataFrame:
    out = ensure_columns(df, PURCHASE_ORDER_COLUMNS)
    out["purchase_order_id"] = to_identifier(out["purchase_order_id"])
    out["supplier_id"] = to_identifier(out["supplier_id"])
    out["product_id"] = to_identifier(out["product_id"])
    out["placed_at"] = to_local_timestamps(out["placed_at"], tz)
    out["arrived_at"] = to_local_timestamps(out["arrived_at"], tz)
    return out[out["product_id"].notna()].reset_index(drop=True)


def normalize_transactions(df: Optional[pd.DataFrame], tz: str) -> pd.DataFrame:
    out = ensure_columns(df, TRANSACTION_COLUMNS)
    out["transaction_id"] = to_identifier(out["transaction_id"])
    out["order_ts"] = to_local_timestamps(out["order_ts"], tz)
    out["total"] = to_number(out["total"])
    out["vat_amount"] = to_number(out["vat_amount"])
    return out.reset_index(drop=True)


def normalize_transaction_items(df: Optional[pd.DataFrame], tz: str) -> pd.DataFrame:
    if df is not None:
        df = flatten_related(df, "transaction", RELATED_TRANSACTION_FIELDS)
        df = flatten_related(df, "product", RELATED_PRODUCT_FIELDS)
    out = ensure_columns(df, TRANSACTION_ITEM_COLUMNS)
    out["transaction_item_id"] = to_identifier(out["transaction_item_id"])
    out["transaction_id"] = to_identifier(out["transaction_id"])
    out["product_id"] = to_identifier(out["product_id"])
    out["quantity"] = to_number(out["quantity"], non_negative=True)
    out["unit_price"] = to_number(out["unit_price"])
    out["subtotal"] = to_number(out["subtotal"])
    out["order_ts"] = to_local_timestamps(out["order_ts"], tz)
    out["product_name"] = to_text(out["product_name"], UNKNOWN_PRODUCT)
    out["category"] = to_text(out["category"], UNCATEGORIZED)
    return out.reset_index(drop=True)


def records_to_frame(records: Optional[List[Dict[str, Any]]]) -> pd.DataFrame:
    return pd.DataFrame.from_records(records or [])
