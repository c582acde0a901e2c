"""Mapping between the hosted database schema and the canonical frame columns.

The hosted store keeps PascalCase tables and columns (``"Product_Item"."ExpiryDate"``);
the report services only ever see the snake_case columns of ``data.models``.
"""
from __future__ import annotations

from typing import Dict

import pandas as pd

# canonical table name -> database table
TABLES: Dict[str, str] = {
    "products": "Product",
    "product_items": "Product_Item",
    "purchase_orders": "Purchase_Order",
    "transactions": "Transaction",
    "transaction_items": "Transaction_Item",
}

# canonical table name -> {database column: canonical column}
COLUMNS: Dict[str, Dict[str, str]] = {
    "products": {
        "ProductID": "product_id",
        "Name": "name",
        "GenericName": "generic_name",
        "Category": "category",
        "Brand": "brand",
        "SellingPrice": "selling_price",
        "IsActive": "is_active",
    },
    "product_items": {
        "ProductItemID": "product_item_id",
        "ProductID": "product_id",
        "Stock": "stock",
        "ExpiryDate": "expiry_date",
        "BatchNumber": "batch_number",
        "IsActive": "is_active",
    },
    "purchase_orders": {
        "PurchaseOrderID": "purchase_order_id",
        "ProductID": "product_id",
        "SupplierID": "supplier_id",
        "OrderPlacedDateTime": "placed_at",
        "OrderArrivalDateTime": "arrived_at",
    },
    "transactions": {
        "TransactionID": "transaction_id",
        "OrderDateTime": "order_ts",
        "Total": "total",
        "VATAmount": "vat_amount",
        "Status": "status",
    },
    "transaction_items": {
        "TransactionItemID": "transaction_item_id",
        "TransactionID": "transaction_id",
        "ProductID": "product_id",
        "Quantity": "quantity",
        "UnitPrice": "unit_price",
        "Subtotal": "subtotal",
        # nested related records as returned by the REST API
        "Transaction": "transaction",
        "Product": "product",
    },
}

# Optional per-product planning columns; not every deployment has them.
OPTIONAL_PRODUCT_COLUMNS: Dict[str, str] = {
    "AvgDailyUsage": "avg_daily_usage",
    "LeadTimeDays": "lead_time_days",
    "SafetyStock": "safety_stock",
}

# keys inside nested related records -> canonical item column
RELATED_TRANSACTION_FIELDS: Dict[str, str] = {"OrderDateTime": "order_ts", "order_ts": "order_ts"}
RELATED_PRODUCT_FIELDS: Dict[str, str] = {
    "Name": "product_name",
    "name": "product_name",
    "Category": "category",
    "category": "category",
}


def rename_source_columns(df: pd.DataFrame, table: str) -> pd.DataFrame:
    """Rename database-named columns to canonical ones; canonical columns pass through."""
    mapping = dict(COLUMNS[table])
    if table == "products":
        mapping.update(OPTIONAL_PRODUCT_COLUMNS)
    present = {src: dst for src, dst in mapping.items() if src in df.columns and dst not in df.columns}
    return df.rename(columns=present)
