from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class ProductFilters(BaseModel):
    """Filters for the product data."""
    active: Optional[bool] = Field(default=True, description="Only active (True), only inactive (False) or all (None)")
    product_ids: Optional[list[str]] = Field(default=None, description="Restrict to these product identifiers")
    category: Optional[str | list[str]] = Field(default=None, description="Category filter (single category or list of categories)")


class BatchFilters(BaseModel):
    """Filters for the product batch (Product_Item) data."""
    active: Optional[bool] = Field(default=True, description="Only active (True), only inactive (False) or all (None)")
    product_ids: Optional[list[str]] = Field(default=None, description="Restrict to batches of these products")
    has_expiry: Optional[bool] = Field(default=None, description="Only batches with (True) or without (False) an expiry date")


class PurchaseOrderFilters(BaseModel):
    """Filters for the purchase order data."""
    completed_only: bool = Field(default=True, description="Only orders with both placed and arrival timestamps")
    product_ids: Optional[list[str]] = Field(default=None, description="Restrict to orders of these products")


class TransactionFilters(BaseModel):
    """Filters for the transaction data. The time window is half-open."""
    start_ts: Optional[datetime] = Field(default=None, description="Inclusive lower bound on the order timestamp")
    end_ts: Optional[datetime] = Field(default=None, description="Exclusive upper bound on the order timestamp")
    status: Optional[str | list[str]] = Field(default=None, description="Transaction status filter")


class TransactionItemFilters(BaseModel):
    """Filters for the transaction item data, applied through the parent transaction."""
    start_ts: Optional[datetime] = Field(default=None, description="Inclusive lower bound on the parent order timestamp")
    end_ts: Optional[datetime] = Field(default=None, description="Exclusive upper bound on the parent order timestamp")
    product_ids: Optional[list[str]] = Field(default=None, description="Restrict to items of these products")
