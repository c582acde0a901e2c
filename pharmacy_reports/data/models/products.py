from __future__ import annotations

from datetime import date
from typing import Optional

from pydantic import BaseModel, Field


class ProductRecord(BaseModel):
    """Row model for product data."""
    product_id: str = Field(description="Unique product identifier")
    name: str = Field(description="Product name")
    generic_name: Optional[str] = Field(default=None, description="Generic (molecule) name")
    category: Optional[str] = Field(default=None, description="Product category")
    brand: Optional[str] = Field(default=None, description="Product brand")
    selling_price: float = Field(default=0.0, description="Shelf selling price")
    avg_daily_usage: Optional[float] = Field(default=None, description="Stored average daily usage, if maintained")
    lead_time_days: Optional[float] = Field(default=None, description="Stored supplier lead time, if maintained")
    safety_stock: Optional[float] = Field(default=None, description="Stored safety stock constant, if maintained")
    is_active: bool = Field(default=True, description="Soft-delete flag")


class ProductBatchRecord(BaseModel):
    """Row model for a stock batch (Product_Item) of a product."""
    product_item_id: str = Field(description="Unique batch identifier")
    product_id: str = Field(description="Product this batch belongs to")
    stock: int = Field(default=0, ge=0, description="Units on hand in this batch")
    expiry_date: Optional[date] = Field(default=None, description="Batch expiry date")
    batch_number: Optional[str] = Field(default=None, description="Supplier batch number")
    is_active: bool = Field(default=True, description="Soft-delete flag")
