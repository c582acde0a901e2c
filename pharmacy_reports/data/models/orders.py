from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class PurchaseOrderRecord(BaseModel):
    """Row model for a purchase order placed with a supplier."""
    purchase_order_id: str = Field(description="Unique purchase order identifier")
    product_id: str = Field(description="Product ordered")
    supplier_id: Optional[str] = Field(default=None, description="Supplier the order was placed with")
    placed_at: Optional[datetime] = Field(default=None, description="When the order was placed")
    arrived_at: Optional[datetime] = Field(default=None, description="When the order arrived, once fulfilled")


class TransactionRecord(BaseModel):
    """Row model for a completed sale."""
    transaction_id: str = Field(description="Unique transaction identifier")
    order_ts: datetime = Field(description="Order timestamp")
    total: float = Field(description="Transaction total")
    vat_amount: float = Field(default=0.0, description="VAT included in the total")
    status: Optional[str] = Field(default="completed", description="Transaction status")


class TransactionItemRecord(BaseModel):
    """Row model for a transaction line, flattened with its parent and product."""
    transaction_item_id: str = Field(description="Unique line identifier")
    transaction_id: str = Field(description="Parent transaction")
    product_id: str = Field(description="Product sold")
    quantity: int = Field(description="Units sold on this line")
    unit_price: float = Field(default=0.0, description="Unit price at time of sale")
    subtotal: float = Field(default=0.0, description="Line revenue")
    order_ts: Optional[datetime] = Field(default=None, description="Parent transaction timestamp")
    product_name: Optional[str] = Field(default=None, description="Product name")
    category: Optional[str] = Field(default=None, description="Product category")
