from __future__ import annotations

from datetime import date, datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

StockStatus = Literal["LOW STOCK", "OK"]
PeriodType = Literal["day", "week", "month", "year"]
TopItemType = Literal["product", "category"]
ExpiryLevel = Literal["warn", "danger"]


# ---- Reorder advisor ----

class ReorderSuggestion(BaseModel):
    """Reorder computation for a single product."""
    product_id: str = Field(description="Product identifier")
    name: str = Field(description="Product name")
    current_stock: int = Field(description="Sum of stock over active batches")
    avg_daily_usage: float = Field(description="Units sold per day over the usage window (2 decimals)")
    lead_time_days: float = Field(description="Mean supplier lead time in days (2 decimals)")
    safety_stock: int = Field(description="Buffer quantity (rounded)")
    reorder_level: int = Field(description="Stock level that triggers replenishment (rounded)")
    suggested_reorder_quantity: int = Field(ge=0, description="Units to order now (rounded, never negative)")
    status: StockStatus = Field(description="LOW STOCK when current stock is at or below the reorder level")


class ReorderReport(BaseModel):
    """Low-stock products with the data used to flag them."""
    generated_at: datetime
    window_days: int
    safety_factor: float
    default_lead_time_days: float
    count: int
    items: List[ReorderSuggestion]


# ---- Sales aggregation ----

class PeriodTotal(BaseModel):
    """Aggregate for one calendar bucket."""
    key: str = Field(description="Stable bucket key, e.g. 2024-01 or 2024-W05")
    label: str = Field(description="Display label, e.g. Jan or Week 2")
    start: date = Field(description="First calendar day of the bucket")
    end: date = Field(description="Last calendar day of the bucket")
    transactions: int = Field(description="Number of transactions in the bucket")
    total_sales: float = Field(description="Sum of transaction totals (2 decimals)")
    total_vat: float = Field(description="Sum of transaction VAT amounts (2 decimals)")
    units_sold: int = Field(description="Sum of line quantities whose transaction falls in the bucket")
    best_product: Optional[str] = Field(default=None, description="Product with the most units sold")
    best_category: Optional[str] = Field(default=None, description="Category with the most units sold")


class PeriodReport(BaseModel):
    """Dense series of buckets for one period type."""
    period: PeriodType
    start: date
    end: date
    totals: List[PeriodTotal]

    @property
    def transactions(self) -> int:
        return sum(t.transactions for t in self.totals)

    @property
    def units_sold(self) -> int:
        return sum(t.units_sold for t in self.totals)


class TransactionCount(BaseModel):
    """Count-only series point (monthly or yearly transaction report)."""
    label: str
    total_transactions: int


class TopItem(BaseModel):
    """One ranked product or category."""
    rank: int
    product_id: Optional[str] = Field(default=None, description="Set in product mode only")
    name: str = Field(description="Product name, or the category in category mode")
    category: Optional[str] = None
    quantity_sold: int
    revenue: float
    average_price: float = Field(description="Revenue divided by quantity, 0 when nothing was sold")
    transaction_count: int = Field(description="Distinct transactions containing the item")
    percentage_of_sales: float = Field(
        description="Share of total in-range revenue, in percent, rounded to 2 decimals per item; "
        "the listed shares may exceed 100 by up to 0.005 per item"
    )


class TopItemsReport(BaseModel):
    """Top-N ranking over a date range."""
    type: TopItemType
    limit: int
    start: date
    end: date
    total_revenue: float
    items: List[TopItem]


# ---- Dashboard tiles ----

class LowStockCount(BaseModel):
    count: int
    threshold: int


class LowStockRow(BaseModel):
    row_no: int
    product_id: str
    name: str
    category: str
    brand: str
    price: float
    expiry: Optional[date] = Field(default=None, description="Earliest expiry across active batches")
    qty: int


class ExpiringCounts(BaseModel):
    total: int
    warn: int
    danger: int
    warn_months: int
    danger_months: int


class ExpiringRow(BaseModel):
    product_item_id: str
    product_id: str
    product_name: str
    category: str
    brand: str
    expiry_date: date
    days_left: int
    qty: int
    expiry_level: ExpiryLevel


class TransactionsCount(BaseModel):
    count: int
    start: datetime
    end: datetime


class TotalSales(BaseModel):
    total_sales: float
    currency: str
    start: datetime
    end: datetime


# ---- Alert job ----

class AlertResult(BaseModel):
    sent: bool
    reason: Optional[str] = None
    low_stock: int = 0
    expiring: int = 0
    message: Optional[str] = None
