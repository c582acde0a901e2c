from .data_filters import (
    ProductFilters,
    BatchFilters,
    PurchaseOrderFilters,
    TransactionFilters,
    TransactionItemFilters,
)

from .products import ProductRecord, ProductBatchRecord
from .orders import PurchaseOrderRecord, TransactionRecord, TransactionItemRecord
from .reports import (
    StockStatus,
    PeriodType,
    TopItemType,
    ReorderSuggestion,
    ReorderReport,
    PeriodTotal,
    PeriodReport,
    TransactionCount,
    TopItem,
    TopItemsReport,
    LowStockCount,
    LowStockRow,
    ExpiringCounts,
    ExpiringRow,
    TransactionsCount,
    TotalSales,
    AlertResult,
)

__all__ = [
    # Filter classes
    "ProductFilters",
    "BatchFilters",
    "PurchaseOrderFilters",
    "TransactionFilters",
    "TransactionItemFilters",
    # Row models
    "ProductRecord",
    "ProductBatchRecord",
    "PurchaseOrderRecord",
    "TransactionRecord",
    "TransactionItemRecord",
    # Report models
    "StockStatus",
    "PeriodType",
    "TopItemType",
    "ReorderSuggestion",
    "ReorderReport",
    "PeriodTotal",
    "PeriodReport",
    "TransactionCount",
    "TopItem",
    "TopItemsReport",
    "LowStockCount",
    "LowStockRow",
    "ExpiringCounts",
    "ExpiringRow",
    "TransactionsCount",
    "TotalSales",
    "AlertResult",
]
