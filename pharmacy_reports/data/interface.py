from __future__ import annotations

from typing import Protocol

import pandas as pd

from .models import (
    ProductFilters,
    BatchFilters,
    PurchaseOrderFilters,
    TransactionFilters,
    TransactionItemFilters,
)


# ---- Data access protocol ----

class DataAccess(Protocol):
    """
    Read-only, backend-agnostic contract consumed by the report services.

    - Every method is a single bulk read; no per-row queries.
    - Implementations MUST avoid result caching inside these methods.
      Each call should execute a fresh query against the underlying source.
    - Frames use the canonical snake_case columns of the row models in
      ``data.models``; transaction items carry their parent transaction's
      ``order_ts`` and the product's ``product_name``/``category`` as flat columns.
    - A failed read raises ``StoreReadFailure`` with the store's message.
    """

    def get_products(self, filters: ProductFilters) -> pd.DataFrame:
        """Get products based on filters."""
        ...

    def get_product_batches(self, filters: BatchFilters) -> pd.DataFrame:
        """Get stock batches (Product_Item rows) based on filters."""
        ...

    def get_purchase_orders(self, filters: PurchaseOrderFilters) -> pd.DataFrame:
        """Get purchase orders based on filters."""
        ...

    def get_transactions(self, filters: TransactionFilters) -> pd.DataFrame:
        """Get transactions whose order timestamp falls in the filter window."""
        ...

    def get_transaction_items(self, filters: TransactionItemFilters) -> pd.DataFrame:
        """Get transaction items joined to their transaction date and product."""
        ...
