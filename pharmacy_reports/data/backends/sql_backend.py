from __future__ import annotations

from typing import Any, Dict, List, Optional

import pandas as pd
from sqlalchemy import DateTime, bindparam, create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from ..frames import (
    normalize_batches,
    normalize_products,
    normalize_purchase_orders,
    normalize_transaction_items,
    normalize_transactions,
)
from ..interface import DataAccess
from ..models import (
    BatchFilters,
    ProductFilters,
    PurchaseOrderFilters,
    TransactionFilters,
    TransactionItemFilters,
)
from ..schema import COLUMNS, TABLES
from ...config import get_config
from ...errors import StoreReadFailure
from ...logging import get_logger

TIME_PARAMS = ("start_ts", "end_ts")


def _select_list(table: str, alias: str) -> str:
    return ", ".join(
        f'{alias}."{src}" AS {dst}'
        for src, dst in COLUMNS[table].items()
        if dst not in ("transaction", "product")
    )


def _as_list(value: str | List[str]) -> List[str]:
    return [value] if isinstance(value, str) else [str(v) for v in value]


class SqlDataAccess(DataAccess):
    """
    PostgreSQL-backed implementation for the hosted (Supabase) database.
    - One SELECT per method; filtering and joins run in the database.
    - Any driver or SQL error is raised as StoreReadFailure with the database message.
    """

    def __init__(
        self,
        database_url: Optional[str] = None,
        engine: Optional[Engine] = None,
        timezone: Optional[str] = None,
    ) -> None:
        config = get_config()
        self.logger = get_logger(__name__)
        self.timezone = timezone or config.reporting_timezone

        if engine is None:
            url = database_url or config.database_url
            if not url:
                raise ValueError("A database_url (or DATABASE_URL) is required for the sql store.")
            engine = create_engine(url, pool_pre_ping=True)
        self.engine = engine

    # ---------- query helper ----------

    def _read(self, source: str, sql: str, params: Dict[str, Any], expanding: List[str]) -> pd.DataFrame:
        stmt = text(sql)
        binds = [bindparam(name, expanding=True) for name in expanding]
        binds += [bindparam(name, type_=DateTime()) for name in TIME_PARAMS if name in params]
        if binds:
            stmt = stmt.bindparams(*binds)
        try:
            with self.engine.connect() as conn:
                df = pd.read_sql(stmt, conn, params=params)
        except SQLAlchemyError as e:
            message = str(getattr(e, "orig", None) or e)
            self.logger.error(f"Query against {source} failed: {message}")
            raise StoreReadFailure(message, source=source) from e

        self.logger.debug(f"Fetched {len(df)} rows from {source}")
        return df

    # ---------- interface implementation ----------

    def get_products(self, filters: ProductFilters) -> pd.DataFrame:
        where, params, expanding = ["1=1"], {}, []
        if filters.active is not None:
            where.append('p."IsActive" = :active')
            params["active"] = filters.active
        if filters.product_ids is not None:
            where.append('CAST(p."ProductID" AS TEXT) IN :product_ids')
            params["product_ids"] = _as_list(filters.product_ids)
            expanding.append("product_ids")
        if filters.category:
            where.append('p."Category" IN :categories')
            params["categories"] = _as_list(filters.category)
            expanding.append("categories")

        sql = f'SELECT {_select_list("products", "p")} FROM "{TABLES["products"]}" p WHERE {" AND ".join(where)}'
        return normalize_products(self._read(TABLES["products"], sql, params, expanding))

    def get_product_batches(self, filters: BatchFilters) -> pd.DataFrame:
        where, params, expanding = ["1=1"], {}, []
        if filters.active is not None:
            where.append('pi."IsActive" = :active')
            params["active"] = filters.active
        if filters.product_ids is not None:
            where.append('CAST(pi."ProductID" AS TEXT) IN :product_ids')
            params["product_ids"] = _as_list(filters.product_ids)
            expanding.append("product_ids")
        if filters.has_expiry is True:
            where.append('pi."ExpiryDate" IS NOT NULL')
        elif filters.has_expiry is False:
            where.append('pi."ExpiryDate" IS NULL')

        sql = (
            f'SELECT {_select_list("product_items", "pi")} FROM "{TABLES["product_items"]}" pi '
            f'WHERE {" AND ".join(where)}'
        )
        df = self._read(TABLES["product_items"], sql, params, expanding)
        return normalize_batches(df, self.timezone)

    def get_purchase_orders(self, filters: PurchaseOrderFilters) -> pd.DataFrame:
        where, params, expanding = ["1=1"], {}, []
        if filters.completed_only:
            where.append('po."OrderPlacedDateTime" IS NOT NULL AND po."OrderArrivalDateTime" IS NOT NULL')
        if filters.product_ids is not None:
            where.append('CAST(po."ProductID" AS TEXT) IN :product_ids')
            params["product_ids"] = _as_list(filters.product_ids)
            expanding.append("product_ids")

        sql = (
            f'SELECT {_select_list("purchase_orders", "po")} FROM "{TABLES["purchase_orders"]}" po '
            f'WHERE {" AND ".join(where)}'
        )
        df = self._read(TABLES["purchase_orders"], sql, params, expanding)
        return normalize_purchase_orders(df, self.timezone)

    def get_transactions(self, filters: TransactionFilters) -> pd.DataFrame:
        where, params, expanding = ["1=1"], {}, []
        if filters.start_ts is not None:
            where.append('t."OrderDateTime" >= :start_ts')
            params["start_ts"] = filters.start_ts
        if filters.end_ts is not None:
            where.append('t."OrderDateTime" < :end_ts')
            params["end_ts"] = filters.end_ts
        if filters.status:
            where.append('t."Status" IN :status')
            params["status"] = _as_list(filters.status)
            expanding.append("status")

        sql = (
            f'SELECT {_select_list("transactions", "t")} FROM "{TABLES["transactions"]}" t '
            f'WHERE {" AND ".join(where)}'
        )
        df = self._read(TABLES["transactions"], sql, params, expanding)
        return normalize_transactions(df, self.timezone)

    def get_transaction_items(self, filters: TransactionItemFilters) -> pd.DataFrame:
        where, params, expanding = ["1=1"], {}, []
        if filters.start_ts is not None:
            where.append('t."OrderDateTime" >= :start_ts')
            params["start_ts"] = filters.start_ts
        if filters.end_ts is not None:
            where.append('t."OrderDateTime" < :end_ts')
            params["end_ts"] = filters.end_ts
        if filters.product_ids is not None:
            where.append('CAST(ti."ProductID" AS TEXT) IN :product_ids')
            params["product_ids"] = _as_list(filters.product_ids)
            expanding.append("product_ids")

        sql = f"""
            SELECT {_select_list("transaction_items", "ti")},
                   t."OrderDateTime" AS order_ts,
                   p."Name" AS product_name,
                   p."Category" AS category
            FROM "{TABLES["transaction_items"]}" ti
            JOIN "{TABLES["transactions"]}" t ON t."TransactionID" = ti."TransactionID"
            LEFT JOIN "{TABLES["products"]}" p ON p."ProductID" = ti."ProductID"
            WHERE {" AND ".join(where)}
        """
        df = self._read(TABLES["transaction_items"], sql, params, expanding)
        return normalize_transaction_items(df, self.timezone)
