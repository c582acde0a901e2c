from __future__ import annotations

from typing import Literal, Optional

from .backends.csv_backend import CsvDataAccess
from .backends.sql_backend import SqlDataAccess
from .interface import DataAccess
from ..config import get_config


def get_data_access(kind: Optional[Literal["csv", "sql"]] = None) -> DataAccess:
    config = get_config()
    kind = kind or config.store_kind
    if kind == "csv":
        # Reads from configured CSV folder
        return CsvDataAccess(data_dir=config.data_dir)
    if kind == "sql":
        # Hosted Postgres (DATABASE_URL)
        return SqlDataAccess(database_url=config.database_url)
    raise ValueError(f"Unknown data access kind: {kind}")
