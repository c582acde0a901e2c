from __future__ import annotations

from pathlib import Path
from typing import Optional

import pandas as pd

from .frame_backend import FrameDataAccess
from ...config import get_config
from ...errors import StoreReadFailure
from ...logging import get_logger

# canonical table -> file name inside the data directory
CSV_FILES = {
    "products": "products.csv",
    "product_items": "product_items.csv",
    "purchase_orders": "purchase_orders.csv",
    "transactions": "transactions.csv",
    "transaction_items": "transaction_items.csv",
}


class CsvDataAccess(FrameDataAccess):
    """
    CSV-backed implementation.
    - Reads the table's CSV from `data_dir` on every call (no caching), so each
      report request sees the current files, mirroring a DB query.
    - Columns may use either the hosted database names (``ProductID``) or the
      canonical snake_case names.
    """

    def __init__(self, data_dir: str | Path = None, timezone: Optional[str] = None) -> None:
        super().__init__(timezone=timezone)
        self.logger = get_logger(__name__)

        if data_dir is None:
            config = get_config()
            data_dir = config.data_dir

        self.data_dir = Path(data_dir)

        # If the path is relative, make it relative to the repository root
        if not self.data_dir.is_absolute():
            current = Path.cwd()
            repo_root = None

            # Look up the directory tree for pyproject.toml
            for parent in [current] + list(current.parents):
                if (parent / "pyproject.toml").exists():
                    repo_root = parent
                    break

            if repo_root:
                self.data_dir = repo_root / self.data_dir
            else:
                # Fallback to current directory
                self.data_dir = current / self.data_dir

    def _load(self, table: str) -> pd.DataFrame:
        path = self.data_dir / CSV_FILES[table]
        if not path.exists():
            self.logger.error(f"CSV file missing for table {table}: {path}")
            raise StoreReadFailure(
                f"Required CSV file missing: {path}. "
                f"Generate sample data with `python -m pharmacy_reports.data.seed_data` "
                f"or set DATA_DIR to a folder holding {', '.join(CSV_FILES.values())}",
                source=table,
            )

        try:
            df = pd.read_csv(path, dtype=str)
        except pd.errors.EmptyDataError:
            return pd.DataFrame()
        except (OSError, UnicodeDecodeError, pd.errors.ParserError) as e:
            self.logger.error(f"Error reading {path}: {e}")
            raise StoreReadFailure(f"Error reading CSV file {path}: {e}", source=table) from e

        self.logger.debug(f"Loaded {len(df)} rows from {path.name}")
        return df
