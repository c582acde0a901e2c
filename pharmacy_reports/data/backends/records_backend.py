from __future__ import annotations

from typing import Any, Dict, List, Optional, Union

import pandas as pd

from .frame_backend import FrameDataAccess
from ..frames import records_to_frame

TableData = Union[pd.DataFrame, List[Dict[str, Any]]]


class RecordsDataAccess(FrameDataAccess):
    """
    Store over rows the host already holds, e.g. payloads fetched from the
    hosted REST API.
    - Tables are given as lists of records or DataFrames keyed by canonical
      table name; a missing table reads as empty.
    - Transaction item records may embed their related ``Transaction`` and
      ``Product`` as a record or a one-element list of records.
    """

    def __init__(self, tables: Optional[Dict[str, TableData]] = None, timezone: Optional[str] = None) -> None:
        super().__init__(timezone=timezone)
        self.tables: Dict[str, TableData] = dict(tables or {})

    def _load(self, table: str) -> pd.DataFrame:
        data = self.tables.get(table)
        if isinstance(data, pd.DataFrame):
            return data.copy()
        return records_to_frame(data)
