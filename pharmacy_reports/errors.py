from __future__ import annotations

from typing import Optional


class StoreReadFailure(RuntimeError):
    """A bulk read from the collaborator store failed.

    Fatal to the current computation: services let it propagate so that no
    partial report is produced. The store's own message is kept verbatim.
    """

    def __init__(self, message: str, source: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.source = source

    def __str__(self) -> str:
        if self.source:
            return f"{self.source}: {self.message}"
        return self.message
