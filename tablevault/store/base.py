"""Relational store interface consumed by the backup components."""

from abc import ABC, abstractmethod
from typing import Any, Dict, List

Row = Dict[str, Any]


class RelationalStore(ABC):
    """Minimal table-level access needed to export and import snapshots.

    Implementations raise :class:`tablevault.utils.errors.StoreError` for every
    failure so callers can isolate problems per table.
    """

    @abstractmethod
    def select_all(self, table: str) -> List[Row]:
        """Return every row of ``table`` in a stable order."""

    @abstractmethod
    def delete_all(self, table: str) -> None:
        """Delete every row of ``table``."""

    @abstractmethod
    def upsert(self, table: str, rows: List[Row], conflict_key: str) -> None:
        """Insert ``rows``, replacing existing rows that share ``conflict_key``."""

    def close(self) -> None:
        """Release connections held by the store."""
