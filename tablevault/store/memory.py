"""In-process relational store used for dry runs and tests."""

import copy
import logging
from collections.abc import Hashable
from typing import Dict, List, Optional

from tablevault.utils.errors import StoreError

from .base import RelationalStore, Row

logger = logging.getLogger(__name__)


class InMemoryStore(RelationalStore):
    """Keeps tables as ordered lists of row dictionaries."""

    def __init__(self, tables: Optional[Dict[str, List[Row]]] = None):
        self.tables: Dict[str, List[Row]] = {}
        for name, rows in (tables or {}).items():
            self.seed(name, rows)

    def seed(self, table: str, rows: List[Row]) -> None:
        """Replace the content of ``table`` with copies of ``rows``."""
        self.tables[table] = copy.deepcopy(list(rows))

    def select_all(self, table: str) -> List[Row]:
        if table not in self.tables:
            raise StoreError(f"Table does not exist: {table}")
        return copy.deepcopy(self.tables[table])

    def delete_all(self, table: str) -> None:
        if table not in self.tables:
            raise StoreError(f"Table does not exist: {table}")
        self.tables[table] = []

    def upsert(self, table: str, rows: List[Row], conflict_key: str) -> None:
        for row in rows:
            if not isinstance(row, dict):
                raise StoreError(f"Row in {table} is not an object: {row!r}")
            if conflict_key not in row:
                raise StoreError(
                    f"Row in {table} has no value for conflict key '{conflict_key}'",
                    details=f"Row keys: {', '.join(row)}",
                )
            if not isinstance(row[conflict_key], Hashable):
                raise StoreError(f"Conflict key '{conflict_key}' in {table} has an unusable value: {row[conflict_key]!r}")

        existing = self.tables.setdefault(table, [])
        positions = {current[conflict_key]: index for index, current in enumerate(existing) if conflict_key in current}

        for row in rows:
            key = row[conflict_key]
            if key in positions:
                existing[positions[key]] = copy.deepcopy(row)
            else:
                positions[key] = len(existing)
                existing.append(copy.deepcopy(row))

        logger.debug("Upserted %d rows into in-memory table %s", len(rows), table)
