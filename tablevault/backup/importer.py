"""Table import: clear and upsert rows in batches."""

import logging
from typing import List

from tablevault.store import RelationalStore, Row

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 500


class TableImporter:
    """Writes snapshot rows back into the relational store."""

    def __init__(self, store: RelationalStore, batch_size: int = DEFAULT_BATCH_SIZE):
        if batch_size < 1:
            raise ValueError(f"batch_size must be positive: {batch_size}")
        self.store = store
        self.batch_size = batch_size

    def clear(self, table: str) -> None:
        self.store.delete_all(table)
        logger.debug("Cleared table %s", table)

    def upsert(self, table: str, rows: List[Row], conflict_key: str) -> int:
        """
        Upsert rows keyed on ``conflict_key``.

        Batches are written in order. A failing batch raises :class:`StoreError`
        and leaves earlier batches in place.

        Returns:
            int: Number of rows written
        """
        written = 0
        for start in range(0, len(rows), self.batch_size):
            batch = rows[start : start + self.batch_size]
            self.store.upsert(table, batch, conflict_key)
            written += len(batch)
            logger.debug("Upserted batch of %d rows into %s (%d/%d)", len(batch), table, written, len(rows))
        return written
