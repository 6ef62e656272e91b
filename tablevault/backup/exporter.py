"""Table export: read all rows and normalise them to JSON values."""

import base64
import logging
import uuid
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, List

from tablevault.store import RelationalStore, Row

logger = logging.getLogger(__name__)


def normalize_value(value: Any) -> Any:
    """Convert a column value to a JSON-representable value."""
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, Decimal):
        if value == value.to_integral_value():
            return int(value)
        return float(value)
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, (bytes, bytearray, memoryview)):
        return base64.b64encode(bytes(value)).decode("ascii")
    if isinstance(value, dict):
        return {str(key): normalize_value(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [normalize_value(item) for item in value]
    return str(value)


def normalize_row(row: Row) -> Row:
    return {str(column): normalize_value(value) for column, value in row.items()}


class TableExporter:
    """Reads every row of a table from the relational store."""

    def __init__(self, store: RelationalStore):
        self.store = store

    def export(self, table: str) -> List[Row]:
        """
        Export a table.

        Store failures propagate as :class:`StoreError`; they are not retried.
        """
        rows = [normalize_row(row) for row in self.store.select_all(table)]
        logger.debug("Exported %d rows from %s", len(rows), table)
        return rows
