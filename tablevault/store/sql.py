"""SQLAlchemy-backed relational store."""

import base64
import logging
import uuid
from datetime import date, datetime, time
from typing import Any, Dict, List

from sqlalchemy import MetaData, Table, create_engine, select
from sqlalchemy import types as sqltypes
from sqlalchemy.exc import NoSuchTableError, SQLAlchemyError

from tablevault.utils.errors import StoreError, create_error_suggestions

from .base import RelationalStore, Row

logger = logging.getLogger(__name__)

NATIVE_UPSERT_DIALECTS = ("postgresql", "sqlite")


class SQLAlchemyStore(RelationalStore):
    """Relational store reachable through any SQLAlchemy database URL."""

    def __init__(self, url: str, page_size: int = 1000, **engine_options: Any):
        """
        Initialize the store.

        Args:
            url: SQLAlchemy database URL
            page_size: Number of rows fetched per query when exporting
            **engine_options: Extra keyword arguments for ``create_engine``
        """
        if page_size < 1:
            raise ValueError(f"page_size must be positive: {page_size}")

        self.url = url
        self.page_size = page_size
        try:
            self.engine = create_engine(url, pool_pre_ping=True, **engine_options)
        except (SQLAlchemyError, ImportError, ValueError) as e:
            raise StoreError(
                f"Cannot create database engine: {e}",
                suggestions=create_error_suggestions("store_unreachable"),
            ) from e

        self.metadata = MetaData()
        self._tables: Dict[str, Table] = {}

    @property
    def dialect(self) -> str:
        return self.engine.dialect.name

    def _table(self, name: str) -> Table:
        if name not in self._tables:
            try:
                self._tables[name] = Table(name, self.metadata, autoload_with=self.engine)
            except NoSuchTableError as e:
                raise StoreError(f"Table does not exist: {name}") from e
            except SQLAlchemyError as e:
                raise StoreError(
                    f"Cannot reflect table {name}: {e}",
                    suggestions=create_error_suggestions("store_unreachable"),
                ) from e
        return self._tables[name]

    def select_all(self, table: str) -> List[Row]:
        """Read every row, one page at a time, ordered by primary key."""
        sa_table = self._table(table)
        order_by = list(sa_table.primary_key.columns) or list(sa_table.columns)

        rows: List[Row] = []
        offset = 0
        try:
            with self.engine.connect() as conn:
                while True:
                    query = select(sa_table).order_by(*order_by).limit(self.page_size).offset(offset)
                    page = [dict(record._mapping) for record in conn.execute(query)]
                    rows.extend(page)
                    if len(page) < self.page_size:
                        break
                    offset += self.page_size
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to read table {table}: {e}") from e

        logger.debug("Read %d rows from %s", len(rows), table)
        return rows

    def delete_all(self, table: str) -> None:
        sa_table = self._table(table)
        try:
            with self.engine.begin() as conn:
                result = conn.execute(sa_table.delete())
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to clear table {table}: {e}") from e

        logger.debug("Deleted %s rows from %s", result.rowcount, table)

    def upsert(self, table: str, rows: List[Row], conflict_key: str) -> None:
        if not rows:
            return

        sa_table = self._table(table)
        if conflict_key not in sa_table.columns:
            raise StoreError(f"Conflict key '{conflict_key}' is not a column of {table}")

        prepared = [self._prepare_row(sa_table, row, conflict_key) for row in rows]

        try:
            with self.engine.begin() as conn:
                if self.dialect in NATIVE_UPSERT_DIALECTS:
                    self._native_upsert(conn, sa_table, prepared, conflict_key)
                else:
                    self._fallback_upsert(conn, sa_table, prepared, conflict_key)
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to upsert into {table}: {e}") from e

        logger.debug("Upserted %d rows into %s", len(prepared), table)

    def _native_upsert(self, conn, sa_table: Table, rows: List[Row], conflict_key: str) -> None:
        if self.dialect == "postgresql":
            from sqlalchemy.dialects.postgresql import insert
        else:
            from sqlalchemy.dialects.sqlite import insert

        # Rows with different column sets cannot share one executemany statement
        groups: Dict[tuple, List[Row]] = {}
        for row in rows:
            groups.setdefault(tuple(row), []).append(row)

        for columns, group in groups.items():
            stmt = insert(sa_table)
            updates = {name: stmt.excluded[name] for name in columns if name != conflict_key}
            if updates:
                stmt = stmt.on_conflict_do_update(index_elements=[conflict_key], set_=updates)
            else:
                stmt = stmt.on_conflict_do_nothing(index_elements=[conflict_key])
            conn.execute(stmt, group)

    def _fallback_upsert(self, conn, sa_table: Table, rows: List[Row], conflict_key: str) -> None:
        key_column = sa_table.columns[conflict_key]
        for row in rows:
            exists = conn.execute(select(key_column).where(key_column == row[conflict_key])).first()
            if exists is None:
                conn.execute(sa_table.insert().values(**row))
            else:
                values = {name: value for name, value in row.items() if name != conflict_key}
                if values:
                    conn.execute(sa_table.update().where(key_column == row[conflict_key]).values(**values))

    def _prepare_row(self, sa_table: Table, row: Row, conflict_key: str) -> Row:
        if not isinstance(row, dict):
            raise StoreError(f"Row in {sa_table.name} is not an object: {row!r}")

        if conflict_key not in row:
            raise StoreError(
                f"Row in {sa_table.name} has no value for conflict key '{conflict_key}'",
                details=f"Row keys: {', '.join(row)}",
            )

        unknown = [name for name in row if name not in sa_table.columns]
        if unknown:
            raise StoreError(
                f"Columns not present in {sa_table.name}: {', '.join(unknown)}",
                details="The snapshot was taken from a different table layout",
            )

        prepared = {}
        for name, value in row.items():
            try:
                prepared[name] = coerce_value(sa_table.columns[name].type, value)
            except (ValueError, TypeError) as e:
                raise StoreError(
                    f"Cannot convert column {name} of {sa_table.name}: {e}",
                    details=f"Value: {value!r}",
                ) from e
        return prepared

    def close(self) -> None:
        self.engine.dispose()


def coerce_value(column_type: sqltypes.TypeEngine, value: Any) -> Any:
    """Turn JSON-normalised snapshot values back into column-native values."""
    if value is None:
        return None

    if isinstance(value, str):
        if isinstance(column_type, sqltypes.DateTime):
            return datetime.fromisoformat(_strip_zulu(value))
        if isinstance(column_type, sqltypes.Date):
            return date.fromisoformat(value[:10])
        if isinstance(column_type, sqltypes.Time):
            return time.fromisoformat(_strip_zulu(value))
        if isinstance(column_type, sqltypes.LargeBinary):
            return base64.b64decode(value)
        if isinstance(column_type, sqltypes.Uuid) and column_type.as_uuid:
            return uuid.UUID(value)

    return value


def _strip_zulu(value: str) -> str:
    if value.endswith("Z"):
        return value[:-1] + "+00:00"
    return value
