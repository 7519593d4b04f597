"""
Generic row-store client.

Table-name + filter access to the reporting tables through SQLAlchemy
Core, mirroring how the dashboards talk to their hosted row store:
- select / count with typed filters, ordering, and ranges
- insert / update returning the affected rows re-read from the store
- delete by filter

Misuse (unknown table or column, unfiltered update/delete) raises
ValueError. Database failures are rolled back and surface as RowStoreError.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

from sqlalchemy import (
    Date,
    DateTime,
    Numeric,
    Table,
    Uuid,
    and_,
    delete as sa_delete,
    func,
    insert as sa_insert,
    or_,
    select as sa_select,
    update as sa_update,
)
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .. import models  # noqa: F401  registers tables on Base.metadata
from ..core.database import Base
from ..core.exceptions import RowStoreError
from ..core.transactions import transaction


logger = logging.getLogger(__name__)

OPERATORS = ("eq", "neq", "gt", "gte", "lt", "lte", "ilike", "in")


# =============================================================================
# Query Parameters
# =============================================================================

@dataclass(frozen=True)
class RowFilter:
    """
    Single-column predicate.

    ilike takes a plain substring; the store wraps it in wildcards.
    """
    column: str
    op: str = "eq"
    value: Any = None

    def __post_init__(self):
        if self.op not in OPERATORS:
            raise ValueError(f"Unknown filter operator '{self.op}', expected one of {OPERATORS}")


class AnyOf:
    """OR-group of filters, used for multi-column search boxes."""

    def __init__(self, *filters: RowFilter):
        if not filters:
            raise ValueError("AnyOf needs at least one filter")
        self.filters = tuple(filters)

    def __repr__(self) -> str:
        return f"AnyOf{self.filters!r}"

    def __eq__(self, other: object) -> bool:
        return isinstance(other, AnyOf) and self.filters == other.filters

    def __hash__(self) -> int:
        return hash(self.filters)


@dataclass(frozen=True)
class RowOrder:
    column: str
    ascending: bool = True


@dataclass(frozen=True)
class RowRange:
    """Offset/limit window over the ordered result."""
    offset: int = 0
    limit: Optional[int] = None

    @classmethod
    def for_page(cls, page: int, size: int) -> "RowRange":
        """Range for a 1-indexed page."""
        if page < 1 or size < 1:
            raise ValueError("page and size must be positive")
        return cls(offset=(page - 1) * size, limit=size)


Condition = Union[RowFilter, AnyOf]


# =============================================================================
# Row Store
# =============================================================================

class RowStore:
    """
    Row-store client bound to one database session.

    One instance per request; the session is owned by the caller.
    """

    def __init__(self, db: Session):
        self.db = db

    # -------------------------------------------------------------------------
    # Schema lookups
    # -------------------------------------------------------------------------

    def _table(self, name: str) -> Table:
        table = Base.metadata.tables.get(name)
        if table is None:
            raise ValueError(f"Unknown table '{name}'")
        return table

    def _column(self, table: Table, name: str):
        if name not in table.c:
            raise ValueError(f"Unknown column '{name}' on table '{table.name}'")
        return table.c[name]

    def _primary_key(self, table: Table):
        return list(table.primary_key.columns)[0]

    @staticmethod
    def _coerce(column, value: Any) -> Any:
        """Convert wire values (ISO strings, floats) to what the column binds."""
        if value is None:
            return None
        column_type = column.type
        if isinstance(column_type, Uuid) and isinstance(value, str):
            return uuid.UUID(value)
        if isinstance(column_type, DateTime) and isinstance(value, str):
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        if isinstance(column_type, Date) and not isinstance(column_type, DateTime):
            if isinstance(value, datetime):
                return value.date()
            if isinstance(value, str):
                return date.fromisoformat(value[:10])
        if isinstance(column_type, Numeric) and isinstance(value, float):
            return Decimal(str(value))
        return value

    def _condition(self, table: Table, condition: Condition):
        if isinstance(condition, AnyOf):
            return or_(*(self._condition(table, f) for f in condition.filters))

        column = self._column(table, condition.column)
        op = condition.op
        if op == "ilike":
            return column.ilike(f"%{condition.value}%")
        if op == "in":
            return column.in_([self._coerce(column, v) for v in condition.value])

        value = self._coerce(column, condition.value)
        if op == "eq":
            return column.is_(None) if value is None else column == value
        if op == "neq":
            return column.is_not(None) if value is None else column != value
        if op == "gt":
            return column > value
        if op == "gte":
            return column >= value
        if op == "lt":
            return column < value
        return column <= value

    def _where(self, table: Table, filters: Optional[Iterable[Condition]]):
        conditions = [self._condition(table, f) for f in filters or ()]
        return and_(*conditions) if conditions else None

    def _values(self, table: Table, row: Mapping[str, Any]) -> Dict[str, Any]:
        return {
            name: self._coerce(self._column(table, name), value)
            for name, value in row.items()
        }

    def _fail(self, action: str, table: str, error: SQLAlchemyError) -> RowStoreError:
        self.db.rollback()
        logger.error(f"Row store {action} on '{table}' failed: {error}")
        return RowStoreError(f"{action} on '{table}' failed", table=table)

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def select(
        self,
        table: str,
        columns: Optional[Sequence[str]] = None,
        filters: Optional[Iterable[Condition]] = None,
        order: Optional[Iterable[RowOrder]] = None,
        range_: Optional[RowRange] = None,
    ) -> List[Dict[str, Any]]:
        """
        Read rows as plain dicts.

        Args:
            table: Table name
            columns: Columns to project; None selects every column
            filters: Conditions combined with AND
            order: Sort keys in priority order
            range_: Offset/limit window

        Returns:
            List of row dicts
        """
        source = self._table(table)
        projection = [self._column(source, c) for c in columns] if columns else [source]
        stmt = sa_select(*projection)

        where = self._where(source, filters)
        if where is not None:
            stmt = stmt.where(where)
        for key in order or ():
            column = self._column(source, key.column)
            stmt = stmt.order_by(column.asc() if key.ascending else column.desc())
        if range_ is not None:
            stmt = stmt.offset(range_.offset)
            if range_.limit is not None:
                stmt = stmt.limit(range_.limit)

        try:
            return [dict(row) for row in self.db.execute(stmt).mappings().all()]
        except SQLAlchemyError as e:
            raise self._fail("select", table, e) from e

    def count(self, table: str, filters: Optional[Iterable[Condition]] = None) -> int:
        """Count rows matching filters."""
        source = self._table(table)
        stmt = sa_select(func.count()).select_from(source)
        where = self._where(source, filters)
        if where is not None:
            stmt = stmt.where(where)
        try:
            return int(self.db.execute(stmt).scalar_one())
        except SQLAlchemyError as e:
            raise self._fail("count", table, e) from e

    def _rows_by_key(self, table: Table, keys: List[Any]) -> List[Dict[str, Any]]:
        if not keys:
            return []
        pk = self._primary_key(table)
        rows = self.db.execute(sa_select(table).where(pk.in_(keys))).mappings().all()
        by_key = {row[pk.name]: dict(row) for row in rows}
        return [by_key[key] for key in keys if key in by_key]

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def insert(
        self,
        table: str,
        rows: Union[Mapping[str, Any], Sequence[Mapping[str, Any]]],
    ) -> List[Dict[str, Any]]:
        """
        Insert one or more rows and return them as stored.

        Column defaults (ids, timestamps, statuses) are applied by the store,
        so the returned rows are the source of truth for the caller.
        """
        source = self._table(table)
        batch = [rows] if isinstance(rows, Mapping) else list(rows)
        if not batch:
            return []
        values = [self._values(source, row) for row in batch]

        try:
            keys = []
            with transaction(self.db, f"insert {table}"):
                for row in values:
                    result = self.db.execute(sa_insert(source).values(**row))
                    keys.append(result.inserted_primary_key[0])
            inserted = self._rows_by_key(source, keys)
        except SQLAlchemyError as e:
            raise self._fail("insert", table, e) from e

        logger.info(f"Inserted {len(inserted)} row(s) into '{table}'")
        return inserted

    def update(
        self,
        table: str,
        patch: Mapping[str, Any],
        filters: Iterable[Condition],
    ) -> List[Dict[str, Any]]:
        """
        Apply patch to every row matching filters.

        Returns:
            The affected rows after the update; empty when nothing matched

        Raises:
            ValueError: No filters or an empty patch
        """
        filters = list(filters or ())
        if not filters:
            raise ValueError(f"Refusing to update '{table}' without filters")
        if not patch:
            raise ValueError("Update patch is empty")

        source = self._table(table)
        pk = self._primary_key(source)
        values = self._values(source, patch)
        where = self._where(source, filters)

        try:
            with transaction(self.db, f"update {table}"):
                keys = list(self.db.execute(sa_select(pk).where(where)).scalars().all())
                if keys:
                    self.db.execute(sa_update(source).where(pk.in_(keys)).values(**values))
            updated = self._rows_by_key(source, keys)
        except SQLAlchemyError as e:
            raise self._fail("update", table, e) from e

        logger.info(f"Updated {len(updated)} row(s) in '{table}'")
        return updated

    def delete(self, table: str, filters: Iterable[Condition]) -> bool:
        """
        Delete rows matching filters.

        Raises:
            ValueError: No filters
        """
        filters = list(filters or ())
        if not filters:
            raise ValueError(f"Refusing to delete from '{table}' without filters")

        source = self._table(table)
        where = self._where(source, filters)
        try:
            with transaction(self.db, f"delete {table}"):
                result = self.db.execute(sa_delete(source).where(where))
        except SQLAlchemyError as e:
            raise self._fail("delete", table, e) from e

        logger.info(f"Deleted {result.rowcount} row(s) from '{table}'")
        return True
