"""Shared SQL building, result shaping and the database plugin interface."""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, ClassVar, Optional, Union

SqlValue = Union[None, bool, int, float, str]
QueryValue = Union[None, bool, int, str]
CrudRow = Mapping[str, SqlValue]

_MAX_LIMIT = 0xFFFFFFFF
_UNSUPPORTED = "<unsupported>"


@dataclass
class ColumnMetadata:
    name: str
    data_type: str
    is_nullable: bool
    ordinal_position: int


@dataclass
class TableMetadata:
    name: str
    columns: list[ColumnMetadata] = field(default_factory=list)


@dataclass
class SchemaMetadata:
    name: str
    tables: list[TableMetadata] = field(default_factory=list)


@dataclass
class DatabaseMetadata:
    schemas: list[SchemaMetadata] = field(default_factory=list)


@dataclass
class QueryColumn:
    name: str
    data_type: str


@dataclass
class QueryResult:
    columns: list[QueryColumn]
    rows: list[dict[str, QueryValue]]
    rows_affected: int = 0


@dataclass
class CrudFilter:
    column: str
    value: SqlValue


@dataclass
class ConnectionHandle:
    """An open connection to a user database, tagged with its kind."""

    db_type: str
    connection: Any

    def close(self) -> None:
        self.connection.close()

    def __enter__(self) -> ConnectionHandle:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def quote_identifier(identifier: str, quote: str = '"') -> str:
    """Quote an identifier, doubling any embedded quote characters."""
    if not identifier:
        raise ValueError("identifier cannot be empty")
    escaped = identifier.replace(quote, quote * 2)
    return f"{quote}{escaped}{quote}"


def qualified_table(schema: Optional[str], table: str, quote: str = '"') -> str:
    """Quoted table name, prefixed with its schema when one is given."""
    quoted_table = quote_identifier(table, quote)
    if schema:
        return f"{quote_identifier(schema, quote)}.{quoted_table}"
    return quoted_table


def _bind(value: Any) -> SqlValue:
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    raise TypeError(f"unsupported SQL value: {value!r}")


def _where(
    filters: Iterable[CrudFilter], quote: str, placeholder: str
) -> tuple[str, list[SqlValue]]:
    clauses = []
    params: list[SqlValue] = []
    for item in filters:
        clauses.append(f"{quote_identifier(item.column, quote)} = {placeholder}")
        params.append(_bind(item.value))
    if not clauses:
        return "", []
    return " WHERE " + " AND ".join(clauses), params


def build_insert(
    schema: Optional[str],
    table: str,
    row: CrudRow,
    quote: str = '"',
    placeholder: str = "?",
) -> tuple[str, list[SqlValue]]:
    """INSERT statement and parameters for one row, columns in sorted order."""
    if not row:
        raise ValueError("insert row cannot be empty")
    items = sorted(row.items())
    columns = ", ".join(quote_identifier(name, quote) for name, _ in items)
    marks = ", ".join(placeholder for _ in items)
    sql = f"INSERT INTO {qualified_table(schema, table, quote)} ({columns}) VALUES ({marks})"
    return sql, [_bind(value) for _, value in items]


def build_update(
    schema: Optional[str],
    table: str,
    values: CrudRow,
    filters: Sequence[CrudFilter] = (),
    quote: str = '"',
    placeholder: str = "?",
) -> tuple[str, list[SqlValue]]:
    """UPDATE statement and parameters setting the given columns."""
    if not values:
        raise ValueError("update values cannot be empty")
    items = sorted(values.items())
    assignments = ", ".join(f"{quote_identifier(name, quote)} = {placeholder}" for name, _ in items)
    where, where_params = _where(filters, quote, placeholder)
    sql = f"UPDATE {qualified_table(schema, table, quote)} SET {assignments}{where}"
    return sql, [_bind(value) for _, value in items] + where_params


def build_delete(
    schema: Optional[str],
    table: str,
    filters: Sequence[CrudFilter] = (),
    quote: str = '"',
    placeholder: str = "?",
) -> tuple[str, list[SqlValue]]:
    """DELETE statement and parameters for rows matching every filter."""
    where, params = _where(filters, quote, placeholder)
    return f"DELETE FROM {qualified_table(schema, table, quote)}{where}", params


def build_select(
    schema: Optional[str],
    table: str,
    filters: Sequence[CrudFilter] = (),
    limit: Optional[int] = None,
    quote: str = '"',
    placeholder: str = "?",
) -> tuple[str, list[SqlValue]]:
    """SELECT * statement and parameters, with an optional row limit."""
    where, params = _where(filters, quote, placeholder)
    sql = f"SELECT * FROM {qualified_table(schema, table, quote)}{where}"
    if limit is not None:
        if isinstance(limit, bool) or not isinstance(limit, int) or not 0 <= limit <= _MAX_LIMIT:
            raise ValueError(f"invalid limit: {limit!r}")
        sql += f" LIMIT {placeholder}"
        params.append(limit)
    return sql, params


def _format_float(value: float) -> str:
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "inf" if value > 0 else "-inf"
    if value.is_integer():
        if value == 0 and math.copysign(1.0, value) < 0:
            return "-0"
        return str(int(value))
    return format(Decimal(repr(value)), "f")


def cell_to_value(value: Any) -> QueryValue:
    """Convert a raw database cell into a displayable query value."""
    if value is None or isinstance(value, (str, bool)):
        return value
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return _format_float(value)
    if isinstance(value, Decimal):
        return str(value)
    return _UNSUPPORTED


def rows_to_result(
    columns: Sequence[QueryColumn],
    rows: Iterable[Sequence[Any]],
    rows_affected: int = 0,
) -> QueryResult:
    """Shape raw rows into a QueryResult; columns are only reported when rows exist."""
    names = [column.name for column in columns]
    shaped = []
    for row in rows:
        values: dict[str, QueryValue] = {}
        for name, cell in zip(names, row):
            values[name] = cell_to_value(cell)
        shaped.append(dict(sorted(values.items())))
    reported = [QueryColumn(c.name, c.data_type) for c in columns] if shaped else []
    return QueryResult(columns=reported, rows=shaped, rows_affected=rows_affected)


class DatabasePlugin(ABC):
    """Operations one kind of user database supports."""

    db_type: ClassVar[str]

    @abstractmethod
    def connect(self, config: Any) -> ConnectionHandle:
        """Open a connection described by the configuration."""

    def test_connection(self, config: Any) -> None:
        """Open and immediately close a connection; raises if it cannot be opened."""
        self.connect(config).close()

    @abstractmethod
    def metadata(self, handle: ConnectionHandle) -> DatabaseMetadata:
        """Schemas, tables and columns visible through the connection."""

    @abstractmethod
    def execute_query(self, handle: ConnectionHandle, query: str) -> QueryResult:
        """Run a raw query and return its rows."""

    @abstractmethod
    def insert_row(
        self, handle: ConnectionHandle, schema: Optional[str], table: str, row: CrudRow
    ) -> int:
        """Insert one row; returns the number of affected rows."""

    @abstractmethod
    def update_rows(
        self,
        handle: ConnectionHandle,
        schema: Optional[str],
        table: str,
        values: CrudRow,
        filters: Sequence[CrudFilter],
    ) -> int:
        """Update matching rows; returns the number of affected rows."""

    @abstractmethod
    def delete_rows(
        self,
        handle: ConnectionHandle,
        schema: Optional[str],
        table: str,
        filters: Sequence[CrudFilter],
    ) -> int:
        """Delete matching rows; returns the number of affected rows."""

    @abstractmethod
    def select_rows(
        self,
        handle: ConnectionHandle,
        schema: Optional[str],
        table: str,
        filters: Sequence[CrudFilter],
        limit: Optional[int],
    ) -> QueryResult:
        """Select matching rows, up to an optional limit."""