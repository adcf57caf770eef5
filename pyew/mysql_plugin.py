"""Plugin for MySQL user databases."""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from typing import Any, Optional

import pymysql
from pymysql.constants import FIELD_TYPE

from pyew.models import MySqlConfig
from pyew.sql import (
    ColumnMetadata,
    ConnectionHandle,
    CrudFilter,
    CrudRow,
    DatabaseMetadata,
    DatabasePlugin,
    QueryColumn,
    QueryResult,
    SchemaMetadata,
    TableMetadata,
    build_delete,
    build_insert,
    build_select,
    build_update,
    rows_to_result,
)

_QUOTE = "`"
_MARK = "\x00"

_METADATA_QUERY = """
SELECT table_schema AS table_schema, table_name AS table_name,
       column_name AS column_name, data_type AS data_type,
       is_nullable AS is_nullable, ordinal_position AS ordinal_position
FROM information_schema.columns
WHERE table_schema NOT IN ('information_schema', 'mysql', 'performance_schema', 'sys')
ORDER BY table_schema, table_name, ordinal_position
"""

_TYPE_NAMES = {
    FIELD_TYPE.DECIMAL: "DECIMAL",
    FIELD_TYPE.NEWDECIMAL: "DECIMAL",
    FIELD_TYPE.TINY: "TINYINT",
    FIELD_TYPE.SHORT: "SMALLINT",
    FIELD_TYPE.LONG: "INT",
    FIELD_TYPE.INT24: "MEDIUMINT",
    FIELD_TYPE.LONGLONG: "BIGINT",
    FIELD_TYPE.FLOAT: "FLOAT",
    FIELD_TYPE.DOUBLE: "DOUBLE",
    FIELD_TYPE.NULL: "NULL",
    FIELD_TYPE.TIMESTAMP: "TIMESTAMP",
    FIELD_TYPE.DATE: "DATE",
    FIELD_TYPE.NEWDATE: "DATE",
    FIELD_TYPE.TIME: "TIME",
    FIELD_TYPE.DATETIME: "DATETIME",
    FIELD_TYPE.YEAR: "YEAR",
    FIELD_TYPE.VARCHAR: "VARCHAR",
    FIELD_TYPE.VAR_STRING: "VARCHAR",
    FIELD_TYPE.STRING: "CHAR",
    FIELD_TYPE.BIT: "BIT",
    FIELD_TYPE.JSON: "JSON",
    FIELD_TYPE.ENUM: "ENUM",
    FIELD_TYPE.SET: "SET",
    FIELD_TYPE.TINY_BLOB: "TINYBLOB",
    FIELD_TYPE.MEDIUM_BLOB: "MEDIUMBLOB",
    FIELD_TYPE.LONG_BLOB: "LONGBLOB",
    FIELD_TYPE.BLOB: "BLOB",
    FIELD_TYPE.GEOMETRY: "GEOMETRY",
}


def build_metadata(rows: Iterable[Mapping[str, Any]]) -> DatabaseMetadata:
    """Group information_schema column rows into schemas and tables, keeping their order."""
    schemas: dict[str, SchemaMetadata] = {}
    tables: dict[tuple[str, str], TableMetadata] = {}
    for row in rows:
        schema_name = row["table_schema"]
        table_name = row["table_name"]
        schema = schemas.get(schema_name)
        if schema is None:
            schema = schemas[schema_name] = SchemaMetadata(name=schema_name)
        table = tables.get((schema_name, table_name))
        if table is None:
            table = tables[(schema_name, table_name)] = TableMetadata(name=table_name)
            schema.tables.append(table)
        table.columns.append(
            ColumnMetadata(
                name=row["column_name"],
                data_type=row["data_type"],
                is_nullable=row["is_nullable"] == "YES",
                ordinal_position=int(row["ordinal_position"]),
            )
        )
    return DatabaseMetadata(schemas=list(schemas.values()))


def _type_name(code: Any) -> str:
    return _TYPE_NAMES.get(code, "UNKNOWN")


def _format_ready(sql: str) -> str:
    """Escape literal percent signs, then turn markers into driver placeholders."""
    return sql.replace("%", "%%").replace(_MARK, "%s")


class MySqlPlugin(DatabasePlugin):
    """Connects to MySQL servers and reads and changes their tables."""

    db_type = "mysql"

    @staticmethod
    def _require(handle: ConnectionHandle) -> Any:
        if not isinstance(handle, ConnectionHandle) or handle.db_type != MySqlPlugin.db_type:
            raise ValueError("invalid mysql connection handle")
        return handle.connection

    @staticmethod
    def _run(connection: Any, sql: str, params: Optional[Sequence[Any]] = None):
        with connection.cursor() as cursor:
            cursor.execute(sql, list(params) if params else None)
            description = cursor.description or ()
            rows = list(cursor.fetchall()) if description else []
            return description, rows, cursor.rowcount

    @staticmethod
    def _result(description: Sequence[Sequence[Any]], rows: Iterable[Sequence[Any]]) -> QueryResult:
        columns = [QueryColumn(entry[0], _type_name(entry[1])) for entry in description]
        return rows_to_result(columns, rows, 0)

    def connect(self, config: Any) -> ConnectionHandle:
        if not isinstance(config, MySqlConfig):
            raise ValueError("invalid config for mysql plugin")
        options: dict[str, Any] = {
            "host": config.host,
            "port": config.port,
            "database": config.database_name,
            "user": config.username,
            "autocommit": True,
        }
        if config.password is not None:
            options["password"] = config.password
        return ConnectionHandle(self.db_type, pymysql.connect(**options))

    def metadata(self, handle: ConnectionHandle) -> DatabaseMetadata:
        connection = self._require(handle)
        description, rows, _ = self._run(connection, _METADATA_QUERY)
        names = [entry[0] for entry in description]
        return build_metadata(dict(zip(names, row)) for row in rows)

    def execute_query(self, handle: ConnectionHandle, query: str) -> QueryResult:
        description, rows, _ = self._run(self._require(handle), query)
        return self._result(description, rows)

    def insert_row(
        self, handle: ConnectionHandle, schema: Optional[str], table: str, row: CrudRow
    ) -> int:
        connection = self._require(handle)
        sql, params = build_insert(schema, table, row, _QUOTE, _MARK)
        return self._run(connection, _format_ready(sql), params)[2]

    def update_rows(
        self,
        handle: ConnectionHandle,
        schema: Optional[str],
        table: str,
        values: CrudRow,
        filters: Sequence[CrudFilter],
    ) -> int:
        connection = self._require(handle)
        sql, params = build_update(schema, table, values, filters, _QUOTE, _MARK)
        return self._run(connection, _format_ready(sql), params)[2]

    def delete_rows(
        self,
        handle: ConnectionHandle,
        schema: Optional[str],
        table: str,
        filters: Sequence[CrudFilter],
    ) -> int:
        connection = self._require(handle)
        sql, params = build_delete(schema, table, filters, _QUOTE, _MARK)
        return self._run(connection, _format_ready(sql), params)[2]

    def select_rows(
        self,
        handle: ConnectionHandle,
        schema: Optional[str],
        table: str,
        filters: Sequence[CrudFilter],
        limit: Optional[int],
    ) -> QueryResult:
        connection = self._require(handle)
        sql, params = build_select(schema, table, filters, limit, _QUOTE, _MARK)
        description, rows, _ = self._run(connection, _format_ready(sql), params)
        return self._result(description, rows)