"""Connection configurations and the records kept in the local application database."""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, ClassVar, Union
from uuid import UUID


def now() -> datetime:
    """Current UTC time as a naive datetime truncated to whole seconds."""
    return datetime.now(timezone.utc).replace(tzinfo=None, microsecond=0)


@dataclass
class PostgresConfig:
    host: str
    port: int
    database_name: str
    username: str
    password: str | None = None
    ssl_mode: str | None = None
    extra_params: Any = None


@dataclass
class MySqlConfig:
    host: str
    port: int
    database_name: str
    username: str
    password: str | None = None
    extra_params: Any = None


@dataclass
class SqliteConfig:
    file_path: str
    extra_params: Any = None


ConnectionConfig = Union[PostgresConfig, MySqlConfig, SqliteConfig]

_CONFIG_TYPES: dict[str, type] = {
    "postgres": PostgresConfig,
    "mysql": MySqlConfig,
    "sqlite": SqliteConfig,
}
_TYPE_NAMES = {cls: name for name, cls in _CONFIG_TYPES.items()}
_MAX_PORT = 0xFFFF


def database_type(config: ConnectionConfig) -> str:
    """Name of the database kind a configuration is for."""
    try:
        return _TYPE_NAMES[type(config)]
    except KeyError:
        raise TypeError(f"not a connection config: {config!r}") from None


def config_to_json(config: ConnectionConfig) -> dict[str, Any]:
    """Serialise a configuration to its tagged JSON form."""
    return {"type": database_type(config), "config": dataclasses.asdict(config)}


def _check_field(name: str, value: Any) -> Any:
    if name == "extra_params":
        return value
    if name == "port":
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError(f"invalid type for field `port`: {value!r}")
        if not 0 <= value <= _MAX_PORT:
            raise ValueError(f"port out of range: {value}")
        return value
    if not isinstance(value, str):
        raise ValueError(f"invalid type for field `{name}`: expected a string")
    return value


def config_from_json(value: Any) -> ConnectionConfig:
    """Parse the tagged JSON form of a configuration; raises ValueError when invalid."""
    if not isinstance(value, Mapping):
        raise ValueError("connection config must be an object")
    if "type" not in value:
        raise ValueError("missing field `type`")
    tag = value["type"]
    cls = _CONFIG_TYPES.get(tag) if isinstance(tag, str) else None
    if cls is None:
        raise ValueError(f"unknown variant `{tag}`, expected one of postgres, mysql, sqlite")
    if "config" not in value:
        raise ValueError("missing field `config`")
    body = value["config"]
    if not isinstance(body, Mapping):
        raise ValueError("field `config` must be an object")

    kwargs: dict[str, Any] = {}
    for field in dataclasses.fields(cls):
        required = field.default is dataclasses.MISSING
        item = body.get(field.name)
        if item is None:
            if required:
                raise ValueError(f"missing field `{field.name}`")
            kwargs[field.name] = None
            continue
        kwargs[field.name] = _check_field(field.name, item)
    return cls(**kwargs)


@dataclass
class Workspace:
    table_name: ClassVar[str] = "workspace"

    id: UUID
    name: str
    is_opened: bool | None = None
    last_opened: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class Connection:
    table_name: ClassVar[str] = "connection"

    id: UUID
    workspace_id: UUID
    connection_name: str | None
    connection_config: Any
    last_connected_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def config(self) -> ConnectionConfig:
        """The stored configuration, parsed."""
        return config_from_json(self.connection_config)


@dataclass
class Database:
    table_name: ClassVar[str] = "database"

    id: UUID
    connection_id: UUID
    name: str
    created_at: datetime
    updated_at: datetime


@dataclass
class DatabaseObject:
    table_name: ClassVar[str] = "database_object"

    id: UUID
    database_id: UUID
    name: str
    object_type: str
    definition: str | None
    metadata: Any
    created_at: datetime


@dataclass
class Preference:
    table_name: ClassVar[str] = "preference"

    key: UUID
    workspace_id: UUID
    value: Any
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class QueryHistory:
    table_name: ClassVar[str] = "query_history"

    id: UUID
    connection_id: UUID
    workspace_id: UUID
    query_text: str
    executed_at: datetime
    execution_time_ms: int | None
    rows_returned: int | None
    status: str
    error_message: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class SavedQuery:
    table_name: ClassVar[str] = "saved_query"

    id: UUID
    connection_id: UUID
    workspace_id: UUID
    title: str
    query_text: str
    tags: Any
    created_at: datetime
    updated_at: datetime


@dataclass
class Tab:
    table_name: ClassVar[str] = "tab"

    id: UUID
    connection_id: UUID
    workspace_id: UUID
    title: str
    query_text: str
    cursor_position: int
    is_pinned: bool
    created_at: datetime
    updated_at: datetime