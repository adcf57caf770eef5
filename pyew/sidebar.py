"""The list of saved connections shown beside the editor."""

from __future__ import annotations

from dataclasses import dataclass

from pyew.app_state import AppState
from pyew.connections import ConnectionStore
from pyew.models import (
    Connection,
    ConnectionConfig,
    MySqlConfig,
    PostgresConfig,
    SqliteConfig,
    database_type,
)


@dataclass(frozen=True)
class ConnectionListItem:
    """One saved connection as displayed in the list."""

    id: str
    name: str
    database_type: str
    summary: str


def fallback_connection_name(config: ConnectionConfig) -> str:
    """Name to show for a connection saved without one."""
    if isinstance(config, (PostgresConfig, MySqlConfig)):
        return config.database_name
    if isinstance(config, SqliteConfig):
        return config.file_path
    raise TypeError(f"not a connection config: {config!r}")


def connection_summary(config: ConnectionConfig) -> str:
    """Short description of where a connection points."""
    if isinstance(config, (PostgresConfig, MySqlConfig)):
        return f"{config.host}:{config.port}/{config.database_name}"
    if isinstance(config, SqliteConfig):
        return config.file_path
    raise TypeError(f"not a connection config: {config!r}")


def connection_list_item(connection: Connection) -> ConnectionListItem:
    """List entry for a saved connection, tolerating an unreadable configuration."""
    try:
        config = connection.config()
    except ValueError:
        name = connection.connection_name
        return ConnectionListItem(
            id=str(connection.id),
            name=name if name is not None else "Invalid connection",
            database_type="unknown",
            summary="Invalid config",
        )

    name = connection.connection_name
    if name is None or not name.strip():
        name = fallback_connection_name(config)
    return ConnectionListItem(
        id=str(connection.id),
        name=name,
        database_type=database_type(config),
        summary=connection_summary(config),
    )


def load_connections(state: AppState) -> list[ConnectionListItem]:
    """List entries for the opened workspace; raises StateNotReady before start-up is done."""
    db = state.app_db
    workspace = state.opened_workspace
    store = ConnectionStore(db)
    return [connection_list_item(connection) for connection in store.list_by_workspace(workspace.id)]