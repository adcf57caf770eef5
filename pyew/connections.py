"""Storage of saved database connections in the local application database."""

from __future__ import annotations

import json
import sqlite3
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Optional, Union
from uuid import UUID, uuid4

from pyew.models import Connection, ConnectionConfig, config_to_json, now


class _Unset(Enum):
    UNSET = "unset"

    def __repr__(self) -> str:
        return "UNSET"


UNSET = _Unset.UNSET
"""Marker for an update field that should be left unchanged."""

_COLUMNS = (
    "id",
    "workspace_id",
    "connection_name",
    "connection_config",
    "last_connected_at",
    "created_at",
    "updated_at",
)
_SELECT = f"SELECT {', '.join(_COLUMNS)} FROM connection"


@dataclass
class CreateConnection:
    """Fields for a new saved connection."""

    workspace_id: UUID
    connection_name: Optional[str]
    connection_config: ConnectionConfig
    last_connected_at: Optional[datetime] = None


@dataclass
class UpdateConnection:
    """Changes to a saved connection; fields left as UNSET (or a None config) stay as they are."""

    connection_name: Union[str, None, _Unset] = UNSET
    connection_config: Optional[ConnectionConfig] = None
    last_connected_at: Union[datetime, None, _Unset] = UNSET


def _encode_time(value: Optional[datetime]) -> Optional[str]:
    return None if value is None else value.isoformat(sep=" ")


def _decode_time(value: Any) -> Optional[datetime]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


def _decode_uuid(value: Any) -> UUID:
    if isinstance(value, (bytes, bytearray, memoryview)):
        return UUID(bytes=bytes(value))
    return UUID(str(value))


def _decode_json(value: Any) -> Any:
    if isinstance(value, (str, bytes, bytearray)):
        return json.loads(value)
    return value


def _config_json(config: ConnectionConfig) -> Any:
    try:
        return config_to_json(config)
    except TypeError as error:
        raise ValueError(f"failed to serialize connection config: {error}") from error


def _from_row(row: tuple) -> Connection:
    ident, workspace_id, name, config, last_connected, created, updated = row
    return Connection(
        id=_decode_uuid(ident),
        workspace_id=_decode_uuid(workspace_id),
        connection_name=name,
        connection_config=_decode_json(config),
        last_connected_at=_decode_time(last_connected),
        created_at=_decode_time(created),
        updated_at=_decode_time(updated),
    )


class ConnectionStore:
    """Create, change, remove and look up saved connections."""

    def __init__(self, db: sqlite3.Connection) -> None:
        self.db = db

    def create(self, data: CreateConnection) -> Connection:
        """Save a new connection and return it."""
        stamp = now()
        connection = Connection(
            id=uuid4(),
            workspace_id=data.workspace_id,
            connection_name=data.connection_name,
            connection_config=_config_json(data.connection_config),
            last_connected_at=data.last_connected_at,
            created_at=stamp,
            updated_at=stamp,
        )
        with self.db:
            self.db.execute(
                f"INSERT INTO connection ({', '.join(_COLUMNS)}) VALUES (?, ?, ?, ?, ?, ?, ?)",
                (
                    connection.id.bytes,
                    connection.workspace_id.bytes,
                    connection.connection_name,
                    json.dumps(connection.connection_config),
                    _encode_time(connection.last_connected_at),
                    _encode_time(connection.created_at),
                    _encode_time(connection.updated_at),
                ),
            )
        return connection

    def update(self, connection_id: UUID, changes: UpdateConnection) -> Optional[Connection]:
        """Apply changes to a saved connection; None when it does not exist."""
        current = self.get(connection_id)
        if current is None:
            return None
        if changes.connection_name is not UNSET:
            current.connection_name = changes.connection_name
        if changes.connection_config is not None:
            current.connection_config = _config_json(changes.connection_config)
        if changes.last_connected_at is not UNSET:
            current.last_connected_at = changes.last_connected_at
        current.updated_at = now()
        with self.db:
            self.db.execute(
                "UPDATE connection SET connection_name = ?, connection_config = ?, "
                "last_connected_at = ?, updated_at = ? WHERE id = ?",
                (
                    current.connection_name,
                    json.dumps(current.connection_config),
                    _encode_time(current.last_connected_at),
                    _encode_time(current.updated_at),
                    connection_id.bytes,
                ),
            )
        return current

    def delete(self, connection_id: UUID) -> bool:
        """Remove a saved connection; True when one was removed."""
        with self.db:
            cursor = self.db.execute("DELETE FROM connection WHERE id = ?", (connection_id.bytes,))
        return cursor.rowcount > 0

    def get(self, connection_id: UUID) -> Optional[Connection]:
        """The saved connection with this id, if any."""
        row = self.db.execute(f"{_SELECT} WHERE id = ?", (connection_id.bytes,)).fetchone()
        return None if row is None else _from_row(row)

    def list_by_workspace(self, workspace_id: UUID) -> list[Connection]:
        """Connections of a workspace, ordered by name and then creation time."""
        rows = self.db.execute(
            f"{_SELECT} WHERE workspace_id = ? ORDER BY connection_name ASC, created_at ASC",
            (workspace_id.bytes,),
        )
        return [_from_row(row) for row in rows]