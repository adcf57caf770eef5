"""Finding and opening the workspace the application works in."""

from __future__ import annotations

import sqlite3
from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from pyew.migrations import PRIMARY_WORKSPACE_ID_HEX, PRIMARY_WORKSPACE_NAME
from pyew.models import Workspace, now

PRIMARY_WORKSPACE_ID = UUID("00000000-0000-4000-8000-000000000001")

_SELECT = "SELECT id, name, is_opened, last_opened, created_at, updated_at FROM workspace"


def _encode_time(value: Optional[datetime]) -> Optional[str]:
    return None if value is None else value.isoformat(sep=" ")


def _decode_time(value: Any) -> Optional[datetime]:
    if value is None:
        return None
    return datetime.fromisoformat(str(value))


def _decode_uuid(value: Any) -> UUID:
    if isinstance(value, (bytes, bytearray, memoryview)):
        return UUID(bytes=bytes(value))
    return UUID(str(value))


def _from_row(row: tuple) -> Workspace:
    ident, name, is_opened, last_opened, created, updated = row
    return Workspace(
        id=_decode_uuid(ident),
        name=name,
        is_opened=None if is_opened is None else bool(is_opened),
        last_opened=_decode_time(last_opened),
        created_at=_decode_time(created),
        updated_at=_decode_time(updated),
    )


class WorkspaceStore:
    """Access to the workspace table of the local application database."""

    def __init__(self, db: sqlite3.Connection) -> None:
        self.db = db

    def get_or_create_opened(self) -> Workspace:
        """The most recently opened workspace, else the primary one opened, else a new primary."""
        self._repair_primary_id()

        row = self.db.execute(
            f"{_SELECT} WHERE is_opened = ? ORDER BY last_opened DESC LIMIT 1", (True,)
        ).fetchone()
        if row is not None:
            return _from_row(row)

        row = self.db.execute(
            f"{_SELECT} WHERE name = ? LIMIT 1", (PRIMARY_WORKSPACE_NAME,)
        ).fetchone()
        if row is not None:
            return self._mark_opened(_from_row(row))

        stamp = now()
        workspace = Workspace(
            id=PRIMARY_WORKSPACE_ID,
            name=PRIMARY_WORKSPACE_NAME,
            is_opened=True,
            last_opened=stamp,
            created_at=stamp,
            updated_at=stamp,
        )
        with self.db:
            self.db.execute(
                "INSERT INTO workspace (id, name, is_opened, last_opened, created_at, updated_at) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                (
                    workspace.id.bytes,
                    workspace.name,
                    True,
                    _encode_time(stamp),
                    _encode_time(stamp),
                    _encode_time(stamp),
                ),
            )
        return workspace

    def _mark_opened(self, workspace: Workspace) -> Workspace:
        stamp = now()
        workspace.is_opened = True
        workspace.last_opened = stamp
        workspace.updated_at = stamp
        with self.db:
            self.db.execute(
                "UPDATE workspace SET is_opened = ?, last_opened = ?, updated_at = ? WHERE id = ?",
                (True, _encode_time(stamp), _encode_time(stamp), workspace.id.bytes),
            )
        return workspace

    def _repair_primary_id(self) -> None:
        with self.db:
            self.db.execute(
                f"UPDATE workspace SET id = x'{PRIMARY_WORKSPACE_ID_HEX}' "
                "WHERE name = ? AND typeof(id) = 'text'",
                (PRIMARY_WORKSPACE_NAME,),
            )