"""Application-wide state shared between the interface and background work."""

from __future__ import annotations

import sqlite3
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from pyew.models import Workspace


class DbType(Enum):
    POSTGRES = "postgres"
    MYSQL = "mysql"
    SQLITE = "sqlite"


@dataclass
class ConnectionPool:
    """An open connection to a user database, known by its saved connection id."""

    connection_id: int
    name: str
    db_type: DbType
    pool: Any


class StateNotReady(RuntimeError):
    """Raised when a piece of state is read before it has been set."""


class AppState:
    """Thread-safe holder of the application database, opened workspace and open pools."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._app_db: Optional[sqlite3.Connection] = None
        self._opened_workspace: Optional[Workspace] = None
        self._pools: dict[int, ConnectionPool] = {}

    def add_connection_pool(self, pool: ConnectionPool) -> None:
        with self._lock:
            self._pools[pool.connection_id] = pool

    def remove_connection_pool(self, connection_id: int) -> None:
        with self._lock:
            self._pools.pop(connection_id, None)

    def get_connection_pool(self, connection_id: int) -> Optional[ConnectionPool]:
        with self._lock:
            return self._pools.get(connection_id)

    @property
    def app_db(self) -> sqlite3.Connection:
        """The local application database; raises StateNotReady until set."""
        with self._lock:
            if self._app_db is None:
                raise StateNotReady("App DB not initialized yet")
            return self._app_db

    @app_db.setter
    def app_db(self, db: sqlite3.Connection) -> None:
        with self._lock:
            self._app_db = db

    @property
    def opened_workspace(self) -> Workspace:
        """The workspace in use; raises StateNotReady until set."""
        with self._lock:
            if self._opened_workspace is None:
                raise StateNotReady("Opened workspace not initialized yet")
            return self._opened_workspace

    @opened_workspace.setter
    def opened_workspace(self, workspace: Workspace) -> None:
        with self._lock:
            self._opened_workspace = workspace