"""Location and set-up of the local application database."""

from __future__ import annotations

import os
import sqlite3
from pathlib import Path
from typing import Optional, Union

import platformdirs

from pyew.migrations import Migrator

APP_DIR_NAME = "pyew"
DB_FILE_NAME = "data.db"


def data_dir() -> Path:
    """The user's data directory, under which the application keeps its files."""
    return Path(platformdirs.user_data_dir())


def initialize_local_db(
    base_dir: Optional[Union[str, os.PathLike]] = None,
) -> sqlite3.Connection:
    """Open the local database, creating it and applying pending migrations as needed."""
    root = Path(base_dir) if base_dir is not None else data_dir()
    db_dir = root / APP_DIR_NAME
    try:
        db_dir.mkdir(parents=True, exist_ok=True)
    except OSError as error:
        raise RuntimeError(f"Failed to create database directory: {db_dir}") from error

    db_path = db_dir / DB_FILE_NAME
    db_exists = db_path.exists()
    print(f"Database exists: {str(db_exists).lower()}")
    print(f"Connecting to database with URL: sqlite://{db_dir}/{DB_FILE_NAME}?mode=rwc")

    try:
        connection = sqlite3.connect(db_path)
        connection.execute("PRAGMA foreign_keys = ON")
    except sqlite3.Error as error:
        raise RuntimeError("Failed to connect to database") from error

    try:
        _migrate(connection, db_exists)
    except BaseException:
        connection.close()
        raise

    print("Database initialization completed")
    return connection


def _migrate(connection: sqlite3.Connection, db_exists: bool) -> None:
    migrator = Migrator(connection)
    if not db_exists:
        try:
            migrator.up()
        except (sqlite3.Error, RuntimeError, ValueError) as error:
            raise RuntimeError("Migration failed while creating new DB") from error
        return

    try:
        pending = migrator.pending_migrations()
    except (sqlite3.Error, RuntimeError) as error:
        raise RuntimeError("Failed to check pending migrations") from error

    if not pending:
        print("Database is up to date, no migrations needed")
        return

    print(f"Found {len(pending)} pending migrations, running them...")
    try:
        migrator.up()
    except (sqlite3.Error, RuntimeError, ValueError) as error:
        raise RuntimeError("Migration failed while applying pending migrations") from error