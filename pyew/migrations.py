"""Schema migrations for the local application database."""

from __future__ import annotations

import argparse
import os
import sqlite3
import sys
import time
from collections.abc import Callable, Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Optional
from urllib.parse import quote

from pyew.models import now

MIGRATION_TABLE = "seaql_migrations"
PRIMARY_WORKSPACE_ID_HEX = "00000000000040008000000000000001"
PRIMARY_WORKSPACE_NAME = "Primary"

Step = Callable[[sqlite3.Connection], None]


@dataclass(frozen=True)
class Migration:
    """A named schema change with its forward and backward steps."""

    name: str
    up: Step
    down: Step


def _statements(*sql: str) -> Step:
    def run(connection: sqlite3.Connection) -> None:
        for statement in sql:
            connection.execute(statement)

    return run


def _drop(*tables: str) -> Step:
    return _statements(*(f'DROP TABLE "{table}"' for table in tables))


_CREATE_WORKSPACE = """
CREATE TABLE IF NOT EXISTS "workspace" (
    "id" uuid_text PRIMARY KEY,
    "name" varchar NOT NULL,
    "is_opened" boolean NULL,
    "last_opened" timestamp_text NULL,
    "created_at" timestamp_text NULL,
    "updated_at" timestamp_text NULL
)
"""

_CREATE_CONNECTION = """
CREATE TABLE IF NOT EXISTS "connection" (
    "id" uuid_text PRIMARY KEY,
    "workspace_id" uuid_text NOT NULL,
    "connection_name" varchar NULL,
    "connection_config" json_text NOT NULL,
    "last_connected_at" timestamp_text NULL,
    "created_at" timestamp_text NULL,
    "updated_at" timestamp_text NULL,
    FOREIGN KEY ("workspace_id") REFERENCES "workspace" ("id") ON DELETE CASCADE
)
"""

_CREATE_TAB = """
CREATE TABLE IF NOT EXISTS "tab" (
    "id" uuid_text PRIMARY KEY,
    "connection_id" uuid_text NOT NULL,
    "workspace_id" uuid_text NOT NULL,
    "title" varchar NOT NULL,
    "query_text" text NOT NULL,
    "cursor_position" integer DEFAULT 0,
    "is_pinned" boolean DEFAULT FALSE,
    "created_at" timestamp_text NOT NULL,
    "updated_at" timestamp_text NOT NULL,
    FOREIGN KEY ("connection_id") REFERENCES "connection" ("id") ON DELETE CASCADE,
    FOREIGN KEY ("workspace_id") REFERENCES "workspace" ("id") ON DELETE CASCADE
)
"""

_CREATE_SAVED_QUERY = """
CREATE TABLE IF NOT EXISTS "saved_query" (
    "id" uuid_text PRIMARY KEY,
    "connection_id" uuid_text NOT NULL,
    "workspace_id" integer NOT NULL,
    "title" varchar NOT NULL,
    "query_text" text NOT NULL,
    "tags" json_text NULL,
    "created_at" timestamp_text NOT NULL,
    "updated_at" timestamp_text NOT NULL,
    FOREIGN KEY ("connection_id") REFERENCES "connection" ("id") ON DELETE CASCADE,
    FOREIGN KEY ("workspace_id") REFERENCES "workspace" ("id") ON DELETE CASCADE
)
"""

_CREATE_QUERY_HISTORY = """
CREATE TABLE IF NOT EXISTS "query_history" (
    "id" uuid_text PRIMARY KEY,
    "connection_id" uuid_text NOT NULL,
    "workspace_id" uuid_text NOT NULL,
    "query_text" text NOT NULL,
    "executed_at" timestamp_text NOT NULL,
    "execution_time_ms" integer NULL,
    "rows_returned" integer NULL,
    "status" varchar NOT NULL,
    "error_message" text NULL,
    "created_at" timestamp_text NULL,
    "updated_at" timestamp_text NULL,
    FOREIGN KEY ("connection_id") REFERENCES "connection" ("id") ON DELETE CASCADE,
    FOREIGN KEY ("workspace_id") REFERENCES "workspace" ("id") ON DELETE CASCADE
)
"""

_CREATE_PREFERENCE = """
CREATE TABLE IF NOT EXISTS "preference" (
    "key" uuid_text PRIMARY KEY,
    "workspace_id" uuid_text NOT NULL,
    "value" json_text NOT NULL,
    "created_at" timestamp_text NULL,
    "updated_at" timestamp_text NULL,
    FOREIGN KEY ("workspace_id") REFERENCES "workspace" ("id") ON DELETE CASCADE
)
"""

_CREATE_DATABASE = """
CREATE TABLE IF NOT EXISTS "database" (
    "id" uuid_text PRIMARY KEY,
    "connection_id" uuid_text NOT NULL,
    "name" varchar NOT NULL,
    "created_at" datetime_text NOT NULL DEFAULT CURRENT_TIMESTAMP,
    "updated_at" datetime_text NOT NULL DEFAULT CURRENT_TIMESTAMP,
    FOREIGN KEY ("connection_id") REFERENCES "connection" ("id") ON DELETE CASCADE
)
"""

_CREATE_DATABASE_OBJECT = """
CREATE TABLE IF NOT EXISTS "database_object" (
    "id" uuid_text PRIMARY KEY,
    "database_id" uuid_text NOT NULL,
    "name" varchar NOT NULL,
    "object_type" varchar NOT NULL,
    "definition" text,
    "metadata" jsonb_text,
    "created_at" datetime_text NOT NULL DEFAULT CURRENT_TIMESTAMP,
    FOREIGN KEY ("database_id") REFERENCES "database" ("id") ON DELETE CASCADE
)
"""

_CREATE_OBJECT_INDEX = (
    'CREATE INDEX "idx-database-object-name-type" '
    'ON "database_object" ("name", "object_type")'
)


def _create_workspace(connection: sqlite3.Connection) -> None:
    connection.execute(_CREATE_WORKSPACE)
    stamp = now().strftime("%Y-%m-%d %H:%M:%S")
    connection.execute(
        "INSERT INTO workspace (id, name, is_opened, last_opened, created_at, updated_at) "
        f"SELECT x'{PRIMARY_WORKSPACE_ID_HEX}', '{PRIMARY_WORKSPACE_NAME}', 1, ?, ?, ? "
        f"WHERE NOT EXISTS (SELECT 1 FROM workspace WHERE name = '{PRIMARY_WORKSPACE_NAME}')",
        (stamp, stamp, stamp),
    )


def migrations() -> list[Migration]:
    """Every migration, in the order it is applied."""
    return [
        Migration("m20250925_000006_create_workspace_table", _create_workspace, _drop("workspace")),
        Migration(
            "m20250925_000001_create_connection_table",
            _statements(_CREATE_CONNECTION),
            _drop("connection"),
        ),
        Migration("m20250925_000002_create_tab_table", _statements(_CREATE_TAB), _drop("tab")),
        Migration(
            "m20250925_000003_create_saved_query_table",
            _statements(_CREATE_SAVED_QUERY),
            _drop("saved_query"),
        ),
        Migration(
            "m20250925_000004_create_query_history_table",
            _statements(_CREATE_QUERY_HISTORY),
            _drop("query_history"),
        ),
        Migration(
            "m20250925_000005_create_preference_table",
            _statements(_CREATE_PREFERENCE),
            _drop("preference"),
        ),
        Migration(
            "m20250925_000007_create_database_table",
            _statements(_CREATE_DATABASE, _CREATE_DATABASE_OBJECT, _CREATE_OBJECT_INDEX),
            _drop("database_object", "database"),
        ),
    ]


def _check_steps(steps: Optional[int]) -> None:
    if steps is not None and (isinstance(steps, bool) or not isinstance(steps, int) or steps < 0):
        raise ValueError(f"invalid number of steps: {steps!r}")


class Migrator:
    """Applies and reverts migrations on a SQLite connection, recording each one."""

    def __init__(self, connection: sqlite3.Connection) -> None:
        self.connection = connection
        self._migrations = migrations()

    def _install(self) -> None:
        self.connection.execute(
            f'CREATE TABLE IF NOT EXISTS "{MIGRATION_TABLE}" '
            '("version" varchar NOT NULL PRIMARY KEY, "applied_at" bigint NOT NULL)'
        )

    @contextmanager
    def _transaction(self) -> Iterator[None]:
        if self.connection.in_transaction:
            self.connection.commit()
        self.connection.execute("BEGIN")
        try:
            yield
        except BaseException:
            self.connection.rollback()
            raise
        self.connection.commit()

    def applied_migrations(self) -> list[str]:
        """Names of the applied migrations, in migration order."""
        self._install()
        recorded = {
            version
            for (version,) in self.connection.execute(
                f'SELECT "version" FROM "{MIGRATION_TABLE}" ORDER BY "version"'
            )
        }
        known = {migration.name for migration in self._migrations}
        missing = sorted(recorded - known)
        if missing:
            raise RuntimeError(f"Migration file of version '{missing[0]}' is missing")
        return [m.name for m in self._migrations if m.name in recorded]

    def pending_migrations(self) -> list[Migration]:
        """Migrations not yet applied, in the order they would run."""
        applied = set(self.applied_migrations())
        return [m for m in self._migrations if m.name not in applied]

    def up(self, steps: Optional[int] = None) -> list[str]:
        """Apply pending migrations, all of them or at most ``steps``; returns their names."""
        _check_steps(steps)
        pending = self.pending_migrations()
        if steps is not None:
            pending = pending[:steps]
        for migration in pending:
            with self._transaction():
                migration.up(self.connection)
                self.connection.execute(
                    f'INSERT INTO "{MIGRATION_TABLE}" ("version", "applied_at") VALUES (?, ?)',
                    (migration.name, int(time.time())),
                )
        return [migration.name for migration in pending]

    def down(self, steps: Optional[int] = None) -> list[str]:
        """Revert applied migrations, newest first, all or at most ``steps``; returns their names."""
        _check_steps(steps)
        applied = set(self.applied_migrations())
        targets = [m for m in reversed(self._migrations) if m.name in applied]
        if steps is not None:
            targets = targets[:steps]
        for migration in targets:
            with self._transaction():
                migration.down(self.connection)
                self.connection.execute(
                    f'DELETE FROM "{MIGRATION_TABLE}" WHERE "version" = ?', (migration.name,)
                )
        return [migration.name for migration in targets]


def _drop_all_tables(connection: sqlite3.Connection) -> None:
    if connection.in_transaction:
        connection.commit()
    connection.execute("PRAGMA foreign_keys = OFF")
    names = [
        name
        for (name,) in connection.execute(
            "SELECT name FROM sqlite_master WHERE type = 'table' AND name NOT LIKE 'sqlite_%'"
        )
    ]
    for name in names:
        connection.execute(f'DROP TABLE IF EXISTS "{name.replace(chr(34), chr(34) * 2)}"')
    connection.commit()


def _open(url: str) -> sqlite3.Connection:
    if not url.startswith("sqlite:"):
        raise ValueError(f"unsupported database url: {url}")
    rest = url[len("sqlite:"):]
    if rest.startswith("//"):
        rest = rest[2:]
    path, _, params = rest.partition("?")
    if not path or path == ":memory:":
        return sqlite3.connect(":memory:")
    return sqlite3.connect(f"file:{quote(path)}?{params or 'mode=rw'}", uri=True)


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pyew-migrate", description="Manage the schema of the local application database."
    )
    parser.add_argument(
        "-u", "--database-url", default=None, help="database URL (defaults to $DATABASE_URL)"
    )
    commands = parser.add_subparsers(dest="command")
    commands.add_parser("status", help="show which migrations are applied")
    up = commands.add_parser("up", help="apply pending migrations")
    up.add_argument("-n", "--num", type=int, default=None, help="number of migrations to apply")
    down = commands.add_parser("down", help="revert applied migrations")
    down.add_argument("-n", "--num", type=int, default=1, help="number of migrations to revert")
    commands.add_parser("fresh", help="drop every table, then apply all migrations")
    commands.add_parser("refresh", help="revert all migrations, then apply them again")
    commands.add_parser("reset", help="revert all migrations")
    return parser


def _run_command(migrator: Migrator, command: str, num: Optional[int]) -> None:
    if command == "status":
        applied = set(migrator.applied_migrations())
        for migration in migrations():
            state = "Applied" if migration.name in applied else "Pending"
            print(f"{state}  {migration.name}")
        return
    if command == "up":
        done = migrator.up(num)
    elif command == "down":
        done = migrator.down(num)
    elif command == "fresh":
        _drop_all_tables(migrator.connection)
        done = migrator.up()
    elif command == "refresh":
        migrator.down()
        done = migrator.up()
    else:
        done = migrator.down()
    verb = "Reverted" if command in ("down", "reset") else "Applied"
    if not done:
        print("No migrations to run")
    for name in done:
        print(f"{verb} migration '{name}'")


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Command-line entry point for managing migrations."""
    args = _parser().parse_args(argv)
    command = args.command or "up"
    num = getattr(args, "num", None)
    url = args.database_url or os.environ.get("DATABASE_URL")
    if not url:
        print("error: environment variable 'DATABASE_URL' not set", file=sys.stderr)
        return 1
    try:
        connection = _open(url)
    except (ValueError, sqlite3.Error) as error:
        print(f"error: {error}", file=sys.stderr)
        return 1
    try:
        _run_command(Migrator(connection), command, num)
    except (ValueError, RuntimeError, sqlite3.Error) as error:
        print(f"error: {error}", file=sys.stderr)
        return 1
    finally:
        connection.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())