"""Start-up of the application: local database, opened workspace and connection list."""

from __future__ import annotations

import argparse
import os
import sqlite3
import sys
from collections.abc import Sequence
from typing import Optional, Union

from pyew.app_state import AppState, StateNotReady
from pyew.local_data import initialize_local_db
from pyew.sidebar import load_connections
from pyew.workspaces import WorkspaceStore

TITLE = "Pyew"


def init_db(
    state: AppState, base_dir: Optional[Union[str, os.PathLike]] = None
) -> None:
    """Open the local database and record it and the opened workspace in the state."""
    try:
        db = initialize_local_db(base_dir)
    except (RuntimeError, OSError, sqlite3.Error) as error:
        print(f"Failed to initialize local database: {error}", file=sys.stderr)
        return

    try:
        state.opened_workspace = WorkspaceStore(db).get_or_create_opened()
    except (sqlite3.Error, ValueError) as error:
        print(f"Failed to fetch opened workspace: {error}", file=sys.stderr)

    state.app_db = db


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pyew", description="List the saved connections of the opened workspace."
    )
    parser.add_argument(
        "--data-dir",
        default=None,
        help="directory holding the application data (defaults to the user data directory)",
    )
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Initialise the application and print the connections of the opened workspace."""
    args = _parser().parse_args(argv)
    state = AppState()
    init_db(state, args.data_dir)
    try:
        print(TITLE)
        print("Databases")
        try:
            items = load_connections(state)
        except (StateNotReady, sqlite3.Error) as error:
            print(str(error), file=sys.stderr)
            return 1
        if not items:
            print("No connections yet")
        for item in items:
            print(f"  {item.name}  [{item.database_type}]  {item.summary}")
        return 0
    finally:
        try:
            state.app_db.close()
        except StateNotReady:
            pass


if __name__ == "__main__":
    sys.exit(main())