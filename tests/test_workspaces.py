import sqlite3
from uuid import UUID, uuid4

import pytest

from pyew.migrations import Migrator
from pyew.workspaces import PRIMARY_WORKSPACE_ID, WorkspaceStore

PRIMARY = UUID("00000000-0000-4000-8000-000000000001")


@pytest.fixture
def db():
    connection = sqlite3.connect(":memory:")
    connection.execute("PRAGMA foreign_keys = ON")
    Migrator(connection).up()
    yield connection
    connection.close()


def test_primary_id_constant_matches_seeded_workspace(db):
    workspace = WorkspaceStore(db).get_or_create_opened()
    assert workspace.id == PRIMARY_WORKSPACE_ID
    assert workspace.id == PRIMARY


def test_returns_seeded_primary_workspace(db):
    workspace = WorkspaceStore(db).get_or_create_opened()
    assert workspace.id == PRIMARY
    assert workspace.name == "Primary"
    assert workspace.is_opened is True


def test_repeated_calls_return_same_workspace(db):
    store = WorkspaceStore(db)
    first = store.get_or_create_opened()
    second = store.get_or_create_opened()
    assert first.id == PRIMARY
    assert second.id == PRIMARY
    assert second.name == first.name == "Primary"
    assert db.execute("SELECT COUNT(*) FROM workspace").fetchone() == (1,)


def test_repairs_text_primary_id(db):
    db.execute("UPDATE workspace SET id = ? WHERE name = 'Primary'", (str(PRIMARY),))
    workspace = WorkspaceStore(db).get_or_create_opened()
    assert workspace.id == PRIMARY
    assert db.execute("SELECT typeof(id) FROM workspace").fetchone() == ("blob",)


def test_opens_primary_when_none_opened(db):
    db.execute("UPDATE workspace SET is_opened = 0, last_opened = NULL")
    workspace = WorkspaceStore(db).get_or_create_opened()
    assert workspace.id == PRIMARY
    assert workspace.is_opened is True
    assert workspace.last_opened == workspace.updated_at
    assert db.execute("SELECT is_opened FROM workspace").fetchone() == (1,)


def test_prefers_most_recently_opened(db):
    other = uuid4()
    db.execute(
        "INSERT INTO workspace (id, name, is_opened, last_opened) VALUES (?, ?, 1, ?)",
        (other.bytes, "Other", "2999-01-01 00:00:00"),
    )
    workspace = WorkspaceStore(db).get_or_create_opened()
    assert workspace.id == other
    assert workspace.name == "Other"


def test_creates_primary_when_table_empty(db):
    db.execute("DELETE FROM workspace")
    workspace = WorkspaceStore(db).get_or_create_opened()
    assert workspace.id == PRIMARY
    assert workspace.created_at == workspace.last_opened
    assert db.execute("SELECT COUNT(*) FROM workspace").fetchone() == (1,)
    assert WorkspaceStore(db).get_or_create_opened() == workspace