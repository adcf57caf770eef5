# pyew

pyew is the core of a lightweight database client. It keeps a small local
SQLite database that holds your workspaces and saved connections. It can also
connect to MySQL servers, where it reads the schema, runs queries and does
simple row inserts, updates, deletes and selects.

## Installation

```
pip install .
```

The test suite needs the `test` extra:

```
pip install ".[test]"
pytest
```

## Commands

### `pyew`

```
pyew [--data-dir DIR]
```

This command does four things:

1. It creates or opens the local database at `<data dir>/pyew/data.db` and applies any pending migrations. The data directory is your user data directory unless you pass `--data-dir`.
2. It opens the current workspace. If there is none, it opens or creates the `Primary` workspace.
3. It prints the saved connections of that workspace, one per line, as name, database type and summary.
4. If there are no saved connections, it prints `No connections yet`.

### `pyew-migrate`

```
pyew-migrate [-u URL] [status | up [-n N] | down [-n N] | fresh | refresh | reset]
```

This command manages the schema of the local database. The URL comes from
`-u/--database-url` or, if that is not given, from the `DATABASE_URL`
environment variable. It has the form `sqlite://path/to/data.db`. Without a
query string the file is opened read-write. Add `?mode=rwc` to create the
file if it does not exist.

| Subcommand | What it does |
| --- | --- |
| `status` | Lists every migration as `Applied` or `Pending`. |
| `up` (the default) | Applies the pending migrations: all of them, or at most `-n`. |
| `down` | Reverts the newest applied migrations: `-n`, default 1. |
| `fresh` | Drops every table, then applies all migrations. |
| `refresh` | Reverts all migrations, then applies them again. |
| `reset` | Reverts all migrations. |

## Library use

### Local database, workspaces and saved connections

```python
from pyew.local_data import initialize_local_db
from pyew.workspaces import WorkspaceStore
from pyew.connections import ConnectionStore, CreateConnection, UpdateConnection
from pyew.models import SqliteConfig

db = initialize_local_db()          # or initialize_local_db("some/dir")
workspace = WorkspaceStore(db).get_or_create_opened()

store = ConnectionStore(db)
saved = store.create(CreateConnection(
    workspace_id=workspace.id,
    connection_name="Local notes",
    connection_config=SqliteConfig(file_path="notes.db"),
))

store.update(saved.id, UpdateConnection(connection_name="Notes"))
for connection in store.list_by_workspace(workspace.id):
    print(connection.connection_name, connection.config())
store.delete(saved.id)
```

`UpdateConnection` changes only the fields you set:

- Fields left as `UNSET` keep their stored values.
- A `connection_config` of `None` keeps the stored configuration.
- Setting `connection_name=None` clears the name.

Connection configurations are `PostgresConfig`, `MySqlConfig` and
`SqliteConfig` in `pyew.models`. Three functions work with them:

- `config_to_json` stores a configuration as `{"type": ..., "config": {...}}`.
- `config_from_json` reads that form back. It raises `ValueError` on bad input.
- `database_type` returns `"postgres"`, `"mysql"` or `"sqlite"`.

`pyew.migrations.Migrator` applies and reverts the schema migrations on any
`sqlite3` connection. Its methods are `up`, `down`, `applied_migrations` and
`pending_migrations`.

### Application state and the connection list

`pyew.app_state.AppState` is a thread-safe holder for three things:

- the local database, in `app_db`;
- the opened workspace, in `opened_workspace`;
- open connection pools, keyed by connection id.

Reading `app_db` or `opened_workspace` before it has been set raises
`StateNotReady`.

`pyew.app.init_db(state)` fills both from the local database.

`pyew.sidebar.load_connections(state)` returns `ConnectionListItem` entries
with an id, name, type and summary. A connection saved without a name is
shown by its database name or file path. One with an unreadable configuration
is shown as `unknown` / `Invalid config`.

### MySQL servers

```python
from pyew.models import MySqlConfig
from pyew.mysql_plugin import MySqlPlugin
from pyew.sql import CrudFilter

password = "password"
config = MySqlConfig(host="localhost", port=3306, database_name="shop",
                     username="user", password=password)

plugin = MySqlPlugin()
with plugin.connect(config) as handle:
    print(plugin.metadata(handle).schemas)
    plugin.insert_row(handle, None, "customers", {"name": "Ada"})
    result = plugin.select_rows(handle, None, "customers",
                                [CrudFilter("name", "Ada")], 10)
    print(result.columns, result.rows)
```

### SQL helpers

`pyew.sql` builds statements with quoted identifiers and bound parameters:

```python
>>> from pyew.sql import build_insert
>>> build_insert(None, "users", {"name": "Ada", "age": 36})
('INSERT INTO "users" ("age", "name") VALUES (?, ?)', [36, 'Ada'])
```

The following raise `ValueError`:

- an insert with no columns;
- an update with no values;
- an empty identifier;
- a limit outside 0 to 4294967295.

`DatabasePlugin` is the abstract interface that every database plugin
implements.

## What pyew does not do

- There is no graphical interface. The `pyew` command only prints the connection list.
- Only MySQL servers can be connected to.
- Nothing connects with a `PostgresConfig` or a `SqliteConfig`. They can be saved and listed, but not opened.
- There is no component that chooses a plugin from a configuration's database type. You pick the plugin yourself.