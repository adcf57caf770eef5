import json
import uuid
from datetime import datetime, timezone

import pytest

from pyew.models import (
    Connection,
    MySqlConfig,
    PostgresConfig,
    SqliteConfig,
    config_from_json,
    config_to_json,
    database_type,
    now,
)

password = "password"


def _postgres():
    return PostgresConfig(
        host="db.example.com",
        port=5432,
        database_name="app",
        username="admin",
        password=password,
        ssl_mode="require",
        extra_params={"application_name": "viewer"},
    )


def _mysql():
    return MySqlConfig(host="localhost", port=3306, database_name="shop", username="admin")


def _sqlite():
    return SqliteConfig(file_path="/tmp/data.db")


def test_config_to_json_layout_for_mysql():
    result = config_to_json(_mysql())
    assert result == {
        "type": "mysql",
        "config": {
            "host": "localhost",
            "port": 3306,
            "database_name": "shop",
            "username": "admin",
            "password": None,
            "extra_params": None,
        },
    }


@pytest.mark.parametrize("factory", [_postgres, _mysql, _sqlite])
def test_json_round_trip(factory):
    config = factory()
    assert config_from_json(config_to_json(config)) == config


@pytest.mark.parametrize("factory", [_postgres, _mysql, _sqlite])
def test_round_trip_through_text(factory):
    config = factory()
    text = json.dumps(config_to_json(config))
    assert config_from_json(json.loads(text)) == config


@pytest.mark.parametrize(
    "factory, name",
    [(_postgres, "postgres"), (_mysql, "mysql"), (_sqlite, "sqlite")],
)
def test_database_type(factory, name):
    assert database_type(factory()) == name
    assert config_to_json(factory())["type"] == name


def test_database_type_rejects_other_objects():
    with pytest.raises(TypeError):
        database_type({"file_path": "x"})


def test_optional_fields_default_to_none():
    config = config_from_json(
        {
            "type": "postgres",
            "config": {"host": "h", "port": 1, "database_name": "d", "username": "u"},
        }
    )
    assert config.password is None
    assert config.ssl_mode is None
    assert config.extra_params is None


def test_extra_params_are_kept():
    config = config_from_json(
        {"type": "sqlite", "config": {"file_path": "a.db", "extra_params": {"mode": "ro"}}}
    )
    assert config.extra_params == {"mode": "ro"}


@pytest.mark.parametrize(
    "value",
    [
        [],
        {"config": {"file_path": "a.db"}},
        {"type": "oracle", "config": {}},
        {"type": "sqlite"},
        {"type": "sqlite", "config": "a.db"},
        {"type": "sqlite", "config": {}},
        {"type": "sqlite", "config": {"file_path": None}},
        {"type": "sqlite", "config": {"file_path": 5}},
        {"type": "mysql", "config": {"host": "h", "port": 70000, "database_name": "d", "username": "u"}},
        {"type": "mysql", "config": {"host": "h", "port": -1, "database_name": "d", "username": "u"}},
        {"type": "mysql", "config": {"host": "h", "port": "3306", "database_name": "d", "username": "u"}},
        {"type": "mysql", "config": {"host": "h", "port": True, "database_name": "d", "username": "u"}},
    ],
)
def test_invalid_configs_raise(value):
    with pytest.raises(ValueError):
        config_from_json(value)


def test_connection_config_parses_stored_json():
    stored = config_to_json(_postgres())
    connection = Connection(
        id=uuid.uuid4(),
        workspace_id=uuid.uuid4(),
        connection_name="main",
        connection_config=stored,
    )
    assert connection.config() == _postgres()


def test_connection_config_with_invalid_json_raises():
    connection = Connection(
        id=uuid.uuid4(),
        workspace_id=uuid.uuid4(),
        connection_name=None,
        connection_config={"type": "unknown"},
    )
    with pytest.raises(ValueError):
        connection.config()


def test_now_is_naive_utc_whole_seconds():
    before = datetime.now(timezone.utc).replace(tzinfo=None, microsecond=0)
    value = now()
    after = datetime.now(timezone.utc).replace(tzinfo=None)
    assert value.tzinfo is None
    assert value.microsecond == 0
    assert before <= value <= after