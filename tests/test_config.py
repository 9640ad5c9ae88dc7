"""Tests for configuration loading."""

from __future__ import annotations

from pathlib import Path

import pytest

from dbwire import config as config_module
from dbwire.config import ConnectionConfig, DbalConfig, load_config, parse_config
from dbwire.errors import ConfigurationError, SchemaViolationError
from dbwire.references import Reference

SAMPLE = """
typesMapping = { enum = "string" }

[debug]
panel = true
sourcePaths = ["app"]

[connections.default]
driver = "pdo_pgsql"
host = "localhost"
port = 5432
password = "@secrets.pg_password"
resultCache = "@cache.redis"
autoCommit = false

[connections.default.middlewares]
audit = "@audit.middleware"
timing = "@timing.middleware"

[connections.readonly]
driver = "sqlite3"
path = "/srv/readonly.db"
"""


def _write(tmp_path: Path, content: str = SAMPLE) -> Path:
    path = tmp_path / "dbwire.toml"
    path.write_text(content)
    return path


def test_load_config_reads_values(tmp_path: Path) -> None:
    result = load_config(_write(tmp_path))

    assert result.debug.panel is True
    assert result.debug.source_paths == ["app"]
    assert result.types_mapping == {"enum": "string"}
    assert list(result.connections) == ["default", "readonly"]
    default = result.connections["default"]
    assert default.driver == "pdo_pgsql"
    assert default.auto_commit is False
    assert default.result_cache == Reference("cache.redis")
    assert list(default.middlewares) == ["audit", "timing"]
    assert default.driver_params()["password"] == Reference("secrets.pg_password")


def test_load_config_uses_environment_path(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv(config_module.CONFIG_ENV, str(_write(tmp_path)))

    assert load_config().default_connection == "default"


def test_load_config_defaults_to_working_directory(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv(config_module.CONFIG_ENV, raising=False)
    monkeypatch.chdir(tmp_path)
    _write(tmp_path)

    assert "readonly" in load_config().connections


def test_load_config_fails_when_missing(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError, match="not found"):
        load_config(tmp_path / "absent.toml")


def test_load_config_fails_on_toml_errors(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError, match="Invalid TOML"):
        load_config(_write(tmp_path, "connections = [unterminated"))


def test_parse_config_requires_a_connection() -> None:
    with pytest.raises(ConfigurationError) as excinfo:
        parse_config({"connections": {}})

    assert excinfo.value.path == "connections"


def test_parse_config_requires_driver() -> None:
    with pytest.raises(ConfigurationError, match="connections.default.driver"):
        parse_config({"connections": {"default": {"host": "localhost"}}})


def test_parse_config_rejects_literal_service_values() -> None:
    with pytest.raises(ConfigurationError, match="resultCache"):
        parse_config({"connections": {"default": {"driver": "sqlite3", "resultCache": "redis"}}})


def test_snake_case_wiring_keys_are_driver_parameters() -> None:
    config = parse_config(
        {"connections": {"default": {"driver": "sqlite3", "result_cache": "@cache", "auto_commit": False}}}
    )
    default = config.connections["default"]

    assert default.result_cache is None
    assert default.auto_commit is True
    assert default.driver_params()["result_cache"] == Reference("cache")

    with pytest.raises(SchemaViolationError) as excinfo:
        config.validated_connections()

    paths = {violation.path for violation in excinfo.value.violations}
    assert paths == {"connections.default.result_cache", "connections.default.auto_commit"}


@pytest.mark.parametrize("value", ["no", "false", 0])
def test_parse_config_requires_boolean_auto_commit(value: object) -> None:
    with pytest.raises(ConfigurationError) as excinfo:
        parse_config({"connections": {"default": {"driver": "sqlite3", "autoCommit": value}}})

    assert excinfo.value.path == "connections.default.autoCommit"


def test_parse_config_rejects_dotted_connection_names() -> None:
    with pytest.raises(ConfigurationError):
        parse_config({"connections": {"read.only": {"driver": "sqlite3"}}})


def test_raw_contains_driver_and_wiring_keys() -> None:
    connection = ConnectionConfig.model_validate(
        {"driver": "pdo_mysql", "host": "db", "schemaAssetsFilter": Reference("filter")}
    )

    raw = connection.raw()

    assert raw["driver"] == "pdo_mysql"
    assert raw["host"] == "db"
    assert raw["schemaAssetsFilter"] == Reference("filter")
    assert raw["autoCommit"] is True
    assert raw["url"] is None
    assert connection.driver_params() == {"driver": "pdo_mysql", "host": "db"}


def test_validated_connections_normalizes_every_entry() -> None:
    config = parse_config(
        {
            "connections": {
                "default": {"driver": "pdo_pgsql", "host": "primary", "user": None},
                "readonly": {"driver": "sqlite3", "memory": True, "autoCommit": False},
            }
        }
    )

    validated = config.validated_connections()

    assert dict(validated["default"]) == {"driver": "pdo_pgsql", "host": "primary"}
    assert dict(validated["readonly"]) == {"driver": "sqlite3", "memory": True}


def test_validated_connections_aborts_on_invalid_entry() -> None:
    config = parse_config({"connections": {"default": {"driver": "sqlite3", "port": 5432}}})

    with pytest.raises(SchemaViolationError) as excinfo:
        config.validated_connections()

    assert excinfo.value.path == "connections.default.port"


def test_default_connection_absent_without_default_name() -> None:
    config = DbalConfig(connections={"reports": ConnectionConfig(driver="sqlite3")})

    assert config.default_connection is None
