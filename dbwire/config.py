"""Configuration tree loading helpers."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Mapping

import tomllib

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import ConfigurationError
from .references import Reference, parse_references
from .validation import ConnectionConfigValidator, NormalizedConnectionConfig, validate_connection_config

LOG = logging.getLogger(__name__)

CONFIG_ENV = "DBWIRE_CONFIG"
CONFIG_FILE = Path("dbwire.toml")
DEFAULT_CONNECTION = "default"


class DebugConfig(BaseModel):
    """Debug instrumentation switches shared by every connection."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    panel: bool = False
    source_paths: list[str] = Field(default_factory=list, alias="sourcePaths")


class ConnectionConfig(BaseModel):
    """One named connection: wiring options plus free-form driver parameters.

    Driver parameters are kept untouched as extra fields; they are checked
    against the driver schema by :class:`~dbwire.validation.ConnectionConfigValidator`.
    Wiring options are only recognized under their configuration names
    (``resultCache``, not ``result_cache``); anything else is a driver parameter.
    """

    model_config = ConfigDict(extra="allow", strict=True)

    driver: str
    middlewares: dict[str, Reference] = Field(default_factory=dict)
    result_cache: Reference | None = Field(default=None, alias="resultCache")
    schema_assets_filter: Reference | None = Field(default=None, alias="schemaAssetsFilter")
    schema_manager_factory: Reference | None = Field(default=None, alias="schemaManagerFactory")
    auto_commit: bool = Field(default=True, alias="autoCommit")
    url: str | None = None

    def driver_params(self) -> dict[str, Any]:
        """Driver parameters as given, without the wiring options."""

        return {"driver": self.driver, **(self.model_extra or {})}

    def raw(self) -> dict[str, Any]:
        """The full connection map as it appeared in configuration."""

        return {
            **self.driver_params(),
            "middlewares": dict(self.middlewares),
            "resultCache": self.result_cache,
            "schemaAssetsFilter": self.schema_assets_filter,
            "schemaManagerFactory": self.schema_manager_factory,
            "autoCommit": self.auto_commit,
            "url": self.url,
        }


class DbalConfig(BaseModel):
    """Shape of the whole configuration file."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    debug: DebugConfig = Field(default_factory=DebugConfig)
    connections: dict[str, ConnectionConfig] = Field(min_length=1)
    types: dict[str, Reference] = Field(default_factory=dict)
    types_mapping: dict[str, str] = Field(default_factory=dict, alias="typesMapping")

    @field_validator("connections")
    @classmethod
    def _check_connection_names(cls, value: dict[str, ConnectionConfig]) -> dict[str, ConnectionConfig]:
        for name in value:
            if not name or "." in name:
                raise ValueError(f"invalid connection name {name!r}")
        return value

    @property
    def default_connection(self) -> str | None:
        """Name of the process-wide default connection, if configured."""

        return DEFAULT_CONNECTION if DEFAULT_CONNECTION in self.connections else None

    def validated_connections(
        self,
        validator: ConnectionConfigValidator | None = None,
    ) -> dict[str, NormalizedConnectionConfig]:
        """Validate every connection, failing on the first invalid one."""

        validate = validator.validate if validator is not None else validate_connection_config
        return {name: validate(name, connection.raw()) for name, connection in self.connections.items()}


def parse_config(data: Mapping[str, Any]) -> DbalConfig:
    """Build a :class:`DbalConfig` from an in-memory mapping.

    Strings starting with ``@`` become references; ``@@`` escapes a literal.
    """

    try:
        return DbalConfig.model_validate(parse_references(data))
    except ValidationError as exc:
        errors = exc.errors()
        paths = [".".join(str(part) for part in error["loc"]) for error in errors]
        message = "; ".join(f"{path}: {error['msg']}" for path, error in zip(paths, errors))
        raise ConfigurationError(f"Invalid configuration: {message}", path=paths[0] if paths else None) from exc


def load_config(path: Path | str | None = None) -> DbalConfig:
    """Load configuration from a TOML file.

    Unlike UI preferences there is no fallback: a missing or malformed file
    aborts startup with :class:`ConfigurationError`.
    """

    config_path = resolve_config_path(path)
    try:
        with config_path.open("rb") as handle:
            raw = tomllib.load(handle)
    except FileNotFoundError as exc:
        raise ConfigurationError(f"Configuration file not found: {config_path}") from exc
    except tomllib.TOMLDecodeError as exc:
        raise ConfigurationError(f"Invalid TOML in {config_path}: {exc}") from exc
    except OSError as exc:
        raise ConfigurationError(f"Cannot read {config_path}: {exc}") from exc

    config = parse_config(raw)
    LOG.debug(
        "Loaded configuration",
        extra={"path": str(config_path), "connections": sorted(config.connections)},
    )
    return config


def resolve_config_path(path: Path | str | None = None) -> Path:
    """Explicit path first, then ``$DBWIRE_CONFIG``, then ``./dbwire.toml``."""

    if path is not None:
        return Path(path)
    env_path = os.environ.get(CONFIG_ENV)
    if env_path:
        return Path(env_path)
    return CONFIG_FILE


__all__ = [
    "CONFIG_ENV",
    "CONFIG_FILE",
    "ConnectionConfig",
    "DEFAULT_CONNECTION",
    "DbalConfig",
    "DebugConfig",
    "load_config",
    "parse_config",
    "resolve_config_path",
]
