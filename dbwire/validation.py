"""Validation and normalization of one named connection's parameters."""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Any, Iterable, Mapping

from pydantic import ValidationError

from .drivers import DriverSchema, schema_for
from .errors import SchemaViolationError, Violation

LOG = logging.getLogger(__name__)

ORCHESTRATION_KEYS: frozenset[str] = frozenset(
    {
        "middlewares",
        "resultCache",
        "schemaAssetsFilter",
        "schemaManagerFactory",
        "autoCommit",
        "url",
    }
)

NormalizedConnectionConfig = Mapping[str, Any]


def connection_path(connection_name: str, *parts: object) -> str:
    """Dotted path identifying a field of a named connection."""

    return ".".join(("connections", connection_name, *(str(part) for part in parts)))


class ConnectionConfigValidator:
    """Turns a raw connection map into the parameters its driver accepts."""

    def __init__(self, *, orchestration_keys: Iterable[str] = ORCHESTRATION_KEYS) -> None:
        self._orchestration_keys = frozenset(orchestration_keys)

    def validate(self, connection_name: str, raw_config: Mapping[str, Any]) -> NormalizedConnectionConfig:
        """Validate ``raw_config`` and return a read-only normalized map.

        Orchestration-only keys and ``None`` values are dropped before the
        driver schema sees the map; absence lets the driver apply its own
        default.

        Raises:
            UnknownDriverError: If ``driver`` names an unregistered driver.
            SchemaViolationError: If ``driver`` is missing, or a field is
                undeclared, mistyped or out of range.
        """

        config = {
            key: value
            for key, value in raw_config.items()
            if key not in self._orchestration_keys and value is not None
        }
        if "driver" not in config:
            raise SchemaViolationError(
                [Violation(connection_path(connection_name, "driver"), "missing required field")]
            )
        schema = schema_for(config["driver"], path=connection_path(connection_name, "driver"))
        LOG.debug(
            "Validating connection configuration",
            extra={"connection": connection_name, "driver": schema.driver_name},
        )
        try:
            model = schema.model_validate(config)
        except ValidationError as exc:
            violations = [_to_violation(connection_name, schema, error) for error in exc.errors()]
            raise SchemaViolationError(violations) from exc
        return MappingProxyType(model.to_params())


def _to_violation(connection_name: str, schema: type[DriverSchema], error: Mapping[str, Any]) -> Violation:
    loc = list(error["loc"])
    reason = error["msg"]
    if loc and loc[-1] == "[key]":
        loc.pop()
        reason = f"invalid key: {reason}"
    if error["type"] == "extra_forbidden":
        reason = f"unknown field for driver '{schema.driver_name}'"
    elif error["type"] == "missing":
        reason = "missing required field"
    # an empty key would otherwise leave a trailing dot
    parts = [repr(part) if part == "" else part for part in loc]
    return Violation(connection_path(connection_name, *parts), reason)


_default_validator = ConnectionConfigValidator()


def validate_connection_config(connection_name: str, raw_config: Mapping[str, Any]) -> NormalizedConnectionConfig:
    """Validate with the shared default validator."""

    return _default_validator.validate(connection_name, raw_config)


__all__ = [
    "ConnectionConfigValidator",
    "NormalizedConnectionConfig",
    "ORCHESTRATION_KEYS",
    "connection_path",
    "validate_connection_config",
]
