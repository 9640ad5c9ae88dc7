"""Validation and wiring of named database connections."""

from __future__ import annotations

__version__ = "0.1.0"

from .config import ConnectionConfig, DbalConfig, DebugConfig, load_config, parse_config
from .connections import Configuration, Connection, ConnectionFactory, parse_database_url
from .drivers import DRIVER_SCHEMAS, DriverSchema, schema_for, supported_drivers
from .errors import (
    ConfigurationError,
    SchemaViolationError,
    UnknownDriverError,
    UnresolvedReferenceError,
    Violation,
)
from .middleware import DebugMiddleware, DebugStack, MiddlewareRegistry
from .references import Reference, ServiceResolver
from .validation import ConnectionConfigValidator, validate_connection_config
from .wiring import ConnectionRegistry, ConnectionServices, DebugPanelRegistry, WiringEmitter, wire

__all__ = [
    "DRIVER_SCHEMAS",
    "Configuration",
    "ConfigurationError",
    "Connection",
    "ConnectionConfig",
    "ConnectionConfigValidator",
    "ConnectionFactory",
    "ConnectionRegistry",
    "ConnectionServices",
    "DbalConfig",
    "DebugConfig",
    "DebugMiddleware",
    "DebugPanelRegistry",
    "DebugStack",
    "DriverSchema",
    "MiddlewareRegistry",
    "Reference",
    "SchemaViolationError",
    "ServiceResolver",
    "UnknownDriverError",
    "UnresolvedReferenceError",
    "Violation",
    "WiringEmitter",
    "__version__",
    "load_config",
    "parse_config",
    "parse_database_url",
    "schema_for",
    "supported_drivers",
    "validate_connection_config",
    "wire",
]
