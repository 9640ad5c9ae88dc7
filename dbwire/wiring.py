"""Wires validated connection configuration into connection objects."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Iterable, Iterator, Mapping

from .config import DEFAULT_CONNECTION, ConnectionConfig, DbalConfig, DebugConfig
from .connections import Configuration, Connection, ConnectionFactory, Driver, Middleware
from .errors import ConfigurationError
from .middleware import DebugMiddleware, DebugStack, MiddlewareEntry, MiddlewareRegistry
from .references import ServiceResolver
from .validation import ConnectionConfigValidator, NormalizedConnectionConfig, connection_path

LOG = logging.getLogger(__name__)

DEBUG_MIDDLEWARE = "internal.debug"

PanelRegistrar = Callable[[DebugStack, Connection, str], None]


@dataclass(frozen=True, slots=True)
class PanelEntry:
    """Debug panel attached to one connection."""

    connection_name: str
    stack: DebugStack
    connection: Connection


class DebugPanelRegistry:
    """Panel registrar used when none is given: remembers which stack belongs to which connection."""

    def __init__(self) -> None:
        self._panels: dict[str, PanelEntry] = {}

    def __call__(self, stack: DebugStack, connection: Connection, connection_name: str) -> None:
        self.initialize(stack, connection, connection_name)

    def initialize(self, stack: DebugStack, connection: Connection, connection_name: str) -> PanelEntry:
        entry = PanelEntry(connection_name=connection_name, stack=stack, connection=connection)
        self._panels[connection_name] = entry
        return entry

    def get(self, connection_name: str) -> PanelEntry:
        return self._panels[connection_name]

    def panels(self) -> list[PanelEntry]:
        return list(self._panels.values())


@dataclass(frozen=True, slots=True)
class ConnectionServices:
    """Everything produced while wiring one named connection."""

    name: str
    params: NormalizedConnectionConfig
    configuration: Configuration
    middlewares: tuple[MiddlewareEntry, ...]
    connection: Connection
    debug_stack: DebugStack | None = None
    autowired: bool = False


class ConnectionRegistry:
    """Wired connections by name; at most one of them is the default."""

    def __init__(self, services: Iterable[ConnectionServices]) -> None:
        self._services: dict[str, ConnectionServices] = {}
        for entry in services:
            if entry.name in self._services:
                raise ValueError(f"Connection '{entry.name}' is wired twice")
            self._services[entry.name] = entry
        defaults = [entry.name for entry in self._services.values() if entry.autowired]
        if len(defaults) > 1:
            raise ValueError(f"Only one default connection allowed, found: {', '.join(defaults)}")
        self._default = defaults[0] if defaults else None

    def __contains__(self, name: object) -> bool:
        return name in self._services

    def __iter__(self) -> Iterator[ConnectionServices]:
        return iter(self._services.values())

    def __len__(self) -> int:
        return len(self._services)

    def names(self) -> tuple[str, ...]:
        return tuple(self._services)

    def services(self, name: str) -> ConnectionServices:
        try:
            return self._services[name]
        except KeyError:
            raise KeyError(f"Connection '{name}' is not configured") from None

    def get(self, name: str) -> Connection:
        return self.services(name).connection

    @property
    def default(self) -> Connection | None:
        """The process-wide default connection (named ``default``), if any."""

        if self._default is None:
            return None
        return self._services[self._default].connection


class WiringEmitter:
    """Builds the configuration, middleware chain and connection for each entry.

    Everything the emitter needs is passed in explicitly: referenced services
    come from ``resolver`` and base drivers from ``connection_factory``.
    """

    def __init__(
        self,
        *,
        debug: DebugConfig | None = None,
        resolver: ServiceResolver | None = None,
        connection_factory: ConnectionFactory | None = None,
        panel_registrar: PanelRegistrar | None = None,
        validator: ConnectionConfigValidator | None = None,
        middleware_registry: MiddlewareRegistry | None = None,
    ) -> None:
        self._debug = debug or DebugConfig()
        self._resolver = resolver or ServiceResolver()
        self._factory = connection_factory or ConnectionFactory()
        self._panel_registrar: PanelRegistrar = panel_registrar or DebugPanelRegistry()
        self._validator = validator or ConnectionConfigValidator()
        self._middlewares = middleware_registry or MiddlewareRegistry()
        self._wired: set[str] = set()

    @classmethod
    def from_config(
        cls,
        config: DbalConfig,
        *,
        services: Mapping[str, object] | None = None,
        drivers: Mapping[str, Driver] | None = None,
        panel_registrar: PanelRegistrar | None = None,
    ) -> WiringEmitter:
        """Emitter for a loaded configuration, with custom types resolved up front."""

        resolver = ServiceResolver(services)
        types = {
            name: resolver.resolve(reference, path=f"types.{name}")
            for name, reference in config.types.items()
        }
        factory = ConnectionFactory(drivers, types=types, types_mapping=config.types_mapping)
        return cls(
            debug=config.debug,
            resolver=resolver,
            connection_factory=factory,
            panel_registrar=panel_registrar,
        )

    @property
    def middleware_registry(self) -> MiddlewareRegistry:
        return self._middlewares

    @property
    def panel_registrar(self) -> PanelRegistrar:
        """Receives every debug stack; a :class:`DebugPanelRegistry` unless one was given."""

        return self._panel_registrar

    def emit(
        self,
        name: str,
        connection_config: ConnectionConfig,
        *,
        extra_middlewares: Mapping[str, Middleware] | None = None,
    ) -> ConnectionServices:
        """Wire one named connection."""

        if name in self._wired:
            raise ConfigurationError(f"Connection '{name}' is already wired", path=connection_path(name))
        params = self._validator.validate(name, connection_config.raw())

        configuration = Configuration(auto_commit=connection_config.auto_commit)
        if connection_config.schema_assets_filter is not None:
            assets_filter = self._resolver.resolve(
                connection_config.schema_assets_filter,
                path=connection_path(name, "schemaAssetsFilter"),
            )
            if not callable(assets_filter):
                raise ConfigurationError(
                    f"{connection_path(name, 'schemaAssetsFilter')}: service is not callable",
                    path=connection_path(name, "schemaAssetsFilter"),
                )
            configuration.schema_assets_filter = assets_filter
        if connection_config.schema_manager_factory is not None:
            configuration.schema_manager_factory = self._resolver.resolve(
                connection_config.schema_manager_factory,
                path=connection_path(name, "schemaManagerFactory"),
            )

        # staged locally; the shared registry only sees fully wired connections
        pending = MiddlewareRegistry()
        for entry in self._middlewares.entries(name):
            pending.register(name, entry.name, entry.middleware, internal=entry.internal)
        for middleware_name, reference in connection_config.middlewares.items():
            path = connection_path(name, "middlewares", middleware_name)
            middleware = self._resolver.resolve(reference, path=path)
            self._register_middleware(pending, name, middleware_name, middleware, path)
        for middleware_name, middleware in (extra_middlewares or {}).items():
            path = connection_path(name, "middlewares", middleware_name)
            self._register_middleware(pending, name, middleware_name, middleware, path)

        debug_stack: DebugStack | None = None
        if self._debug.panel:
            debug_stack = DebugStack(self._debug.source_paths)
            self._register_middleware(
                pending,
                name,
                DEBUG_MIDDLEWARE,
                DebugMiddleware(debug_stack, name),
                connection_path(name, "middlewares", DEBUG_MIDDLEWARE),
                internal=True,
            )

        if connection_config.result_cache is not None:
            configuration.result_cache = self._resolver.resolve(
                connection_config.result_cache,
                path=connection_path(name, "resultCache"),
            )
        configuration.set_middlewares(pending.for_connection(name))

        factory_params = self._resolver.resolve_all(dict(params), path=connection_path(name))
        if connection_config.url:
            factory_params["url"] = connection_config.url
        connection = self._factory.create_connection(factory_params, configuration, name=name)

        if debug_stack is not None:
            self._panel_registrar(debug_stack, connection, name)

        registered = {entry.name for entry in self._middlewares.entries(name)}
        for entry in pending.entries(name):
            if entry.name not in registered:
                self._middlewares.register(name, entry.name, entry.middleware, internal=entry.internal)
        self._wired.add(name)
        middlewares = tuple(self._middlewares.entries(name))
        LOG.info(
            "Wired connection",
            extra={
                "connection": name,
                "driver": params["driver"],
                "middlewares": [entry.name for entry in middlewares],
            },
        )
        return ConnectionServices(
            name=name,
            params=params,
            configuration=configuration,
            middlewares=middlewares,
            connection=connection,
            debug_stack=debug_stack,
            autowired=name == DEFAULT_CONNECTION,
        )

    def emit_all(
        self,
        config: DbalConfig,
        *,
        extra_middlewares: Mapping[str, Mapping[str, Middleware]] | None = None,
    ) -> ConnectionRegistry:
        """Wire every configured connection, aborting on the first failure."""

        if self._debug.panel:
            LOG.warning("Debug panel enabled; every statement will be recorded in memory")
        if config.default_connection is None:
            LOG.warning(
                "No connection named 'default'; no connection will be autowired",
                extra={"connections": sorted(config.connections)},
            )
        extras = extra_middlewares or {}
        return ConnectionRegistry(
            self.emit(name, connection_config, extra_middlewares=extras.get(name))
            for name, connection_config in config.connections.items()
        )

    @staticmethod
    def _register_middleware(
        registry: MiddlewareRegistry,
        connection: str,
        name: str,
        middleware: object,
        path: str,
        *,
        internal: bool = False,
    ) -> None:
        try:
            registry.register(connection, name, middleware, internal=internal)  # type: ignore[arg-type]
        except ValueError as exc:
            raise ConfigurationError(f"{path}: {exc}", path=path) from exc


def wire(
    config: DbalConfig,
    *,
    services: Mapping[str, object] | None = None,
    drivers: Mapping[str, Driver] | None = None,
    panel_registrar: PanelRegistrar | None = None,
    extra_middlewares: Mapping[str, Mapping[str, Middleware]] | None = None,
) -> ConnectionRegistry:
    """Wire all connections of ``config`` in one call."""

    emitter = WiringEmitter.from_config(
        config,
        services=services,
        drivers=drivers,
        panel_registrar=panel_registrar,
    )
    return emitter.emit_all(config, extra_middlewares=extra_middlewares)


__all__ = [
    "DEBUG_MIDDLEWARE",
    "ConnectionRegistry",
    "ConnectionServices",
    "DebugPanelRegistry",
    "PanelEntry",
    "PanelRegistrar",
    "WiringEmitter",
    "wire",
]
