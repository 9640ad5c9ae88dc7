"""Middleware registry and query-recording debug middleware."""

from __future__ import annotations

import time
import traceback
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Mapping, Sequence

from .connections import Driver, DriverConnection, Middleware


@dataclass(frozen=True, slots=True)
class MiddlewareEntry:
    """Middleware registered for a connection."""

    connection: str
    name: str
    middleware: Middleware
    internal: bool = False


class MiddlewareRegistry:
    """Collects middlewares per connection name."""

    def __init__(self) -> None:
        self._entries: dict[str, dict[str, MiddlewareEntry]] = {}

    def register(
        self,
        connection: str,
        name: str,
        middleware: Middleware,
        *,
        internal: bool = False,
    ) -> MiddlewareEntry:
        """Register a middleware; names are unique per connection."""

        if not callable(getattr(middleware, "wrap", None)):
            raise ValueError(f"Middleware '{name}' for connection '{connection}' has no wrap() method")
        entries = self._entries.setdefault(connection, {})
        if name in entries:
            raise ValueError(f"Middleware '{name}' is already registered for connection '{connection}'")
        entry = MiddlewareEntry(connection=connection, name=name, middleware=middleware, internal=internal)
        entries[name] = entry
        return entry

    def register_many(self, connection: str, middlewares: Mapping[str, Middleware]) -> None:
        for name, middleware in middlewares.items():
            self.register(connection, name, middleware)

    def entries(self, connection: str) -> list[MiddlewareEntry]:
        """Internal middlewares first, then the rest in registration order."""

        entries = list(self._entries.get(connection, {}).values())
        return [entry for entry in entries if entry.internal] + [
            entry for entry in entries if not entry.internal
        ]

    def for_connection(self, connection: str) -> list[Middleware]:
        return [entry.middleware for entry in self.entries(connection)]

    def connections(self) -> list[str]:
        return list(self._entries)


@dataclass(frozen=True, slots=True)
class QueryRecord:
    """One statement observed by the debug middleware."""

    connection: str
    sql: str
    params: tuple[object, ...]
    duration_ms: float
    source: str | None = None
    failed: bool = False


class DebugStack:
    """Keeps the statements executed through :class:`DebugMiddleware`."""

    def __init__(self, source_paths: Iterable[str | Path] = ()) -> None:
        self._source_paths = tuple(str(Path(path).absolute()) for path in source_paths)
        self._queries: list[QueryRecord] = []

    @property
    def source_paths(self) -> tuple[str, ...]:
        return self._source_paths

    @property
    def queries(self) -> tuple[QueryRecord, ...]:
        return tuple(self._queries)

    @property
    def total_time_ms(self) -> float:
        return sum(query.duration_ms for query in self._queries)

    def record(
        self,
        connection: str,
        sql: str,
        params: Sequence[object] | None,
        duration_ms: float,
        *,
        failed: bool = False,
    ) -> QueryRecord:
        entry = QueryRecord(
            connection=connection,
            sql=sql,
            params=tuple(params or ()),
            duration_ms=duration_ms,
            source=self._find_source(),
            failed=failed,
        )
        self._queries.append(entry)
        return entry

    def reset(self) -> None:
        self._queries.clear()

    def _find_source(self) -> str | None:
        if not self._source_paths:
            return None
        # innermost frame first
        roots = [Path(source) for source in self._source_paths]
        for frame in reversed(traceback.extract_stack()):
            filename = Path(frame.filename)
            if any(filename.is_relative_to(root) for root in roots):
                return f"{frame.filename}:{frame.lineno}"
        return None


class DebugMiddleware:
    """Records every statement of the wrapped driver into a :class:`DebugStack`."""

    def __init__(self, stack: DebugStack, connection_name: str) -> None:
        self._stack = stack
        self._connection_name = connection_name

    @property
    def stack(self) -> DebugStack:
        return self._stack

    def wrap(self, driver: Driver) -> Driver:
        return _DebugDriver(driver, self._stack, self._connection_name)


class _DebugDriver:
    def __init__(self, driver: Driver, stack: DebugStack, connection_name: str) -> None:
        self._driver = driver
        self._stack = stack
        self._connection_name = connection_name

    def connect(self, params: Mapping[str, Any]) -> DriverConnection:
        return _DebugConnection(self._driver.connect(params), self._stack, self._connection_name)


class _DebugConnection:
    def __init__(self, connection: DriverConnection, stack: DebugStack, connection_name: str) -> None:
        self._connection = connection
        self._stack = stack
        self._connection_name = connection_name

    def query(self, sql: str, params: Sequence[object] | None = None) -> Any:
        return self._timed(self._connection.query, sql, params)

    def execute(self, sql: str, params: Sequence[object] | None = None) -> Any:
        return self._timed(self._connection.execute, sql, params)

    def close(self) -> None:
        self._connection.close()

    def _timed(self, call: Any, sql: str, params: Sequence[object] | None) -> Any:
        started = time.perf_counter()
        failed = True
        try:
            result = call(sql, params)
            failed = False
            return result
        finally:
            elapsed_ms = (time.perf_counter() - started) * 1000
            self._stack.record(self._connection_name, sql, params, elapsed_ms, failed=failed)


__all__ = [
    "DebugMiddleware",
    "DebugStack",
    "MiddlewareEntry",
    "MiddlewareRegistry",
    "QueryRecord",
]
