"""Deferred references to services supplied by the caller."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from .errors import UnresolvedReferenceError

REFERENCE_PREFIX = "@"


@dataclass(frozen=True)
class Reference:
    """Names a service that is resolved just before a connection is built.

    A reference is never evaluated as code; it is looked up by name in the
    services handed to :class:`ServiceResolver`.
    """

    target: str

    def __post_init__(self) -> None:
        if not self.target:
            raise ValueError("Reference target must not be empty")

    def __str__(self) -> str:
        return f"{REFERENCE_PREFIX}{self.target}"


def parse_reference(value: object) -> object:
    """Turn ``"@name"`` strings into references; ``"@@"`` escapes a literal ``@``."""

    if not isinstance(value, str) or not value.startswith(REFERENCE_PREFIX):
        return value
    if value.startswith(REFERENCE_PREFIX * 2):
        return value[1:]
    return Reference(value[1:])


def parse_references(value: Any) -> Any:
    """Apply :func:`parse_reference` through nested mappings and lists."""

    if isinstance(value, Mapping):
        return {key: parse_references(item) for key, item in value.items()}
    if isinstance(value, list):
        return [parse_references(item) for item in value]
    return parse_reference(value)


class ServiceResolver:
    """Resolves references against an explicit set of named services."""

    def __init__(self, services: Mapping[str, object] | None = None) -> None:
        self._services: dict[str, object] = dict(services or {})

    def provide(self, name: str, service: object) -> None:
        """Make a service available under ``name``."""

        self._services[name] = service

    def has(self, name: str) -> bool:
        return name in self._services

    def resolve(self, value: object, *, path: str | None = None) -> object:
        """Return the literal unchanged or the service a reference points to."""

        if not isinstance(value, Reference):
            return value
        try:
            return self._services[value.target]
        except KeyError:
            location = f"{path}: " if path else ""
            raise UnresolvedReferenceError(
                f"{location}no service registered for reference '{value}'",
                path=path,
            ) from None

    def resolve_all(self, value: Any, *, path: str | None = None) -> Any:
        """Resolve references nested anywhere inside mappings, lists and tuples."""

        if isinstance(value, Reference):
            return self.resolve(value, path=path)
        if isinstance(value, Mapping):
            return {
                key: self.resolve_all(item, path=_join(path, key))
                for key, item in value.items()
            }
        if isinstance(value, (list, tuple)):
            return type(value)(
                self.resolve_all(item, path=_join(path, index))
                for index, item in enumerate(value)
            )
        return value


def _join(path: str | None, key: object) -> str:
    return f"{path}.{key}" if path else str(key)


__all__ = [
    "REFERENCE_PREFIX",
    "Reference",
    "ServiceResolver",
    "parse_reference",
    "parse_references",
]
