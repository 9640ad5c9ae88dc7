"""Errors raised while loading and wiring connection configuration."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Sequence


class ConfigurationError(ValueError):
    """Base error for configuration that cannot be loaded.

    Every subclass is fatal: the caller is expected to abort startup rather
    than apply a partially valid connection.
    """

    def __init__(self, message: str, *, path: str | None = None) -> None:
        super().__init__(message)
        self.path = path


class UnknownDriverError(ConfigurationError):
    """Raised when a connection names a driver with no registered schema."""

    def __init__(self, driver: object, known: Iterable[str], *, path: str | None = None) -> None:
        self.driver = driver
        self.known = tuple(known)
        location = f"{path}: " if path else ""
        expected = f"expected one of: {', '.join(self.known)}" if self.known else "no drivers are registered"
        super().__init__(f"{location}unknown driver {driver!r}, {expected}", path=path)


@dataclass(frozen=True, slots=True)
class Violation:
    """Single structural problem found in a connection configuration."""

    path: str
    reason: str

    def __str__(self) -> str:
        return f"{self.path}: {self.reason}"


class SchemaViolationError(ConfigurationError):
    """Raised when a connection contains an unknown, mistyped or missing field."""

    def __init__(self, violations: Sequence[Violation]) -> None:
        if not violations:
            raise ValueError("SchemaViolationError requires at least one violation")
        self.violations = tuple(violations)
        first = self.violations[0]
        self.reason = first.reason
        message = "; ".join(str(violation) for violation in self.violations)
        super().__init__(message, path=first.path)


class UnresolvedReferenceError(ConfigurationError):
    """Raised when a reference names a service nobody provided."""


__all__ = [
    "ConfigurationError",
    "SchemaViolationError",
    "UnknownDriverError",
    "UnresolvedReferenceError",
    "Violation",
]
