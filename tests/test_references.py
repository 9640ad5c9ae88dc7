"""Tests for references and the service resolver."""

from __future__ import annotations

import pytest

from dbwire.errors import UnresolvedReferenceError
from dbwire.references import Reference, ServiceResolver, parse_reference, parse_references


def test_parse_reference_recognizes_prefix() -> None:
    assert parse_reference("@cache.redis") == Reference("cache.redis")
    assert parse_reference("localhost") == "localhost"
    assert parse_reference(5432) == 5432


def test_double_prefix_escapes_literal() -> None:
    assert parse_reference("@@not-a-service") == "@not-a-service"


def test_parse_references_walks_nested_values() -> None:
    data = {"connections": {"default": {"middlewares": {"audit": "@audit"}, "hosts": ["@a", "b"]}}}

    parsed = parse_references(data)

    assert parsed["connections"]["default"]["middlewares"]["audit"] == Reference("audit")
    assert parsed["connections"]["default"]["hosts"] == [Reference("a"), "b"]


def test_reference_requires_target() -> None:
    with pytest.raises(ValueError):
        Reference("")


def test_resolver_passes_literals_through() -> None:
    resolver = ServiceResolver()

    assert resolver.resolve("plain") == "plain"


def test_resolver_returns_registered_service() -> None:
    cache = object()
    resolver = ServiceResolver({"cache": cache})

    assert resolver.resolve(Reference("cache")) is cache


def test_resolver_reports_missing_service_with_path() -> None:
    resolver = ServiceResolver()

    with pytest.raises(UnresolvedReferenceError) as excinfo:
        resolver.resolve(Reference("missing"), path="connections.default.resultCache")

    assert excinfo.value.path == "connections.default.resultCache"
    assert "@missing" in str(excinfo.value)


def test_resolve_all_handles_nested_containers() -> None:
    resolver = ServiceResolver()
    resolver.provide("secret", "s3cr3t")

    resolved = resolver.resolve_all({"password": Reference("secret"), "hosts": ("a", Reference("secret"))})

    assert resolved == {"password": "s3cr3t", "hosts": ("a", "s3cr3t")}
    assert resolver.has("secret")


def test_resolve_all_reports_nested_path() -> None:
    resolver = ServiceResolver()

    with pytest.raises(UnresolvedReferenceError) as excinfo:
        resolver.resolve_all({"replica": {"r1": {"host": Reference("nope")}}}, path="connections.default")

    assert excinfo.value.path == "connections.default.replica.r1.host"
