"""Command line checks for a connection configuration file."""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Any, Mapping, TextIO

from .config import load_config
from .errors import ConfigurationError
from .references import Reference
from .validation import validate_connection_config

LOG = logging.getLogger(__name__)

MASKED_KEYS = frozenset({"password"})


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="dbwire", description="Validate database connection configuration.")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="Increase log verbosity")
    commands = parser.add_subparsers(dest="command", required=True)
    check = commands.add_parser("check", help="Validate every connection in a config file")
    check.add_argument("config", nargs="?", help="Path to the TOML file (default: $DBWIRE_CONFIG or ./dbwire.toml)")
    check.add_argument("--connection", action="append", dest="connections", help="Only check this connection")
    return parser.parse_args(argv)


def format_params(params: Mapping[str, Any]) -> list[str]:
    return [f"  {key} = {_format_value(key, params[key])}" for key in sorted(params)]


def _format_value(key: object, value: Any) -> str:
    # masking applies at any depth (primary, replica.<id>)
    if isinstance(value, Reference):
        return str(value)
    if key in MASKED_KEYS:
        return "***"
    if isinstance(value, Mapping):
        items = ", ".join(f"{name!r}: {_format_value(name, item)}" for name, item in value.items())
        return f"{{{items}}}"
    return repr(value)


def check(config_path: str | None, connections: list[str] | None, *, out: TextIO) -> int:
    config = load_config(config_path)
    names = connections or list(config.connections)
    missing = [name for name in names if name not in config.connections]
    if missing:
        raise ConfigurationError(f"Unknown connection(s): {', '.join(missing)}")
    validated = {name: validate_connection_config(name, config.connections[name].raw()) for name in names}
    for name, params in validated.items():
        marker = " (default)" if name == config.default_connection else ""
        print(f"[{name}]{marker}", file=out)
        for line in format_params(params):
            print(line, file=out)
    LOG.debug("Configuration valid", extra={"connections": names})
    return 0


def main(argv: list[str] | None = None) -> int:
    args = parse_args(sys.argv[1:] if argv is None else argv)
    level = logging.WARNING - 10 * min(args.verbose, 2)
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")
    try:
        return check(args.config, args.connections, out=sys.stdout)
    except ConfigurationError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
