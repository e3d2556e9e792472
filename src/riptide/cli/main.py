#!/usr/bin/env python3
from __future__ import annotations

import argparse
import logging
import sys

from pydantic import ValidationError

from riptide.cli.commands.fetch_remote_schema import (
    register_fetch_remote_schema_command,
    run_fetch_remote_schema_command,
)
from riptide.cli.commands.generate_api_types import (
    register_generate_api_types_command,
    run_generate_api_types_command,
)
from riptide.cli.commands.generate_client import register_generate_client_command, run_generate_client_command
from riptide.cli.commands.generate_openapi_spec import (
    register_generate_openapi_spec_command,
    run_generate_openapi_spec_command,
)
from riptide.cli.commands.generate_publishable import (
    register_generate_publishable_command,
    run_generate_publishable_command,
)
from riptide.config import Settings
from riptide.errors import RiptideError

COMMANDS = {
    "generate-api-types": run_generate_api_types_command,
    "generate-client": run_generate_client_command,
    "generate-openapi-spec": run_generate_openapi_spec_command,
    "fetch-remote-schema": run_fetch_remote_schema_command,
    "generate-publishable-schema": run_generate_publishable_command,
}


def build_parser(settings: Settings) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="riptide", description="Generate types, clients and docs from an API contract.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log progress to stderr.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    register_generate_api_types_command(subparsers, settings)
    register_generate_client_command(subparsers, settings)
    register_generate_openapi_spec_command(subparsers, settings)
    register_fetch_remote_schema_command(subparsers, settings)
    register_generate_publishable_command(subparsers, settings)

    return parser


def configure_logging(verbose: bool, settings: Settings) -> None:
    level = logging.DEBUG if verbose else getattr(logging, settings.log_level.upper(), logging.WARNING)
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s", stream=sys.stderr)


def main(argv: list[str] | None = None) -> int:
    try:
        settings = Settings()
    except ValidationError as exc:
        print(f"riptide: invalid configuration: {exc}", file=sys.stderr)
        return 1

    parser = build_parser(settings)
    args = parser.parse_args(argv)
    configure_logging(args.verbose, settings)

    run_command = COMMANDS.get(args.command)
    if run_command is None:
        parser.print_help()
        return 1

    try:
        return run_command(args)
    except (RiptideError, OSError, ValueError) as exc:
        print(f"riptide: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
