"""Fetch a contract from a running service via its introspection route."""
from __future__ import annotations

import argparse

from riptide.cli.commands.common import write_generated_file
from riptide.config import Settings
from riptide.documents import dump_json
from riptide.introspection import fetch_remote_schema


def register_fetch_remote_schema_command(subparsers: argparse._SubParsersAction, settings: Settings) -> None:
    """Register the `fetch-remote-schema` subcommand and its CLI arguments."""
    parser = subparsers.add_parser(
        "fetch-remote-schema",
        help="Fetch a contract from a remote service via introspection.",
    )
    parser.add_argument("--from", dest="url", required=True, help="The url of the remote schema.")
    parser.add_argument("--output", required=True, help="A filepath for the fetched schema.")
    parser.add_argument(
        "--timeout",
        type=float,
        default=settings.http_timeout,
        help="Request timeout in seconds (default: %(default)s).",
    )


def run_fetch_remote_schema_command(args: argparse.Namespace) -> int:
    result = fetch_remote_schema(args.url, timeout=args.timeout)
    # serviceVersion first, so it stays visible at the top of the file.
    document = {"serviceVersion": result.service_version, "schema": result.contract_document}
    write_generated_file(args.output, dump_json(document))
    return 0
