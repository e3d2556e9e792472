"""Write the publishable schema files (and optionally a client) into a directory."""
from __future__ import annotations

import argparse
from pathlib import Path

from riptide.cli.commands.common import add_common_options, load_contract_from_args, write_generated_file
from riptide.config import Settings
from riptide.publishable import generate_publishable_client, generate_publishable_schema


def register_generate_publishable_command(subparsers: argparse._SubParsersAction, settings: Settings) -> None:
    """Register the `generate-publishable-schema` subcommand and its CLI arguments."""
    parser = subparsers.add_parser(
        "generate-publishable-schema",
        help="Generate a publishable package directory for the contract.",
    )
    add_common_options(parser, settings)
    parser.add_argument(
        "--name",
        default=None,
        help="Also generate a client with this class name.",
    )


def run_generate_publishable_command(args: argparse.Namespace) -> int:
    contract = load_contract_from_args(args)
    if args.name:
        files = generate_publishable_client(contract, class_name=args.name)
    else:
        files = generate_publishable_schema(contract)

    output_dir = Path(args.output)
    for filename, content in files.items():
        write_generated_file(output_dir / filename, content)
    return 0
