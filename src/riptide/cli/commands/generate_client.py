"""Generate a standalone client module for a contract."""
from __future__ import annotations

import argparse

from riptide.cli.commands.common import add_common_options, load_contract_from_args, write_generated_file
from riptide.client_gen import generate_client
from riptide.config import Settings


def register_generate_client_command(subparsers: argparse._SubParsersAction, settings: Settings) -> None:
    """Register the `generate-client` subcommand and its CLI arguments."""
    parser = subparsers.add_parser(
        "generate-client",
        help="Generate a client using the specified contract and options.",
    )
    add_common_options(parser, settings)
    parser.add_argument("--name", required=True, help="The name of the generated client class.")


def run_generate_client_command(args: argparse.Namespace) -> int:
    contract = load_contract_from_args(args)
    source = generate_client(contract, class_name=args.name, format_output=args.format)
    write_generated_file(args.output, source)
    return 0
