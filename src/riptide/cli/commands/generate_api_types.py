"""Generate a Python module of TypedDicts describing a contract's endpoints."""
from __future__ import annotations

import argparse

from riptide.api_types import generate_api_types
from riptide.cli.commands.common import add_common_options, load_contract_from_args, write_generated_file
from riptide.config import Settings


def register_generate_api_types_command(subparsers: argparse._SubParsersAction, settings: Settings) -> None:
    """Register the `generate-api-types` subcommand and its CLI arguments."""
    parser = subparsers.add_parser(
        "generate-api-types",
        help="Generate API types using the specified contract and options.",
    )
    add_common_options(parser, settings)


def run_generate_api_types_command(args: argparse.Namespace) -> int:
    contract = load_contract_from_args(args)
    write_generated_file(args.output, generate_api_types(contract, format_output=args.format))
    return 0
