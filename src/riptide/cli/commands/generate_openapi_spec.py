"""Render a contract as an OpenAPI 3.0 document (YAML or JSON by output extension)."""
from __future__ import annotations

import argparse

from riptide.cli.commands.common import add_common_options, load_contract_from_args, write_generated_file
from riptide.config import Settings
from riptide.documents import dump_json, dump_yaml, is_yaml_path
from riptide.openapi import to_openapi


def register_generate_openapi_spec_command(subparsers: argparse._SubParsersAction, settings: Settings) -> None:
    """Register the `generate-openapi-spec` subcommand and its CLI arguments."""
    parser = subparsers.add_parser(
        "generate-openapi-spec",
        help="Generate an OpenAPI 3.0 document using the specified contract and options.",
    )
    add_common_options(parser, settings)
    parser.add_argument("--api-title", dest="api_title", required=True, help="The API title.")
    parser.add_argument(
        "--api-version",
        dest="api_version",
        default=settings.api_version,
        help="The current version of this API (default: %(default)s).",
    )


def run_generate_openapi_spec_command(args: argparse.Namespace) -> int:
    contract = load_contract_from_args(args)
    document = to_openapi(contract, info={"title": args.api_title, "version": args.api_version})

    if is_yaml_path(args.output):
        output = dump_yaml(document)
    else:
        output = dump_json(document, indent=2 if args.format else None)

    write_generated_file(args.output, output)
    return 0
