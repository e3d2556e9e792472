"""Options and helpers shared by the generator subcommands."""
from __future__ import annotations

import argparse
import logging
import os
import tempfile
from pathlib import Path

from riptide.assumptions import parse_assumptions
from riptide.config import Settings
from riptide.contract import Contract
from riptide.meta_schema import load_contract_from_file

logger = logging.getLogger(__name__)


def add_common_options(parser: argparse.ArgumentParser, settings: Settings) -> None:
    """Register --schema, --output, --assumptions and --format on a subcommand."""
    parser.add_argument("--schema", required=True, help="The filepath of the contract (YAML or JSON).")
    parser.add_argument("--output", required=True, help="A filepath for the generated output.")
    parser.add_argument(
        "--assumptions",
        default=settings.assumptions,
        help="Assumptions to apply: all, none, or a comma-separated list (default: %(default)s).",
    )
    parser.add_argument(
        "--format",
        action=argparse.BooleanOptionalAction,
        default=settings.format_output,
        help="Whether to format the generated output.",
    )


def load_contract_from_args(args: argparse.Namespace) -> Contract:
    return load_contract_from_file(args.schema, parse_assumptions(args.assumptions))


def write_generated_file(path: str | Path, content: str) -> Path:
    """
    Write `content` to `path`, creating parent directories.

    The content lands in a temporary file first and replaces the target in
    one step, so a failure never leaves a partial output behind.
    """
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)

    fd, temp_name = tempfile.mkstemp(prefix=f".{target.name}.", dir=target.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(content)
        os.replace(temp_name, target)
    except BaseException:
        Path(temp_name).unlink(missing_ok=True)
        raise

    logger.info("wrote %s", target)
    return target
