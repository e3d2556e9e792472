"""Files for publishing a contract (and optionally its client) as a package."""
from __future__ import annotations

import json
import logging

from riptide.client_gen import generate_client
from riptide.contract import Contract
from riptide.documents import dump_json, dump_yaml

logger = logging.getLogger(__name__)


def generate_publishable_schema(contract: Contract) -> dict[str, str]:
    """
    Return filename -> content for the publishable schema.

    `package.json` is only produced when the contract carries
    `Meta.PackageJSON`.
    """
    document = contract.to_document()
    files = {
        "schema.json": dump_json(document),
        "schema.yaml": dump_yaml(document),
    }

    package_json = (contract.meta or {}).get("PackageJSON")
    if package_json:
        files["package.json"] = dump_json(package_json)

    return files


def generate_publishable_client(contract: Contract, *, class_name: str = "Client") -> dict[str, str]:
    """The publishable schema plus `client.py` and an `__init__.py` exporting the client class."""
    files = generate_publishable_schema(contract)
    files["client.py"] = generate_client(contract, class_name=class_name)
    files["__init__.py"] = f'from .client import {class_name}\n\n__all__ = ["{class_name}"]\n'

    if "package.json" in files:
        files["package.json"] = dump_json({**json.loads(files["package.json"]), "main": "client.py"})

    logger.debug("generated %d publishable file(s)", len(files))
    return files
