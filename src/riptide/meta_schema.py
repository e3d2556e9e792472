"""Contract validation (meta-shape + semantic rules) and contract loading."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import jsonschema

from riptide.assumptions import DEFAULT_ASSUMPTIONS, SchemaAssumptions, apply_assumptions
from riptide.contract import Contract, EndpointKey
from riptide.documents import load_document
from riptide.errors import (
    DuplicateEndpointNameError,
    MetaShapeError,
    NonObjectRequestError,
    ParameterCollisionError,
)
from riptide.references import resolve_references

logger = logging.getLogger(__name__)

ENDPOINT_NAME_PATTERN = "^[a-zA-Z0-9]+$"

CONTRACT_META_SCHEMA: dict[str, Any] = {
    "type": "object",
    "additionalProperties": False,
    "required": ["Endpoints"],
    "properties": {
        "Resources": {
            "type": "object",
            # Each resource is itself a JSON Schema.
            "additionalProperties": {"type": "object"},
        },
        "Endpoints": {
            "type": "object",
            "additionalProperties": {
                "type": "object",
                "additionalProperties": False,
                "required": ["Name", "Response"],
                "properties": {
                    "Name": {"type": "string", "pattern": ENDPOINT_NAME_PATTERN},
                    "Description": {"type": "string"},
                    "Request": {"type": "object"},
                    "Response": {"type": "object"},
                },
            },
        },
        "Meta": {"type": "object"},
    },
}


# ============================================================
# Validation
# ============================================================

def validate_document(document: Any) -> None:
    """Check a raw contract document against the structural meta-schema."""
    try:
        jsonschema.validate(document, CONTRACT_META_SCHEMA)
    except jsonschema.ValidationError as exc:
        pointer = "/".join(str(part) for part in exc.absolute_path)
        location = pointer or "<root>"
        endpoint = None
        if len(exc.absolute_path) >= 2 and exc.absolute_path[0] == "Endpoints":
            endpoint = str(exc.absolute_path[1])
        raise MetaShapeError(
            f"Detected invalid schema at {location}: {exc.message}",
            endpoint=endpoint,
        ) from exc


def _check_endpoint_keys(contract: Contract) -> None:
    for endpoint_key in contract.endpoints:
        EndpointKey.parse(endpoint_key)


def _resolved_request(contract: Contract, endpoint_key: str) -> dict[str, Any] | None:
    request = contract.endpoints[endpoint_key].request
    if not isinstance(request, dict):
        return None
    return resolve_references(request, contract.resources)


def _check_request_shapes(contract: Contract) -> None:
    """Requests must be objects: they become query parameters or a parsed body."""
    for endpoint_key in contract.endpoints:
        resolved = _resolved_request(contract, endpoint_key)
        if resolved is None:
            continue
        if "type" in resolved and resolved["type"] != "object":
            raise NonObjectRequestError(
                f"Detected a non-object Request schema for {endpoint_key}. Request schemas must be objects.",
                endpoint=endpoint_key,
            )


def _check_parameter_collisions(contract: Contract) -> None:
    for endpoint_key in contract.endpoints:
        resolved = _resolved_request(contract, endpoint_key)
        properties = resolved.get("properties") if resolved is not None else None
        if not isinstance(properties, dict):
            continue
        for parameter_name in EndpointKey.parse(endpoint_key).path_params:
            if parameter_name in properties:
                raise ParameterCollisionError(
                    f"The {parameter_name} parameter was declared as a path parameter and a Request property "
                    f"for {endpoint_key}. Rename either the path parameter or the request property to avoid "
                    "a collision.",
                    endpoint=endpoint_key,
                    parameter=parameter_name,
                )


def _check_duplicate_names(contract: Contract) -> None:
    endpoint_key_by_name: dict[str, str] = {}
    for endpoint_key, definition in contract.endpoints.items():
        existing_key = endpoint_key_by_name.get(definition.name)
        if existing_key is not None:
            raise DuplicateEndpointNameError(
                f"Endpoint name collision: {definition.name} is used by both {existing_key} and {endpoint_key}. "
                "Endpoint names must be unique.",
                endpoint=endpoint_key,
            )
        endpoint_key_by_name[definition.name] = endpoint_key


def validate_contract(contract: Contract) -> None:
    """
    Validate a contract, raising on the first failed rule.

    Order: meta shape (including endpoint key methods), request shapes,
    path/request collisions, duplicate endpoint names.
    """
    validate_document(contract.to_document())
    _check_endpoint_keys(contract)
    _check_request_shapes(contract)
    _check_parameter_collisions(contract)
    _check_duplicate_names(contract)


# ============================================================
# Loading
# ============================================================

def load_contract(document: Any) -> Contract:
    """Validate a raw contract document and build a Contract from it."""
    validate_document(document)
    contract = Contract.from_document(document)
    validate_contract(contract)
    return contract


def is_introspection_response(document: Any) -> bool:
    """Introspection responses wrap the contract under a `schema` key."""
    return isinstance(document, dict) and "schema" in document


def load_contract_from_file(
    path: str | Path,
    assumptions: SchemaAssumptions = DEFAULT_ASSUMPTIONS,
) -> Contract:
    """
    Load a contract from a YAML/JSON file and apply `assumptions`.

    Introspection documents are unwrapped and returned without assumptions:
    the serving side already normalized them.
    """
    document = load_document(path)

    if is_introspection_response(document):
        logger.info("loaded introspection document from %s (serviceVersion=%s)", path, document.get("serviceVersion"))
        return load_contract(document["schema"])

    contract = load_contract(document)
    logger.debug("loaded %d endpoint(s) from %s", len(contract.endpoints), path)
    return apply_assumptions(contract, assumptions)
