"""Named structural defaults applied uniformly to every schema node of a contract."""
from __future__ import annotations

import logging
from dataclasses import dataclass, fields, replace
from typing import Any, Callable

from riptide.contract import Contract
from riptide.json_schema import SchemaTransform, transform_schema

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SchemaAssumptions:
    """Which assumptions to apply. Both are enabled by default."""

    # `object` nodes get `additionalProperties: false` unless they say otherwise.
    close_objects_by_default: bool = True

    # `object` nodes require every property not marked `optional: true`,
    # unless they declare their own `required` list.
    require_properties_by_default: bool = True


DEFAULT_ASSUMPTIONS = SchemaAssumptions()
NO_ASSUMPTIONS = SchemaAssumptions(close_objects_by_default=False, require_properties_by_default=False)

ASSUMPTION_NAMES = tuple(assumption_field.name for assumption_field in fields(SchemaAssumptions))


def parse_assumptions(raw_value: str | None) -> SchemaAssumptions:
    """
    Parse a CLI-style selection: "all", "none", or a comma-separated list of names.

    Names may be written in snake_case or kebab-case.
    """
    if raw_value is None or raw_value.strip() == "" or raw_value.strip() == "all":
        return DEFAULT_ASSUMPTIONS
    if raw_value.strip() == "none":
        return NO_ASSUMPTIONS

    selected: dict[str, bool] = {name: False for name in ASSUMPTION_NAMES}
    for part in raw_value.split(","):
        name = part.strip().replace("-", "_")
        if not name:
            continue
        if name not in selected:
            raise ValueError(
                f"Unknown assumption: {part.strip()}. Expected all, none, or any of: {', '.join(ASSUMPTION_NAMES)}."
            )
        selected[name] = True
    return SchemaAssumptions(**selected)


# ============================================================
# Transforms
# ============================================================

def close_object(schema: dict[str, Any]) -> dict[str, Any]:
    """Default `additionalProperties` to false on object nodes."""
    if schema.get("type") == "object":
        return {"additionalProperties": False, **schema}
    return schema


def require_properties(schema: dict[str, Any]) -> dict[str, Any]:
    """Default `required` to every non-optional property on object nodes."""
    properties = schema.get("properties")
    if schema.get("type") == "object" and isinstance(properties, dict) and properties:
        required = [
            property_name
            for property_name, property_schema in properties.items()
            if not (isinstance(property_schema, dict) and property_schema.get("optional"))
        ]
        return {"required": required, **schema}
    return schema


def strip_optional_markers(schema: dict[str, Any]) -> dict[str, Any]:
    """Drop the non-standard `optional` marker from every property schema."""
    properties = schema.get("properties")
    if not isinstance(properties, dict):
        return schema
    return {
        **schema,
        "properties": {
            property_name: (
                {key: value for key, value in property_schema.items() if key != "optional"}
                if isinstance(property_schema, dict)
                else property_schema
            )
            for property_name, property_schema in properties.items()
        },
    }


def _apply_to_contract(contract: Contract, transform: SchemaTransform) -> Contract:
    """Run one full transform pass over every resource, request, and response."""
    return map_contract_schemas(contract, lambda node: transform_schema(node, transform))


def map_contract_schemas(contract: Contract, mapper: Callable[[dict[str, Any]], dict[str, Any]]) -> Contract:
    """Return a new contract with `mapper` applied to each top-level schema node."""
    return replace(
        contract,
        resources={name: mapper(schema) for name, schema in contract.resources.items()},
        endpoints={
            endpoint_key: replace(
                definition,
                request=mapper(definition.request) if isinstance(definition.request, dict) else definition.request,
                response=mapper(definition.response) if isinstance(definition.response, dict) else definition.response,
            )
            for endpoint_key, definition in contract.endpoints.items()
        },
    )


def apply_assumptions(contract: Contract, assumptions: SchemaAssumptions = DEFAULT_ASSUMPTIONS) -> Contract:
    """
    Return a new contract with the selected assumptions applied.

    Passes run in a fixed order (close objects, then require properties, then
    strip `optional` markers), each completing over the whole contract before
    the next starts. The input contract is never modified.
    """
    result = contract.copy()

    if assumptions.close_objects_by_default:
        logger.debug("applying close_objects_by_default")
        result = _apply_to_contract(result, close_object)

    if assumptions.require_properties_by_default:
        logger.debug("applying require_properties_by_default")
        result = _apply_to_contract(result, require_properties)
        result = _apply_to_contract(result, strip_optional_markers)

    return result
