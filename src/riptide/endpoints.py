"""Builds the composite schema describing every endpoint's Request, PathParams, and Response."""
from __future__ import annotations

import copy
from typing import Any

from riptide.contract import Contract, EndpointKey


def build_path_params_schema(endpoint_key: str) -> dict[str, Any]:
    """A closed object requiring every path parameter of the key, each a string."""
    path_params = EndpointKey.parse(endpoint_key).path_params
    return {
        "type": "object",
        "additionalProperties": False,
        "properties": {name: {"type": "string"} for name in path_params},
        "required": list(path_params),
    }


def build_endpoints_schema(contract: Contract) -> dict[str, Any]:
    """
    Return one object schema whose properties are keyed by endpoint key.

    Each entry requires `Request` (`{}` when the endpoint declares none),
    `PathParams` (always present, possibly empty) and `Response`. The
    contract's resources become `definitions`, so `#/definitions/...`
    references inside requests and responses stay valid unchanged.
    """
    endpoint_properties: dict[str, Any] = {}
    for endpoint_key, definition in contract.endpoints.items():
        endpoint_properties[endpoint_key] = {
            "type": "object",
            "additionalProperties": False,
            "required": ["Request", "PathParams", "Response"],
            "properties": {
                "Request": copy.deepcopy(definition.request) if definition.request is not None else {},
                "PathParams": build_path_params_schema(endpoint_key),
                "Response": copy.deepcopy(definition.response),
            },
        }

    return {
        "definitions": copy.deepcopy(contract.resources),
        "title": "Endpoints",
        "type": "object",
        "additionalProperties": False,
        "properties": endpoint_properties,
        "required": list(contract.endpoints),
    }
