"""Conversion between contracts and OpenAPI 3.0 documents."""
from __future__ import annotations

import copy
import json
import logging
from typing import Any, Mapping

from riptide.contract import Contract, EndpointDefinition, EndpointKey, HttpMethod
from riptide.errors import (
    MissingOperationIdError,
    NoJSONRequestBodyError,
    NoJSONResponseError,
    NoRequestBodyContentError,
    NoRequestBodyError,
    NoSuccessResponseError,
)
from riptide.meta_schema import validate_contract
from riptide.references import DEFINITIONS_PREFIX, reference_name

logger = logging.getLogger(__name__)

OPENAPI_VERSION = "3.0.0"
COMPONENTS_PREFIX = "#/components/schemas/"
JSON_CONTENT_TYPE = "application/json"
SUCCESS_STATUSES = (200, 201, 202)
PLACEHOLDER_REQUEST_BODY = {"type": "object"}


def _rewrite_references(document: Any, old_prefix: str, new_prefix: str) -> Any:
    """Rewrite reference prefixes over the serialized form of a document."""
    return json.loads(json.dumps(document).replace(old_prefix, new_prefix))


# ============================================================
# Paths
# ============================================================

def to_openapi_path(path: str) -> str:
    """Converts e.g. `/users/:id/profile` to `/users/{id}/profile`."""
    return "/".join(
        f"{{{segment[1:]}}}" if segment.startswith(":") else segment
        for segment in path.split("/")
    )


def from_openapi_path(path: str) -> str:
    """Converts e.g. `/users/{id}/profile` to `/users/:id/profile`."""
    return "/".join(
        f":{segment[1:-1]}" if segment.startswith("{") and segment.endswith("}") else segment
        for segment in path.split("/")
    )


# ============================================================
# Contract -> OpenAPI
# ============================================================

def _query_parameter(name: str, schema: Any, required_names: list[str]) -> dict[str, Any]:
    parameter: dict[str, Any] = {"in": "query", "name": name}
    if isinstance(schema, dict) and "description" in schema:
        parameter["description"] = schema["description"]
    parameter["required"] = name in required_names
    parameter["schema"] = schema if schema else {"type": "string"}
    return parameter


def _follow_references(schema: Any, resources: Mapping[str, Any]) -> Any:
    """Follow `$ref` pointers at the top of `schema` only; nested schemas stay symbolic."""
    followed: set[str] = set()
    while isinstance(schema, dict) and "$ref" in schema:
        name = reference_name(schema["$ref"])
        if name in followed or name not in resources:
            break
        followed.add(name)
        siblings = {key: value for key, value in schema.items() if key != "$ref"}
        schema = {**siblings, **resources[name]}
    return schema


def _query_parameters(request: dict[str, Any], resources: Mapping[str, Any]) -> list[dict[str, Any]]:
    """
    Flatten a request schema into query parameters.

    Properties of the request itself come first, then properties of each
    `type: object` member of `allOf` (one level deep). A referenced request
    or member contributes the properties of the resource it points at.
    """
    request = _follow_references(request, resources)
    parameters: list[dict[str, Any]] = []
    request_required = request.get("required") if isinstance(request.get("required"), list) else []

    for name, schema in (request.get("properties") or {}).items():
        parameters.append(_query_parameter(name, schema, request_required))

    for member in request.get("allOf") or []:
        member = _follow_references(member, resources)
        if not isinstance(member, dict) or member.get("type") != "object":
            continue
        member_required = member.get("required") if isinstance(member.get("required"), list) else []
        for name, schema in (member.get("properties") or {}).items():
            parameters.append(_query_parameter(name, schema, request_required + member_required))

    return parameters


def _operation(
    endpoint_key: EndpointKey,
    definition: EndpointDefinition,
    resources: Mapping[str, Any],
) -> dict[str, Any]:
    operation: dict[str, Any] = {"operationId": definition.name}
    if definition.description is not None:
        operation["description"] = definition.description

    parameters: list[dict[str, Any]] = [
        {"name": name, "in": "path", "schema": {"type": "string"}, "required": True}
        for name in endpoint_key.path_params
    ]

    request = definition.request
    if endpoint_key.method.uses_query:
        if request:
            parameters.extend(_query_parameters(request, resources))
    else:
        # Importers reject body methods without a JSON body.
        operation["requestBody"] = {
            "content": {JSON_CONTENT_TYPE: {"schema": request or dict(PLACEHOLDER_REQUEST_BODY)}}
        }

    if parameters:
        operation["parameters"] = parameters

    operation["responses"] = {
        "200": {
            "description": "A successful response",
            "content": {JSON_CONTENT_TYPE: {"schema": definition.response}},
        }
    }
    return operation


def to_openapi(contract: Contract, *, info: Mapping[str, Any]) -> dict[str, Any]:
    """
    Validate `contract` and render it as an OpenAPI 3.0 document.

    Resources become `components.schemas`; endpoints sharing a path are
    merged under one path item keyed by lower-case method.
    """
    validate_contract(contract)

    paths: dict[str, dict[str, Any]] = {}
    for raw_key, definition in contract.endpoints.items():
        endpoint_key = EndpointKey.parse(raw_key)
        path_item = paths.setdefault(to_openapi_path(endpoint_key.path), {})
        path_item[endpoint_key.method.value.lower()] = _operation(endpoint_key, definition, contract.resources)

    logger.debug("rendered %d endpoint(s) across %d path(s)", len(contract.endpoints), len(paths))
    return {
        "openapi": OPENAPI_VERSION,
        "info": copy.deepcopy(dict(info)),
        "components": {"schemas": _rewrite_references(contract.resources, DEFINITIONS_PREFIX, COMPONENTS_PREFIX)},
        "paths": _rewrite_references(paths, DEFINITIONS_PREFIX, COMPONENTS_PREFIX),
    }


# ============================================================
# OpenAPI -> Contract
# ============================================================

def _success_response(operation: Mapping[str, Any], operation_id: str) -> Mapping[str, Any]:
    responses = operation.get("responses") or {}
    for status in SUCCESS_STATUSES:
        response = responses.get(str(status)) or responses.get(status)
        if response:
            return response
    raise NoSuccessResponseError(f"No success response found for operation: {operation_id}")


def _query_request_schema(operation: Mapping[str, Any]) -> dict[str, Any]:
    schema: dict[str, Any] = {
        "type": "object",
        "properties": {},
        "required": [],
        "additionalProperties": False,
    }
    for parameter in operation.get("parameters") or []:
        # Referenced parameters are not followed.
        if "$ref" in parameter or parameter.get("in") != "query":
            continue
        parameter_schema = parameter.get("schema")
        if parameter_schema is None:
            parameter_schema = {"type": "string"}
            if "description" in parameter:
                parameter_schema["description"] = parameter["description"]
        schema["properties"][parameter["name"]] = copy.deepcopy(parameter_schema)
        if parameter.get("required"):
            schema["required"].append(parameter["name"])
    return schema


def _body_request_schema(operation: Mapping[str, Any], operation_id: str) -> dict[str, Any]:
    request_body = operation.get("requestBody")
    if not request_body:
        raise NoRequestBodyError(f"No request body defined for operation: {operation_id}")
    if "content" not in request_body:
        raise NoRequestBodyContentError(f"No request body content defined for operation: {operation_id}")
    json_schema = (request_body["content"].get(JSON_CONTENT_TYPE) or {}).get("schema")
    if not json_schema:
        raise NoJSONRequestBodyError(f"No JSON request body defined for operation: {operation_id}")
    return copy.deepcopy(json_schema)


def _endpoint_definition(method: HttpMethod, operation: Mapping[str, Any]) -> EndpointDefinition:
    operation_id = operation.get("operationId")
    if not operation_id:
        raise MissingOperationIdError("No operationId on path.")

    response = _success_response(operation, operation_id)
    json_response = ((response.get("content") or {}).get(JSON_CONTENT_TYPE) or {}).get("schema")
    if not json_response:
        raise NoJSONResponseError(f"No JSON response found for operation: {operation_id}")

    if method.uses_query:
        request = _query_request_schema(operation)
    else:
        request = _body_request_schema(operation, operation_id)

    return EndpointDefinition(
        name=operation_id,
        description=operation.get("description"),
        request=request,
        response=copy.deepcopy(json_response),
    )


def from_openapi(document: Mapping[str, Any]) -> Contract:
    """
    Convert an OpenAPI 3.0 document into a validated contract.

    Only GET/POST/PUT/PATCH/DELETE operations are read. `components.schemas`
    become resources, with references rewritten back to `#/definitions/`.
    """
    endpoints: dict[str, EndpointDefinition] = {}
    for openapi_path, path_item in (document.get("paths") or {}).items():
        if not path_item:
            continue
        path = from_openapi_path(openapi_path)
        for method in HttpMethod:
            operation = path_item.get(method.value.lower())
            if not operation:
                continue
            endpoints[f"{method.value} {path}"] = _endpoint_definition(method, operation)

    schemas = (document.get("components") or {}).get("schemas") or {}
    contract = Contract(endpoints=endpoints, resources=copy.deepcopy(dict(schemas)))
    contract = Contract.from_document(
        _rewrite_references(contract.to_document(), COMPONENTS_PREFIX, DEFINITIONS_PREFIX)
    )

    validate_contract(contract)
    logger.debug("imported %d endpoint(s) from OpenAPI document", len(endpoints))
    return contract
