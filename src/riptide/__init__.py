"""Schema-driven HTTP API contracts: validation, type and client generation, OpenAPI conversion, serving."""
from __future__ import annotations

from riptide.api_types import generate_api_types
from riptide.assumptions import DEFAULT_ASSUMPTIONS, NO_ASSUMPTIONS, SchemaAssumptions, apply_assumptions
from riptide.client import NamedClient
from riptide.client_gen import generate_client
from riptide.contract import Contract, EndpointDefinition, EndpointKey, HttpMethod, get_path_params
from riptide.endpoints import build_endpoints_schema
from riptide.errors import (
    BrokenReferenceError,
    ContractValidationError,
    OpenAPIConversionError,
    RiptideError,
)
from riptide.introspection import IntrospectionResponse, build_introspection_response, fetch_remote_schema
from riptide.json_schema import transform_schema
from riptide.meta_schema import load_contract, load_contract_from_file, validate_contract
from riptide.openapi import from_openapi, to_openapi
from riptide.publishable import generate_publishable_client, generate_publishable_schema
from riptide.references import resolve_references
from riptide.router import CompatRouter, ContractRouter
from riptide.routing import ContractApp, IntrospectionConfig, OpenAPIRouteConfig, RequestContext, implement_contract
from riptide.transport import RequestsTransport

__version__ = "0.1.0"

__all__ = [
    "BrokenReferenceError",
    "CompatRouter",
    "Contract",
    "ContractApp",
    "ContractRouter",
    "ContractValidationError",
    "DEFAULT_ASSUMPTIONS",
    "EndpointDefinition",
    "EndpointKey",
    "HttpMethod",
    "IntrospectionConfig",
    "IntrospectionResponse",
    "NO_ASSUMPTIONS",
    "NamedClient",
    "OpenAPIConversionError",
    "OpenAPIRouteConfig",
    "RequestContext",
    "RequestsTransport",
    "RiptideError",
    "SchemaAssumptions",
    "apply_assumptions",
    "build_endpoints_schema",
    "build_introspection_response",
    "fetch_remote_schema",
    "from_openapi",
    "generate_api_types",
    "generate_client",
    "generate_publishable_client",
    "generate_publishable_schema",
    "get_path_params",
    "implement_contract",
    "load_contract",
    "load_contract_from_file",
    "resolve_references",
    "to_openapi",
    "transform_schema",
    "validate_contract",
]
