"""Build a contract in code from pydantic models, then serve it."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Mapping

from pydantic import BaseModel, ValidationError

from riptide.client import NamedClient
from riptide.contract import Contract, EndpointDefinition, EndpointKey
from riptide.errors import ImplementationError, RequestValidationError
from riptide.meta_schema import validate_contract
from riptide.references import make_reference
from riptide.routing import ContractApp, Handler, IntrospectionConfig, RequestContext, implement_contract

logger = logging.getLogger(__name__)

REF_TEMPLATE = make_reference("{model}")


@dataclass
class RouterEndpoint:
    route: str
    name: str
    request: type[BaseModel]
    response: type[BaseModel]
    description: str | None = None
    handler: Handler | None = None


def model_schema(model: type[BaseModel], resources: dict[str, Any]) -> dict[str, Any]:
    """Return `model`'s JSON Schema, moving nested `$defs` into `resources`."""
    schema = model.model_json_schema(ref_template=REF_TEMPLATE)
    for definition_name, definition in schema.pop("$defs", {}).items():
        resources.setdefault(definition_name, definition)
    return schema


class ContractRouter:
    """
    Declares endpoints with pydantic models for their shapes.

    Example:
        router = ContractRouter(introspection=IntrospectionConfig("/private/introspection", "1.0.0"))

        @router.expose(route="GET /posts/:id", name="getPost", request=GetPost, response=Post)
        def get_post(ctx):
            return Post(id=ctx.path_params["id"], message="hello")

        serve(router.app())
    """

    def __init__(self, *, introspection: IntrospectionConfig | None = None) -> None:
        self.introspection = introspection
        self._endpoints: dict[str, RouterEndpoint] = {}

    def declare(
        self,
        *,
        route: str,
        name: str,
        request: type[BaseModel],
        response: type[BaseModel],
        description: str | None = None,
    ) -> ContractRouter:
        EndpointKey.parse(route)
        if route in self._endpoints:
            raise ImplementationError(f"Endpoint {route} is already declared.", endpoint=route)
        self._endpoints[route] = RouterEndpoint(
            route=route,
            name=name,
            request=request,
            response=response,
            description=description,
        )
        return self

    def implement(self, route: str, handler: Handler) -> ContractRouter:
        endpoint = self._endpoints.get(route)
        if endpoint is None:
            raise ImplementationError(f"Cannot implement {route}: it was never declared.", endpoint=route)
        endpoint.handler = handler
        return self

    def expose(
        self,
        *,
        route: str,
        name: str,
        request: type[BaseModel],
        response: type[BaseModel],
        description: str | None = None,
    ) -> Callable[[Handler], Handler]:
        """Decorator form of declare() + implement()."""

        def decorator(handler: Handler) -> Handler:
            self.declare(route=route, name=name, request=request, response=response, description=description)
            self.implement(route, handler)
            return handler

        return decorator

    def contract(self) -> Contract:
        """Render the declared endpoints as a validated contract."""
        resources: dict[str, Any] = {}
        endpoints: dict[str, EndpointDefinition] = {}
        for route, endpoint in self._endpoints.items():
            endpoints[route] = EndpointDefinition(
                name=endpoint.name,
                description=endpoint.description,
                request=model_schema(endpoint.request, resources),
                response=model_schema(endpoint.response, resources),
            )
        contract = Contract(endpoints=endpoints, resources=resources)
        validate_contract(contract)
        return contract

    def _parse(self, ctx: RequestContext, *, endpoint: str, schema: dict[str, Any], data: Any) -> BaseModel:
        request_model = self._endpoints[endpoint].request
        try:
            return request_model.model_validate(data if data is not None else {})
        except ValidationError as exc:
            raise RequestValidationError(
                f"The request input did not conform to the required schema: {exc}",
                endpoint=endpoint,
            ) from exc

    def app(self) -> ContractApp:
        """Build the CherryPy application; `ctx.data` is the validated request model."""
        implementation: dict[str, Handler] = {}
        for route, endpoint in self._endpoints.items():
            if endpoint.handler is None:
                raise ImplementationError(f"No implementation provided for: {route}.", endpoint=route)
            implementation[route] = endpoint.handler
        return implement_contract(
            self.contract(),
            implementation,
            parse=self._parse,
            introspection=self.introspection,
        )

    def client(self, transport: Any) -> NamedClient:
        return NamedClient(self.contract(), transport)


class CompatRouter:
    """Method-per-verb registration: `router.get(path, meta, handler)`."""

    def __init__(self, *, introspection: IntrospectionConfig | None = None) -> None:
        self.router = ContractRouter(introspection=introspection)

    def _add(self, method: str, path: str, meta: Mapping[str, Any], handler: Handler) -> CompatRouter:
        route = f"{method} {path}"
        self.router.declare(route=route, **meta)
        self.router.implement(route, handler)
        return self

    def get(self, path: str, meta: Mapping[str, Any], handler: Handler) -> CompatRouter:
        return self._add("GET", path, meta, handler)

    def post(self, path: str, meta: Mapping[str, Any], handler: Handler) -> CompatRouter:
        return self._add("POST", path, meta, handler)

    def put(self, path: str, meta: Mapping[str, Any], handler: Handler) -> CompatRouter:
        return self._add("PUT", path, meta, handler)

    def patch(self, path: str, meta: Mapping[str, Any], handler: Handler) -> CompatRouter:
        return self._add("PATCH", path, meta, handler)

    def delete(self, path: str, meta: Mapping[str, Any], handler: Handler) -> CompatRouter:
        return self._add("DELETE", path, meta, handler)

    def contract(self) -> Contract:
        return self.router.contract()

    def app(self) -> ContractApp:
        return self.router.app()

    def client(self, transport: Any) -> NamedClient:
        return self.router.client(transport)
