"""Serve a contract's endpoints through CherryPy, validating requests against their schemas."""
from __future__ import annotations

import json
import logging
import typing as t
from dataclasses import asdict, dataclass, field, is_dataclass

import cherrypy
import jsonschema
from pydantic import BaseModel

from riptide.config import Settings
from riptide.contract import Contract, EndpointKey, HttpMethod
from riptide.errors import ImplementationError, RequestValidationError
from riptide.introspection import build_introspection_response
from riptide.openapi import to_openapi

logger = logging.getLogger(__name__)


# ============================================================
# Configuration + request context
# ============================================================

@dataclass(frozen=True)
class OpenAPIRouteConfig:
    """Serve the contract as an OpenAPI document at `route`."""
    route: str
    info: dict[str, t.Any]


@dataclass(frozen=True)
class IntrospectionConfig:
    """
    Serve `{"schema": ..., "serviceVersion": ...}` on GET `route`.

    With `openapi` set, the OpenAPI rendering is served too, with
    `info.version` set to `service_version`.
    """
    route: str
    service_version: str
    openapi: OpenAPIRouteConfig | None = None


@dataclass
class RequestContext:
    """What a handler receives for one request."""
    endpoint: str
    method: HttpMethod
    path_params: dict[str, str]
    query: dict[str, t.Any]
    body: t.Any

    # Validated query (GET/DELETE) or body (everything else).
    data: t.Any = None

    # Handlers may set a 2xx status; anything else is answered with 200.
    status: int = 200
    headers: dict[str, str] = field(default_factory=dict)


Handler = t.Callable[[RequestContext], t.Any]


class RequestParser(t.Protocol):
    def __call__(self, ctx: RequestContext, *, endpoint: str, schema: dict[str, t.Any], data: t.Any) -> t.Any:
        ...


def validate_request_data(ctx: RequestContext, *, endpoint: str, schema: dict[str, t.Any], data: t.Any) -> t.Any:
    """Default parser: validate `data` against `schema` with jsonschema and return it unchanged."""
    try:
        jsonschema.validate(data, schema)
    except jsonschema.ValidationError as exc:
        raise RequestValidationError(f"Invalid request for {endpoint}: {exc.message}", endpoint=endpoint) from exc
    return data


# ============================================================
# Route table
# ============================================================

@dataclass(frozen=True)
class BoundEndpoint:
    """One method of one route: the handler plus the schema its input is checked against."""
    endpoint_key: str
    method: HttpMethod
    handler: Handler
    request_schema: dict[str, t.Any] | None = None


def route_tokens(path: str) -> list[tuple[str, str]]:
    """Convert a route path into tokens (static/param segments)."""
    tokens: list[tuple[str, str]] = []
    for segment in path.split("/"):
        if not segment:
            continue
        if segment.startswith(":"):
            tokens.append(("param", segment[1:]))
        else:
            tokens.append(("static", segment))
    return tokens


def _build_route_table(bound_endpoints: list[tuple[str, BoundEndpoint]]) -> list[dict[str, t.Any]]:
    """Group bound endpoints by path and sort the routes by specificity."""
    routes_by_pattern: dict[str, dict[str, t.Any]] = {}

    for path, bound in bound_endpoints:
        tokens = route_tokens(path)
        pattern = "/" + "/".join([(":" + v) if k == "param" else v for k, v in tokens])
        route = routes_by_pattern.setdefault(
            pattern,
            {
                "tokens": tokens,
                "pattern": pattern,
                "param_count": sum(1 for k, _ in tokens if k == "param"),
                "static_count": sum(1 for k, _ in tokens if k == "static"),
                "methods": {},
            },
        )
        route["methods"][bound.method] = bound

    routes = list(routes_by_pattern.values())
    # Prefer more specific first: static beats dynamic, then longer/static beats shorter
    routes.sort(key=lambda r: (r["param_count"], -r["static_count"], r["pattern"]))
    return routes


def _match_tokens(tokens: list[tuple[str, str]], segments: list[str]) -> dict[str, str] | None:
    if len(tokens) != len(segments):
        return None

    params: dict[str, str] = {}
    for (kind, val), seg in zip(tokens, segments):
        if kind == "static":
            if seg != val:
                return None
        else:
            params[val] = seg
    return params


def _match_route(
    routes: list[dict[str, t.Any]],
    method: HttpMethod | None,
    segments: list[str],
) -> tuple[BoundEndpoint, dict[str, str]] | None:
    """
    Return the first route that matches `segments` and supports `method`.

    Raises a 405 when some route matches the path but none of them
    supports the method.
    """
    path_matched = False
    for r in routes:
        params = _match_tokens(r["tokens"], segments)
        if params is None:
            continue
        path_matched = True
        bound = r["methods"].get(method)
        if bound is not None:
            return bound, params

    if path_matched:
        raise cherrypy.HTTPError(405, "Method Not Allowed")
    return None


# ============================================================
# Serialization
# ============================================================

def _to_plain(x: t.Any) -> t.Any:
    """Recursively convert dataclasses and pydantic models to plain dicts/lists."""
    if isinstance(x, BaseModel):
        return x.model_dump(mode="json", by_alias=True)
    if is_dataclass(x) and not isinstance(x, type):
        return {k: _to_plain(v) for k, v in asdict(x).items()}
    if isinstance(x, (list, tuple)):
        return [_to_plain(v) for v in x]
    if isinstance(x, dict):
        return {k: _to_plain(v) for k, v in x.items()}
    return x


def _serialize(obj: t.Any) -> bytes:
    """Serialize handler output to JSON bytes."""
    if obj is None:
        return b""
    cherrypy.response.headers["Content-Type"] = "application/json; charset=utf-8"
    return json.dumps(_to_plain(obj)).encode("utf-8")


def _read_json_body() -> t.Any:
    """Parse the JSON request body, returning None for other content types."""
    ct = (cherrypy.request.headers.get("Content-Type") or "").lower()
    if "application/json" not in ct:
        return None

    raw = cherrypy.request.body.read() or b"{}"
    try:
        return json.loads(raw.decode("utf-8"))
    except ValueError:
        raise cherrypy.HTTPError(400, "Invalid JSON")


# ============================================================
# Application
# ============================================================

@dataclass(frozen=True)
class HandlerResult:
    status: int
    payload: t.Any
    headers: dict[str, str] = field(default_factory=dict)


class ContractApp:
    """
    CherryPy application serving one contract. Uses default() to catch every
    path and dispatches on the route table built from the endpoint keys.
    """

    def __init__(
        self,
        contract: Contract,
        bound_endpoints: list[tuple[str, BoundEndpoint]],
        *,
        parse: RequestParser = validate_request_data,
    ) -> None:
        self.contract = contract
        self.parse = parse
        self._routes = _build_route_table(bound_endpoints)

    @property
    def patterns(self) -> list[str]:
        return [r["pattern"] for r in self._routes]

    def handle(
        self,
        method: str,
        segments: list[str],
        query: t.Mapping[str, t.Any] | None = None,
        body: t.Any = None,
    ) -> HandlerResult:
        """Dispatch one request. Routing and validation failures raise cherrypy.HTTPError."""
        try:
            http_method: HttpMethod | None = HttpMethod(method.upper())
        except ValueError:
            http_method = None

        match = _match_route(self._routes, http_method, [s for s in segments if s])
        if match is None:
            raise cherrypy.HTTPError(404, "No matching route")
        bound, path_params = match

        ctx = RequestContext(
            endpoint=bound.endpoint_key,
            method=bound.method,
            path_params=path_params,
            query=dict(query or {}),
            body=body,
        )
        data = ctx.query if bound.method.uses_query else body
        if bound.request_schema is not None:
            try:
                data = self.parse(ctx, endpoint=bound.endpoint_key, schema=bound.request_schema, data=data)
            except RequestValidationError as exc:
                logger.info("rejected %s: %s", bound.endpoint_key, exc)
                raise cherrypy.HTTPError(400, str(exc))
        ctx.data = data

        payload = bound.handler(ctx)

        status = ctx.status if 200 <= ctx.status < 300 else 200
        if payload is None and status == 200:
            status = 204
        return HandlerResult(status=status, payload=payload, headers=dict(ctx.headers))

    @cherrypy.expose
    def index(self, **params):
        return self.default(**params)

    @cherrypy.expose
    def default(self, *vpath, **params):
        method = (cherrypy.request.method or "GET").upper()
        body = None if method in {"GET", "DELETE", "HEAD"} else _read_json_body()

        result = self.handle(method, list(vpath), params, body)

        cherrypy.response.status = result.status
        for header_name, header_value in result.headers.items():
            cherrypy.response.headers[header_name] = header_value
        return _serialize(result.payload)


def _introspection_endpoints(contract: Contract, introspection: IntrospectionConfig) -> list[tuple[str, BoundEndpoint]]:
    document = build_introspection_response(contract, introspection.service_version).to_document()
    bound = [
        (
            introspection.route,
            BoundEndpoint(f"GET {introspection.route}", HttpMethod.GET, lambda ctx: document),
        )
    ]
    if introspection.openapi is not None:
        openapi_document = to_openapi(
            contract,
            info={**introspection.openapi.info, "version": introspection.service_version},
        )
        bound.append(
            (
                introspection.openapi.route,
                BoundEndpoint(f"GET {introspection.openapi.route}", HttpMethod.GET, lambda ctx: openapi_document),
            )
        )
    return bound


def implement_contract(
    contract: Contract,
    implementation: t.Mapping[str, Handler],
    *,
    parse: RequestParser | None = None,
    introspection: IntrospectionConfig | None = None,
) -> ContractApp:
    """
    Bind `implementation` (endpoint key -> handler) to `contract`.

    GET/DELETE handlers get their query validated, every other method its
    JSON body, against `{**Request, "definitions": Resources}`. Responses
    are not validated.
    """
    unknown_keys = [key for key in implementation if key not in contract.endpoints]
    if unknown_keys:
        raise ImplementationError(
            f"Implementation declares endpoints missing from the contract: {', '.join(unknown_keys)}.",
            endpoint=unknown_keys[0],
        )
    missing_keys = [key for key in contract.endpoints if key not in implementation]
    if missing_keys:
        raise ImplementationError(
            f"No implementation provided for: {', '.join(missing_keys)}.",
            endpoint=missing_keys[0],
        )

    bound_endpoints: list[tuple[str, BoundEndpoint]] = []
    if introspection is not None:
        bound_endpoints.extend(_introspection_endpoints(contract, introspection))

    for endpoint_key, handler in implementation.items():
        parsed_key = EndpointKey.parse(endpoint_key)
        request = contract.endpoints[endpoint_key].request
        request_schema = {**request, "definitions": contract.resources} if request else None
        bound_endpoints.append(
            (parsed_key.path, BoundEndpoint(endpoint_key, parsed_key.method, handler, request_schema))
        )

    logger.debug("implemented %d endpoint(s)", len(implementation))
    return ContractApp(contract, bound_endpoints, parse=parse or validate_request_data)


# ============================================================
# Mounting + serving
# ============================================================

APP_CONFIG = {
    "/": {
        "tools.encode.on": True,
        "tools.encode.encoding": "utf-8",
    }
}


def mount(app: ContractApp, path: str = "/") -> None:
    """Mount `app` on the CherryPy tree at `path`."""
    mount_path = "/" + path.strip("/")
    cherrypy.tree.mount(app, "" if mount_path == "/" else mount_path, config=APP_CONFIG)


def serve(app: ContractApp, settings: Settings | None = None, *, path: str = "/") -> None:
    """Mount `app`, then run the CherryPy engine until it stops."""
    settings = settings or Settings()

    cherrypy.config.update({
        "server.socket_host": settings.server_host,
        "server.socket_port": settings.server_port,
        "tools.trailing_slash.on": False,
        "engine.autoreload.on": settings.autoreload,
    })
    mount(app, path)

    cherrypy.engine.start()
    cherrypy.engine.block()
