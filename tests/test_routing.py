from __future__ import annotations

import socket
from dataclasses import dataclass
from typing import Any

import cherrypy
import pytest
import requests
from pydantic import BaseModel

from riptide.contract import Contract
from riptide.errors import ImplementationError, RequestValidationError
from riptide.routing import (
    ContractApp,
    IntrospectionConfig,
    OpenAPIRouteConfig,
    RequestContext,
    _to_plain,
    implement_contract,
    mount,
    route_tokens,
)


@dataclass
class Post:
    id: str
    message: str


def list_posts(ctx: RequestContext) -> dict[str, Any]:
    return {"items": [], "links": {"self": "/posts"}}


def get_post(ctx: RequestContext) -> dict[str, Any]:
    return {"id": ctx.path_params["id"], "message": "hello"}


def put_post(ctx: RequestContext) -> dict[str, Any]:
    ctx.status = 202
    ctx.headers["X-Updated"] = ctx.path_params["id"]
    return {"id": ctx.path_params["id"], "message": ctx.data["message"]}


def create_post(ctx: RequestContext) -> Post:
    ctx.status = 404
    return Post(id="new", message=ctx.data["message"])


def delete_post(ctx: RequestContext) -> None:
    return None


IMPLEMENTATION = {
    "GET /posts": list_posts,
    "GET /posts/:id": get_post,
    "PUT /posts/:id": put_post,
    "POST /posts": create_post,
    "DELETE /posts/:id": delete_post,
}

INTROSPECTION = IntrospectionConfig(
    route="/private/introspection",
    service_version="1.2.3",
    openapi=OpenAPIRouteConfig(route="/private/openapi", info={"title": "Posts"}),
)


@pytest.fixture
def app(posts_contract: Contract) -> ContractApp:
    return implement_contract(posts_contract, IMPLEMENTATION, introspection=INTROSPECTION)


def test_route_tokens() -> None:
    assert route_tokens("/posts/:id/") == [("static", "posts"), ("param", "id")]


def test_get_with_path_params(app: ContractApp) -> None:
    result = app.handle("GET", ["posts", "abc"])

    assert result.status == 200
    assert result.payload == {"id": "abc", "message": "hello"}


def test_handlers_choose_a_success_status_and_headers(app: ContractApp) -> None:
    result = app.handle("PUT", ["posts", "1"], body={"message": "updated"})

    assert result.status == 202
    assert result.headers == {"X-Updated": "1"}
    assert result.payload == {"id": "1", "message": "updated"}


def test_non_success_statuses_from_handlers_become_200(app: ContractApp) -> None:
    result = app.handle("POST", ["posts"], body={"message": "hi"})

    assert result.status == 200
    assert result.payload == Post(id="new", message="hi")


def test_empty_payloads_answer_204(app: ContractApp) -> None:
    assert app.handle("DELETE", ["posts", "1"]).status == 204


@pytest.mark.parametrize(
    "body",
    [{"message": 5}, {}, {"message": "hi", "extra": True}, None],
    ids=["wrong-type", "missing-field", "unknown-field", "no-body"],
)
def test_invalid_bodies_answer_400(app: ContractApp, body: Any) -> None:
    with pytest.raises(cherrypy.HTTPError) as excinfo:
        app.handle("PUT", ["posts", "1"], body=body)

    assert excinfo.value.code == 400


def test_query_is_validated_for_get(app: ContractApp) -> None:
    assert app.handle("GET", ["posts"], query={"pageSize": "10"}).status == 200

    with pytest.raises(cherrypy.HTTPError) as excinfo:
        app.handle("GET", ["posts"], query={"bogus": "1"})

    assert excinfo.value.code == 400


def test_unknown_paths_answer_404(app: ContractApp) -> None:
    with pytest.raises(cherrypy.HTTPError) as excinfo:
        app.handle("GET", ["comments"])

    assert excinfo.value.code == 404


@pytest.mark.parametrize("method", ["PATCH", "HEAD", "OPTIONS"])
def test_known_paths_with_other_methods_answer_405(app: ContractApp, method: str) -> None:
    with pytest.raises(cherrypy.HTTPError) as excinfo:
        app.handle(method, ["posts", "1"])

    assert excinfo.value.code == 405


def test_introspection_route(app: ContractApp, posts_contract: Contract) -> None:
    result = app.handle("GET", ["private", "introspection"])

    assert result.payload == {"schema": posts_contract.to_document(), "serviceVersion": "1.2.3"}


def test_openapi_route_uses_the_service_version(app: ContractApp) -> None:
    result = app.handle("GET", ["private", "openapi"])

    assert result.payload["openapi"] == "3.0.0"
    assert result.payload["info"] == {"title": "Posts", "version": "1.2.3"}
    assert set(result.payload["paths"]) == {"/posts", "/posts/{id}"}


def test_static_segments_win_over_parameters(posts_document: dict[str, Any]) -> None:
    posts_document["Endpoints"]["GET /posts/latest"] = {"Name": "latestPost", "Response": {"$ref": "#/definitions/Post"}}
    contract = Contract.from_document(posts_document)
    app = implement_contract(contract, {**IMPLEMENTATION, "GET /posts/latest": lambda ctx: {"latest": True}})

    assert app.patterns.index("/posts/latest") < app.patterns.index("/posts/:id")
    assert app.handle("GET", ["posts", "latest"]).payload == {"latest": True}
    assert app.handle("GET", ["posts", "7"]).payload["id"] == "7"


def test_custom_parsers_replace_the_request_data(posts_contract: Contract) -> None:
    seen: list[Any] = []

    def parse(ctx: RequestContext, *, endpoint: str, schema: dict[str, Any], data: Any) -> Any:
        if endpoint == "POST /posts" and not data:
            raise RequestValidationError("empty body", endpoint=endpoint)
        return {"parsed": data}

    def create(ctx: RequestContext) -> None:
        seen.append(ctx.data)

    app = implement_contract(posts_contract, {**IMPLEMENTATION, "POST /posts": create}, parse=parse)

    app.handle("POST", ["posts"], body={"message": "x"})
    assert seen == [{"parsed": {"message": "x"}}]

    with pytest.raises(cherrypy.HTTPError) as excinfo:
        app.handle("POST", ["posts"], body={})
    assert excinfo.value.code == 400


def test_every_endpoint_must_be_implemented(posts_contract: Contract) -> None:
    partial = {key: handler for key, handler in IMPLEMENTATION.items() if key != "DELETE /posts/:id"}

    with pytest.raises(ImplementationError) as excinfo:
        implement_contract(posts_contract, partial)

    assert excinfo.value.endpoint == "DELETE /posts/:id"


def test_unknown_endpoints_are_rejected(posts_contract: Contract) -> None:
    with pytest.raises(ImplementationError):
        implement_contract(posts_contract, {**IMPLEMENTATION, "GET /comments": list_posts})


def test_to_plain_converts_models_and_dataclasses() -> None:
    class Comment(BaseModel):
        text: str

    assert _to_plain({"post": Post(id="1", message="m"), "comments": (Comment(text="c"),)}) == {
        "post": {"id": "1", "message": "m"},
        "comments": [{"text": "c"}],
    }


def _free_port() -> int:
    with socket.socket() as probe:
        probe.bind(("127.0.0.1", 0))
        return probe.getsockname()[1]


@pytest.mark.integration
def test_serves_the_contract_over_http(app: ContractApp) -> None:
    port = _free_port()
    cherrypy.config.update(
        {
            "server.socket_host": "127.0.0.1",
            "server.socket_port": port,
            "engine.autoreload.on": False,
            "log.screen": False,
            "checker.on": False,
        }
    )
    mount(app, "/api")
    cherrypy.engine.start()
    try:
        base_url = f"http://127.0.0.1:{port}/api"

        updated = requests.put(f"{base_url}/posts/1", json={"message": "over http"}, timeout=5)
        assert updated.status_code == 202
        assert updated.json() == {"id": "1", "message": "over http"}

        rejected = requests.put(f"{base_url}/posts/1", json={"message": 1}, timeout=5)
        assert rejected.status_code == 400

        deleted = requests.delete(f"{base_url}/posts/1", timeout=5)
        assert deleted.status_code == 204
    finally:
        cherrypy.engine.exit()
