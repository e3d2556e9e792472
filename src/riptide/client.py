"""Runtime client for a contract: one callable per endpoint name, plus pagination."""
from __future__ import annotations

import logging
from typing import Any, Callable, Mapping
from urllib.parse import parse_qs, quote, urlsplit

from riptide.contract import Contract, EndpointKey

logger = logging.getLogger(__name__)


def substitute_params(url: str, params: Mapping[str, Any]) -> str:
    """Replace each `:name` segment of `url` with the percent-encoded value of `params[name]`."""
    segments = []
    for segment in url.split("/"):
        if segment.startswith(":") and params.get(segment[1:]) is not None:
            segment = quote(str(params[segment[1:]]), safe="-_.!~*'()")
        segments.append(segment)
    return "/".join(segments)


def remove_path_params(url: str, params: Mapping[str, Any]) -> dict[str, Any]:
    """Drop path parameters and unset (None) values from `params`."""
    path_names = {segment[1:] for segment in url.split("/") if segment.startswith(":")}
    return {
        name: value
        for name, value in params.items()
        if value is not None and name not in path_names
    }


def parse_query_params_from_paging_link(link: str) -> dict[str, str | None]:
    query = parse_qs(urlsplit(link).query)
    return {
        "nextPageToken": query.get("nextPageToken", [None])[0],
        "pageSize": query.get("pageSize", [None])[0],
    }


def paginate(send: Callable[..., Any], data: Mapping[str, Any], **config: Any) -> list[Any]:
    """
    Call `send` page after page until a response has no next page token.

    Each response body must look like `{"items": [...], "links": {"next": ...}}`.
    """
    result: list[Any] = []

    next_page_params: dict[str, Any] = {}
    while True:
        response = send({**next_page_params, **data}, **config)
        body = response.json()

        result.extend(body["items"])

        next_link = (body.get("links") or {}).get("next")
        next_page_params = parse_query_params_from_paging_link(next_link) if next_link else {}
        if not next_page_params.get("nextPageToken"):
            return result


class NamedClient:
    """
    Calls a contract's endpoints by name through `transport`.

    Example:
        client = NamedClient(contract, RequestsTransport("https://api.example.com"))
        response = client.getPostById({"id": "1"})
        posts = client.paginate(client.listPosts, {"pageSize": "10"})
    """

    def __init__(self, contract: Contract, transport: Any) -> None:
        self.transport = transport
        self._endpoint_keys = {
            definition.name: EndpointKey.parse(endpoint_key)
            for endpoint_key, definition in contract.endpoints.items()
        }

    @property
    def endpoint_names(self) -> list[str]:
        return list(self._endpoint_keys)

    def send(self, name: str, data: Mapping[str, Any], **config: Any) -> Any:
        endpoint_key = self._endpoint_keys[name]
        location = "params" if endpoint_key.method.uses_query else "json"
        logger.debug("sending %s (%s)", name, endpoint_key)
        return self.transport.request(
            **{
                **config,
                "method": endpoint_key.method.value,
                location: remove_path_params(endpoint_key.path, data),
                "url": substitute_params(endpoint_key.path, data),
            }
        )

    def __getattr__(self, name: str) -> Callable[..., Any]:
        if name.startswith("_") or name not in self._endpoint_keys:
            raise AttributeError(name)

        def call(data: Mapping[str, Any], **config: Any) -> Any:
            return self.send(name, data, **config)

        call.__name__ = name
        return call

    def paginate(self, request: Callable[..., Any], data: Mapping[str, Any], **config: Any) -> list[Any]:
        return paginate(lambda page_data, **page_config: self.send(request.__name__, page_data, **page_config), data, **config)
