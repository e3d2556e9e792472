"""Contract data model: HTTP methods, endpoint keys, endpoints, and contracts."""
from __future__ import annotations

import copy
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping

from riptide.errors import MetaShapeError, UnsupportedMethodError

SchemaNode = dict[str, Any]


class HttpMethod(str, Enum):
    """The closed set of methods an endpoint key may use."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"

    @classmethod
    def parse(cls, raw_method: str, *, endpoint: str | None = None) -> HttpMethod:
        """Parse a method token, rejecting anything outside the supported set."""
        try:
            return cls(raw_method)
        except ValueError:
            raise UnsupportedMethodError(
                f"Unsupported method detected: {endpoint or raw_method}. "
                f"Supported methods are {', '.join(m.value for m in cls)}.",
                endpoint=endpoint,
            ) from None

    @property
    def uses_query(self) -> bool:
        """GET and DELETE carry their input in the query string."""
        return self in (HttpMethod.GET, HttpMethod.DELETE)


def extract_path_variables(path: str) -> list[str]:
    """Extract `:name` path variables from a path, in order, without duplicates."""
    seen: set[str] = set()
    unique: list[str] = []
    for segment in path.split("/"):
        if not segment.startswith(":"):
            continue
        variable_name = segment[1:]
        if variable_name not in seen:
            seen.add(variable_name)
            unique.append(variable_name)
    return unique


@dataclass(frozen=True)
class EndpointKey:
    """A parsed `"<METHOD> <path>"` endpoint key."""

    method: HttpMethod
    path: str

    @classmethod
    def parse(cls, endpoint_key: str) -> EndpointKey:
        """Split an endpoint key into its method and path."""
        raw_method, separator, path = endpoint_key.partition(" ")
        if not separator or not path:
            raise MetaShapeError(
                f'Malformed endpoint key "{endpoint_key}". Expected "<METHOD> <path>".',
                endpoint=endpoint_key,
            )
        return cls(method=HttpMethod.parse(raw_method, endpoint=endpoint_key), path=path)

    @property
    def path_params(self) -> list[str]:
        return extract_path_variables(self.path)

    def __str__(self) -> str:
        return f"{self.method.value} {self.path}"


def get_path_params(endpoint_key: str) -> list[str]:
    """Return the path parameter names declared by an endpoint key."""
    return EndpointKey.parse(endpoint_key).path_params


@dataclass(frozen=True)
class EndpointDefinition:
    """One endpoint of a contract."""

    name: str
    response: SchemaNode
    description: str | None = None
    request: SchemaNode | None = None

    @classmethod
    def from_document(cls, document: Mapping[str, Any]) -> EndpointDefinition:
        return cls(
            name=document.get("Name"),  # type: ignore[arg-type]
            response=copy.deepcopy(document.get("Response")),  # type: ignore[arg-type]
            description=document.get("Description"),
            request=copy.deepcopy(document.get("Request")),
        )

    def to_document(self) -> dict[str, Any]:
        """Return the persisted form; optional fields are omitted when unset."""
        document: dict[str, Any] = {"Name": self.name}
        if self.description is not None:
            document["Description"] = self.description
        if self.request is not None:
            document["Request"] = copy.deepcopy(self.request)
        document["Response"] = copy.deepcopy(self.response)
        return document


@dataclass(frozen=True)
class Contract:
    """
    The root contract: named resources plus endpoints keyed by `"<METHOD> <path>"`.

    Instances are treated as immutable values. Every transformation in riptide
    returns a new Contract and leaves its input untouched.
    """

    endpoints: dict[str, EndpointDefinition] = field(default_factory=dict)
    resources: dict[str, SchemaNode] = field(default_factory=dict)
    meta: dict[str, Any] | None = None

    @classmethod
    def from_document(cls, document: Mapping[str, Any]) -> Contract:
        """Build a contract from its persisted (`Resources`/`Endpoints`/`Meta`) form."""
        raw_endpoints = document.get("Endpoints") or {}
        return cls(
            endpoints={
                endpoint_key: EndpointDefinition.from_document(definition)
                for endpoint_key, definition in raw_endpoints.items()
            },
            resources=copy.deepcopy(dict(document.get("Resources") or {})),
            meta=copy.deepcopy(document.get("Meta")),
        )

    def to_document(self) -> dict[str, Any]:
        """Return the persisted form of the contract."""
        document: dict[str, Any] = {
            "Resources": copy.deepcopy(self.resources),
            "Endpoints": {
                endpoint_key: definition.to_document()
                for endpoint_key, definition in self.endpoints.items()
            },
        }
        if self.meta is not None:
            document["Meta"] = copy.deepcopy(self.meta)
        return document

    def copy(self) -> Contract:
        """Return a structurally independent copy."""
        return copy.deepcopy(self)

    def endpoint_keys(self) -> list[EndpointKey]:
        return [EndpointKey.parse(endpoint_key) for endpoint_key in self.endpoints]
