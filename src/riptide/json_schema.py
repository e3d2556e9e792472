"""Recursive transformation over JSON-Schema trees."""
from __future__ import annotations

import copy
from typing import Any, Callable

SchemaTransform = Callable[[dict[str, Any]], dict[str, Any]]

COMPOSITION_KEYWORDS = ("anyOf", "oneOf", "allOf")


def transform_schema(root: dict[str, Any], transform: SchemaTransform) -> dict[str, Any]:
    """
    Apply `transform` to every node of `root`, children first.

    `transform` receives a node whose `properties`, `items`, `anyOf`, `oneOf`
    and `allOf` children have already been transformed, and returns the final
    form of that node. `root` is not modified, and the result shares no
    mutable structure with it.
    """
    node = copy.deepcopy(root)

    properties = node.get("properties")
    if isinstance(properties, dict):
        node["properties"] = {
            property_name: _transform_child(property_schema, transform)
            for property_name, property_schema in properties.items()
        }

    items = node.get("items")
    if isinstance(items, list):
        node["items"] = [_transform_child(item_schema, transform) for item_schema in items]
    elif isinstance(items, dict):
        node["items"] = transform_schema(items, transform)

    for keyword in COMPOSITION_KEYWORDS:
        members = node.get(keyword)
        if isinstance(members, list):
            node[keyword] = [_transform_child(member, transform) for member in members]

    return copy.deepcopy(transform(node))


def _transform_child(child: Any, transform: SchemaTransform) -> Any:
    """Transform dict children; boolean or malformed children are copied as-is."""
    if isinstance(child, dict):
        return transform_schema(child, transform)
    return copy.deepcopy(child)


def compose_transforms(*transforms: SchemaTransform) -> Callable[[dict[str, Any]], dict[str, Any]]:
    """Return a function running each transform as its own full pass, left to right."""

    def run(root: dict[str, Any]) -> dict[str, Any]:
        result = root
        for transform in transforms:
            result = transform_schema(result, transform)
        return result

    return run
