"""On-demand resolution of `$ref` pointers against a contract's resources."""
from __future__ import annotations

import re
from typing import Any, Mapping

from riptide.errors import BrokenReferenceError
from riptide.json_schema import transform_schema

DEFINITIONS_PREFIX = "#/definitions/"

REFERENCE_REGEX = re.compile(r"^#/definitions/([^/]+)$")


def reference_name(reference: Any) -> str:
    """Return the resource name a `#/definitions/<name>` pointer targets."""
    match = REFERENCE_REGEX.match(reference) if isinstance(reference, str) else None
    if match is None:
        raise BrokenReferenceError(
            f"Malformed reference {reference!r}. References must look like {DEFINITIONS_PREFIX}<ResourceName>.",
            reference=str(reference),
        )
    return match.group(1)


def make_reference(resource_name: str) -> str:
    return f"{DEFINITIONS_PREFIX}{resource_name}"


def resolve_references(
    node: dict[str, Any],
    resources: Mapping[str, dict[str, Any]],
    *,
    resolving: frozenset[str] = frozenset(),
) -> dict[str, Any]:
    """
    Inline every `$ref` in `node` with its (recursively resolved) resource.

    Keys declared next to a `$ref` survive unless the resource defines them.
    A reference back into a resource that is already being expanded is left
    symbolic. Nothing is cached: each call walks from `resources` again.
    """

    def inline(schema: dict[str, Any]) -> dict[str, Any]:
        """Replace a `$ref` node with its resolved target."""
        if "$ref" not in schema:
            return schema

        reference = schema["$ref"]
        name = reference_name(reference)
        if name not in resources:
            raise BrokenReferenceError(
                f"Reference {reference} points at an undefined resource: {name}.",
                reference=reference,
            )
        if name in resolving:
            return schema

        target = resolve_references(resources[name], resources, resolving=resolving | {name})
        siblings = {key: value for key, value in schema.items() if key != "$ref"}
        return {**siblings, **target}

    return transform_schema(node, inline)
