"""Generate a standalone Python client module for a contract."""
from __future__ import annotations

import inspect
import keyword
import logging
from dataclasses import dataclass, field

from riptide.api_types import GENERATED_HEADER, compile_endpoint_types
from riptide.client import parse_query_params_from_paging_link, remove_path_params, substitute_params
from riptide.contract import Contract, EndpointKey
from riptide.meta_schema import validate_contract
from riptide.typegen import (
    CompiledTypes,
    docstring_literal,
    format_source,
    is_identifier_key,
    render_module,
)

logger = logging.getLogger(__name__)

# Attributes every generated client defines for itself.
RESERVED_CLIENT_ATTRIBUTES = frozenset({"client", "paginate"})

GENERATED_HELPERS = (substitute_params, remove_path_params, parse_query_params_from_paging_link)

# Module-level names of a generated client, besides its typing imports.
CLIENT_MODULE_NAMES = frozenset(
    {"parse_qs", "quote", "urlsplit", *(helper.__name__ for helper in GENERATED_HELPERS)}
)


def to_method_name(endpoint_name: str) -> str:
    """Return a valid method name for an endpoint name."""
    method_name = endpoint_name
    if method_name[:1].isdigit():
        method_name = f"_{method_name}"
    if keyword.iskeyword(method_name) or method_name in RESERVED_CLIENT_ATTRIBUTES:
        method_name = f"{method_name}_"
    return method_name


@dataclass(frozen=True)
class ClientMethodSpec:
    method_name: str
    endpoint_key: EndpointKey
    input_type: str
    response_type: str
    description: str | None


@dataclass
class ClientModule:
    class_name: str
    compiled: CompiledTypes
    methods: list[ClientMethodSpec] = field(default_factory=list)

    # Input TypedDicts joining Request and PathParams: (name, bases).
    input_types: list[tuple[str, list[str]]] = field(default_factory=list)


def _reserve(used_names: set[str], preferred_name: str) -> str:
    if preferred_name not in used_names:
        used_names.add(preferred_name)
        return preferred_name
    suffix_number = 2
    while f"{preferred_name}{suffix_number}" in used_names:
        suffix_number += 1
    unique_name = f"{preferred_name}{suffix_number}"
    used_names.add(unique_name)
    return unique_name


def build_client_module(contract: Contract, class_name: str) -> ClientModule:
    """Compile the contract's types and work out one method per endpoint."""
    compiled = compile_endpoint_types(contract, reserved_names=CLIENT_MODULE_NAMES)
    if not is_identifier_key(class_name):
        raise ValueError(f"Invalid client class name: {class_name!r}.")
    if class_name in compiled.used_export_names:
        raise ValueError(f"Client class name {class_name} collides with a name the generated module defines.")

    used_names = set(compiled.used_export_names) | {class_name}
    module = ClientModule(class_name=class_name, compiled=compiled)

    for raw_key, definition in contract.endpoints.items():
        endpoint_type = compiled.field_type(compiled.root_name, raw_key) or ""
        request_type = compiled.field_type(endpoint_type, "Request")
        path_params_type = compiled.field_type(endpoint_type, "PathParams")
        response_type = compiled.field_type(endpoint_type, "Response") or "Any"

        if compiled.is_typed_dict(request_type) and compiled.is_typed_dict(path_params_type):
            input_type = _reserve(used_names, f"{endpoint_type}Input")
            module.input_types.append((input_type, [request_type, path_params_type]))  # type: ignore[list-item]
        else:
            input_type = "Mapping[str, Any]"

        module.methods.append(
            ClientMethodSpec(
                method_name=to_method_name(definition.name),
                endpoint_key=EndpointKey.parse(raw_key),
                input_type=input_type,
                response_type=response_type,
                description=definition.description,
            )
        )
    return module


# ============================================================
# Emitters
# ============================================================

def emit_header_section(module: ClientModule) -> list[str]:
    return [GENERATED_HEADER, "from __future__ import annotations", ""]


def emit_imports_section(module: ClientModule) -> list[str]:
    return (
        module.compiled.render_imports({"Any", "Callable", "Mapping", "TypedDict"})
        + ["from urllib.parse import parse_qs, quote, urlsplit", "", ""]
    )


def emit_types_section(module: ClientModule) -> list[str]:
    output_lines = module.compiled.render_declarations()
    for input_type, bases in module.input_types:
        output_lines.extend([f"class {input_type}({', '.join(bases)}):", "    pass", "", ""])
    return output_lines


def emit_helpers_section(module: ClientModule) -> list[str]:
    """Copy the runtime path and paging helpers into the generated module."""
    output_lines: list[str] = []
    for helper in GENERATED_HELPERS:
        output_lines.extend(inspect.getsource(helper).splitlines())
        output_lines.extend(["", ""])
    return output_lines


def _emit_method(method: ClientMethodSpec) -> list[str]:
    location = "params" if method.endpoint_key.method.uses_query else "json"
    output_lines = [
        f"    def {method.method_name}(self, data: {method.input_type}, **config: Any) -> Any:",
    ]
    docstring = f"{method.endpoint_key}: responds with {method.response_type}."
    if method.description:
        docstring = f"{docstring}\n\n{method.description}"
    output_lines.append(f"        {docstring_literal(docstring)}")
    output_lines.extend(
        [
            "        return self._send(",
            f"            {method.endpoint_key.method.value!r},",
            f"            {method.endpoint_key.path!r},",
            f"            {location!r},",
            "            data,",
            "            config,",
            "        )",
            "",
        ]
    )
    return output_lines


def emit_client_class_section(module: ClientModule) -> list[str]:
    output_lines = [
        f"class {module.class_name}:",
        "    def __init__(self, client: Any) -> None:",
        "        # Any object with a request(method=..., url=..., params=/json=..., **options) method.",
        "        self.client = client",
        "",
        "    def _send(self, method: str, url: str, location: str, data: Mapping[str, Any], config: Mapping[str, Any]) -> Any:",
        "        return self.client.request(",
        "            **{",
        "                **config,",
        '                "method": method,',
        "                location: remove_path_params(url, data),",
        '                "url": substitute_params(url, data),',
        "            }",
        "        )",
        "",
    ]
    for method in module.methods:
        output_lines.extend(_emit_method(method))

    output_lines.extend(
        [
            "    def paginate(self, request: Callable[..., Any], data: Mapping[str, Any], **config: Any) -> list[Any]:",
            '        """',
            "        Paginates exhaustively through the provided `request`, using the specified",
            "        `data`. A `pageSize` can be specified in the `data` to customize the",
            "        page size for pagination.",
            '        """',
            "        result: list[Any] = []",
            "",
            "        next_page_params: dict[str, Any] = {}",
            "        while True:",
            "            response = getattr(self, request.__name__)({**next_page_params, **data}, **config)",
            "            body = response.json()",
            "",
            '            result.extend(body["items"])',
            "",
            '            next_link = (body.get("links") or {}).get("next")',
            "            next_page_params = parse_query_params_from_paging_link(next_link) if next_link else {}",
            '            if not next_page_params.get("nextPageToken"):',
            "                return result",
            "",
        ]
    )
    return output_lines


CLIENT_EMITTERS = [
    emit_header_section,
    emit_imports_section,
    emit_types_section,
    emit_helpers_section,
    emit_client_class_section,
]


def generate_client(contract: Contract, *, class_name: str = "Client", format_output: bool = True) -> str:
    """
    Validate `contract` and return the source of a standalone client module.

    The generated class wraps any transport with a `request(method=..., url=...,
    params=/json=..., **options)` method (see `riptide.transport`) and exposes
    one method per endpoint, named after the endpoint, plus `paginate`.
    """
    validate_contract(contract)
    module = build_client_module(contract, class_name)
    source = render_module(CLIENT_EMITTERS, module)
    logger.debug("generated client %s with %d method(s)", class_name, len(module.methods))
    return format_source(source) if format_output else source
