"""Render a contract's endpoint types as an importable Python module."""
from __future__ import annotations

import logging
import pprint
from dataclasses import dataclass
from typing import Any, Iterable

from riptide.contract import Contract
from riptide.endpoints import build_endpoints_schema
from riptide.meta_schema import validate_contract
from riptide.typegen import CompiledTypes, compile_schema, format_source, render_module

logger = logging.getLogger(__name__)

GENERATED_HEADER = '"""Generated by riptide from a contract. Do not edit by hand."""'


@dataclass(frozen=True)
class ApiTypesModule:
    contract: Contract
    compiled: CompiledTypes


def emit_header_section(module: ApiTypesModule) -> list[str]:
    return [GENERATED_HEADER, "from __future__ import annotations", ""]


def emit_imports_section(module: ApiTypesModule) -> list[str]:
    return module.compiled.render_imports({"Any"}) + ["", ""]


def emit_declarations_section(module: ApiTypesModule) -> list[str]:
    return module.compiled.render_declarations()


def emit_schema_section(module: ApiTypesModule) -> list[str]:
    """Embed the contract document itself, for runtime introspection."""
    schema_literal = pprint.pformat(module.contract.to_document(), indent=1, width=100, sort_dicts=False)
    return [f"SCHEMA: dict[str, Any] = {schema_literal}", ""]


API_TYPES_EMITTERS = [
    emit_header_section,
    emit_imports_section,
    emit_declarations_section,
    emit_schema_section,
]


def compile_endpoint_types(contract: Contract, *, reserved_names: Iterable[str] = ()) -> CompiledTypes:
    """Compile the composite endpoints schema; the root type is exported as `Endpoints`."""
    return compile_schema(
        build_endpoints_schema(contract),
        root_name="Endpoints",
        reserved_names={"SCHEMA", *reserved_names},
    )


def generate_api_types(contract: Contract, *, format_output: bool = True) -> str:
    """
    Validate `contract` and return Python source declaring its types.

    The module exports one TypedDict per resource, an `Endpoints` mapping
    from endpoint key to its `Request`/`PathParams`/`Response` types, and
    `SCHEMA`, the contract document as a literal.
    """
    validate_contract(contract)
    module = ApiTypesModule(contract=contract, compiled=compile_endpoint_types(contract))
    source = render_module(API_TYPES_EMITTERS, module)
    logger.debug("generated api types for %d endpoint(s)", len(contract.endpoints))
    return format_source(source) if format_output else source
