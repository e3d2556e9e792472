from __future__ import annotations

import copy
from typing import Any

import pytest

from riptide.assumptions import (
    DEFAULT_ASSUMPTIONS,
    NO_ASSUMPTIONS,
    SchemaAssumptions,
    apply_assumptions,
    close_object,
    parse_assumptions,
    require_properties,
)
from riptide.contract import Contract

CLOSE_ONLY = SchemaAssumptions(close_objects_by_default=True, require_properties_by_default=False)


def test_defaults_close_objects_and_require_non_optional_properties(posts_contract: Contract) -> None:
    assert posts_contract.resources["Post"] == {
        "type": "object",
        "additionalProperties": False,
        "required": ["id", "message"],
        "properties": {"id": {"type": "string"}, "message": {"type": "string"}},
    }
    assert posts_contract.endpoints["GET /posts"].request == {
        "type": "object",
        "additionalProperties": False,
        "required": [],
        "properties": {"nextPageToken": {"type": "string"}, "pageSize": {"type": "string"}},
    }


def test_nested_objects_get_the_same_defaults(posts_contract: Contract) -> None:
    links = posts_contract.endpoints["GET /posts"].response["properties"]["links"]

    assert links["additionalProperties"] is False
    assert links["required"] == ["self"]
    assert links["properties"]["next"] == {"type": "string"}


def test_explicit_values_win_over_defaults() -> None:
    schema = {
        "type": "object",
        "additionalProperties": True,
        "required": ["a"],
        "properties": {"a": {"type": "string"}, "b": {"type": "string"}},
    }

    assert require_properties(close_object(schema)) == schema


def test_objects_without_properties_get_no_required_list() -> None:
    assert require_properties({"type": "object"}) == {"type": "object"}
    assert require_properties({"type": "object", "properties": {}}) == {"type": "object", "properties": {}}


def test_non_object_nodes_are_untouched() -> None:
    assert close_object({"type": "string"}) == {"type": "string"}


def test_close_objects_is_idempotent(posts_document: dict[str, Any]) -> None:
    contract = Contract.from_document(posts_document)

    once = apply_assumptions(contract, CLOSE_ONLY)

    assert apply_assumptions(once, CLOSE_ONLY) == once


def test_all_assumptions_are_idempotent(posts_contract: Contract) -> None:
    assert apply_assumptions(posts_contract, DEFAULT_ASSUMPTIONS) == posts_contract


def test_no_assumptions_is_an_identity(posts_document: dict[str, Any]) -> None:
    contract = Contract.from_document(posts_document)

    result = apply_assumptions(contract, NO_ASSUMPTIONS)

    assert result == contract
    assert result is not contract


def test_input_contract_is_not_modified(posts_document: dict[str, Any]) -> None:
    contract = Contract.from_document(posts_document)
    before = copy.deepcopy(contract.to_document())

    apply_assumptions(contract)

    assert contract.to_document() == before


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        (None, DEFAULT_ASSUMPTIONS),
        ("all", DEFAULT_ASSUMPTIONS),
        ("none", NO_ASSUMPTIONS),
        ("close-objects-by-default", CLOSE_ONLY),
        (
            "require_properties_by_default",
            SchemaAssumptions(close_objects_by_default=False, require_properties_by_default=True),
        ),
        ("close_objects_by_default, require-properties-by-default", DEFAULT_ASSUMPTIONS),
    ],
)
def test_parse_assumptions(raw: str | None, expected: SchemaAssumptions) -> None:
    assert parse_assumptions(raw) == expected


def test_parse_assumptions_rejects_unknown_names() -> None:
    with pytest.raises(ValueError, match="Unknown assumption: bogus"):
        parse_assumptions("bogus")
