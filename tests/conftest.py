from __future__ import annotations

import copy
import socket
from pathlib import Path
from typing import Any

import pytest
from hypothesis import settings

from riptide.assumptions import apply_assumptions
from riptide.contract import Contract
from riptide.documents import dump_json, dump_yaml, is_yaml_path

_ALLOWED_MARKERS = {"unit", "integration", "slow"}

settings.register_profile("riptide", deadline=None, max_examples=50)
settings.load_profile("riptide")


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    for item in items:
        names = {mark.name for mark in item.iter_markers()}
        if not names.intersection(_ALLOWED_MARKERS):
            item.add_marker("unit")


@pytest.fixture(autouse=True)
def no_network_for_unit(request: pytest.FixtureRequest, monkeypatch: pytest.MonkeyPatch) -> None:
    if request.node.get_closest_marker("integration") or request.node.get_closest_marker("slow"):
        return

    def _blocked(*_args: object, **_kwargs: object) -> socket.socket:
        raise RuntimeError("network disabled in unit tests")

    def _blocked_connect(*_args: object, **_kwargs: object) -> None:
        raise RuntimeError("network disabled in unit tests")

    monkeypatch.setattr(socket, "create_connection", _blocked)
    monkeypatch.setattr(socket.socket, "connect", _blocked_connect)


POSTS_DOCUMENT: dict[str, Any] = {
    "Resources": {
        "Post": {
            "type": "object",
            "properties": {
                "id": {"type": "string"},
                "message": {"type": "string"},
            },
        },
    },
    "Endpoints": {
        "GET /posts": {
            "Name": "listPosts",
            "Description": "Lists posts, a page at a time.",
            "Request": {
                "type": "object",
                "properties": {
                    "nextPageToken": {"type": "string", "optional": True},
                    "pageSize": {"type": "string", "optional": True},
                },
            },
            "Response": {
                "type": "object",
                "properties": {
                    "items": {"type": "array", "items": {"$ref": "#/definitions/Post"}},
                    "links": {
                        "type": "object",
                        "properties": {
                            "self": {"type": "string"},
                            "next": {"type": "string", "optional": True},
                        },
                    },
                },
            },
        },
        "GET /posts/:id": {
            "Name": "getPostById",
            "Response": {"$ref": "#/definitions/Post"},
        },
        "PUT /posts/:id": {
            "Name": "putPost",
            "Request": {
                "type": "object",
                "properties": {"message": {"type": "string"}},
            },
            "Response": {"$ref": "#/definitions/Post"},
        },
        "POST /posts": {
            "Name": "createPost",
            "Request": {
                "type": "object",
                "properties": {"message": {"type": "string"}},
            },
            "Response": {"$ref": "#/definitions/Post"},
        },
        "DELETE /posts/:id": {
            "Name": "deletePost",
            "Response": {"$ref": "#/definitions/Post"},
        },
    },
}


@pytest.fixture
def posts_document() -> dict[str, Any]:
    return copy.deepcopy(POSTS_DOCUMENT)


@pytest.fixture
def posts_contract(posts_document: dict[str, Any]) -> Contract:
    """The posts contract with default assumptions applied."""
    return apply_assumptions(Contract.from_document(posts_document))


@pytest.fixture
def write_document(tmp_path: Path):
    """Write a document as YAML or JSON under tmp_path and return the path."""

    def _write(name: str, document: Any) -> Path:
        path = tmp_path / name
        path.write_text(dump_yaml(document) if is_yaml_path(path) else dump_json(document), encoding="utf-8")
        return path

    return _write
