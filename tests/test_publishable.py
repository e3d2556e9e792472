from __future__ import annotations

import json
from dataclasses import replace

import yaml

from riptide.contract import Contract
from riptide.publishable import generate_publishable_client, generate_publishable_schema

PACKAGE_JSON = {"name": "@example/posts-api", "version": "1.4.0"}


def test_schema_files_without_package_metadata(posts_contract: Contract) -> None:
    files = generate_publishable_schema(posts_contract)

    assert set(files) == {"schema.json", "schema.yaml"}
    assert json.loads(files["schema.json"]) == posts_contract.to_document()
    assert yaml.safe_load(files["schema.yaml"]) == posts_contract.to_document()


def test_package_json_comes_from_meta(posts_contract: Contract) -> None:
    contract = replace(posts_contract, meta={"PackageJSON": PACKAGE_JSON})

    files = generate_publishable_schema(contract)

    assert json.loads(files["package.json"]) == PACKAGE_JSON
    assert json.loads(files["schema.json"])["Meta"] == {"PackageJSON": PACKAGE_JSON}


def test_client_package(posts_contract: Contract) -> None:
    contract = replace(posts_contract, meta={"PackageJSON": PACKAGE_JSON})

    files = generate_publishable_client(contract, class_name="PostsClient")

    assert set(files) == {"schema.json", "schema.yaml", "package.json", "client.py", "__init__.py"}
    assert "class PostsClient:" in files["client.py"]
    assert files["__init__.py"] == 'from .client import PostsClient\n\n__all__ = ["PostsClient"]\n'
    assert json.loads(files["package.json"]) == {**PACKAGE_JSON, "main": "client.py"}


def test_client_package_without_meta_has_no_package_json(posts_contract: Contract) -> None:
    assert "package.json" not in generate_publishable_client(posts_contract)
