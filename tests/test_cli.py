from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest
import yaml

from riptide.cli.commands import fetch_remote_schema as fetch_command
from riptide.cli.main import main
from riptide.introspection import IntrospectionResponse


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.chdir(tmp_path)
    for name in ("RIPTIDE_ASSUMPTIONS", "RIPTIDE_API_VERSION", "RIPTIDE_FORMAT_OUTPUT", "RIPTIDE_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def contract_path(posts_document: dict[str, Any], write_document) -> Path:
    return write_document("contract.yml", posts_document)


def test_generate_api_types(contract_path: Path, tmp_path: Path) -> None:
    output = tmp_path / "generated" / "api_types.py"

    assert main(["generate-api-types", "--schema", str(contract_path), "--output", str(output)]) == 0

    source = output.read_text(encoding="utf-8")
    assert "class Post(TypedDict):" in source
    assert "SCHEMA: dict[str, Any] = " in source


def test_assumptions_option_is_applied(contract_path: Path, tmp_path: Path) -> None:
    output = tmp_path / "api_types.py"

    main(["generate-api-types", "--schema", str(contract_path), "--output", str(output), "--assumptions", "none"])

    assert "class Post(TypedDict):\n    id: NotRequired[str]\n" in output.read_text(encoding="utf-8")


def test_generate_client(contract_path: Path, tmp_path: Path) -> None:
    output = tmp_path / "client.py"

    assert main(
        ["generate-client", "--schema", str(contract_path), "--output", str(output), "--name", "PostsClient"]
    ) == 0

    assert "class PostsClient:" in output.read_text(encoding="utf-8")


def test_generate_openapi_spec_as_yaml(contract_path: Path, tmp_path: Path) -> None:
    output = tmp_path / "openapi.yaml"

    assert main(
        ["generate-openapi-spec", "--schema", str(contract_path), "--output", str(output), "--api-title", "Posts"]
    ) == 0

    document = yaml.safe_load(output.read_text(encoding="utf-8"))
    assert document["openapi"] == "3.0.0"
    assert document["info"] == {"title": "Posts", "version": "1.0.0"}


def test_generate_openapi_spec_as_compact_json(contract_path: Path, tmp_path: Path) -> None:
    output = tmp_path / "openapi.json"

    main(
        [
            "generate-openapi-spec",
            "--schema",
            str(contract_path),
            "--output",
            str(output),
            "--api-title",
            "Posts",
            "--api-version",
            "2.0.0",
            "--no-format",
        ]
    )

    text = output.read_text(encoding="utf-8")
    assert "\n" not in text
    assert json.loads(text)["info"]["version"] == "2.0.0"


def test_api_version_defaults_from_the_environment(
    contract_path: Path, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("RIPTIDE_API_VERSION", "9.9.9")
    output = tmp_path / "openapi.json"

    main(["generate-openapi-spec", "--schema", str(contract_path), "--output", str(output), "--api-title", "Posts"])

    assert json.loads(output.read_text(encoding="utf-8"))["info"]["version"] == "9.9.9"


def test_generate_publishable_schema(contract_path: Path, tmp_path: Path) -> None:
    output_dir = tmp_path / "package"

    assert main(
        ["generate-publishable-schema", "--schema", str(contract_path), "--output", str(output_dir), "--name", "Posts"]
    ) == 0

    assert sorted(path.name for path in output_dir.iterdir()) == [
        "__init__.py",
        "client.py",
        "schema.json",
        "schema.yaml",
    ]


def test_fetch_remote_schema(
    posts_document: dict[str, Any], tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    requested: list[tuple[str, float]] = []

    def fake_fetch(url: str, *, timeout: float) -> IntrospectionResponse:
        requested.append((url, timeout))
        return IntrospectionResponse(schema=posts_document, serviceVersion="1.2.3")

    monkeypatch.setattr(fetch_command, "fetch_remote_schema", fake_fetch)
    output = tmp_path / "remote.json"

    assert main(["fetch-remote-schema", "--from", "http://posts/private/introspection", "--output", str(output)]) == 0

    document = json.loads(output.read_text(encoding="utf-8"))
    assert list(document) == ["serviceVersion", "schema"]
    assert document["schema"] == posts_document
    assert requested == [("http://posts/private/introspection", 30.0)]


def test_invalid_contracts_fail_without_writing_output(
    posts_document: dict[str, Any], write_document, tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    posts_document["Endpoints"]["PUT /posts/:id"]["Request"]["properties"]["id"] = {"type": "string"}
    contract_path = write_document("broken.yml", posts_document)
    output = tmp_path / "api_types.py"

    assert main(["generate-api-types", "--schema", str(contract_path), "--output", str(output)]) == 1

    assert not output.exists()
    assert capsys.readouterr().err.startswith("riptide: The id parameter was declared as a path parameter")


def test_missing_schema_file(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = main(
        ["generate-api-types", "--schema", str(tmp_path / "missing.yml"), "--output", str(tmp_path / "out.py")]
    )

    assert exit_code == 1
    assert capsys.readouterr().err.startswith("riptide: ")


def test_unknown_assumption_names(contract_path: Path, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = main(
        [
            "generate-api-types",
            "--schema",
            str(contract_path),
            "--output",
            str(tmp_path / "out.py"),
            "--assumptions",
            "everything",
        ]
    )

    assert exit_code == 1
    assert "Unknown assumption: everything" in capsys.readouterr().err


def test_required_options_are_enforced(contract_path: Path) -> None:
    with pytest.raises(SystemExit) as excinfo:
        main(["generate-openapi-spec", "--schema", str(contract_path), "--output", "openapi.json"])

    assert excinfo.value.code == 2
