"""Reading and writing contract documents as YAML or JSON."""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import yaml

from riptide.errors import MetaShapeError


class _BlockStyleDumper(yaml.SafeDumper):
    """SafeDumper that keeps multi-line strings readable as literal blocks."""


def _represent_str(dumper: yaml.SafeDumper, value: str) -> yaml.ScalarNode:
    # The emitter falls back to a quoted style when a literal block cannot
    # represent the text exactly (trailing spaces, special characters).
    if "\n" in value:
        return dumper.represent_scalar("tag:yaml.org,2002:str", value, style="|")
    return dumper.represent_scalar("tag:yaml.org,2002:str", value)


_BlockStyleDumper.add_representer(str, _represent_str)


def dump_yaml(document: Any) -> str:
    """Serialize a document to YAML, preserving key order and newlines."""
    return yaml.dump(
        document,
        Dumper=_BlockStyleDumper,
        sort_keys=False,
        allow_unicode=True,
        width=float("inf"),
    )


def dump_json(document: Any, *, indent: int | None = 2) -> str:
    text = json.dumps(document, indent=indent, ensure_ascii=False)
    return text + "\n" if indent is not None else text


def parse_document(text: str, *, source: str = "<string>") -> Any:
    """Parse YAML or JSON text into plain Python data."""
    try:
        return yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise MetaShapeError(f"Failed to parse {source}: {exc}") from exc


def load_document(path: str | Path) -> Any:
    """Read a YAML or JSON document from disk."""
    file_path = Path(path)
    return parse_document(file_path.read_text(encoding="utf-8"), source=str(file_path))


def is_yaml_path(path: str | Path) -> bool:
    return Path(path).suffix.lower() in {".yml", ".yaml"}
