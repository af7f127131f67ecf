"""Hashing and canonical JSON for registry state.

Snapshots are hashed over their canonical form: keys sorted, no insignificant
whitespace, UTF-8, and no floats (ids and counts are integers, and float
formatting is not stable across producers).
"""

from __future__ import annotations

import hashlib
import json
import pathlib
from typing import Any, Iterator, Tuple

PACKAGE_ROOT = pathlib.Path(__file__).resolve().parent


def sha256_bytes(data: bytes) -> str:
    """Lowercase hex sha256 of `data`."""
    return hashlib.sha256(data).hexdigest()


def _walk(obj: Any, path: str = "$") -> Iterator[Tuple[str, Any]]:
    yield path, obj
    if isinstance(obj, dict):
        for key, value in obj.items():
            yield from _walk(value, f"{path}.{key}")
    elif isinstance(obj, (list, tuple)):
        for index, value in enumerate(obj):
            yield from _walk(value, f"{path}[{index}]")


def canonical_json_bytes(obj: Any) -> bytes:
    """Canonical UTF-8 JSON encoding of `obj`; raises ValueError on floats."""
    for path, value in _walk(obj):
        if isinstance(value, float):
            raise ValueError(f"float at {path} cannot be canonicalized")
    text = json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    return text.encode("utf-8")


def load_json(path: pathlib.Path) -> Any:
    return json.loads(pathlib.Path(path).read_text(encoding="utf-8"))


def write_json(path: pathlib.Path, obj: Any) -> None:
    """Write `obj` as indented, key-sorted JSON, creating parent directories."""
    path = pathlib.Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    text = json.dumps(obj, indent=2, sort_keys=True, ensure_ascii=False)
    path.write_text(text + "\n", encoding="utf-8")
