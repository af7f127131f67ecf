"""JSON Schema validation for persisted registry documents.

Provides:
- A schema registry built from every file under tessera/schemas
- Cached validators
- Error lists sorted by document path
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any, List

from jsonschema import Draft202012Validator
from referencing import Registry, Resource
from referencing.jsonschema import DRAFT202012

from tessera.core import PACKAGE_ROOT, load_json

SCHEMAS_DIR = PACKAGE_ROOT / "schemas"

SNAPSHOT_SCHEMA = "registry-snapshot.schema.json"


@lru_cache(maxsize=1)
def _schema_registry(schemas_dir: Path = SCHEMAS_DIR) -> Registry:
    """Build a schema registry so `$ref`s between schema files resolve."""
    resources = []
    for schema_path in sorted(schemas_dir.glob("*.schema.json")):
        schema = load_json(schema_path)
        schema_id = schema.get("$id") or f"https://schemas.tessera.dev/{schema_path.name}"
        resources.append((schema_id, Resource.from_contents(schema, default_specification=DRAFT202012)))
    return Registry().with_resources(resources)


@lru_cache(maxsize=None)
def schema_validator(name: str) -> Draft202012Validator:
    """Create (once) a validator for a schema file under tessera/schemas."""
    schema = load_json(SCHEMAS_DIR / name)
    return Draft202012Validator(schema, registry=_schema_registry())


def validation_errors(instance: Any, name: str) -> List[str]:
    """Return human-readable errors for `instance`, empty when valid."""
    v = schema_validator(name)
    errs = sorted(v.iter_errors(instance), key=lambda e: [str(p) for p in e.absolute_path])
    out = []
    for e in errs:
        where = "/".join(str(p) for p in e.absolute_path) or "<root>"
        out.append(f"{where}: {e.message}")
    return out
