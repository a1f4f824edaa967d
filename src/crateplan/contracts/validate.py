from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from typing import Any

import jsonschema

from ..errors import ManifestError

SCHEMAS_DIR = Path(__file__).resolve().parent / "schemas"

SCHEMA_FILES = {
    "crateplan.workspace.v1": "workspace.v1.schema.json",
    "crateplan.toolchain.v1": "toolchain.v1.schema.json",
    "crateplan.plan.v1": "plan.v1.schema.json",
    "crateplan.error.v1": "error.v1.schema.json",
}


def schema_path_for(schema_name: str) -> Path:
    try:
        return SCHEMAS_DIR / SCHEMA_FILES[schema_name]
    except KeyError:
        raise ManifestError(f"unknown schema: {schema_name}") from None


@lru_cache(maxsize=None)
def load_schema(schema_name: str) -> dict[str, Any]:
    return json.loads(schema_path_for(schema_name).read_text(encoding="utf-8"))


def validate(schema_name: str, payload: Any, source: str = "") -> None:
    schema = load_schema(schema_name)
    try:
        jsonschema.validate(payload, schema)
    except jsonschema.ValidationError as exc:
        pointer = "/".join(str(p) for p in exc.absolute_path)
        loc = pointer or "<root>"
        where = f" in {source}" if source else ""
        raise ManifestError(f"schema validation failed for {schema_name}{where} at {loc}: {exc.message}") from exc
