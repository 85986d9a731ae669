"""pass_bundle.schema: JSON Schema validation for pass documents.

This module underpins the `pass-bundle validate` CLI subcommand and the
document loader.

Design notes:
- Uses jsonschema Draft 2020-12.
- Fails closed: schema load errors are treated as validation failures.
- The schema ships inside the package (pass_bundle/schemas/).
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import jsonschema


@dataclass
class SchemaMessage:
    ok: bool
    code: str
    detail: str


SCHEMA_FILES: Dict[str, str] = {
    "pass_document": "pass_document.schema.json",
}

_MAX_REPORTED_ERRORS = 50


def _load_json(path: Path) -> Any:
    with path.open("r", encoding="utf-8") as f:
        return json.load(f)


def default_schemas_dir() -> Path:
    return Path(__file__).resolve().parent / "schemas"


@lru_cache(maxsize=None)
def _get_validator(schema_name: str, schemas_dir: Path) -> jsonschema.Draft202012Validator:
    schema_file = SCHEMA_FILES.get(schema_name)
    if not schema_file:
        raise ValueError(f"Unknown schema: {schema_name}")
    schema = _load_json(schemas_dir / schema_file)
    return jsonschema.Draft202012Validator(schema)


def validate_instance(
    obj: Any,
    *,
    schema_name: str = "pass_document",
    schemas_dir: Optional[Path] = None,
) -> Tuple[bool, List[SchemaMessage]]:
    schemas_dir = schemas_dir or default_schemas_dir()
    msgs: List[SchemaMessage] = []
    try:
        validator = _get_validator(schema_name, schemas_dir)
        errors = sorted(validator.iter_errors(obj), key=lambda e: [str(p) for p in e.absolute_path])
    except FileNotFoundError as e:
        return False, [SchemaMessage(False, "SCHEMA_MISSING", str(e))]
    except (ValueError, jsonschema.exceptions.SchemaError) as e:
        return False, [SchemaMessage(False, "SCHEMA_VALIDATE_EXCEPTION", str(e))]

    if errors:
        for e in errors[:_MAX_REPORTED_ERRORS]:
            loc = "/".join(str(p) for p in e.absolute_path) or "<root>"
            msgs.append(SchemaMessage(False, "SCHEMA_ERROR", f"{schema_name} {loc}: {e.message}"))
        if len(errors) > _MAX_REPORTED_ERRORS:
            msgs.append(SchemaMessage(
                False, "SCHEMA_ERROR", f"{schema_name}: {len(errors) - _MAX_REPORTED_ERRORS} more errors..."
            ))
        return False, msgs
    msgs.append(SchemaMessage(True, "SCHEMA_OK", f"{schema_name}: valid"))
    return True, msgs


def validate_file(
    path: Path,
    *,
    schema_name: str = "pass_document",
    schemas_dir: Optional[Path] = None,
) -> Tuple[bool, List[SchemaMessage]]:
    if not path.exists():
        return False, [SchemaMessage(False, "NOT_FOUND", str(path))]
    try:
        obj = _load_json(path)
    except json.JSONDecodeError as e:
        return False, [SchemaMessage(False, "JSON_PARSE_ERROR", f"{path.name}: {e}")]
    return validate_instance(obj, schema_name=schema_name, schemas_dir=schemas_dir)


def list_schemas() -> List[str]:
    return sorted(SCHEMA_FILES.keys())
