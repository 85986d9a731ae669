"""
Pass document loader.

A pass document is the JSON input of `pass-bundle build`. It uses the same
camelCase keys as pass.json for pass attributes, plus:

- "type": the pass style, e.g. "boardingPass"
- "fields": {"header"|"primary"|"secondary"|"auxiliary"|"back": [field, ...]}
- "transitType": emitted inside the field-group object
- "assets": {"icon.png": "images/icon.png", ...}, paths relative to the document
- "localizations": [{"culture": "fr", "values": {...}, "assets": {...}}]
- "extra": additional pass.json attributes, emitted verbatim

Documents are validated against schemas/pass_document.schema.json first.
"""

from __future__ import annotations

import json
from dataclasses import fields as dataclass_fields
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Type, TypeVar, Union

from .descriptor import DESCRIPTOR_FIELDS, camel_case
from .errors import PASS_E_INVALID_DOCUMENT, bundle_error
from .models import Asset, AssetSlots, Barcode, Beacon, Field, FieldType, Localization, Location, Pass, PassType
from .schema import validate_instance

T = TypeVar("T")

_NESTED: Dict[str, Any] = {
    "barcode": Barcode,
    "barcodes": [Barcode],
    "locations": [Location],
    "beacons": [Beacon],
}

# pass.json key -> Pass attribute, for plain attributes of the descriptor table.
_ATTRIBUTE_KEYS: Dict[str, str] = {
    d.key: d.name for d in DESCRIPTOR_FIELDS if isinstance(d.key, str)
}


def _from_json(cls: Type[T], data: Mapping[str, Any]) -> T:
    kwargs: Dict[str, Any] = {}
    for f in dataclass_fields(cls):  # type: ignore[arg-type]
        key = f.metadata.get("json", camel_case(f.name))
        if key in data:
            kwargs[f.name] = data[key]
    return cls(**kwargs)


def _load_assets(slots: AssetSlots, assets: Mapping[str, str], base_dir: Path) -> None:
    for filename, rel_path in assets.items():
        path = Path(rel_path)
        if not path.is_absolute():
            path = base_dir / path
        slots.set_asset(filename, Asset.from_file(path))


def pass_from_document(doc: Mapping[str, Any], *, base_dir: Optional[Union[str, Path]] = None) -> Pass:
    """Validate a pass document and build the Pass record.

    Asset files are read immediately; a missing file raises OSError.
    """
    ok, messages = validate_instance(doc)
    if not ok:
        raise bundle_error(
            PASS_E_INVALID_DOCUMENT,
            "pass document failed schema validation",
            errors=[m.detail for m in messages if not m.ok],
        )

    base = Path(base_dir) if base_dir is not None else Path.cwd()
    kwargs: Dict[str, Any] = {"type": PassType(doc["type"])}
    for key, value in doc.items():
        attr = _ATTRIBUTE_KEYS.get(key)
        if attr is None:
            continue
        nested = _NESTED.get(attr)
        if isinstance(nested, list):
            value = [_from_json(nested[0], item) for item in value]
        elif nested is not None:
            value = _from_json(nested, value)
        kwargs[attr] = value

    if "transitType" in doc:
        kwargs["transit_type"] = doc["transitType"]
    if "extra" in doc:
        kwargs["extra"] = dict(doc["extra"])

    pass_ = Pass(**kwargs)

    for group, entries in (doc.get("fields") or {}).items():
        field_type = FieldType(group)
        for entry in entries:
            pass_.add_field(field_type, _from_json(Field, entry))

    _load_assets(pass_, doc.get("assets") or {}, base)

    for loc in doc.get("localizations") or []:
        localization = Localization(culture=loc["culture"], values=dict(loc.get("values") or {}))
        _load_assets(localization, loc.get("assets") or {}, base)
        pass_.add_localization(localization)

    return pass_


def load_pass_document(path: Union[str, Path]) -> Pass:
    """Read a pass document from disk; asset paths resolve against its directory."""
    p = Path(path)
    try:
        with p.open("r", encoding="utf-8") as f:
            doc = json.load(f)
    except json.JSONDecodeError as e:
        raise bundle_error(PASS_E_INVALID_DOCUMENT, f"{p.name} is not valid JSON: {e}", path=str(p)) from e
    return pass_from_document(doc, base_dir=p.parent)
