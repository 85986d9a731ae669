"""
pass_bundle.descriptor: pass.json serialization.

The descriptor is built from an explicit, ordered table of serializable
attributes rather than by reflecting over the Pass record. Each entry is a
``DescriptorField(name, key, extract, skip)``:

- ``key`` is the JSON key, or a callable of the pass for computed keys
- ``extract`` pulls the raw value from the pass
- ``skip`` decides whether the value is left out

Inclusion rules applied to every declared attribute:
- absent (None) values are omitted
- Asset values are omitted (assets are archive members, never inlined)
- empty lists are omitted
- the field groups are nested under the pass ``type`` value, each group
  renamed through FIELD_GROUP_KEYS; empty groups are omitted

The discriminant ``type`` and ``localizations`` are not in the table.
"""

from __future__ import annotations

import json
from dataclasses import fields as dataclass_fields, is_dataclass
from datetime import date, datetime
from enum import Enum
from operator import attrgetter
from typing import Any, Callable, Dict, List, Mapping, NamedTuple, Tuple, Union

from .errors import PASS_E_INVALID_DOCUMENT, bundle_error
from .models import Asset, FieldType, Pass


FIELD_GROUP_KEYS: Dict[FieldType, str] = {
    FieldType.HEADER: "headerFields",
    FieldType.PRIMARY: "primaryFields",
    FieldType.SECONDARY: "secondaryFields",
    FieldType.AUXILIARY: "auxiliaryFields",
    FieldType.BACK: "backFields",
}


def field_group_key(field_type: Union[FieldType, str]) -> str:
    return FIELD_GROUP_KEYS[FieldType(field_type)]


def is_omitted(value: Any) -> bool:
    """True for values that never appear in the descriptor."""
    if value is None:
        return True
    if isinstance(value, Asset):
        return True
    if isinstance(value, (list, tuple)) and len(value) == 0:
        return True
    return False


def camel_case(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


def to_json_value(value: Any) -> Any:
    """Convert nested domain values into plain JSON types.

    Dataclasses become objects keyed by their declared JSON names, with
    omitted members dropped. Mappings and sequences keep their order.
    """
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if is_dataclass(value) and not isinstance(value, type):
        out: Dict[str, Any] = {}
        for f in dataclass_fields(value):
            v = getattr(value, f.name)
            if is_omitted(v):
                continue
            out[f.metadata.get("json", camel_case(f.name))] = to_json_value(v)
        return out
    if isinstance(value, Mapping):
        return {str(to_json_value(k)): to_json_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_json_value(v) for v in value]
    return value


class DescriptorField(NamedTuple):
    name: str
    key: Union[str, Callable[[Pass], str]]
    extract: Callable[[Pass], Any]
    skip: Callable[[Any], bool]

    def key_for(self, pass_: Pass) -> str:
        return self.key(pass_) if callable(self.key) else self.key


def _attr(name: str, key: str) -> DescriptorField:
    return DescriptorField(name, key, attrgetter(name), is_omitted)


def _field_groups(pass_: Pass) -> Dict[str, Any]:
    groups: Dict[str, Any] = {}
    if pass_.transit_type is not None:
        groups["transitType"] = pass_.transit_type
    for field_type, entries in pass_.fields.items():
        if is_omitted(entries):
            continue
        groups[field_group_key(field_type)] = [to_json_value(e) for e in entries]
    return groups


DESCRIPTOR_FIELDS: Tuple[DescriptorField, ...] = (
    _attr("format_version", "formatVersion"),
    _attr("pass_type_identifier", "passTypeIdentifier"),
    _attr("serial_number", "serialNumber"),
    _attr("team_identifier", "teamIdentifier"),
    _attr("organization_name", "organizationName"),
    _attr("description", "description"),
    _attr("logo_text", "logoText"),
    _attr("foreground_color", "foregroundColor"),
    _attr("background_color", "backgroundColor"),
    _attr("label_color", "labelColor"),
    _attr("grouping_identifier", "groupingIdentifier"),
    _attr("suppress_strip_shine", "suppressStripShine"),
    _attr("sharing_prohibited", "sharingProhibited"),
    _attr("barcode", "barcode"),
    _attr("barcodes", "barcodes"),
    _attr("locations", "locations"),
    _attr("beacons", "beacons"),
    _attr("max_distance", "maxDistance"),
    _attr("relevant_date", "relevantDate"),
    _attr("expiration_date", "expirationDate"),
    _attr("voided", "voided"),
    # Field groups always emit the type key, even when every group is empty.
    DescriptorField("fields", attrgetter("type_key"), _field_groups, lambda _v: False),
    _attr("associated_store_identifiers", "associatedStoreIdentifiers"),
    _attr("app_launch_url", "appLaunchURL"),
    _attr("user_info", "userInfo"),
    _attr("web_service_url", "webServiceURL"),
    _attr("authentication_token", "authenticationToken"),
)


def pass_to_dict(pass_: Pass) -> Dict[str, Any]:
    """Build the ordered pass.json object."""
    out: Dict[str, Any] = {}
    for descriptor in DESCRIPTOR_FIELDS:
        value = descriptor.extract(pass_)
        if descriptor.skip(value):
            continue
        out[descriptor.key_for(pass_)] = to_json_value(value)

    reserved = set(declared_keys(pass_))
    for key, value in pass_.extra.items():
        if key in reserved:
            raise bundle_error(
                PASS_E_INVALID_DOCUMENT,
                f"extra attribute {key!r} collides with a declared pass attribute",
                key=key,
            )
        if is_omitted(value):
            continue
        out[key] = to_json_value(value)
    return out


def serialize_pass(pass_: Pass) -> bytes:
    """Serialize the descriptor to compact UTF-8 JSON."""
    return json.dumps(
        pass_to_dict(pass_),
        separators=(",", ":"),
        ensure_ascii=False,
        allow_nan=False,
    ).encode("utf-8")


def declared_keys(pass_: Pass) -> List[str]:
    """JSON keys the table can produce for this pass, in order."""
    return [d.key_for(pass_) for d in DESCRIPTOR_FIELDS]
