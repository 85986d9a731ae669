"""
Pass record data model.

A Pass is the record that gets packaged into a signed archive:

- a discriminant `type` (boardingPass, coupon, eventTicket, generic, storeCard)
- domain attributes (identifiers, colors, barcodes, locations, dates, ...)
- a FieldType -> [Field] mapping, insertion order = display order
- 18 optional asset slots (icon/logo/background/footer/strip/thumbnail x 1x/2x/3x)
- optional Localization entries, each with string overrides and its own slots

Nested structures (Field, Barcode, Location, Beacon) carry their JSON key in
field metadata when it differs from the plain camelCase of the attribute name.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union


class PassType(str, Enum):
    BOARDING_PASS = "boardingPass"
    COUPON = "coupon"
    EVENT_TICKET = "eventTicket"
    GENERIC = "generic"
    STORE_CARD = "storeCard"


class FieldType(Enum):
    HEADER = "header"
    PRIMARY = "primary"
    SECONDARY = "secondary"
    AUXILIARY = "auxiliary"
    BACK = "back"


def _json_key(name: str) -> Dict[str, str]:
    return {"json": name}


@dataclass(frozen=True)
class Asset:
    """Opaque image payload. Only the bytes matter."""
    data: bytes

    def __post_init__(self):
        if not isinstance(self.data, (bytes, bytearray, memoryview)):
            raise TypeError("Asset data must be bytes")
        object.__setattr__(self, "data", bytes(self.data))

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "Asset":
        return cls(Path(path).read_bytes())


# Slot attribute name -> archive filename, in write order.
ASSET_SLOT_NAMES: Tuple[str, ...] = ("icon", "logo", "background", "footer", "strip", "thumbnail")
ASSET_RESOLUTIONS: Tuple[Tuple[str, str], ...] = (("", ""), ("_2x", "@2x"), ("_3x", "@3x"))
ASSET_SLOTS: Tuple[Tuple[str, str], ...] = tuple(
    (f"{slot}{attr_suffix}", f"{slot}{file_suffix}.png")
    for slot in ASSET_SLOT_NAMES
    for attr_suffix, file_suffix in ASSET_RESOLUTIONS
)


@dataclass
class AssetSlots:
    """The 18 optional image slots shared by passes and localizations."""
    icon: Optional[Asset] = None
    icon_2x: Optional[Asset] = None
    icon_3x: Optional[Asset] = None
    logo: Optional[Asset] = None
    logo_2x: Optional[Asset] = None
    logo_3x: Optional[Asset] = None
    background: Optional[Asset] = None
    background_2x: Optional[Asset] = None
    background_3x: Optional[Asset] = None
    footer: Optional[Asset] = None
    footer_2x: Optional[Asset] = None
    footer_3x: Optional[Asset] = None
    strip: Optional[Asset] = None
    strip_2x: Optional[Asset] = None
    strip_3x: Optional[Asset] = None
    thumbnail: Optional[Asset] = None
    thumbnail_2x: Optional[Asset] = None
    thumbnail_3x: Optional[Asset] = None

    def asset_slots(self) -> Iterator[Tuple[str, Optional[Asset]]]:
        """Yield (filename, asset-or-None) for every slot in fixed order."""
        for attr, filename in ASSET_SLOTS:
            yield filename, getattr(self, attr)

    def set_asset(self, filename: str, asset: Optional[Asset]) -> None:
        """Assign a slot by its archive filename (e.g. ``logo@2x.png``)."""
        for attr, name in ASSET_SLOTS:
            if name == filename:
                setattr(self, attr, asset)
                return
        raise KeyError(f"Unknown asset slot: {filename}")


@dataclass
class Field:
    """A label/value pair shown in one of the pass field groups."""
    key: str
    value: Any
    label: Optional[str] = None
    change_message: Optional[str] = None
    text_alignment: Optional[str] = None
    attributed_value: Any = None
    date_style: Optional[str] = None
    time_style: Optional[str] = None
    is_relative: Optional[bool] = None
    ignores_time_zone: Optional[bool] = None
    number_style: Optional[str] = None
    currency_code: Optional[str] = None
    data_detector_types: List[str] = field(default_factory=list)


@dataclass
class Barcode:
    message: str
    format: str = "PKBarcodeFormatQR"
    message_encoding: str = "iso-8859-1"
    alt_text: Optional[str] = None


@dataclass
class Location:
    latitude: float
    longitude: float
    altitude: Optional[float] = None
    relevant_text: Optional[str] = None


@dataclass
class Beacon:
    proximity_uuid: str = field(metadata=_json_key("proximityUUID"))
    major: Optional[int] = None
    minor: Optional[int] = None
    relevant_text: Optional[str] = None


@dataclass(kw_only=True)
class Localization(AssetSlots):
    """Locale-scoped overrides, written under ``<culture>.lproj/``."""
    culture: str
    values: Dict[str, str] = field(default_factory=dict)


@dataclass(kw_only=True)
class Pass(AssetSlots):
    """The record packaged into a pass archive.

    Attribute declaration order is the key order of ``pass.json``; see
    ``pass_bundle.descriptor.DESCRIPTOR_FIELDS``.
    """
    type: Union[PassType, str]
    pass_type_identifier: str
    serial_number: str
    team_identifier: str
    organization_name: str
    description: str
    format_version: int = 1
    logo_text: Optional[str] = None
    foreground_color: Optional[str] = None
    background_color: Optional[str] = None
    label_color: Optional[str] = None
    grouping_identifier: Optional[str] = None
    suppress_strip_shine: Optional[bool] = None
    sharing_prohibited: Optional[bool] = None
    barcode: Optional[Barcode] = None
    barcodes: List[Barcode] = field(default_factory=list)
    locations: List[Location] = field(default_factory=list)
    beacons: List[Beacon] = field(default_factory=list)
    max_distance: Optional[float] = None
    relevant_date: Optional[Union[datetime, str]] = None
    expiration_date: Optional[Union[datetime, str]] = None
    voided: Optional[bool] = None
    fields: Dict[FieldType, List[Field]] = field(default_factory=dict)
    transit_type: Optional[str] = None
    associated_store_identifiers: List[int] = field(default_factory=list)
    app_launch_url: Optional[str] = None
    user_info: Optional[Dict[str, Any]] = None
    web_service_url: Optional[str] = None
    authentication_token: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)
    localizations: List[Localization] = field(default_factory=list)

    @property
    def type_key(self) -> str:
        """JSON key the field groups are nested under."""
        return self.type.value if isinstance(self.type, PassType) else str(self.type)

    def add_field(self, field_type: FieldType, entry: Field) -> "Pass":
        self.fields.setdefault(field_type, []).append(entry)
        return self

    def add_localization(self, localization: Localization) -> "Pass":
        self.localizations.append(localization)
        return self
