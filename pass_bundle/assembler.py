"""
Bundle assembly: pass record -> archive members.

Writes, in order:
1. pass.json
2. top-level assets (one member per present slot)
3. per localization: <culture>.lproj/pass.strings and its asset overrides

Absent assets contribute nothing. Any failure writing a member aborts the
bundling call.
"""

from __future__ import annotations

import re
from typing import Dict

from .archive import ArchiveBuilder
from .descriptor import serialize_pass
from .errors import PASS_E_INVALID_DOCUMENT, bundle_error
from .models import AssetSlots, Localization, Pass

PASS_JSON = "pass.json"
PASS_STRINGS = "pass.strings"

# Same pattern as the document schema's localization.culture.
CULTURE_RE = re.compile(r"^[A-Za-z0-9_-]+$")


def localization_prefix(culture: str) -> str:
    if not isinstance(culture, str) or not CULTURE_RE.fullmatch(culture):
        raise bundle_error(
            PASS_E_INVALID_DOCUMENT,
            f"invalid localization culture: {culture!r}",
            culture=culture,
        )
    return f"{culture}.lproj/"


def format_pass_strings(values: Dict[str, str]) -> str:
    """One ``"key" = "value";`` line per pair, in mapping order."""
    return "\n".join(f'"{key}" = "{value}";' for key, value in values.items())


def add_descriptor(archive: ArchiveBuilder, pass_: Pass) -> None:
    archive.add(PASS_JSON, serialize_pass(pass_))


def add_assets(archive: ArchiveBuilder, slots: AssetSlots, prefix: str = "") -> int:
    """Write every present asset slot. Returns the number of members written."""
    written = 0
    for filename, asset in slots.asset_slots():
        if asset is None:
            continue
        archive.add(prefix + filename, asset.data)
        written += 1
    return written


def add_localization(archive: ArchiveBuilder, localization: Localization) -> None:
    prefix = localization_prefix(localization.culture)
    if localization.values:
        archive.add_text(prefix + PASS_STRINGS, format_pass_strings(localization.values))
    add_assets(archive, localization, prefix)


def add_localizations(archive: ArchiveBuilder, pass_: Pass) -> None:
    for localization in pass_.localizations or []:
        add_localization(archive, localization)


def assemble(archive: ArchiveBuilder, pass_: Pass) -> None:
    """Write the descriptor, assets and localizations for one pass."""
    add_descriptor(archive, pass_)
    add_assets(archive, pass_)
    add_localizations(archive, pass_)
