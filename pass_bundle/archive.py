"""ZIP accumulator for a single bundling call.

ArchiveBuilder owns the ZipFile written over the caller's stream. It is
passed explicitly through the assembler and the manifest/signing step;
nothing about an in-progress archive lives in module state.

Members are written through scoped ``ZipFile.open(..., "w")`` handles with a
fixed timestamp, so the same inputs give the same member layout. Payloads are
retained so members can be re-read for digesting even when the caller's
stream is write-only.
"""

from __future__ import annotations

import io
import logging
import zipfile
from typing import BinaryIO, Dict, Iterator, List, Optional, Tuple

from .errors import PASS_E_ARCHIVE_STATE, PASS_E_DUPLICATE_MEMBER, bundle_error

logger = logging.getLogger("pass_bundle.archive")

# Earliest timestamp a ZIP entry can carry.
FIXED_DATE_TIME = (1980, 1, 1, 0, 0, 0)

COMPRESSION_MODES: Dict[str, int] = {
    "deflated": zipfile.ZIP_DEFLATED,
    "stored": zipfile.ZIP_STORED,
}


class ArchiveBuilder:
    """Append-only archive of named byte members."""

    def __init__(self, stream: BinaryIO, *, compression: int = zipfile.ZIP_DEFLATED):
        self._zip: Optional[zipfile.ZipFile] = zipfile.ZipFile(stream, mode="w", compression=compression)
        self._compression = compression
        self._members: Dict[str, bytes] = {}

    def __enter__(self) -> "ArchiveBuilder":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def closed(self) -> bool:
        return self._zip is None

    def close(self) -> None:
        """Write the central directory. The caller's stream stays open."""
        if self._zip is not None:
            zf, self._zip = self._zip, None
            zf.close()

    def add(self, name: str, data: bytes) -> None:
        if self._zip is None:
            raise bundle_error(PASS_E_ARCHIVE_STATE, f"archive is closed; cannot add {name!r}", member=name)
        if name in self._members:
            raise bundle_error(PASS_E_DUPLICATE_MEMBER, f"duplicate archive member: {name}", member=name)

        payload = bytes(data)
        info = zipfile.ZipInfo(name, date_time=FIXED_DATE_TIME)
        info.compress_type = self._compression
        info.external_attr = 0o644 << 16
        with self._zip.open(info, mode="w") as member:
            member.write(payload)
        self._members[name] = payload
        logger.debug("wrote member %s (%d bytes)", name, len(payload))

    def add_text(self, name: str, text: str) -> None:
        self.add(name, text.encode("utf-8"))

    def names(self) -> List[str]:
        """Member names in the order they were written."""
        return list(self._members)

    def open_member(self, name: str) -> BinaryIO:
        return io.BytesIO(self._members[name])

    def read(self, name: str) -> bytes:
        return self._members[name]

    def members(self) -> Iterator[Tuple[str, BinaryIO]]:
        for name in self.names():
            yield name, self.open_member(name)

    def __contains__(self, name: object) -> bool:
        return name in self._members

    def __len__(self) -> int:
        return len(self._members)
