"""
pass_bundle.manifest: digest manifest for pass archives.

manifest.json maps every archive member written before it (pass.json, assets,
localized members) to the lowercase hex digest of the member's bytes. It is
computed after assembly and before signing; it never lists itself or the
signature.

verify_manifest() re-checks a finished archive's digests. It does not verify
the CMS signature.
"""

from __future__ import annotations

import hashlib
import io
import json
import zipfile
from pathlib import Path
from typing import BinaryIO, Dict, List, Tuple, Union

from .archive import ArchiveBuilder
from .errors import PASS_E_ARCHIVE_STATE, PASS_E_UNSUPPORTED_DIGEST, bundle_error

MANIFEST_JSON = "manifest.json"
SIGNATURE = "signature"

DEFAULT_DIGEST = "sha1"
DIGEST_ALGORITHMS: Tuple[str, ...] = ("sha1", "sha224", "sha256", "sha384", "sha512")

_CHUNK_SIZE = 64 * 1024


def normalize_digest(name: str) -> str:
    alg = str(name or "").strip().lower().replace("-", "")
    if alg not in DIGEST_ALGORITHMS:
        raise bundle_error(
            PASS_E_UNSUPPORTED_DIGEST,
            f"Unsupported digest algorithm: {name!r} (expected one of {', '.join(DIGEST_ALGORITHMS)})",
            algorithm=name,
        )
    return alg


def digest_stream(stream: BinaryIO, algorithm: str = DEFAULT_DIGEST) -> str:
    h = hashlib.new(normalize_digest(algorithm))
    for chunk in iter(lambda: stream.read(_CHUNK_SIZE), b""):
        h.update(chunk)
    return h.hexdigest()


def generate_manifest(archive: ArchiveBuilder, algorithm: str = DEFAULT_DIGEST) -> Dict[str, str]:
    """Digest every current member, in archive order."""
    for reserved in (MANIFEST_JSON, SIGNATURE):
        if reserved in archive:
            raise bundle_error(
                PASS_E_ARCHIVE_STATE,
                f"manifest must be generated before {reserved} is written",
                member=reserved,
            )
    manifest: Dict[str, str] = {}
    for name, stream in archive.members():
        with stream:
            manifest[name] = digest_stream(stream, algorithm)
    return manifest


def serialize_manifest(manifest: Dict[str, str]) -> bytes:
    """Exact bytes written as manifest.json and signed."""
    return json.dumps(manifest, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def verify_manifest(
    archive: Union[str, Path, bytes, BinaryIO],
    algorithm: str = DEFAULT_DIGEST,
) -> Tuple[bool, List[str]]:
    """
    Check a finished archive's manifest against its members.

    Returns (success, messages).
    """
    messages: List[str] = []
    source = io.BytesIO(archive) if isinstance(archive, (bytes, bytearray)) else archive

    try:
        zf = zipfile.ZipFile(source, "r")
    except zipfile.BadZipFile as e:
        return False, [f"✗ not a zip archive: {e}"]

    with zf:
        names = zf.namelist()
        if MANIFEST_JSON not in names:
            return False, ["✗ manifest.json not found"]
        if SIGNATURE not in names:
            messages.append("✗ signature not found")
            ok = False
        else:
            ok = True

        try:
            manifest = json.loads(zf.read(MANIFEST_JSON).decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            return False, messages + [f"✗ manifest.json is not valid JSON: {e}"]
        if not isinstance(manifest, dict):
            return False, messages + ["✗ manifest.json must contain an object"]

        covered = [n for n in names if n not in (MANIFEST_JSON, SIGNATURE)]
        missing = [n for n in covered if n not in manifest]
        extra = [n for n in manifest if n not in covered]
        for n in missing:
            messages.append(f"✗ {n} is not listed in the manifest")
        for n in extra:
            messages.append(f"✗ manifest lists {n} but the archive has no such member")
        if missing or extra:
            ok = False

        for name in covered:
            if name not in manifest:
                continue
            with zf.open(name) as member:
                actual = digest_stream(member, algorithm)
            if actual == str(manifest[name]).lower():
                messages.append(f"✓ {name}: {actual[:16]}...")
            else:
                messages.append(f"✗ {name}: digest MISMATCH (expected {str(manifest[name])[:16]}..., got {actual[:16]}...)")
                ok = False

    if ok:
        messages.append("✓ Manifest verified successfully")
    return ok, messages
