"""
Pass archive writer.

bundle_to_stream() runs one complete bundling call:

1. assemble pass.json, assets and localizations into an ArchiveBuilder
2. digest every member into manifest.json
3. sign the manifest bytes and append `signature` as the last member

A call either produces a complete, signed archive or raises. bundle_to_file()
removes the partially written file when it raises.
"""

from __future__ import annotations

import io
import logging
import time
from pathlib import Path
from typing import BinaryIO, Optional, Union

from cryptography import x509

from .archive import ArchiveBuilder
from .assembler import assemble
from .config import BundleConfig
from .errors import PASS_E_CONFIG, bundle_error
from .identity import SigningIdentity
from .manifest import MANIFEST_JSON, SIGNATURE, generate_manifest, normalize_digest, serialize_manifest
from .metrics import record_bundle, record_members
from .models import Pass
from .signing import CmsSigner, coerce_signer, generate_signature

logger = logging.getLogger("pass_bundle.writer")


def _finalize(
    archive: ArchiveBuilder,
    identity: SigningIdentity,
    anchor_certificate: x509.Certificate,
    config: BundleConfig,
    signer: CmsSigner,
) -> None:
    manifest = generate_manifest(archive, config.digest_algorithm)
    manifest_bytes = serialize_manifest(manifest)
    # Sign before writing manifest.json so identity/signing failures leave no
    # half-finished trailer behind.
    signature = generate_signature(manifest_bytes, identity, anchor_certificate, signer)
    archive.add(MANIFEST_JSON, manifest_bytes)
    archive.add(SIGNATURE, signature)


def bundle_to_stream(
    pass_: Pass,
    stream: BinaryIO,
    identity: SigningIdentity,
    anchor_certificate: x509.Certificate,
    *,
    config: Optional[BundleConfig] = None,
    signer: Optional[CmsSigner] = None,
) -> None:
    """Write a signed pass archive to `stream`. The stream is left open."""
    cfg = config or BundleConfig()
    backend = coerce_signer(signer, cfg)
    # The manifest and the CMS signer must use the same digest.
    if normalize_digest(backend.digest_algorithm) != cfg.digest_algorithm:
        raise bundle_error(
            PASS_E_CONFIG,
            f"signer digest {backend.digest_algorithm!r} does not match manifest digest {cfg.digest_algorithm!r}",
            signer_digest=backend.digest_algorithm,
            manifest_digest=cfg.digest_algorithm,
            backend=backend.name,
        )
    started = time.monotonic()
    logger.debug("bundling pass %s (type=%s)", pass_.serial_number, pass_.type_key)
    try:
        identity.validate()
        with ArchiveBuilder(stream, compression=cfg.zip_compression) as archive:
            assemble(archive, pass_)
            content_members = len(archive)
            _finalize(archive, identity, anchor_certificate, cfg, backend)
    except Exception:
        record_bundle("error", time.monotonic() - started)
        raise

    record_members("content", content_members)
    record_members("trailer", 2)
    record_bundle("ok", time.monotonic() - started)
    logger.info(
        "Created pass bundle %s (%d members, digest=%s, backend=%s)",
        pass_.serial_number, content_members + 2, cfg.digest_algorithm, backend.name,
    )


def bundle_to_file(
    pass_: Pass,
    path: Union[str, Path],
    identity: SigningIdentity,
    anchor_certificate: x509.Certificate,
    *,
    config: Optional[BundleConfig] = None,
    signer: Optional[CmsSigner] = None,
) -> str:
    """Write a signed pass archive to `path` (truncating). Returns the path."""
    out = Path(path)
    try:
        with open(out, "w+b") as f:
            bundle_to_stream(pass_, f, identity, anchor_certificate, config=config, signer=signer)
    except BaseException:
        out.unlink(missing_ok=True)
        raise
    return str(out)


def bundle_to_bytes(
    pass_: Pass,
    identity: SigningIdentity,
    anchor_certificate: x509.Certificate,
    *,
    config: Optional[BundleConfig] = None,
    signer: Optional[CmsSigner] = None,
) -> bytes:
    """In-memory convenience around bundle_to_stream()."""
    buf = io.BytesIO()
    bundle_to_stream(pass_, buf, identity, anchor_certificate, config=config, signer=signer)
    return buf.getvalue()
