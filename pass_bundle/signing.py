"""
pass_bundle.signing: CMS/PKCS#7 signature over the manifest.

The archive and manifest code only see a narrow interface:

    CmsSigner.sign(content, identity, extra_certificates) -> DER bytes

Backends:
- CryptographyCmsSigner: in-process via cryptography's PKCS7SignatureBuilder.
  Supports SHA-224/256/384/512 (cryptography refuses SHA-1 here).
- OpenSSLCmsSigner: delegates to `openssl cms -sign`, which still accepts
  SHA-1 as required by wallet verifiers that pin it.

Both produce SignedData with the content embedded (not detached), exactly
one signer, and a certificate set of the signer plus the extra certificates.

All modes are fail-closed: any signer error prevents the signature member
from being written.
"""

from __future__ import annotations

import logging
import os
import subprocess
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, Sequence, Type, runtime_checkable

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.serialization import pkcs7

from .config import BundleConfig
from .errors import (
    PASS_E_SIGNING,
    PASS_E_UNSUPPORTED_DIGEST,
    PassBundleError,
    bundle_error,
)
from .identity import SigningIdentity
from .manifest import normalize_digest
from .metrics import record_signature

logger = logging.getLogger("pass_bundle.signing")

_CRYPTOGRAPHY_HASHES: Dict[str, Type[hashes.HashAlgorithm]] = {
    "sha224": hashes.SHA224,
    "sha256": hashes.SHA256,
    "sha384": hashes.SHA384,
    "sha512": hashes.SHA512,
}


@runtime_checkable
class CmsSigner(Protocol):
    """Protocol implemented by signing backends."""
    name: str
    digest_algorithm: str

    def sign(
        self,
        content: bytes,
        identity: SigningIdentity,
        extra_certificates: Sequence[x509.Certificate],
    ) -> bytes: ...


def _extra_without_signer(identity: SigningIdentity, extra: Sequence[x509.Certificate]) -> List[x509.Certificate]:
    # The signer certificate is always embedded by the backends; listing it
    # again would duplicate it in the certificate set.
    return [c for c in extra if c != identity.certificate]


@dataclass
class CryptographyCmsSigner:
    """Signer backed by cryptography's PKCS7SignatureBuilder (in-process)."""
    digest_algorithm: str = "sha256"
    name: str = "cryptography"

    def __post_init__(self):
        self.digest_algorithm = normalize_digest(self.digest_algorithm)
        if self.digest_algorithm not in _CRYPTOGRAPHY_HASHES:
            raise bundle_error(
                PASS_E_UNSUPPORTED_DIGEST,
                f"cryptography backend cannot sign with {self.digest_algorithm}; use the openssl backend",
                algorithm=self.digest_algorithm,
            )

    def sign(
        self,
        content: bytes,
        identity: SigningIdentity,
        extra_certificates: Sequence[x509.Certificate],
    ) -> bytes:
        hash_cls = _CRYPTOGRAPHY_HASHES[self.digest_algorithm]
        # set_data/add_signer rebuild the builder without extra certs, so
        # certificates are added last.
        builder = (
            pkcs7.PKCS7SignatureBuilder()
            .set_data(bytes(content))
            .add_signer(identity.certificate, identity.private_key, hash_cls())
        )
        for cert in _extra_without_signer(identity, extra_certificates):
            builder = builder.add_certificate(cert)
        # Binary: sign the manifest bytes as-is, no MIME line-ending translation.
        return builder.sign(serialization.Encoding.DER, [pkcs7.PKCS7Options.Binary])


@dataclass
class OpenSSLCmsSigner:
    """Signer that delegates to the `openssl cms` command.

    The private key is written to a private temporary directory for the
    duration of the call only.
    """
    digest_algorithm: str = "sha1"
    openssl_bin: str = "openssl"
    timeout_seconds: float = 10.0
    name: str = "openssl"

    def __post_init__(self):
        self.digest_algorithm = normalize_digest(self.digest_algorithm)

    def command(self, workdir: Path, *, with_certfile: bool) -> List[str]:
        cmd = [
            self.openssl_bin, "cms", "-sign",
            "-binary",
            "-nodetach",
            "-outform", "DER",
            "-md", self.digest_algorithm,
            "-signer", str(workdir / "signer.pem"),
            "-inkey", str(workdir / "signer.key"),
            "-in", str(workdir / "content.bin"),
            "-out", str(workdir / "signature.der"),
        ]
        if with_certfile:
            cmd[-4:-4] = ["-certfile", str(workdir / "extra.pem")]
        return cmd

    def sign(
        self,
        content: bytes,
        identity: SigningIdentity,
        extra_certificates: Sequence[x509.Certificate],
    ) -> bytes:
        extra = _extra_without_signer(identity, extra_certificates)
        with tempfile.TemporaryDirectory(prefix="pass_bundle_") as tmpdir:
            workdir = Path(tmpdir)
            (workdir / "content.bin").write_bytes(bytes(content))
            (workdir / "signer.pem").write_bytes(identity.certificate.public_bytes(serialization.Encoding.PEM))
            key_path = workdir / "signer.key"
            fd = os.open(key_path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
            with os.fdopen(fd, "wb") as f:
                f.write(identity.private_key.private_bytes(
                    encoding=serialization.Encoding.PEM,
                    format=serialization.PrivateFormat.PKCS8,
                    encryption_algorithm=serialization.NoEncryption(),
                ))
            if extra:
                (workdir / "extra.pem").write_bytes(
                    b"".join(c.public_bytes(serialization.Encoding.PEM) for c in extra)
                )

            try:
                proc = subprocess.run(
                    self.command(workdir, with_certfile=bool(extra)),
                    stdout=subprocess.PIPE,
                    stderr=subprocess.PIPE,
                    timeout=float(self.timeout_seconds),
                    check=False,
                )
            except subprocess.TimeoutExpired as e:
                raise RuntimeError(f"openssl cms timed out after {self.timeout_seconds}s") from e
            except OSError as e:
                raise RuntimeError(f"openssl cms failed to execute: {e}") from e

            if proc.returncode != 0:
                err = (proc.stderr or b"").decode("utf-8", errors="ignore").strip()
                raise RuntimeError(f"openssl cms returned code {proc.returncode}: {err}")

            return (workdir / "signature.der").read_bytes()


def build_signer(config: Optional[BundleConfig] = None) -> CmsSigner:
    """Pick a backend for the configured digest and signer mode.

    - auto: cryptography when it supports the digest, otherwise openssl
    - cryptography / openssl: that backend, or PASS_E_UNSUPPORTED_DIGEST
    """
    cfg = config or BundleConfig()
    mode = cfg.signer_mode
    if mode == "auto":
        mode = "cryptography" if cfg.digest_algorithm in _CRYPTOGRAPHY_HASHES else "openssl"

    if mode == "cryptography":
        return CryptographyCmsSigner(digest_algorithm=cfg.digest_algorithm)
    return OpenSSLCmsSigner(
        digest_algorithm=cfg.digest_algorithm,
        openssl_bin=cfg.openssl_bin,
        timeout_seconds=cfg.signer_timeout_seconds,
    )


def build_signer_from_env() -> CmsSigner:
    """Build a signer from PASS_BUNDLE_* environment settings."""
    return build_signer(BundleConfig.from_env())


def coerce_signer(obj: Any, config: Optional[BundleConfig] = None) -> CmsSigner:
    """Coerce None (use config) or a duck-typed backend into a CmsSigner."""
    if obj is None:
        return build_signer(config)
    if isinstance(obj, CmsSigner):
        return obj
    raise TypeError(f"Unsupported signer type: {type(obj)}")


def generate_signature(
    manifest_bytes: bytes,
    identity: SigningIdentity,
    anchor_certificate: x509.Certificate,
    signer: Optional[CmsSigner] = None,
) -> bytes:
    """Sign the manifest bytes; returns DER-encoded CMS SignedData.

    Identity problems raise PASS_E_IDENTITY before the backend runs; any
    backend failure raises PASS_E_SIGNING.
    """
    identity.validate()
    backend = coerce_signer(signer)
    try:
        signature = backend.sign(bytes(manifest_bytes), identity, [identity.certificate, anchor_certificate])
    except PassBundleError:
        record_signature(backend.name, backend.digest_algorithm, "error")
        raise
    except Exception as e:
        record_signature(backend.name, backend.digest_algorithm, "error")
        logger.error("CMS signing failed (backend=%s, digest=%s): %s", backend.name, backend.digest_algorithm, e)
        raise bundle_error(
            PASS_E_SIGNING,
            f"CMS signing failed: {e}",
            backend=backend.name,
            digest=backend.digest_algorithm,
        ) from e

    if not signature:
        record_signature(backend.name, backend.digest_algorithm, "error")
        raise bundle_error(PASS_E_SIGNING, "signer returned an empty signature", backend=backend.name)

    record_signature(backend.name, backend.digest_algorithm, "ok")
    logger.debug(
        "signed %d manifest bytes (backend=%s, digest=%s, signer=%s)",
        len(manifest_bytes), backend.name, backend.digest_algorithm, identity.subject,
    )
    return signature
