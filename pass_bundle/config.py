"""Bundling configuration.

Defaults suit Apple Wallet style verifiers (SHA-1 manifest and signature
digest). Values come from keyword arguments, a JSON config mapping (CLI
``--config``), or the environment:

- PASS_BUNDLE_DIGEST: sha1 (default) | sha224 | sha256 | sha384 | sha512
- PASS_BUNDLE_SIGNER_MODE: auto (default) | cryptography | openssl
- PASS_BUNDLE_OPENSSL_BIN: path to the openssl binary (default "openssl")
- PASS_BUNDLE_SIGNER_TIMEOUT_SECONDS: openssl subprocess timeout (default 10)
- PASS_BUNDLE_COMPRESSION: deflated (default) | stored
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields
from typing import Any, Dict, Mapping, Optional

from .archive import COMPRESSION_MODES
from .errors import PASS_E_CONFIG, PassBundleError, bundle_error
from .manifest import DEFAULT_DIGEST, normalize_digest

SIGNER_MODES = ("auto", "cryptography", "openssl")

_ENV_KEYS: Dict[str, str] = {
    "digest_algorithm": "PASS_BUNDLE_DIGEST",
    "signer_mode": "PASS_BUNDLE_SIGNER_MODE",
    "openssl_bin": "PASS_BUNDLE_OPENSSL_BIN",
    "signer_timeout_seconds": "PASS_BUNDLE_SIGNER_TIMEOUT_SECONDS",
    "compression": "PASS_BUNDLE_COMPRESSION",
}


@dataclass
class BundleConfig:
    digest_algorithm: str = DEFAULT_DIGEST
    signer_mode: str = "auto"
    openssl_bin: str = "openssl"
    signer_timeout_seconds: float = 10.0
    compression: str = "deflated"

    def __post_init__(self):
        try:
            self.digest_algorithm = normalize_digest(self.digest_algorithm)
        except PassBundleError as e:
            raise bundle_error(PASS_E_CONFIG, e.message, field="digest_algorithm") from e

        self.signer_mode = str(self.signer_mode or "auto").strip().lower()
        if self.signer_mode not in SIGNER_MODES:
            raise bundle_error(
                PASS_E_CONFIG,
                f"Unsupported signer_mode={self.signer_mode!r}; expected auto|cryptography|openssl",
                field="signer_mode",
            )

        self.openssl_bin = str(self.openssl_bin or "").strip()
        if not self.openssl_bin:
            raise bundle_error(PASS_E_CONFIG, "openssl_bin must be non-empty", field="openssl_bin")

        try:
            self.signer_timeout_seconds = float(self.signer_timeout_seconds)
        except (TypeError, ValueError):
            raise bundle_error(
                PASS_E_CONFIG,
                "signer_timeout_seconds must be a number (seconds)",
                field="signer_timeout_seconds",
            )
        if self.signer_timeout_seconds <= 0:
            raise bundle_error(
                PASS_E_CONFIG,
                "signer_timeout_seconds must be positive",
                field="signer_timeout_seconds",
            )

        self.compression = str(self.compression or "deflated").strip().lower()
        if self.compression not in COMPRESSION_MODES:
            raise bundle_error(
                PASS_E_CONFIG,
                f"Unsupported compression={self.compression!r}; expected deflated|stored",
                field="compression",
            )

    @property
    def zip_compression(self) -> int:
        return COMPRESSION_MODES[self.compression]

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "BundleConfig":
        known = {f.name for f in fields(cls)}
        unknown = sorted(k for k in data if k not in known)
        if unknown:
            raise bundle_error(PASS_E_CONFIG, f"Unknown config keys: {', '.join(unknown)}", keys=unknown)
        return cls(**dict(data))

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, **overrides: Any) -> "BundleConfig":
        values = env_values(environ)
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls.from_dict(values)


def env_values(environ: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
    """Config values set through PASS_BUNDLE_* variables (unset/blank skipped)."""
    env = os.environ if environ is None else environ
    values: Dict[str, Any] = {}
    for name, var in _ENV_KEYS.items():
        raw = (env.get(var, "") or "").strip()
        if raw:
            values[name] = raw
    return values
