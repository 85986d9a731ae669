"""pass_bundle package.

Builds signed pass archives (.pkpass bundles):

- pass.json descriptor built from a typed Pass record
- image assets and per-locale (<culture>.lproj/) overrides
- manifest.json: member path -> digest (SHA-1 by default)
- signature: CMS/PKCS#7 SignedData over the manifest bytes, carrying the
  signer certificate and a trust-anchor certificate

Convenience imports
------------------
The package avoids heavy import-time side effects. These are available as
top-level imports and are loaded lazily:

    from pass_bundle import Pass, Field, FieldType, Asset, Localization
    from pass_bundle import bundle_to_stream, bundle_to_file
    from pass_bundle import load_identity_file, load_certificate_file
"""

from __future__ import annotations

import re
from importlib import import_module
from pathlib import Path
from typing import Any


def _read_version_from_pyproject() -> str | None:
    """Best-effort version discovery for dev/test environments.

    The project version is a simple `version = "..."` field in
    `pyproject.toml`, so a regex parse is enough.
    """

    try:
        pyproject = Path(__file__).resolve().parents[1] / "pyproject.toml"
        txt = pyproject.read_text(encoding="utf-8")
        m = re.search(r"^version\s*=\s*\"([^\"]+)\"\s*$", txt, flags=re.MULTILINE)
        return m.group(1) if m else None
    except OSError:
        return None


__version__ = (
    _read_version_from_pyproject()
    or "0.3.0"
)

# Lazy export map: name -> (module, attribute)
_LAZY_EXPORTS: dict[str, tuple[str, str]] = {
    "Pass": ("pass_bundle.models", "Pass"),
    "PassType": ("pass_bundle.models", "PassType"),
    "Field": ("pass_bundle.models", "Field"),
    "FieldType": ("pass_bundle.models", "FieldType"),
    "Asset": ("pass_bundle.models", "Asset"),
    "Localization": ("pass_bundle.models", "Localization"),
    "Barcode": ("pass_bundle.models", "Barcode"),
    "Location": ("pass_bundle.models", "Location"),
    "Beacon": ("pass_bundle.models", "Beacon"),
    "BundleConfig": ("pass_bundle.config", "BundleConfig"),
    "PassBundleError": ("pass_bundle.errors", "PassBundleError"),
    "SigningIdentity": ("pass_bundle.identity", "SigningIdentity"),
    "load_certificate_file": ("pass_bundle.identity", "load_certificate_file"),
    "load_identity_file": ("pass_bundle.identity", "load_identity_file"),
    "bundle_to_stream": ("pass_bundle.writer", "bundle_to_stream"),
    "bundle_to_file": ("pass_bundle.writer", "bundle_to_file"),
    "bundle_to_bytes": ("pass_bundle.writer", "bundle_to_bytes"),
    "verify_manifest": ("pass_bundle.manifest", "verify_manifest"),
    "load_pass_document": ("pass_bundle.loader", "load_pass_document"),
}

__all__ = ["__version__", *_LAZY_EXPORTS]


def __getattr__(name: str) -> Any:
    if name in _LAZY_EXPORTS:
        module_name, attr = _LAZY_EXPORTS[name]
        module = import_module(module_name)
        value = getattr(module, attr)
        # Cache the resolved attribute on the module for faster future access.
        globals()[name] = value
        return value
    raise AttributeError(f"module 'pass_bundle' has no attribute {name!r}")


def __dir__() -> list[str]:
    return sorted(set(list(globals().keys()) + list(_LAZY_EXPORTS.keys())))
