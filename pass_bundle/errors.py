"""Stable error taxonomy for pass bundling.

This module defines machine-readable error codes and a single exception type
used across the assembler, signer, loaders and the CLI.

Design goals:
- Stable `code` string suitable for programmatic handling.
- Structured `details` for debugging without parsing messages.

Stream I/O failures (OSError) are not wrapped; they reach the caller as-is.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict


# Archive
PASS_E_IO = "PASS_E_IO"
PASS_E_DUPLICATE_MEMBER = "PASS_E_DUPLICATE_MEMBER"
PASS_E_ARCHIVE_STATE = "PASS_E_ARCHIVE_STATE"

# Certificates / signing
PASS_E_IDENTITY = "PASS_E_IDENTITY"
PASS_E_SIGNING = "PASS_E_SIGNING"
PASS_E_UNSUPPORTED_DIGEST = "PASS_E_UNSUPPORTED_DIGEST"

# Inputs
PASS_E_CONFIG = "PASS_E_CONFIG"
PASS_E_INVALID_DOCUMENT = "PASS_E_INVALID_DOCUMENT"


@dataclass
class PassBundleError(Exception):
    """Base bundling exception with stable error code."""

    code: str
    message: str
    details: Dict[str, Any] = field(default_factory=dict)

    def as_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "code": self.code,
            "message": self.message,
        }
        if self.details:
            d["details"] = self.details
        return d

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"


def bundle_error(code: str, message: str, **details: Any) -> PassBundleError:
    return PassBundleError(code=code, message=message, details=details)
