#!/usr/bin/env python3
"""
pass-bundle - Command Line Interface

Usage:
    pass-bundle build <document.json> --out <file.pkpass> --anchor <cert>
                      (--p12 <file> | --cert <file> --key <file>)
                                   Build and sign a pass archive
    pass-bundle check <file.pkpass> Verify manifest digests of an archive
                                   (signature verification is not performed)
    pass-bundle validate <document.json>
                                   Validate a pass document against its JSON Schema

Passwords are never taken on the command line; name an environment variable
with --p12-password-env / --key-password-env instead.

Exit codes: 0 ok, 1 validation/integrity failure, 2 usage/config/signing error.
"""

import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

from pass_bundle.config import BundleConfig, env_values
from pass_bundle.errors import PASS_E_IO, PassBundleError
from pass_bundle.identity import SigningIdentity, load_certificate_file, load_identity_file
from pass_bundle.loader import load_pass_document
from pass_bundle.manifest import DIGEST_ALGORITHMS, verify_manifest
from pass_bundle.schema import validate_file
from pass_bundle.signing import build_signer
from pass_bundle.writer import bundle_to_file

logger = logging.getLogger("pass_bundle.cli")


def setup_logging(verbose: bool = False):
    """Configure logging for CLI usage."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S"
    )
    logging.getLogger("pass_bundle").setLevel(level)


def load_config(config_path: Optional[Path]) -> dict:
    """
    Load configuration from JSON file.

    On invalid JSON, raises a clear error rather than failing silently.
    """
    if config_path is None:
        return {}
    try:
        with open(config_path, encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ValueError(
            f"CONFIG_ERROR: Invalid JSON in config file '{config_path}': {e}. "
            f"Please check the config file syntax."
        ) from e
    except OSError as e:
        raise ValueError(f"CONFIG_ERROR: Failed to read config file '{config_path}': {e}") from e
    if not isinstance(data, dict):
        raise ValueError(f"CONFIG_ERROR: Config file '{config_path}' must contain a JSON object")
    return data


def _password_from_env(var: Optional[str]) -> Optional[str]:
    if not var:
        return None
    value = os.getenv(var)
    if value is None:
        raise ValueError(f"CONFIG_ERROR: environment variable {var} is not set")
    return value


def build_config(args) -> BundleConfig:
    """Config file < PASS_BUNDLE_* environment < command-line flags."""
    values = {**load_config(args.config), **env_values()}
    flags = {
        "digest_algorithm": getattr(args, "digest", None),
        "signer_mode": getattr(args, "signer", None),
        "openssl_bin": getattr(args, "openssl_bin", None),
    }
    values.update({k: v for k, v in flags.items() if v})
    return BundleConfig.from_dict(values)


def load_signing_identity(args) -> SigningIdentity:
    if args.p12:
        return load_identity_file(args.p12, password=_password_from_env(args.p12_password_env))
    if not (args.cert and args.key):
        raise ValueError("CONFIG_ERROR: either --p12 or both --cert and --key are required")
    return load_identity_file(args.cert, key_path=args.key, password=_password_from_env(args.key_password_env))


def cmd_build(args) -> int:
    """Build and sign a pass archive from a pass document."""
    try:
        config = build_config(args)
        logger.debug("bundle config: %s", config)
        pass_ = load_pass_document(args.document)
        identity = load_signing_identity(args)
        anchor = load_certificate_file(args.anchor)
        out = bundle_to_file(pass_, args.out, identity, anchor, config=config, signer=build_signer(config))
    except PassBundleError as e:
        print(f"✗ {e}", file=sys.stderr)
        for detail in e.details.get("errors", []):
            print(f"  - {detail}", file=sys.stderr)
        return 1 if e.code == "PASS_E_INVALID_DOCUMENT" else 2
    except OSError as e:
        print(f"✗ {PASS_E_IO}: {e}", file=sys.stderr)
        return 2
    except ValueError as e:
        print(f"✗ {e}", file=sys.stderr)
        return 2

    print(f"✓ Wrote {out}")
    print(f"  Serial: {pass_.serial_number}")
    print(f"  Digest: {config.digest_algorithm}")
    return 0


def cmd_check(args) -> int:
    """Verify the manifest digests of a pass archive."""
    path = Path(args.archive)
    if not path.exists():
        print(f"✗ not found: {path}", file=sys.stderr)
        return 2
    try:
        ok, messages = verify_manifest(path, args.digest)
    except PassBundleError as e:
        print(f"✗ {e}", file=sys.stderr)
        return 2

    if args.json:
        print(json.dumps({"ok": ok, "messages": messages}, indent=2, ensure_ascii=False))
    else:
        for m in messages:
            print(m)
    return 0 if ok else 1


def cmd_validate(args) -> int:
    """Validate a pass document against the bundled JSON Schema."""
    ok, msgs = validate_file(Path(args.document))
    for m in msgs:
        mark = "✓" if m.ok else "✗"
        print(f"{mark} {m.code}: {m.detail}")
    return 0 if ok else 1


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="pass-bundle",
        description="Build and sign pass archives",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose logging")
    parser.add_argument("--config", type=Path, help="Path to config JSON file")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # build command
    build_parser = subparsers.add_parser("build", help="Build and sign a pass archive")
    build_parser.add_argument("document", help="Path to pass document JSON")
    build_parser.add_argument("--out", "-o", required=True, help="Output .pkpass path")
    build_parser.add_argument("--anchor", required=True, help="Trust-anchor certificate (PEM or DER)")
    build_parser.add_argument("--p12", help="Signer PKCS#12 bundle (certificate + key)")
    build_parser.add_argument("--p12-password-env", help="Environment variable holding the PKCS#12 password")
    build_parser.add_argument("--cert", help="Signer certificate (PEM or DER)")
    build_parser.add_argument("--key", help="Signer private key (PEM or DER)")
    build_parser.add_argument("--key-password-env", help="Environment variable holding the key password")
    build_parser.add_argument("--digest", choices=DIGEST_ALGORITHMS, help="Manifest/signature digest (default: sha1)")
    build_parser.add_argument("--signer", choices=["auto", "cryptography", "openssl"], help="Signing backend")
    build_parser.add_argument("--openssl-bin", help="Path to the openssl binary")
    build_parser.set_defaults(func=cmd_build)

    # check command
    check_parser = subparsers.add_parser("check", help="Verify manifest digests of a pass archive")
    check_parser.add_argument("archive", help="Path to .pkpass archive")
    check_parser.add_argument("--digest", choices=DIGEST_ALGORITHMS, default="sha1", help="Manifest digest")
    check_parser.add_argument("--json", action="store_true", help="Machine-readable output")
    check_parser.set_defaults(func=cmd_check)

    # validate command
    validate_parser = subparsers.add_parser("validate", help="Validate a pass document against its JSON Schema")
    validate_parser.add_argument("document", help="Path to pass document JSON")
    validate_parser.set_defaults(func=cmd_validate)

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 2

    setup_logging(args.verbose)
    return args.func(args)


if __name__ == "__main__":
    raise SystemExit(main())
