"""
pass_bundle.identity: signer certificates and private keys.

A SigningIdentity is the signer certificate plus the matching private key.
The trust-anchor certificate (the issuing intermediate, e.g. Apple WWDR) is a
plain x509.Certificate that is bundled into the signature, not validated.

Supported inputs:
- PKCS#12 (.p12/.pfx) holding certificate + key
- PEM or DER certificate with a separate PEM/DER private key

All loaders fail closed with PASS_E_IDENTITY.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from cryptography import x509
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec, rsa
from cryptography.hazmat.primitives.serialization import pkcs12

from .errors import PASS_E_IDENTITY, bundle_error

PrivateKey = Union[rsa.RSAPrivateKey, ec.EllipticCurvePrivateKey]


def _password_bytes(password: Optional[Union[str, bytes]]) -> Optional[bytes]:
    if password is None or password == "" or password == b"":
        return None
    if isinstance(password, str):
        return password.encode("utf-8")
    return bytes(password)


def _public_bytes(key) -> bytes:
    return key.public_bytes(
        serialization.Encoding.DER,
        serialization.PublicFormat.SubjectPublicKeyInfo,
    )


@dataclass
class SigningIdentity:
    """Signer certificate and its private key."""
    certificate: x509.Certificate
    private_key: Optional[PrivateKey]

    @property
    def subject(self) -> str:
        return self.certificate.subject.rfc4514_string()

    def validate(self) -> "SigningIdentity":
        """Check the key is present, supported, and belongs to the certificate."""
        if not isinstance(self.certificate, x509.Certificate):
            raise bundle_error(PASS_E_IDENTITY, "signer certificate must be an x509.Certificate")
        if self.private_key is None:
            raise bundle_error(
                PASS_E_IDENTITY,
                "signer certificate has no private key",
                subject=self.subject,
            )
        if not isinstance(self.private_key, (rsa.RSAPrivateKey, ec.EllipticCurvePrivateKey)):
            raise bundle_error(
                PASS_E_IDENTITY,
                f"Unsupported private key type: {type(self.private_key).__name__} (expected RSA or EC)",
                subject=self.subject,
            )
        if _public_bytes(self.private_key.public_key()) != _public_bytes(self.certificate.public_key()):
            raise bundle_error(
                PASS_E_IDENTITY,
                "private key does not match the signer certificate",
                subject=self.subject,
            )
        return self


def load_certificate(data: bytes) -> x509.Certificate:
    """Load a PEM or DER certificate."""
    try:
        if b"-----BEGIN" in data:
            return x509.load_pem_x509_certificate(data)
        return x509.load_der_x509_certificate(data)
    except ValueError as e:
        raise bundle_error(PASS_E_IDENTITY, f"Malformed certificate: {e}") from e


def load_private_key(data: bytes, password: Optional[Union[str, bytes]] = None) -> PrivateKey:
    """Load a PEM or DER private key."""
    pw = _password_bytes(password)
    try:
        if b"-----BEGIN" in data:
            key = serialization.load_pem_private_key(data, password=pw)
        else:
            key = serialization.load_der_private_key(data, password=pw)
    except (ValueError, TypeError) as e:
        raise bundle_error(PASS_E_IDENTITY, f"Could not load private key: {e}") from e
    return key  # type: ignore[return-value]


def load_identity_pkcs12(data: bytes, password: Optional[Union[str, bytes]] = None) -> SigningIdentity:
    """Load signer certificate + key from a PKCS#12 bundle."""
    try:
        key, cert, _additional = pkcs12.load_key_and_certificates(data, _password_bytes(password))
    except (ValueError, TypeError) as e:
        raise bundle_error(PASS_E_IDENTITY, f"Could not load PKCS#12 bundle: {e}") from e
    if cert is None:
        raise bundle_error(PASS_E_IDENTITY, "PKCS#12 bundle contains no certificate")
    return SigningIdentity(certificate=cert, private_key=key).validate()  # type: ignore[arg-type]


def load_identity_pem(
    cert_data: bytes,
    key_data: bytes,
    password: Optional[Union[str, bytes]] = None,
) -> SigningIdentity:
    """Load signer certificate and key from separate PEM/DER blobs."""
    return SigningIdentity(
        certificate=load_certificate(cert_data),
        private_key=load_private_key(key_data, password),
    ).validate()


def load_certificate_file(path: Union[str, Path]) -> x509.Certificate:
    return load_certificate(Path(path).read_bytes())


def load_identity_file(
    path: Union[str, Path],
    *,
    key_path: Optional[Union[str, Path]] = None,
    password: Optional[Union[str, bytes]] = None,
) -> SigningIdentity:
    """Load an identity from a .p12 file, or a certificate file plus key_path."""
    p = Path(path)
    if key_path is None:
        return load_identity_pkcs12(p.read_bytes(), password)
    return load_identity_pem(p.read_bytes(), Path(key_path).read_bytes(), password)
