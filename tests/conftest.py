"""Shared fixtures: a throwaway trust anchor, a signer issued by it, and passes."""

import datetime
import shutil

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import NameOID

from pass_bundle.config import BundleConfig
from pass_bundle.identity import SigningIdentity
from pass_bundle.models import Pass, PassType

requires_openssl = pytest.mark.skipif(shutil.which("openssl") is None, reason="openssl binary not on PATH")


def _name(common_name: str) -> x509.Name:
    return x509.Name([
        x509.NameAttribute(NameOID.ORGANIZATION_NAME, "Pass Bundle Tests"),
        x509.NameAttribute(NameOID.COMMON_NAME, common_name),
    ])


def _issue(subject, public_key, issuer, issuer_key, *, ca: bool) -> x509.Certificate:
    now = datetime.datetime.now(datetime.timezone.utc)
    return (
        x509.CertificateBuilder()
        .subject_name(subject)
        .issuer_name(issuer)
        .public_key(public_key)
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - datetime.timedelta(minutes=5))
        .not_valid_after(now + datetime.timedelta(days=30))
        .add_extension(x509.BasicConstraints(ca=ca, path_length=None), critical=True)
        .sign(issuer_key, hashes.SHA256())
    )


@pytest.fixture(scope="session")
def anchor_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def anchor_cert(anchor_key) -> x509.Certificate:
    name = _name("Test Anchor CA")
    return _issue(name, anchor_key.public_key(), name, anchor_key, ca=True)


@pytest.fixture(scope="session")
def signer_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def signer_cert(signer_key, anchor_key, anchor_cert) -> x509.Certificate:
    return _issue(
        _name("Pass Type ID: pass.com.example.test"),
        signer_key.public_key(),
        anchor_cert.subject,
        anchor_key,
        ca=False,
    )


@pytest.fixture(scope="session")
def identity(signer_cert, signer_key) -> SigningIdentity:
    return SigningIdentity(certificate=signer_cert, private_key=signer_key)


@pytest.fixture
def pem_files(tmp_path, signer_cert, signer_key, anchor_cert):
    """Write signer cert, signer key and anchor cert as PEM files."""
    cert = tmp_path / "signer.pem"
    key = tmp_path / "signer.key"
    anchor = tmp_path / "anchor.pem"
    cert.write_bytes(signer_cert.public_bytes(serialization.Encoding.PEM))
    key.write_bytes(signer_key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    ))
    anchor.write_bytes(anchor_cert.public_bytes(serialization.Encoding.PEM))
    return cert, key, anchor


@pytest.fixture
def sha256_config() -> BundleConfig:
    # The in-process backend cannot produce SHA-1 signatures.
    return BundleConfig(digest_algorithm="sha256")


@pytest.fixture
def make_pass():
    def _make(**kwargs) -> Pass:
        values = dict(
            type=PassType.GENERIC,
            pass_type_identifier="pass.com.example.test",
            serial_number="SN-0001",
            team_identifier="TEAM123456",
            organization_name="Example Org",
            description="Test pass",
        )
        values.update(kwargs)
        return Pass(**values)
    return _make
