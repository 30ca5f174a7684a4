"""Shared fixtures for chain analysis tests."""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Optional

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec, padding, rsa
from cryptography.x509.oid import ExtendedKeyUsageOID, NameOID, SignatureAlgorithmOID


DATA_DIR = Path(__file__).parent / "data"


def load_test_certificate(filename: str) -> x509.Certificate:
    """Load a PEM certificate from tests/data (made with the openssl CLI)."""
    return x509.load_pem_x509_certificate((DATA_DIR / filename).read_bytes())


def make_name(common_name: str) -> x509.Name:
    return x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])


def key_usage(cert_sign: bool = False, crl_sign: bool = False, digital_signature: bool = False) -> x509.KeyUsage:
    return x509.KeyUsage(
        digital_signature=digital_signature,
        content_commitment=False,
        key_encipherment=False,
        data_encipherment=False,
        key_agreement=False,
        key_cert_sign=cert_sign,
        crl_sign=crl_sign,
        encipher_only=False,
        decipher_only=False,
    )


@dataclass
class CertificateStub:
    """
    Attribute-compatible stand-in for x509.Certificate.

    Used for what CertificateBuilder cannot produce: v1/v2 and unknown
    versions, and MD5/SHA-1 signatures. Standard verification is delegated
    to the certificate the stub was copied from; stubs without one carry a
    legacy algorithm, which cryptography refuses.
    """

    subject: x509.Name
    issuer: x509.Name
    key: Any
    signature: bytes
    signature_algorithm_oid: x509.ObjectIdentifier
    tbs_certificate_bytes: bytes
    not_valid_before_utc: datetime
    not_valid_after_utc: datetime
    serial_number: int = 1
    version_number: int = 3
    extensions: x509.Extensions = field(default_factory=lambda: x509.Extensions([]))
    signature_hash_algorithm: Any = None
    signature_algorithm_parameters: Any = None
    certificate: Optional[x509.Certificate] = None

    @property
    def version(self) -> x509.Version:
        if self.version_number == 1:
            return x509.Version.v1
        if self.version_number == 3:
            return x509.Version.v3
        raise x509.InvalidVersion(f"{self.version_number} is not a valid X509 version", self.version_number - 1)

    def public_key(self) -> Any:
        return self.key

    def verify_directly_issued_by(self, issuer: Any) -> None:
        if self.certificate is None:
            raise ValueError("Unsupported signature algorithm")
        self.certificate.verify_directly_issued_by(getattr(issuer, "certificate", None) or issuer)


def stub_from_certificate(cert: x509.Certificate, **overrides: Any) -> CertificateStub:
    """Copy a real certificate into a stub, replacing selected attributes."""
    values = dict(
        subject=cert.subject,
        issuer=cert.issuer,
        key=cert.public_key(),
        signature=cert.signature,
        signature_algorithm_oid=cert.signature_algorithm_oid,
        tbs_certificate_bytes=cert.tbs_certificate_bytes,
        not_valid_before_utc=cert.not_valid_before_utc,
        not_valid_after_utc=cert.not_valid_after_utc,
        serial_number=cert.serial_number,
        extensions=cert.extensions,
        signature_hash_algorithm=cert.signature_hash_algorithm,
        signature_algorithm_parameters=cert.signature_algorithm_parameters,
        certificate=cert,
    )
    values.update(overrides)
    return CertificateStub(**values)


_LEGACY_SIGNERS = {
    SignatureAlgorithmOID.RSA_WITH_MD5: lambda key, data: key.sign(data, padding.PKCS1v15(), hashes.MD5()),
    SignatureAlgorithmOID.RSA_WITH_SHA1: lambda key, data: key.sign(data, padding.PKCS1v15(), hashes.SHA1()),
    SignatureAlgorithmOID.ECDSA_WITH_SHA1: lambda key, data: key.sign(data, ec.ECDSA(hashes.SHA1())),
}


def legacy_stub(
    subject: str,
    issuer: str,
    public_key: Any,
    issuer_private_key: Any,
    oid: x509.ObjectIdentifier,
    version_number: int = 3,
    extensions: Optional[list] = None,
    days_valid: int = 365,
) -> CertificateStub:
    """Create a stub whose signature over its TBS bytes uses a legacy algorithm."""
    tbs = f"tbs:{subject}:{issuer}:{oid.dotted_string}".encode()
    if oid in _LEGACY_SIGNERS:
        signature = _LEGACY_SIGNERS[oid](issuer_private_key, tbs)
    else:
        signature = b"\x00" * 64

    now = datetime.now(timezone.utc)
    return CertificateStub(
        subject=make_name(subject),
        issuer=make_name(issuer),
        key=public_key,
        signature=signature,
        signature_algorithm_oid=oid,
        tbs_certificate_bytes=tbs,
        not_valid_before_utc=now - timedelta(days=1),
        not_valid_after_utc=now + timedelta(days=days_valid),
        version_number=version_number,
        extensions=x509.Extensions(extensions or []),
    )


def build_certificate(
    subject: str,
    private_key: Any,
    issuer: Optional[str] = None,
    issuer_key: Optional[Any] = None,
    ca: Optional[bool] = None,
    usage: Optional[x509.KeyUsage] = None,
    server_auth: bool = False,
    not_before: Optional[datetime] = None,
    not_after: Optional[datetime] = None,
    serial_number: Optional[int] = None,
) -> x509.Certificate:
    """Build a SHA-256 signed v3 certificate; self-signed unless an issuer is given."""
    now = datetime.now(timezone.utc)
    builder = (
        x509.CertificateBuilder()
        .subject_name(make_name(subject))
        .issuer_name(make_name(issuer or subject))
        .public_key(private_key.public_key())
        .serial_number(serial_number or x509.random_serial_number())
        .not_valid_before(not_before or now - timedelta(days=1))
        .not_valid_after(not_after or now + timedelta(days=365))
    )
    if ca is not None:
        builder = builder.add_extension(x509.BasicConstraints(ca=ca, path_length=None), critical=True)
    if usage is not None:
        builder = builder.add_extension(usage, critical=True)
    if server_auth:
        builder = builder.add_extension(
            x509.ExtendedKeyUsage([ExtendedKeyUsageOID.SERVER_AUTH]), critical=False
        )
    return builder.sign(issuer_key or private_key, hashes.SHA256())


@pytest.fixture(scope="session")
def rsa_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def rsa_issuer_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture
def ec_key():
    return ec.generate_private_key(ec.SECP256R1())


@pytest.fixture
def ec_issuer_key():
    return ec.generate_private_key(ec.SECP256R1())


@pytest.fixture
def proper_chain():
    """Create a leaf -> intermediate -> root chain with valid signatures."""
    root_key = ec.generate_private_key(ec.SECP256R1())
    intermediate_key = ec.generate_private_key(ec.SECP256R1())
    leaf_key = ec.generate_private_key(ec.SECP256R1())

    root = build_certificate(
        "Root CA", root_key, ca=True, usage=key_usage(cert_sign=True, crl_sign=True)
    )
    intermediate = build_certificate(
        "Intermediate CA",
        intermediate_key,
        issuer="Root CA",
        issuer_key=root_key,
        ca=True,
        usage=key_usage(cert_sign=True, crl_sign=True),
    )
    leaf = build_certificate(
        "leaf.example.com",
        leaf_key,
        issuer="Intermediate CA",
        issuer_key=intermediate_key,
        ca=False,
        usage=key_usage(digital_signature=True),
        server_auth=True,
    )
    return [leaf, intermediate, root]


@pytest.fixture
def leaf_and_root():
    """Create a [leaf, root] chain where the self-signed root signs the leaf."""
    root_key = ec.generate_private_key(ec.SECP256R1())
    leaf_key = ec.generate_private_key(ec.SECP256R1())

    root = build_certificate(
        "Root CA", root_key, ca=True, usage=key_usage(cert_sign=True, crl_sign=True)
    )
    leaf = build_certificate(
        "leaf.example.com", leaf_key, issuer="Root CA", issuer_key=root_key, server_auth=True
    )
    return [leaf, root]
