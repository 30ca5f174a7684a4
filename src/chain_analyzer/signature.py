"""
Certificate signature verification.

The standard path verifies signatures with ``cryptography`` but refuses the
MD2, MD5 and SHA-1 based algorithms. Chains handed to this package are
already under the operator's control, so for MD5-with-RSA, SHA1-with-RSA and
ECDSA-with-SHA1 the signature is verified explicitly instead. The result is
used to identify certificates (e.g. "is this a root?"), not to grant trust.
"""

import logging
from typing import Any

from cryptography import x509
from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec, padding, rsa
from cryptography.hazmat.primitives.asymmetric.utils import Prehashed
from cryptography.x509.oid import SignatureAlgorithmOID

from chain_analyzer.exceptions import (
    InsecureAlgorithmError,
    SignatureVerificationError,
    VerificationFailure,
)
from chain_analyzer.models import LegacyAlgorithm

logger = logging.getLogger(__name__)

# Not exposed as constants by cryptography
MD2_WITH_RSA = x509.ObjectIdentifier("1.2.840.113549.1.1.2")
OIW_SHA1_WITH_RSA = x509.ObjectIdentifier("1.3.14.3.2.29")

INSECURE_SIGNATURE_ALGORITHMS = frozenset(
    {
        MD2_WITH_RSA,
        SignatureAlgorithmOID.RSA_WITH_MD5,
        SignatureAlgorithmOID.RSA_WITH_SHA1,
        OIW_SHA1_WITH_RSA,
        SignatureAlgorithmOID.DSA_WITH_SHA1,
        SignatureAlgorithmOID.ECDSA_WITH_SHA1,
    }
)


def _dn(name: x509.Name) -> str:
    return name.rfc4514_string()


def algorithm_name(oid: x509.ObjectIdentifier) -> str:
    """Return a readable name for a signature algorithm OID."""
    if oid == MD2_WITH_RSA:
        return "md2WithRSAEncryption"
    if oid == OIW_SHA1_WITH_RSA:
        return "sha1WithRSA"
    name = oid._name
    if not name or name == "Unknown OID":
        return oid.dotted_string
    return name


def legacy_algorithm(oid: x509.ObjectIdentifier) -> LegacyAlgorithm:
    """Map a signature algorithm OID to the legacy verification strategy that handles it."""
    if oid == SignatureAlgorithmOID.RSA_WITH_MD5:
        return LegacyAlgorithm.MD5_RSA
    if oid in (SignatureAlgorithmOID.RSA_WITH_SHA1, OIW_SHA1_WITH_RSA):
        return LegacyAlgorithm.SHA1_RSA
    if oid == SignatureAlgorithmOID.ECDSA_WITH_SHA1:
        return LegacyAlgorithm.ECDSA_SHA1
    return LegacyAlgorithm.UNSUPPORTED


def check_signature(issuer: x509.Certificate, issued: Any) -> None:
    """
    Verify the signature on ``issued`` with the public key of ``issuer``.

    This is the standard verification path. cryptography refuses MD2, MD5 and
    SHA-1 based algorithms; that refusal is reported as InsecureAlgorithmError.

    Raises:
        InsecureAlgorithmError: declared algorithm is refused as insecure
        InvalidSignature: signature does not verify
        TypeError, ValueError, UnsupportedAlgorithm: issuer key or names
            cannot verify the declared algorithm
    """
    oid = issued.signature_algorithm_oid
    try:
        # verify_directly_issued_by handles all supported signature algorithms
        issued.verify_directly_issued_by(issuer)
    except (ValueError, UnsupportedAlgorithm) as e:
        if oid in INSECURE_SIGNATURE_ALGORITHMS:
            raise InsecureAlgorithmError(oid, algorithm_name(oid)) from e
        raise


def _digest(data: bytes, algorithm: hashes.HashAlgorithm) -> bytes:
    h = hashes.Hash(algorithm)
    h.update(data)
    return h.finalize()


def _expect_algorithm(issued: Any, expected: LegacyAlgorithm) -> None:
    if legacy_algorithm(issued.signature_algorithm_oid) is not expected:
        raise SignatureVerificationError(
            f"issued certificate signature algorithm not {expected.value}",
            VerificationFailure.VERIFICATION_ERROR,
        )


def _verify_rsa_pkcs1v15(issued: Any, issuer: Any, algorithm: hashes.HashAlgorithm) -> None:
    public_key = issuer.public_key()
    if not isinstance(public_key, rsa.RSAPublicKey):
        raise SignatureVerificationError(
            "issuer certificate public key not in RSA format",
            VerificationFailure.KEY_TYPE_MISMATCH,
        )

    try:
        digest = _digest(issued.tbs_certificate_bytes, algorithm)
        public_key.verify(issued.signature, digest, padding.PKCS1v15(), Prehashed(algorithm))
    except InvalidSignature as e:
        raise SignatureVerificationError(
            f"{algorithm.name.upper()} with RSA signature not valid",
            VerificationFailure.INVALID_SIGNATURE,
        ) from e
    except (UnsupportedAlgorithm, ValueError) as e:
        raise SignatureVerificationError(
            f"{algorithm.name.upper()} with RSA verification error: {e}",
            VerificationFailure.VERIFICATION_ERROR,
        ) from e


def verify_md5_with_rsa(issued: Any, issuer: Any) -> None:
    """Verify a MD5-with-RSA signature on ``issued`` using the RSA key of ``issuer``."""
    _expect_algorithm(issued, LegacyAlgorithm.MD5_RSA)
    _verify_rsa_pkcs1v15(issued, issuer, hashes.MD5())


def verify_sha1_with_rsa(issued: Any, issuer: Any) -> None:
    """Verify a SHA1-with-RSA signature on ``issued`` using the RSA key of ``issuer``."""
    _expect_algorithm(issued, LegacyAlgorithm.SHA1_RSA)
    _verify_rsa_pkcs1v15(issued, issuer, hashes.SHA1())


def verify_ecdsa_with_sha1(issued: Any, issuer: Any) -> None:
    """Verify an ASN.1 encoded ECDSA-with-SHA1 signature on ``issued`` using the EC key of ``issuer``."""
    _expect_algorithm(issued, LegacyAlgorithm.ECDSA_SHA1)

    public_key = issuer.public_key()
    if not isinstance(public_key, ec.EllipticCurvePublicKey):
        raise SignatureVerificationError(
            "issuer certificate public key not in ECDSA format",
            VerificationFailure.KEY_TYPE_MISMATCH,
        )

    try:
        digest = _digest(issued.tbs_certificate_bytes, hashes.SHA1())
        public_key.verify(issued.signature, digest, ec.ECDSA(Prehashed(hashes.SHA1())))
    except InvalidSignature as e:
        raise SignatureVerificationError(
            "ECDSA signature not valid",
            VerificationFailure.INVALID_SIGNATURE,
        ) from e
    except (UnsupportedAlgorithm, ValueError) as e:
        raise SignatureVerificationError(
            f"ECDSA with SHA1 verification error: {e}",
            VerificationFailure.VERIFICATION_ERROR,
        ) from e


def verify_signature(issued: Any, issuer: Any) -> None:
    """
    Verify that the signature on ``issued`` was made by ``issuer``.

    Signature algorithms the standard path refuses as insecure are verified
    explicitly for MD5-with-RSA, SHA1-with-RSA and ECDSA-with-SHA1.

    Args:
        issued: Certificate whose signature is checked
        issuer: Candidate issuer certificate

    Raises:
        SignatureVerificationError: verification failed; see ``reason``
    """
    if _dn(issued.issuer) != _dn(issuer.subject):
        raise SignatureVerificationError(
            f"Issuer '{_dn(issued.issuer)}' does not match subject '{_dn(issuer.subject)}'",
            VerificationFailure.NAME_MISMATCH,
        )

    try:
        check_signature(issuer, issued)
    except InsecureAlgorithmError as e:
        strategy = legacy_algorithm(e.oid)
        logger.debug(f"Standard verification refused {e.name}, using legacy verification ({strategy.name})")

        if strategy is LegacyAlgorithm.MD5_RSA:
            verify_md5_with_rsa(issued, issuer)
        elif strategy is LegacyAlgorithm.SHA1_RSA:
            verify_sha1_with_rsa(issued, issuer)
        elif strategy is LegacyAlgorithm.ECDSA_SHA1:
            verify_ecdsa_with_sha1(issued, issuer)
        else:
            logger.warning(f"No legacy verification available for insecure signature algorithm {e.name}")
            raise SignatureVerificationError(
                f"unsupported signature algorithm {e.name} (please submit a bug report)",
                VerificationFailure.UNSUPPORTED_ALGORITHM,
            ) from e
    except InvalidSignature as e:
        raise SignatureVerificationError(
            "Signature does not match issuer public key",
            VerificationFailure.INVALID_SIGNATURE,
        ) from e
    except (TypeError, ValueError, UnsupportedAlgorithm) as e:
        raise SignatureVerificationError(
            f"Signature verification error: {e}",
            VerificationFailure.VERIFICATION_ERROR,
        ) from e


def is_self_signed(cert: Any) -> bool:
    """
    Check if a certificate is self-signed by verifying its signature with its own public key.

    Any verification failure is taken to mean the certificate is not
    self-signed; no error is raised.
    """
    if _dn(cert.issuer) != _dn(cert.subject):
        return False

    try:
        verify_signature(cert, cert)
    except SignatureVerificationError as e:
        logger.debug(
            f"Certificate '{_dn(cert.subject)}' has subject==issuer but signature verification failed: {e}"
        )
        return False

    return True
