"""Exceptions raised by chain analysis."""

from enum import Enum
from typing import Optional

from cryptography import x509


class VerificationFailure(str, Enum):
    """Reason attached to a failed signature verification."""

    NAME_MISMATCH = "issuer and subject X.509 distinguished name mismatch"
    KEY_TYPE_MISMATCH = "issuer public key type does not match signature algorithm"
    INVALID_SIGNATURE = "signature does not match issuer public key"
    UNSUPPORTED_ALGORITHM = "unsupported signature algorithm (please submit a bug report)"
    VERIFICATION_ERROR = "error during signature verification"


class ChainAnalyzerError(Exception):
    """Base class for all chain analysis errors."""


class MissingValueError(ChainAnalyzerError):
    """An expected value (usually a certificate) was not provided."""


class CertificateLoadError(ChainAnalyzerError):
    """Certificate data could not be decoded."""


class SignatureVerificationError(ChainAnalyzerError):
    """
    Signature verification between an issued and an issuer certificate failed.

    The specific cause is available as ``reason``; the underlying exception
    (if any) is chained as ``__cause__``.
    """

    def __init__(self, message: str, reason: VerificationFailure = VerificationFailure.VERIFICATION_ERROR):
        super().__init__(message)
        self.reason = reason


class InsecureAlgorithmError(ChainAnalyzerError):
    """The standard verification path refuses the declared signature algorithm."""

    def __init__(self, oid: x509.ObjectIdentifier, name: Optional[str] = None):
        self.oid = oid
        self.name = name or oid.dotted_string
        super().__init__(f"signature algorithm {self.name} is considered insecure")
