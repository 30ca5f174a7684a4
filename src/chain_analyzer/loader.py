"""Loading certificate chains from PEM or DER data."""

import logging
import re
import warnings
from pathlib import Path
from typing import List

from cryptography import x509
from cryptography.utils import CryptographyDeprecationWarning

from chain_analyzer.exceptions import CertificateLoadError

logger = logging.getLogger(__name__)

_PEM_PATTERN = rb"-----BEGIN CERTIFICATE-----(.*?)-----END CERTIFICATE-----"


def split_pem_certificates(data: bytes) -> List[bytes]:
    """Split PEM data into individual certificate blocks."""
    matches = re.findall(_PEM_PATTERN, data, re.DOTALL)
    return [
        b"-----BEGIN CERTIFICATE-----" + match + b"-----END CERTIFICATE-----\n"
        for match in matches
    ]


def _load_cert_without_warnings(cert_data: bytes, pem: bool) -> x509.Certificate:
    """
    Load a certificate while suppressing CryptographyDeprecationWarning.

    cryptography warns about negative or over-long serial numbers and some
    extension encodings; such certificates are still worth analysing, so the
    warning is logged instead. Extensions are parsed lazily, so they are read
    here to surface both their warnings and malformed encodings at load time.
    """
    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always", CryptographyDeprecationWarning)
        if pem:
            cert = x509.load_pem_x509_certificate(cert_data)
        else:
            cert = x509.load_der_x509_certificate(cert_data)
        cert.extensions

    for warning in caught:
        if issubclass(warning.category, CryptographyDeprecationWarning):
            logger.warning(f"Certificate '{cert.subject.rfc4514_string()}': {warning.message}")
        else:
            warnings.warn_explicit(warning.message, warning.category, warning.filename, warning.lineno)

    return cert


def load_certificates(data: bytes) -> List[x509.Certificate]:
    """
    Load a leaf-first certificate chain from a PEM bundle or a single DER certificate.

    Raises:
        CertificateLoadError: no certificate could be decoded
    """
    pem_blocks = split_pem_certificates(data)

    certs: List[x509.Certificate] = []
    try:
        if pem_blocks:
            for block in pem_blocks:
                certs.append(_load_cert_without_warnings(block, pem=True))
        elif data.strip():
            certs.append(_load_cert_without_warnings(data, pem=False))
    except (ValueError, x509.DuplicateExtension) as e:
        raise CertificateLoadError(f"Unable to parse certificate: {e}") from e

    if not certs:
        raise CertificateLoadError("No certificates found in input")

    logger.debug(f"Loaded {len(certs)} certificate(s)")
    return certs


def load_certificates_from_file(path: Path) -> List[x509.Certificate]:
    """Load a certificate chain from a PEM or DER file."""
    try:
        data = Path(path).read_bytes()
    except OSError as e:
        raise CertificateLoadError(f"Unable to read {path}: {e}") from e

    return load_certificates(data)
