"""Certificate chain position classification."""

import logging
from typing import Any, List, Optional, Sequence

from cryptography import x509
from cryptography.x509.oid import SignatureAlgorithmOID

from chain_analyzer.models import ChainPosition
from chain_analyzer.signature import MD2_WITH_RSA, OIW_SHA1_WITH_RSA, is_self_signed

logger = logging.getLogger(__name__)

WEAK_SIGNATURE_ALGORITHMS = frozenset(
    {
        MD2_WITH_RSA,
        SignatureAlgorithmOID.RSA_WITH_MD5,
        SignatureAlgorithmOID.RSA_WITH_SHA1,
        OIW_SHA1_WITH_RSA,
        SignatureAlgorithmOID.DSA_WITH_SHA1,
        SignatureAlgorithmOID.ECDSA_WITH_SHA1,
    }
)

_LEAF_POSITIONS = (ChainPosition.LEAF, ChainPosition.LEAF_SELF_SIGNED)


def certificate_version(cert: Any) -> int:
    """
    Return the X.509 version number (1, 2 or 3) of a certificate.

    cryptography only models v1 and v3; any other encoded version is reported
    through InvalidVersion when the attribute is read.
    """
    try:
        return cert.version.value + 1
    except x509.InvalidVersion as e:
        return e.parsed_version + 1


def _extension_value(cert: Any, extension_class: type) -> Optional[Any]:
    try:
        return cert.extensions.get_extension_for_class(extension_class).value
    except x509.ExtensionNotFound:
        return None


def _chain_position_v1v2(cert: Any, chain: Sequence[Any]) -> ChainPosition:
    # v1 and v2 certificates have no extensions describing their purpose, so
    # the literal position in the chain is used instead.
    first = cert is chain[0]
    if is_self_signed(cert):
        return ChainPosition.LEAF_SELF_SIGNED if first else ChainPosition.ROOT
    return ChainPosition.LEAF if first else ChainPosition.INTERMEDIATE


def _chain_position_v3_key_usage(cert: Any, self_signed: bool) -> ChainPosition:
    key_usage = _extension_value(cert, x509.KeyUsage)
    can_sign_certs = key_usage is not None and key_usage.key_cert_sign

    if self_signed:
        return ChainPosition.ROOT if can_sign_certs else ChainPosition.LEAF_SELF_SIGNED
    return ChainPosition.INTERMEDIATE if can_sign_certs else ChainPosition.LEAF


def _chain_position_v3(cert: Any) -> ChainPosition:
    self_signed = is_self_signed(cert)

    # The CA flag indicates the certified key may verify certificate signatures
    basic_constraints = _extension_value(cert, x509.BasicConstraints)
    if basic_constraints is not None and basic_constraints.ca:
        return ChainPosition.ROOT if self_signed else ChainPosition.INTERMEDIATE

    # Extended key usage generally appears only in end entity certificates
    if _extension_value(cert, x509.ExtendedKeyUsage) is not None:
        return ChainPosition.LEAF_SELF_SIGNED if self_signed else ChainPosition.LEAF

    return _chain_position_v3_key_usage(cert, self_signed)


def chain_position(cert: Any, chain: Optional[Sequence[Any]]) -> ChainPosition:
    """
    Determine the position ("role") a certificate occupies in its chain.

    Args:
        cert: Certificate to classify
        chain: Leaf-first chain the certificate belongs to

    Returns:
        ChainPosition; UNKNOWN for a missing chain or unrecognised version
    """
    if not chain:
        return ChainPosition.UNKNOWN

    version = certificate_version(cert)
    if version in (1, 2):
        position = _chain_position_v1v2(cert, chain)
    elif version == 3:
        # Extensions are parsed lazily; malformed ones surface here
        try:
            position = _chain_position_v3(cert)
        except (ValueError, x509.DuplicateExtension) as e:
            logger.debug(f"Unable to parse extensions of '{cert.subject.rfc4514_string()}': {e}")
            return ChainPosition.UNKNOWN
    else:
        logger.debug(f"Unrecognised certificate version {version}")
        return ChainPosition.UNKNOWN

    logger.debug(f"Certificate '{cert.subject.rfc4514_string()}' (v{version}) classified as {position.value}")
    return position


def count_leaf(chain: Sequence[Any]) -> int:
    """Return the number of leaf certificates (self-signed or not) in the chain."""
    return sum(1 for cert in chain if chain_position(cert, chain) in _LEAF_POSITIONS)


def count_intermediate(chain: Sequence[Any]) -> int:
    """Return the number of intermediate certificates in the chain."""
    return sum(1 for cert in chain if chain_position(cert, chain) == ChainPosition.INTERMEDIATE)


def leaf_certs(chain: Sequence[Any]) -> List[Any]:
    """Return the (possibly empty) list of leaf certificates in the chain."""
    return [cert for cert in chain if chain_position(cert, chain) in _LEAF_POSITIONS]


def non_root_certs(chain: Sequence[Any]) -> List[Any]:
    """Return all certificates in the chain which are not root certificates."""
    return [cert for cert in chain if chain_position(cert, chain) != ChainPosition.ROOT]


def root_certs(chain: Sequence[Any]) -> List[Any]:
    return [cert for cert in chain if chain_position(cert, chain) == ChainPosition.ROOT]


def has_weak_signature_algorithm(cert: Any, chain: Sequence[Any], eval_root: bool = False) -> bool:
    """
    Indicate whether a certificate is signed with a known weak algorithm.

    Root certificates are trusted by identity rather than by the strength of
    their signature, so they evaluate to False unless eval_root is set.

    - https://security.googleblog.com/2014/09/gradually-sunsetting-sha-1.html
    - https://developer.mozilla.org/en-US/docs/Web/Security/Weak_Signature_Algorithm
    """
    if not eval_root and chain_position(cert, chain) == ChainPosition.ROOT:
        return False

    return cert.signature_algorithm_oid in WEAK_SIGNATURE_ALGORITHMS
