"""Data models for certificate chain analysis results."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, List
from datetime import datetime


class ChainPosition(str, Enum):
    """Structural role of a certificate within its chain."""

    LEAF = "leaf"
    LEAF_SELF_SIGNED = "leaf; self-signed"
    INTERMEDIATE = "intermediate"
    ROOT = "root"
    UNKNOWN = "UNKNOWN cert chain position; please submit a bug report"


class ServiceState(str, Enum):
    """Monitoring service check state labels."""

    OK = "OK"
    WARNING = "WARNING"
    CRITICAL = "CRITICAL"
    UNKNOWN = "UNKNOWN"
    DEPENDENT = "DEPENDENT"


class LegacyAlgorithm(Enum):
    """Signature algorithms verified explicitly when the standard path refuses them."""

    MD5_RSA = "md5WithRSAEncryption"
    SHA1_RSA = "sha1WithRSAEncryption"
    ECDSA_SHA1 = "ecdsa-with-SHA1"
    UNSUPPORTED = "unsupported"


@dataclass
class CertificateReport:
    """Analysis of a single certificate within a chain."""

    index: int
    position: ChainPosition
    subject: str
    issuer: str
    serial_number: str  # OpenSSL style, e.g. "DE:FD:50:2B"
    signature_algorithm: str
    weak_signature_algorithm: bool
    not_before: datetime
    not_after: datetime
    max_lifespan_days: int
    expires_in_days: int
    life_remaining_percent: int
    expired: bool
    state: ServiceState
    status: str  # e.g. "[WARNING] 20d 3h remaining (5%)"


@dataclass
class ChainReport:
    """Analysis of a whole certificate chain."""

    timestamp: datetime
    certificates: List[CertificateReport] = field(default_factory=list)
    leaf_count: int = 0
    intermediate_count: int = 0
    root_count: int = 0
    has_expired: bool = False
    has_expiring: bool = False
    has_weak_signature: bool = False
    ignore_expiration: bool = False
    eval_root: bool = False
    source: Optional[str] = None  # File the chain was loaded from
    state: ServiceState = ServiceState.UNKNOWN
    summary: str = ""
