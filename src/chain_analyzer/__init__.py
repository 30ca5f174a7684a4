"""X.509 certificate chain analysis: chain positions, signatures and expiration."""

from chain_analyzer.chain import (
    chain_position,
    count_intermediate,
    count_leaf,
    has_weak_signature_algorithm,
    leaf_certs,
    non_root_certs,
    root_certs,
)
from chain_analyzer.exceptions import (
    ChainAnalyzerError,
    MissingValueError,
    SignatureVerificationError,
    VerificationFailure,
)
from chain_analyzer.expiration import (
    expiration_status,
    expires_in_days,
    expires_in_days_precise,
    has_expired,
    has_expiring,
    is_expired,
    life_remaining_percent,
    life_remaining_percent_truncated,
    max_lifespan_days,
)
from chain_analyzer.formatting import format_expiration, format_serial_number
from chain_analyzer.models import ChainPosition, ServiceState
from chain_analyzer.signature import is_self_signed, verify_signature

__version__ = "0.1.0"
