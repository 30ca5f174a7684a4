"""Chain analysis and report generation (text and JSON)."""

import json
import logging
from dataclasses import asdict
from datetime import datetime, timezone
from enum import Enum
from typing import Any, List, Optional, Sequence

from chain_analyzer.chain import (
    chain_position,
    count_intermediate,
    count_leaf,
    has_weak_signature_algorithm,
    root_certs,
)
from chain_analyzer.expiration import (
    expiration_state,
    expiration_status,
    expires_in_days,
    has_expired,
    has_expiring,
    is_expired,
    life_remaining_percent_truncated,
    max_lifespan_days,
)
from chain_analyzer.formatting import format_serial_number
from chain_analyzer.models import CertificateReport, ChainReport, ServiceState
from chain_analyzer.signature import algorithm_name

logger = logging.getLogger(__name__)

# Global flag for colored output
_use_color = True

_STATE_ORDER = [ServiceState.OK, ServiceState.WARNING, ServiceState.CRITICAL, ServiceState.UNKNOWN]


def set_color_output(enabled: bool) -> None:
    """Enable or disable colored output."""
    global _use_color
    _use_color = enabled


def _worst_state(states: List[ServiceState]) -> ServiceState:
    return max(states, key=_STATE_ORDER.index, default=ServiceState.OK)


def analyze_certificate(
    cert: Any,
    index: int,
    chain: Sequence[Any],
    age_critical: datetime,
    age_warning: datetime,
    ignore_expiration: bool = False,
    eval_root: bool = False,
) -> CertificateReport:
    """
    Analyze one certificate in the context of its chain.

    An ignored expiration does not affect the certificate state; a weak
    signature algorithm raises it to at least WARNING.
    """
    weak = has_weak_signature_algorithm(cert, chain, eval_root=eval_root)

    state = expiration_state(cert, age_critical, age_warning)
    if ignore_expiration and state != ServiceState.OK:
        logger.debug(f"Ignoring expiration state {state.value} for '{cert.subject.rfc4514_string()}'")
        state = ServiceState.OK
    if weak:
        state = _worst_state([state, ServiceState.WARNING])

    return CertificateReport(
        index=index,
        position=chain_position(cert, chain),
        subject=cert.subject.rfc4514_string(),
        issuer=cert.issuer.rfc4514_string(),
        serial_number=format_serial_number(cert.serial_number),
        signature_algorithm=algorithm_name(cert.signature_algorithm_oid),
        weak_signature_algorithm=weak,
        not_before=cert.not_valid_before_utc,
        not_after=cert.not_valid_after_utc,
        max_lifespan_days=max_lifespan_days(cert),
        expires_in_days=expires_in_days(cert),
        life_remaining_percent=life_remaining_percent_truncated(cert),
        expired=is_expired(cert),
        state=state,
        status=expiration_status(cert, age_critical, age_warning, ignore_expiration),
    )


def calculate_overall_state(report: ChainReport) -> ServiceState:
    """
    Calculate overall state from all certificates.

    Returns:
        Worst state (CRITICAL > WARNING > OK); UNKNOWN for an empty chain
    """
    if not report.certificates:
        return ServiceState.UNKNOWN
    return _worst_state([cert.state for cert in report.certificates])


def generate_summary(report: ChainReport) -> str:
    """Generate a one-line summary of the chain analysis."""
    if not report.certificates:
        return f"{ServiceState.UNKNOWN.value}: no certificates to evaluate"

    summary = (
        f"{report.state.value}: {len(report.certificates)} certificate(s) in chain "
        f"({report.leaf_count} leaf, {report.intermediate_count} intermediate, {report.root_count} root)"
    )

    issues = []
    if report.has_expired:
        issues.append("expired certificate present" + (" (ignored)" if report.ignore_expiration else ""))
    if report.has_expiring:
        issues.append("expiring certificate present" + (" (ignored)" if report.ignore_expiration else ""))
    if report.has_weak_signature:
        issues.append("weak signature algorithm present")

    if issues:
        summary += "; " + ", ".join(issues)
    return summary


def analyze_chain(
    chain: Sequence[Any],
    age_critical: datetime,
    age_warning: datetime,
    ignore_expiration: bool = False,
    eval_root: bool = False,
    source: Optional[str] = None,
) -> ChainReport:
    """
    Analyze a leaf-first certificate chain.

    Args:
        chain: Parsed certificates, leaf first
        age_critical: Certificates expiring before this time are CRITICAL
        age_warning: Certificates expiring before this time are WARNING
        ignore_expiration: Mark expired/expiring certificates as ignored
        eval_root: Also flag weak signature algorithms on root certificates
        source: Where the chain came from (for display)

    Returns:
        ChainReport
    """
    report = ChainReport(
        timestamp=datetime.now(timezone.utc),
        ignore_expiration=ignore_expiration,
        eval_root=eval_root,
        source=source,
    )

    for index, cert in enumerate(chain):
        report.certificates.append(
            analyze_certificate(cert, index, chain, age_critical, age_warning, ignore_expiration, eval_root)
        )

    if chain:
        report.leaf_count = count_leaf(chain)
        report.intermediate_count = count_intermediate(chain)
        report.root_count = len(root_certs(chain))
        report.has_expired = has_expired(chain)
        report.has_expiring = has_expiring(chain, age_critical, age_warning)
        report.has_weak_signature = any(cert.weak_signature_algorithm for cert in report.certificates)

    report.state = calculate_overall_state(report)
    report.summary = generate_summary(report)
    logger.debug(f"Chain analysis complete: {report.summary}")
    return report


def _format_state(state: ServiceState) -> str:
    """Format state with visual indicator."""
    if state == ServiceState.OK:
        color, symbol = "green", "✓"
    elif state == ServiceState.WARNING:
        color, symbol = "yellow", "⚠"
    else:
        color, symbol = "red", "✗"

    if _use_color:
        from io import StringIO

        from rich.console import Console

        output = StringIO()
        console = Console(file=output, force_terminal=True, width=1000)
        console.print(f"[{color}]{state.value} {symbol}[/{color}]", end="")
        return output.getvalue().strip()

    return f"{state.value} {symbol}"


def generate_text_report(report: ChainReport) -> str:
    """
    Generate human-readable text report.

    Args:
        report: ChainReport to render

    Returns:
        Formatted text report
    """
    lines = []
    lines.append("=" * 70)
    lines.append("Certificate Chain Report")
    lines.append("=" * 70)
    if report.source:
        lines.append(f"Source: {report.source}")
    lines.append(f"Timestamp: {report.timestamp.strftime('%Y-%m-%d %H:%M:%S UTC')}")
    lines.append(f"Status: {_format_state(report.state)}")
    lines.append("")

    for cert in report.certificates:
        lines.append(f"Certificate {cert.index + 1} of {len(report.certificates)} ({cert.position.value}):")
        lines.append(f"  Status: {_format_state(cert.state)}")
        lines.append(f"  Subject: {cert.subject}")
        lines.append(f"  Issuer: {cert.issuer}")
        lines.append(f"  Serial Number: {cert.serial_number}")
        lines.append(f"  Signature Algorithm: {cert.signature_algorithm}" + (" (weak)" if cert.weak_signature_algorithm else ""))
        lines.append(f"  Issued On: {cert.not_before.strftime('%Y-%m-%d %H:%M:%S UTC')}")
        lines.append(f"  Expiration: {cert.not_after.strftime('%Y-%m-%d %H:%M:%S UTC')}")
        lines.append(f"  Lifespan: {cert.max_lifespan_days}d")
        lines.append(f"  Expires: {cert.status}")
        lines.append("")

    lines.append("Summary:")
    lines.append(f"  {report.summary}")
    lines.append("=" * 70)

    return "\n".join(lines)


def generate_json_report(report: ChainReport) -> str:
    """
    Generate JSON report.

    Args:
        report: ChainReport to render

    Returns:
        JSON string
    """
    def serialize(obj: Any) -> str:
        if isinstance(obj, datetime):
            return obj.isoformat()
        elif isinstance(obj, Enum):
            return obj.value
        raise TypeError(f"Type {type(obj)} not serializable")

    data = asdict(report)
    return json.dumps(data, indent=2, default=serialize)
