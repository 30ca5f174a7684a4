"""Certificate expiration and lifespan calculations."""

import logging
import math
from datetime import datetime, timedelta, timezone
from typing import Any, Optional, Sequence, Tuple

from chain_analyzer.exceptions import MissingValueError
from chain_analyzer.formatting import format_expiration
from chain_analyzer.models import ServiceState

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _require(cert: Optional[Any], func_name: str) -> Any:
    if cert is None:
        raise MissingValueError(f"func {func_name}: unable to determine expiration: missing certificate")
    return cert


def _hours(delta: timedelta) -> float:
    return delta.total_seconds() / 3600


def expiration_thresholds(critical_days: int, warning_days: int) -> Tuple[datetime, datetime]:
    """
    Build the CRITICAL and WARNING threshold times from day counts.

    A certificate expiring before a threshold time is in that state.
    """
    now = _now()
    return now + timedelta(days=critical_days), now + timedelta(days=warning_days)


def max_lifespan_days(cert: Any) -> int:
    """
    Return the maximum lifespan of a certificate in whole days.

    The value is truncated (1.5 days becomes 1 day). Rounding up would report
    more days than the certificate has and give a false sense of safety.
    """
    cert = _require(cert, "max_lifespan_days")
    lifespan = cert.not_valid_after_utc - cert.not_valid_before_utc
    return math.trunc(_hours(lifespan) / 24)


def is_expired(cert: Any) -> bool:
    cert = _require(cert, "is_expired")
    return cert.not_valid_after_utc < _now()


def expires_in_days(cert: Any) -> int:
    """
    Return the number of whole days until the certificate expires.

    Negative when already expired (days past expiration).
    """
    cert = _require(cert, "expires_in_days")
    return math.trunc(_hours(cert.not_valid_after_utc - _now()) / 24)


def expires_in_days_precise(cert: Any) -> float:
    """Return the days until expiration, rounded down to two decimal places."""
    cert = _require(cert, "expires_in_days_precise")
    days_remaining = _hours(cert.not_valid_after_utc - _now()) / 24
    return math.floor(days_remaining * 100) / 100


def life_remaining_percent(cert: Any) -> float:
    """Return the percentage of the certificate lifespan that remains."""
    cert = _require(cert, "life_remaining_percent")

    if is_expired(cert):
        return 0.0

    max_days = max_lifespan_days(cert)
    if max_days == 0:
        # Less than one whole day of lifespan; report nothing remaining
        return 0.0

    return expires_in_days(cert) / max_days * 100


def life_remaining_percent_truncated(cert: Any) -> int:
    cert = _require(cert, "life_remaining_percent_truncated")

    if is_expired(cert):
        return 0

    return math.trunc(life_remaining_percent(cert))


def expiration_status(
    cert: Any,
    age_critical: datetime,
    age_warning: datetime,
    ignore_expiration: bool = False,
) -> str:
    """
    Return a status string for the certificate expiration, e.g. '[OK] 89d 2h remaining (24%)'.

    Expired or expiring certificates are marked as ignored if requested.
    """
    cert = _require(cert, "expiration_status")
    not_after = cert.not_valid_after_utc

    life_remaining_text = f" ({life_remaining_percent_truncated(cert)}%)"

    if not_after < _now():
        label = "EXPIRED, IGNORED" if ignore_expiration else "EXPIRED"
    elif not_after < age_critical:
        label = "EXPIRING, IGNORED" if ignore_expiration else ServiceState.CRITICAL.value
    elif not_after < age_warning:
        label = "EXPIRING, IGNORED" if ignore_expiration else ServiceState.WARNING.value
    else:
        label = ServiceState.OK.value

    return f"[{label}] {format_expiration(not_after)}{life_remaining_text}"


def expiration_state(cert: Any, age_critical: datetime, age_warning: datetime) -> ServiceState:
    """Map a certificate expiration onto a service check state."""
    cert = _require(cert, "expiration_state")
    not_after = cert.not_valid_after_utc

    if not_after < _now() or not_after < age_critical:
        return ServiceState.CRITICAL
    if not_after < age_warning:
        return ServiceState.WARNING
    return ServiceState.OK


def has_expiring(chain: Sequence[Any], age_critical: datetime, age_warning: datetime) -> bool:
    """Indicate whether any non-expired certificate in the chain expires before either threshold."""
    for cert in chain:
        if is_expired(cert):
            continue
        if cert.not_valid_after_utc < age_critical or cert.not_valid_after_utc < age_warning:
            logger.debug(f"Certificate '{cert.subject.rfc4514_string()}' expires {cert.not_valid_after_utc}")
            return True
    return False


def has_expired(chain: Sequence[Any]) -> bool:
    """Indicate whether any certificate in the chain has expired."""
    return any(is_expired(cert) for cert in chain)
