"""Human readable formatting of expiration times and serial numbers."""

import math
from datetime import datetime, timezone


def insert_delimiter(text: str, delimiter: str, every: int) -> str:
    """Insert ``delimiter`` between every ``every`` characters of ``text``."""
    return delimiter.join(text[i:i + every] for i in range(0, len(text), every))


def format_expiration(expire_time: datetime) -> str:
    """
    Format the time until (or since) ``expire_time`` in whole days and hours.

    Examples: '367d 3h remaining', '3h remaining', '3h ago'. The day part is
    left out when less than a full day applies. Both parts are truncated.
    """
    hours_remaining = (expire_time - datetime.now(timezone.utc)).total_seconds() / 3600

    expired = hours_remaining < 0
    if expired:
        hours_remaining = -hours_remaining

    days = math.trunc(hours_remaining / 24)
    hours = math.trunc(hours_remaining - days * 24)

    if days > 0:
        formatted = f"{days}d {hours}h"
    else:
        formatted = f"{hours}h"

    return f"{formatted} ago" if expired else f"{formatted} remaining"


def format_serial_number(serial: int) -> str:
    """
    Format a certificate serial number the way OpenSSL prints it.

    Example: DE:FD:50:2B:C5:7F:79:F4

    Every byte keeps its leading zero. Negative serial numbers (invalid, but
    seen in the wild) are formatted by magnitude and prefixed with '-'.
    """
    magnitude = abs(serial)
    serial_bytes = magnitude.to_bytes((magnitude.bit_length() + 7) // 8, "big")

    formatted = insert_delimiter(serial_bytes.hex().upper(), ":", 2)

    if serial < 0:
        return "-" + formatted
    return formatted
