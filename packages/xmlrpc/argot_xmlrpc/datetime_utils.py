"""
RFC 3339 date-time parsing and formatting.

XML-RPC carries timestamps as ``dateTime.iso8601``; in practice servers emit
either the RFC 3339 profile of ISO 8601 or the compact ``YYYYMMDDTHH:MM:SS``
form used by XML-RPC 1.0 examples. Both are accepted here.
"""

import re
from datetime import UTC, datetime, timedelta, timezone

_RFC3339_PATTERN = re.compile(
    r"""
    ^(?P<year>\d{4})-?(?P<month>\d{2})-?(?P<day>\d{2})
    [T ]
    (?P<hour>\d{2}):(?P<minute>\d{2}):(?P<second>\d{2})
    (?:\.(?P<fraction>\d{1,7}))?
    (?P<zone>Z|[+-]\d{2}:\d{2})?$
    """,
    re.VERBOSE | re.IGNORECASE,
)


def _parse_zone(zone: str | None) -> timezone:
    if not zone or zone.upper() == "Z":
        return UTC
    sign = -1 if zone[0] == "-" else 1
    hours, minutes = zone[1:].split(":")
    offset = timedelta(hours=int(hours), minutes=int(minutes))
    if offset >= timedelta(hours=24):
        raise ValueError(f"UTC offset out of range: {zone}")
    return timezone(sign * offset)


def try_parse_rfc3339(value: str | None) -> tuple[bool, datetime | None]:
    """
    Try to parse an RFC 3339 timestamp.

    Args:
        value: Text to parse.

    Returns:
        Tuple of (success, UTC datetime or None).
    """
    if not value:
        return False, None

    match = _RFC3339_PATTERN.match(value.strip())
    if not match:
        return False, None

    # Python keeps microseconds; a seventh fractional digit is dropped.
    fraction = (match.group("fraction") or "")[:6].ljust(6, "0")
    try:
        parsed = datetime(
            int(match.group("year")),
            int(match.group("month")),
            int(match.group("day")),
            int(match.group("hour")),
            int(match.group("minute")),
            int(match.group("second")),
            int(fraction),
            tzinfo=_parse_zone(match.group("zone")),
        )
    except ValueError:
        return False, None

    return True, parsed.astimezone(UTC)


def parse_rfc3339(value: str) -> datetime:
    """
    Parse an RFC 3339 timestamp.

    Args:
        value: Text to parse.

    Returns:
        Parsed datetime normalized to UTC.

    Raises:
        ValueError: If the value is empty or not RFC 3339 formatted.
    """
    if not value:
        raise ValueError("value must be a non-empty string")

    ok, result = try_parse_rfc3339(value)
    if not ok or result is None:
        raise ValueError(f"'{value}' is not a valid RFC-3339 formatted date-time value.")
    return result


def format_rfc3339(value: datetime) -> str:
    """
    Format a datetime as RFC 3339 with hundredths of a second.

    Naive and UTC datetimes render with a ``Z`` designator; other aware
    datetimes keep their offset.
    """
    hundredths = f"{value.microsecond // 10000:02d}"
    offset = value.utcoffset()
    if offset is None or offset == timedelta(0):
        return value.strftime("%Y-%m-%dT%H:%M:%S") + f".{hundredths}Z"

    total_minutes = int(offset.total_seconds() // 60)
    sign = "-" if total_minutes < 0 else "+"
    hours, minutes = divmod(abs(total_minutes), 60)
    return value.strftime("%Y-%m-%dT%H:%M:%S") + f".{hundredths}{sign}{hours:02d}:{minutes:02d}"
