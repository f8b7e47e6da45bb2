"""Primitive comparison functions used by compiled conditions.

Every comparator takes the value extracted from the request first and the
expected literal from the condition second, and returns a plain bool.

String comparators:
- contains: substring match
- equals: exact match
- has_prefix / has_suffix: anchored match

Time comparators parse both arguments as RFC3339 timestamps. If either side
fails to parse they return False, so a route guarded by a malformed time
condition fails closed instead of raising.

Example:
    >>> contains("Mozilla/5.0 Chrome/70", "Chrome")
    True
    >>> time_before("2018-10-28T15:00:00+01:00", "2018-10-28T20:00:00+01:00")
    True
    >>> time_before("yesterday", "2018-10-28T20:00:00+01:00")
    False
"""

from __future__ import annotations

import re
from collections.abc import Callable
from datetime import datetime

Comparator = Callable[[str, str], bool]

# date "T" time [fraction] ("Z" | offset)
_RFC3339_RE = re.compile(
    r"(?P<date>\d{4}-\d{2}-\d{2})[Tt]"
    r"(?P<time>\d{2}:\d{2}:\d{2})(?P<fraction>\.\d+)?"
    r"(?P<offset>[Zz]|[+-]\d{2}:[0-5]\d)"
)


def contains(haystack: str, needle: str) -> bool:
    return needle in haystack


def equals(a: str, b: str) -> bool:
    return a == b


def has_prefix(s: str, prefix: str) -> bool:
    return s.startswith(prefix)


def has_suffix(s: str, suffix: str) -> bool:
    return s.endswith(suffix)


def parse_rfc3339(value: str) -> datetime | None:
    """Parse an RFC3339 timestamp into an aware datetime.

    The offset is mandatory. Fractional seconds are accepted and truncated
    to microseconds.

    Returns:
        The parsed datetime, or None if the value is not valid RFC3339.
    """
    match = _RFC3339_RE.fullmatch(value)
    if match is None:
        return None

    fraction = (match.group("fraction") or "")[:7]

    offset = match.group("offset")
    if offset in ("Z", "z"):
        offset = "+00:00"

    try:
        return datetime.fromisoformat(
            f"{match.group('date')}T{match.group('time')}{fraction}{offset}"
        )
    except ValueError:
        return None


def format_rfc3339(moment: datetime) -> str:
    """Format a datetime as RFC3339 with second precision.

    UTC renders with a "Z" suffix. A naive datetime renders without an
    offset, which parse_rfc3339() rejects.
    """
    text = moment.replace(microsecond=0).isoformat()
    if text.endswith("+00:00"):
        return text[: -len("+00:00")] + "Z"
    return text


def time_before(ts_a: str, ts_b: str) -> bool:
    """True iff ts_a strictly precedes ts_b. False if either fails to parse."""
    first = parse_rfc3339(ts_a)
    if first is None:
        return False
    second = parse_rfc3339(ts_b)
    if second is None:
        return False
    return first < second


def time_after(ts_a: str, ts_b: str) -> bool:
    """True iff ts_b strictly precedes ts_a. False if either fails to parse."""
    first = parse_rfc3339(ts_a)
    if first is None:
        return False
    second = parse_rfc3339(ts_b)
    if second is None:
        return False
    return second < first

