"""
Parsers for size and date criteria.

Size strings accept an optional binary unit suffix (B, KB, MB, GB). Date values
accept datetime objects, epoch timestamps, absolute date strings, and relative
strings such as "7 days" or "2 weeks". Anything else is an InvalidCriteriaError.
"""

import math
import re
from datetime import datetime, timedelta, timezone
from typing import Union

from ..errors import InvalidCriteriaError


SIZE_UNITS = {
    '': 1,
    'B': 1,
    'KB': 1024,
    'MB': 1024 ** 2,
    'GB': 1024 ** 3,
}

_SIZE_RE = re.compile(r'^\s*(\d+(?:\.\d+)?|\.\d+)\s*([A-Za-z]*)\s*$')

_RELATIVE_DATE_PATTERNS = [
    (re.compile(r'^(\d+)\s*days?$'), lambda n: timedelta(days=n)),
    (re.compile(r'^(\d+)\s*weeks?$'), lambda n: timedelta(weeks=n)),
    (re.compile(r'^(\d+)\s*months?$'), lambda n: timedelta(days=n * 30)),
    (re.compile(r'^(\d+)\s*years?$'), lambda n: timedelta(days=n * 365)),
]

_DATE_FORMATS = [
    '%Y-%m-%d',
    '%Y-%m-%d %H:%M:%S',
    '%Y-%m-%d %H:%M',
    '%Y/%m/%d',
    '%Y-%m-%dT%H:%M:%S',
    '%Y-%m-%dT%H:%M:%SZ',
]


def parse_size(value: Union[str, int, float]) -> int:
    """
    Parse a size value into a byte count.

    Args:
        value: Integer byte count or string like "512", "10KB", "1.5 MB"

    Returns:
        Size in bytes

    Raises:
        InvalidCriteriaError: If the value is negative or cannot be parsed
    """
    if isinstance(value, bool):
        raise InvalidCriteriaError(f"Invalid size: {value!r}", value=value)

    if isinstance(value, (int, float)):
        if isinstance(value, float) and not math.isfinite(value):
            raise InvalidCriteriaError(f"Size must be a finite number: {value}", value=value)
        if value < 0:
            raise InvalidCriteriaError(f"Size cannot be negative: {value}", value=value)
        return int(value)

    if not isinstance(value, str):
        raise InvalidCriteriaError(f"Invalid size: {value!r}", value=value)

    match = _SIZE_RE.match(value)
    if not match:
        raise InvalidCriteriaError(f"Invalid size: {value!r}", value=value)

    number, unit = match.groups()
    multiplier = SIZE_UNITS.get(unit.upper())
    if multiplier is None:
        raise InvalidCriteriaError(
            f"Unknown size unit {unit!r} in {value!r} (expected one of B, KB, MB, GB)",
            value=value,
        )

    size = float(number) * multiplier
    if not math.isfinite(size):
        raise InvalidCriteriaError(f"Size out of range: {value!r}", value=value)
    return int(size)


def parse_date(value: Union[str, datetime, int, float]) -> datetime:
    """
    Parse a date criterion into a datetime.

    Args:
        value: datetime, Unix timestamp, absolute date string or relative
            string ("3 days", "1 week", "2 months", "1 year")

    Returns:
        Parsed naive datetime in local time (relative strings are measured
        back from now; timezone-aware values are converted to local time so
        they compare with file modification times)

    Raises:
        InvalidCriteriaError: If the value cannot be parsed
    """
    if isinstance(value, datetime):
        return _to_local_naive(value)

    if isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return datetime.fromtimestamp(value)
        except (ValueError, OSError, OverflowError) as e:
            raise InvalidCriteriaError(f"Invalid timestamp: {value!r}", value=value) from e

    if isinstance(value, str):
        text = value.strip().lower()

        for pattern, to_delta in _RELATIVE_DATE_PATTERNS:
            match = pattern.match(text)
            if match:
                try:
                    return datetime.now() - to_delta(int(match.group(1)))
                except OverflowError as e:
                    raise InvalidCriteriaError(f"Date out of range: {value!r}", value=value) from e

        for fmt in _DATE_FORMATS:
            try:
                parsed = datetime.strptime(value.strip(), fmt)
            except ValueError:
                continue
            if fmt.endswith('Z'):
                parsed = parsed.replace(tzinfo=timezone.utc)
            return _to_local_naive(parsed)

    raise InvalidCriteriaError(f"Invalid date: {value!r}", value=value)


def _to_local_naive(value: datetime) -> datetime:
    if value.tzinfo is None or value.utcoffset() is None:
        return value
    try:
        return value.astimezone().replace(tzinfo=None)
    except (ValueError, OverflowError, OSError) as e:
        raise InvalidCriteriaError(f"Date out of range: {value!r}", value=value) from e
