"""Date and time conversions for EDM recordings.

Flight headers pack the start time into two 16-bit words; the `$T` header
carries the download time as separate fields. All times are UTC.
"""

from __future__ import annotations

from datetime import datetime, timezone

# Packed year values at or above this are 19xx, below are 20xx.
PACKED_YEAR_CENTURY_PIVOT = 75


def unpack_date(packed_date: int) -> tuple[int, int, int]:
    """Return (year, month, day) from a packed date word.

    Layout: ``yyyyyyym mmmddddd``; years at or above 75 are 19xx.
    """
    year = (packed_date >> 9) & 0x7F
    year += 1900 if year >= PACKED_YEAR_CENTURY_PIVOT else 2000
    return year, (packed_date >> 5) & 0x0F, packed_date & 0x1F


def unpack_time(packed_time: int) -> tuple[int, int, int]:
    """Return (hour, minute, second) from a packed time word.

    Layout: ``hhhhhmmm mmmsssss``; seconds are stored halved.
    """
    return (packed_time >> 11) & 0x1F, (packed_time >> 5) & 0x3F, (packed_time & 0x1F) * 2


def packed_to_unix_timestamp(packed_date: int, packed_time: int) -> int:
    """Convert a packed date/time pair to seconds since 1970.

    Raises ValueError for out-of-range fields.
    """
    year, month, day = unpack_date(packed_date)
    hour, minute, second = unpack_time(packed_time)
    dt = datetime(year, month, day, hour, minute, second, tzinfo=timezone.utc)
    return int(dt.timestamp())


def header_to_unix_timestamp(month: int, day: int, two_digit_year: int, hour: int, minute: int) -> int:
    """Convert the `$T` download fields to seconds since 1970."""
    dt = datetime(two_digit_year + 2000, month, day, hour, minute, tzinfo=timezone.utc)
    return int(dt.timestamp())


def unix_to_datetime(timestamp: int) -> datetime:
    return datetime.fromtimestamp(timestamp, tz=timezone.utc)
