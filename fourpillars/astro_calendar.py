"""
Calendar utilities for the pillar calculations.
Handles the fixed UTC+8 civil clock, Julian Day conversion,
branch-hour lookups and birth-place time zone detection.
"""

from datetime import date, datetime, timedelta, timezone
from functools import lru_cache
from typing import Union
from zoneinfo import ZoneInfo

import swisseph as swe
from timezonefinder import TimezoneFinder

from fourpillars.errors import InvalidHourIndexError

# All moments the engine returns are expressed on Beijing civil time.
BEIJING_TZ = timezone(timedelta(hours=8), "UTC+08:00")


def to_beijing_time(moment: datetime) -> datetime:
    """
    Normalise a datetime onto the UTC+8 civil clock.

    Naive datetimes are taken to already be UTC+8 clock readings;
    aware datetimes are converted.
    """
    if moment.tzinfo is None or moment.utcoffset() is None:
        return moment.replace(tzinfo=BEIJING_TZ)
    return moment.astimezone(BEIJING_TZ)


def day_of_week(moment: Union[date, str]) -> dict:
    """Day-of-week info for a date (0=Monday, 6=Sunday)."""
    if isinstance(moment, str):
        moment = datetime.fromisoformat(moment)

    return {
        "date": moment.strftime("%Y-%m-%d"),
        "day_name": moment.strftime("%A"),
        "day_number": moment.weekday(),
    }


# ============================================================
# JULIAN DAY CONVERSION
# ============================================================

def julian_day_ut(moment: datetime) -> float:
    """Julian Day (UT) of a civil moment."""
    utc = to_beijing_time(moment).astimezone(timezone.utc)
    hours = utc.hour + utc.minute / 60.0 + (utc.second + utc.microsecond / 1e6) / 3600.0
    return swe.julday(utc.year, utc.month, utc.day, hours, swe.GREG_CAL)


def jd_to_beijing(jd_ut: float) -> datetime:
    """Convert a Julian Day (UT) to a UTC+8 datetime, rounded to the second."""
    year, month, day, hours = swe.revjul(jd_ut, swe.GREG_CAL)
    utc = datetime(year, month, day, tzinfo=timezone.utc) + timedelta(seconds=round(hours * 3600))
    return utc.astimezone(BEIJING_TZ)


def julian_day_number(civil_date: date) -> int:
    """
    Integer Julian Day Number of a civil date.

    swe.julday at noon lands exactly on the integer JDN,
    e.g. 2000-01-01 -> 2451545.
    """
    return int(round(swe.julday(civil_date.year, civil_date.month, civil_date.day, 12.0, swe.GREG_CAL)))


# ============================================================
# BRANCH HOURS (时辰)
# ============================================================
#
# 23:00-00:59 = Zi (Rat)      = 0
# 01:00-02:59 = Chou (Ox)     = 1
# 03:00-04:59 = Yin (Tiger)   = 2
# ...
# 21:00-22:59 = Hai (Pig)     = 11

HOURS_PER_BRANCH = 2


def validate_hour_index(hour_index: object) -> int:
    """Return the hour index unchanged, or raise InvalidHourIndexError."""
    if isinstance(hour_index, bool) or not isinstance(hour_index, int):
        raise InvalidHourIndexError(hour_index, "not an integer")
    if not 0 <= hour_index <= 11:
        raise InvalidHourIndexError(hour_index)
    return hour_index


def hour_index_for(hour: int) -> int:
    """Map a clock hour (0-23) to its branch hour index (0-11)."""
    if not 0 <= hour <= 23:
        raise ValueError(f"Clock hour must be in 0-23, got {hour}")
    return ((hour + 1) // HOURS_PER_BRANCH) % 12


def hour_start(hour_index: int) -> int:
    """First clock hour of a branch hour (Zi starts at 23)."""
    validate_hour_index(hour_index)
    return (hour_index * HOURS_PER_BRANCH - 1) % 24


def birth_instant(civil_date: Union[date, str], hour_index: int) -> datetime:
    """
    Build a UTC+8 birth instant at the start of a branch hour.

    The Zi hour is placed at 23:00 of the given civil date.
    """
    if isinstance(civil_date, str):
        civil_date = date.fromisoformat(civil_date)
    start = hour_start(hour_index)
    return datetime(civil_date.year, civil_date.month, civil_date.day, start,
                    tzinfo=BEIJING_TZ)


# ============================================================
# BIRTH-PLACE TIME ZONES
# ============================================================

@lru_cache(maxsize=1)
def _timezone_finder() -> TimezoneFinder:
    return TimezoneFinder()


def utc_offset_for(latitude: float, longitude: float, local_dt: datetime):
    """
    Determine the time zone in force at a place and local clock time.
    Detects historical DST (e.g., China 1986-1991).

    Returns:
        (clock_offset_hours, timezone_name, dst_detected)
    """
    tz_name = _timezone_finder().timezone_at(lat=latitude, lng=longitude)
    if tz_name is None:
        raise ValueError(f"Could not determine timezone for ({latitude}, {longitude})")

    aware = local_dt.replace(tzinfo=ZoneInfo(tz_name))
    clock_offset = aware.utcoffset().total_seconds() / 3600
    dst = aware.dst()
    dst_detected = dst is not None and dst.total_seconds() > 0
    return clock_offset, tz_name, dst_detected


def local_to_beijing(local_dt: datetime, latitude: float, longitude: float) -> datetime:
    """Convert a local clock reading at a birth place to the UTC+8 clock."""
    clock_offset, _, _ = utc_offset_for(latitude, longitude, local_dt)
    utc = local_dt.replace(tzinfo=None) - timedelta(hours=clock_offset)
    return utc.replace(tzinfo=timezone.utc).astimezone(BEIJING_TZ)
