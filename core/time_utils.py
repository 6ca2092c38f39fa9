from datetime import date, datetime, timezone, tzinfo
from zoneinfo import ZoneInfo

from core.config import CLINIC_TIMEZONE

DISPLAY_DATE = "%d/%m/%Y"
DISPLAY_DATETIME = "%d/%m/%Y %H:%M"
DAY_KEY = "%Y-%m-%d"
SLOT_KEY = "%Y-%m-%d %H:%M"

# Loose input formats accepted besides ISO-8601
_INPUT_FORMATS = (
    "%d/%m/%Y %H:%M",
    "%d/%m/%Y",
    "%Y-%m-%d %H:%M",
)


def clinic_zone(name: str = CLINIC_TIMEZONE) -> tzinfo:
    """Zone used for display strings and calendar-day comparisons."""
    if name.upper() == "UTC":
        return timezone.utc
    return ZoneInfo(name)


def now_utc() -> datetime:
    """Return a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def to_instant(value) -> datetime:
    """Parse ``value`` into an aware UTC datetime.

    Accepts datetimes, dates (midnight), ISO-8601 strings with or without an
    offset and the day-first display formats. Naive values are read in the
    clinic zone. Raises ValueError for anything else.
    """
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        dt = datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        dt = _parse_text(value.strip())
    else:
        raise ValueError(f"Unsupported time value: {value!r}")

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=clinic_zone())
    return dt.astimezone(timezone.utc)


def _parse_text(text: str) -> datetime:
    if not text:
        raise ValueError("Empty time value")
    iso = text[:-1] + "+00:00" if text.endswith(("Z", "z")) else text
    try:
        return datetime.fromisoformat(iso)
    except ValueError:
        pass
    for fmt in _INPUT_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    raise ValueError(f"Unrecognised time value: {text!r}")


def format_instant(value) -> str:
    """Canonical stored form, e.g. 2024-03-20T10:00:00.000Z."""
    dt = to_instant(value)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _local(value) -> datetime:
    return to_instant(value).astimezone(clinic_zone())


def format_date(value) -> str:
    return _local(value).strftime(DISPLAY_DATE)


def format_datetime(value) -> str:
    return _local(value).strftime(DISPLAY_DATETIME)


def day_key(value) -> str:
    """Calendar day of ``value`` in the clinic zone.

    Plain ``date`` objects and ``YYYY-MM-DD`` strings are taken as already
    being clinic-local days.
    """
    if isinstance(value, date) and not isinstance(value, datetime):
        return value.strftime(DAY_KEY)
    if isinstance(value, str) and len(value.strip()) == 10 and "-" in value:
        return datetime.strptime(value.strip(), DAY_KEY).strftime(DAY_KEY)
    return _local(value).strftime(DAY_KEY)


def slot_key(day, time: str) -> str:
    """Minute-granularity composite ``YYYY-MM-DD HH:MM`` for a day and a clock time."""
    parts = time.strip().split(":")
    minutes = int(parts[1]) if len(parts) > 1 else 0
    return f"{day_key(day)} {int(parts[0]):02d}:{minutes:02d}"


def appointment_slot_key(value) -> str:
    return _local(value).strftime(SLOT_KEY)


def parse_display_date(text: str) -> date:
    """Parse a ``dd/mm/YYYY`` string (or an ISO ``YYYY-MM-DD`` one)."""
    text = (text or "").strip()
    try:
        return datetime.strptime(text, DISPLAY_DATE).date()
    except ValueError:
        return datetime.strptime(text, DAY_KEY).date()
