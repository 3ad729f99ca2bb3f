"""Natural-language date and time normalization.

Relative day words are understood in English, German, French and Italian.
Anything else goes through ISO parsing and then dateutil's fuzzy parser, and
finally falls back to the base date.
"""
import re
from datetime import datetime, timedelta
from typing import Dict, Optional

from dateutil import parser as date_parser


DEFAULT_TIME = "09:00"

_TOMORROW = {"tomorrow", "morgen", "demain", "domani"}
_YESTERDAY = {"yesterday", "gestern", "hier", "ieri"}
_TODAY = {"today", "heute", "aujourd'hui", "oggi"}
_WEEKEND = {
    "this weekend",
    "weekend",
    "dieses wochenende",
    "wochenende",
    "ce week-end",
    "week-end",
    "questo fine settimana",
    "fine settimana",
}

_AMPM_WITH_MINUTES = re.compile(r"(\d{1,2}):(\d{2})\s*([ap]m)", re.IGNORECASE)
_AMPM_HOUR_ONLY = re.compile(r"(\d{1,2})\s*([ap]m)", re.IGNORECASE)
_BARE_HOUR = re.compile(r"^\d{1,2}$")
_SHORT_HOUR = re.compile(r"^(\d):(\d{2})")
_FULL_CLOCK = re.compile(r"^\d{2}:\d{2}")
_H_CLOCK = re.compile(r"^(\d{1,2})h(\d{2})?$", re.IGNORECASE)


def _now() -> datetime:
    return datetime.now().astimezone()


def _next_saturday(base: datetime) -> datetime:
    weekday = base.weekday()  # Monday == 0, Saturday == 5, Sunday == 6
    if weekday == 5:
        days = 7
    elif weekday == 6:
        days = 6
    else:
        days = 5 - weekday
    return base + timedelta(days=days)


def parse_date(date_str: str, base: Optional[datetime] = None) -> datetime:
    base = base or _now()
    lowered = date_str.strip().lower()

    if lowered in _TOMORROW:
        return base + timedelta(days=1)
    if lowered in _YESTERDAY:
        return base - timedelta(days=1)
    if lowered in _TODAY:
        return base
    if lowered in _WEEKEND:
        return _next_saturday(base)

    parsed: Optional[datetime] = None
    try:
        parsed = datetime.fromisoformat(date_str.strip())
    except ValueError:
        try:
            parsed = date_parser.parse(date_str, fuzzy=True, dayfirst=True, default=base.replace(tzinfo=None))
        except (ValueError, OverflowError):
            parsed = None

    if parsed is None:
        return base
    if parsed.tzinfo is None and base.tzinfo is not None:
        parsed = parsed.replace(tzinfo=base.tzinfo)
    return parsed


def _to_24h(hour: int, meridiem: str) -> int:
    meridiem = meridiem.lower()
    if meridiem == "pm" and hour < 12:
        return hour + 12
    if meridiem == "am" and hour == 12:
        return 0
    return hour


def normalize_time(time_str: str) -> str:
    """Normalize '9am', '2:30 pm', '7', '7:30', '14h30' or '14:45:10' to HH:MM."""
    trimmed = time_str.strip()

    m = _AMPM_WITH_MINUTES.search(trimmed)
    if m:
        hour = _to_24h(int(m.group(1)), m.group(3))
        return f"{hour:02d}:{m.group(2)}"

    m = _AMPM_HOUR_ONLY.search(trimmed)
    if m:
        hour = _to_24h(int(m.group(1)), m.group(2))
        return f"{hour:02d}:00"

    m = _H_CLOCK.match(trimmed)
    if m:
        return f"{int(m.group(1)):02d}:{m.group(2) or '00'}"

    if _BARE_HOUR.match(trimmed):
        return f"{int(trimmed):02d}:00"

    m = _SHORT_HOUR.match(trimmed)
    if m:
        return f"0{m.group(1)}:{m.group(2)}"

    if _FULL_CLOCK.match(trimmed):
        return trimmed[:5]

    return DEFAULT_TIME


def parse_datetime(
    date_str: Optional[str] = None,
    time_str: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Dict[str, datetime]:
    """Combine a date phrase and a time phrase into {'date', 'departure_time'}.

    The date defaults to now and the time to 09:00. An impossible clock value
    (e.g. '25') yields now for both fields.
    """
    now = now or _now()
    base = parse_date(date_str, now) if date_str else now
    normalized = normalize_time(time_str) if time_str else DEFAULT_TIME

    day = base.replace(hour=0, minute=0, second=0, microsecond=0)
    try:
        hour, minute = (int(part) for part in normalized.split(":"))
        departure = day.replace(hour=hour, minute=minute)
    except ValueError:
        return {"date": now, "departure_time": now}

    return {"date": day, "departure_time": departure}
