"""Moment-style date formatting (``YYYY-MM-DDTHH:mm:ss``, ``Do MMMM``, ``ZZ``).

Front-matter templates written for the browser extension use moment.js
format strings, so the same tokens are honoured here with English names.
Text inside ``[...]`` is emitted literally; any other character that is not
a token is copied through.
"""

import re
from datetime import datetime

MONTHS = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)
WEEKDAYS = ("Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")

_TOKEN_RE = re.compile(
    r"\[[^\[\]]*\]"
    r"|YYYY|YY|Qo|Q"
    r"|Mo|MMMM|MMM|MM|M"
    r"|Do|DDDo|DDDD|DDD|DD|D"
    r"|dddd|ddd|dd|do|d|E|e"
    r"|Wo|WW|W"
    r"|HH|H|hh|h|kk|k|mm|m|ss|s|S{1,9}"
    r"|A|a|ZZ|Z|X|x"
)


def ordinal(number: int) -> str:
    if 11 <= number % 100 <= 13:
        return "%dth" % number
    return "%d%s" % (number, {1: "st", 2: "nd", 3: "rd"}.get(number % 10, "th"))


def _offset(moment: datetime, separator: str) -> str:
    delta = moment.utcoffset()
    minutes = int(delta.total_seconds() // 60) if delta is not None else 0
    sign = "-" if minutes < 0 else "+"
    hours, minutes = divmod(abs(minutes), 60)
    return "%s%02d%s%02d" % (sign, hours, separator, minutes)


def _token(moment: datetime, token: str) -> str:
    if token.startswith("["):
        return token[1:-1]
    if token.startswith("S"):
        return ("%06d" % moment.microsecond).ljust(len(token), "0")[: len(token)]

    weekday = (moment.weekday() + 1) % 7  # Sunday == 0
    hour12 = moment.hour % 12 or 12
    day_of_year = moment.timetuple().tm_yday
    quarter = (moment.month - 1) // 3 + 1
    iso_week = moment.isocalendar()[1]

    values = {
        "YYYY": "%04d" % moment.year,
        "YY": "%02d" % (moment.year % 100),
        "Q": str(quarter),
        "Qo": ordinal(quarter),
        "M": str(moment.month),
        "Mo": ordinal(moment.month),
        "MM": "%02d" % moment.month,
        "MMM": MONTHS[moment.month - 1][:3],
        "MMMM": MONTHS[moment.month - 1],
        "D": str(moment.day),
        "Do": ordinal(moment.day),
        "DD": "%02d" % moment.day,
        "DDD": str(day_of_year),
        "DDDo": ordinal(day_of_year),
        "DDDD": "%03d" % day_of_year,
        "d": str(weekday),
        "e": str(weekday),
        "do": ordinal(weekday),
        "dd": WEEKDAYS[weekday][:2],
        "ddd": WEEKDAYS[weekday][:3],
        "dddd": WEEKDAYS[weekday],
        "E": str(moment.isoweekday()),
        "W": str(iso_week),
        "Wo": ordinal(iso_week),
        "WW": "%02d" % iso_week,
        "H": str(moment.hour),
        "HH": "%02d" % moment.hour,
        "h": str(hour12),
        "hh": "%02d" % hour12,
        "k": str(moment.hour or 24),
        "kk": "%02d" % (moment.hour or 24),
        "m": str(moment.minute),
        "mm": "%02d" % moment.minute,
        "s": str(moment.second),
        "ss": "%02d" % moment.second,
        "a": "am" if moment.hour < 12 else "pm",
        "A": "AM" if moment.hour < 12 else "PM",
        "Z": _offset(moment, ":"),
        "ZZ": _offset(moment, ""),
        "X": str(int(moment.timestamp())),
        "x": str(int(moment.timestamp() * 1000)),
    }
    return values[token]


def format_moment(moment: datetime, pattern: str) -> str:
    """Render *moment* with a moment.js format *pattern*."""
    return _TOKEN_RE.sub(lambda match: _token(moment, match.group(0)), pattern)


def local_now() -> datetime:
    """Current time in the local timezone, offset-aware."""
    return datetime.now().astimezone()
