"""
Date and time collaborator for the coercion engine.

Parses and formats with Java-style letter patterns (``yyyy-MM-dd HH:mm:ss``),
detects the pattern of a string from its punctuation, converts between the
date-family value types and offers the calendar arithmetic helpers used
around the mapper. Lenient parsing rolls overflowing fields forward with
``dateutil.relativedelta``; strict parsing rejects them.
"""

from __future__ import annotations

import numbers
import re
from datetime import date, datetime, time, timedelta, timezone
from functools import lru_cache
from typing import Any, Dict, List, Optional, Tuple, Union

import pandas as pd
from dateutil import tz
from dateutil.relativedelta import relativedelta

from dtomap.core.exceptions import InvalidArgumentError

DATE_FORMAT = "yyyy-MM-dd"
TIME_FORMAT = "HH:mm:ss"
DATETIME_FORMAT = "yyyy-MM-dd HH:mm:ss"
FULLTIME_FORMAT = "yyyy-MM-dd HH:mm:ss.SSS"
TIMESTAMP_FORMAT = "yyyyMMddHHmmssSSS"

LOCAL_ZONE = tz.tzlocal()
EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

_PARSE_LETTERS = frozenset("yMdHmsS")
_FORMAT_LETTERS = frozenset("yMdHhmsSaE")

_MONTHS = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)
_WEEKDAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")

# (letter, width) for fields, (None, text) for literals
Token = Tuple[Optional[str], Union[int, str]]
DateLike = Union[str, date, datetime]


@lru_cache(maxsize=256)
def tokenize(pattern: str) -> Tuple[Token, ...]:
    """Split a letter pattern into field and literal tokens."""
    tokens: List[Token] = []
    literal: List[str] = []
    i = 0

    def flush():
        if literal:
            tokens.append((None, "".join(literal)))
            literal.clear()

    while i < len(pattern):
        ch = pattern[i]
        if ch == "'":
            end = pattern.find("'", i + 1)
            if end == -1:
                raise InvalidArgumentError(f"Unterminated quote in date pattern {pattern!r}")
            literal.append("'" if end == i + 1 else pattern[i + 1 : end])
            i = end + 1
        elif ch.isascii() and ch.isalpha():
            if ch not in _FORMAT_LETTERS:
                raise InvalidArgumentError(
                    f"Unsupported letter {ch!r} in date pattern {pattern!r}"
                )
            j = i
            while j < len(pattern) and pattern[j] == ch:
                j += 1
            flush()
            tokens.append((ch, j - i))
            i = j
        else:
            literal.append(ch)
            i += 1

    flush()
    return tuple(tokens)


def detect_pattern(text: str) -> str:
    """Pick a pattern for ``text`` from its punctuation."""
    if not text:
        raise ValueError("Empty text has no date pattern")
    if " " in text:
        return FULLTIME_FORMAT if "." in text else DATETIME_FORMAT
    if "-" in text:
        return DATE_FORMAT
    if ":" in text:
        return TIME_FORMAT
    if len(text) > len(TIMESTAMP_FORMAT):
        raise ValueError(f"{text!r} is longer than the {TIMESTAMP_FORMAT} timestamp pattern")
    return TIMESTAMP_FORMAT[: len(text)]


@lru_cache(maxsize=256)
def _parser_for(pattern: str) -> Tuple[re.Pattern, Tuple[Tuple[str, int], ...]]:
    tokens = tokenize(pattern)
    parts: List[str] = []
    fields: List[Tuple[str, int]] = []

    for index, (letter, value) in enumerate(tokens):
        if letter is None:
            parts.append(re.escape(value))
            continue
        if letter not in _PARSE_LETTERS:
            raise InvalidArgumentError(f"Letter {letter!r} cannot be parsed (pattern {pattern!r})")
        adjacent = index + 1 < len(tokens) and tokens[index + 1][0] is not None
        parts.append(rf"(\d{{{value}}})" if adjacent else r"(\d+)")
        fields.append((letter, value))

    return re.compile("".join(parts)), tuple(fields)


def _expand_year(raw: str, width: int) -> int:
    year = int(raw)
    if width <= 2 and len(raw) == 2:
        pivot = datetime.now().year + 20
        year += 2000 if 2000 + year <= pivot else 1900
    return year


def parse(text: str, pattern: Optional[str] = None, lenient: bool = False) -> datetime:
    """
    Parse ``text`` into a naive datetime.

    Args:
        text: Date text; surrounding whitespace is ignored
        pattern: Letter pattern, detected from the text when omitted
        lenient: Roll calendar-invalid fields forward instead of failing

    Raises:
        ValueError: If the text does not match or names an invalid date
    """
    text = text.strip()
    if not text:
        raise ValueError("Blank text is not a date")
    pattern = pattern or detect_pattern(text)
    regex, fields = _parser_for(pattern)

    match = regex.fullmatch(text)
    if match is None:
        raise ValueError(f"{text!r} does not match date pattern {pattern!r}")

    values: Dict[str, int] = {"y": 1970, "M": 1, "d": 1, "H": 0, "m": 0, "s": 0, "S": 0}
    for (letter, width), raw in zip(fields, match.groups()):
        values[letter] = _expand_year(raw, width) if letter == "y" else int(raw)

    if not lenient:
        return datetime(
            values["y"], values["M"], values["d"],
            values["H"], values["m"], values["s"], values["S"] * 1000,
        )

    try:
        return datetime(values["y"], 1, 1) + relativedelta(
            months=values["M"] - 1,
            days=values["d"] - 1,
            hours=values["H"],
            minutes=values["m"],
            seconds=values["s"],
            microseconds=values["S"] * 1000,
        )
    except OverflowError as e:
        raise ValueError(f"{text!r} is out of the supported date range") from e


def format(value: Union[date, time, datetime], pattern: str) -> str:  # noqa: A001
    """Render a date, time or datetime with a letter pattern."""
    if isinstance(value, pd.Timestamp):
        value = value.to_pydatetime()
    if isinstance(value, time):
        value = datetime.combine(EPOCH.date(), value)
    elif not isinstance(value, datetime):
        value = datetime.combine(value, time.min)

    out: List[str] = []
    for letter, width in tokenize(pattern):
        if letter is None:
            out.append(width)
        elif letter == "y":
            out.append(f"{value.year % 100:02d}" if width == 2 else f"{value.year:0{width}d}")
        elif letter == "M":
            if width >= 4:
                out.append(_MONTHS[value.month - 1])
            elif width == 3:
                out.append(_MONTHS[value.month - 1][:3])
            else:
                out.append(f"{value.month:0{width}d}")
        elif letter == "d":
            out.append(f"{value.day:0{width}d}")
        elif letter == "H":
            out.append(f"{value.hour:0{width}d}")
        elif letter == "h":
            out.append(f"{value.hour % 12 or 12:0{width}d}")
        elif letter == "m":
            out.append(f"{value.minute:0{width}d}")
        elif letter == "s":
            out.append(f"{value.second:0{width}d}")
        elif letter == "S":
            out.append(f"{value.microsecond // 1000:0{width}d}")
        elif letter == "a":
            out.append("AM" if value.hour < 12 else "PM")
        elif letter == "E":
            name = _WEEKDAYS[value.weekday()]
            out.append(name if width >= 4 else name[:3])
    return "".join(out)


# Conversions between date-family values


def from_epoch_millis(millis: int) -> datetime:
    """Local wall time of an epoch-millisecond timestamp."""
    return (EPOCH + timedelta(milliseconds=millis)).astimezone(LOCAL_ZONE).replace(tzinfo=None)


def to_local_datetime(value: Any) -> Optional[datetime]:
    """
    Normalize a date-family value (or epoch millis) to naive local time.

    Returns None for values that carry no date, such as a bare ``time``.
    """
    if isinstance(value, pd.Timestamp):
        value = value.to_pydatetime()
    if isinstance(value, datetime):
        if value.tzinfo is not None and value.utcoffset() is not None:
            return value.astimezone(LOCAL_ZONE).replace(tzinfo=None)
        return value.replace(tzinfo=None)
    if isinstance(value, date):
        return datetime.combine(value, time.min)
    if isinstance(value, numbers.Integral) and not isinstance(value, bool):
        return from_epoch_millis(int(value))
    return None


def to_date(local: datetime) -> date:
    return local.date()


def to_time(local: datetime) -> time:
    return local.time()


def to_datetime(local: datetime) -> datetime:
    return local


def to_instant(local: datetime) -> datetime:
    """Attach the system zone to local wall time and express it in UTC."""
    return local.replace(tzinfo=LOCAL_ZONE).astimezone(timezone.utc)


def to_calendar(local: datetime) -> pd.Timestamp:
    """Local wall time as a zone-aware ``pandas.Timestamp``."""
    return pd.Timestamp(local.replace(tzinfo=LOCAL_ZONE))


def to_epoch_millis(value: Any) -> Optional[int]:
    local = to_local_datetime(value)
    if local is None:
        return None
    return (to_instant(local) - EPOCH) // timedelta(milliseconds=1)


# Calendar helpers


def today() -> str:
    return format(date.today(), DATE_FORMAT)


def now() -> str:
    return format(datetime.now(), DATETIME_FORMAT)


def now_millis() -> str:
    return format(datetime.now(), FULLTIME_FORMAT)


def timestamp(length: int = len(TIMESTAMP_FORMAT)) -> str:
    """Current compact timestamp truncated to ``length`` characters."""
    if not 1 <= length <= len(TIMESTAMP_FORMAT):
        raise InvalidArgumentError(f"timestamp length must be 1-{len(TIMESTAMP_FORMAT)}")
    return format(datetime.now(), TIMESTAMP_FORMAT[:length])


def _as_local(value: DateLike, lenient: bool = False) -> datetime:
    if isinstance(value, str):
        return parse(value, lenient=lenient)
    local = to_local_datetime(value)
    if local is None:
        raise InvalidArgumentError(f"{value!r} is not a date value")
    return local


def clear_time(value: DateLike) -> Union[str, datetime]:
    """Midnight of the same day; strings come back as date strings."""
    cleared = _as_local(value).replace(hour=0, minute=0, second=0, microsecond=0)
    if isinstance(value, str):
        return format(cleared, DATE_FORMAT)
    return cleared


def add(value: DateLike, **fields: int) -> Union[str, datetime]:
    """
    Calendar-aware addition (``years``, ``months``, ``days``, ``hours``...).

    String input returns a date string, like the rest of the string helpers.
    """
    shifted = _as_local(value) + relativedelta(**fields)
    if isinstance(value, str):
        return format(shifted, DATE_FORMAT)
    return shifted


# unit name -> relativedelta keyword
_FIELD_UNITS = {
    "year": "years",
    "month": "months",
    "day": "days",
    "hour": "hours",
    "minute": "minutes",
    "second": "seconds",
}


def _unit(unit: str) -> str:
    if unit not in _FIELD_UNITS:
        raise InvalidArgumentError(
            f"Unknown calendar field {unit!r}; expected one of {sorted(_FIELD_UNITS)}"
        )
    return unit


def get_field(value: DateLike, unit: str) -> int:
    """Read one calendar field (``year``, ``month`` 1-12, ``day``, ``hour``, ``minute``, ``second``)."""
    return getattr(_as_local(value), _unit(unit))


def set_field(value: DateLike, unit: str, amount: int) -> Union[str, datetime]:
    """
    Replace one calendar field.

    Out-of-range amounts spill into the neighbouring fields the way ``add``
    does (second 75 is the next minute plus 15, day 0 is the last day of the
    previous month). Month and year changes clamp the day to the target
    month's length.
    """
    local = _as_local(value)
    delta = amount - getattr(local, _unit(unit))
    return add(value, **{_FIELD_UNITS[unit]: delta})


def seconds_of_day(value: DateLike) -> int:
    local = _as_local(value)
    return local.hour * 3600 + local.minute * 60 + local.second


def minutes_of_day(value: DateLike) -> int:
    return seconds_of_day(value) // 60


def set_seconds_of_day(value: DateLike, seconds: int) -> Union[str, datetime]:
    """Midnight of the same day plus ``seconds``."""
    return add(clear_time(value), seconds=seconds)


def _trunc_div(numerator: int, denominator: int) -> int:
    return int(numerator / denominator)


def seconds_between(begin: DateLike, end: DateLike, lenient: bool = False) -> int:
    delta = _as_local(end, lenient) - _as_local(begin, lenient)
    return _trunc_div(delta // timedelta(milliseconds=1), 1000)


def minutes_between(begin: DateLike, end: DateLike, lenient: bool = False) -> int:
    return _trunc_div(seconds_between(begin, end, lenient), 60)


def hours_between(begin: DateLike, end: DateLike, lenient: bool = False) -> int:
    return _trunc_div(minutes_between(begin, end, lenient), 60)


def days_between(begin: DateLike, end: DateLike, floored: bool = False, lenient: bool = False) -> int:
    """Whole days between two values; ``floored`` ignores the time of day."""
    if floored:
        begin = clear_time(_as_local(begin, lenient))
        end = clear_time(_as_local(end, lenient))
    return _trunc_div(hours_between(begin, end, lenient), 24)


def months_between(begin: DateLike, end: DateLike, lenient: bool = False) -> int:
    """Whole calendar months, adjusted when the end day has not been reached."""
    first = _as_local(begin, lenient)
    last = _as_local(end, lenient)
    months = (last.year - first.year) * 12 + last.month - first.month
    if last > first and last.day < first.day:
        months -= 1
    if first > last and first.day < last.day:
        months += 1
    return months


def years_between(begin: DateLike, end: DateLike, lenient: bool = False) -> int:
    return _trunc_div(months_between(begin, end, lenient), 12)


def is_last_day_of_month(value: DateLike) -> bool:
    local = _as_local(value)
    return (local + timedelta(days=1)).month != local.month


def last_day_of_month(value: DateLike) -> Union[str, datetime]:
    local = _as_local(value)
    shifted = local + relativedelta(day=31)
    if isinstance(value, str):
        return format(shifted, DATE_FORMAT)
    return shifted
