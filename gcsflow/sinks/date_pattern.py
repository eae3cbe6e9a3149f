"""Java style date patterns, e.g. ``yyyy-MM-dd-HH-mm``.

Pipeline users describe output suffixes with the pattern letters of Java's
``SimpleDateFormat``, so the same letters are understood here. Text inside
single quotes is copied literally and ``''`` is a single quote.
"""

import calendar
import datetime
from typing import List, Tuple, Union

from gcsflow.exceptions import InvalidDatePatternException

PATTERN_LETTERS = "GyYMLwWDdFEuaHkKhmsSzZX"

# A compiled pattern is a list of literals and (letter, repeat count) pairs.
Token = Union[str, Tuple[str, int]]


def _compile(pattern: str) -> List[Token]:
    tokens: List[Token] = []
    i = 0
    while i < len(pattern):
        char = pattern[i]
        if char == "'":
            if pattern[i + 1 : i + 2] == "'":
                tokens.append("'")
                i += 2
                continue
            literal = []
            i += 1
            while True:
                if i >= len(pattern):
                    raise InvalidDatePatternException(
                        f"Unterminated quote in pattern '{pattern}'"
                    )
                if pattern[i] == "'":
                    if pattern[i + 1 : i + 2] == "'":
                        literal.append("'")
                        i += 2
                        continue
                    i += 1
                    break
                literal.append(pattern[i])
                i += 1
            tokens.append("".join(literal))
        elif char.isascii() and char.isalpha():
            if char not in PATTERN_LETTERS:
                raise InvalidDatePatternException(
                    f"Illegal pattern character '{char}'"
                )
            count = 1
            while i + count < len(pattern) and pattern[i + count] == char:
                count += 1
            tokens.append((char, count))
            i += count
        else:
            tokens.append(char)
            i += 1
    return tokens


def _number(value: int, count: int) -> str:
    return str(value).zfill(count)


def _year(value: int, count: int) -> str:
    if count == 2:
        return _number(value % 100, 2)
    return _number(value, count)


def _text(full: str, short: str, count: int) -> str:
    return full if count >= 4 else short


def _offset(dt: datetime.datetime, letter: str, count: int) -> str:
    offset = dt.utcoffset() or datetime.timedelta(0)
    minutes = int(offset.total_seconds() // 60)
    if letter == "X" and minutes == 0:
        return "Z"
    sign = "-" if minutes < 0 else "+"
    hours, minutes = divmod(abs(minutes), 60)
    if letter == "X" and count == 1:
        return f"{sign}{hours:02d}"
    if letter == "X" and count >= 3:
        return f"{sign}{hours:02d}:{minutes:02d}"
    return f"{sign}{hours:02d}{minutes:02d}"


def _week_of_month(dt: datetime.datetime) -> int:
    # Weeks start on Sunday.
    first_weekday = (dt.replace(day=1).weekday() + 1) % 7
    return (dt.day - 1 + first_weekday) // 7 + 1


def _field(dt: datetime.datetime, letter: str, count: int) -> str:
    if letter == "G":
        return "AD"
    if letter == "y":
        return _year(dt.year, count)
    if letter == "Y":
        return _year(dt.isocalendar()[0], count)
    if letter in "ML":
        if count >= 3:
            return _text(
                calendar.month_name[dt.month], calendar.month_abbr[dt.month], count
            )
        return _number(dt.month, count)
    if letter == "w":
        return _number(dt.isocalendar()[1], count)
    if letter == "W":
        return _number(_week_of_month(dt), count)
    if letter == "D":
        return _number(dt.timetuple().tm_yday, count)
    if letter == "d":
        return _number(dt.day, count)
    if letter == "F":
        return _number((dt.day - 1) // 7 + 1, count)
    if letter == "E":
        return _text(
            calendar.day_name[dt.weekday()], calendar.day_abbr[dt.weekday()], count
        )
    if letter == "u":
        return _number(dt.isoweekday(), count)
    if letter == "a":
        return "AM" if dt.hour < 12 else "PM"
    if letter == "H":
        return _number(dt.hour, count)
    if letter == "k":
        return _number(dt.hour or 24, count)
    if letter == "K":
        return _number(dt.hour % 12, count)
    if letter == "h":
        return _number(dt.hour % 12 or 12, count)
    if letter == "m":
        return _number(dt.minute, count)
    if letter == "s":
        return _number(dt.second, count)
    if letter == "S":
        return _number(dt.microsecond // 1000, count)
    if letter == "z":
        return dt.tzname() or "UTC"
    return _offset(dt, letter, count)


class DatePattern:
    def __init__(self, pattern: str) -> None:
        self.pattern = pattern
        self._tokens = _compile(pattern)

    def format(self, dt: datetime.datetime) -> str:
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=datetime.timezone.utc)
        parts = []
        for token in self._tokens:
            if isinstance(token, str):
                parts.append(token)
            else:
                parts.append(_field(dt, *token))
        return "".join(parts)

    def __repr__(self) -> str:
        return f"DatePattern({self.pattern!r})"
