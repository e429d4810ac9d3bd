"""System values handed to the path evaluator by scalar coercions.

Booleans, strings, integers and decimals map onto ``bool``, ``str``, ``int``
and ``decimal.Decimal``. Dates, times and date-times keep their lexical
precision because a partial date such as ``2020-05`` compares differently
from ``2020-05-01``; quantities carry a decimal value and a unit.
"""

import re
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

_DATE_RE = re.compile(r"(\d{4})(?:-(\d{2})(?:-(\d{2}))?)?")
_TIME_RE = re.compile(r"(\d{2})(?::(\d{2})(?::(\d{2})(\.\d+)?)?)?")
_ZONE_RE = re.compile(r"Z|[+-]\d{2}:\d{2}")


@dataclass(frozen=True)
class SystemDate:
    """A calendar date with year, month or day precision."""

    year: int
    month: Optional[int] = None
    day: Optional[int] = None

    @property
    def precision(self) -> str:
        if self.day is not None:
            return "day"
        if self.month is not None:
            return "month"
        return "year"

    @classmethod
    def parse(cls, text: str) -> "SystemDate":
        match = _DATE_RE.fullmatch(text)
        if match is None:
            raise ValueError(f"invalid date: {text!r}")
        year, month, day = match.groups()
        return cls(
            year=int(year),
            month=int(month) if month else None,
            day=int(day) if day else None,
        )

    def __str__(self) -> str:
        text = f"{self.year:04d}"
        if self.month is not None:
            text += f"-{self.month:02d}"
        if self.day is not None:
            text += f"-{self.day:02d}"
        return text


@dataclass(frozen=True)
class SystemTime:
    """A time of day with hour to millisecond precision."""

    hour: int
    minute: Optional[int] = None
    second: Optional[int] = None
    fraction: Optional[str] = None

    @property
    def precision(self) -> str:
        if self.fraction:
            return "millisecond"
        if self.second is not None:
            return "second"
        if self.minute is not None:
            return "minute"
        return "hour"

    @classmethod
    def parse(cls, text: str) -> "SystemTime":
        match = _TIME_RE.fullmatch(text)
        if match is None:
            raise ValueError(f"invalid time: {text!r}")
        hour, minute, second, fraction = match.groups()
        return cls(
            hour=int(hour),
            minute=int(minute) if minute else None,
            second=int(second) if second else None,
            fraction=fraction[1:] if fraction else None,
        )

    def __str__(self) -> str:
        text = f"{self.hour:02d}"
        if self.minute is not None:
            text += f":{self.minute:02d}"
        if self.second is not None:
            text += f":{self.second:02d}"
        if self.fraction:
            text += f".{self.fraction}"
        return text


@dataclass(frozen=True)
class SystemDateTime:
    """A date with an optional time of day and zone offset."""

    date: SystemDate
    time: Optional[SystemTime] = None
    zone: Optional[str] = None

    @property
    def precision(self) -> str:
        if self.time is None:
            return self.date.precision
        return self.time.precision

    @classmethod
    def parse(cls, text: str) -> "SystemDateTime":
        date_part, sep, rest = text.partition("T")
        date = SystemDate.parse(date_part)
        if not sep:
            return cls(date=date)
        zone_match = _ZONE_RE.search(rest)
        zone = None
        if zone_match is not None:
            zone = zone_match.group(0)
            rest = rest[:zone_match.start()]
        time = SystemTime.parse(rest) if rest else None
        return cls(date=date, time=time, zone=zone)

    @classmethod
    def from_date(cls, date: SystemDate) -> "SystemDateTime":
        return cls(date=date)

    def __str__(self) -> str:
        text = str(self.date)
        if self.time is not None:
            text += f"T{self.time}"
        if self.zone:
            text += self.zone
        return text


@dataclass(frozen=True)
class SystemQuantity:
    """A decimal value with a UCUM or free-text unit."""

    value: Decimal
    unit: str = "1"

    def __str__(self) -> str:
        return f"{self.value} '{self.unit}'"
