#!/usr/bin/env python3
"""
Filename parsing for fileinbox.

Files are routed purely by their name. A name must start with an 8 digit
date followed by an underscore and a destination token, e.g.

    20160825_pge.pdf
    20160825_pge_taxes2016.pdf

Everything after the destination token (tags, extension) is ignored for
routing but kept as part of the file name.
"""

import re
from dataclasses import dataclass
from datetime import date
from typing import Optional


MALFORMED = "malformed"
RANGE = "range"
FUTURE = "future"

# How many years past the current one we accept without --force
MAX_YEARS_AHEAD = 2

FILE_RE = re.compile(r"^([0-9]{4})([0-9]{2})([0-9]{2})_([^_.]+).*$", re.DOTALL)


class ParseError(ValueError):
    """Raised when a file name does not follow the filing convention."""

    def __init__(self, reason: str, base_name: str, message: str):
        super().__init__(message)
        self.reason = reason
        self.base_name = base_name


@dataclass(frozen=True)
class ParsedName:
    base_name: str    # e.g. 20160825_pge_taxes2016.pdf
    year: str         # e.g. 2016
    month: str        # e.g. 08
    day: str          # e.g. 25
    destination: str  # e.g. pge


@dataclass(frozen=True)
class _UnitRange:
    unit: str
    low: int
    high: int

    def verify(self, base_name: str, value: str) -> int:
        number = int(value)
        if number < self.low or number > self.high:
            raise ParseError(
                RANGE,
                base_name,
                f"Unexpected {self.unit} {value!r} in {base_name!r}. "
                f"We expect a value between {self.low} and {self.high}",
            )
        return number


YEAR_RANGE = _UnitRange("year", 1, 9999)
MONTH_RANGE = _UnitRange("month", 1, 12)
DAY_RANGE = _UnitRange("day", 1, 31)


def parse_file_name(force: bool, base_name: str, today: Optional[date] = None) -> ParsedName:
    """Parse a file name into its date and destination parts.

    Raises ParseError with reason "malformed", "range" or "future". The
    future check (year more than two years ahead) is skipped when force
    is set; it exists to catch typos like 20610825 for 20160825.
    """
    match = FILE_RE.match(base_name)
    if match is None:
        raise ParseError(
            MALFORMED,
            base_name,
            f"Unable to parse {base_name!r}. We expect an 8 digit date prefix "
            f"like 20160825_pge_taxes2016.pdf or 20160825_pge.pdf",
        )
    year, month, day, destination = match.groups()

    year_value = YEAR_RANGE.verify(base_name, year)
    if not force:
        current_year = (today or date.today()).year
        years_ahead = year_value - current_year
        if years_ahead > MAX_YEARS_AHEAD:
            raise ParseError(
                FUTURE,
                base_name,
                f"{base_name} is {years_ahead} years in the future, which is "
                f"highly suspect. To continue, use the --force flag",
            )
    MONTH_RANGE.verify(base_name, month)
    DAY_RANGE.verify(base_name, day)

    return ParsedName(base_name, year, month, day, destination)
