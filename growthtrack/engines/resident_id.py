"""
Resident registration number parsing.

A resident registration number is 13 digits: ``YYMMDD`` birth date followed
by a code digit that carries the century and the sex, then six more digits.

    990101-1234567
    ^^^^^^ ^
    birth  century/sex code

Codes 1, 2, 5, 6 are births in the 1900s and codes 3, 4, 7, 8 in the
2000s. Odd codes are male (sex key "1"), even codes female (sex key "2");
this matches the sex column of the reference tables.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date
from typing import Optional

CENTURY_BY_CODE: dict[str, int] = {
    "1": 1900,
    "2": 1900,
    "3": 2000,
    "4": 2000,
    "5": 1900,
    "6": 1900,
    "7": 2000,
    "8": 2000,
}

MALE_CODES = frozenset("1357")
FEMALE_CODES = frozenset("2468")

RESIDENT_ID_LENGTH = 13
AGE_BUCKET_MONTHS = 36

_NON_DIGIT = re.compile(r"[^0-9]")


@dataclass(frozen=True)
class AgeInfo:
    """Birth date and completed months of age as of a reference date."""
    birth: date
    age_months: int


def normalize_resident_id(value: str) -> str:
    """Strip everything but digits."""
    return _NON_DIGIT.sub("", value or "")


def age_in_months(birth: date, on: date) -> int:
    """
    Completed months between ``birth`` and ``on``.

    The month is not counted until its day-of-month has been reached, so a
    child born on the 20th is still 0 months old on the 19th of the next month.
    """
    months = (on.year - birth.year) * 12 + (on.month - birth.month)
    if on.day < birth.day:
        months -= 1
    return months


def parse_resident_id(value: str, reference_date: Optional[date] = None) -> Optional[AgeInfo]:
    """
    Decode the birth date and age in months from a resident id.

    Args:
        value: Resident id, with or without separators
        reference_date: Date the age is computed for (default: today)

    Returns:
        AgeInfo, or None if the id is malformed, names an impossible
        calendar date, or the birth date lies after ``reference_date``.
    """
    digits = normalize_resident_id(value)
    if len(digits) != RESIDENT_ID_LENGTH:
        return None

    yy = int(digits[0:2])
    mm = int(digits[2:4])
    dd = int(digits[4:6])
    century = CENTURY_BY_CODE.get(digits[6])

    if century is None or not 1 <= mm <= 12 or not 1 <= dd <= 31:
        return None

    try:
        birth = date(century + yy, mm, dd)
    except ValueError:
        # e.g. February 30th
        return None

    on = reference_date or date.today()
    months = age_in_months(birth, on)
    if months < 0:
        return None

    return AgeInfo(birth=birth, age_months=months)


def sex_key(value: str) -> Optional[str]:
    """Reference-table sex key ("1" male, "2" female) from the code digit."""
    digits = normalize_resident_id(value)
    if len(digits) < 7:
        return None
    code = digits[6]
    if code in MALE_CODES:
        return "1"
    if code in FEMALE_CODES:
        return "2"
    return None


def mask_resident_id(value: str) -> str:
    """Hide the trailing six digits: ``990101-1******``."""
    digits = normalize_resident_id(value)
    if len(digits) < 7:
        return value
    return f"{digits[:6]}-{digits[6]}******"


def format_age(age_months: int) -> str:
    """Human readable age; months only below two years."""
    if age_months < 24:
        return f"{age_months} mo"
    years, months = divmod(age_months, 12)
    if months == 0:
        return f"{years} yr"
    return f"{years} yr {months} mo"


def age_bucket(age_months: int) -> str:
    """Descriptive age group shown next to the age."""
    if age_months < AGE_BUCKET_MONTHS:
        return "under 36 months"
    return "36 months and over"
