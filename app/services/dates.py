# app/services/dates.py - Conversion between date values and {day, month, year} strings
from dataclasses import dataclass
from datetime import date
from typing import Optional, Union, Tuple


@dataclass(frozen=True)
class DateParts:
    """Zero-padded textual date components as stored and shown in forms"""
    day: str = ""
    month: str = ""
    year: str = ""

    @property
    def is_empty(self) -> bool:
        return not (self.day or self.month or self.year)

    def as_dict(self) -> dict:
        return {"day": self.day, "month": self.month, "year": self.year}

    def display(self) -> str:
        """DD/MM/YYYY, as printed on the ID card"""
        if self.is_empty:
            return ""
        return f"{self.day}/{self.month}/{self.year}"


def _parse_int(value: Union[str, int, None]) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if not isinstance(value, str):
        return None
    value = value.strip()
    if not value.isdigit() or not value.isascii():
        return None
    return int(value)


def components_to_date(day, month, year) -> Optional[date]:
    """
    Resolve textual day/month/year into a date.

    Returns None when any part is not numeric or when the three parts do not
    name an existing calendar day (31 in a 30-day month, 29/02 outside leap
    years). Nothing is clamped or rolled over.
    """
    d, m, y = _parse_int(day), _parse_int(month), _parse_int(year)
    if d is None or m is None or y is None:
        return None
    try:
        value = date(y, m, d)
    except ValueError:
        return None
    # Read back to reject anything the constructor normalised
    if (value.day, value.month, value.year) != (d, m, y):
        return None
    return value


def date_to_components(value: Optional[date]) -> DateParts:
    """Split a date into zero-padded strings; missing or invalid input gives empty parts"""
    if not isinstance(value, date):
        return DateParts()
    return DateParts(
        day=f"{value.day:02d}",
        month=f"{value.month:02d}",
        year=f"{value.year:04d}",
    )


@dataclass(frozen=True)
class BirthYearPolicy:
    """
    Accepted birth years for enrolled students.

    A student must be between ``min_age`` and ``max_age`` years old measured by
    calendar year, so the window is ``[current - max_age, current - min_age]``.
    """
    min_age: int = 3
    max_age: int = 25
    today: Optional[date] = None

    def year_range(self) -> Tuple[int, int]:
        current_year = (self.today or date.today()).year
        return current_year - self.max_age, current_year - self.min_age

    def allows(self, value: date) -> bool:
        earliest, latest = self.year_range()
        return earliest <= value.year <= latest

    def describe(self) -> str:
        earliest, latest = self.year_range()
        return f"Year of birth must be between {earliest} and {latest}"


__all__ = ["DateParts", "components_to_date", "date_to_components", "BirthYearPolicy"]
