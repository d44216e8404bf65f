from datetime import date

import pytest

from app.services.dates import BirthYearPolicy, DateParts, components_to_date, date_to_components


class TestComponentsToDate:

    def test_valid_date(self):
        assert components_to_date("15", "08", "2015") == date(2015, 8, 15)

    def test_accepts_unpadded_and_int_parts(self):
        assert components_to_date("5", "3", "2016") == date(2016, 3, 5)
        assert components_to_date(5, 3, 2016) == date(2016, 3, 5)

    @pytest.mark.parametrize("day, month, year", [
        ("31", "02", "2020"),
        ("29", "02", "2021"),
        ("31", "04", "2019"),
        ("00", "01", "2019"),
        ("01", "13", "2019"),
        ("", "01", "2019"),
        ("1a", "01", "2019"),
        ("١", "01", "2019"),
        (None, None, None),
        (True, 1, 2019),
    ])
    def test_invalid_dates_are_rejected(self, day, month, year):
        assert components_to_date(day, month, year) is None

    def test_leap_day(self):
        assert components_to_date("29", "02", "2020") == date(2020, 2, 29)


class TestDateToComponents:

    def test_zero_pads(self):
        assert date_to_components(date(2016, 3, 5)) == DateParts(day="05", month="03", year="2016")

    def test_missing_value_gives_empty_parts(self):
        parts = date_to_components(None)
        assert parts.is_empty
        assert parts.as_dict() == {"day": "", "month": "", "year": ""}
        assert parts.display() == ""

    def test_display(self):
        assert date_to_components(date(2012, 11, 9)).display() == "09/11/2012"

    @pytest.mark.parametrize("value", [
        date(2000, 1, 1),
        date(2020, 2, 29),
        date(2015, 12, 31),
        date(1999, 7, 4),
    ])
    def test_round_trip(self, value):
        parts = date_to_components(value)
        assert components_to_date(parts.day, parts.month, parts.year) == value


class TestBirthYearPolicy:

    def test_year_range(self):
        policy = BirthYearPolicy(min_age=3, max_age=25, today=date(2025, 6, 1))
        assert policy.year_range() == (2000, 2022)

    def test_allows_bounds_inclusively(self):
        policy = BirthYearPolicy(today=date(2025, 6, 1))
        assert policy.allows(date(2000, 1, 1))
        assert policy.allows(date(2022, 12, 31))
        assert not policy.allows(date(1999, 12, 31))
        assert not policy.allows(date(2023, 1, 1))

    def test_describe(self):
        policy = BirthYearPolicy(today=date(2025, 6, 1))
        assert policy.describe() == "Year of birth must be between 2000 and 2022"
