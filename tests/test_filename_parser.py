"""
Tests for file name parsing.
"""

from datetime import date

import pytest

from filename_parser import (
    FUTURE,
    MALFORMED,
    RANGE,
    ParsedName,
    ParseError,
    parse_file_name,
)


TODAY = date(2016, 9, 1)


class TestParseFileName:
    """Tests for well formed names."""

    def test_simple_name(self):
        """Test a name with just a date, destination and extension."""
        parsed = parse_file_name(False, "20160825_pge.pdf", today=TODAY)
        assert parsed == ParsedName("20160825_pge.pdf", "2016", "08", "25", "pge")

    def test_name_with_tags(self):
        """Test that trailing tags are ignored for routing but kept in the name."""
        parsed = parse_file_name(False, "20160825_pge_taxes2016.pdf", today=TODAY)
        assert parsed.destination == "pge"
        assert parsed.base_name == "20160825_pge_taxes2016.pdf"
        assert (parsed.year, parsed.month, parsed.day) == ("2016", "08", "25")

    def test_name_without_extension(self):
        """Test a name that ends right after the destination."""
        parsed = parse_file_name(False, "20151231_bank", today=TODAY)
        assert parsed.destination == "bank"
        assert parsed.year == "2015"

    @pytest.mark.parametrize("name,expected", [
        ("19990101_a.txt", ("1999", "01", "01", "a")),
        ("00010101_x-y z.pdf", ("0001", "01", "01", "x-y z")),
        ("20160229_car.tar.gz", ("2016", "02", "29", "car")),
    ])
    def test_substrings_recovered(self, name, expected):
        """Test that the exact substrings of the name are recovered."""
        parsed = parse_file_name(False, name, today=TODAY)
        assert (parsed.year, parsed.month, parsed.day, parsed.destination) == expected

    def test_no_calendar_check(self):
        """Test that February 31st passes, only ranges are checked."""
        parsed = parse_file_name(False, "20160231_pge.pdf", today=TODAY)
        assert parsed.day == "31"

    def test_parsed_name_is_immutable(self):
        """Test that parsed names cannot be changed after construction."""
        parsed = parse_file_name(False, "20160825_pge.pdf", today=TODAY)
        with pytest.raises(AttributeError):
            parsed.year = "2017"


class TestMalformedNames:
    """Tests for names that do not follow the convention."""

    @pytest.mark.parametrize("name", [
        "pge.pdf",
        "20160825pge.pdf",
        "2016082_pge.pdf",
        "2016-08-25_pge.pdf",
        "2016o825_pge.pdf",
        "20160825_.pdf",
        "20160825__pge.pdf",
        ".DS_Store",
        "",
    ])
    def test_malformed(self, name):
        """Test that names violating the grammar are rejected as malformed."""
        with pytest.raises(ParseError) as exc_info:
            parse_file_name(False, name, today=TODAY)
        assert exc_info.value.reason == MALFORMED
        assert exc_info.value.base_name == name

    def test_parse_error_is_value_error(self):
        """Test that callers can catch parse errors as ValueError."""
        with pytest.raises(ValueError):
            parse_file_name(False, "nope.pdf", today=TODAY)

    def test_message_shows_example(self):
        """Test that the message tells the user what we expect."""
        with pytest.raises(ParseError, match="20160825_pge.pdf"):
            parse_file_name(False, "nope.pdf", today=TODAY)


class TestRanges:
    """Tests for out of range date fields."""

    @pytest.mark.parametrize("name,unit,value,bounds", [
        ("00000825_pge.pdf", "year", "0000", "between 1 and 9999"),
        ("20160025_pge.pdf", "month", "00", "between 1 and 12"),
        ("20161325_pge.pdf", "month", "13", "between 1 and 12"),
        ("20160800_pge.pdf", "day", "00", "between 1 and 31"),
        ("20160832_pge.pdf", "day", "32", "between 1 and 31"),
    ])
    def test_out_of_range(self, name, unit, value, bounds):
        """Test that the message names the field, the value and the valid range."""
        with pytest.raises(ParseError) as exc_info:
            parse_file_name(False, name, today=TODAY)
        assert exc_info.value.reason == RANGE
        message = str(exc_info.value)
        assert unit in message
        assert repr(value) in message
        assert bounds in message

    def test_force_does_not_skip_range_checks(self):
        """Test that force only relaxes the future check."""
        with pytest.raises(ParseError) as exc_info:
            parse_file_name(True, "20161325_pge.pdf", today=TODAY)
        assert exc_info.value.reason == RANGE


class TestFutureYears:
    """Tests for the fat-finger future year check."""

    def test_two_years_ahead_allowed(self):
        """Test that up to two years in the future is accepted."""
        parsed = parse_file_name(False, "20180101_pge.pdf", today=TODAY)
        assert parsed.year == "2018"

    def test_three_years_ahead_rejected(self):
        """Test that more than two years in the future is rejected."""
        with pytest.raises(ParseError) as exc_info:
            parse_file_name(False, "20190101_pge.pdf", today=TODAY)
        assert exc_info.value.reason == FUTURE
        assert "3 years in the future" in str(exc_info.value)
        assert "--force" in str(exc_info.value)

    def test_far_future_rejected(self):
        """Test the classic typo of year 9999."""
        with pytest.raises(ParseError) as exc_info:
            parse_file_name(False, "99991231_pge.pdf", today=TODAY)
        assert exc_info.value.reason == FUTURE

    def test_force_skips_future_check(self):
        """Test that force accepts years far in the future."""
        parsed = parse_file_name(True, "99991231_pge.pdf", today=TODAY)
        assert parsed.year == "9999"

    def test_defaults_to_current_date(self):
        """Test that the current year is used when no date is passed."""
        next_year = date.today().year + 1
        parsed = parse_file_name(False, f"{next_year}0101_pge.pdf")
        assert parsed.year == str(next_year)
        with pytest.raises(ParseError):
            parse_file_name(False, f"{next_year + 2}0101_pge.pdf")
