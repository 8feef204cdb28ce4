"""
Tests for resident registration number parsing.
"""

import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest
from datetime import date


class TestParseResidentId:
    """Birth date and age decoding."""

    def test_age_in_months(self):
        from growthtrack.engines.resident_id import parse_resident_id

        age = parse_resident_id("990101-1234567", date(2024, 6, 15))
        assert age is not None
        assert age.birth == date(1999, 1, 1)
        assert age.age_months == 305

    def test_separator_is_optional(self):
        from growthtrack.engines.resident_id import parse_resident_id

        with_dash = parse_resident_id("990101-1234567", date(2024, 6, 15))
        without = parse_resident_id("9901011234567", date(2024, 6, 15))
        assert with_dash == without

    def test_century_codes(self):
        from growthtrack.engines.resident_id import parse_resident_id

        on = date(2024, 6, 15)
        assert parse_resident_id("200101-3234567", on).birth == date(2020, 1, 1)
        assert parse_resident_id("200101-4234567", on).birth == date(2020, 1, 1)
        assert parse_resident_id("850315-5234567", on).birth == date(1985, 3, 15)
        assert parse_resident_id("200101-8234567", on).birth == date(2020, 1, 1)

    @pytest.mark.parametrize("value", [
        "990101-9234567",   # unknown century code
        "990101-0234567",
        "991301-1234567",   # month 13
        "990132-1234567",   # day 32
        "990230-1234567",   # February 30th
        "990101-123456",    # too short
        "",
    ])
    def test_invalid_ids(self, value):
        from growthtrack.engines.resident_id import parse_resident_id

        assert parse_resident_id(value, date(2024, 6, 15)) is None

    def test_birth_after_reference_date(self):
        from growthtrack.engines.resident_id import parse_resident_id

        assert parse_resident_id("240701-3234567", date(2024, 6, 15)) is None

    def test_month_not_completed_before_day(self):
        from growthtrack.engines.resident_id import age_in_months

        assert age_in_months(date(2024, 1, 20), date(2024, 2, 19)) == 0
        assert age_in_months(date(2024, 1, 20), date(2024, 2, 20)) == 1

    def test_born_today_is_zero_months(self):
        from growthtrack.engines.resident_id import parse_resident_id

        age = parse_resident_id("240615-4234567", date(2024, 6, 15))
        assert age.age_months == 0


class TestResidentIdHelpers:
    """Sex key, masking and display."""

    def test_sex_key(self):
        from growthtrack.engines.resident_id import sex_key

        assert sex_key("990101-1234567") == "1"
        assert sex_key("200101-4234567") == "2"
        assert sex_key("990101-7") == "1"
        assert sex_key("990101-9234567") is None
        assert sex_key("9901") is None

    def test_mask(self):
        from growthtrack.engines.resident_id import mask_resident_id

        assert mask_resident_id("9901011234567") == "990101-1******"

    def test_format_age(self):
        from growthtrack.engines.resident_id import format_age

        assert format_age(0) == "0 mo"
        assert format_age(23) == "23 mo"
        assert format_age(24) == "2 yr"
        assert format_age(30) == "2 yr 6 mo"

    def test_age_bucket(self):
        from growthtrack.engines.resident_id import age_bucket

        assert age_bucket(35) == "under 36 months"
        assert age_bucket(36) == "36 months and over"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
