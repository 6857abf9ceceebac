from __future__ import annotations

import datetime

import pytest

from stretchbreak.dates import (
    date_range,
    format_date,
    is_same_date,
    is_weekend,
    normalize_date,
    parse_date,
    weekdays_between,
)


class TestParseDate:
    def test_iso_string(self) -> None:
        assert parse_date("2024-07-04") == datetime.date(2024, 7, 4)

    def test_datetime_string(self) -> None:
        assert parse_date("2024-07-04T09:30:00") == datetime.date(2024, 7, 4)

    def test_date_and_datetime_objects(self) -> None:
        assert parse_date(datetime.date(2024, 7, 4)) == datetime.date(2024, 7, 4)
        assert parse_date(datetime.datetime(2024, 7, 4, 23, 59)) == datetime.date(2024, 7, 4)

    def test_invalid_raises(self) -> None:
        with pytest.raises(ValueError, match="Invalid calendar date"):
            parse_date("July 4th")

    def test_format_date(self) -> None:
        assert format_date(datetime.date(2024, 1, 5)) == "2024-01-05"


class TestNormalizeDate:
    def test_canonical_passthrough(self) -> None:
        assert normalize_date("2024-07-04") == "2024-07-04"

    def test_strips_whitespace(self) -> None:
        assert normalize_date("  2024-07-04 ") == "2024-07-04"

    def test_datetime_string_reduced_to_date(self) -> None:
        assert normalize_date("2024-07-04T10:00:00") == "2024-07-04"

    def test_date_object(self) -> None:
        assert normalize_date(datetime.date(2024, 7, 4)) == "2024-07-04"

    @pytest.mark.parametrize("value", ["", "   ", "not-a-date", None, 20240704])
    def test_unusable_values_dropped(self, value: object) -> None:
        assert normalize_date(value) is None


class TestCalendarHelpers:
    def test_is_weekend(self) -> None:
        assert is_weekend("2024-07-06")  # Saturday
        assert is_weekend("2024-07-07")  # Sunday
        assert not is_weekend("2024-07-08")

    def test_is_same_date_across_forms(self) -> None:
        assert is_same_date("2024-07-04", datetime.date(2024, 7, 4))
        assert not is_same_date("2024-07-04", "2024-07-05")

    def test_date_range_inclusive(self) -> None:
        days = list(date_range(datetime.date(2024, 2, 27), datetime.date(2024, 3, 1)))
        assert days == [
            datetime.date(2024, 2, 27),
            datetime.date(2024, 2, 28),
            datetime.date(2024, 2, 29),
            datetime.date(2024, 3, 1),
        ]

    def test_date_range_empty_when_reversed(self) -> None:
        assert list(date_range(datetime.date(2024, 3, 2), datetime.date(2024, 3, 1))) == []

    def test_weekdays_between_skips_weekend(self) -> None:
        days = weekdays_between(datetime.date(2024, 7, 5), datetime.date(2024, 7, 8))
        assert days == [datetime.date(2024, 7, 5), datetime.date(2024, 7, 8)]
