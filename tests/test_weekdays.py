from datetime import date

import pytest

from services.weekdays import normalize_weekdays, parse_weekday, weekday_name, weekday_of


def test_weekday_of_is_sunday_first():
    assert weekday_of(date(2026, 10, 18)) == 0  # Sunday
    assert weekday_of(date(2026, 10, 19)) == 1  # Monday
    assert weekday_of(date(2026, 10, 24)) == 6  # Saturday


@pytest.mark.parametrize("value,expected", [
    (3, 3), ("3", 3), ("wednesday", 3), ("Wed", 3), (" SUNDAY ", 0), ("sat", 6),
])
def test_parse_weekday_accepts_ints_digits_and_names(value, expected):
    assert parse_weekday(value) == expected


@pytest.mark.parametrize("value", [7, -1, "funday", "", None, True, 2.0])
def test_parse_weekday_rejects_garbage(value):
    with pytest.raises(ValueError):
        parse_weekday(value)


def test_normalize_sorts_and_dedupes():
    assert normalize_weekdays(["fri", 1, "monday", 5]) == (1, 5)
    assert normalize_weekdays([]) == ()


def test_weekday_name():
    assert weekday_name(0) == "sunday"
    assert weekday_name(6) == "saturday"
