import pytest

from app.core.duration import duration_seconds, parse_duration


class TestParseDuration:
    """Test cases for token lifetime parsing"""

    @pytest.mark.parametrize(
        "value, expected",
        [
            ("500ms", 500),
            ("30s", 30 * 1000),
            ("5m", 5 * 60 * 1000),
            ("2h", 2 * 60 * 60 * 1000),
            ("7d", 7 * 24 * 60 * 60 * 1000),
        ],
    )
    def test_single_units(self, value, expected):
        assert parse_duration(value) == expected

    def test_milliseconds_are_not_minutes(self):
        assert parse_duration("500ms") != 500 * 60 * 1000

    def test_combined_units(self):
        expected = 24 * 60 * 60 * 1000 + 2 * 60 * 60 * 1000 + 3 * 60 * 1000 + 4 * 1000 + 500
        assert parse_duration("1d 2h 3m 4s 500ms") == expected

    def test_combined_units_without_spaces(self):
        assert parse_duration("1d2h3m") == 24 * 60 * 60 * 1000 + 2 * 60 * 60 * 1000 + 3 * 60 * 1000

    def test_plain_number_is_milliseconds(self):
        assert parse_duration("1000") == 1000
        assert parse_duration("0") == 0

    @pytest.mark.parametrize("value", ["", "   ", "invalid", "10x", "1h and more", None])
    def test_invalid_input(self, value):
        with pytest.raises(ValueError):
            parse_duration(value)


class TestDurationSeconds:
    def test_whole_seconds(self):
        assert duration_seconds("1h") == 3600
        assert duration_seconds("7d") == 604800

    def test_sub_second_rounds_up_to_one(self):
        assert duration_seconds("500ms") == 1

    def test_zero(self):
        assert duration_seconds("0") == 0
