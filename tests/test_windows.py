"""Window generator: valid starts for a fixed-length trip inside bounds."""
from datetime import date, timedelta

import pytest

from app.core.exceptions import InvalidOptionError
from app.services.scheduling.windows import (
    ValidStarts, window_end, make_option_key, parse_option_key,
)


def test_june_range_has_eight_starts():
    starts = ValidStarts(date(2025, 6, 1), date(2025, 6, 10), 3)
    assert list(starts) == [date(2025, 6, d) for d in range(1, 9)]
    assert len(starts) == 8
    assert starts.last_start == date(2025, 6, 8)


def test_sequence_is_restartable():
    starts = ValidStarts(date(2025, 6, 1), date(2025, 6, 10), 3)
    assert list(starts) == list(starts)


@pytest.mark.parametrize("length", [1, 2, 5, 10])
def test_every_start_fits_inside_bounds(length):
    start_bound, end_bound = date(2025, 2, 20), date(2025, 3, 1)
    starts = ValidStarts(start_bound, end_bound, length)
    produced = list(starts)
    assert len(produced) == len(starts)
    for s in produced:
        assert start_bound <= s
        assert s + timedelta(days=length - 1) <= end_bound


def test_window_exactly_as_long_as_range_has_single_start():
    starts = ValidStarts(date(2025, 6, 1), date(2025, 6, 10), 10)
    assert list(starts) == [date(2025, 6, 1)]


def test_window_longer_than_range_is_empty():
    starts = ValidStarts(date(2025, 6, 1), date(2025, 6, 3), 5)
    assert list(starts) == []
    assert len(starts) == 0
    assert not starts


def test_membership():
    starts = ValidStarts(date(2025, 6, 1), date(2025, 6, 10), 3)
    assert date(2025, 6, 1) in starts
    assert date(2025, 6, 8) in starts
    assert date(2025, 6, 9) not in starts
    assert date(2025, 5, 31) not in starts
    assert "2025-06-03" not in starts


def test_zero_length_rejected():
    with pytest.raises(ValueError):
        ValidStarts(date(2025, 6, 1), date(2025, 6, 10), 0)


def test_window_end_is_inclusive():
    assert window_end(date(2025, 6, 1), 3) == date(2025, 6, 3)
    assert window_end(date(2025, 6, 1), 1) == date(2025, 6, 1)


def test_option_key_format():
    key = make_option_key(date(2025, 6, 3), date(2025, 6, 5))
    assert key == "2025-06-03|2025-06-05"
    assert parse_option_key(key) == (date(2025, 6, 3), date(2025, 6, 5))


@pytest.mark.parametrize("bad", ["2025-06-03", "2025-06-03_2025-06-05", "x|y", ""])
def test_malformed_option_key(bad):
    with pytest.raises(InvalidOptionError):
        parse_option_key(bad)
