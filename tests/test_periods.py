from datetime import datetime

import pytest

from errors import InvalidInput
from periods import month_range, year_range


def test_month_range_spans_whole_month() -> None:
    feb = month_range(2024, 2)

    assert feb.start == datetime(2024, 2, 1)
    assert feb.end == datetime(2024, 2, 29, 23, 59, 59, 999000)


def test_last_representable_month_and_year() -> None:
    assert month_range(9999, 12).end == datetime(9999, 12, 31, 23, 59, 59, 999000)
    assert year_range(9999).start == datetime(9999, 1, 1)


@pytest.mark.parametrize("year", [0, -1, 10000, 99999])
def test_out_of_range_year_is_invalid_input(year: int) -> None:
    with pytest.raises(InvalidInput):
        year_range(year)
    with pytest.raises(InvalidInput):
        month_range(year, 1)


@pytest.mark.parametrize("month", [0, 13])
def test_out_of_range_month_is_invalid_input(month: int) -> None:
    with pytest.raises(InvalidInput):
        month_range(2024, month)
