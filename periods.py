import calendar
from dataclasses import dataclass
from datetime import MAXYEAR, MINYEAR, date, datetime, time, timezone
from typing import Optional, Union

from errors import InvalidInput

END_OF_DAY = time(23, 59, 59, 999000)

DateLike = Union[date, datetime, str]


@dataclass(frozen=True)
class DateRange:
    start: Optional[datetime] = None
    end: Optional[datetime] = None

    @property
    def is_open(self) -> bool:
        return self.start is None and self.end is None


def _coerce(value: DateLike) -> Union[date, datetime]:
    if isinstance(value, str):
        text = value.strip()
        try:
            if "T" not in text and " " not in text:
                return date.fromisoformat(text)
            value = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError as exc:
            raise InvalidInput(f"Invalid date: {value}") from exc
    if isinstance(value, datetime) and value.tzinfo is not None:
        # stored datetimes are naive UTC
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def to_naive_utc(value: DateLike) -> datetime:
    """Naive UTC datetime for ``value``; plain dates map to midnight."""
    coerced = _coerce(value)
    if isinstance(coerced, datetime):
        return coerced
    return datetime.combine(coerced, time.min)


def end_of_day(value: DateLike) -> datetime:
    """Last instant (millisecond precision) of the calendar day of ``value``."""
    coerced = _coerce(value)
    day = coerced.date() if isinstance(coerced, datetime) else coerced
    return datetime.combine(day, END_OF_DAY)


def resolve_date_range(
    start: Optional[DateLike] = None, end: Optional[DateLike] = None
) -> DateRange:
    start_dt = to_naive_utc(start) if start else None
    end_dt = end_of_day(end) if end else None
    if start_dt and end_dt and start_dt > end_dt:
        raise InvalidInput("Start date must be before end date")
    return DateRange(start_dt, end_dt)


def _check_year(year: int) -> None:
    if not MINYEAR <= year <= MAXYEAR:
        raise InvalidInput(f"Year must be between {MINYEAR} and {MAXYEAR}")


def month_range(year: int, month: int) -> DateRange:
    _check_year(year)
    if not 1 <= month <= 12:
        raise InvalidInput("Month must be between 1 and 12")
    last_day = calendar.monthrange(year, month)[1]
    return DateRange(
        to_naive_utc(date(year, month, 1)), end_of_day(date(year, month, last_day))
    )


def year_range(year: int) -> DateRange:
    _check_year(year)
    return DateRange(
        to_naive_utc(date(year, 1, 1)), end_of_day(date(year, 12, 31))
    )
