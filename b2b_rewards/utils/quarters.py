"""
Quarter utilities for the reward system.

Quarters are calendar quarters in server-local (naive) time. A quarter's
range is closed on both ends: it starts at midnight on the 1st of its first
month and ends at 23:59:59.999 on the last day of its third month.
"""
import calendar
from datetime import datetime, date
from typing import List, NamedTuple, Optional, Tuple, Union

from .exceptions import InvalidInputError, InvalidQuarterError

QUARTER_NAMES_AR = [
    'الربع الأول',
    'الربع الثاني',
    'الربع الثالث',
    'الربع الرابع',
]


class QuarterInfo(NamedTuple):
    quarter: int
    year: int
    start_date: datetime
    end_date: datetime

    def to_dict(self) -> dict:
        return {
            'quarter': self.quarter,
            'year': self.year,
            'start_date': self.start_date.isoformat(),
            'end_date': self.end_date.isoformat(),
            'label': format_quarter_label(self.quarter, self.year),
            'label_ar': format_quarter_label_ar(self.quarter, self.year),
        }


def _validate_quarter(quarter: int) -> None:
    if quarter not in (1, 2, 3, 4):
        raise InvalidQuarterError(quarter)


def get_quarter_from_date(value: Union[date, datetime]) -> int:
    """Quarter number (1-4) containing the given date."""
    return (value.month - 1) // 3 + 1


def get_quarter_date_range(quarter: int, year: int) -> Tuple[datetime, datetime]:
    """
    Start and end instants of a quarter.

    Raises:
        InvalidQuarterError: If quarter is not 1-4
    """
    _validate_quarter(quarter)

    start_month = (quarter - 1) * 3 + 1
    end_month = start_month + 2
    last_day = calendar.monthrange(year, end_month)[1]

    start_date = datetime(year, start_month, 1, 0, 0, 0, 0)
    end_date = datetime(year, end_month, last_day, 23, 59, 59, 999000)

    return start_date, end_date


def _info(quarter: int, year: int) -> QuarterInfo:
    start_date, end_date = get_quarter_date_range(quarter, year)
    return QuarterInfo(quarter, year, start_date, end_date)


def get_current_quarter(now: Optional[datetime] = None) -> QuarterInfo:
    """Quarter containing now (or the supplied instant)."""
    now = now or datetime.now()
    return _info(get_quarter_from_date(now), now.year)


def get_year_quarters(year: int) -> List[QuarterInfo]:
    return [_info(quarter, year) for quarter in (1, 2, 3, 4)]


def get_previous_quarter(quarter: int, year: int) -> QuarterInfo:
    _validate_quarter(quarter)
    if quarter == 1:
        return _info(4, year - 1)
    return _info(quarter - 1, year)


def get_next_quarter(quarter: int, year: int) -> QuarterInfo:
    _validate_quarter(quarter)
    if quarter == 4:
        return _info(1, year + 1)
    return _info(quarter + 1, year)


def is_date_in_quarter(value: datetime, quarter: int, year: int) -> bool:
    """Inclusive on both ends."""
    start_date, end_date = get_quarter_date_range(quarter, year)
    return start_date <= value <= end_date


def format_quarter_label(quarter: int, year: int) -> str:
    """e.g. "Q1 2025"."""
    return f'Q{quarter} {year}'


def format_quarter_label_ar(quarter: int, year: int) -> str:
    """e.g. "الربع الأول 2025"."""
    _validate_quarter(quarter)
    return f'{QUARTER_NAMES_AR[quarter - 1]} {year}'


def parse_quarter_params(quarter, year) -> Tuple[int, int]:
    """
    Coerce quarter/year from request input.

    Raises:
        InvalidInputError: If either value is missing or not an integer
        InvalidQuarterError: If quarter is not 1-4
    """
    if quarter in (None, '') or year in (None, ''):
        raise InvalidInputError('Quarter and year are required')

    try:
        q = int(quarter)
        y = int(year)
    except (TypeError, ValueError):
        raise InvalidInputError('Quarter and year must be integers')

    _validate_quarter(q)
    return q, y
