"""Date manipulation utilities"""

from datetime import date, timedelta
from typing import Tuple


def fiscal_year_start_year(on: date, start_month: int = 4) -> int:
    """Calendar year in which the fiscal year containing `on` began"""
    return on.year if on.month >= start_month else on.year - 1


def fiscal_year_range(start_year: int, start_month: int = 4) -> Tuple[date, date]:
    """First and last day of the fiscal year starting in `start_year` (inclusive)"""
    start = date(start_year, start_month, 1)
    if start_month == 1:
        end = date(start_year, 12, 31)
    else:
        end = date(start_year + 1, start_month, 1) - timedelta(days=1)
    return start, end
