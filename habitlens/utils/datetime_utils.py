from datetime import date, datetime, timedelta
from typing import Optional, Union

import pytz


def get_timezone(name: Optional[str] = None) -> Optional[pytz.BaseTzInfo]:
    """Часовой пояс по имени; None означает локальное время процесса"""
    if not name:
        return None
    return pytz.timezone(name)

def now(tz: Optional[Union[str, pytz.BaseTzInfo]] = None) -> datetime:
    if isinstance(tz, str):
        tz = get_timezone(tz)
    return datetime.now(tz)

def today(tz: Optional[Union[str, pytz.BaseTzInfo]] = None) -> date:
    return now(tz).date()

def format_date(value: date, fmt: str = "%Y-%m-%d") -> str:
    return value.strftime(fmt)

def add_days(value: date, days: int) -> date:
    return value + timedelta(days=days)

def parse_date(date_str: str, fmt: str = "%Y-%m-%d") -> date:
    return datetime.strptime(date_str, fmt).date()
