from .datetime_utils import get_timezone, now, today, format_date, add_days, parse_date
from .logger import setup_logging

__all__ = [
    'get_timezone',
    'now',
    'today',
    'format_date',
    'add_days',
    'parse_date',
    'setup_logging'
]
