import re
from datetime import date, datetime, timedelta

from .errors import InvalidDate

DAY_FORMAT = "%Y-%m-%d"
_DAY_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def parse_day(value):
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not _DAY_PATTERN.match(value):
        raise InvalidDate(value)
    try:
        return datetime.strptime(value, DAY_FORMAT).date()
    except ValueError:
        # z.B. 2025-02-30
        raise InvalidDate(value) from None


def format_day(day):
    return parse_day(day).strftime(DAY_FORMAT)


def day_in_interval(day, start, end):
    return parse_day(start) <= parse_day(day) <= parse_day(end)


def intervals_overlap(a_start, a_end, b_start, b_end):
    """Geschlossene Intervalle: gemeinsame Randtage zählen als Überschneidung."""
    return parse_day(a_start) <= parse_day(b_end) and parse_day(b_start) <= parse_day(a_end)


def add_days(day, days):
    return format_day(parse_day(day) + timedelta(days=days))


def days_between(start, end):
    return (parse_day(end) - parse_day(start)).days


def format_date_european(date_str_yyyy_mm_dd):
    if not date_str_yyyy_mm_dd:
        return ""
    try:
        return parse_day(date_str_yyyy_mm_dd).strftime("%d.%m.%Y")
    except InvalidDate:
        return date_str_yyyy_mm_dd
