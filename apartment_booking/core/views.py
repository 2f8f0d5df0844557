import calendar

from .dates import day_in_interval, intervals_overlap, parse_day

SORT_KEYS = ('start_date', 'client_name', 'apartment')

MONTH_NAMES = {1: 'Januar', 2: 'Februar', 3: 'März', 4: 'April', 5: 'Mai', 6: 'Juni', 7: 'Juli', 8: 'August',
               9: 'September', 10: 'Oktober', 11: 'November', 12: 'Dezember'}


def filter_reservations(reservations, apartment=None, client_name=None, start_date=None, end_date=None):
    result = []
    needle = client_name.strip().lower() if client_name else None
    for res in reservations:
        if apartment and res.apartment != apartment:
            continue
        if needle and needle not in (res.client_name or '').lower():
            continue
        # Datumsfilter nur, wenn beide Grenzen gesetzt sind
        if start_date and end_date and not intervals_overlap(res.start_date, res.end_date, start_date, end_date):
            continue
        result.append(res)
    return result


def sort_reservations(reservations, sort_by='start_date', order='asc'):
    if sort_by not in SORT_KEYS:
        sort_by = 'start_date'
    if sort_by == 'start_date':
        key = lambda r: parse_day(r.start_date)
    else:
        key = lambda r: str(getattr(r, sort_by) or '').lower()
    return sorted(reservations, key=key, reverse=(order == 'desc'))


def reservations_for_day(reservations, day):
    return [r for r in reservations if day_in_interval(day, r.start_date, r.end_date)]


def month_grid(year, month):
    cal = calendar.Calendar(firstweekday=0)
    return cal.monthdatescalendar(year, month)


def shift_month(year, month, delta):
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1
