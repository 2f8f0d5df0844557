from .dates import intervals_overlap, parse_day


def find_conflict(candidate, reservations, exclude_id=None):
    start = parse_day(candidate.start_date)
    end = parse_day(candidate.end_date)
    for existing in reservations:
        if existing.apartment != candidate.apartment:
            continue
        if exclude_id is not None and existing.id == exclude_id:
            continue
        if intervals_overlap(start, end, existing.start_date, existing.end_date):
            return existing
    return None


def has_conflict(candidate, reservations, exclude_id=None):
    return find_conflict(candidate, reservations, exclude_id) is not None
