from datetime import datetime, time, timezone


def utcnow():
    return datetime.now(timezone.utc)


def as_utc(dt):
    """Return an aware UTC datetime. Naive values (SQLite reads) are taken as UTC."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_datetime(value):
    """Parse an ISO-8601 string (or pass through a datetime). Returns None when absent."""
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return as_utc(value)
    if not isinstance(value, str):
        raise ValueError(f'expected an ISO-8601 string, got {type(value).__name__}')
    raw = value.strip()
    if raw.endswith('Z'):
        raw = raw[:-1] + '+00:00'
    return as_utc(datetime.fromisoformat(raw))


def parse_time_of_day(value, default='10:00'):
    """Parse an HH:MM string, falling back to ``default`` for anything malformed."""
    for candidate in (value, default):
        if not isinstance(candidate, str):
            continue
        parts = candidate.strip().split(':')
        if len(parts) != 2 or not all(p.isdigit() for p in parts):
            continue
        hour, minute = int(parts[0]), int(parts[1])
        if 0 <= hour <= 23 and 0 <= minute <= 59:
            return time(hour, minute)
    return time(10, 0)


def safe_int(value, default=1):
    """Safely convert to int."""
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def clamp(value, low, high):
    return max(low, min(high, value))
