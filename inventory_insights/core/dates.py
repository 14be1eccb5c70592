from datetime import date, datetime, time, timedelta


def normalize_date(value):
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        value_text = value.strip()
        if not value_text:
            return None
        try:
            return date.fromisoformat(value_text)
        except ValueError:
            return None
    return None


def start_of_day(day: date) -> datetime:
    return datetime.combine(day, time.min)


def day_window(start: date, end: date) -> tuple[datetime, datetime]:
    """Half-open ``[start 00:00, end + 1 day 00:00)`` covering both calendar days."""
    return start_of_day(start), start_of_day(end + timedelta(days=1))


def week_start(value) -> date:
    day = normalize_date(value)
    return day - timedelta(days=day.weekday())


def iso_week_label(value) -> str:
    iso_year, iso_week, _ = normalize_date(value).isocalendar()
    return "{}-W{:02d}".format(iso_year, iso_week)


def to_local_naive(value: datetime) -> datetime:
    """Aware values are converted to server-local wall time; naive values are taken as local already."""
    if value.tzinfo is None:
        return value
    return value.astimezone().replace(tzinfo=None)


def whole_hours_between(start: datetime, end: datetime) -> int:
    seconds = (to_local_naive(end) - to_local_naive(start)).total_seconds()
    return int(seconds // 3600) if seconds > 0 else 0
