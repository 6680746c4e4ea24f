import datetime


def format_datetime_into_isoformat(date_time: datetime.datetime) -> str:
    return ensure_utc(date_time).isoformat().replace("+00:00", "Z")


def ensure_utc(date_time: datetime.datetime) -> datetime.datetime:
    """Naive values are treated as UTC; aware values are converted to UTC."""
    if date_time.tzinfo is None:
        return date_time.replace(tzinfo=datetime.timezone.utc)
    return date_time.astimezone(datetime.timezone.utc)


def utc_now() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


def start_of_utc_day(moment: datetime.datetime) -> datetime.datetime:
    moment = ensure_utc(moment)
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)
