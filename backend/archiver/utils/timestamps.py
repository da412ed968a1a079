from datetime import date, datetime, timedelta, timezone

# Microsecond precision keeps lexical order equal to chronological order
TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"


def utc_now() -> str:
    return datetime.now(timezone.utc).strftime(TIMESTAMP_FORMAT)


def to_timestamp(value: datetime) -> str:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value.strftime(TIMESTAMP_FORMAT)


def parse_bound(value: str, end: bool = False) -> str:
    """Turn a date or datetime query value into an inclusive timestamp bound.

    A bare date as the end bound covers that whole day. Raises ValueError on
    anything unparseable.
    """
    value = value.strip()
    if len(value) == 10:
        day = date.fromisoformat(value)
        moment = datetime(day.year, day.month, day.day)
        if end:
            moment += timedelta(days=1) - timedelta(microseconds=1)
        return to_timestamp(moment)
    return to_timestamp(datetime.fromisoformat(value.replace("Z", "+00:00")))
