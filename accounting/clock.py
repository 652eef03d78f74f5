"""
Time helpers shared by the account and ledger modules.

All instants are timezone-aware UTC. Stored timestamps use a fixed-width
ISO-8601 form so that their text order equals their time order.
"""

from datetime import datetime, timedelta, timezone
from typing import Callable

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_utc(value: datetime) -> datetime:
    """Normalize a datetime to aware UTC; naive values are taken as UTC"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def format_timestamp(value: datetime) -> str:
    return to_utc(value).isoformat(timespec='microseconds')


def parse_timestamp(value: str) -> datetime:
    return to_utc(datetime.fromisoformat(value))


def from_epoch_millis(millis: int) -> datetime:
    return EPOCH + timedelta(milliseconds=millis)


def to_epoch_millis(value: datetime) -> int:
    return (to_utc(value) - EPOCH) // timedelta(milliseconds=1)


# Last millisecond representable as a datetime (9999-12-31T23:59:59.999Z)
MAX_EPOCH_MILLIS = to_epoch_millis(datetime.max.replace(tzinfo=timezone.utc))
