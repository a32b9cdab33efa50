from datetime import datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    """timezone-aware current time; every stored timestamp goes through here"""
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # sqlite hands timestamps back without an offset; they were written as utc
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)
