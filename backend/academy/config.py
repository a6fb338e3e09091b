"""
Academy-wide booking parameters, read from the environment (.env supported).

Courts may override slot width and opening window; everything else applies
to the whole academy.
"""
import os
from dataclasses import dataclass
from datetime import datetime, time
from functools import lru_cache
from typing import Optional
from zoneinfo import ZoneInfo

from dotenv import load_dotenv

load_dotenv()


def _parse_clock(value: str) -> time:
    hour, _, minute = value.strip().partition(":")
    return time(int(hour), int(minute or 0))


@dataclass(frozen=True)
class BookingSettings:
    timezone: str = "Europe/Rome"
    lead_time_hours: int = 24
    slot_minutes: int = 60
    open_time: time = time(8, 0)
    close_time: time = time(22, 0)
    jwt_secret: str = "dev-secret-change-me"
    jwt_algorithm: str = "HS256"

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)


@lru_cache(maxsize=1)
def get_settings() -> BookingSettings:
    return BookingSettings(
        timezone=os.getenv("ACADEMY_TIMEZONE", "Europe/Rome"),
        lead_time_hours=int(os.getenv("BOOKING_LEAD_TIME_HOURS", "24")),
        slot_minutes=int(os.getenv("BOOKING_SLOT_MINUTES", "60")),
        open_time=_parse_clock(os.getenv("BOOKING_OPEN_TIME", "08:00")),
        close_time=_parse_clock(os.getenv("BOOKING_CLOSE_TIME", "22:00")),
        jwt_secret=os.getenv("AUTH_JWT_SECRET", "dev-secret-change-me"),
        jwt_algorithm=os.getenv("AUTH_JWT_ALGORITHM", "HS256"),
    )


def local_now(settings: Optional[BookingSettings] = None) -> datetime:
    """Current academy wall-clock time, naive (the storage convention)."""
    settings = settings or get_settings()
    return datetime.now(settings.tz).replace(tzinfo=None, microsecond=0)


def to_local_naive(value: datetime, settings: Optional[BookingSettings] = None) -> datetime:
    """Convert an aware datetime to naive academy-local time; naive values pass through."""
    if value.tzinfo is None:
        return value
    settings = settings or get_settings()
    return value.astimezone(settings.tz).replace(tzinfo=None)
