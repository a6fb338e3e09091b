"""
Half-open time intervals on a named court.

Every conflict check in the service goes through TimeSlot.overlaps so the
strict-inequality semantics live in one place: a slot ending at 10:00 and one
starting at 10:00 do not overlap.
"""
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import List


@dataclass(frozen=True)
class TimeSlot:
    resource: str
    start: datetime
    end: datetime

    def __post_init__(self):
        if self.end <= self.start:
            raise ValueError(f"end ({self.end.isoformat()}) must be after start ({self.start.isoformat()})")

    def overlaps(self, other: "TimeSlot") -> bool:
        return self.start < other.end and self.end > other.start

    @property
    def minutes(self) -> int:
        return int((self.end - self.start).total_seconds() // 60)

    def within(self, window_start: datetime, window_end: datetime) -> bool:
        """True when the slot lies entirely inside [window_start, window_end]."""
        return window_start <= self.start and self.end <= window_end


def day_grid(resource: str, day: date, open_time: time, close_time: time, width_minutes: int) -> List[TimeSlot]:
    """Fixed-width slots of one day; the last slot must end by close_time."""
    if width_minutes <= 0:
        raise ValueError("slot width must be positive")
    width = timedelta(minutes=width_minutes)
    cursor = datetime.combine(day, open_time)
    close = datetime.combine(day, close_time)
    slots: List[TimeSlot] = []
    while cursor + width <= close:
        slots.append(TimeSlot(resource, cursor, cursor + width))
        cursor += width
    return slots
