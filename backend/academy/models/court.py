from datetime import datetime, time
from typing import Optional

from sqlmodel import Field, SQLModel


class Court(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(unique=True, index=True)
    display_order: int = Field(default=0)
    is_active: bool = Field(default=True)

    # Per-court overrides of the academy booking grid (None = academy default)
    slot_minutes: Optional[int] = Field(default=None)
    open_time: Optional[time] = Field(default=None)
    close_time: Optional[time] = Field(default=None)

    # Bumped by every reservation write; the UPDATE serializes writers per court
    booking_seq: int = Field(default=0)
    created_at: datetime = Field(default_factory=datetime.utcnow)
