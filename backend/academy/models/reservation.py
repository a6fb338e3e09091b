from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import Index, String
from sqlmodel import Column, Field, SQLModel


class ReservationStatus(str, Enum):
    pending = "pending"
    confirmed = "confirmed"
    cancellation_requested = "cancellation_requested"
    cancelled = "cancelled"


class ReservationKind(str, Enum):
    court = "court"
    private_lesson = "private_lesson"
    group_lesson = "group_lesson"
    arena = "arena"


# Kinds that need an instructor and start out awaiting operator confirmation
INSTRUCTOR_KINDS = frozenset({ReservationKind.private_lesson, ReservationKind.group_lesson})


class Reservation(SQLModel, table=True):
    __table_args__ = (Index("ix_reservation_court_start", "court_id", "start_time"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    court_id: int = Field(foreign_key="court.id")
    owner_id: str = Field(foreign_key="profile.id", index=True)
    instructor_id: Optional[str] = Field(default=None, foreign_key="profile.id")
    kind: ReservationKind = Field(default=ReservationKind.court, sa_column=Column(String, nullable=False))
    start_time: datetime
    end_time: datetime
    status: ReservationStatus = Field(sa_column=Column(String, nullable=False))
    manager_confirmed: bool = Field(default=False)
    notes: Optional[str] = None
    created_by: Optional[str] = Field(default=None, foreign_key="profile.id")
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow, sa_column_kwargs={"onupdate": datetime.utcnow})
