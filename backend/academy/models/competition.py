from datetime import date, datetime
from enum import Enum
from typing import Optional

from sqlalchemy import CheckConstraint, String
from sqlmodel import Column, Field, SQLModel


class CompetitionPhase(str, Enum):
    enrollment_open = "enrollment_open"
    in_progress = "in_progress"
    closed = "closed"


class CompetitionFormat(str, Enum):
    single_elimination = "single_elimination"
    round_robin = "round_robin"
    group_knockout = "group_knockout"


class Competition(SQLModel, table=True):
    __table_args__ = (
        CheckConstraint("enrolled_count <= max_participants", name="ck_competition_capacity"),
        CheckConstraint("enrolled_count >= 0", name="ck_competition_enrolled_nonnegative"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    max_participants: int
    enrolled_count: int = Field(default=0)
    phase: CompetitionPhase = Field(
        default=CompetitionPhase.enrollment_open, sa_column=Column(String, nullable=False)
    )
    format: CompetitionFormat = Field(sa_column=Column(String, nullable=False))
    starts_on: Optional[date] = None
    created_by: Optional[str] = Field(default=None, foreign_key="profile.id")
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow, sa_column_kwargs={"onupdate": datetime.utcnow})
