from datetime import datetime
from typing import Optional

from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Field, SQLModel


class Enrollment(SQLModel, table=True):
    __table_args__ = (
        SAUniqueConstraint("competition_id", "profile_id", name="uq_enrollment_competition_profile"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    competition_id: int = Field(foreign_key="competition.id", index=True)
    profile_id: str = Field(foreign_key="profile.id")
    enrolled_by: Optional[str] = Field(default=None, foreign_key="profile.id")
    created_at: datetime = Field(default_factory=datetime.utcnow)
