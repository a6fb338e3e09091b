from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel


class CourtBlock(SQLModel, table=True):
    __tablename__ = "courtblock"

    id: Optional[int] = Field(default=None, primary_key=True)
    court_id: int = Field(foreign_key="court.id", index=True)
    start_time: datetime
    end_time: datetime
    reason: str = Field(default="Manual block")
    created_by: Optional[str] = Field(default=None, foreign_key="profile.id")
    created_at: datetime = Field(default_factory=datetime.utcnow)
