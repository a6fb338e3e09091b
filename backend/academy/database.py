"""
Engine and session wiring.

Reservation writes serialize on a court row (PostgreSQL) or on the database
write lock (SQLite). For SQLite the busy timeout decides how long a second
writer waits for the first one to commit before failing.
"""
import os
from pathlib import Path
from typing import Generator, Optional

from dotenv import load_dotenv
from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel, create_engine

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./academy.db")
SQLITE_BUSY_TIMEOUT = float(os.getenv("SQLITE_BUSY_TIMEOUT", "30"))


def make_engine(url: str, poolclass: Optional[type] = None, echo: bool = False) -> Engine:
    """Build an engine; SQLite gets thread-shareable connections and a busy timeout."""
    kwargs = {"echo": echo}
    if url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False, "timeout": SQLITE_BUSY_TIMEOUT}
        db_path = url[len("sqlite:///"):] if url.startswith("sqlite:///") else ""
        if db_path and db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    if poolclass is not None:
        kwargs["poolclass"] = poolclass
    return create_engine(url, **kwargs)


engine: Engine = make_engine(
    DATABASE_URL,
    echo=os.getenv("SQL_ECHO", "false").lower() in ("true", "1", "yes"),
)


def get_session() -> Generator[Session, None, None]:
    with Session(engine) as session:
        yield session


def init_db(bind: Optional[Engine] = None) -> None:
    """Create every academy table on `bind` (the app engine by default)."""
    from academy.models.competition import Competition  # noqa: F401
    from academy.models.court import Court  # noqa: F401
    from academy.models.court_block import CourtBlock  # noqa: F401
    from academy.models.enrollment import Enrollment  # noqa: F401
    from academy.models.profile import Profile  # noqa: F401
    from academy.models.reservation import Reservation  # noqa: F401

    SQLModel.metadata.create_all(bind or engine)
