import os
from datetime import datetime
from typing import Dict

os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

import jwt
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel

from academy.config import get_settings
from academy.database import get_session, init_db, make_engine
from academy.dependencies import get_now
from academy.main import app
from academy.models.court import Court
from academy.models.profile import Profile, Role
from academy.services.delegation import Identity

TEST_DATABASE_URL = "sqlite:///:memory:"

# Fixed academy clock for every test: Monday 2 March 2026, 09:00 local.
# Slots on 4 March are comfortably outside the 24h lead time.
NOW = datetime(2026, 3, 2, 9, 0)

# ============================================================================
# Test Database Setup with StaticPool
# ============================================================================
# 1. sqlite:///:memory: with StaticPool so ALL sessions share the same DB
# 2. check_same_thread=False required for TestClient/threaded access
# 3. All models are imported in tests/__init__.py before create_all()
# 4. App dependencies overridden to use test_engine and the fixed clock
# 5. Tables dropped and recreated per test so tests never see each other's rows
test_engine = make_engine(TEST_DATABASE_URL, poolclass=StaticPool)


def override_get_session():
    """Override session to use test engine"""
    with Session(test_engine) as session:
        yield session


def override_get_now() -> datetime:
    return NOW


def make_token(profile_id: str) -> str:
    settings = get_settings()
    return jwt.encode({"sub": profile_id}, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def auth(profile_id: str) -> Dict[str, str]:
    """Authorization header for a profile"""
    return {"Authorization": f"Bearer {make_token(profile_id)}"}


def identity_of(profile: Profile) -> Identity:
    return Identity(id=profile.id, role=Role(profile.role))


def add_profile(session: Session, profile_id: str, role: Role, full_name: str = "") -> Profile:
    profile = Profile(id=profile_id, full_name=full_name or profile_id.title(), role=role)
    session.add(profile)
    session.commit()
    session.refresh(profile)
    return profile


@pytest.fixture(name="session", scope="function")
def session_fixture():
    """Provide a test database session on a freshly created schema"""
    SQLModel.metadata.drop_all(test_engine)
    SQLModel.metadata.create_all(test_engine)

    with Session(test_engine) as session:
        yield session


@pytest.fixture(name="client")
def client_fixture(session: Session):
    """Provide a test client with overridden database session and clock

    Overrides MUST be set BEFORE TestClient() and stay in place for the
    entire duration so the app never uses its own engine.
    """
    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_now] = override_get_now

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def participant(session: Session) -> Profile:
    return add_profile(session, "anna", Role.participant, "Anna Rossi")


@pytest.fixture
def other_participant(session: Session) -> Profile:
    return add_profile(session, "bruno", Role.participant, "Bruno Bianchi")


@pytest.fixture
def instructor(session: Session) -> Profile:
    return add_profile(session, "coach", Role.instructor, "Carla Coach")


@pytest.fixture
def other_instructor(session: Session) -> Profile:
    return add_profile(session, "coach2", Role.instructor, "Dario Coach")


@pytest.fixture
def operator(session: Session) -> Profile:
    return add_profile(session, "desk", Role.operator, "Front Desk")


@pytest.fixture
def administrator(session: Session) -> Profile:
    return add_profile(session, "admin", Role.administrator, "Admin")


@pytest.fixture
def court(session: Session) -> Court:
    court = Court(name="Court 1", display_order=1)
    session.add(court)
    session.commit()
    session.refresh(court)
    return court


@pytest.fixture
def file_engine(tmp_path):
    """File-backed SQLite engine for tests that need real concurrent connections"""
    engine = make_engine(f"sqlite:///{tmp_path / 'race.db'}")
    init_db(engine)
    yield engine
    engine.dispose()
