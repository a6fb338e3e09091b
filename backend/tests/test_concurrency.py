"""
Concurrent writers against a file-backed database: exactly one of two racing
requests for the last seat or the same slot may win.
"""
import threading
from datetime import datetime

from sqlmodel import Session, select

from academy.errors import CapacityExceededError, ReservationConflictError
from academy.models.competition import Competition, CompetitionFormat
from academy.models.court import Court
from academy.models.enrollment import Enrollment
from academy.models.profile import Profile, Role
from academy.models.reservation import Reservation
from academy.services.capacity_gate import enroll
from academy.services.delegation import Identity
from academy.services.reservation_writer import create_reservation
from tests.conftest import NOW


def race(engine, work, actors):
    """Run work(session, actor) for every actor at the same moment; collect outcomes."""
    barrier = threading.Barrier(len(actors))
    outcomes = {}

    def runner(actor):
        with Session(engine) as session:
            barrier.wait()
            try:
                work(session, actor)
                outcomes[actor.id] = "ok"
            except (CapacityExceededError, ReservationConflictError) as exc:
                outcomes[actor.id] = exc.code

    threads = [threading.Thread(target=runner, args=(actor,)) for actor in actors]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=60)
    return outcomes


def seed_profiles(engine):
    with Session(engine) as session:
        session.add(Profile(id="anna", full_name="Anna", role=Role.participant))
        session.add(Profile(id="bruno", full_name="Bruno", role=Role.participant))
        session.commit()


ACTORS = [Identity("anna", Role.participant), Identity("bruno", Role.participant)]


def test_last_seat_goes_to_exactly_one(file_engine):
    seed_profiles(file_engine)
    with Session(file_engine) as session:
        competition = Competition(name="Final Seat", max_participants=1, format=CompetitionFormat.round_robin)
        session.add(competition)
        session.commit()
        competition_id = competition.id

    outcomes = race(file_engine, lambda session, actor: enroll(session, competition_id, actor.id, actor), ACTORS)

    assert sorted(outcomes.values()) == ["CAPACITY_EXCEEDED", "ok"]
    with Session(file_engine) as session:
        assert session.get(Competition, competition_id).enrolled_count == 1
        assert len(session.exec(select(Enrollment)).all()) == 1


def test_same_slot_goes_to_exactly_one(file_engine):
    seed_profiles(file_engine)
    with Session(file_engine) as session:
        session.add(Court(name="Court 1", display_order=1))
        session.commit()

    def book(session, actor):
        create_reservation(
            session, actor, "Court 1", actor.id, datetime(2026, 3, 4, 10), datetime(2026, 3, 4, 11), now=NOW
        )

    outcomes = race(file_engine, book, ACTORS)

    assert sorted(outcomes.values()) == ["RESERVATION_CONFLICT", "ok"]
    with Session(file_engine) as session:
        assert len(session.exec(select(Reservation)).all()) == 1
