"""
Availability Engine: slot states relative to the viewer, lead-time and
operator exemptions, and lazy expiry of stale pending claims.
"""
from datetime import date, datetime, time

from fastapi.testclient import TestClient
from sqlmodel import Session

from academy.config import get_settings
from academy.models.court_block import CourtBlock
from academy.models.profile import Role
from academy.models.reservation import Reservation, ReservationStatus
from academy.services.availability import (
    SlotState,
    compute_availability,
    expire_stale_pending,
    get_day_availability,
    lead_time_violation,
)
from academy.services.delegation import Identity
from academy.services.time_slot import day_grid
from tests.conftest import NOW, auth

DAY = date(2026, 3, 4)


def at(hour, minute=0, day=DAY):
    return datetime.combine(day, time(hour, minute))


def reservation(owner, start, end, status=ReservationStatus.confirmed, confirmed=True):
    return Reservation(
        court_id=1,
        owner_id=owner,
        start_time=start,
        end_time=end,
        status=status,
        manager_confirmed=confirmed,
    )


def states(result):
    return {s.slot.start.hour: s.state for s in result}


def grid(day=DAY):
    return day_grid("Court 1", day, time(8), time(22), 60)


ANNA = Identity("anna", Role.participant)
DESK = Identity("desk", Role.operator)


def test_confirmed_reservation_occupies_its_slots():
    result = compute_availability(grid(), [reservation("bruno", at(10), at(12))], [], ANNA, NOW, 24)
    s = states(result)
    assert s[9] == SlotState.available
    assert s[10] == SlotState.occupied
    assert s[11] == SlotState.occupied
    assert s[12] == SlotState.available


def test_own_unconfirmed_claim_is_pending_by_caller():
    mine = reservation("anna", at(15), at(16), status=ReservationStatus.pending, confirmed=False)
    assert states(compute_availability(grid(), [mine], [], ANNA, NOW, 24))[15] == SlotState.pending_by_caller


def test_other_identities_unconfirmed_claims_are_not_revealed():
    theirs = reservation("bruno", at(15), at(16), status=ReservationStatus.pending, confirmed=False)
    result = compute_availability(grid(), [theirs], [], ANNA, NOW, 24)
    assert states(result)[15] == SlotState.available


def test_confirmed_claim_wins_over_own_pending():
    mine = reservation("anna", at(15), at(16), status=ReservationStatus.pending, confirmed=False)
    theirs = reservation("bruno", at(15, 30), at(16, 30))
    assert states(compute_availability(grid(), [mine, theirs], [], ANNA, NOW, 24))[15] == SlotState.occupied


def test_cancelled_reservations_are_ignored():
    gone = reservation("bruno", at(10), at(11), status=ReservationStatus.cancelled, confirmed=False)
    assert states(compute_availability(grid(), [gone], [], ANNA, NOW, 24))[10] == SlotState.available


def test_blocks_occupy_for_participants_but_not_operators():
    block = CourtBlock(court_id=1, start_time=at(18), end_time=at(20), reason="Maintenance")

    assert states(compute_availability(grid(), [], [block], ANNA, NOW, 24))[18] == SlotState.occupied
    desk_view = compute_availability(grid(), [], [block], DESK, NOW, 24)
    assert states(desk_view)[18] == SlotState.available
    assert all(s.bookable for s in desk_view)


def test_lead_time_makes_slots_unbookable_for_participants_only():
    tomorrow = date(2026, 3, 3)
    participant_view = compute_availability(grid(tomorrow), [], [], ANNA, NOW, 24)
    bookable = {s.slot.start.hour: s.bookable for s in participant_view}

    # NOW is 2 March 09:00: 3 March 08:00 is 23h away, 09:00 exactly 24h
    assert bookable[8] is False
    assert bookable[9] is True
    assert all(s.state == SlotState.available for s in participant_view)

    operator_view = compute_availability(grid(date(2026, 3, 2)), [], [], DESK, NOW, 24)
    assert all(s.bookable for s in operator_view)


def test_lead_time_violation_reasons():
    assert lead_time_violation(datetime(2026, 3, 2, 8), NOW, 24) == "slot is in the past"
    assert "24 hours" in lead_time_violation(datetime(2026, 3, 3, 8, 59), NOW, 24)
    assert lead_time_violation(datetime(2026, 3, 3, 9), NOW, 24) is None


def test_expire_stale_pending_only_touches_owner_past_pending(session: Session, court, participant, other_participant):
    stale = Reservation(
        court_id=court.id, owner_id="anna", start_time=datetime(2026, 3, 1, 10), end_time=datetime(2026, 3, 1, 11),
        status=ReservationStatus.pending, manager_confirmed=False,
    )
    future = Reservation(
        court_id=court.id, owner_id="anna", start_time=at(10), end_time=at(11),
        status=ReservationStatus.pending, manager_confirmed=False,
    )
    played = Reservation(
        court_id=court.id, owner_id="anna", start_time=datetime(2026, 3, 1, 12), end_time=datetime(2026, 3, 1, 13),
        status=ReservationStatus.confirmed, manager_confirmed=False,
    )
    someone_else = Reservation(
        court_id=court.id, owner_id="bruno", start_time=datetime(2026, 3, 1, 14), end_time=datetime(2026, 3, 1, 15),
        status=ReservationStatus.pending, manager_confirmed=False,
    )
    session.add_all([stale, future, played, someone_else])
    session.commit()

    assert expire_stale_pending(session, "anna", NOW) == 1

    for r in (stale, future, played, someone_else):
        session.refresh(r)
    assert stale.status == ReservationStatus.cancelled
    assert stale.manager_confirmed is False
    assert future.status == ReservationStatus.pending
    assert played.status == ReservationStatus.confirmed
    assert someone_else.status == ReservationStatus.pending


def test_court_override_changes_grid(session: Session, court, participant):
    court.slot_minutes = 90
    court.open_time = time(9, 0)
    court.close_time = time(13, 0)
    session.add(court)
    session.commit()

    result = get_day_availability(session, "Court 1", DAY, ANNA, NOW, get_settings())
    assert [s.slot.start for s in result] == [at(9), at(10, 30)]


def test_availability_endpoint(client: TestClient, session: Session, court, participant, operator):
    session.add(
        Reservation(
            court_id=court.id, owner_id="desk", start_time=at(10), end_time=at(11),
            status=ReservationStatus.confirmed, manager_confirmed=True,
        )
    )
    session.commit()

    response = client.get("/api/courts/Court 1/availability", params={"day": DAY.isoformat()}, headers=auth("anna"))
    assert response.status_code == 200
    slots = response.json()
    assert len(slots) == 14
    by_start = {s["slot_start"]: s for s in slots}
    assert by_start["2026-03-04T10:00:00"]["state"] == "occupied"
    assert by_start["2026-03-04T10:00:00"]["bookable"] is False
    assert by_start["2026-03-04T09:00:00"]["state"] == "available"
    assert by_start["2026-03-04T09:00:00"]["slot_end"] == "2026-03-04T10:00:00"


def test_availability_endpoint_requires_identity_and_known_court(client: TestClient, court, participant):
    assert client.get("/api/courts/Court 1/availability", params={"day": "2026-03-04"}).status_code == 401
    response = client.get("/api/courts/Court 9/availability", params={"day": "2026-03-04"}, headers=auth("anna"))
    assert response.status_code == 404
    assert response.json()["detail"]["code"] == "COURT_NOT_FOUND"


def test_availability_read_expires_callers_stale_pending(client: TestClient, session: Session, court, participant):
    stale = Reservation(
        court_id=court.id, owner_id="anna", start_time=datetime(2026, 3, 1, 10), end_time=datetime(2026, 3, 1, 11),
        status=ReservationStatus.pending, manager_confirmed=False,
    )
    session.add(stale)
    session.commit()

    client.get("/api/courts/Court 1/availability", params={"day": DAY.isoformat()}, headers=auth("anna"))

    session.refresh(stale)
    assert stale.status == ReservationStatus.cancelled
