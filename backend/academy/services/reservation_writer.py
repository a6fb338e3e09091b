"""
Reservation Writer: validates and persists single and batch court reservations,
and applies lifecycle actions to existing ones.

Write path for new reservations:

1. Resolve the owner and check delegation.
2. Validate every interval (shape, batch self-overlap, and for non-operators
   lead time and opening hours).
3. Bump the court's booking_seq inside the transaction. The UPDATE takes the
   court row lock (PostgreSQL) or the database write lock (SQLite), so two
   writers on the same court cannot both pass step 4.
4. For non-operators, an interval inside a court block is a validation
   failure (400 COURT_BLOCKED). Blocks are read after the lock so a block
   added concurrently is seen.
5. Re-read blocking reservations and check each requested interval with
   TimeSlot.overlaps.
6. Any failure rolls the whole request back; otherwise insert everything
   with its initial lifecycle state and commit.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Optional, Sequence

from sqlalchemy import update
from sqlmodel import Session, select

from academy.config import BookingSettings, get_settings, local_now
from academy.errors import ConflictError, NotFoundError, ReservationConflictError, ValidationError
from academy.models.court import Court
from academy.models.court_block import CourtBlock
from academy.models.profile import Profile, Role
from academy.models.reservation import INSTRUCTOR_KINDS, Reservation, ReservationKind, ReservationStatus
from academy.services.availability import court_grid, get_court_by_name, lead_time_violation
from academy.services.delegation import Identity, require_can_act_for, require_operator
from academy.services.reservation_states import (
    BLOCKING_STATUSES,
    OPERATOR_ACTIONS,
    apply_state,
    initial_state,
    transition,
)
from academy.services.time_slot import TimeSlot

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReservationRequest:
    start: datetime
    end: datetime


def get_profile_or_404(session: Session, profile_id: str, label: str = "User") -> Profile:
    profile = session.get(Profile, profile_id)
    if not profile:
        raise NotFoundError(f"{label} not found", code="PROFILE_NOT_FOUND", details={"profile_id": profile_id})
    return profile


def as_identity(profile: Profile) -> Identity:
    return Identity(id=profile.id, role=Role(profile.role))


def _build_slots(court_name: str, requests: Sequence[ReservationRequest]) -> List[TimeSlot]:
    if not requests:
        raise ValidationError("At least one reservation is required", code="EMPTY_REQUEST")
    slots: List[TimeSlot] = []
    for index, request in enumerate(requests):
        try:
            slots.append(TimeSlot(court_name, request.start, request.end))
        except ValueError:
            raise ValidationError(
                "end_time must be after start_time",
                code="INVALID_INTERVAL",
                details={"index": index},
            )
    for i, slot in enumerate(slots):
        for j in range(i + 1, len(slots)):
            if slot.overlaps(slots[j]):
                raise ValidationError(
                    "Requested slots overlap each other",
                    code="OVERLAPPING_REQUEST",
                    details={"indices": [i, j]},
                )
    return slots


def _check_time_rules(court: Court, slots: Sequence[TimeSlot], now: datetime, settings: BookingSettings) -> None:
    open_time, close_time, _ = court_grid(court, settings)
    for index, slot in enumerate(slots):
        reason = lead_time_violation(slot.start, now, settings.lead_time_hours)
        if reason:
            raise ValidationError(
                reason[0].upper() + reason[1:],
                code="LEAD_TIME_VIOLATION",
                details={"index": index, "lead_time_hours": settings.lead_time_hours},
            )
        day = slot.start.date()
        if not slot.within(datetime.combine(day, open_time), datetime.combine(day, close_time)):
            raise ValidationError(
                f"Reservations must fall between {open_time:%H:%M} and {close_time:%H:%M}",
                code="OUTSIDE_OPENING_HOURS",
                details={"index": index},
            )


def _check_instructor(session: Session, kind: ReservationKind, instructor_id: Optional[str]) -> None:
    if kind in INSTRUCTOR_KINDS and not instructor_id:
        raise ValidationError(f"A {kind.value.replace('_', ' ')} requires an instructor", code="INSTRUCTOR_REQUIRED")
    if instructor_id:
        instructor = get_profile_or_404(session, instructor_id, label="Instructor")
        if Role(instructor.role) != Role.instructor:
            raise ValidationError("instructor_id must reference an instructor", code="NOT_AN_INSTRUCTOR")


def lock_court(session: Session, court_id: int) -> None:
    session.execute(
        update(Court)
        .where(Court.id == court_id)
        .values(booking_seq=Court.booking_seq + 1)
        .execution_options(synchronize_session=False)
    )


def _blocked_indices(session: Session, court: Court, slots: Sequence[TimeSlot]) -> List[int]:
    window_start = min(s.start for s in slots)
    window_end = max(s.end for s in slots)
    blocks = session.exec(
        select(CourtBlock).where(
            CourtBlock.court_id == court.id,
            CourtBlock.start_time < window_end,
            CourtBlock.end_time > window_start,
        )
    ).all()
    blocked = [TimeSlot(court.name, b.start_time, b.end_time) for b in blocks]
    return [index for index, slot in enumerate(slots) if any(slot.overlaps(b) for b in blocked)]


def _conflicting_indices(session: Session, court: Court, slots: Sequence[TimeSlot]) -> List[int]:
    window_start = min(s.start for s in slots)
    window_end = max(s.end for s in slots)
    existing = session.exec(
        select(Reservation).where(
            Reservation.court_id == court.id,
            Reservation.status.in_([s.value for s in BLOCKING_STATUSES]),
            Reservation.start_time < window_end,
            Reservation.end_time > window_start,
        )
    ).all()
    taken = [TimeSlot(court.name, r.start_time, r.end_time) for r in existing]
    return [index for index, slot in enumerate(slots) if any(slot.overlaps(t) for t in taken)]


def create_reservations(
    session: Session,
    actor: Identity,
    court_name: str,
    owner_id: str,
    requests: Sequence[ReservationRequest],
    kind: ReservationKind = ReservationKind.court,
    instructor_id: Optional[str] = None,
    notes: Optional[str] = None,
    now: Optional[datetime] = None,
    settings: Optional[BookingSettings] = None,
) -> List[Reservation]:
    """Create all requested reservations on one court for one owner, or none of them."""
    settings = settings or get_settings()
    now = now or local_now(settings)
    kind = ReservationKind(kind)

    court = get_court_by_name(session, court_name)
    owner = get_profile_or_404(session, owner_id, label="Owner")
    require_can_act_for(actor, as_identity(owner), "book")
    _check_instructor(session, kind, instructor_id)

    slots = _build_slots(court.name, requests)
    if not actor.is_operator:
        _check_time_rules(court, slots, now, settings)

    court_id, court_label = court.id, court.name
    state = initial_state(kind, actor.is_operator)
    try:
        lock_court(session, court_id)
        if not actor.is_operator:
            blocked = _blocked_indices(session, court, slots)
            if blocked:
                session.rollback()
                raise ValidationError(
                    f"{court_label} is blocked during the requested time",
                    code="COURT_BLOCKED",
                    details={"index": blocked[0], "indices": blocked},
                )

        conflicts = _conflicting_indices(session, court, slots)
        if conflicts:
            session.rollback()
            logger.info(
                "Reservation conflict on %s for owner %s: indices %s (actor %s)",
                court_label,
                owner_id,
                conflicts,
                actor.id,
            )
            raise ReservationConflictError(conflicts, court_label)

        created: List[Reservation] = []
        for slot in slots:
            reservation = Reservation(
                court_id=court_id,
                owner_id=owner_id,
                instructor_id=instructor_id,
                kind=kind,
                start_time=slot.start,
                end_time=slot.end,
                status=state[0],
                manager_confirmed=state[1],
                notes=notes,
                created_by=actor.id,
            )
            apply_state(reservation, state)
            session.add(reservation)
            created.append(reservation)
        session.commit()
    except (ReservationConflictError, ValidationError):
        raise
    except Exception:
        session.rollback()
        raise

    for reservation in created:
        session.refresh(reservation)
    logger.info(
        "Created %d reservation(s) on %s for owner %s by %s as %s",
        len(created),
        court_label,
        owner_id,
        actor.id,
        state[0].value,
    )
    return created


def create_reservation(
    session: Session,
    actor: Identity,
    court_name: str,
    owner_id: str,
    start: datetime,
    end: datetime,
    **kwargs,
) -> Reservation:
    return create_reservations(session, actor, court_name, owner_id, [ReservationRequest(start, end)], **kwargs)[0]


def get_reservation_or_404(session: Session, reservation_id: int) -> Reservation:
    reservation = session.get(Reservation, reservation_id)
    if not reservation:
        raise NotFoundError("Reservation not found", code="RESERVATION_NOT_FOUND")
    return reservation


def apply_action(
    session: Session,
    actor: Identity,
    reservation_id: int,
    action: str,
    now: Optional[datetime] = None,
) -> Reservation:
    """Run a lifecycle action (confirm, reject, cancel, ...) on behalf of actor."""
    now = now or local_now()
    reservation = get_reservation_or_404(session, reservation_id)

    if action in OPERATOR_ACTIONS:
        require_operator(actor, f"{action.replace('_', ' ')} reservations")
    elif not actor.is_operator:
        owner = get_profile_or_404(session, reservation.owner_id, label="Owner")
        require_can_act_for(actor, as_identity(owner), action.replace("_", " "))
        if reservation.start_time <= now:
            raise ValidationError("Reservation has already started", code="RESERVATION_STARTED")
        if action == "cancel" and reservation.manager_confirmed:
            raise ConflictError(
                "Reservation is confirmed by the academy; request a cancellation instead",
                code="CANCELLATION_REQUEST_REQUIRED",
            )

    previous = ReservationStatus(reservation.status)
    transition(reservation, action)
    session.add(reservation)
    session.commit()
    session.refresh(reservation)
    logger.info(
        "Reservation %s: %s by %s (%s -> %s)",
        reservation.id,
        action,
        actor.id,
        previous.value,
        ReservationStatus(reservation.status).value,
    )
    return reservation


def list_reservations(
    session: Session,
    owner_id: str,
    start: Optional[datetime] = None,
    days: Optional[int] = None,
) -> List[Reservation]:
    query = select(Reservation).where(Reservation.owner_id == owner_id)
    if start is not None:
        query = query.where(Reservation.end_time > start)
        if days:
            query = query.where(Reservation.start_time < start + timedelta(days=days))
    return list(session.exec(query.order_by(Reservation.start_time)).all())
