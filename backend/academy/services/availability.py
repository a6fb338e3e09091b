"""
Availability Engine: the per-day slot grid of one court as seen by one caller.

States:
- occupied: overlaps a live reservation carrying the operator confirmation
  flag, or (for non-operators) an administrative court block.
- pending_by_caller: overlaps the caller's own unconfirmed reservation.
- available: anything else. Other identities' unconfirmed claims are not
  revealed; the writer re-checks them at commit time.

`bookable` adds the caller's time rules on top of the state: non-operators
cannot pick a slot in the past or inside the lead time.
"""
import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import List, Optional, Sequence, Tuple

from sqlmodel import Session, select

from academy.config import BookingSettings, get_settings
from academy.errors import NotFoundError
from academy.models.court import Court
from academy.models.court_block import CourtBlock
from academy.models.reservation import Reservation, ReservationStatus
from academy.services.delegation import Identity
from academy.services.reservation_states import transition
from academy.services.time_slot import TimeSlot, day_grid

logger = logging.getLogger(__name__)


class SlotState(str, Enum):
    available = "available"
    occupied = "occupied"
    pending_by_caller = "pending_by_caller"


@dataclass(frozen=True)
class SlotAvailability:
    slot: TimeSlot
    state: SlotState
    bookable: bool


def court_grid(court: Court, settings: BookingSettings) -> Tuple[time, time, int]:
    """(open_time, close_time, slot_minutes) for a court, falling back to academy defaults."""
    return (
        court.open_time or settings.open_time,
        court.close_time or settings.close_time,
        court.slot_minutes or settings.slot_minutes,
    )


def lead_time_violation(start: datetime, now: datetime, lead_time_hours: int) -> Optional[str]:
    """Reason a non-operator may not book a slot starting at `start`, or None."""
    if start < now:
        return "slot is in the past"
    if start < now + timedelta(hours=lead_time_hours):
        return f"bookings must be made at least {lead_time_hours} hours in advance"
    return None


def compute_availability(
    grid: Sequence[TimeSlot],
    reservations: Sequence[Reservation],
    blocks: Sequence[CourtBlock],
    viewer: Identity,
    now: datetime,
    lead_time_hours: int,
) -> List[SlotAvailability]:
    resource = grid[0].resource if grid else ""
    live = [
        (TimeSlot(resource, r.start_time, r.end_time), r)
        for r in reservations
        if ReservationStatus(r.status) != ReservationStatus.cancelled
    ]
    blocked = [TimeSlot(resource, b.start_time, b.end_time) for b in blocks] if not viewer.is_operator else []

    result: List[SlotAvailability] = []
    for slot in grid:
        overlapping = [r for interval, r in live if slot.overlaps(interval)]
        if any(r.manager_confirmed for r in overlapping) or any(slot.overlaps(b) for b in blocked):
            state = SlotState.occupied
        elif any(r.owner_id == viewer.id for r in overlapping):
            state = SlotState.pending_by_caller
        else:
            state = SlotState.available

        bookable = state == SlotState.available
        if bookable and not viewer.is_operator:
            bookable = lead_time_violation(slot.start, now, lead_time_hours) is None
        result.append(SlotAvailability(slot=slot, state=state, bookable=bookable))
    return result


def expire_stale_pending(session: Session, owner_id: str, now: datetime) -> int:
    """Cancel the owner's unconfirmed pending reservations whose start has passed."""
    stale = session.exec(
        select(Reservation).where(
            Reservation.owner_id == owner_id,
            Reservation.status == ReservationStatus.pending.value,
            Reservation.manager_confirmed == False,  # noqa: E712
            Reservation.start_time <= now,
        )
    ).all()
    for reservation in stale:
        transition(reservation, "expire")
        session.add(reservation)
    if stale:
        session.commit()
        logger.info("Expired %d stale pending reservation(s) for owner %s", len(stale), owner_id)
    return len(stale)


def get_court_by_name(session: Session, court_name: str) -> Court:
    court = session.exec(select(Court).where(Court.name == court_name)).first()
    if not court or not court.is_active:
        raise NotFoundError(f"Court '{court_name}' not found", code="COURT_NOT_FOUND")
    return court


def get_day_availability(
    session: Session,
    court_name: str,
    day: date,
    viewer: Identity,
    now: datetime,
    settings: Optional[BookingSettings] = None,
) -> List[SlotAvailability]:
    settings = settings or get_settings()
    court = get_court_by_name(session, court_name)
    expire_stale_pending(session, viewer.id, now)

    open_time, close_time, width = court_grid(court, settings)
    grid = day_grid(court.name, day, open_time, close_time, width)
    if not grid:
        return []
    day_start, day_end = grid[0].start, grid[-1].end

    reservations = session.exec(
        select(Reservation).where(
            Reservation.court_id == court.id,
            Reservation.status != ReservationStatus.cancelled.value,
            Reservation.start_time < day_end,
            Reservation.end_time > day_start,
        )
    ).all()
    blocks = session.exec(
        select(CourtBlock).where(
            CourtBlock.court_id == court.id,
            CourtBlock.start_time < day_end,
            CourtBlock.end_time > day_start,
        )
    ).all()
    return compute_availability(grid, reservations, blocks, viewer, now, settings.lead_time_hours)
