"""
Reservation lifecycle: the only place that knows which (status, manager_confirmed)
pairs are legal and how actions move between them.

status and manager_confirmed are stored as two columns. The availability
engine reads the flag and the writer reads the status, so both must always be
set together from this table.
"""
from datetime import datetime
from typing import Dict, FrozenSet, Tuple, Union

from academy.errors import InvalidTransitionError
from academy.models.reservation import INSTRUCTOR_KINDS, Reservation, ReservationKind, ReservationStatus

State = Tuple[ReservationStatus, bool]

PENDING: State = (ReservationStatus.pending, False)
BOOKED: State = (ReservationStatus.confirmed, False)
CONFIRMED: State = (ReservationStatus.confirmed, True)
CANCEL_REQUESTED: State = (ReservationStatus.cancellation_requested, True)
CANCELLED: State = (ReservationStatus.cancelled, False)

VALID_STATES: FrozenSet[State] = frozenset({PENDING, BOOKED, CONFIRMED, CANCEL_REQUESTED, CANCELLED})

# Statuses that hold the court for the no-double-booking invariant
BLOCKING_STATUSES: FrozenSet[ReservationStatus] = frozenset(
    {
        ReservationStatus.pending,
        ReservationStatus.confirmed,
        ReservationStatus.cancellation_requested,
    }
)

TRANSITIONS: Dict[str, Dict[State, State]] = {
    "confirm": {PENDING: CONFIRMED, BOOKED: CONFIRMED},
    "reject": {PENDING: CANCELLED, BOOKED: CANCELLED},
    "cancel": {PENDING: CANCELLED, BOOKED: CANCELLED, CONFIRMED: CANCELLED, CANCEL_REQUESTED: CANCELLED},
    "request_cancellation": {CONFIRMED: CANCEL_REQUESTED},
    "approve_cancellation": {CANCEL_REQUESTED: CANCELLED},
    "deny_cancellation": {CANCEL_REQUESTED: CONFIRMED},
    "expire": {PENDING: CANCELLED},
}

OPERATOR_ACTIONS: FrozenSet[str] = frozenset({"confirm", "reject", "approve_cancellation", "deny_cancellation"})


def state_of(reservation: Reservation) -> State:
    return ReservationStatus(reservation.status), bool(reservation.manager_confirmed)


def initial_state(kind: Union[ReservationKind, str], created_by_operator: bool) -> State:
    if created_by_operator:
        return CONFIRMED
    if ReservationKind(kind) in INSTRUCTOR_KINDS:
        return PENDING
    return BOOKED


def is_blocking(reservation: Reservation) -> bool:
    return ReservationStatus(reservation.status) in BLOCKING_STATUSES


def apply_state(reservation: Reservation, state: State) -> None:
    if state not in VALID_STATES:
        raise ValueError(f"Invalid reservation state {state!r}")
    reservation.status, reservation.manager_confirmed = state
    reservation.updated_at = datetime.utcnow()


def transition(reservation: Reservation, action: str) -> State:
    """Move reservation along `action`; raise InvalidTransitionError when not allowed from its state."""
    if action not in TRANSITIONS:
        raise ValueError(f"Unknown reservation action '{action}'")
    current = state_of(reservation)
    target = TRANSITIONS[action].get(current)
    if target is None:
        raise InvalidTransitionError(action, current[0].value, current[1])
    apply_state(reservation, target)
    return target
