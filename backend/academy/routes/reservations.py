from datetime import date, datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict, field_validator, model_validator
from sqlmodel import Session

from academy.config import to_local_naive
from academy.database import get_session
from academy.dependencies import get_current_identity, get_now
from academy.models.reservation import ReservationKind, ReservationStatus
from academy.services.availability import expire_stale_pending, get_day_availability
from academy.services.delegation import Identity, require_can_act_for
from academy.services.reservation_writer import (
    ReservationRequest,
    apply_action,
    as_identity,
    create_reservations,
    get_profile_or_404,
    get_reservation_or_404,
    list_reservations,
)

router = APIRouter()


class Interval(BaseModel):
    start_time: datetime
    end_time: datetime

    @field_validator("start_time", "end_time")
    @classmethod
    def normalize_timezone(cls, v):
        return to_local_naive(v)


class ReservationCreate(Interval):
    court: str
    owner_id: Optional[str] = None
    instructor_id: Optional[str] = None
    kind: ReservationKind = ReservationKind.court
    notes: Optional[str] = None

    @field_validator("court")
    @classmethod
    def validate_court(cls, v):
        if not v or not v.strip():
            raise ValueError("court is required")
        return v.strip()


class ReservationBatchCreate(BaseModel):
    court: str
    owner_id: Optional[str] = None
    instructor_id: Optional[str] = None
    kind: ReservationKind = ReservationKind.court
    notes: Optional[str] = None
    slots: List[Interval]

    @model_validator(mode="after")
    def validate_slots(self):
        if not self.slots:
            raise ValueError("slots must contain at least one interval")
        return self


class ReservationResponse(BaseModel):
    id: int
    court_id: int
    owner_id: str
    instructor_id: Optional[str]
    kind: ReservationKind
    start_time: datetime
    end_time: datetime
    status: ReservationStatus
    manager_confirmed: bool
    notes: Optional[str]
    created_by: Optional[str]
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ReservationBatchResponse(BaseModel):
    reservations: List[ReservationResponse]
    count: int


class SlotResponse(BaseModel):
    slot_start: datetime
    slot_end: datetime
    state: str
    bookable: bool


@router.post("/reservations", response_model=ReservationResponse, status_code=201)
def create_reservation(
    payload: ReservationCreate,
    session: Session = Depends(get_session),
    identity: Identity = Depends(get_current_identity),
    now: datetime = Depends(get_now),
):
    """Book one interval on a court (for yourself or, with delegation, for someone else)"""
    created = create_reservations(
        session,
        identity,
        payload.court,
        payload.owner_id or identity.id,
        [ReservationRequest(payload.start_time, payload.end_time)],
        kind=payload.kind,
        instructor_id=payload.instructor_id,
        notes=payload.notes,
        now=now,
    )
    return created[0]


@router.post("/reservations/batch", response_model=ReservationBatchResponse, status_code=201)
def create_reservation_batch(
    payload: ReservationBatchCreate,
    session: Session = Depends(get_session),
    identity: Identity = Depends(get_current_identity),
    now: datetime = Depends(get_now),
):
    """Book consecutive slots on one court: all of them or none"""
    created = create_reservations(
        session,
        identity,
        payload.court,
        payload.owner_id or identity.id,
        [ReservationRequest(s.start_time, s.end_time) for s in payload.slots],
        kind=payload.kind,
        instructor_id=payload.instructor_id,
        notes=payload.notes,
        now=now,
    )
    return ReservationBatchResponse(
        reservations=[ReservationResponse.model_validate(r) for r in created],
        count=len(created),
    )


@router.get("/reservations", response_model=List[ReservationResponse])
def get_reservations(
    owner_id: Optional[str] = None,
    from_time: Optional[datetime] = Query(default=None, alias="from"),
    days: Optional[int] = Query(default=None, ge=1, le=366),
    session: Session = Depends(get_session),
    identity: Identity = Depends(get_current_identity),
    now: datetime = Depends(get_now),
):
    """List a user's reservations; stale pending ones are expired first"""
    target_id = owner_id or identity.id
    if target_id != identity.id:
        owner = get_profile_or_404(session, target_id, label="Owner")
        require_can_act_for(identity, as_identity(owner), "view reservations")
    expire_stale_pending(session, target_id, now)
    start = to_local_naive(from_time) if from_time else None
    return list_reservations(session, target_id, start=start, days=days)


@router.get("/reservations/{reservation_id}", response_model=ReservationResponse)
def get_reservation(
    reservation_id: int,
    session: Session = Depends(get_session),
    identity: Identity = Depends(get_current_identity),
):
    reservation = get_reservation_or_404(session, reservation_id)
    if reservation.owner_id != identity.id:
        owner = get_profile_or_404(session, reservation.owner_id, label="Owner")
        require_can_act_for(identity, as_identity(owner), "view reservations")
    return reservation


def _action_endpoint(action: str):
    def endpoint(
        reservation_id: int,
        session: Session = Depends(get_session),
        identity: Identity = Depends(get_current_identity),
        now: datetime = Depends(get_now),
    ):
        return apply_action(session, identity, reservation_id, action, now=now)

    endpoint.__name__ = f"{action}_reservation"
    endpoint.__doc__ = f"Reservation lifecycle action: {action.replace('_', ' ')}"
    return endpoint


for _action in (
    "confirm",
    "reject",
    "cancel",
    "request_cancellation",
    "approve_cancellation",
    "deny_cancellation",
):
    router.add_api_route(
        f"/reservations/{{reservation_id}}/{_action.replace('_', '-')}",
        _action_endpoint(_action),
        methods=["POST"],
        response_model=ReservationResponse,
    )


@router.get("/courts/{court_name}/availability", response_model=List[SlotResponse])
def get_availability(
    court_name: str,
    day: date,
    session: Session = Depends(get_session),
    identity: Identity = Depends(get_current_identity),
    now: datetime = Depends(get_now),
):
    """Slot grid of one court for one day, relative to the caller"""
    slots = get_day_availability(session, court_name, day, identity, now)
    return [
        SlotResponse(slot_start=s.slot.start, slot_end=s.slot.end, state=s.state.value, bookable=s.bookable)
        for s in slots
    ]
