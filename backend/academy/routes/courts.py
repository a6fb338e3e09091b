import logging
from datetime import datetime, time
from typing import List, Optional

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel, ConfigDict, field_validator, model_validator
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from academy.config import get_settings, to_local_naive
from academy.database import get_session
from academy.dependencies import get_current_identity
from academy.errors import ConflictError, NotFoundError, ValidationError
from academy.models.court import Court
from academy.models.court_block import CourtBlock
from academy.models.reservation import Reservation
from academy.services.delegation import Identity, require_operator
from academy.services.reservation_states import BLOCKING_STATUSES
from academy.services.reservation_writer import lock_court
from academy.services.time_slot import TimeSlot

logger = logging.getLogger(__name__)

router = APIRouter()

ALLOWED_SLOT_MINUTES = [30, 60, 90, 120]


class CourtCreate(BaseModel):
    name: str
    display_order: int = 0
    is_active: bool = True
    slot_minutes: Optional[int] = None
    open_time: Optional[time] = None
    close_time: Optional[time] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if not v or not v.strip():
            raise ValueError("name is required")
        return v.strip()

    @field_validator("slot_minutes")
    @classmethod
    def validate_slot_minutes(cls, v):
        if v is not None and v not in ALLOWED_SLOT_MINUTES:
            raise ValueError(f"slot_minutes must be one of {ALLOWED_SLOT_MINUTES}")
        return v

    @model_validator(mode="after")
    def validate_window(self):
        if self.open_time and self.close_time and self.close_time <= self.open_time:
            raise ValueError("close_time must be greater than open_time")
        return self


class CourtUpdate(BaseModel):
    display_order: Optional[int] = None
    is_active: Optional[bool] = None
    slot_minutes: Optional[int] = None
    open_time: Optional[time] = None
    close_time: Optional[time] = None

    @field_validator("slot_minutes")
    @classmethod
    def validate_slot_minutes(cls, v):
        if v is not None and v not in ALLOWED_SLOT_MINUTES:
            raise ValueError(f"slot_minutes must be one of {ALLOWED_SLOT_MINUTES}")
        return v


class CourtResponse(BaseModel):
    id: int
    name: str
    display_order: int
    is_active: bool
    slot_minutes: Optional[int]
    open_time: Optional[time]
    close_time: Optional[time]

    model_config = ConfigDict(from_attributes=True)


class CourtBlockCreate(BaseModel):
    start_time: datetime
    end_time: datetime
    reason: Optional[str] = None

    @field_validator("start_time", "end_time")
    @classmethod
    def normalize_timezone(cls, v):
        return to_local_naive(v)

    @model_validator(mode="after")
    def validate_times(self):
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be greater than start_time")
        return self


class CourtBlockResponse(BaseModel):
    id: int
    court_id: int
    start_time: datetime
    end_time: datetime
    reason: str
    created_by: Optional[str]
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


def _get_court_or_404(session: Session, court_id: int) -> Court:
    court = session.get(Court, court_id)
    if not court:
        raise NotFoundError("Court not found", code="COURT_NOT_FOUND")
    return court


@router.get("/courts", response_model=List[CourtResponse])
def list_courts(include_inactive: bool = False, session: Session = Depends(get_session)):
    """List courts in display order"""
    query = select(Court)
    if not include_inactive:
        query = query.where(Court.is_active == True)  # noqa: E712
    return session.exec(query.order_by(Court.display_order, Court.name)).all()


@router.post("/courts", response_model=CourtResponse, status_code=201)
def create_court(
    court_data: CourtCreate,
    session: Session = Depends(get_session),
    identity: Identity = Depends(get_current_identity),
):
    require_operator(identity, "manage courts")
    court = Court(**court_data.model_dump())
    session.add(court)
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        raise ConflictError(f"Court '{court_data.name}' already exists", code="DUPLICATE_COURT")
    session.refresh(court)
    return court


@router.put("/courts/{court_id}", response_model=CourtResponse)
def update_court(
    court_id: int,
    court_data: CourtUpdate,
    session: Session = Depends(get_session),
    identity: Identity = Depends(get_current_identity),
):
    require_operator(identity, "manage courts")
    court = _get_court_or_404(session, court_id)
    update_data = court_data.model_dump(exclude_unset=True)

    # The window that will apply after the update, academy defaults filling the gaps
    settings = get_settings()
    open_time = update_data.get("open_time", court.open_time) or settings.open_time
    close_time = update_data.get("close_time", court.close_time) or settings.close_time
    if close_time <= open_time:
        raise ValidationError(
            f"close_time ({close_time:%H:%M}) must be after open_time ({open_time:%H:%M})",
            code="INVALID_OPENING_HOURS",
            details={"open_time": open_time.isoformat(), "close_time": close_time.isoformat()},
        )

    for field, value in update_data.items():
        setattr(court, field, value)
    session.add(court)
    session.commit()
    session.refresh(court)
    return court


@router.get("/courts/{court_id}/blocks", response_model=List[CourtBlockResponse])
def list_court_blocks(
    court_id: int,
    from_time: Optional[datetime] = None,
    to_time: Optional[datetime] = None,
    session: Session = Depends(get_session),
    identity: Identity = Depends(get_current_identity),
):
    _get_court_or_404(session, court_id)
    query = select(CourtBlock).where(CourtBlock.court_id == court_id)
    if from_time:
        query = query.where(CourtBlock.end_time > to_local_naive(from_time))
    if to_time:
        query = query.where(CourtBlock.start_time < to_local_naive(to_time))
    return session.exec(query.order_by(CourtBlock.start_time)).all()


@router.post("/courts/{court_id}/blocks", response_model=CourtBlockResponse, status_code=201)
def create_court_block(
    court_id: int,
    block_data: CourtBlockCreate,
    session: Session = Depends(get_session),
    identity: Identity = Depends(get_current_identity),
):
    """Close a court window for ordinary bookings; existing reservations must be cancelled first"""
    require_operator(identity, "block courts")
    court = _get_court_or_404(session, court_id)
    window = TimeSlot(court.name, block_data.start_time, block_data.end_time)
    lock_court(session, court_id)

    existing = session.exec(
        select(Reservation).where(
            Reservation.court_id == court_id,
            Reservation.status.in_([s.value for s in BLOCKING_STATUSES]),
            Reservation.start_time < window.end,
            Reservation.end_time > window.start,
        )
    ).all()
    overlapping = [r.id for r in existing if window.overlaps(TimeSlot(court.name, r.start_time, r.end_time))]
    if overlapping:
        session.rollback()
        raise ConflictError(
            "Reservations exist in this window. Cancel them before blocking the court.",
            code="BLOCK_OVER_RESERVATIONS",
            details={"conflicting_reservations": overlapping},
        )

    block = CourtBlock(
        court_id=court_id,
        start_time=window.start,
        end_time=window.end,
        reason=block_data.reason or "Manual block",
        created_by=identity.id,
    )
    session.add(block)
    session.commit()
    session.refresh(block)
    logger.info("Court %s blocked %s-%s by %s", court.name, window.start, window.end, identity.id)
    return block


@router.delete("/court-blocks/{block_id}", status_code=204)
def delete_court_block(
    block_id: int,
    session: Session = Depends(get_session),
    identity: Identity = Depends(get_current_identity),
):
    require_operator(identity, "block courts")
    block = session.get(CourtBlock, block_id)
    if not block:
        raise NotFoundError("Court block not found", code="COURT_BLOCK_NOT_FOUND")
    session.delete(block)
    session.commit()
    return Response(status_code=204)
