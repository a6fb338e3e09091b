import logging
from datetime import date, datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel, ConfigDict, field_validator
from sqlmodel import Session, select

from academy.database import get_session
from academy.dependencies import get_current_identity
from academy.models.competition import Competition, CompetitionFormat, CompetitionPhase
from academy.services.capacity_gate import (
    cancel_competition,
    enroll,
    get_competition_or_404,
    list_enrollments,
    resize_competition,
    withdraw,
)
from academy.services.delegation import Identity, require_operator

logger = logging.getLogger(__name__)

router = APIRouter()


class CompetitionCreate(BaseModel):
    name: str
    max_participants: int
    format: CompetitionFormat
    starts_on: Optional[date] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if not v or not v.strip():
            raise ValueError("name is required")
        return v.strip()

    @field_validator("max_participants")
    @classmethod
    def validate_max_participants(cls, v):
        if v < 1:
            raise ValueError("max_participants must be >= 1")
        return v


class CompetitionUpdate(BaseModel):
    name: Optional[str] = None
    max_participants: Optional[int] = None
    phase: Optional[CompetitionPhase] = None
    format: Optional[CompetitionFormat] = None
    starts_on: Optional[date] = None

    @field_validator("max_participants")
    @classmethod
    def validate_max_participants(cls, v):
        if v is not None and v < 1:
            raise ValueError("max_participants must be >= 1")
        return v


class CompetitionResponse(BaseModel):
    id: int
    name: str
    max_participants: int
    enrolled_count: int
    phase: CompetitionPhase
    format: CompetitionFormat
    starts_on: Optional[date]
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class EnrollmentCreate(BaseModel):
    profile_id: Optional[str] = None


class EnrollmentResponse(BaseModel):
    id: int
    competition_id: int
    profile_id: str
    enrolled_by: Optional[str]
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


@router.get("/competitions", response_model=List[CompetitionResponse])
def list_competitions(phase: Optional[CompetitionPhase] = None, session: Session = Depends(get_session)):
    query = select(Competition)
    if phase:
        query = query.where(Competition.phase == phase.value)
    return session.exec(query.order_by(Competition.created_at)).all()


@router.post("/competitions", response_model=CompetitionResponse, status_code=201)
def create_competition(
    competition_data: CompetitionCreate,
    session: Session = Depends(get_session),
    identity: Identity = Depends(get_current_identity),
):
    require_operator(identity, "create competitions")
    competition = Competition(**competition_data.model_dump(), created_by=identity.id)
    session.add(competition)
    session.commit()
    session.refresh(competition)
    logger.info("Competition %s created by %s (max %d)", competition.id, identity.id, competition.max_participants)
    return competition


@router.get("/competitions/{competition_id}", response_model=CompetitionResponse)
def get_competition(competition_id: int, session: Session = Depends(get_session)):
    return get_competition_or_404(session, competition_id)


@router.put("/competitions/{competition_id}", response_model=CompetitionResponse)
def update_competition(
    competition_id: int,
    competition_data: CompetitionUpdate,
    session: Session = Depends(get_session),
    identity: Identity = Depends(get_current_identity),
):
    """Update a competition; capacity changes go through the conditional resize"""
    require_operator(identity, "update competitions")
    update_data = competition_data.model_dump(exclude_unset=True)
    max_participants = update_data.pop("max_participants", None)
    if max_participants is not None:
        resize_competition(session, identity, competition_id, max_participants)

    competition = get_competition_or_404(session, competition_id)
    for field, value in update_data.items():
        setattr(competition, field, value)
    competition.updated_at = datetime.utcnow()
    session.add(competition)
    session.commit()
    session.refresh(competition)
    return competition


@router.delete("/competitions/{competition_id}", status_code=204)
def delete_competition(
    competition_id: int,
    session: Session = Depends(get_session),
    identity: Identity = Depends(get_current_identity),
):
    """Cancel a competition and drop all its enrollments"""
    cancel_competition(session, identity, competition_id)
    return Response(status_code=204)


@router.get("/competitions/{competition_id}/enrollments", response_model=List[EnrollmentResponse])
def get_enrollments(
    competition_id: int,
    session: Session = Depends(get_session),
    identity: Identity = Depends(get_current_identity),
):
    return list_enrollments(session, competition_id)


@router.post("/competitions/{competition_id}/enrollments", response_model=EnrollmentResponse, status_code=201)
def create_enrollment(
    competition_id: int,
    payload: EnrollmentCreate,
    session: Session = Depends(get_session),
    identity: Identity = Depends(get_current_identity),
):
    """Enroll yourself, or someone you may act for, in a competition"""
    return enroll(session, competition_id, payload.profile_id or identity.id, identity)


@router.delete("/competitions/{competition_id}/enrollments/{profile_id}")
def delete_enrollment_by_profile(
    competition_id: int,
    profile_id: str,
    session: Session = Depends(get_session),
    identity: Identity = Depends(get_current_identity),
):
    withdraw(session, identity, competition_id=competition_id, profile_id=profile_id)
    return {"success": True}


@router.delete("/enrollments/{enrollment_id}")
def delete_enrollment(
    enrollment_id: int,
    session: Session = Depends(get_session),
    identity: Identity = Depends(get_current_identity),
):
    withdraw(session, identity, enrollment_id=enrollment_id)
    return {"success": True}
