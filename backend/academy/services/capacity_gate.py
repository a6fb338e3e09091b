"""
Capacity Gate: tournament enrollment and withdrawal.

A seat is claimed with one conditional write:

    UPDATE competition SET enrolled_count = enrolled_count + 1
    WHERE id = :id AND enrolled_count < max_participants

Zero affected rows means the competition is full. The Enrollment row is
inserted in the same transaction; the (competition_id, profile_id) unique
constraint rejects duplicates and the rollback releases the claimed seat.
Capacity is a hard limit for every role.
"""
import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from academy.errors import (
    CapacityExceededError,
    ConflictError,
    DuplicateEnrollmentError,
    NotFoundError,
)
from academy.models.competition import Competition, CompetitionPhase
from academy.models.enrollment import Enrollment
from academy.services.delegation import Identity, require_can_act_for, require_operator
from academy.services.reservation_writer import as_identity, get_profile_or_404

logger = logging.getLogger(__name__)


def get_competition_or_404(session: Session, competition_id: int) -> Competition:
    competition = session.get(Competition, competition_id)
    if not competition:
        raise NotFoundError("Competition not found", code="COMPETITION_NOT_FOUND")
    return competition


def _require_open(competition: Competition) -> None:
    if CompetitionPhase(competition.phase) != CompetitionPhase.enrollment_open:
        raise ConflictError(
            "Enrollment is closed for this competition",
            code="ENROLLMENT_CLOSED",
            details={"phase": CompetitionPhase(competition.phase).value},
        )


def enroll(session: Session, competition_id: int, target_id: str, actor: Identity) -> Enrollment:
    target = get_profile_or_404(session, target_id, label="Participant")
    require_can_act_for(actor, as_identity(target), "enroll")

    competition = get_competition_or_404(session, competition_id)
    _require_open(competition)
    max_participants = competition.max_participants

    try:
        claimed = session.execute(
            update(Competition)
            .where(
                Competition.id == competition_id,
                Competition.enrolled_count < Competition.max_participants,
            )
            .values(enrolled_count=Competition.enrolled_count + 1, updated_at=datetime.utcnow())
            .execution_options(synchronize_session=False)
        )
        if claimed.rowcount == 0:
            session.rollback()
            logger.info("Competition %s full: rejected enrollment of %s by %s", competition_id, target_id, actor.id)
            raise CapacityExceededError(competition_id, max_participants)

        enrollment = Enrollment(competition_id=competition_id, profile_id=target_id, enrolled_by=actor.id)
        session.add(enrollment)
        session.commit()
    except IntegrityError:
        session.rollback()
        logger.info("Duplicate enrollment of %s in competition %s", target_id, competition_id)
        raise DuplicateEnrollmentError(competition_id, target_id)
    except CapacityExceededError:
        raise
    except Exception:
        session.rollback()
        raise

    session.refresh(enrollment)
    logger.info("Enrolled %s in competition %s (by %s)", target_id, competition_id, actor.id)
    return enrollment


def _find_enrollment(
    session: Session,
    competition_id: Optional[int],
    profile_id: Optional[str],
    enrollment_id: Optional[int],
) -> Enrollment:
    if enrollment_id is not None:
        enrollment = session.get(Enrollment, enrollment_id)
    else:
        enrollment = session.exec(
            select(Enrollment).where(
                Enrollment.competition_id == competition_id,
                Enrollment.profile_id == profile_id,
            )
        ).first()
    if not enrollment:
        raise NotFoundError("Enrollment not found", code="ENROLLMENT_NOT_FOUND")
    return enrollment


def withdraw(
    session: Session,
    actor: Identity,
    competition_id: Optional[int] = None,
    profile_id: Optional[str] = None,
    enrollment_id: Optional[int] = None,
) -> None:
    """Remove an enrollment, addressed either by id or by (competition, profile)."""
    enrollment = _find_enrollment(session, competition_id, profile_id, enrollment_id)
    target = get_profile_or_404(session, enrollment.profile_id, label="Participant")
    require_can_act_for(actor, as_identity(target), "withdraw")

    competition = get_competition_or_404(session, enrollment.competition_id)
    if not actor.is_operator:
        _require_open(competition)

    try:
        session.delete(enrollment)
        session.execute(
            update(Competition)
            .where(Competition.id == competition.id, Competition.enrolled_count > 0)
            .values(enrolled_count=Competition.enrolled_count - 1, updated_at=datetime.utcnow())
            .execution_options(synchronize_session=False)
        )
        session.commit()
    except Exception:
        session.rollback()
        raise
    logger.info("Withdrew %s from competition %s (by %s)", target.id, competition.id, actor.id)


def list_enrollments(session: Session, competition_id: int) -> List[Enrollment]:
    get_competition_or_404(session, competition_id)
    return list(
        session.exec(
            select(Enrollment).where(Enrollment.competition_id == competition_id).order_by(Enrollment.created_at)
        ).all()
    )


def resize_competition(session: Session, actor: Identity, competition_id: int, max_participants: int) -> Competition:
    """Change the seat cap; it can never drop below the seats already taken."""
    require_operator(actor, "change competition capacity")
    get_competition_or_404(session, competition_id)
    resized = session.execute(
        update(Competition)
        .where(Competition.id == competition_id, Competition.enrolled_count <= max_participants)
        .values(max_participants=max_participants, updated_at=datetime.utcnow())
        .execution_options(synchronize_session=False)
    )
    if resized.rowcount == 0:
        session.rollback()
        raise ConflictError(
            "max_participants cannot be lower than the current enrollment count",
            code="CAPACITY_BELOW_ENROLLED",
        )
    session.commit()
    competition = session.get(Competition, competition_id)
    session.refresh(competition)
    return competition


def cancel_competition(session: Session, actor: Identity, competition_id: int) -> int:
    """Delete a competition and all its enrollments; returns the number of enrollments removed."""
    require_operator(actor, "cancel competitions")
    competition = get_competition_or_404(session, competition_id)
    enrollments = session.exec(select(Enrollment).where(Enrollment.competition_id == competition_id)).all()
    try:
        for enrollment in enrollments:
            session.delete(enrollment)
        session.flush()
        session.delete(competition)
        session.commit()
    except Exception:
        session.rollback()
        raise
    logger.info("Cancelled competition %s, removed %d enrollment(s)", competition_id, len(enrollments))
    return len(enrollments)
