from academy.models.competition import Competition, CompetitionFormat, CompetitionPhase
from academy.models.court import Court
from academy.models.court_block import CourtBlock
from academy.models.enrollment import Enrollment
from academy.models.profile import OPERATOR_ROLES, Profile, Role
from academy.models.reservation import INSTRUCTOR_KINDS, Reservation, ReservationKind, ReservationStatus

__all__ = [
    "Competition",
    "CompetitionFormat",
    "CompetitionPhase",
    "Court",
    "CourtBlock",
    "Enrollment",
    "Profile",
    "Role",
    "OPERATOR_ROLES",
    "Reservation",
    "ReservationKind",
    "ReservationStatus",
    "INSTRUCTOR_KINDS",
]
