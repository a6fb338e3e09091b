"""
Authorization Delegation Resolver.

One rule set decides whether an acting identity may book, enroll or withdraw
on behalf of a target identity:

1. Self-service is always allowed.
2. Operators and administrators may act for anyone.
3. Instructors may act only for participants.
4. Everyone else is denied.

Routers and services must call this module instead of comparing roles inline.
"""
import logging
from dataclasses import dataclass
from typing import Optional, Union

from academy.errors import AuthorizationError
from academy.models.profile import OPERATOR_ROLES, Role

logger = logging.getLogger(__name__)

REASON_INSTRUCTOR_SCOPE = "can only act for participants"
REASON_FORBIDDEN = "forbidden"


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: Optional[str] = None


@dataclass(frozen=True)
class Identity:
    """An authenticated principal: the profile id and its role."""

    id: str
    role: Role

    @property
    def is_operator(self) -> bool:
        return _as_role(self.role) in OPERATOR_ROLES


def _as_role(value: Union[Role, str]) -> Role:
    return value if isinstance(value, Role) else Role(value)


def can_act_for(acting_id: str, acting_role: Role, target_id: str, target_role: Role) -> Decision:
    if acting_id == target_id:
        return Decision(True)
    acting_role = _as_role(acting_role)
    if acting_role in OPERATOR_ROLES:
        return Decision(True)
    if acting_role == Role.instructor:
        if _as_role(target_role) == Role.participant:
            return Decision(True)
        return Decision(False, REASON_INSTRUCTOR_SCOPE)
    return Decision(False, REASON_FORBIDDEN)


def require_can_act_for(actor: Identity, target: Identity, action: str) -> None:
    """Raise AuthorizationError (and log the denial) unless actor may act for target."""
    decision = can_act_for(actor.id, actor.role, target.id, target.role)
    if decision.allowed:
        return
    logger.warning(
        "Delegation denied: actor=%s role=%s target=%s target_role=%s action=%s reason=%s",
        actor.id,
        _as_role(actor.role).value,
        target.id,
        _as_role(target.role).value,
        action,
        decision.reason,
    )
    raise AuthorizationError(
        message=f"Not allowed to {action} for this user: {decision.reason}",
        code="DELEGATION_DENIED",
        details={"action": action, "reason": decision.reason},
    )


def require_operator(actor: Identity, action: str) -> None:
    if actor.is_operator:
        return
    logger.warning("Operator action denied: actor=%s role=%s action=%s", actor.id, _as_role(actor.role).value, action)
    raise AuthorizationError(
        message=f"Only operators can {action}",
        code="OPERATOR_REQUIRED",
        details={"action": action},
    )
