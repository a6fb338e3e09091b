"""
Request-scoped dependencies: the caller's identity and the academy clock.

Tokens are issued by the external identity provider as HS256 JWTs whose
`sub` is the profile id; the role always comes from the Profile table, never
from the token.
"""
import logging
from datetime import datetime
from typing import Optional

import jwt
from fastapi import Depends, Header
from sqlmodel import Session

from academy.config import get_settings, local_now
from academy.database import get_session
from academy.errors import AuthenticationError
from academy.models.profile import Profile, Role
from academy.services.delegation import Identity

logger = logging.getLogger(__name__)


def get_now() -> datetime:
    return local_now()


def _bearer_token(authorization: Optional[str]) -> str:
    if not authorization:
        raise AuthenticationError("Missing bearer token", code="NOT_AUTHENTICATED")
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise AuthenticationError("Malformed authorization header", code="NOT_AUTHENTICATED")
    return token.strip()


def get_current_identity(
    authorization: Optional[str] = Header(default=None),
    session: Session = Depends(get_session),
) -> Identity:
    settings = get_settings()
    token = _bearer_token(authorization)
    try:
        claims = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except jwt.PyJWTError as exc:
        logger.warning("Rejected bearer token: %s", exc)
        raise AuthenticationError("Invalid or expired token", code="INVALID_TOKEN")

    subject = claims.get("sub")
    profile = session.get(Profile, subject) if subject else None
    if not profile:
        logger.warning("Token subject %r has no profile", subject)
        raise AuthenticationError("Unknown user", code="UNKNOWN_IDENTITY")
    return Identity(id=profile.id, role=Role(profile.role))
