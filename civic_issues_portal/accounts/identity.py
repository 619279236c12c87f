"""
Resolution of a bearer credential into the identity value the issue
policy works with.

Only the user id is read from the token. Role and specialization are
loaded from the stored user on every request, so a token minted before
a role change, or a client that sends its own role, cannot widen what
the caller may do.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from django.contrib.auth import get_user_model
from django.db import DatabaseError

from civic_portal.errors import AuthenticationError, PersistenceError

from .tokens import decode_token

logger = logging.getLogger(__name__)

User = get_user_model()


@dataclass(frozen=True)
class Actor:
    id: int
    role: str
    specialization: str = ""

    @classmethod
    def from_user(cls, user) -> "Actor":
        return cls(id=user.pk, role=user.role, specialization=user.specialization or "")

    @property
    def is_admin(self) -> bool:
        return self.role == User.Role.ADMIN

    @property
    def is_officer(self) -> bool:
        return self.role == User.Role.OFFICER

    @property
    def identity_token(self) -> str:
        return f"user:{self.id}"


def parse_bearer(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise AuthenticationError("Not authorized, malformed authorization header")
    return token.strip()


def resolve_user(authorization: Optional[str]):
    token = parse_bearer(authorization)
    if token is None:
        return None
    claims = decode_token(token)
    try:
        user_id = int(claims["sub"])
    except (TypeError, ValueError) as exc:
        raise AuthenticationError("Invalid token: subject is not a user id") from exc

    try:
        user = User.objects.filter(pk=user_id, is_active=True).first()
    except DatabaseError as exc:
        logger.exception("Could not load token subject %s", user_id)
        raise PersistenceError() from exc
    if user is None:
        logger.warning("Token subject %s does not resolve to an active user", user_id)
        raise AuthenticationError("Not authorized, user not found")
    return user


def resolve_actor(authorization: Optional[str]) -> Optional[Actor]:
    """
    Returns ``None`` when no credential was presented; raises
    ``AuthenticationError`` when one was presented but is unusable.
    """
    user = resolve_user(authorization)
    if user is None:
        return None
    return Actor.from_user(user)
