"""
Who may do what to an issue.

Every check is a pure function of the resolved ``Actor`` (or ``None``
for an anonymous caller) and the issue as currently stored. Nothing here
touches the request or the database.

=============  ===========================================================
Operation      Permitted when
=============  ===========================================================
create         actor is a plain user
view           actor owns the issue, or is an admin
edit           owner, admin, or officer of the issue's specialization
change_status  admin, or officer of the issue's specialization
delete         owner or admin
=============  ===========================================================
"""

import logging
from typing import Optional

from accounts.identity import Actor
from accounts.models import User
from civic_portal.errors import AuthorizationError

from .models import Issue
from .repository import IssueFilter

logger = logging.getLogger(__name__)


def is_owner(actor: Optional[Actor], issue: Issue) -> bool:
    return actor is not None and issue.user_id == actor.id


def is_assigned_officer(actor: Optional[Actor], issue: Issue) -> bool:
    return actor is not None and actor.is_officer and actor.specialization == issue.specialization


def can_create(actor: Optional[Actor]) -> bool:
    return actor is not None and actor.role == User.Role.USER


def can_view(actor: Optional[Actor], issue: Issue) -> bool:
    return is_owner(actor, issue) or (actor is not None and actor.is_admin)


def can_edit(actor: Optional[Actor], issue: Issue) -> bool:
    return can_view(actor, issue) or is_assigned_officer(actor, issue)


def can_change_status(actor: Optional[Actor], issue: Issue) -> bool:
    return (actor is not None and actor.is_admin) or is_assigned_officer(actor, issue)


def can_delete(actor: Optional[Actor], issue: Issue) -> bool:
    return is_owner(actor, issue) or (actor is not None and actor.is_admin)


RULES = {
    "view": can_view,
    "edit": can_edit,
    "change_status": can_change_status,
    "delete": can_delete,
}


def authorize(actor: Optional[Actor], issue: Issue, operation: str) -> None:
    if RULES[operation](actor, issue):
        return
    logger.warning(
        "Denied %s on issue %s: actor=%s role=%s specialization=%s issue_specialization=%s owner=%s",
        operation,
        issue.pk,
        getattr(actor, "id", None),
        getattr(actor, "role", None),
        getattr(actor, "specialization", None),
        issue.specialization,
        issue.user_id,
    )
    raise AuthorizationError()


def authorize_create(actor: Optional[Actor]) -> None:
    if not can_create(actor):
        logger.warning("Denied create: actor=%s role=%s", getattr(actor, "id", None), getattr(actor, "role", None))
        raise AuthorizationError("Only citizens can report issues")


def listing_scope(actor: Optional[Actor]) -> IssueFilter:
    """
    The slice of issues a caller sees in a bulk listing.

    Resolved issues drop out of officer and public listings but stay
    visible to their owner and to admins.
    """
    if actor is None:
        return IssueFilter(exclude_status=Issue.Status.RESOLVED)
    if actor.is_admin:
        return IssueFilter()
    if actor.is_officer:
        return IssueFilter(
            specialization=actor.specialization,
            exclude_status=Issue.Status.RESOLVED,
        )
    return IssueFilter(owner_id=actor.id)
