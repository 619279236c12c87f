"""
Likes and comments on issues.

Both operations only need an identity, never a permission check. The
identity is ``user:<id>`` for a caller with a valid bearer token and
``session:<token>`` for an anonymous caller sending ``X-Session-Id``.
"""

import logging
from typing import Optional

from django.db import DatabaseError, IntegrityError, transaction

from accounts.identity import Actor
from civic_portal.errors import PersistenceError, ValidationError

from .forms import CommentForm
from .models import IssueComment, IssueLike
from .repository import IssueRepository

logger = logging.getLogger(__name__)

MAX_SESSION_TOKEN_LENGTH = 200


def identity_token(actor: Optional[Actor], session_id: Optional[str]) -> str:
    if actor is not None:
        return actor.identity_token
    session_id = (session_id or "").strip()
    if not session_id:
        raise ValidationError.for_field("identity", "A bearer token or X-Session-Id header is required.")
    if len(session_id) > MAX_SESSION_TOKEN_LENGTH:
        raise ValidationError.for_field("identity", "X-Session-Id is too long.")
    return f"session:{session_id}"


class EngagementLedger:
    def __init__(self, repository=None):
        self.repository = repository or IssueRepository()

    def toggle_like(self, issue_id, identity: str) -> list:
        """Adds ``identity`` to the issue's likers, or removes it if present."""
        try:
            with transaction.atomic():
                issue = self.repository.find_by_id(issue_id, for_update=True)
                removed, _ = IssueLike.objects.filter(issue=issue, liker=identity).delete()
                if not removed:
                    IssueLike.objects.create(issue=issue, liker=identity)
        except IntegrityError as exc:
            logger.warning("Concurrent like on issue %s by %s", issue_id, identity)
            raise PersistenceError() from exc
        except DatabaseError as exc:
            logger.exception("Could not toggle like on issue %s", issue_id)
            raise PersistenceError() from exc
        return issue.liker_tokens()

    def add_comment(self, issue_id, identity: str, data, actor: Optional[Actor] = None) -> IssueComment:
        form = CommentForm(data)
        if not form.is_valid():
            raise ValidationError.from_form(form)
        issue = self.repository.find_by_id(issue_id)

        comment = form.save(commit=False)
        comment.issue = issue
        comment.author = identity
        comment.user_id = actor.id if actor is not None else None
        try:
            comment.save()
        except DatabaseError as exc:
            logger.exception("Could not add comment on issue %s", issue_id)
            raise PersistenceError() from exc
        logger.info("Comment %s added to issue %s by %s", comment.pk, issue.pk, identity)
        return comment

    def comments(self, issue_id) -> list:
        issue = self.repository.find_by_id(issue_id)
        return list(issue.comments.all())
