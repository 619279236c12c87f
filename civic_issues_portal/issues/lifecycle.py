import logging

from django.conf import settings
from django.utils import timezone

from civic_portal.errors import ValidationError

from .models import Issue

logger = logging.getLogger(__name__)

FREE = "free"
STRICT = "strict"

STATUS_ORDER = (
    Issue.Status.PENDING,
    Issue.Status.IN_PROGRESS,
    Issue.Status.RESOLVED,
)

STRICT_TRANSITIONS = {
    Issue.Status.PENDING: {Issue.Status.PENDING, Issue.Status.IN_PROGRESS},
    Issue.Status.IN_PROGRESS: {Issue.Status.IN_PROGRESS, Issue.Status.RESOLVED},
    Issue.Status.RESOLVED: {Issue.Status.RESOLVED},
}


class IssueLifecycle:
    """
    Status state machine for issues.

    In ``free`` mode any of the three statuses may be set from any other,
    which lets staff correct mistakes. ``strict`` mode only allows
    staying put or a single forward step.
    """

    def __init__(self, mode=None):
        mode = (mode or settings.ISSUE_STATUS_TRANSITIONS or FREE).lower()
        if mode not in (FREE, STRICT):
            raise ValueError(f"Unknown status transition mode: {mode!r}")
        self.mode = mode

    def allowed_next(self, current):
        if self.mode == FREE:
            return set(STATUS_ORDER)
        return STRICT_TRANSITIONS.get(current, {current})

    def check(self, current, new):
        if new not in Issue.Status.values:
            raise ValidationError.for_field("status", f"Unknown status {new!r}.")
        if new not in self.allowed_next(current):
            raise ValidationError.for_field("status", "Invalid status transition.")

    def apply(self, issue: Issue, new) -> bool:
        """Sets the new status on ``issue`` (unsaved). Returns whether it changed."""
        self.check(issue.status, new)
        if new == issue.status:
            return False
        logger.info("Issue %s status %s -> %s", issue.pk, issue.status, new)
        issue.status = new
        issue.last_status_updated_at = timezone.now()
        return True
