import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from django.db import DatabaseError, transaction
from django.db.models import Count, Q

from civic_portal.errors import NotFoundError, PersistenceError

from .models import Issue

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IssueFilter:
    owner_id: Optional[int] = None
    specialization: Optional[str] = None
    exclude_status: Optional[str] = None

    def apply(self, queryset):
        if self.owner_id is not None:
            queryset = queryset.filter(user_id=self.owner_id)
        if self.specialization is not None:
            queryset = queryset.filter(specialization=self.specialization)
        if self.exclude_status is not None:
            queryset = queryset.exclude(status=self.exclude_status)
        return queryset


def apply_issue_filters(queryset, params):
    query = params.get("q", "").strip()
    specialization = params.get("specialization", "").strip()
    status = params.get("status", "").strip()
    start_date = params.get("start_date", "").strip()
    end_date = params.get("end_date", "").strip()

    if query:
        queryset = queryset.filter(Q(title__icontains=query) | Q(description__icontains=query))
    if specialization:
        queryset = queryset.filter(specialization=specialization)
    if status:
        queryset = queryset.filter(status=status)

    if start_date:
        try:
            start_dt = datetime.strptime(start_date, "%Y-%m-%d").date()
            queryset = queryset.filter(created_at__date__gte=start_dt)
        except ValueError:
            pass
    if end_date:
        try:
            end_dt = datetime.strptime(end_date, "%Y-%m-%d").date()
            queryset = queryset.filter(created_at__date__lte=end_dt)
        except ValueError:
            pass
    return queryset


class IssueRepository:
    """CRUD and query surface over stored issues. Listings are newest first."""

    def _scoped(self, issue_filter: IssueFilter, params=None):
        queryset = issue_filter.apply(Issue.objects.all())
        if params:
            queryset = apply_issue_filters(queryset, params)
        return queryset

    def create(self, draft: Issue) -> Issue:
        try:
            draft.save(force_insert=True)
            return draft
        except DatabaseError as exc:
            logger.exception("Could not create issue")
            raise PersistenceError() from exc

    def find_by_id(self, issue_id, for_update=False) -> Issue:
        queryset = Issue.objects.select_related("user")
        if for_update:
            queryset = queryset.select_for_update()
        try:
            return queryset.get(pk=issue_id)
        except (Issue.DoesNotExist, ValueError, TypeError) as exc:
            raise NotFoundError("Issue not found") from exc
        except DatabaseError as exc:
            logger.exception("Could not load issue %s", issue_id)
            raise PersistenceError() from exc

    def query(self, issue_filter: IssueFilter, params=None) -> list:
        try:
            return list(
                self._scoped(issue_filter, params)
                .select_related("user")
                .prefetch_related("likes")
                .annotate(comment_total=Count("comments"))
                .order_by("-created_at", "-id")
            )
        except DatabaseError as exc:
            logger.exception("Issue query failed for %s", issue_filter)
            raise PersistenceError() from exc

    def summary(self, issue_filter: IssueFilter, params=None) -> dict:
        queryset = self._scoped(issue_filter, params)
        try:
            by_status = dict(queryset.order_by().values_list("status").annotate(total=Count("id")))
            by_specialization = dict(queryset.order_by().values_list("specialization").annotate(total=Count("id")))
        except DatabaseError as exc:
            logger.exception("Issue summary failed for %s", issue_filter)
            raise PersistenceError() from exc
        return {
            "total": sum(by_status.values()),
            "by_status": {status: by_status.get(status, 0) for status in Issue.Status.values},
            "by_specialization": by_specialization,
        }

    def save(self, issue: Issue) -> Issue:
        try:
            issue.save()
        except DatabaseError as exc:
            logger.exception("Could not save issue %s", issue.pk)
            raise PersistenceError() from exc
        return issue

    def delete(self, issue: Issue) -> None:
        photo_name, storage = issue.photo.name, issue.photo.storage
        try:
            issue.delete()
        except DatabaseError as exc:
            logger.exception("Could not delete issue %s", issue.pk)
            raise PersistenceError() from exc
        if photo_name:
            self.discard_photo(storage, photo_name)

    def discard_photo(self, storage, photo_name) -> None:
        """Removes a stored photo once the surrounding transaction commits."""
        transaction.on_commit(lambda: storage.delete(photo_name))
