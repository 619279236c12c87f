"""
Issue operations as the API performs them.

Each mutating call follows the same order: validate the payload, load
the issue, check every permission the payload needs, check the status
transition, and only then assign fields and save, all inside one
transaction. A request that fails any check leaves the stored issue
untouched.
"""

import logging
from typing import Optional

from django.db import transaction

from accounts.identity import Actor
from civic_portal.errors import ValidationError

from . import policy
from .forms import IssueForm, IssueUpdateForm
from .lifecycle import IssueLifecycle
from .models import Issue
from .repository import IssueFilter, IssueRepository

logger = logging.getLogger(__name__)


class IssueService:
    def __init__(self, repository=None, lifecycle=None):
        self.repository = repository or IssueRepository()
        self.lifecycle = lifecycle or IssueLifecycle()

    def create(self, actor: Optional[Actor], data, files=None) -> Issue:
        form = IssueForm(data, files)
        if not form.is_valid():
            raise ValidationError.from_form(form)
        policy.authorize_create(actor)

        draft = form.save(commit=False)
        draft.location = form.cleaned_data["location"]
        draft.user_id = actor.id
        issue = self.repository.create(draft)
        logger.info("Issue %s reported by user %s in %s", issue.pk, actor.id, issue.specialization)
        return issue

    def get(self, actor: Optional[Actor], issue_id) -> Issue:
        issue = self.repository.find_by_id(issue_id)
        policy.authorize(actor, issue, "view")
        return issue

    def update(self, actor: Optional[Actor], issue_id, data, files=None) -> Issue:
        form = IssueUpdateForm(data, files)
        if not form.is_valid():
            raise ValidationError.from_form(form)
        changes = form.content_changes()
        new_status = form.requested_status()

        with transaction.atomic():
            issue = self.repository.find_by_id(issue_id, for_update=True)
            policy.authorize(actor, issue, "edit")
            status_changing = new_status is not None and new_status != issue.status
            if status_changing:
                policy.authorize(actor, issue, "change_status")
                self.lifecycle.check(issue.status, new_status)

            replaced_photo = issue.photo.name if "photo" in changes else ""
            for name, value in changes.items():
                setattr(issue, name, value)
            if status_changing:
                self.lifecycle.apply(issue, new_status)
            issue = self.repository.save(issue)
            if replaced_photo and replaced_photo != issue.photo.name:
                self.repository.discard_photo(issue.photo.storage, replaced_photo)

        updated_fields = sorted(changes) + (["status"] if status_changing else [])
        logger.info("Issue %s updated by user %s: %s", issue.pk, actor.id, updated_fields)
        return issue

    def delete(self, actor: Optional[Actor], issue_id) -> None:
        with transaction.atomic():
            issue = self.repository.find_by_id(issue_id, for_update=True)
            policy.authorize(actor, issue, "delete")
            self.repository.delete(issue)
        logger.info("Issue %s deleted by user %s", issue_id, actor.id)

    def list_for(self, actor: Optional[Actor], params=None) -> list:
        return self.repository.query(policy.listing_scope(actor), params)

    def list_public(self, params=None) -> list:
        return self.repository.query(policy.listing_scope(None), params)

    def list_own(self, actor: Actor, params=None) -> list:
        return self.repository.query(IssueFilter(owner_id=actor.id), params)

    def summary_for(self, actor: Optional[Actor], params=None) -> dict:
        return self.repository.summary(policy.listing_scope(actor), params)
