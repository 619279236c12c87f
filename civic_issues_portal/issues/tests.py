import json
import shutil
import tempfile
from io import StringIO
from unittest import mock

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError as FieldValidationError
from django.core.files.storage import default_storage
from django.core.files.uploadedfile import SimpleUploadedFile
from django.core.management import call_command
from django.db import DatabaseError
from django.test import SimpleTestCase, TestCase, override_settings
from django.test.client import BOUNDARY, MULTIPART_CONTENT, encode_multipart
from django.urls import reverse

from accounts.identity import Actor
from accounts.models import Specialization
from accounts.tokens import issue_token
from civic_portal.errors import AuthorizationError, ValidationError

from . import policy
from .engagement import EngagementLedger, identity_token
from .geo import GeoPoint, parse_location
from .lifecycle import IssueLifecycle
from .models import Issue, IssueComment, IssueLike
from .repository import IssueFilter
from .services import IssueService

User = get_user_model()

CITIZEN = Actor(id=1, role="user")
OTHER_CITIZEN = Actor(id=2, role="user")
GARBAGE_OFFICER = Actor(id=3, role="officer", specialization=Specialization.GARBAGE)
POTHOLE_OFFICER = Actor(id=4, role="officer", specialization=Specialization.POTHOLE)
ADMIN = Actor(id=5, role="admin", specialization=Specialization.OTHER)


class AccessPolicyTests(SimpleTestCase):
    def setUp(self):
        self.issue = Issue(pk=10, user_id=CITIZEN.id, specialization=Specialization.GARBAGE)

    def test_edit_rule_matches_owner_admin_or_matching_officer(self):
        actors = [None, CITIZEN, OTHER_CITIZEN, GARBAGE_OFFICER, POTHOLE_OFFICER, ADMIN]
        for actor in actors:
            expected = actor is not None and (
                actor.id == self.issue.user_id
                or actor.role == "admin"
                or (actor.role == "officer" and actor.specialization == self.issue.specialization)
            )
            with self.subTest(actor=actor):
                self.assertEqual(policy.can_edit(actor, self.issue), expected)

    def test_owner_with_user_role_cannot_change_status(self):
        self.assertTrue(policy.can_edit(CITIZEN, self.issue))
        self.assertFalse(policy.can_change_status(CITIZEN, self.issue))

    def test_status_change_needs_admin_or_matching_officer(self):
        self.assertTrue(policy.can_change_status(ADMIN, self.issue))
        self.assertTrue(policy.can_change_status(GARBAGE_OFFICER, self.issue))
        self.assertFalse(policy.can_change_status(POTHOLE_OFFICER, self.issue))
        self.assertFalse(policy.can_change_status(None, self.issue))

    def test_view_and_delete_are_owner_or_admin(self):
        for check in (policy.can_view, policy.can_delete):
            with self.subTest(check=check.__name__):
                self.assertTrue(check(CITIZEN, self.issue))
                self.assertTrue(check(ADMIN, self.issue))
                self.assertFalse(check(GARBAGE_OFFICER, self.issue))
                self.assertFalse(check(OTHER_CITIZEN, self.issue))

    def test_only_citizens_create(self):
        self.assertTrue(policy.can_create(CITIZEN))
        self.assertFalse(policy.can_create(GARBAGE_OFFICER))
        self.assertFalse(policy.can_create(ADMIN))
        self.assertFalse(policy.can_create(None))

    def test_denial_message_is_aggregate(self):
        with self.assertLogs("issues.policy", level="WARNING") as logs:
            with self.assertRaises(AuthorizationError) as ctx:
                policy.authorize(POTHOLE_OFFICER, self.issue, "change_status")
        self.assertEqual(ctx.exception.as_dict(), {"message": "Unauthorized"})
        self.assertIn("specialization=Pothole issue_specialization=Garbage", logs.output[0])

    def test_listing_scope_per_role(self):
        self.assertEqual(policy.listing_scope(None), IssueFilter(exclude_status="Resolved"))
        self.assertEqual(policy.listing_scope(ADMIN), IssueFilter())
        self.assertEqual(
            policy.listing_scope(POTHOLE_OFFICER),
            IssueFilter(specialization="Pothole", exclude_status="Resolved"),
        )
        self.assertEqual(policy.listing_scope(CITIZEN), IssueFilter(owner_id=CITIZEN.id))


class LifecycleTests(SimpleTestCase):
    def test_free_mode_allows_reverting(self):
        lifecycle = IssueLifecycle("free")
        lifecycle.check(Issue.Status.RESOLVED, Issue.Status.PENDING)
        lifecycle.check(Issue.Status.PENDING, Issue.Status.RESOLVED)

    def test_strict_mode_only_steps_forward(self):
        lifecycle = IssueLifecycle("strict")
        lifecycle.check(Issue.Status.PENDING, Issue.Status.IN_PROGRESS)
        lifecycle.check(Issue.Status.IN_PROGRESS, Issue.Status.RESOLVED)
        for current, new in [
            (Issue.Status.PENDING, Issue.Status.RESOLVED),
            (Issue.Status.RESOLVED, Issue.Status.IN_PROGRESS),
            (Issue.Status.IN_PROGRESS, Issue.Status.PENDING),
        ]:
            with self.subTest(current=current, new=new):
                with self.assertRaises(ValidationError):
                    lifecycle.check(current, new)

    def test_unknown_status_rejected_in_any_mode(self):
        with self.assertRaises(ValidationError):
            IssueLifecycle("free").check(Issue.Status.PENDING, "Closed")

    def test_apply_stamps_status_change(self):
        issue = Issue(status=Issue.Status.PENDING)
        self.assertTrue(IssueLifecycle("free").apply(issue, Issue.Status.IN_PROGRESS))
        self.assertEqual(issue.status, Issue.Status.IN_PROGRESS)
        self.assertIsNotNone(issue.last_status_updated_at)
        self.assertFalse(IssueLifecycle("free").apply(issue, Issue.Status.IN_PROGRESS))

    @override_settings(ISSUE_STATUS_TRANSITIONS="strict")
    def test_mode_defaults_to_setting(self):
        self.assertEqual(IssueLifecycle().mode, "strict")

    def test_unknown_mode(self):
        with self.assertRaises(ValueError):
            IssueLifecycle("sometimes")


class LocationParsingTests(SimpleTestCase):
    def test_accepted_shapes(self):
        expected = GeoPoint(77.5, 12.9)
        self.assertEqual(parse_location({"type": "Point", "coordinates": [77.5, 12.9]}), expected)
        self.assertEqual(parse_location({"lng": 77.5, "lat": 12.9}), expected)
        self.assertEqual(parse_location('{"type": "Point", "coordinates": [77.5, 12.9]}'), expected)

    def test_rejected_shapes(self):
        for raw in [
            {"lng": 200, "lat": 10},
            {"lng": 10, "lat": -91},
            {"type": "Point", "coordinates": [1]},
            {"type": "Polygon", "coordinates": [1, 2]},
            {"lng": "10", "lat": "20"},
            {"lng": True, "lat": 1},
            "not json",
            [1, 2],
        ]:
            with self.subTest(raw=raw):
                with self.assertRaises(FieldValidationError):
                    parse_location(raw)


class IdentityTokenTests(SimpleTestCase):
    def test_authenticated_caller_wins_over_session(self):
        self.assertEqual(identity_token(CITIZEN, "abc"), "user:1")

    def test_session_header(self):
        self.assertEqual(identity_token(None, " abc "), "session:abc")

    def test_identity_required(self):
        with self.assertRaises(ValidationError):
            identity_token(None, "")


class IssueApiTestCase(TestCase):
    def setUp(self):
        self.citizen = User.objects.create_user(
            username="citizen",
            email="citizen@example.com",
            password="StrongPass123!",
        )
        self.other_citizen = User.objects.create_user(
            username="othercitizen",
            email="other@example.com",
            password="StrongPass123!",
        )
        self.garbage_officer = User.objects.create_user(
            username="garbageofficer",
            email="garbage@example.com",
            password="StrongPass123!",
            role=User.Role.OFFICER,
            specialization=Specialization.GARBAGE,
        )
        self.pothole_officer = User.objects.create_user(
            username="potholeofficer",
            email="pothole@example.com",
            password="StrongPass123!",
            role=User.Role.OFFICER,
            specialization=Specialization.POTHOLE,
        )
        self.admin = User.objects.create_user(
            username="civicadmin",
            email="admin@example.com",
            password="StrongPass123!",
            role=User.Role.ADMIN,
            specialization=Specialization.OTHER,
        )

    def auth(self, user):
        return {"HTTP_AUTHORIZATION": f"Bearer {issue_token(user)}"}

    def create_issue(self, user=None, **kwargs):
        data = {
            "title": "Overflowing bins",
            "description": "Bins on Main Street have not been cleared for a week.",
            "specialization": Specialization.GARBAGE,
            "longitude": 77.59,
            "latitude": 12.97,
            "user": user or self.citizen,
        }
        data.update(kwargs)
        return Issue.objects.create(**data)

    def send_json(self, method, url, payload, **extra):
        return getattr(self.client, method)(url, data=json.dumps(payload), content_type="application/json", **extra)

    def detail_url(self, issue):
        return reverse("issues:issue_detail", kwargs={"pk": issue.pk})


class IssueCrudTests(IssueApiTestCase):
    def test_citizen_creates_issue(self):
        response = self.send_json(
            "post",
            reverse("issues:issue_list"),
            {
                "title": "Water leakage",
                "description": "Main pipeline leaking in sector 4.",
                "specialization": "Water Issue",
                "location": {"type": "Point", "coordinates": [77.6, 12.9]},
            },
            **self.auth(self.citizen),
        )
        self.assertEqual(response.status_code, 201)
        body = response.json()["issue"]
        self.assertEqual(body["status"], "Pending")
        self.assertEqual(body["location"], {"type": "Point", "coordinates": [77.6, 12.9]})
        self.assertEqual(body["user"], self.citizen.pk)
        self.assertEqual(body["likes"], [])

    def test_out_of_range_longitude_persists_nothing(self):
        response = self.send_json(
            "post",
            reverse("issues:issue_list"),
            {
                "title": "Bad point",
                "description": "Somewhere off the map.",
                "specialization": "Other",
                "location": {"lng": 200, "lat": 10},
            },
            **self.auth(self.citizen),
        )
        self.assertEqual(response.status_code, 400)
        self.assertIn("location", response.json()["errors"])
        self.assertFalse(Issue.objects.exists())

    def test_missing_fields_rejected(self):
        response = self.send_json("post", reverse("issues:issue_list"), {"title": "Only a title"}, **self.auth(self.citizen))
        self.assertEqual(response.status_code, 400)
        errors = response.json()["errors"]
        for field in ("description", "specialization", "location"):
            self.assertIn(field, errors)

    def test_officer_cannot_create(self):
        response = self.send_json(
            "post",
            reverse("issues:issue_list"),
            {
                "title": "Officer report",
                "description": "Officers triage, they do not report.",
                "specialization": "Garbage",
                "location": {"lng": 1, "lat": 1},
            },
            **self.auth(self.garbage_officer),
        )
        self.assertEqual(response.status_code, 403)
        self.assertFalse(Issue.objects.exists())

    def test_anonymous_cannot_create(self):
        response = self.send_json("post", reverse("issues:issue_list"), {"title": "x"})
        self.assertEqual(response.status_code, 401)

    def test_view_single_issue(self):
        issue = self.create_issue()
        self.assertEqual(self.client.get(self.detail_url(issue), **self.auth(self.citizen)).status_code, 200)
        self.assertEqual(self.client.get(self.detail_url(issue), **self.auth(self.admin)).status_code, 200)
        self.assertEqual(self.client.get(self.detail_url(issue), **self.auth(self.other_citizen)).status_code, 403)
        self.assertEqual(self.client.get(self.detail_url(issue), **self.auth(self.garbage_officer)).status_code, 403)

    def test_missing_issue_is_not_found(self):
        response = self.client.get(reverse("issues:issue_detail", kwargs={"pk": 999}), **self.auth(self.admin))
        self.assertEqual(response.status_code, 404)

    def test_owner_edits_content(self):
        issue = self.create_issue()
        response = self.send_json(
            "patch",
            self.detail_url(issue),
            {"title": "Bins overflowing onto road", "location": {"lng": 10.5, "lat": -20}},
            **self.auth(self.citizen),
        )
        self.assertEqual(response.status_code, 200)
        issue.refresh_from_db()
        self.assertEqual(issue.title, "Bins overflowing onto road")
        self.assertEqual(issue.location, GeoPoint(10.5, -20.0))
        self.assertEqual(issue.description, "Bins on Main Street have not been cleared for a week.")

    def test_owner_status_change_rejected_without_partial_write(self):
        issue = self.create_issue()
        response = self.send_json(
            "put",
            self.detail_url(issue),
            {"title": "Changed title", "status": "Resolved"},
            **self.auth(self.citizen),
        )
        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.json(), {"message": "Unauthorized"})
        issue.refresh_from_db()
        self.assertEqual(issue.title, "Overflowing bins")
        self.assertEqual(issue.status, Issue.Status.PENDING)

    def test_resubmitting_current_status_is_not_a_status_change(self):
        issue = self.create_issue()
        response = self.send_json(
            "put",
            self.detail_url(issue),
            {"title": "Changed title", "status": "Pending"},
            **self.auth(self.citizen),
        )
        self.assertEqual(response.status_code, 200)
        issue.refresh_from_db()
        self.assertEqual(issue.title, "Changed title")

    def test_officer_specialization_scenario(self):
        issue = self.create_issue(specialization=Specialization.GARBAGE)

        denied = self.send_json("put", self.detail_url(issue), {"status": "In Progress"}, **self.auth(self.pothole_officer))
        self.assertEqual(denied.status_code, 403)
        issue.refresh_from_db()
        self.assertEqual(issue.status, Issue.Status.PENDING)

        allowed = self.send_json("put", self.detail_url(issue), {"status": "In Progress"}, **self.auth(self.garbage_officer))
        self.assertEqual(allowed.status_code, 200)
        issue.refresh_from_db()
        self.assertEqual(issue.status, Issue.Status.IN_PROGRESS)
        self.assertIsNotNone(issue.last_status_updated_at)

    def test_free_mode_lets_admin_reopen(self):
        issue = self.create_issue(status=Issue.Status.RESOLVED)
        response = self.send_json("put", self.detail_url(issue), {"status": "Pending"}, **self.auth(self.admin))
        self.assertEqual(response.status_code, 200)
        issue.refresh_from_db()
        self.assertEqual(issue.status, Issue.Status.PENDING)

    @override_settings(ISSUE_STATUS_TRANSITIONS="strict")
    def test_strict_mode_rejects_skipping_and_keeps_content(self):
        issue = self.create_issue()
        response = self.send_json(
            "put",
            self.detail_url(issue),
            {"title": "Should not stick", "status": "Resolved"},
            **self.auth(self.admin),
        )
        self.assertEqual(response.status_code, 400)
        self.assertIn("status", response.json()["errors"])
        issue.refresh_from_db()
        self.assertEqual(issue.title, "Overflowing bins")
        self.assertEqual(issue.status, Issue.Status.PENDING)

    def test_blank_and_invalid_update_fields(self):
        issue = self.create_issue()
        response = self.send_json(
            "put",
            self.detail_url(issue),
            {"title": "", "specialization": "Potholes", "status": "Closed"},
            **self.auth(self.admin),
        )
        self.assertEqual(response.status_code, 400)
        errors = response.json()["errors"]
        for field in ("title", "specialization", "status"):
            self.assertIn(field, errors)

    def test_delete_rules(self):
        issue = self.create_issue()
        self.assertEqual(self.client.delete(self.detail_url(issue), **self.auth(self.garbage_officer)).status_code, 403)
        self.assertEqual(self.client.delete(self.detail_url(issue), **self.auth(self.other_citizen)).status_code, 403)
        self.assertTrue(Issue.objects.filter(pk=issue.pk).exists())
        self.assertEqual(self.client.delete(self.detail_url(issue), **self.auth(self.citizen)).status_code, 200)
        self.assertFalse(Issue.objects.filter(pk=issue.pk).exists())

    def test_admin_deletes_any_issue(self):
        issue = self.create_issue()
        self.assertEqual(self.client.delete(self.detail_url(issue), **self.auth(self.admin)).status_code, 200)
        self.assertFalse(Issue.objects.exists())


class IssueListingTests(IssueApiTestCase):
    def setUp(self):
        super().setUp()
        self.open_pothole = self.create_issue(title="Pothole open", specialization=Specialization.POTHOLE)
        self.resolved_pothole = self.create_issue(
            title="Pothole fixed",
            specialization=Specialization.POTHOLE,
            status=Issue.Status.RESOLVED,
        )
        self.open_garbage = self.create_issue(title="Garbage open", user=self.other_citizen)
        self.resolved_garbage = self.create_issue(
            title="Garbage cleared",
            user=self.other_citizen,
            status=Issue.Status.RESOLVED,
        )

    def titles(self, response):
        self.assertEqual(response.status_code, 200)
        return [item["title"] for item in response.json()]

    def test_officer_never_sees_resolved(self):
        titles = self.titles(self.client.get(reverse("issues:issue_list"), **self.auth(self.pothole_officer)))
        self.assertEqual(titles, ["Pothole open"])

    def test_admin_sees_everything_newest_first(self):
        titles = self.titles(self.client.get(reverse("issues:issue_list"), **self.auth(self.admin)))
        self.assertEqual(titles, ["Garbage cleared", "Garbage open", "Pothole fixed", "Pothole open"])

    def test_citizen_sees_own_including_resolved(self):
        titles = self.titles(self.client.get(reverse("issues:issue_list"), **self.auth(self.citizen)))
        self.assertEqual(titles, ["Pothole fixed", "Pothole open"])
        own = self.titles(self.client.get(reverse("issues:own_issue_list"), **self.auth(self.citizen)))
        self.assertEqual(own, titles)

    def test_anonymous_and_public_listing_hide_resolved(self):
        anonymous = self.titles(self.client.get(reverse("issues:issue_list")))
        public = self.titles(self.client.get(reverse("issues:public_issue_list"), **self.auth(self.admin)))
        self.assertEqual(anonymous, ["Garbage open", "Pothole open"])
        self.assertEqual(public, anonymous)

    def test_own_listing_requires_token(self):
        self.assertEqual(self.client.get(reverse("issues:own_issue_list")).status_code, 401)

    def test_query_filters_narrow_the_scope(self):
        titles = self.titles(
            self.client.get(
                reverse("issues:issue_list"),
                data={"specialization": "Garbage", "status": "Resolved"},
                **self.auth(self.admin),
            )
        )
        self.assertEqual(titles, ["Garbage cleared"])

    def test_search_matches_title_or_description(self):
        titles = self.titles(
            self.client.get(reverse("issues:issue_list"), data={"q": "pothole"}, **self.auth(self.admin))
        )
        self.assertEqual(titles, ["Pothole fixed", "Pothole open"])

    def test_summary_counts_within_scope(self):
        response = self.client.get(reverse("issues:issue_summary"), **self.auth(self.admin))
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["total"], 4)
        self.assertEqual(body["by_status"], {"Pending": 2, "In Progress": 0, "Resolved": 2})
        self.assertEqual(body["by_specialization"], {"Pothole": 2, "Garbage": 2})

        officer = self.client.get(reverse("issues:issue_summary"), **self.auth(self.pothole_officer)).json()
        self.assertEqual(officer["total"], 1)
        self.assertEqual(officer["by_status"]["Resolved"], 0)


class EngagementTests(IssueApiTestCase):
    def setUp(self):
        super().setUp()
        self.issue = self.create_issue()

    def like_url(self):
        return reverse("issues:issue_like", kwargs={"pk": self.issue.pk})

    def comments_url(self):
        return reverse("issues:issue_comments", kwargs={"pk": self.issue.pk})

    def test_like_toggle_is_idempotent_over_two_calls(self):
        first = self.client.post(self.like_url(), HTTP_X_SESSION_ID="visitor-1")
        self.assertEqual(first.json(), {"likes": ["session:visitor-1"], "liked": True})
        second = self.client.post(self.like_url(), HTTP_X_SESSION_ID="visitor-1")
        self.assertEqual(second.json(), {"likes": [], "liked": False})

    def test_likes_from_different_identities(self):
        self.client.post(self.like_url(), HTTP_X_SESSION_ID="visitor-1")
        response = self.client.post(self.like_url(), **self.auth(self.other_citizen))
        self.assertEqual(response.json()["likes"], ["session:visitor-1", f"user:{self.other_citizen.pk}"])

    def test_like_without_identity_rejected(self):
        response = self.client.post(self.like_url())
        self.assertEqual(response.status_code, 400)
        self.assertFalse(self.issue.likes.exists())

    def test_like_missing_issue(self):
        response = self.client.post(reverse("issues:issue_like", kwargs={"pk": 999}), HTTP_X_SESSION_ID="v")
        self.assertEqual(response.status_code, 404)

    def test_ledger_toggle_directly(self):
        ledger = EngagementLedger()
        self.assertEqual(ledger.toggle_like(self.issue.pk, "session:a"), ["session:a"])
        self.assertEqual(ledger.toggle_like(self.issue.pk, "session:a"), [])

    def test_anonymous_empty_comment_rejected(self):
        response = self.send_json("post", self.comments_url(), {"content": "   "}, HTTP_X_SESSION_ID="visitor-1")
        self.assertEqual(response.status_code, 400)
        self.assertFalse(IssueComment.objects.exists())

    def test_comment_body_with_undecodable_bytes_rejected(self):
        response = self.client.post(
            self.comments_url(),
            data=b'{"content": "\xff\xfe"}',
            content_type="application/json",
            HTTP_X_SESSION_ID="visitor-1",
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "Request body is not valid JSON")
        self.assertFalse(IssueComment.objects.exists())

    def test_anonymous_comment_appended_and_listed(self):
        response = self.send_json(
            "post",
            self.comments_url(),
            {"content": "  Saw this too.  "},
            HTTP_X_SESSION_ID="visitor-1",
        )
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()["content"], "Saw this too.")
        comment = IssueComment.objects.get()
        self.assertEqual(comment.author, "session:visitor-1")
        self.assertIsNone(comment.user)

        self.send_json("post", self.comments_url(), {"content": "Still there."}, **self.auth(self.citizen))
        listed = self.client.get(self.comments_url()).json()
        self.assertEqual([item["content"] for item in listed], ["Saw this too.", "Still there."])
        self.assertEqual(listed[1]["author"], {"username": "Anonymous"})
        self.assertEqual(IssueComment.objects.get(content="Still there.").user, self.citizen)

    def test_comment_count_in_listing(self):
        self.send_json("post", self.comments_url(), {"content": "One"}, HTTP_X_SESSION_ID="a")
        listing = self.client.get(reverse("issues:issue_list"), **self.auth(self.admin)).json()
        self.assertEqual(listing[0]["comment_count"], 1)


class IssueServiceTests(IssueApiTestCase):
    def test_service_takes_actor_explicitly(self):
        service = IssueService()
        issue = self.create_issue()
        with self.assertRaises(AuthorizationError):
            service.update(Actor.from_user(self.pothole_officer), issue.pk, {"status": "Resolved"})
        updated = service.update(Actor.from_user(self.garbage_officer), issue.pk, {"status": "Resolved"})
        self.assertEqual(updated.status, Issue.Status.RESOLVED)


class PersistenceFailureTests(IssueApiTestCase):
    def setUp(self):
        super().setUp()
        self.issue = self.create_issue()

    def test_failed_save_returns_server_error_without_partial_write(self):
        with mock.patch.object(Issue, "save", side_effect=DatabaseError("disk full")):
            with self.assertLogs("issues.repository", level="ERROR"):
                response = self.send_json(
                    "put",
                    self.detail_url(self.issue),
                    {"title": "Renamed", "status": "Resolved"},
                    **self.auth(self.admin),
                )
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json(), {"message": "Server error"})
        self.issue.refresh_from_db()
        self.assertEqual(self.issue.title, "Overflowing bins")
        self.assertEqual(self.issue.status, Issue.Status.PENDING)

    def test_failed_like_returns_server_error(self):
        like_url = reverse("issues:issue_like", kwargs={"pk": self.issue.pk})
        with mock.patch.object(IssueLike, "save", side_effect=DatabaseError("disk full")):
            with self.assertLogs("issues.engagement", level="ERROR"):
                response = self.client.post(like_url, HTTP_X_SESSION_ID="visitor-1")
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json(), {"message": "Server error"})
        self.assertFalse(self.issue.likes.exists())


class PhotoUploadTests(IssueApiTestCase):
    def setUp(self):
        super().setUp()
        self.media_root = tempfile.mkdtemp()
        self.media_override = override_settings(MEDIA_ROOT=self.media_root)
        self.media_override.enable()

    def tearDown(self):
        self.media_override.disable()
        shutil.rmtree(self.media_root, ignore_errors=True)

    def post_multipart(self, photo):
        return self.client.post(
            reverse("issues:issue_list"),
            data={
                "title": "Broken signal",
                "description": "Traffic light stuck on red.",
                "specialization": "Traffic",
                "location": json.dumps({"type": "Point", "coordinates": [72.87, 19.07]}),
                "photo": photo,
            },
            **self.auth(self.citizen),
        )

    def test_photo_upload(self):
        response = self.post_multipart(SimpleUploadedFile("signal.png", b"\x89PNG fake", content_type="image/png"))
        self.assertEqual(response.status_code, 201)
        issue = Issue.objects.get()
        self.assertTrue(issue.photo.name.startswith("issue_photos/"))
        self.assertTrue(response.json()["issue"]["photo"].endswith(".png"))

    def test_replacing_photo_removes_previous_file(self):
        self.post_multipart(SimpleUploadedFile("old.png", b"\x89PNG old", content_type="image/png"))
        issue = Issue.objects.get()
        old_name = issue.photo.name
        self.assertTrue(default_storage.exists(old_name))

        with self.captureOnCommitCallbacks(execute=True):
            response = self.client.put(
                self.detail_url(issue),
                data=encode_multipart(
                    BOUNDARY,
                    {"photo": SimpleUploadedFile("new.jpg", b"jpeg bytes", content_type="image/jpeg")},
                ),
                content_type=MULTIPART_CONTENT,
                **self.auth(self.citizen),
            )
        self.assertEqual(response.status_code, 200)
        issue.refresh_from_db()
        self.assertNotEqual(issue.photo.name, old_name)
        self.assertTrue(issue.photo.name.endswith(".jpg"))
        self.assertTrue(default_storage.exists(issue.photo.name))
        self.assertFalse(default_storage.exists(old_name))

    def test_update_without_photo_keeps_file(self):
        self.post_multipart(SimpleUploadedFile("keep.png", b"\x89PNG keep", content_type="image/png"))
        issue = Issue.objects.get()
        with self.captureOnCommitCallbacks(execute=True):
            response = self.send_json("put", self.detail_url(issue), {"title": "Signal still broken"}, **self.auth(self.citizen))
        self.assertEqual(response.status_code, 200)
        self.assertTrue(default_storage.exists(issue.photo.name))

    def test_deleting_issue_removes_photo(self):
        self.post_multipart(SimpleUploadedFile("gone.png", b"\x89PNG gone", content_type="image/png"))
        issue = Issue.objects.get()
        photo_name = issue.photo.name
        with self.captureOnCommitCallbacks(execute=True):
            response = self.client.delete(self.detail_url(issue), **self.auth(self.citizen))
        self.assertEqual(response.status_code, 200)
        self.assertFalse(Issue.objects.exists())
        self.assertFalse(default_storage.exists(photo_name))

    def test_invalid_photo_extension_rejected(self):
        response = self.post_multipart(SimpleUploadedFile("malware.exe", b"test", content_type="application/octet-stream"))
        self.assertEqual(response.status_code, 400)
        self.assertIn("photo", response.json()["errors"])
        self.assertFalse(Issue.objects.exists())


class SeedDataTests(TestCase):
    def test_seed_creates_superuser_admin_and_is_repeatable(self):
        call_command("seed_data", stdout=StringIO())
        call_command("seed_data", stdout=StringIO())

        admin_user = User.objects.get(username="civic_admin")
        self.assertTrue(admin_user.is_staff)
        self.assertTrue(admin_user.is_superuser)
        self.assertEqual(admin_user.role, User.Role.ADMIN)
        self.assertEqual(Issue.objects.count(), 3)
