import json
from datetime import datetime, timedelta, timezone
from unittest import mock

import jwt
from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import DatabaseError
from django.test import TestCase
from django.urls import reverse

from civic_portal.errors import AuthenticationError

from .identity import Actor, resolve_actor
from .models import Specialization
from .tokens import decode_token, issue_token

User = get_user_model()


class AccountApiTests(TestCase):
    def setUp(self):
        self.user = User.objects.create_user(
            username="citizen",
            email="citizen@example.com",
            password="StrongPass123!",
        )

    def post_json(self, url, payload, **extra):
        return self.client.post(url, data=json.dumps(payload), content_type="application/json", **extra)

    def test_register_citizen_returns_token_and_clears_specialization(self):
        response = self.post_json(
            reverse("accounts:register"),
            {
                "username": "newcitizen",
                "email": "NewCitizen@Example.com",
                "password": "ComplexPass123!",
                "specialization": "Pothole",
            },
        )
        self.assertEqual(response.status_code, 201)
        body = response.json()
        self.assertEqual(body["user"]["role"], "user")
        self.assertEqual(body["user"]["specialization"], "")
        self.assertEqual(body["user"]["email"], "newcitizen@example.com")
        self.assertEqual(decode_token(body["token"])["sub"], str(body["user"]["id"]))
        self.assertTrue(User.objects.get(username="newcitizen").check_password("ComplexPass123!"))

    def test_register_officer_requires_specialization(self):
        response = self.post_json(
            reverse("accounts:register"),
            {
                "username": "officer",
                "email": "officer@example.com",
                "password": "ComplexPass123!",
                "role": "officer",
            },
        )
        self.assertEqual(response.status_code, 400)
        self.assertIn("specialization", response.json()["errors"])
        self.assertFalse(User.objects.filter(username="officer").exists())

    def test_register_officer_with_specialization(self):
        response = self.post_json(
            reverse("accounts:register"),
            {
                "username": "officer",
                "email": "officer@example.com",
                "password": "ComplexPass123!",
                "role": "officer",
                "specialization": Specialization.GARBAGE,
            },
        )
        self.assertEqual(response.status_code, 201)
        officer = User.objects.get(username="officer")
        self.assertEqual(officer.role, User.Role.OFFICER)
        self.assertEqual(officer.specialization, Specialization.GARBAGE)

    def test_register_rejects_duplicate_email_and_short_password(self):
        response = self.post_json(
            reverse("accounts:register"),
            {"username": "another", "email": "CITIZEN@example.com", "password": "abc"},
        )
        self.assertEqual(response.status_code, 400)
        errors = response.json()["errors"]
        self.assertIn("email", errors)
        self.assertIn("password", errors)

    def test_login_with_email(self):
        response = self.post_json(
            reverse("accounts:login"),
            {"email": "citizen@example.com", "password": "StrongPass123!"},
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["user"]["username"], "citizen")

    def test_login_failures_share_one_message(self):
        wrong_password = self.post_json(
            reverse("accounts:login"),
            {"email": "citizen@example.com", "password": "nope-nope"},
        )
        unknown_email = self.post_json(
            reverse("accounts:login"),
            {"email": "ghost@example.com", "password": "StrongPass123!"},
        )
        self.assertEqual(wrong_password.status_code, 400)
        self.assertEqual(wrong_password.json(), unknown_email.json())
        self.assertEqual(wrong_password.json()["message"], "Invalid credentials")

    def test_me_requires_token(self):
        response = self.client.get(reverse("accounts:me"))
        self.assertEqual(response.status_code, 401)

    def test_me_returns_current_user(self):
        response = self.client.get(
            reverse("accounts:me"),
            HTTP_AUTHORIZATION=f"Bearer {issue_token(self.user)}",
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["email"], "citizen@example.com")

    def test_garbage_token_is_rejected(self):
        response = self.client.get(reverse("accounts:me"), HTTP_AUTHORIZATION="Bearer not-a-token")
        self.assertEqual(response.status_code, 401)


class IdentityResolutionTests(TestCase):
    def setUp(self):
        self.user = User.objects.create_user(
            username="officer",
            email="officer@example.com",
            password="StrongPass123!",
            role=User.Role.OFFICER,
            specialization=Specialization.POTHOLE,
        )

    def test_no_header_resolves_to_anonymous(self):
        self.assertIsNone(resolve_actor(None))
        self.assertIsNone(resolve_actor(""))

    def test_role_comes_from_stored_user_not_token(self):
        token = issue_token(self.user)
        self.user.role = User.Role.USER
        self.user.specialization = ""
        self.user.save()

        actor = resolve_actor(f"Bearer {token}")
        self.assertEqual(actor, Actor(id=self.user.pk, role="user", specialization=""))

    def test_forged_role_claim_is_ignored(self):
        now = datetime.now(timezone.utc)
        token = jwt.encode(
            {"sub": str(self.user.pk), "role": "admin", "iat": now, "exp": now + timedelta(minutes=5)},
            settings.JWT_SECRET,
            algorithm=settings.JWT_ALGORITHM,
        )
        self.assertEqual(resolve_actor(f"Bearer {token}").role, User.Role.OFFICER)

    def test_expired_token(self):
        now = datetime.now(timezone.utc)
        token = jwt.encode(
            {"sub": str(self.user.pk), "iat": now - timedelta(days=2), "exp": now - timedelta(days=1)},
            settings.JWT_SECRET,
            algorithm=settings.JWT_ALGORITHM,
        )
        with self.assertRaises(AuthenticationError):
            resolve_actor(f"Bearer {token}")

    def test_inactive_user_is_rejected(self):
        token = issue_token(self.user)
        self.user.is_active = False
        self.user.save()
        with self.assertRaises(AuthenticationError):
            resolve_actor(f"Bearer {token}")

    def test_non_bearer_scheme_is_rejected(self):
        with self.assertRaises(AuthenticationError):
            resolve_actor(f"Basic {issue_token(self.user)}")

    def test_user_lookup_failure_is_a_json_server_error(self):
        token = issue_token(self.user)
        with mock.patch.object(User.objects, "filter", side_effect=DatabaseError("connection lost")):
            with self.assertLogs("accounts.identity", level="ERROR"):
                response = self.client.get(reverse("accounts:me"), HTTP_AUTHORIZATION=f"Bearer {token}")
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json(), {"message": "Server error"})
