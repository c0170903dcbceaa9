"""
Session auth endpoints, exercised with CSRF enforcement switched on.

- csrf: 204, cookie set, token echoed in `X-CSRFToken`; mounted under /api/v1/ too.
- login: username or email; non-active accounts look like bad credentials;
  success writes a `login` activity entry; throttled under `auth-login`.
- logout: 204 with or without a session; `logout` entry only for a real session.
- me: 403 without a session.
"""

from __future__ import annotations

from unittest.mock import patch

from django.test import TestCase
from rest_framework.test import APIClient
from rest_framework.throttling import ScopedRateThrottle

from accounts.models import User, UserStatus
from console.models import ActivityAction, ActivityLog

PASSWORD = "pass12345"


def csrf_client() -> APIClient:
    """Client that must present a CSRF token, like the SPA."""
    client = APIClient(enforce_csrf_checks=True)
    resp = client.get("/api/auth/csrf/")
    client.credentials(HTTP_X_CSRFTOKEN=resp.headers["X-CSRFToken"])
    return client


def refresh_csrf(client: APIClient) -> None:
    resp = client.get("/api/auth/csrf/")
    client.credentials(HTTP_X_CSRFTOKEN=resp.headers["X-CSRFToken"])


class AuthEndpointTests(TestCase):

    def setUp(self):
        self.alice = User.objects.create_user(
            username="alice",
            email="a@example.com",
            password=PASSWORD,
            first_name="Alice",
            last_name="Liddell",
            is_admin=True,
        )
        self.client = csrf_client()

    def sign_in(self, username="alice", password=PASSWORD):
        return self.client.post("/api/auth/login/", {"username": username, "password": password})

    def test_csrf_endpoint_primes_cookie(self):
        client = APIClient()
        for url in ("/api/auth/csrf/", "/api/v1/auth/csrf/"):
            resp = client.get(url)
            self.assertEqual(resp.status_code, 204)
            self.assertTrue(resp.headers.get("X-CSRFToken"))
        self.assertIn("csrftoken", client.cookies)

    def test_wrong_password(self):
        resp = self.sign_in(password="wrong")
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json(), {"detail": "Invalid username or password.", "code": "invalid_credentials"})
        self.assertFalse(ActivityLog.objects.exists())

    def test_session_round_trip(self):
        resp = self.sign_in()
        self.assertEqual(resp.status_code, 200, resp.content)
        body = resp.json()
        self.assertEqual(body["username"], "alice")
        self.assertEqual(body["full_name"], "Alice Liddell")
        self.assertEqual(body["status"], "active")
        self.assertTrue(body["is_admin"])
        entry = ActivityLog.objects.get(action=ActivityAction.LOGIN)
        self.assertEqual((entry.user, entry.object_id), (self.alice, self.alice.pk))

        self.assertEqual(self.client.get("/api/auth/me/").json()["email"], "a@example.com")

        # csrftoken is rotated on login
        refresh_csrf(self.client)
        self.assertEqual(self.client.post("/api/auth/logout/").status_code, 204)
        self.assertEqual(ActivityLog.objects.filter(action=ActivityAction.LOGOUT, user=self.alice).count(), 1)
        self.assertEqual(self.client.get("/api/auth/me/").status_code, 403)

    def test_email_is_accepted_case_insensitively(self):
        resp = self.sign_in(username="A@Example.com")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["id"], self.alice.pk)

    def test_only_active_accounts_sign_in(self):
        for state in (UserStatus.SUSPENDED, UserStatus.PENDING, UserStatus.INACTIVE):
            User.objects.filter(pk=self.alice.pk).update(status=state)
            resp = self.sign_in()
            self.assertEqual(resp.status_code, 400, state)
            self.assertEqual(resp.json()["code"], "invalid_credentials")
        self.assertFalse(ActivityLog.objects.exists())

    def test_logout_without_session(self):
        self.assertEqual(self.client.post("/api/auth/logout/").status_code, 204)
        self.assertFalse(ActivityLog.objects.exists())

    def test_me_requires_session(self):
        self.assertEqual(APIClient().get("/api/auth/me/").status_code, 403)

    def test_login_attempts_are_throttled(self):
        with patch.dict(ScopedRateThrottle.THROTTLE_RATES, {"auth-login": "2/min"}):
            codes = [self.sign_in(password="bad").status_code for _ in range(3)]
        self.assertEqual(codes, [400, 400, 429])
