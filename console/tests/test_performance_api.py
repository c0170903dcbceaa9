"""Performance dashboard endpoint tests."""

from __future__ import annotations

from django.core.cache import cache
from rest_framework.test import APIClient, APITestCase

from accounts.models import User
from console.models import ActivityAction, ActivityLog
from core import metrics


class PerformanceAPITests(APITestCase):

    def setUp(self):
        self.admin = User.objects.create_user(username="admin", password="pass12345", is_admin=True)
        self.client = APIClient()
        self.client.force_login(self.admin)

    def test_dashboard(self):
        r = self.client.get("/api/performance/")
        self.assertEqual(r.status_code, 200, r.content)
        body = r.json()
        self.assertEqual(set(body), {"cache", "database", "requests", "recent_requests", "system"})
        self.assertEqual(body["cache"]["status"], "connected")
        self.assertEqual(body["database"]["tables"]["users"], 1)

    def test_cache_and_database(self):
        self.assertEqual(self.client.get("/api/performance/cache/").json()["backend"], "LocMemCache")
        db = self.client.get("/api/performance/database/").json()
        self.assertEqual(db["status"], "connected")
        self.assertEqual(db["vendor"], "sqlite")

    def test_metrics_lists_recorded_requests(self):
        self.client.get("/api/auth/me/")
        self.client.get("/api/auth/me/")
        r = self.client.get("/api/performance/metrics/", {"limit": 1})
        body = r.json()
        self.assertTrue(body["enabled"])
        self.assertEqual(body["summary"]["count"], 2)
        self.assertEqual(len(body["requests"]), 1)
        self.assertEqual(body["requests"][0]["path"], "/api/auth/me/")

    def test_clear_cache(self):
        cache.set("some-key", "value")
        self.client.get("/api/auth/me/")
        r = self.client.post("/api/performance/cache/clear/")
        self.assertEqual(r.status_code, 200)
        self.assertIsNone(cache.get("some-key"))
        entry = ActivityLog.objects.get(action=ActivityAction.CLEANUP)
        self.assertEqual(entry.properties, {"resource": "cache"})
        # Only the clear request itself has been sampled since.
        self.assertEqual([e["path"] for e in metrics.recent_requests()], ["/api/performance/cache/clear/"])

    def test_non_admin_is_forbidden(self):
        plain = User.objects.create_user(username="plain", password="pass12345")
        client = APIClient()
        client.force_login(plain)
        self.assertEqual(client.get("/api/performance/").status_code, 403)
