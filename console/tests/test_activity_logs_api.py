"""
Activity log API tests.

What these tests verify
-----------------------
- Listing defaults to the last 30 days when no date bounds are sent; explicit
  bounds override the window. Filters: user_id, action, subject_type.
- Stats default to the last 7 days; inverted ranges are rejected.
- Recent entries and per-user timelines, newest first, with a capped limit.
- Cleanup enforces 30..365 days and records its own `cleanup` entry.
- Export writes the CSV and its own `exported` entry.
"""

from __future__ import annotations

from datetime import timedelta

from django.utils import timezone
from rest_framework.test import APIClient, APITestCase

from accounts.models import User
from console.models import ActivityAction, ActivityLog
from console.services.activity_log import ActivityLogService
from geography.models import Country


class ActivityLogAPITests(APITestCase):

    def setUp(self):
        self.admin = User.objects.create_user(username="admin", password="pass12345", is_admin=True)
        self.other = User.objects.create_user(username="other", password="pass12345")
        self.client = APIClient()
        self.client.force_login(self.admin)
        self.now = timezone.now()
        self.country = Country.objects.create(name="Kenya", code="KE", created_at=self.now, updated_at=self.now)

    def log(self, actor, action, days_ago=0, subject=None, **metadata):
        service = ActivityLogService(now=self.now - timedelta(days=days_ago))
        return service.record(actor, action, metadata, subject=subject)

    def test_list_defaults_to_last_30_days(self):
        recent = self.log(self.admin, ActivityAction.CREATED, days_ago=2, subject=self.country)
        self.log(self.admin, ActivityAction.UPDATED, days_ago=45)
        r = self.client.get("/api/activity-logs/")
        self.assertEqual(r.status_code, 200, r.content)
        body = r.json()
        self.assertEqual([e["id"] for e in body["results"]], [recent.id])
        today = timezone.localdate(self.now)
        self.assertEqual(body["filters"]["start_date"], (today - timedelta(days=30)).isoformat())
        self.assertEqual(body["filters"]["end_date"], today.isoformat())
        entry = body["results"][0]
        self.assertEqual(entry["user_name"], "admin")
        self.assertEqual(entry["subject_type"], "geography.country")
        self.assertEqual(entry["object_id"], self.country.pk)

    def test_explicit_bounds_override_window(self):
        self.log(self.admin, ActivityAction.CREATED, days_ago=2)
        old = self.log(self.admin, ActivityAction.UPDATED, days_ago=45)
        start = (timezone.localdate(self.now) - timedelta(days=60)).isoformat()
        r = self.client.get("/api/activity-logs/", {"start_date": start})
        self.assertEqual(r.json()["count"], 2)
        self.assertIn(old.id, [e["id"] for e in r.json()["results"]])

    def test_filters(self):
        self.log(self.admin, ActivityAction.CREATED, subject=self.country)
        self.log(self.other, ActivityAction.LOGIN, subject=self.other)
        r = self.client.get("/api/activity-logs/", {"user_id": self.other.pk})
        self.assertEqual([e["action"] for e in r.json()["results"]], ["login"])
        r = self.client.get("/api/activity-logs/", {"action": "created"})
        self.assertEqual(r.json()["count"], 1)
        r = self.client.get("/api/activity-logs/", {"subject_type": "Country"})
        self.assertEqual([e["action"] for e in r.json()["results"]], ["created"])

    def test_invalid_filters_are_422(self):
        r = self.client.get("/api/activity-logs/", {"action": "exploded"})
        self.assertEqual(r.status_code, 422)
        r = self.client.get("/api/activity-logs/", {"start_date": "2024-05-10", "end_date": "2024-05-01"})
        self.assertEqual(r.status_code, 422)
        self.assertIn("end_date", r.json()["errors"])
        r = self.client.get("/api/activity-logs/", {"user_id": "me"})
        self.assertEqual(r.status_code, 422)

    def test_retrieve(self):
        entry = self.log(self.admin, ActivityAction.CREATED, subject=self.country, note="x")
        r = self.client.get(f"/api/activity-logs/{entry.pk}/")
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.json()["properties"], {"note": "x"})

    def test_stats_default_window(self):
        self.log(self.admin, ActivityAction.CREATED, days_ago=1)
        self.log(self.admin, ActivityAction.CREATED, days_ago=3)
        self.log(self.other, ActivityAction.LOGIN, days_ago=3)
        self.log(self.admin, ActivityAction.DELETED, days_ago=20)
        r = self.client.get("/api/activity-logs/stats/")
        self.assertEqual(r.status_code, 200)
        body = r.json()
        self.assertEqual(body["total_activities"], 3)
        self.assertEqual(body["unique_users"], 2)
        self.assertEqual(body["actions_breakdown"], {"created": 2, "login": 1})
        self.assertEqual(sum(d["count"] for d in body["daily_activities"]), 3)

    def test_stats_rejects_inverted_range(self):
        r = self.client.get("/api/activity-logs/stats/", {"start_date": "2024-05-10", "end_date": "2024-05-01"})
        self.assertEqual(r.status_code, 422)

    def test_recent_and_timeline(self):
        first = self.log(self.other, ActivityAction.LOGIN, days_ago=2)
        second = self.log(self.other, ActivityAction.LOGOUT, days_ago=1)
        self.log(self.admin, ActivityAction.CREATED)
        r = self.client.get("/api/activity-logs/recent/", {"limit": 2})
        self.assertEqual(len(r.json()), 2)
        r = self.client.get(f"/api/activity-logs/users/{self.other.pk}/timeline/")
        self.assertEqual([e["id"] for e in r.json()], [second.id, first.id])

    def test_recent_rejects_non_numeric_limit(self):
        r = self.client.get("/api/activity-logs/recent/", {"limit": "lots"})
        self.assertEqual(r.status_code, 422)

    def test_cleanup(self):
        self.log(self.admin, ActivityAction.CREATED, days_ago=100)
        self.log(self.admin, ActivityAction.CREATED, days_ago=10)
        r = self.client.post("/api/activity-logs/cleanup/", {"days": 90}, format="json")
        self.assertEqual(r.status_code, 200, r.content)
        self.assertEqual(r.json()["deleted"], 1)
        self.assertEqual(ActivityLog.objects.filter(action=ActivityAction.CREATED).count(), 1)
        entry = ActivityLog.objects.get(action=ActivityAction.CLEANUP)
        self.assertEqual(entry.properties, {"resource": "activity_logs", "days": 90, "deleted": 1})

    def test_cleanup_bounds(self):
        for days in (29, 366, "soon"):
            r = self.client.post("/api/activity-logs/cleanup/", {"days": days}, format="json")
            self.assertEqual(r.status_code, 422, days)
            self.assertIn("days", r.json()["errors"])
        self.assertFalse(ActivityLog.objects.exists())

    def test_export_records_itself(self):
        self.log(self.admin, ActivityAction.CREATED, days_ago=1, subject=self.country)
        r = self.client.get("/api/activity-logs/export/")
        self.assertEqual(r.status_code, 200)
        lines = b"".join(r.streaming_content).decode().splitlines()
        self.assertEqual(lines[0], "ID,Date,User,Action,Description,Subject,IP Address,Properties")
        self.assertEqual(len(lines), 2)
        self.assertEqual(r["X-Export-Total"], "1")
        entry = ActivityLog.objects.get(action=ActivityAction.EXPORTED)
        self.assertEqual(entry.properties["row_count"], 1)
        self.assertIn("start_date", entry.properties["filters"])

    def test_export_does_not_stream_its_own_entry(self):
        seeded = [self.log(self.admin, ActivityAction.UPDATED, days_ago=d) for d in (1, 2)]
        r = self.client.get("/api/activity-logs/export/", {"sort": "id", "direction": "asc"})
        rows = b"".join(r.streaming_content).decode().splitlines()[1:]
        self.assertEqual([int(row.split(",")[0]) for row in rows], [e.id for e in seeded])
        exported = ActivityLog.objects.get(action=ActivityAction.EXPORTED)
        self.assertEqual(int(r["X-Export-Total"]), len(rows))
        self.assertEqual(exported.properties["row_count"], len(rows))
        self.assertGreater(exported.id, seeded[-1].id)

    def test_write_endpoints_are_absent(self):
        entry = self.log(self.admin, ActivityAction.CREATED)
        self.assertEqual(self.client.delete(f"/api/activity-logs/{entry.pk}/").status_code, 405)
        self.assertEqual(self.client.post("/api/activity-logs/", {}, format="json").status_code, 405)
