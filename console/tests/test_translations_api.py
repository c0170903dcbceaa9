"""
Translation API tests.

- CRUD with `created_by`, explicit timestamps and activity entries.
- Duplicate (key, locale, group, namespace) -> 422 on `key`; unsupported locale -> 422.
- System translations cannot be deleted (403).
- Status filter: active / inactive / needs_review / missing.
- Stats and per-locale progress against the base locale.
"""

from __future__ import annotations

from django.utils import timezone
from rest_framework.test import APIClient, APITestCase

from accounts.models import User
from console.models import ActivityAction, ActivityLog, Translation


def make_translation(key, locale="en", value="Hello", group="common", **extra):
    now = timezone.now()
    return Translation.objects.create(
        key=key, locale=locale, value=value, group=group, created_at=now, updated_at=now, **extra
    )


class TranslationAPITests(APITestCase):

    def setUp(self):
        self.admin = User.objects.create_user(username="admin", password="pass12345", is_admin=True)
        self.client = APIClient()
        self.client.force_login(self.admin)

    def test_create(self):
        r = self.client.post(
            "/api/translations/",
            {"key": "welcome", "locale": "fr", "value": "Bienvenue", "group": "home", "namespace": "web"},
            format="json",
        )
        self.assertEqual(r.status_code, 201, r.content)
        body = r.json()
        self.assertEqual(body["full_key"], "web.home.welcome")
        self.assertFalse(body["needs_review"])
        self.assertEqual(body["created_by"], self.admin.pk)
        self.assertFalse(body["is_system"])
        self.assertTrue(ActivityLog.objects.filter(action=ActivityAction.CREATED, object_id=body["id"]).exists())

    def test_duplicate_key_is_rejected(self):
        make_translation("welcome", locale="fr", value="Bienvenue", group="home")
        r = self.client.post(
            "/api/translations/",
            {"key": "welcome", "locale": "fr", "value": "Salut", "group": "home"},
            format="json",
        )
        self.assertEqual(r.status_code, 422)
        self.assertIn("key", r.json()["errors"])
        # Same key in another group is fine.
        r = self.client.post(
            "/api/translations/",
            {"key": "welcome", "locale": "fr", "value": "Salut", "group": "footer"},
            format="json",
        )
        self.assertEqual(r.status_code, 201)

    def test_update_own_key_is_not_a_duplicate(self):
        t = make_translation("welcome")
        r = self.client.patch(f"/api/translations/{t.pk}/", {"value": "Hi"}, format="json")
        self.assertEqual(r.status_code, 200, r.content)
        entry = ActivityLog.objects.get(action=ActivityAction.UPDATED)
        self.assertEqual(entry.properties["changes"]["value"], ["Hello", "Hi"])

    def test_unsupported_locale(self):
        r = self.client.post("/api/translations/", {"key": "k", "locale": "xx", "value": "v"}, format="json")
        self.assertEqual(r.status_code, 422)
        self.assertIn("locale", r.json()["errors"])

    def test_delete(self):
        t = make_translation("bye")
        r = self.client.delete(f"/api/translations/{t.pk}/")
        self.assertEqual(r.status_code, 204)
        entry = ActivityLog.objects.get(action=ActivityAction.DELETED)
        self.assertEqual(entry.properties["full_key"], "common.bye")

    def test_system_translation_cannot_be_deleted(self):
        t = make_translation("core", is_system=True)
        r = self.client.delete(f"/api/translations/{t.pk}/")
        self.assertEqual(r.status_code, 403)
        self.assertTrue(Translation.objects.filter(pk=t.pk).exists())
        self.assertFalse(ActivityLog.objects.exists())

    def test_status_filters(self):
        make_translation("a", value="Done")
        make_translation("b", value="")
        make_translation("c", value="TODO translate me")
        make_translation("d", value="Off", is_active=False)

        def keys(status):
            r = self.client.get("/api/translations/", {"status": status, "sort": "key"})
            self.assertEqual(r.status_code, 200, r.content)
            return [t["key"] for t in r.json()["results"]]

        self.assertEqual(keys("missing"), ["b"])
        self.assertEqual(keys("needs_review"), ["b", "c"])
        self.assertEqual(keys("inactive"), ["d"])
        self.assertEqual(keys("active"), ["a", "b", "c"])

    def test_locale_and_search_filters(self):
        make_translation("greeting", locale="en", value="Hello")
        make_translation("greeting", locale="de", value="Hallo")
        r = self.client.get("/api/translations/", {"locale": "de"})
        self.assertEqual([t["value"] for t in r.json()["results"]], ["Hallo"])
        r = self.client.get("/api/translations/", {"search": "hal"})
        self.assertEqual([t["locale"] for t in r.json()["results"]], ["de"])

    def test_stats(self):
        make_translation("a", value="Done", group="home")
        make_translation("b", value="", group="home")
        make_translation("c", locale="fr", value="Fait", group="footer")
        r = self.client.get("/api/translations/stats/")
        body = r.json()
        self.assertEqual(body["total"], 3)
        self.assertEqual(body["missing"], 1)
        self.assertEqual(body["group_distribution"], {"footer": 1, "home": 2})
        self.assertEqual(sorted(body["locale_stats"]), ["en", "fr"])
        self.assertEqual(body["recent_translations"], 3)

    def test_progress(self):
        make_translation("a", value="One")
        make_translation("b", value="Two")
        make_translation("a", locale="fr", value="Un")
        make_translation("b", locale="fr", value="")
        r = self.client.get("/api/translations/progress/", {"locale": "fr, en"})
        self.assertEqual(r.status_code, 200)
        body = r.json()
        self.assertEqual(body["fr"], {"total": 2, "translated": 1, "needs_review": 1, "percentage": 50.0})
        self.assertEqual(body["en"]["percentage"], 100.0)

    def test_progress_rejects_unknown_locale(self):
        r = self.client.get("/api/translations/progress/", {"locale": "fr,klingon"})
        self.assertEqual(r.status_code, 422)
        self.assertIn("locale", r.json()["errors"])

    def test_export(self):
        make_translation("a", value="One")
        r = self.client.get("/api/translations/export/")
        self.assertEqual(r.status_code, 200)
        lines = b"".join(r.streaming_content).decode().splitlines()
        self.assertEqual(lines[0], "Key,Locale,Value,Group,Namespace,Active,System,Needs Review,Updated At")
        self.assertTrue(lines[1].startswith("a,en,One,common,,Yes,No,No,"))
