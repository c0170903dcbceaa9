"""
Country and city API tests.

What these tests verify
-----------------------
- Countries list through django-filter (status/code), DRF search and ordering,
  wrapped in the console pagination envelope.
- Cities list through the listing core with counts and the `s` search alias.
- Create/update stamp timestamps and write `created` / `updated` activity entries.
- Deleting a referenced country or city returns 409 and changes nothing.
- Toggle-status flips active <-> inactive and records the change.
- Non-admin users are refused.
"""

from __future__ import annotations

from datetime import timedelta

from django.utils import timezone
from rest_framework.test import APIClient, APITestCase

from accounts.models import User
from console.models import ActivityAction, ActivityLog, Event, Organization
from geography.models import City, Country, GeoStatus


def make_country(name, code, status=GeoStatus.ACTIVE):
    now = timezone.now()
    return Country.objects.create(name=name, code=code, status=status, created_at=now, updated_at=now)


def make_city(name, country, status=GeoStatus.ACTIVE, **extra):
    now = timezone.now()
    return City.objects.create(name=name, country=country, status=status, created_at=now, updated_at=now, **extra)


class GeographyAPITestBase(APITestCase):

    def setUp(self):
        self.admin = User.objects.create_user(username="admin", password="pass12345", is_admin=True)
        self.client = APIClient()
        self.client.force_login(self.admin)


class CountryAPITests(GeographyAPITestBase):

    def setUp(self):
        super().setUp()
        self.kenya = make_country("Kenya", "KE")
        self.ghana = make_country("Ghana", "GH")
        self.chad = make_country("Chad", "TD", status=GeoStatus.INACTIVE)

    def test_list_envelope_and_default_order(self):
        r = self.client.get("/api/countries/")
        self.assertEqual(r.status_code, 200, r.content)
        body = r.json()
        self.assertEqual(body["count"], 3)
        self.assertEqual(body["page"], 1)
        self.assertEqual(body["page_size"], 25)
        self.assertEqual([c["name"] for c in body["results"]], ["Chad", "Ghana", "Kenya"])

    def test_list_filters_and_echoes_them(self):
        r = self.client.get("/api/countries/", {"status": "active", "ordering": "-name", "per_page": 1})
        body = r.json()
        self.assertEqual(body["count"], 2)
        self.assertEqual(body["num_pages"], 2)
        self.assertEqual([c["code"] for c in body["results"]], ["KE"])
        self.assertEqual(body["filters"], {"status": "active", "ordering": "-name"})

    def test_code_filter_is_case_insensitive(self):
        r = self.client.get("/api/countries/", {"code": "gh"})
        self.assertEqual([c["name"] for c in r.json()["results"]], ["Ghana"])

    def test_invalid_status_filter_is_422(self):
        r = self.client.get("/api/countries/", {"status": "archived"})
        self.assertEqual(r.status_code, 422)
        self.assertEqual(r.json()["code"], "validation_error")

    def test_create_normalizes_code_and_logs(self):
        r = self.client.post("/api/countries/", {"name": "Nigeria", "code": "ng"}, format="json")
        self.assertEqual(r.status_code, 201, r.content)
        self.assertEqual(r.json()["code"], "NG")
        country = Country.objects.get(code="NG")
        self.assertIsNotNone(country.created_at)
        self.assertEqual(country.created_at, country.updated_at)
        entry = ActivityLog.objects.get(action=ActivityAction.CREATED)
        self.assertEqual(entry.object_id, country.pk)
        self.assertEqual(entry.user, self.admin)
        self.assertEqual(entry.properties["attributes"]["code"], "NG")

    def test_create_rejects_bad_and_duplicate_codes(self):
        r = self.client.post("/api/countries/", {"name": "X", "code": "K1"}, format="json")
        self.assertEqual(r.status_code, 422)
        self.assertIn("code", r.json()["errors"])
        r = self.client.post("/api/countries/", {"name": "Kenya again", "code": "KE"}, format="json")
        self.assertEqual(r.status_code, 422)

    def test_update_logs_changes(self):
        r = self.client.patch(f"/api/countries/{self.kenya.pk}/", {"name": "Republic of Kenya"}, format="json")
        self.assertEqual(r.status_code, 200, r.content)
        entry = ActivityLog.objects.get(action=ActivityAction.UPDATED)
        self.assertEqual(entry.properties["changes"], {"name": ["Kenya", "Republic of Kenya"]})

    def test_toggle_status(self):
        r = self.client.post(f"/api/countries/{self.kenya.pk}/toggle-status/")
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.json()["status"], "inactive")
        entry = ActivityLog.objects.get(action=ActivityAction.STATUS_CHANGED)
        self.assertEqual(entry.properties, {"old_status": "active", "new_status": "inactive"})
        r = self.client.post(f"/api/countries/{self.kenya.pk}/toggle-status/")
        self.assertEqual(r.json()["status"], "active")

    def test_delete_unreferenced_country(self):
        r = self.client.delete(f"/api/countries/{self.chad.pk}/")
        self.assertEqual(r.status_code, 204)
        self.assertFalse(Country.objects.filter(pk=self.chad.pk).exists())
        entry = ActivityLog.objects.get(action=ActivityAction.DELETED)
        self.assertEqual(entry.object_id, self.chad.pk)
        self.assertEqual(entry.properties["attributes"]["name"], "Chad")

    def test_delete_country_with_cities_is_conflict(self):
        make_city("Nairobi", self.kenya)
        r = self.client.delete(f"/api/countries/{self.kenya.pk}/")
        self.assertEqual(r.status_code, 409)
        body = r.json()
        self.assertEqual(body["code"], "conflict")
        self.assertIn("cities", body["errors"])
        self.assertTrue(Country.objects.filter(pk=self.kenya.pk).exists())
        self.assertFalse(ActivityLog.objects.exists())

    def test_country_cities_lists_active_only(self):
        make_city("Nairobi", self.kenya)
        make_city("Mombasa", self.kenya)
        make_city("Kisumu", self.kenya, status=GeoStatus.INACTIVE)
        r = self.client.get(f"/api/countries/{self.kenya.pk}/cities/")
        self.assertEqual(r.status_code, 200)
        body = r.json()
        self.assertEqual(body["count"], 2)
        self.assertEqual([c["name"] for c in body["results"]], ["Mombasa", "Nairobi"])

    def test_export_writes_csv_and_activity(self):
        r = self.client.get("/api/countries/export/", {"status": "active", "sort": "name"})
        self.assertEqual(r.status_code, 200)
        self.assertTrue(r["Content-Type"].startswith("text/csv"))
        self.assertIn("attachment;", r["Content-Disposition"])
        self.assertEqual(r["X-Export-Total"], "2")
        lines = b"".join(r.streaming_content).decode().splitlines()
        self.assertEqual(lines[0], "ID,Name,Code,Status,Cities Count,Created At")
        self.assertEqual(len(lines), 3)
        entry = ActivityLog.objects.get(action=ActivityAction.EXPORTED)
        self.assertEqual(entry.properties["resource"], "countries")
        self.assertEqual(entry.properties["row_count"], 2)

    def test_export_rejects_unknown_sort(self):
        r = self.client.get("/api/countries/export/", {"sort": "password"})
        self.assertEqual(r.status_code, 422)
        self.assertFalse(ActivityLog.objects.exists())

    def test_non_admin_is_forbidden(self):
        User.objects.create_user(username="plain", password="pass12345")
        client = APIClient()
        client.login(username="plain", password="pass12345")
        self.assertEqual(client.get("/api/countries/").status_code, 403)

    def test_anonymous_is_forbidden(self):
        self.assertEqual(APIClient().get("/api/countries/").status_code, 403)


class CityAPITests(GeographyAPITestBase):

    def setUp(self):
        super().setUp()
        self.kenya = make_country("Kenya", "KE")
        self.ghana = make_country("Ghana", "GH")
        self.nairobi = make_city("Nairobi", self.kenya, state_province="Nairobi County", population=4_400_000)
        self.accra = make_city("Accra", self.ghana, state_province="Greater Accra")

    def test_list_with_counts(self):
        now = timezone.now()
        Organization.objects.create(name="Org", city=self.nairobi, created_at=now, updated_at=now)
        Event.objects.create(title="Meetup", city=self.nairobi, starts_at=now + timedelta(days=3),
                             created_at=now, updated_at=now)
        r = self.client.get("/api/cities/", {"sort": "name"})
        self.assertEqual(r.status_code, 200, r.content)
        results = r.json()["results"]
        self.assertEqual([c["name"] for c in results], ["Accra", "Nairobi"])
        nairobi = results[1]
        self.assertEqual(nairobi["organizations_count"], 1)
        self.assertEqual(nairobi["events_count"], 1)
        self.assertEqual(nairobi["users_count"], 0)
        self.assertEqual(nairobi["country_name"], "Kenya")

    def test_filter_by_country_and_search_alias(self):
        r = self.client.get("/api/cities/", {"country_id": self.ghana.pk})
        self.assertEqual([c["name"] for c in r.json()["results"]], ["Accra"])
        r = self.client.get("/api/cities/", {"s": "county"})
        self.assertEqual([c["name"] for c in r.json()["results"]], ["Nairobi"])
        self.assertEqual(r.json()["filters"], {"s": "county"})

    def test_unknown_sort_is_422(self):
        r = self.client.get("/api/cities/", {"sort": "secret"})
        self.assertEqual(r.status_code, 422)
        self.assertIn("sort", r.json()["errors"])

    def test_create_validates_coordinates(self):
        payload = {"name": "Kisumu", "country": self.kenya.pk, "latitude": "95.0", "longitude": "34.7"}
        r = self.client.post("/api/cities/", payload, format="json")
        self.assertEqual(r.status_code, 422)
        self.assertIn("latitude", r.json()["errors"])

        payload["latitude"] = "-0.1"
        r = self.client.post("/api/cities/", payload, format="json")
        self.assertEqual(r.status_code, 201, r.content)
        self.assertEqual(r.json()["organizations_count"], 0)

    def test_delete_city_with_user_is_conflict(self):
        User.objects.create_user(username="resident", password="pass12345", city=self.nairobi)
        r = self.client.delete(f"/api/cities/{self.nairobi.pk}/")
        self.assertEqual(r.status_code, 409)
        self.assertIn("users", r.json()["errors"])
        self.assertTrue(City.objects.filter(pk=self.nairobi.pk).exists())
        self.assertFalse(ActivityLog.objects.filter(action=ActivityAction.DELETED).exists())

    def test_delete_city(self):
        r = self.client.delete(f"/api/cities/{self.accra.pk}/")
        self.assertEqual(r.status_code, 204)
        self.assertFalse(City.objects.filter(pk=self.accra.pk).exists())

    def test_toggle_status_updates_timestamp(self):
        before = self.accra.updated_at
        r = self.client.post(f"/api/cities/{self.accra.pk}/toggle-status/")
        self.assertEqual(r.status_code, 200)
        self.accra.refresh_from_db()
        self.assertEqual(self.accra.status, GeoStatus.INACTIVE)
        self.assertGreaterEqual(self.accra.updated_at, before)

    def test_missing_city_is_404(self):
        self.assertEqual(self.client.get("/api/cities/999999/").status_code, 404)
