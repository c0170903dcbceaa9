"""Management command tests: `prune_activity_logs` and `expire_invitations`."""

from __future__ import annotations

from datetime import timedelta
from io import StringIO

from django.core.management import CommandError, call_command
from django.test import TestCase
from django.utils import timezone

from console.models import (
    ActivityAction,
    ActivityLog,
    InvitationStatus,
    Organization,
    OrganizationInvitation,
)
from console.services.activity_log import ActivityLogService


class PruneActivityLogsCommandTests(TestCase):

    def setUp(self):
        now = timezone.now()
        ActivityLogService(now=now - timedelta(days=200)).record(None, ActivityAction.CREATED)
        ActivityLogService(now=now - timedelta(days=5)).record(None, ActivityAction.CREATED)

    def test_prunes_and_records_cleanup(self):
        out = StringIO()
        call_command("prune_activity_logs", "--days", "90", stdout=out)
        self.assertIn("Deleted 1 activity log entries", out.getvalue())
        self.assertEqual(ActivityLog.objects.filter(action=ActivityAction.CREATED).count(), 1)
        cleanup = ActivityLog.objects.get(action=ActivityAction.CLEANUP)
        self.assertIsNone(cleanup.user)
        self.assertEqual(cleanup.properties["deleted"], 1)

    def test_rejects_out_of_range_days(self):
        with self.assertRaises(CommandError):
            call_command("prune_activity_logs", "--days", "7", stdout=StringIO())
        self.assertEqual(ActivityLog.objects.count(), 2)


class ExpireInvitationsCommandTests(TestCase):

    def setUp(self):
        now = timezone.now()
        self.org = Organization.objects.create(name="Org", created_at=now, updated_at=now)
        other = Organization.objects.create(name="Other", created_at=now, updated_at=now)
        for org, email in ((self.org, "a@example.com"), (other, "b@example.com")):
            OrganizationInvitation.objects.create(
                organization=org,
                email=email,
                sent_at=now - timedelta(days=10),
                expires_at=now - timedelta(days=3),
                created_at=now,
                updated_at=now,
            )

    def test_expires_overdue_for_one_organization(self):
        out = StringIO()
        call_command("expire_invitations", "--organization", str(self.org.pk), stdout=out)
        self.assertIn("Expired 1 invitations.", out.getvalue())
        statuses = dict(OrganizationInvitation.objects.values_list("email", "status"))
        self.assertEqual(statuses, {"a@example.com": InvitationStatus.EXPIRED, "b@example.com": InvitationStatus.PENDING})

    def test_expires_all(self):
        call_command("expire_invitations", stdout=StringIO())
        self.assertEqual(OrganizationInvitation.objects.filter(status=InvitationStatus.EXPIRED).count(), 2)

    def test_unknown_organization(self):
        with self.assertRaises(CommandError):
            call_command("expire_invitations", "--organization", "999999", stdout=StringIO())
