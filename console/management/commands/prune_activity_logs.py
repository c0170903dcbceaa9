from __future__ import annotations

"""
Delete activity log entries past the retention period.

Usage
-----
    python manage.py prune_activity_logs --days 90

`--days` must be within 30..365 (same bounds as the API cleanup endpoint).
Safe to run from cron; each run writes one `cleanup` activity entry.
"""

from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone

from core.exceptions import ValidationError
from console.models import ActivityAction
from console.services.activity_log import ActivityLogService, prune_older_than, validate_retention_days


class Command(BaseCommand):
    help = "Delete activity log entries older than --days days (30..365, default 90)."

    def add_arguments(self, parser):
        parser.add_argument(
            "--days",
            type=int,
            default=90,
            help="Retention period in days (30..365, default 90).",
        )

    def handle(self, *args, **options):
        try:
            days = validate_retention_days(options["days"])
        except ValidationError as exc:
            raise CommandError("; ".join(exc.errors.get("days", [str(exc.detail)])))

        now = timezone.now()
        deleted = prune_older_than(days, now=now)
        ActivityLogService(now=now).record(
            None, ActivityAction.CLEANUP, {"resource": "activity_logs", "days": days, "deleted": deleted}
        )
        self.stdout.write(self.style.SUCCESS(f"Deleted {deleted} activity log entries older than {days} days."))
