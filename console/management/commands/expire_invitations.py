from __future__ import annotations

"""
Mark pending invitations whose `expires_at` has passed as expired.

Usage
-----
    python manage.py expire_invitations
    python manage.py expire_invitations --organization 12
"""

from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone

from console.models import Organization
from console.services.invitations import expire_overdue


class Command(BaseCommand):
    help = "Expire overdue pending organization invitations."

    def add_arguments(self, parser):
        parser.add_argument(
            "--organization",
            type=int,
            default=None,
            help="Only expire invitations of this organization id.",
        )

    def handle(self, *args, **options):
        organization = None
        if options["organization"] is not None:
            organization = Organization.objects.filter(pk=options["organization"]).first()
            if organization is None:
                raise CommandError(f"Organization {options['organization']} does not exist.")

        expired = expire_overdue(now=timezone.now(), organization=organization)
        self.stdout.write(self.style.SUCCESS(f"Expired {expired} invitations."))
