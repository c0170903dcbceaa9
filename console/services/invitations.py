from __future__ import annotations

"""
Organization invitation lifecycle.

    pending --accept--> accepted
            --reject--> rejected
            --cancel--> cancelled
            --expires_at passes--> expired   (persisted by `expire_overdue`)

- Sending is refused (409) when the email already belongs to a member or has a
  pending, unexpired invitation for the same organization.
- Resend is refused for accepted/rejected invitations; otherwise the invitation
  returns to `pending` with a fresh token and expiry window.
- Cancel is refused for accepted invitations.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from smtplib import SMTPException
from typing import Iterable, List, Optional

from django.conf import settings
from django.core.mail import EmailMessage
from django.db import transaction

from core.exceptions import ConflictError, store_guard
from console.models import (
    ActivityAction,
    InvitationStatus,
    Organization,
    OrganizationInvitation,
    generate_token,
)
from console.services.activity_log import ActivityLogService

logger = logging.getLogger("backoffice.invitations")

BULK_MAX = 50


@dataclass(frozen=True)
class InvitationRequest:
    email: str
    role: str


def expiry_window() -> timedelta:
    return timedelta(days=int(getattr(settings, "INVITATION_EXPIRY_DAYS", 7)))


def _send_email(invitation: OrganizationInvitation) -> None:
    body = (
        f"You have been invited to join {invitation.organization.name} as {invitation.role}.\n"
        f"Invitation code: {invitation.token}\n"
    )
    if invitation.message:
        body += f"\n{invitation.message}\n"
    try:
        EmailMessage(
            subject=f"Invitation to join {invitation.organization.name}",
            body=body,
            from_email=settings.DEFAULT_FROM_EMAIL,
            to=[invitation.email],
        ).send()
    except (SMTPException, OSError):
        logger.exception("Invitation email failed", extra={"invitation_id": invitation.pk})


def _check_can_invite(organization: Organization, email: str, now: datetime) -> None:
    with store_guard("invitation.check", organization_id=organization.pk):
        is_member = organization.members.filter(email__iexact=email).exists()
        has_pending = organization.invitations.filter(
            email__iexact=email, status=InvitationStatus.PENDING, expires_at__gt=now
        ).exists()
    if is_member:
        raise ConflictError("User is already a member of this organization.", errors={"email": [email]})
    if has_pending:
        raise ConflictError("There is already a pending invitation for this email.", errors={"email": [email]})


def send_invitation(
    organization: Organization,
    email: str,
    role: str,
    *,
    actor,
    now: datetime,
    log: ActivityLogService,
    message: str = "",
) -> OrganizationInvitation:
    email = email.strip().lower()
    _check_can_invite(organization, email, now)

    invitation = OrganizationInvitation(
        organization=organization,
        email=email,
        role=role,
        status=InvitationStatus.PENDING,
        invited_by=actor if getattr(actor, "is_authenticated", False) else None,
        message=message or "",
        sent_at=now,
        expires_at=now + expiry_window(),
    ).stamp(now)
    with store_guard("invitation.send", organization_id=organization.pk), transaction.atomic():
        invitation.save()
        log.record(
            actor,
            ActivityAction.INVITED,
            {"email": email, "role": role, "organization_id": organization.pk},
            subject=invitation,
        )
    _send_email(invitation)
    logger.info("Invitation sent", extra={"invitation_id": invitation.pk, "organization_id": organization.pk})
    return invitation


def bulk_send(
    organization: Organization,
    requests: Iterable[InvitationRequest],
    *,
    actor,
    now: datetime,
    log: ActivityLogService,
    message: str = "",
) -> dict:
    """Send each invitation independently; conflicts are reported per email."""
    results: List[dict] = []
    for req in requests:
        try:
            inv = send_invitation(organization, req.email, req.role, actor=actor, now=now, log=log, message=message)
            results.append({"email": req.email, "role": req.role, "success": True, "id": inv.pk})
        except ConflictError as exc:
            results.append({"email": req.email, "role": req.role, "success": False, "detail": str(exc.detail)})
    successful = sum(1 for r in results if r["success"])
    return {
        "total": len(results),
        "successful": successful,
        "failed": len(results) - successful,
        "results": results,
    }


def resend(invitation: OrganizationInvitation, *, actor, now: datetime, log: ActivityLogService):
    if invitation.is_completed:
        raise ConflictError("Cannot resend a completed invitation.")
    invitation.status = InvitationStatus.PENDING
    invitation.token = generate_token()
    invitation.sent_at = now
    invitation.expires_at = now + expiry_window()
    invitation.stamp(now)
    with store_guard("invitation.resend", pk=invitation.pk), transaction.atomic():
        invitation.save(update_fields=["status", "token", "sent_at", "expires_at", "updated_at"])
        log.record(actor, ActivityAction.INVITED, {"email": invitation.email, "resent": True}, subject=invitation)
    _send_email(invitation)
    return invitation


def cancel(invitation: OrganizationInvitation, *, actor, now: datetime, log: ActivityLogService):
    if invitation.status == InvitationStatus.ACCEPTED:
        raise ConflictError("Cannot cancel an accepted invitation.")
    old = invitation.status
    invitation.status = InvitationStatus.CANCELLED
    invitation.stamp(now)
    with store_guard("invitation.cancel", pk=invitation.pk), transaction.atomic():
        invitation.save(update_fields=["status", "updated_at"])
        log.log_status_change(actor, invitation, old, InvitationStatus.CANCELLED)
    return invitation


def expire_overdue(*, now: datetime, organization: Optional[Organization] = None) -> int:
    """Mark pending invitations past `expires_at` as expired; returns the count."""
    qs = OrganizationInvitation.objects.filter(status=InvitationStatus.PENDING, expires_at__lte=now)
    if organization is not None:
        qs = qs.filter(organization=organization)
    with store_guard("invitation.expire"):
        updated = qs.update(status=InvitationStatus.EXPIRED, updated_at=now)
    logger.info("Expired invitations", extra={"expired": updated})
    return updated


def invitation_stats(organization: Optional[Organization], *, now: datetime) -> dict:
    qs = OrganizationInvitation.objects.all()
    if organization is not None:
        qs = qs.filter(organization=organization)
    with store_guard("invitation.stats"):
        pending = qs.filter(status=InvitationStatus.PENDING, expires_at__gt=now).count()
        accepted = qs.filter(status=InvitationStatus.ACCEPTED).count()
        rejected = qs.filter(status=InvitationStatus.REJECTED).count()
        expired = qs.filter(status=InvitationStatus.EXPIRED).count() + qs.filter(
            status=InvitationStatus.PENDING, expires_at__lte=now
        ).count()
        stats = {
            "total_invitations": qs.count(),
            "pending_invitations": pending,
            "accepted_invitations": accepted,
            "rejected_invitations": rejected,
            "cancelled_invitations": qs.filter(status=InvitationStatus.CANCELLED).count(),
            "expired_invitations": expired,
            "invitations_this_month": qs.filter(created_at__year=now.year, created_at__month=now.month).count(),
        }
    completed = accepted + rejected
    stats["acceptance_rate"] = round(accepted / completed * 100, 2) if completed else 0
    return stats
