from __future__ import annotations

import secrets

from django.conf import settings
from django.contrib.contenttypes.fields import GenericForeignKey
from django.contrib.contenttypes.models import ContentType
from django.db import models
from django.db.models import Q

from core.models import TimestampedModel


class Organization(TimestampedModel):
    name = models.CharField(max_length=200)
    city = models.ForeignKey(
        "geography.City",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="organizations",
    )
    members = models.ManyToManyField(settings.AUTH_USER_MODEL, blank=True, related_name="organizations")

    class Meta:
        ordering = ["name"]

    def __str__(self) -> str:
        return self.name


class Event(TimestampedModel):
    title = models.CharField(max_length=200)
    organization = models.ForeignKey(
        Organization,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="events",
    )
    city = models.ForeignKey(
        "geography.City",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="events",
    )
    starts_at = models.DateTimeField()

    class Meta:
        ordering = ["-starts_at"]

    def __str__(self) -> str:
        return self.title


# ---------------------------------------------------------------------
# Organization invitations
# ---------------------------------------------------------------------
class InvitationRole(models.TextChoices):
    ADMIN = "admin", "Admin"
    MEMBER = "member", "Member"
    MODERATOR = "moderator", "Moderator"


class InvitationStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    ACCEPTED = "accepted", "Accepted"
    REJECTED = "rejected", "Rejected"
    CANCELLED = "cancelled", "Cancelled"
    EXPIRED = "expired", "Expired"


def generate_token() -> str:
    return secrets.token_urlsafe(32)


class OrganizationInvitation(TimestampedModel):
    """
    Pending or completed invitation for an email address to join an organization.

    A pending invitation whose `expires_at` has passed is treated as expired by
    listings and stats; `expire_invitations` persists the status change.
    """
    organization = models.ForeignKey(Organization, on_delete=models.CASCADE, related_name="invitations")
    email = models.EmailField(db_index=True)
    role = models.CharField(max_length=16, choices=InvitationRole.choices, default=InvitationRole.MEMBER)
    status = models.CharField(
        max_length=16,
        choices=InvitationStatus.choices,
        default=InvitationStatus.PENDING,
        db_index=True,
    )
    invited_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="sent_invitations",
    )
    token = models.CharField(max_length=64, unique=True, default=generate_token)
    message = models.TextField(blank=True, default="")
    sent_at = models.DateTimeField()
    expires_at = models.DateTimeField()
    accepted_at = models.DateTimeField(null=True, blank=True)
    rejected_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"{self.email} -> {self.organization} ({self.status})"

    @property
    def is_completed(self) -> bool:
        return self.status in (InvitationStatus.ACCEPTED, InvitationStatus.REJECTED)

    def is_expired(self, now) -> bool:
        return self.status == InvitationStatus.EXPIRED or (
            self.status == InvitationStatus.PENDING and self.expires_at <= now
        )


# ---------------------------------------------------------------------
# Newsletter
# ---------------------------------------------------------------------
class SubscriptionStatus(models.TextChoices):
    ACTIVE = "active", "Active"
    UNSUBSCRIBED = "unsubscribed", "Unsubscribed"
    PENDING = "pending", "Pending"


class NewsletterSubscription(TimestampedModel):
    email = models.EmailField(unique=True)
    status = models.CharField(
        max_length=16,
        choices=SubscriptionStatus.choices,
        default=SubscriptionStatus.ACTIVE,
        db_index=True,
    )
    preferences = models.JSONField(default=dict, blank=True)
    verification_token = models.CharField(max_length=64, blank=True, default=generate_token)
    subscribed_at = models.DateTimeField(null=True, blank=True, db_index=True)
    unsubscribed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-subscribed_at"]

    def __str__(self) -> str:
        return self.email


class ContentStatus(models.TextChoices):
    DRAFT = "draft", "Draft"
    READY = "ready", "Ready"
    SENT = "sent", "Sent"


class NewsletterContent(TimestampedModel):
    title = models.CharField(max_length=255)
    subject = models.CharField(max_length=255)
    content = models.TextField()
    template = models.CharField(max_length=50, default="default")
    status = models.CharField(max_length=16, choices=ContentStatus.choices, default=ContentStatus.DRAFT, db_index=True)
    scheduled_at = models.DateTimeField(null=True, blank=True)
    sent_at = models.DateTimeField(null=True, blank=True)
    sent_count = models.PositiveIntegerField(default=0)
    failed_count = models.PositiveIntegerField(default=0)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="newsletters",
    )

    class Meta:
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return self.title


# ---------------------------------------------------------------------
# Translations
# ---------------------------------------------------------------------
SUPPORTED_LOCALES = (
    "en", "fr", "es", "de", "it", "pt", "ar", "zh", "ja", "ko",
    "ru", "hi", "sw", "am", "ha", "yo", "ig", "zu", "af",
)
BASE_LOCALE = "en"

# Values containing any of these (case-insensitive) are flagged for review.
REVIEW_MARKERS = ("TODO", "TRANSLATE", "MISSING", "{{", "}}", "[PLACEHOLDER]")


def missing_value_q() -> Q:
    return Q(value="")


def needs_review_q() -> Q:
    q = missing_value_q()
    for marker in REVIEW_MARKERS:
        q |= Q(value__icontains=marker)
    return q


class Translation(TimestampedModel):
    key = models.CharField(max_length=255)
    locale = models.CharField(max_length=8, db_index=True)
    value = models.TextField(blank=True, default="")
    group = models.CharField(max_length=100, blank=True, default="", db_index=True)
    namespace = models.CharField(max_length=100, blank=True, default="")
    is_active = models.BooleanField(default=True)
    is_system = models.BooleanField(default=False)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="translations",
    )
    metadata = models.JSONField(default=dict, blank=True)

    class Meta:
        ordering = ["locale", "group", "key"]
        constraints = [
            models.UniqueConstraint(
                fields=["key", "locale", "group", "namespace"],
                name="uniq_translation_key_locale_group_namespace",
            )
        ]

    def __str__(self) -> str:
        return f"{self.full_key} ({self.locale})"

    @property
    def full_key(self) -> str:
        return ".".join(p for p in (self.namespace, self.group, self.key) if p)

    @property
    def needs_review(self) -> bool:
        if not self.value:
            return True
        upper = self.value.upper()
        return any(marker in upper for marker in REVIEW_MARKERS)


# ---------------------------------------------------------------------
# Activity log (audit store)
# ---------------------------------------------------------------------
class ActivityAction(models.TextChoices):
    CREATED = "created", "Created"
    UPDATED = "updated", "Updated"
    DELETED = "deleted", "Deleted"
    LOGIN = "login", "Login"
    LOGOUT = "logout", "Logout"
    EXPORTED = "exported", "Exported"
    STATUS_CHANGED = "status_changed", "Status changed"
    INVITED = "invited", "Invited"
    SENT = "sent", "Sent"
    BULK_ACTION = "bulk_action", "Bulk action"
    CLEANUP = "cleanup", "Cleanup"


class ActivityLog(models.Model):
    """
    One audited action.

    - `user` is the actor (null for system actions or a deleted account).
    - `subject` points at the affected record when there is one. The generic
      relation survives the subject's deletion; `object_id` then dangles, which
      is intended for `deleted` entries.
    - `created_at` is assigned by the writer (`ActivityLogService.record`).
    """
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="activity_logs",
    )
    action = models.CharField(max_length=32, choices=ActivityAction.choices, db_index=True)
    description = models.CharField(max_length=255, blank=True, default="")
    content_type = models.ForeignKey(ContentType, on_delete=models.SET_NULL, null=True, blank=True)
    object_id = models.BigIntegerField(null=True, blank=True)
    subject = GenericForeignKey("content_type", "object_id")
    properties = models.JSONField(default=dict, blank=True)

    ip_address = models.GenericIPAddressField(null=True, blank=True)
    user_agent = models.TextField(blank=True, default="")
    request_id = models.CharField(max_length=64, blank=True, default="")

    created_at = models.DateTimeField(db_index=True)

    class Meta:
        ordering = ("-created_at",)

    def __str__(self) -> str:
        return f"ActivityLog<{self.action} {self.subject_label}>"

    @property
    def subject_label(self) -> str:
        if self.content_type_id is None:
            return "-"
        return f"{self.content_type.app_label}.{self.content_type.model}:{self.object_id}"
