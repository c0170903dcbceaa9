"""
Django admin registrations for console models.

- Stamped models go through `StampedModelAdmin`, which assigns timestamps in
  `save_model()` like every other write path.
- Activity logs are read-only here; entries are only written by services.
"""

from __future__ import annotations

from django.contrib import admin

from core.admin import StampedModelAdmin

from .models import (
    ActivityLog,
    Event,
    NewsletterContent,
    NewsletterSubscription,
    Organization,
    OrganizationInvitation,
    Translation,
)


@admin.register(Organization)
class OrganizationAdmin(StampedModelAdmin):
    list_display = ("id", "name", "city", "created_at")
    search_fields = ("name",)
    filter_horizontal = ("members",)
    list_select_related = ("city",)


@admin.register(Event)
class EventAdmin(StampedModelAdmin):
    list_display = ("id", "title", "organization", "city", "starts_at")
    search_fields = ("title",)
    list_select_related = ("organization", "city")


@admin.register(OrganizationInvitation)
class OrganizationInvitationAdmin(StampedModelAdmin):
    """Invitation tokens are shown read-only; resend from the API to rotate them."""
    list_display = ("id", "email", "organization", "role", "status", "sent_at", "expires_at")
    list_filter = ("status", "role")
    search_fields = ("email", "organization__name")
    readonly_fields = StampedModelAdmin.readonly_fields + ("token",)


@admin.register(NewsletterSubscription)
class NewsletterSubscriptionAdmin(StampedModelAdmin):
    list_display = ("id", "email", "status", "subscribed_at", "unsubscribed_at")
    list_filter = ("status",)
    search_fields = ("email",)
    readonly_fields = StampedModelAdmin.readonly_fields + ("verification_token",)


@admin.register(NewsletterContent)
class NewsletterContentAdmin(StampedModelAdmin):
    list_display = ("id", "title", "status", "scheduled_at", "sent_at", "sent_count", "failed_count")
    list_filter = ("status",)
    search_fields = ("title", "subject")


@admin.register(Translation)
class TranslationAdmin(StampedModelAdmin):
    list_display = ("id", "key", "locale", "group", "namespace", "is_active", "is_system")
    list_filter = ("locale", "is_active", "is_system")
    search_fields = ("key", "value", "group")


@admin.register(ActivityLog)
class ActivityLogAdmin(admin.ModelAdmin):
    list_display = ("id", "created_at", "user", "action", "description", "content_type", "object_id")
    list_filter = ("action",)
    search_fields = ("description", "user__email")
    date_hierarchy = "created_at"
    list_select_related = ("user", "content_type")

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False
