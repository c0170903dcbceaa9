"""Admin registrations for the accounts app.

Extends Django's `UserAdmin` with the console profile fields.
"""

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as DjangoUserAdmin

from .models import User


@admin.register(User)
class UserAdmin(DjangoUserAdmin):
    list_display = ("id", "username", "email", "first_name", "last_name", "status", "is_admin", "date_joined")
    list_filter = ("status", "is_admin", "is_staff", "country")
    fieldsets = DjangoUserAdmin.fieldsets + (
        ("Console profile", {"fields": ("status", "is_admin", "phone_number", "country", "city", "email_verified_at")}),
    )
