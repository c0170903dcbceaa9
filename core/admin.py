"""
Admin base classes for `TimestampedModel` subclasses.

The Django admin is a write path like any other: timestamps are stamped
explicitly, before model validation runs (`TimestampedModel.clean()` refuses
unstamped rows), rather than through `auto_now` hooks.
"""

from django import forms
from django.contrib import admin
from django.utils import timezone


class StampedModelForm(forms.ModelForm):
    def clean(self):
        self.instance.stamp(timezone.now())
        return super().clean()


class StampedModelAdmin(admin.ModelAdmin):
    form = StampedModelForm
    readonly_fields = ("created_at", "updated_at")
