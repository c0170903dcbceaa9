"""
DRF serializers for the admin console resources.

Writes
------
- Serializers validate shape and business-level uniqueness only. Timestamps,
  `created_by` and activity entries are handled by the viewsets/services, so
  `created_at` / `updated_at` are always read-only here.
- Validation failures surface as 422 through `core.exceptions.api_exception_handler`.
"""

from __future__ import annotations

from django.contrib.auth.password_validation import validate_password
from rest_framework import serializers
from rest_framework.validators import UniqueValidator

from accounts.models import User, UserStatus
from console.models import (
    SUPPORTED_LOCALES,
    ActivityLog,
    ContentStatus,
    InvitationRole,
    NewsletterContent,
    NewsletterSubscription,
    OrganizationInvitation,
    Translation,
)
from console.services.invitations import BULK_MAX
from console.services.newsletter import BULK_ACTIONS
from geography.models import City, Country

PHONE_REGEX = r"^\+?[0-9\s\-()]+$"
NAME_REGEX = r"^[^\W\d_]+(?:[\s\-'.][^\W\d_]*)*$"


# ----------------------------
# Users
# ----------------------------
class UserSerializer(serializers.ModelSerializer):
    country_name = serializers.CharField(source="country.name", read_only=True, default=None)
    city_name = serializers.CharField(source="city.name", read_only=True, default=None)
    full_name = serializers.CharField(read_only=True)
    email = serializers.EmailField(
        max_length=100,
        validators=[UniqueValidator(queryset=User.objects.all(), message="A user with that email already exists.")],
    )
    first_name = serializers.RegexField(NAME_REGEX, max_length=45)
    last_name = serializers.RegexField(NAME_REGEX, max_length=45)
    phone_number = serializers.RegexField(PHONE_REGEX, max_length=20, required=False, allow_blank=True)
    password = serializers.CharField(write_only=True, required=False, trim_whitespace=False, min_length=8)

    class Meta:
        model = User
        fields = [
            "id",
            "username",
            "first_name",
            "last_name",
            "full_name",
            "email",
            "phone_number",
            "country",
            "country_name",
            "city",
            "city_name",
            "status",
            "is_admin",
            "email_verified_at",
            "last_login",
            "date_joined",
            "password",
        ]
        read_only_fields = ["id", "email_verified_at", "last_login", "date_joined", "full_name"]
        extra_kwargs = {"username": {"required": False}}

    def validate_password(self, value):
        validate_password(value)
        return value

    def validate(self, attrs):
        if self.instance is None and not attrs.get("password"):
            raise serializers.ValidationError({"password": ["This field is required."]})
        city = attrs.get("city")
        country = attrs.get("country", getattr(self.instance, "country", None))
        if city is not None and country is not None and city.country_id != country.pk:
            raise serializers.ValidationError({"city": ["City does not belong to the selected country."]})
        return attrs

    def create(self, validated_data):
        password = validated_data.pop("password")
        if not validated_data.get("username"):
            validated_data["username"] = validated_data["email"]
        return User.objects.create_user(password=password, **validated_data)

    def update(self, instance, validated_data):
        password = validated_data.pop("password", None)
        for attr, value in validated_data.items():
            setattr(instance, attr, value)
        if password:
            instance.set_password(password)
        instance.save()
        return instance


class UserSearchSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ["id", "first_name", "last_name", "email"]


# ----------------------------
# Geography
# ----------------------------
class CountrySerializer(serializers.ModelSerializer):
    class Meta:
        model = Country
        fields = ["id", "name", "code", "status", "created_at", "updated_at"]
        read_only_fields = ["id", "created_at", "updated_at"]

    def validate_code(self, value: str) -> str:
        value = value.strip().upper()
        if len(value) not in (2, 3) or not value.isalpha():
            raise serializers.ValidationError("Use a 2 or 3 letter ISO code.")
        return value


class CitySerializer(serializers.ModelSerializer):
    country_name = serializers.CharField(source="country.name", read_only=True)
    organizations_count = serializers.IntegerField(read_only=True, default=0)
    users_count = serializers.IntegerField(read_only=True, default=0)
    events_count = serializers.IntegerField(read_only=True, default=0)
    latitude = serializers.DecimalField(
        max_digits=9, decimal_places=6, min_value=-90, max_value=90, required=False, allow_null=True
    )
    longitude = serializers.DecimalField(
        max_digits=9, decimal_places=6, min_value=-180, max_value=180, required=False, allow_null=True
    )

    class Meta:
        model = City
        fields = [
            "id",
            "name",
            "country",
            "country_name",
            "state_province",
            "latitude",
            "longitude",
            "population",
            "timezone",
            "status",
            "organizations_count",
            "users_count",
            "events_count",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "created_at", "updated_at"]


# ----------------------------
# Newsletter
# ----------------------------
class NewsletterSubscriptionSerializer(serializers.ModelSerializer):
    class Meta:
        model = NewsletterSubscription
        fields = ["id", "email", "status", "preferences", "subscribed_at", "unsubscribed_at", "created_at"]
        read_only_fields = fields


class SubscribeSerializer(serializers.Serializer):
    email = serializers.EmailField(max_length=255)
    preferences = serializers.DictField(required=False, default=dict)


class UnsubscribeSerializer(serializers.Serializer):
    email = serializers.EmailField(max_length=255)
    token = serializers.CharField(required=False, allow_blank=True)


class SubscriberBulkSerializer(serializers.Serializer):
    action = serializers.ChoiceField(choices=BULK_ACTIONS)
    emails = serializers.ListField(child=serializers.EmailField(), min_length=1, max_length=500)


class NewsletterContentSerializer(serializers.ModelSerializer):
    created_by_name = serializers.CharField(source="created_by.get_username", read_only=True, default=None)
    status = serializers.ChoiceField(
        choices=[ContentStatus.DRAFT, ContentStatus.READY], required=False, default=ContentStatus.DRAFT
    )

    class Meta:
        model = NewsletterContent
        fields = [
            "id",
            "title",
            "subject",
            "content",
            "template",
            "status",
            "scheduled_at",
            "sent_at",
            "sent_count",
            "failed_count",
            "created_by",
            "created_by_name",
            "created_at",
            "updated_at",
        ]
        read_only_fields = [
            "id", "sent_at", "sent_count", "failed_count", "created_by", "created_at", "updated_at",
        ]

    def validate_scheduled_at(self, value):
        now = self.context.get("now")
        if value is not None and now is not None and value <= now:
            raise serializers.ValidationError("Scheduled time must be in the future.")
        return value


# ----------------------------
# Invitations
# ----------------------------
class OrganizationInvitationSerializer(serializers.ModelSerializer):
    invited_by_name = serializers.SerializerMethodField()

    class Meta:
        model = OrganizationInvitation
        fields = [
            "id",
            "organization",
            "email",
            "role",
            "status",
            "invited_by",
            "invited_by_name",
            "message",
            "sent_at",
            "expires_at",
            "accepted_at",
            "rejected_at",
            "created_at",
        ]
        read_only_fields = fields

    def get_invited_by_name(self, obj) -> str | None:
        return obj.invited_by.full_name if obj.invited_by else None


class InvitationCreateSerializer(serializers.Serializer):
    email = serializers.EmailField(max_length=255)
    role = serializers.ChoiceField(choices=InvitationRole.choices)
    message = serializers.CharField(max_length=500, required=False, allow_blank=True, default="")


class _BulkInvitationItem(serializers.Serializer):
    email = serializers.EmailField(max_length=255)
    role = serializers.ChoiceField(choices=InvitationRole.choices)


class InvitationBulkSerializer(serializers.Serializer):
    invitations = _BulkInvitationItem(many=True, allow_empty=False, max_length=BULK_MAX)
    message = serializers.CharField(max_length=500, required=False, allow_blank=True, default="")


# ----------------------------
# Translations
# ----------------------------
class TranslationSerializer(serializers.ModelSerializer):
    locale = serializers.ChoiceField(choices=SUPPORTED_LOCALES)
    full_key = serializers.CharField(read_only=True)
    needs_review = serializers.BooleanField(read_only=True)

    class Meta:
        model = Translation
        fields = [
            "id",
            "key",
            "full_key",
            "locale",
            "value",
            "group",
            "namespace",
            "is_active",
            "is_system",
            "needs_review",
            "metadata",
            "created_by",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "is_system", "created_by", "created_at", "updated_at"]
        # Uniqueness is checked in validate() with a field-level message.
        validators = []

    def validate(self, attrs):
        current = self.instance

        def pick(name):
            if name in attrs:
                return attrs[name]
            return getattr(current, name, "") if current else ""

        key, locale, group, namespace = pick("key"), pick("locale"), pick("group"), pick("namespace")
        qs = Translation.objects.filter(key=key, locale=locale, group=group or "", namespace=namespace or "")
        if current is not None:
            qs = qs.exclude(pk=current.pk)
        if qs.exists():
            raise serializers.ValidationError(
                {"key": ["Translation key already exists for this locale/group/namespace combination."]}
            )
        return attrs


# ----------------------------
# Activity logs
# ----------------------------
class ActivityLogSerializer(serializers.ModelSerializer):
    user_name = serializers.SerializerMethodField()
    subject_type = serializers.SerializerMethodField()

    class Meta:
        model = ActivityLog
        fields = [
            "id",
            "user",
            "user_name",
            "action",
            "description",
            "subject_type",
            "object_id",
            "properties",
            "ip_address",
            "user_agent",
            "request_id",
            "created_at",
        ]
        read_only_fields = fields

    def get_user_name(self, obj) -> str | None:
        return obj.user.get_username() if obj.user_id else None

    def get_subject_type(self, obj) -> str | None:
        if obj.content_type_id is None:
            return None
        return f"{obj.content_type.app_label}.{obj.content_type.model}"

