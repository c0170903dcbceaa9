"""
Session authentication for the admin console SPA.

    GET  auth/csrf/     204, sets the csrftoken cookie and echoes it in X-CSRFToken
    POST auth/login/    username or email + password; active accounts only
    POST auth/logout/   always 204; logs `logout` when a session existed
    GET  auth/me/       the signed-in user
"""

from __future__ import annotations

import logging

from django.contrib.auth import authenticate, get_user_model
from django.contrib.auth import login as django_login
from django.contrib.auth import logout as django_logout
from django.middleware.csrf import get_token
from django.utils import timezone
from django.utils.translation import gettext_lazy as _
from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import permissions, serializers, status
from rest_framework.response import Response
from rest_framework.throttling import ScopedRateThrottle
from rest_framework.views import APIView

from accounts.models import UserStatus
from console.services.activity_log import ActivityLogService

User = get_user_model()
logger = logging.getLogger("backoffice.auth")

BAD_CREDENTIALS = {"detail": _("Invalid username or password."), "code": "invalid_credentials"}


class CurrentUserSerializer(serializers.ModelSerializer):
    full_name = serializers.CharField(read_only=True)
    is_admin = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = ["id", "username", "email", "full_name", "status", "is_admin"]
        read_only_fields = fields

    def get_is_admin(self, obj) -> bool:
        return bool(obj.is_admin or obj.is_staff)


class CredentialsSerializer(serializers.Serializer):
    username = serializers.CharField(help_text="Username or email address.")
    password = serializers.CharField(write_only=True, trim_whitespace=False)


def _resolve_login_name(identifier: str) -> str:
    """Map an email address to its account's username; other input passes through."""
    if "@" not in identifier:
        return identifier
    username = (
        User.objects.filter(email__iexact=identifier)
        .values_list(User.USERNAME_FIELD, flat=True)
        .first()
    )
    return username or identifier


def _can_sign_in(user) -> bool:
    return user is not None and user.is_active and user.status == UserStatus.ACTIVE


class CsrfView(APIView):
    permission_classes = [permissions.AllowAny]

    @extend_schema(
        tags=["Auth"],
        operation_id="auth_csrf",
        summary="Issue a CSRF token",
        responses={204: OpenApiResponse(description="csrftoken cookie set; token also in X-CSRFToken")},
    )
    def get(self, request, *args, **kwargs):
        resp = Response(status=status.HTTP_204_NO_CONTENT)
        resp["X-CSRFToken"] = get_token(request)
        return resp


class LoginView(APIView):
    """Start a session. Suspended, pending and inactive accounts get the same 400 as a bad password."""

    permission_classes = [permissions.AllowAny]
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = "auth-login"

    @extend_schema(
        tags=["Auth"],
        operation_id="auth_login",
        summary="Sign in",
        request=CredentialsSerializer,
        responses={
            200: CurrentUserSerializer,
            400: OpenApiResponse(description="invalid_credentials"),
            429: OpenApiResponse(description="Throttled (`auth-login` scope)"),
        },
    )
    def post(self, request, *args, **kwargs):
        credentials = CredentialsSerializer(data=request.data)
        if not credentials.is_valid():
            return Response(BAD_CREDENTIALS, status=status.HTTP_400_BAD_REQUEST)

        login_name = _resolve_login_name(credentials.validated_data["username"].strip())
        user = authenticate(request, username=login_name, password=credentials.validated_data["password"])
        if not _can_sign_in(user):
            logger.info("Login rejected", extra={"username": login_name})
            return Response(BAD_CREDENTIALS, status=status.HTTP_400_BAD_REQUEST)

        django_login(request, user)
        ActivityLogService.for_request(request, now=timezone.now()).log_login(user)
        return Response(CurrentUserSerializer(user).data)


class LogoutView(APIView):
    permission_classes = [permissions.AllowAny]

    @extend_schema(
        tags=["Auth"],
        operation_id="auth_logout",
        summary="Sign out",
        request=None,
        responses={204: OpenApiResponse(description="Session ended (or there was none)")},
    )
    def post(self, request, *args, **kwargs):
        if request.user.is_authenticated:
            ActivityLogService.for_request(request, now=timezone.now()).log_logout(request.user)
        django_logout(request)
        return Response(status=status.HTTP_204_NO_CONTENT)


class MeView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    @extend_schema(
        tags=["Auth"],
        operation_id="auth_me",
        summary="Signed-in user",
        responses={200: CurrentUserSerializer, 403: OpenApiResponse(description="No session")},
    )
    def get(self, request, *args, **kwargs):
        return Response(CurrentUserSerializer(request.user).data)
