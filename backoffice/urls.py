"""
Project URL configuration.

Surfaces
--------
- `/admin/`: Django admin (back-office operators only).
- `/api/`: console API, router-driven ViewSets plus the session auth endpoints.
- `/api/v1/`: mirror of `/api/`; same views mounted under a versioned path.
- `/api/schema/`, `/api/docs/`, `/api/redoc/`: OpenAPI schema & UIs.
- `/health/`: public readiness probe.

Notes
-----
- Routers are registered once, then included under both `/api/` and `/api/v1/`.
- Organization invitations are nested: `organizations/{organization_pk}/invitations/`.
"""

from __future__ import annotations

from django.contrib import admin
from django.urls import include, path
from rest_framework.routers import DefaultRouter

from drf_spectacular.views import (
    SpectacularAPIView,
    SpectacularRedocView,
    SpectacularSwaggerView,
)

from accounts.views import CsrfView, LoginView, LogoutView, MeView
from console.api import (
    ActivityLogViewSet,
    CityViewSet,
    CountryViewSet,
    InvitationViewSet,
    NewsletterContentViewSet,
    NewsletterSubscriberViewSet,
    OrganizationInvitationViewSet,
    PerformanceViewSet,
    TranslationViewSet,
    UserViewSet,
)
from core.views import health

# ---------------------------------------------------------------------
# Router
# ---------------------------------------------------------------------
router = DefaultRouter()
router.register(r"users", UserViewSet, basename="user")
router.register(r"countries", CountryViewSet, basename="country")
router.register(r"cities", CityViewSet, basename="city")
router.register(r"newsletter/subscribers", NewsletterSubscriberViewSet, basename="newsletter-subscriber")
router.register(r"newsletter/content", NewsletterContentViewSet, basename="newsletter-content")
router.register(
    r"organizations/(?P<organization_pk>\d+)/invitations",
    OrganizationInvitationViewSet,
    basename="organization-invitation",
)
router.register(r"invitations", InvitationViewSet, basename="invitation")
router.register(r"translations", TranslationViewSet, basename="translation")
router.register(r"activity-logs", ActivityLogViewSet, basename="activity-log")
router.register(r"performance", PerformanceViewSet, basename="performance")

auth_patterns = [
    path("csrf/", CsrfView.as_view(), name="auth-csrf"),
    path("login/", LoginView.as_view(), name="auth-login"),
    path("logout/", LogoutView.as_view(), name="auth-logout"),
    path("me/", MeView.as_view(), name="auth-me"),
]

# ---------------------------------------------------------------------
# URL patterns
# ---------------------------------------------------------------------
urlpatterns = [
    path("admin/", admin.site.urls),
    path("health/", health, name="health"),

    # OpenAPI / Docs
    path("api/schema/", SpectacularAPIView.as_view(), name="schema"),
    path("api/docs/", SpectacularSwaggerView.as_view(url_name="schema"), name="swagger-ui"),
    path("api/redoc/", SpectacularRedocView.as_view(url_name="schema"), name="redoc"),

    # Auth (canonical + v1 mirror)
    path("api/auth/", include(auth_patterns)),
    path("api/v1/auth/", include((auth_patterns, "auth_v1"), namespace="auth_v1")),

    # Router-driven API (current + v1 mirror)
    path("api/", include(router.urls)),
    path("api/v1/", include((router.urls, "api_v1"), namespace="api_v1")),
]
