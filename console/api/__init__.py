# Explicit re-exports for router imports like:
#   from console.api import UserViewSet, ...

from .activity_logs import ActivityLogViewSet
from .geography import CityViewSet, CountryViewSet
from .invitations import InvitationViewSet, OrganizationInvitationViewSet
from .newsletter import NewsletterContentViewSet, NewsletterSubscriberViewSet
from .performance import PerformanceViewSet
from .translations import TranslationViewSet
from .users import UserViewSet

__all__ = [
    "ActivityLogViewSet",
    "CityViewSet",
    "CountryViewSet",
    "InvitationViewSet",
    "NewsletterContentViewSet",
    "NewsletterSubscriberViewSet",
    "OrganizationInvitationViewSet",
    "PerformanceViewSet",
    "TranslationViewSet",
    "UserViewSet",
]
