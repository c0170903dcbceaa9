from __future__ import annotations

"""
Listing/export declarations for every console resource.

Each `ListingSpec` states which query parameters a resource accepts, which
columns free-text search covers, what may be sorted on, which timestamp backs
`start_date`/`end_date`, and the CSV layout. Views never build querysets from
raw parameters themselves.

Specs whose behavior depends on settings or on a parent object are built by
functions so the values are read per request.
"""

from django.conf import settings
from django.db.models import Count

from accounts.models import User, UserStatus
from core.listing import (
    ASC,
    DESC,
    AnyOfFilter,
    ChoiceParam,
    Column,
    EqualsFilter,
    IdParam,
    ListingSpec,
    SortSpec,
    TextParam,
    TextSearchFilter,
)
from console.models import (
    REVIEW_MARKERS,
    ActivityAction,
    ActivityLog,
    ContentStatus,
    InvitationRole,
    InvitationStatus,
    NewsletterContent,
    NewsletterSubscription,
    Organization,
    OrganizationInvitation,
    SubscriptionStatus,
    Translation,
)
from geography.models import City, Country, GeoStatus


# ---------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------
USERS = ListingSpec(
    resource="users",
    label="Users",
    queryset=lambda: User.objects.select_related("country", "city"),
    params=(
        TextParam("search", search_columns=("first_name", "last_name", "email")),
        ChoiceParam("status", choices=tuple(UserStatus.values)),
        IdParam("country_id"),
        IdParam("city_id"),
    ),
    sortable=("id", "first_name", "last_name", "email", "status", "date_joined", "last_login"),
    default_sort=SortSpec("date_joined", DESC),
    date_column="date_joined",
    columns=(
        Column("ID", "id"),
        Column("First Name", "first_name"),
        Column("Last Name", "last_name"),
        Column("Email", "email"),
        Column("Phone", "phone_number"),
        Column("Country", "country.name"),
        Column("City", "city.name"),
        Column("Status", "status"),
        Column("Is Admin", "is_admin"),
        Column("Email Verified", "is_verified"),
        Column("Last Login", "last_login"),
        Column("Joined", "date_joined"),
    ),
)


# ---------------------------------------------------------------------
# Geography
# ---------------------------------------------------------------------
COUNTRIES = ListingSpec(
    resource="countries",
    label="Countries",
    queryset=lambda: Country.objects.annotate(cities_count=Count("cities", distinct=True)),
    params=(
        TextParam("search", search_columns=("name", "code")),
        ChoiceParam("status", choices=tuple(GeoStatus.values)),
    ),
    sortable=("id", "name", "code", "status", "created_at"),
    default_sort=SortSpec("name", ASC),
    columns=(
        Column("ID", "id"),
        Column("Name", "name"),
        Column("Code", "code"),
        Column("Status", "status"),
        Column("Cities Count", "cities_count"),
        Column("Created At", "created_at"),
    ),
)


def _city_queryset():
    return City.objects.select_related("country").annotate(
        organizations_count=Count("organizations", distinct=True),
        users_count=Count("users", distinct=True),
        events_count=Count("events", distinct=True),
    )


_CITY_SEARCH = ("name", "state_province")

CITIES = ListingSpec(
    resource="cities",
    label="Cities",
    queryset=_city_queryset,
    params=(
        IdParam("country_id"),
        ChoiceParam("status", choices=tuple(GeoStatus.values)),
        TextParam("search", search_columns=_CITY_SEARCH),
        # Short alias accepted by the admin UI.
        TextParam("s", search_columns=_CITY_SEARCH),
    ),
    sortable=("id", "name", "state_province", "population", "status", "created_at", "organizations_count"),
    default_sort=SortSpec("name", ASC),
    columns=(
        Column("ID", "id"),
        Column("Name", "name"),
        Column("Country", "country.name"),
        Column("State/Province", "state_province"),
        Column("Population", "population"),
        Column("Timezone", "timezone"),
        Column("Status", "status"),
        Column("Organizations Count", "organizations_count"),
        Column("Created At", "created_at"),
    ),
)


# ---------------------------------------------------------------------
# Newsletter
# ---------------------------------------------------------------------
NEWSLETTER_SUBSCRIBERS = ListingSpec(
    resource="newsletter_subscribers",
    label="Newsletter subscribers",
    queryset=lambda: NewsletterSubscription.objects.all(),
    params=(
        ChoiceParam("status", choices=tuple(SubscriptionStatus.values)),
        TextParam("search", search_columns=("email",)),
    ),
    sortable=("id", "email", "status", "subscribed_at", "unsubscribed_at"),
    default_sort=SortSpec("subscribed_at", DESC),
    date_column="subscribed_at",
    columns=(
        Column("Email", "email"),
        Column("Status", "status"),
        Column("Subscribed At", "subscribed_at"),
        Column("Unsubscribed At", "unsubscribed_at"),
        Column("Preferences", "preferences"),
    ),
    export_with_time=False,
    export_defaults={"status": SubscriptionStatus.ACTIVE.value},
)

NEWSLETTER_CONTENT = ListingSpec(
    resource="newsletter_content",
    label="Newsletter content",
    queryset=lambda: NewsletterContent.objects.select_related("created_by"),
    params=(
        ChoiceParam("status", choices=tuple(ContentStatus.values)),
        TextParam("search", search_columns=("title", "subject")),
    ),
    sortable=("id", "title", "status", "created_at", "sent_at", "scheduled_at"),
    default_sort=SortSpec("created_at", DESC),
    date_column="created_at",
    columns=(
        Column("ID", "id"),
        Column("Title", "title"),
        Column("Subject", "subject"),
        Column("Status", "status"),
        Column("Sent At", "sent_at"),
        Column("Sent Count", "sent_count"),
        Column("Failed Count", "failed_count"),
    ),
)


# ---------------------------------------------------------------------
# Invitations (scoped to one organization)
# ---------------------------------------------------------------------
def invitation_listing(organization: Organization) -> ListingSpec:
    return ListingSpec(
        resource=f"organization_{organization.pk}_invitations",
        label=f"Invitations for {organization.name}",
        queryset=lambda: OrganizationInvitation.objects.select_related("invited_by").filter(
            organization=organization
        ),
        params=(
            ChoiceParam("status", choices=tuple(InvitationStatus.values)),
            TextParam("search", search_columns=("email",)),
            ChoiceParam("role", choices=tuple(InvitationRole.values)),
        ),
        sortable=("id", "email", "role", "status", "sent_at", "expires_at", "created_at"),
        default_sort=SortSpec("created_at", DESC),
        date_column="created_at",
        columns=(
            Column("Email", "email"),
            Column("Role", "role"),
            Column("Status", "status"),
            Column("Invited By", lambda inv: inv.invited_by.full_name if inv.invited_by else None),
            Column("Invited At", "sent_at"),
            Column("Expires At", "expires_at"),
            Column("Accepted At", "accepted_at"),
            Column("Rejected At", "rejected_at"),
            Column("Message", "message"),
        ),
        export_with_time=False,
    )


# ---------------------------------------------------------------------
# Translations
# ---------------------------------------------------------------------
_MISSING = EqualsFilter("value", "")
_NEEDS_REVIEW = AnyOfFilter(
    (_MISSING,) + tuple(TextSearchFilter(("value",), marker) for marker in REVIEW_MARKERS)
)

TRANSLATIONS = ListingSpec(
    resource="translations",
    label="Translations",
    queryset=lambda: Translation.objects.select_related("created_by"),
    params=(
        TextParam("locale", max_length=8),
        TextParam("group", max_length=100),
        TextParam("namespace", max_length=100),
        ChoiceParam(
            "status",
            choices=("active", "inactive", "needs_review", "missing"),
            predicates={
                "active": EqualsFilter("is_active", True),
                "inactive": EqualsFilter("is_active", False),
                "needs_review": _NEEDS_REVIEW,
                "missing": _MISSING,
            },
        ),
        TextParam("search", search_columns=("key", "value", "group")),
    ),
    sortable=("id", "key", "locale", "group", "namespace", "created_at", "updated_at"),
    default_sort=SortSpec("key", ASC),
    columns=(
        Column("Key", "key"),
        Column("Locale", "locale"),
        Column("Value", "value"),
        Column("Group", "group"),
        Column("Namespace", "namespace"),
        Column("Active", "is_active"),
        Column("System", "is_system"),
        Column("Needs Review", "needs_review"),
        Column("Updated At", "updated_at"),
    ),
)


# ---------------------------------------------------------------------
# Activity logs
# ---------------------------------------------------------------------
def activity_log_listing() -> ListingSpec:
    return ListingSpec(
        resource="activity_logs",
        label="Activity logs",
        queryset=lambda: ActivityLog.objects.select_related("user", "content_type"),
        params=(
            IdParam("user_id"),
            ChoiceParam("action", choices=tuple(ActivityAction.values)),
            TextParam("subject_type", column="content_type__model__iexact", max_length=100),
        ),
        sortable=("id", "created_at", "action", "user_id"),
        default_sort=SortSpec("created_at", DESC),
        date_column="created_at",
        default_window_days=getattr(settings, "ACTIVITY_LOG_DEFAULT_WINDOW_DAYS", 30),
        columns=(
            Column("ID", "id"),
            Column("Date", "created_at"),
            Column("User", lambda log: log.user.get_username() if log.user else "System"),
            Column("Action", "action"),
            Column("Description", "description"),
            Column("Subject", "subject_label"),
            Column("IP Address", "ip_address"),
            Column("Properties", "properties"),
        ),
    )
