from __future__ import annotations

"""
Newsletter endpoints.

Subscribers
    list / export (export defaults to active subscribers, date-only filename),
    subscribe, unsubscribe, bulk (subscribe/unsubscribe/delete), stats.

Content
    list (django-filter on status + search title/subject), create, retrieve,
    export, and `send/` which mails every active subscriber once.
"""

from django_filters import rest_framework as filters
from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import extend_schema, extend_schema_view
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.filters import OrderingFilter, SearchFilter
from rest_framework.response import Response

from console import listings
from console.api.mixins import ConsolePagination, ListingViewSetMixin
from console.models import ContentStatus, NewsletterContent, NewsletterSubscription
from console.schema import (
    COMMON_ERRORS,
    CONFLICT_RESPONSE,
    CSV_RESPONSE,
    DATE_RANGE_PARAMS,
    ERROR_RESPONSE,
    LISTING_PARAMS,
    listing_response,
)
from console.serializers import (
    NewsletterContentSerializer,
    NewsletterSubscriptionSerializer,
    SubscribeSerializer,
    SubscriberBulkSerializer,
    UnsubscribeSerializer,
)
from console.services import newsletter


@extend_schema_view(
    list=extend_schema(
        tags=["Newsletter"],
        description="List subscribers (status, email search, subscribed_at range).",
        parameters=LISTING_PARAMS + DATE_RANGE_PARAMS,
        responses={200: listing_response("Subscriber", NewsletterSubscriptionSerializer), **COMMON_ERRORS},
    ),
    retrieve=extend_schema(tags=["Newsletter"], description="Retrieve a subscription."),
    export=extend_schema(
        tags=["Newsletter"],
        description="Export subscribers as CSV. Without a status filter only active subscribers are exported.",
        responses={200: CSV_RESPONSE},
    ),
)
class NewsletterSubscriberViewSet(ListingViewSetMixin, mixins.RetrieveModelMixin, viewsets.GenericViewSet):
    lookup_value_regex = r"\d+"
    queryset = NewsletterSubscription.objects.all()
    serializer_class = NewsletterSubscriptionSerializer
    listing = listings.NEWSLETTER_SUBSCRIBERS
    throttle_scopes = {"export": "exports", "bulk": "bulk-ops"}

    @extend_schema(
        tags=["Newsletter"],
        request=SubscribeSerializer,
        responses={201: NewsletterSubscriptionSerializer, 409: CONFLICT_RESPONSE},
    )
    @action(detail=False, methods=["post"], url_path="subscribe")
    def subscribe(self, request):
        payload = SubscribeSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        subscription = newsletter.subscribe(
            payload.validated_data["email"], payload.validated_data.get("preferences"), now=self.now
        )
        return Response(NewsletterSubscriptionSerializer(subscription).data, status=status.HTTP_201_CREATED)

    @extend_schema(
        tags=["Newsletter"],
        request=UnsubscribeSerializer,
        responses={200: NewsletterSubscriptionSerializer, 404: ERROR_RESPONSE},
    )
    @action(detail=False, methods=["post"], url_path="unsubscribe")
    def unsubscribe(self, request):
        payload = UnsubscribeSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        subscription = newsletter.unsubscribe(
            payload.validated_data["email"], payload.validated_data.get("token"), now=self.now
        )
        return Response(NewsletterSubscriptionSerializer(subscription).data)

    @extend_schema(tags=["Newsletter"], request=SubscriberBulkSerializer, responses={200: OpenApiTypes.OBJECT})
    @action(detail=False, methods=["post"], url_path="bulk")
    def bulk(self, request):
        payload = SubscriberBulkSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        result = newsletter.bulk_action(
            payload.validated_data["action"],
            payload.validated_data["emails"],
            now=self.now,
            actor=request.user,
            log=self.activity(),
        )
        return Response(result)

    @extend_schema(tags=["Newsletter"], responses={200: OpenApiTypes.OBJECT})
    @action(detail=False, methods=["get"], url_path="stats")
    def stats(self, request):
        return Response(newsletter.newsletter_stats(now=self.now))


class NewsletterContentFilter(filters.FilterSet):
    status = filters.ChoiceFilter(choices=ContentStatus.choices)

    class Meta:
        model = NewsletterContent
        fields = ["status"]


@extend_schema_view(
    list=extend_schema(tags=["Newsletter"], description="List newsletter content (status, search title/subject)."),
    retrieve=extend_schema(tags=["Newsletter"], description="Retrieve newsletter content."),
    create=extend_schema(
        tags=["Newsletter"],
        description="Create newsletter content (draft or ready).",
        responses={201: NewsletterContentSerializer, **COMMON_ERRORS},
    ),
    export=extend_schema(tags=["Newsletter"], description="Export newsletter content as CSV.",
                         responses={200: CSV_RESPONSE}),
)
class NewsletterContentViewSet(
    ListingViewSetMixin,
    mixins.CreateModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    lookup_value_regex = r"\d+"
    queryset = NewsletterContent.objects.select_related("created_by")
    serializer_class = NewsletterContentSerializer
    listing = listings.NEWSLETTER_CONTENT
    pagination_class = ConsolePagination
    filter_backends = [filters.DjangoFilterBackend, SearchFilter, OrderingFilter]
    filterset_class = NewsletterContentFilter
    search_fields = ["title", "subject"]
    ordering_fields = ["id", "title", "status", "created_at", "sent_at", "scheduled_at"]
    ordering = ["-created_at"]
    throttle_scopes = {"export": "exports", "send": "bulk-ops"}

    def list(self, request, *args, **kwargs):
        return mixins.ListModelMixin.list(self, request, *args, **kwargs)

    def perform_create(self, serializer):
        serializer.instance = newsletter.create_content(
            dict(serializer.validated_data), actor=self.request.user, now=self.now, log=self.activity()
        )

    @extend_schema(
        tags=["Newsletter"],
        request=None,
        responses={200: OpenApiTypes.OBJECT, 409: CONFLICT_RESPONSE},
    )
    @action(detail=True, methods=["post"], url_path="send")
    def send(self, request, pk=None):
        content = self.get_object()
        result = newsletter.send_newsletter(content, actor=request.user, now=self.now, log=self.activity())
        return Response(
            {
                "detail": "Newsletter sent.",
                "sent": result.sent,
                "failed": result.failed,
                "total_subscribers": result.total_subscribers,
                "errors": result.errors,
            }
        )
