from __future__ import annotations

"""
Country and city endpoints.

- Countries list through django-filter (`status`, `code`) + DRF search/ordering,
  paginated by `ConsolePagination`; the CSV export still goes through the
  shared listing core so filters behave identically.
- Cities list through their `ListingSpec` (country_id, status, `s`/`search`) and
  carry organization/user/event counts.
- Deletes are refused with 409 while dependents exist.
"""

from django.db.models import Count
from django_filters import rest_framework as filters
from drf_spectacular.utils import OpenApiParameter, extend_schema, extend_schema_view
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.filters import OrderingFilter, SearchFilter
from rest_framework.response import Response

from console import listings
from console.api.mixins import (
    AuditedWriteMixin,
    ConsolePagination,
    ListingViewSetMixin,
    listing_payload,
)
from console.schema import (
    COMMON_ERRORS,
    CONFLICT_RESPONSE,
    CSV_RESPONSE,
    LISTING_PARAMS,
    listing_response,
)
from console.serializers import CitySerializer, CountrySerializer
from console.services.geography import delete_city, delete_country, toggle_status
from core.listing import Page
from geography.models import City, Country, GeoStatus


class CountryFilter(filters.FilterSet):
    status = filters.ChoiceFilter(choices=GeoStatus.choices)
    code = filters.CharFilter(field_name="code", lookup_expr="iexact")

    class Meta:
        model = Country
        fields = ["status", "code"]


@extend_schema_view(
    list=extend_schema(tags=["Countries"], description="List countries (filter by status/code, search name/code)."),
    retrieve=extend_schema(tags=["Countries"], description="Retrieve a country."),
    create=extend_schema(tags=["Countries"], description="Create a country."),
    update=extend_schema(tags=["Countries"], description="Update a country."),
    partial_update=extend_schema(tags=["Countries"], description="Partially update a country."),
    destroy=extend_schema(
        tags=["Countries"],
        description="Delete a country. Refused while cities or users reference it.",
        responses={204: None, 409: CONFLICT_RESPONSE},
    ),
    export=extend_schema(tags=["Countries"], description="Export countries as CSV.", responses={200: CSV_RESPONSE}),
)
class CountryViewSet(AuditedWriteMixin, ListingViewSetMixin, viewsets.ModelViewSet):
    lookup_value_regex = r"\d+"
    queryset = Country.objects.annotate(cities_count=Count("cities", distinct=True))
    serializer_class = CountrySerializer
    listing = listings.COUNTRIES
    pagination_class = ConsolePagination
    filter_backends = [filters.DjangoFilterBackend, SearchFilter, OrderingFilter]
    filterset_class = CountryFilter
    search_fields = ["name", "code"]
    ordering_fields = ["id", "name", "code", "status", "created_at"]
    ordering = ["name"]

    def list(self, request, *args, **kwargs):
        # django-filter path instead of the ListingSpec one.
        return viewsets.ModelViewSet.list(self, request, *args, **kwargs)

    def destroy(self, request, *args, **kwargs):
        delete_country(self.get_object(), actor=request.user, log=self.activity())
        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(tags=["Countries"], request=None, responses={200: CountrySerializer})
    @action(detail=True, methods=["post"], url_path="toggle-status")
    def toggle_status(self, request, pk=None):
        country = toggle_status(self.get_object(), actor=request.user, log=self.activity())
        return Response(self.get_serializer(country).data)

    @extend_schema(
        tags=["Countries"],
        description="Active cities of a country, by name.",
        responses={200: listing_response("CountryCity", CitySerializer)},
    )
    @action(detail=True, methods=["get"], url_path="cities", filter_backends=[], pagination_class=None)
    def cities(self, request, pk=None):
        country = self.get_object()
        qs = City.objects.filter(country=country, status=GeoStatus.ACTIVE).order_by("name", "id")
        items = list(qs)
        page = Page(items=items, total=len(items), page=1, page_size=max(1, len(items)))
        data = CitySerializer(items, many=True, context=self.get_serializer_context()).data
        return Response(listing_payload(page, {"country_id": country.pk, "status": GeoStatus.ACTIVE.value}, data))


@extend_schema_view(
    list=extend_schema(
        tags=["Cities"],
        description="List cities with organization/user/event counts.",
        parameters=LISTING_PARAMS + [
            OpenApiParameter("country_id", int, required=False),
            OpenApiParameter("s", str, required=False, description="Alias of `search`."),
        ],
        responses={200: listing_response("City", CitySerializer), **COMMON_ERRORS},
    ),
    retrieve=extend_schema(tags=["Cities"], description="Retrieve a city."),
    create=extend_schema(tags=["Cities"], description="Create a city."),
    update=extend_schema(tags=["Cities"], description="Update a city."),
    partial_update=extend_schema(tags=["Cities"], description="Partially update a city."),
    destroy=extend_schema(
        tags=["Cities"],
        description="Delete a city. Refused while organizations, users or events reference it.",
        responses={204: None, 409: CONFLICT_RESPONSE},
    ),
    export=extend_schema(tags=["Cities"], description="Export cities as CSV.", responses={200: CSV_RESPONSE}),
)
class CityViewSet(AuditedWriteMixin, ListingViewSetMixin, viewsets.ModelViewSet):
    lookup_value_regex = r"\d+"
    serializer_class = CitySerializer
    listing = listings.CITIES

    def get_queryset(self):
        return listings.CITIES.queryset()

    def destroy(self, request, *args, **kwargs):
        delete_city(self.get_object(), actor=request.user, log=self.activity())
        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(tags=["Cities"], request=None, responses={200: CitySerializer})
    @action(detail=True, methods=["post"], url_path="toggle-status")
    def toggle_status(self, request, pk=None):
        city = toggle_status(self.get_object(), actor=request.user, log=self.activity())
        return Response(self.get_serializer(city).data)
